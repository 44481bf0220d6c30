"""Shared test fixtures."""

import base64
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from photobooth.assets import ARCHETYPE_ORDER, AssetResolver
from photobooth.config import Settings
from photobooth.models.session import RacingTheme


class FakeVideoCapture:
    """Stands in for cv2.VideoCapture with a solid colour frame."""

    def __init__(self, index: int = 0, opened: bool = True, readable: bool = True) -> None:
        self.index = index
        self.opened = opened
        self.readable = readable
        self.released = False
        self.properties = {}
        self.frame = np.zeros((1080, 1920, 3), dtype=np.uint8)
        self.frame[:, :960] = (255, 0, 0)
        self.frame[:, 960:] = (0, 0, 255)

    def isOpened(self) -> bool:
        return self.opened

    def set(self, prop, value) -> bool:
        self.properties[prop] = value
        return True

    def read(self):
        if not self.readable:
            return False, None
        return True, self.frame.copy()

    def release(self) -> None:
        self.released = True


class FakeProcess:
    def __init__(self, returncode: int = 0, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self.stderr = stderr

    async def communicate(self):
        return b"", self.stderr


class FakeRunner:
    """Records lp invocations instead of spawning a process."""

    def __init__(self, returncode: int = 0, stderr: bytes = b"") -> None:
        self.calls = []
        self.returncode = returncode
        self.stderr = stderr

    async def __call__(self, *args, **kwargs):
        self.calls.append(args)
        return FakeProcess(self.returncode, self.stderr)


async def no_sleep(seconds: float) -> None:
    return None


def _frame_image(size, border_colour) -> Image.Image:
    """Opaque border with a transparent window, like the real frame overlays."""
    image = Image.new("RGBA", size, border_colour)
    width, height = size
    window = Image.new("RGBA", (width // 2, height // 2), (0, 0, 0, 0))
    image.paste(window, (width // 4, height // 8))
    return image


def make_data_uri(size=(32, 24), colour=(200, 10, 10)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, colour).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("utf-8")


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    root = tmp_path / "assets"
    images = root / "images"
    images.mkdir(parents=True)
    for index, _ in enumerate(ARCHETYPE_ORDER):
        _frame_image((64, 96), (40 * index, 120, 200, 255)).save(images / f"frame-{index + 1}.png")
    for theme in RacingTheme:
        _frame_image((54, 96), (10, 10, 10, 255)).save(images / f"frame-{theme.value}.png")
    return root


@pytest.fixture
def settings(tmp_path: Path, assets_dir: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        assets_dir=assets_dir,
        pdf_dir=tmp_path / "pdf",
        countdown_seconds=3,
        print_cleanup_delay=0,
        api_client_key=None,
    )


@pytest.fixture
def assets(assets_dir: Path) -> AssetResolver:
    return AssetResolver(assets_dir)


@pytest.fixture
def fake_capture():
    return FakeVideoCapture


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def failing_runner() -> FakeRunner:
    return FakeRunner(returncode=1, stderr=b"lp: The printer or class does not exist.")


@pytest.fixture
def sleep():
    return no_sleep


@pytest.fixture
def data_uri():
    return make_data_uri
