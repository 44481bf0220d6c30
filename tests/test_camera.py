"""Tests for the capture pipeline."""

import asyncio
import base64

import pytest

from photobooth.models.session import Archetype, QuizResult, RacingTheme, ThemeSelection
from photobooth.services.camera import CameraService
from photobooth.services.session import SessionState


def _camera(settings, fake_capture, sleep, **capture_kwargs) -> CameraService:
    return CameraService(
        settings,
        capture_factory=lambda index: fake_capture(index, **capture_kwargs),
        sleep=sleep,
    )


def test_start_failure_surfaces_error_and_blocks_capture(settings, fake_capture, sleep) -> None:
    camera = _camera(settings, fake_capture, sleep, opened=False)

    assert camera.start_camera() is False
    assert camera.error
    assert camera.is_active is False

    assert asyncio.run(camera.capture()) is False
    assert camera.captured_photos == []
    assert camera.countdown is None


def test_two_photo_flow_stops_at_required_count(settings, fake_capture, sleep) -> None:
    session = SessionState()
    session.set_selection(QuizResult(archetype=Archetype.golden))
    camera = _camera(settings, fake_capture, sleep)
    camera.bind(session)

    assert camera.required_photos == 2
    assert camera.start_camera() is True
    assert asyncio.run(camera.capture()) is True
    assert asyncio.run(camera.capture()) is True
    assert len(camera.captured_photos) == 2

    assert asyncio.run(camera.capture()) is False
    assert len(camera.captured_photos) == 2

    photos = camera.advance(session)

    assert len(photos) == 2
    assert len(session.photos) == 2
    assert camera.is_active is False
    assert camera.camera is None


def test_countdown_ticks_once_per_second(settings, fake_capture) -> None:
    ticks = []
    seen = []

    async def record_sleep(seconds: float) -> None:
        ticks.append(seconds)
        seen.append(camera.countdown)

    camera = CameraService(settings, capture_factory=fake_capture, sleep=record_sleep)
    camera.start_camera()

    assert asyncio.run(camera.capture()) is True
    assert ticks == [1, 1, 1]
    assert seen == [3, 2, 1]
    assert camera.countdown is None


def test_captured_photo_is_mirrored_rgb(settings, fake_capture, sleep) -> None:
    camera = _camera(settings, fake_capture, sleep)
    camera.start_camera()
    asyncio.run(camera.capture())

    photo = camera.captured_photos[0]
    assert photo.size == (1920, 1080)
    # Blue starts on the left of the BGR frame and lands on the right once mirrored
    assert photo.getpixel((10, 10)) == (255, 0, 0)
    assert photo.getpixel((1900, 10)) == (0, 0, 255)


def test_read_failure_keeps_photos_unchanged(settings, fake_capture, sleep) -> None:
    camera = _camera(settings, fake_capture, sleep, readable=False)
    camera.start_camera()

    assert asyncio.run(camera.capture()) is False
    assert camera.captured_photos == []
    assert camera.error


def test_retake_is_bounded(settings, fake_capture, sleep) -> None:
    camera = _camera(settings, fake_capture, sleep)
    camera.start_camera()

    assert camera.retake() is False

    for _ in range(settings.max_retake_count):
        asyncio.run(camera.capture())
        assert camera.retake() is True

    assert camera.retake_count == settings.max_retake_count
    asyncio.run(camera.capture())
    assert camera.retake() is False
    assert len(camera.captured_photos) == 1


def test_advance_requires_all_photos(settings, fake_capture, sleep) -> None:
    session = SessionState()
    session.set_selection(ThemeSelection(theme=RacingTheme.motogp))
    camera = _camera(settings, fake_capture, sleep)
    camera.bind(session)
    camera.start_camera()

    with pytest.raises(ValueError):
        camera.advance(session)

    assert camera.is_active is True


def test_new_session_clears_captures(settings, fake_capture, sleep) -> None:
    session = SessionState()
    camera = _camera(settings, fake_capture, sleep)
    camera.bind(session)
    camera.start_camera()
    asyncio.run(camera.capture())

    session.reset()
    camera.bind(session)

    assert camera.captured_photos == []
    assert camera.retake_count == 0


def test_preview_frame_is_base64_jpeg(settings, fake_capture, sleep) -> None:
    camera = _camera(settings, fake_capture, sleep)
    assert camera.get_preview_frame() is None

    camera.start_camera()
    frame = camera.get_preview_frame()

    assert base64.b64decode(frame)[:2] == b"\xff\xd8"


def test_reset_during_countdown_discards_the_capture(settings, fake_capture) -> None:
    async def run():
        gate = asyncio.Event()

        async def gated_sleep(seconds: float) -> None:
            await gate.wait()

        session = SessionState()
        camera = CameraService(settings, capture_factory=fake_capture, sleep=gated_sleep)
        camera.bind(session)
        camera.start_camera()

        pending = asyncio.create_task(camera.capture())
        await asyncio.sleep(0)
        assert camera.countdown == settings.countdown_seconds

        camera.stop_camera()
        session.reset()
        camera.bind(session)
        camera.start_camera()
        gate.set()

        return await pending, camera

    result, camera = asyncio.run(run())

    assert result is False
    assert camera.captured_photos == []
    assert camera.countdown is None
    assert camera.can_capture is True
