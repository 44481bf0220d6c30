import asyncio
import base64
import logging
from typing import Awaitable, Callable, List, Optional

import cv2
import numpy as np
from PIL import Image

from photobooth.config import Settings
from photobooth.exceptions import CameraUnavailableError
from photobooth.services.session import SessionState

logger = logging.getLogger(__name__)

PREVIEW_WIDTH, PREVIEW_HEIGHT = 1080, 1920
SLOT_HEIGHT = 480
SLOT_WIDTH = int(SLOT_HEIGHT / (9 / 16))
SLOT_OFFSETS = {1: [540], 2: [318, 798]}

# BGR
BADGE_FILL = (218, 233, 242)
BADGE_STROKE = (77, 119, 156)
BADGE_ALPHA = 0.75


class CameraService:
    def __init__(
            self,
            settings: Settings,
            capture_factory: Callable = cv2.VideoCapture,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.capture_factory = capture_factory
        self.sleep = sleep
        self.camera = None
        self.is_active = False
        self.error: Optional[str] = None
        self.countdown: Optional[int] = None
        self.captured_photos: List[Image.Image] = []
        self.retake_count = 0
        self.required_photos = 1
        self.session_id: Optional[str] = None
        # Bumped on every reset; a capture started under an older value is discarded
        self.generation = 0

    @property
    def can_capture(self) -> bool:
        return (
            self.is_active
            and self.countdown is None
            and len(self.captured_photos) < self.required_photos
        )

    @property
    def can_retake(self) -> bool:
        return (
            len(self.captured_photos) > 0
            and self.countdown is None
            and self.retake_count < self.settings.max_retake_count
        )

    @property
    def can_advance(self) -> bool:
        return self.countdown is None and len(self.captured_photos) == self.required_photos

    def bind(self, session: SessionState) -> None:
        """Point the pipeline at the given session, clearing stale captures."""
        if self.session_id != session.session_id:
            self.reset(session.required_photo_count)
            self.session_id = session.session_id
        elif not self.captured_photos:
            self.required_photos = session.required_photo_count

    def reset(self, required_photos: int = 1) -> None:
        self.generation += 1
        self.captured_photos = []
        self.retake_count = 0
        self.countdown = None
        self.error = None
        self.required_photos = required_photos

    def start_camera(self) -> bool:
        self.error = None
        self.stop_camera()

        try:
            camera = self.capture_factory(self.settings.camera_index)
            if camera is None or not camera.isOpened():
                raise CameraUnavailableError("Could not open camera")

            camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.settings.camera_width)
            camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.settings.camera_height)
            camera.set(cv2.CAP_PROP_FPS, self.settings.camera_fps)

            self.camera = camera
            self.is_active = True
            logger.info("Camera %s started", self.settings.camera_index)
            return True
        except Exception as e:
            self.error = str(e) or "Failed to access camera"
            self.is_active = False
            logger.warning("Camera initialization failed: %s", self.error)
            return False

    def stop_camera(self) -> None:
        if self.camera is not None:
            self.camera.release()
            logger.info("Camera released")
        self.camera = None
        self.is_active = False

    def _read_frame(self) -> np.ndarray:
        if not self.is_active or self.camera is None:
            raise CameraUnavailableError("Camera is not active")

        ret, frame = self.camera.read()
        if not ret or frame is None:
            raise CameraUnavailableError("Failed to read frame from camera")
        return frame

    async def capture(self) -> bool:
        """Count down, then snapshot the current frame.

        Returns False without side effects when capturing is not allowed.
        """
        if not self.can_capture:
            return False

        generation = self.generation
        try:
            for remaining in range(self.settings.countdown_seconds, 0, -1):
                self.countdown = remaining
                await self.sleep(1)
                if self.generation != generation:
                    logger.info("Session reset during countdown, capture abandoned")
                    return False
            self.countdown = 0

            frame = cv2.flip(self._read_frame(), 1)
        except CameraUnavailableError as e:
            self.error = str(e)
            logger.warning("Capture failed: %s", e)
            return False
        finally:
            if self.generation == generation:
                self.countdown = None

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        self.captured_photos.append(Image.fromarray(rgb))
        logger.info("Captured photo %d of %d", len(self.captured_photos), self.required_photos)
        return True

    def retake(self) -> bool:
        if not self.can_retake:
            return False

        self.retake_count += 1
        self.captured_photos.pop()
        logger.info("Retake %d of %d", self.retake_count, self.settings.max_retake_count)

        if not self.is_active:
            self.start_camera()
        return True

    def advance(self, session: SessionState) -> List[Image.Image]:
        if not self.can_advance:
            raise ValueError(
                f"{self.required_photos} photo(s) required, {len(self.captured_photos)} captured"
            )

        self.stop_camera()
        session.set_photos(self.captured_photos)
        return list(self.captured_photos)

    def render_preview(self) -> np.ndarray:
        """Draw one frame of the capture screen."""
        canvas = np.zeros((PREVIEW_HEIGHT, PREVIEW_WIDTH, 3), dtype=np.uint8)
        x = (PREVIEW_WIDTH - SLOT_WIDTH) // 2
        offsets = SLOT_OFFSETS.get(self.required_photos, SLOT_OFFSETS[1])

        for index, y in enumerate(offsets):
            if index < len(self.captured_photos):
                still = cv2.cvtColor(np.asarray(self.captured_photos[index].convert("RGB")), cv2.COLOR_RGB2BGR)
                canvas[y:y + SLOT_HEIGHT, x:x + SLOT_WIDTH] = cv2.resize(still, (SLOT_WIDTH, SLOT_HEIGHT))
            elif index == len(self.captured_photos) and self.is_active:
                try:
                    # Mirrored so the preview behaves like a mirror
                    frame = cv2.flip(self._read_frame(), 1)
                except CameraUnavailableError:
                    continue
                canvas[y:y + SLOT_HEIGHT, x:x + SLOT_WIDTH] = cv2.resize(frame, (SLOT_WIDTH, SLOT_HEIGHT))
                if self.countdown:
                    self._draw_countdown(canvas, self.countdown, y)

        return canvas

    def _draw_countdown(self, canvas: np.ndarray, countdown: int, slot_y: int) -> None:
        text = str(countdown)
        font = cv2.FONT_HERSHEY_DUPLEX
        (text_width, text_height), _ = cv2.getTextSize(text, font, 2, 4)
        radius = max(45, text_width // 2 + 20)
        center = (280 + text_width // 2, slot_y + SLOT_HEIGHT - 48 - 30)

        overlay = canvas.copy()
        cv2.circle(overlay, center, radius, BADGE_FILL, -1, cv2.LINE_AA)
        cv2.addWeighted(overlay, BADGE_ALPHA, canvas, 1 - BADGE_ALPHA, 0, dst=canvas)
        cv2.circle(canvas, center, radius, BADGE_STROKE, 4, cv2.LINE_AA)
        origin = (center[0] - text_width // 2, center[1] + text_height // 2)
        cv2.putText(canvas, text, origin, font, 2, BADGE_STROKE, 4, cv2.LINE_AA)

    def get_preview_frame(self) -> Optional[str]:
        if not self.is_active and not self.captured_photos:
            return None

        frame = self.render_preview()
        ok, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, self.settings.preview_quality])
        if not ok:
            return None
        return base64.b64encode(buffer).decode('utf-8')

    def cleanup(self):
        self.stop_camera()
        self.countdown = None
