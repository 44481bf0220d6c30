import asyncio
import logging
import uuid
from typing import List, Optional

from PIL import Image

from photobooth.models.session import QuizResult, Selection, ThemeSelection, UserInfo

logger = logging.getLogger(__name__)


class SessionState:
    """Everything one user's run through the booth accumulates.

    One instance lives for the whole application run and is handed to each
    route through dependency injection. ``reset`` starts a new session.
    """

    def __init__(self):
        self.submit_lock = asyncio.Lock()
        self.print_lock = asyncio.Lock()
        self.reset()

    def reset(self) -> None:
        self.session_id = str(uuid.uuid4())
        self.photos: List[Image.Image] = []
        self.selection: Optional[Selection] = None
        self.user_info: Optional[UserInfo] = None
        self.final_photo: Optional[str] = None
        self.photo_path: Optional[str] = None
        self.record_id: Optional[str] = None
        logger.info("Started session %s", self.session_id)

    @property
    def required_photo_count(self) -> int:
        if isinstance(self.selection, QuizResult):
            return 2
        return 1

    def set_selection(self, selection: Selection) -> None:
        if self.selection is not None and self.selection != selection:
            raise ValueError("Selection already made for this session")
        self.selection = selection

    def set_photos(self, photos: List[Image.Image]) -> None:
        if len(photos) != self.required_photo_count:
            raise ValueError(f"Expected {self.required_photo_count} photos, got {len(photos)}")
        self.photos = list(photos)
        # New photos invalidate any earlier composite
        self.final_photo = None

    @property
    def theme_label(self) -> str:
        if isinstance(self.selection, ThemeSelection):
            return self.selection.theme.value
        if isinstance(self.selection, QuizResult):
            return self.selection.archetype.value
        return ""
