from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class RacingTheme(str, Enum):
    pitcrew = "pitcrew"
    motogp = "motogp"
    f1 = "f1"


class Archetype(str, Enum):
    morning = "morning"
    midday = "midday"
    night = "night"
    brunch = "brunch"
    golden = "golden"
    chill = "chill"


class ThemeSelection(BaseModel):
    theme: RacingTheme

    @property
    def label(self) -> str:
        return self.theme.value


class QuizResult(BaseModel):
    archetype: Archetype

    @property
    def label(self) -> str:
        return self.archetype.value


Selection = Union[ThemeSelection, QuizResult]


class UserInfo(BaseModel):
    name: str
    email: str
    phone: str


class PhotoResultRecord(BaseModel):
    id: str
    photo_path: str
    selection: Optional[Selection] = None
    user_info: UserInfo
    created_at: str
    updated_at: str


class QuizAnswersRequest(BaseModel):
    # question id -> selected answer ids
    answers: Dict[str, List[str]]


class SaveRecordRequest(BaseModel):
    photo_path: str
    selection: Selection
    user_info: UserInfo
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SavePhotoRequest(BaseModel):
    image: str
    file_name: str


class PrintRequest(BaseModel):
    path: str


class PrintPdfRequest(BaseModel):
    image: str


class FinalizeRequest(BaseModel):
    use_ai: bool = False


class CameraStatusResponse(BaseModel):
    is_active: bool
    error: Optional[str]
    countdown: Optional[int]
    photo_count: int
    required_photos: int
    retake_count: int
    max_retake_count: int
    can_capture: bool
    can_retake: bool
    can_advance: bool


class SessionStatusResponse(BaseModel):
    session_id: str
    photo_count: int
    required_photos: int
    selection: Optional[Selection] = None
    user_info: Optional[UserInfo] = None
    has_final_photo: bool
    photo_path: Optional[str] = None
    record_id: Optional[str] = None


class SessionFinalizeResponse(BaseModel):
    success: bool
    final_photo: str
    ai_generated: bool = False


class SessionCompleteResponse(BaseModel):
    success: bool
    record: PhotoResultRecord
    printed: bool
    print_error: Optional[str] = None
