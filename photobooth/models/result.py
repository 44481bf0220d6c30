from typing import Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")


class Success(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: Optional[T] = None
    file_path: Optional[str] = None


class Failure(BaseModel):
    success: Literal[False] = False
    error: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        return cls(error=str(exc) or exc.__class__.__name__)


Result = Union[Success[T], Failure]
