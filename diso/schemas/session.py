from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from diso.schemas.analysis import AnalysisVerdict
from diso.schemas.errors import ClassifiedError


class UploadedMedia(BaseModel):
    """
    The subject of one analysis attempt.

    `encoded_payload` is always `preview` with its `data:<mime>;base64,` prefix
    removed. Media rebuilt from a history record is a placeholder: zero size,
    empty payload and `from_history=True`.
    """
    model_config = ConfigDict(frozen=True)

    file_name: str
    file_size: int
    preview: str
    encoded_payload: str
    content_type: str
    from_history: bool = False

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["idle"] = "idle"


class Submitting(BaseModel):
    """Encoding or awaiting the verdict. `media` is the last shown media, if any."""
    model_config = ConfigDict(frozen=True)

    status: Literal["submitting"] = "submitting"
    media: Optional[UploadedMedia] = None


class Completed(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["completed"] = "completed"
    media: UploadedMedia
    verdict: AnalysisVerdict


class Failed(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failed"] = "failed"
    media: Optional[UploadedMedia] = None
    error: ClassifiedError


SessionState = Union[Idle, Submitting, Completed, Failed]


class MediaInfo(BaseModel):
    """UploadedMedia without the transport payload: what the display needs."""
    file_name: str
    file_size: int
    content_type: str
    preview: str
    from_history: bool


class SessionSnapshot(BaseModel):
    status: Literal["idle", "submitting", "completed", "failed"]
    media: Optional[MediaInfo] = None
    verdict: Optional[AnalysisVerdict] = None
    error: Optional[ClassifiedError] = None
    can_retry: bool = False

    @classmethod
    def from_state(cls, state: SessionState, can_retry: bool = False) -> "SessionSnapshot":
        media = getattr(state, "media", None)
        return cls(
            status=state.status,
            media=MediaInfo(**media.model_dump(exclude={"encoded_payload"})) if media else None,
            verdict=getattr(state, "verdict", None),
            error=getattr(state, "error", None),
            can_retry=can_retry,
        )

