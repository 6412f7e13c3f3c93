from diso.schemas.analysis import TechnicalFindings, AnalysisVerdict
from diso.schemas.errors import ErrorCategory, ErrorIcon, ClassifiedError
from diso.schemas.history import HistoryRecord
from diso.schemas.session import (
    UploadedMedia,
    Idle,
    Submitting,
    Completed,
    Failed,
    SessionState,
    MediaInfo,
    SessionSnapshot,
)

__all__ = [
    "TechnicalFindings",
    "AnalysisVerdict",
    "ErrorCategory",
    "ErrorIcon",
    "ClassifiedError",
    "HistoryRecord",
    "UploadedMedia",
    "Idle",
    "Submitting",
    "Completed",
    "Failed",
    "SessionState",
    "MediaInfo",
    "SessionSnapshot",
]
