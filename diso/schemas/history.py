from pydantic import BaseModel, ConfigDict

from diso.schemas.analysis import AnalysisVerdict


class HistoryRecord(BaseModel):
    """Archived verdict plus the metadata of the media it was computed for."""
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: int      # Creation time, ms since epoch
    file_name: str
    file_type: str      # MIME string, e.g. "image/jpeg"
    preview: str        # Data URI, or "" when elided under storage pressure
    verdict: AnalysisVerdict
