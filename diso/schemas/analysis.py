from pydantic import BaseModel, Field
from typing import Optional, List


class TechnicalFindings(BaseModel):
    lighting_consistency: str = Field(description="Assessment of light sources, shadows and reflections")
    texture_quality: str = Field(description="Assessment of skin, fabric and surface micro-texture")
    # Optional findings are absent when they do not apply (e.g. temporal on a still image)
    anatomical_accuracy: Optional[str] = Field(None, description="Hands, faces, limbs; omit if no people")
    metadata_analysis: Optional[str] = Field(None, description="Visible provenance clues; omit if none")
    temporal_consistency: Optional[str] = Field(None, description="Frame-to-frame coherence; video only")


class AnalysisVerdict(BaseModel):
    """Gemini structured output schema: one verdict per submitted media file."""
    is_synthetic: bool = Field(description="True if the media is AI-generated or AI-manipulated")
    confidence_score: float = Field(ge=0, le=100, description="Confidence in the verdict, 0 to 100")
    verdict_summary: str = Field(description="Short human label, e.g. 'Likely AI-generated'")
    reasoning_points: List[str] = Field(default_factory=list, description="Rationale, strongest evidence first")
    artifacts_found: List[str] = Field(default_factory=list, description="Concrete synthetic artifacts observed")
    technical_findings: TechnicalFindings
