"""Domain models and entities"""

import base64
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class Platform(str, Enum):
    """Supported ad platforms; UNKNOWN is the generic catch-all"""
    META = "meta"
    TIKTOK = "tiktok"
    GOOGLE = "google"
    LINKEDIN = "linkedin"
    REDDIT = "reddit"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Platform":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class AdReferenceKind(str, Enum):
    UPLOAD = "upload"
    URL = "url"


class AdSourceType(str, Enum):
    UPLOAD = "upload"
    URL = "url"
    PREVIEW = "preview"


class AnalysisMode(str, Enum):
    STANDARD = "standard"
    PERSUASION = "persuasion"


class PrincipleStrength(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AlignmentVerdict(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class Tier(str, Enum):
    """Subscription tiers, declared in ascending allowance order"""
    FREE = "free"
    PRO = "pro"
    AGENCY = "agency"
    ENTERPRISE = "enterprise"


PERSUASION_PRINCIPLES = (
    "reciprocity",
    "commitment",
    "social_proof",
    "authority",
    "liking",
    "scarcity",
)


class AdReference(BaseModel):
    """The ad as submitted: raw image data / hosted image, or an ad URL"""
    kind: AdReferenceKind
    raw_value: str
    platform: Optional[str] = None  # Explicit platform hint (required for uploads)
    media_type: Optional[str] = None  # Caller's media hint, may be wrong


class AdClassification(BaseModel):
    """Output of the input classifier"""
    model_config = {"frozen": True}

    platform: Platform
    media_type: MediaType
    source_type: AdSourceType
    is_preview_link: bool = False
    ad_id: Optional[str] = None


class AudienceProfile(BaseModel):
    age_range: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    interests: Optional[str] = None

    def describe(self) -> str:
        parts = [
            self.age_range or "all ages",
            self.gender or "all genders",
            f"location: {self.location or 'Global'}",
            f"interests: {self.interests or 'not specified'}",
        ]
        return ", ".join(parts)


class CaptureMetadata(BaseModel):
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    full_page: bool = False
    delay_ms: Optional[int] = None
    wait_for_selector: Optional[str] = None
    reason: Optional[str] = None  # Why a placeholder was produced


class CapturedImage(BaseModel):
    """A raster image of an ad or landing page, real or placeholder"""
    source_url: str
    content: Optional[bytes] = None
    media_type: str = "image/png"
    captured_at: datetime
    is_placeholder: bool = False
    remote: bool = False  # True when the vision model should fetch source_url itself
    metadata: CaptureMetadata = Field(default_factory=CaptureMetadata)

    def to_base64(self) -> str:
        if self.content is None:
            raise ValueError("Remote images carry no inline content")
        return base64.b64encode(self.content).decode("ascii")


class ComponentScores(BaseModel):
    visual_match: int = Field(ge=1, le=10)
    contextual_match: int = Field(ge=1, le=10)
    tone_alignment: int = Field(ge=1, le=10)


class Suggestions(BaseModel):
    visual: List[str] = Field(default_factory=list)
    contextual: List[str] = Field(default_factory=list)
    tone: List[str] = Field(default_factory=list)


class PersuasionPrinciple(BaseModel):
    score: PrincipleStrength
    ad_analysis: str = ""
    page_analysis: str = ""
    recommendation: str = ""


class PersuasionAnalysis(BaseModel):
    principles: Dict[str, PersuasionPrinciple]
    alignment_verdict: AlignmentVerdict
    psychological_insights: List[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Validated alignment analysis, from the model or the fallback path"""
    mode: AnalysisMode
    component_scores: ComponentScores
    suggestions: Suggestions
    overall_score: int
    persuasion: Optional[PersuasionAnalysis] = None

    def to_response(self) -> Dict[str, Any]:
        """camelCase shape returned to clients and stored with evaluations"""
        payload: Dict[str, Any] = {
            "overallScore": self.overall_score,
            "componentScores": {
                "visualMatch": self.component_scores.visual_match,
                "contextualMatch": self.component_scores.contextual_match,
                "toneAlignment": self.component_scores.tone_alignment,
            },
            "suggestions": self.suggestions.model_dump(),
        }
        if self.persuasion is not None:
            payload["persuasion"] = {
                "alignmentVerdict": self.persuasion.alignment_verdict.value,
                "principles": {
                    to_camel(name): {
                        "score": principle.score.value,
                        "adAnalysis": principle.ad_analysis,
                        "pageAnalysis": principle.page_analysis,
                        "recommendation": principle.recommendation,
                    }
                    for name, principle in self.persuasion.principles.items()
                },
                "psychologicalInsights": list(self.persuasion.psychological_insights),
            }
        return payload


@dataclass
class AnalysisSuccess:
    """Model call returned a schema-valid result"""
    result: AnalysisResult
    model: str
    latency_ms: int

    used_ai = True
    reason: Optional[str] = None


@dataclass
class AnalysisFallback:
    """Deterministic substitute used when the model call or validation failed"""
    result: AnalysisResult
    reason: str

    used_ai = False


class Evaluation(BaseModel):
    """Persisted outcome of one completed pipeline run"""
    id: str
    platform: Platform
    ad_source_type: AdSourceType
    media_type: MediaType
    landing_page_url: str
    overall_score: int
    component_scores: ComponentScores
    analysis_mode: AnalysisMode
    analysis: Dict[str, Any]
    used_ai: bool
    fallback_reason: Optional[str] = None
    requester_key: Optional[str] = None
    created_at: datetime


class SharedReport(BaseModel):
    share_token: str
    evaluation_id: str
    title: str
    sanitized_payload: Dict[str, Any]
    expires_at: datetime
    view_count: int = 0
    last_viewed_at: Optional[datetime] = None
    created_at: datetime
