"""API request and response schemas"""

from datetime import datetime
from typing import Dict, Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from schemas.domain import AnalysisMode, AudienceProfile


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Evaluation schemas
class AdData(CamelModel):
    image_url: Optional[str] = None  # data: URL of an upload, or a hosted image
    ad_url: Optional[str] = None  # Ad library / preview link
    platform: Optional[str] = None
    media_type: Optional[str] = None

    @model_validator(mode="after")
    def require_ad_source(self):
        if not (self.image_url or self.ad_url):
            raise ValueError("adData requires either imageUrl or adUrl")
        return self


class LandingPageData(CamelModel):
    url: str = Field(..., min_length=1, max_length=2048)
    title: Optional[str] = Field(None, max_length=300)
    cta_text: Optional[str] = Field(None, max_length=200)

    @field_validator("url")
    @classmethod
    def require_http_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("landingPageData.url must be an absolute http(s) URL")
        return value


class AudienceData(CamelModel):
    age_range: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    interests: Optional[str] = None

    def to_profile(self) -> AudienceProfile:
        return AudienceProfile(**self.model_dump())


class IdentityData(CamelModel):
    email: EmailStr


class EvaluateRequest(CamelModel):
    ad_data: AdData
    landing_page_data: LandingPageData
    audience_data: AudienceData = Field(default_factory=AudienceData)
    analysis_mode: AnalysisMode = AnalysisMode.STANDARD
    identity: Optional[IdentityData] = None
    user_email: Optional[EmailStr] = None  # Legacy top-level identity field

    @property
    def requester_email(self) -> Optional[str]:
        if self.identity:
            return str(self.identity.email)
        return str(self.user_email) if self.user_email else None


# Usage schemas
class UsageRequest(CamelModel):
    user_email: Optional[EmailStr] = None


class UsageResponse(CamelModel):
    used: int
    limit: int
    remaining: int
    can_evaluate: bool
    next_reset: datetime
    tier: Optional[str] = None


# Share schemas
class CreateShareRequest(CamelModel):
    evaluation_id: str = Field(..., min_length=1, max_length=64)
    evaluation_data: Optional[Dict[str, Any]] = None

    @field_validator("evaluation_data")
    @classmethod
    def require_object_sections(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if value is None:
            return value
        for key in ("componentScores", "suggestions", "persuasion"):
            if value.get(key) is not None and not isinstance(value[key], dict):
                raise ValueError(f"evaluationData.{key} must be an object")
        principles = (value.get("persuasion") or {}).get("principles")
        if principles is not None and not isinstance(principles, dict):
            raise ValueError("evaluationData.persuasion.principles must be an object")
        return value


class CreateShareResponse(CamelModel):
    success: bool = True
    share_token: str
    share_url: str
    title: str
    expires_at: datetime
    mock: bool = False


class SharedReportData(CamelModel):
    share_token: str
    title: str
    sanitized_data: Dict[str, Any]
    expires_at: datetime
    view_count: int
    last_viewed_at: datetime
    created_at: datetime


class SharedReportResponse(CamelModel):
    success: bool = True
    data: SharedReportData

