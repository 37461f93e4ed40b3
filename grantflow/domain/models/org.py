"""Organisation data read by the scorer and the context assembler."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Programme(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    cost: float = 0
    description: str = ""


class ImpactStats(BaseModel):
    """Verified outcome figures. Rates are fractions in [0, 1]."""

    model_config = ConfigDict(extra="forbid")

    completion_rate: float = 0
    sector_average_completion: float = 0
    employment_rate: float = 0
    employment_window_months: int = 3
    learners_trained: str | None = None


class OrgProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = ""
    mission: str = ""
    programmes: list[Programme] = Field(default_factory=list)
    impact_stats: ImpactStats | None = None
    tone: str | None = None
    anti_patterns: str | None = None
    past_funders: str | None = None
    context_slim: str | None = None
    context_full: str | None = None


class ComplianceStatus(str, Enum):
    VALID = "valid"
    UPLOADED = "uploaded"
    EXPIRED = "expired"
    MISSING = "missing"

    @property
    def is_ready(self) -> bool:
        return self in (ComplianceStatus.VALID, ComplianceStatus.UPLOADED)


class ComplianceDoc(BaseModel):
    model_config = ConfigDict(extra="forbid")

    doc_id: str
    name: str = ""
    status: ComplianceStatus = ComplianceStatus.MISSING
    expiry: date | None = None


class Upload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    original_name: str
    extracted_text: str | None = None
    category: str | None = None
    created_at: datetime | None = None


class UploadContext(BaseModel):
    """Uploads relevant to one AI request, split by scope."""

    model_config = ConfigDict(extra="forbid")

    org_uploads: list[Upload] = Field(default_factory=list)
    grant_uploads: list[Upload] = Field(default_factory=list)
