from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from grantflow.domain.constants import UNASSIGNED_OWNER
from grantflow.domain.models.stage import Stage


class FunderType(str, Enum):
    """Funder category; drives required documents and follow-up cadence."""

    CORPORATE_CSI = "Corporate CSI"
    GOVERNMENT_SETA = "Government/SETA"
    INTERNATIONAL = "International"
    FOUNDATION = "Foundation"
    TECH_COMPANY = "Tech Company"


class Relationship(str, Enum):
    COLD = "Cold"
    WARM = "Warm"
    HOT = "Hot"
    PREVIOUS_FUNDER = "Previous Funder"


class AskSource(str, Enum):
    """Where the committed ask amount came from."""

    MANUAL = "manual"
    SCOUT_ALIGNED = "scout-aligned"
    AI_RECOMMENDED = "ai-recommended"


class LogEntry(BaseModel):
    """One line of a grant's append-only activity log."""

    model_config = ConfigDict(extra="forbid")

    date: date
    text: str


class FollowUp(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: date
    label: str
    kind: str = "status"  # status | update | offer
    done: bool = False


class ArtifactVersion(BaseModel):
    """Previous value of an AI artifact, kept in a bounded history."""

    model_config = ConfigDict(extra="forbid")

    at: datetime
    text: str


class ProposalSection(BaseModel):
    """One section of a structured (sectioned) draft proposal."""

    model_config = ConfigDict(extra="forbid")

    text: str = ""
    generated_at: datetime | None = None


class BudgetLine(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str
    amount: float = 0


class BudgetTable(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lines: list[BudgetLine] = Field(default_factory=list)
    total: float = 0


class Grant(BaseModel):
    """A funding opportunity tracked through the pipeline.

    Notes:
    - AI artifacts are explicitly declared optional fields, never an open map.
    - Strict: rejects unknown keys so serialization stays exhaustive.
    """

    model_config = ConfigDict(extra="forbid")

    # Identity
    id: str
    org_id: str

    # Descriptive
    name: str
    funder: str
    funder_type: FunderType
    geography: list[str] = Field(default_factory=list)
    focus: list[str] = Field(default_factory=list)

    # Financial
    ask: float = 0
    funder_budget: float = 0
    ask_source: AskSource | None = None
    budget_table: BudgetTable | None = None

    # Workflow
    stage: Stage = Stage.SCOUTED
    priority: int = 3
    owner: str = UNASSIGNED_OWNER
    relationship: Relationship = Relationship.COLD
    deadline: date | None = None
    submitted_on: date | None = None

    # Evidentiary
    notes: str = ""
    log: list[LogEntry] = Field(default_factory=list)
    documents: dict[str, bool] = Field(default_factory=dict)
    follow_ups: list[FollowUp] = Field(default_factory=list)

    # AI artifacts
    ai_draft: str | None = None
    ai_draft_at: datetime | None = None
    ai_research: str | None = None
    ai_research_at: datetime | None = None
    ai_fitscore: str | None = None
    ai_fitscore_at: datetime | None = None
    fit_score: int | None = None
    ai_followup: str | None = None
    ai_followup_at: datetime | None = None
    ai_winloss: str | None = None
    ai_winloss_at: datetime | None = None
    ai_sections: dict[str, ProposalSection] = Field(default_factory=dict)
    draft_history: list[ArtifactVersion] = Field(default_factory=list)
    research_history: list[ArtifactVersion] = Field(default_factory=list)
    fitscore_history: list[ArtifactVersion] = Field(default_factory=list)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("id", "org_id", "name", "funder")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("must be non-empty")
        return v2

    @field_validator("priority")
    @classmethod
    def _priority_in_range(cls, v: int) -> int:
        if not 1 <= v <= 5:
            raise ValueError("priority must be between 1 and 5")
        return v

    @field_validator("ask", "funder_budget")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("amount must be >= 0")
        return v

    @field_validator("owner", mode="before")
    @classmethod
    def _blank_owner_is_unassigned(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNASSIGNED_OWNER
        return v

    @property
    def effective_ask(self) -> float:
        """Committed ask if set, otherwise the funder's estimated budget."""
        return self.ask or self.funder_budget or 0

    @property
    def has_draft(self) -> bool:
        if self.ai_draft and self.ai_draft.strip():
            return True
        return any(s.text.strip() for s in self.ai_sections.values())

    def append_log(self, text: str, on: date | None = None) -> LogEntry:
        """Append an activity entry; entries are never rewritten or removed."""
        entry = LogEntry(date=on or date.today(), text=text)
        self.log = [*self.log, entry]
        return entry
