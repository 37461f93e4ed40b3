from typing import Any, Literal

from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["add", "list", "show", "readiness", "move", "approve", "review", "ai", "providers"]
    exit_code: int
    error: str | None = None


class AddOutput(BaseOutput):
    command: Literal["add"] = "add"
    # Unknown when validation fails; omitted via exclude_none.
    grant_id: str | None = None


class GrantSummary(BaseModel):
    """Summary of a single grant for list output."""
    grant_id: str
    name: str
    funder: str
    stage: str
    priority: int
    owner: str
    ask: float
    deadline: str | None = None


class ListOutput(BaseOutput):
    command: Literal["list"] = "list"
    grants: list[GrantSummary] = Field(default_factory=list)
    total: int = 0


class ShowOutput(BaseOutput):
    command: Literal["show"] = "show"
    grant_id: str
    grant: dict[str, Any] | None = None


class ReadinessOutput(BaseOutput):
    command: Literal["readiness"] = "readiness"
    grant_id: str
    score: int | None = None
    missing: list[str] = Field(default_factory=list)
    next_action: str | None = None


class MoveOutput(BaseOutput):
    command: Literal["move"] = "move"
    grant_id: str
    from_stage: str | None = None
    to_stage: str | None = None
    allowed: bool = False
    reason: str | None = None
    gate: str | None = None


class ApproveOutput(BaseOutput):
    command: Literal["approve"] = "approve"
    grant_id: str
    gate: str
    approval_id: str | None = None
    status: str | None = None
    binding: bool = False


class ReviewOutput(BaseOutput):
    command: Literal["review"] = "review"
    grant_id: str
    gate: str
    reviewer: str | None = None
    decision: str | None = None
    status: str | None = None
    binding: bool = False
    text: str | None = None


class AIOutput(BaseOutput):
    command: Literal["ai"] = "ai"
    grant_id: str
    action: str
    text: str | None = None
    saved: bool = False


class ProviderSummary(BaseModel):
    """Summary of a provider for list output."""
    name: str
    description: str
    requires_config: bool = False
    config_keys: list[str] = Field(default_factory=list)


class ProvidersOutput(BaseOutput):
    command: Literal["providers"] = "providers"
    providers: list[ProviderSummary] = Field(default_factory=list)
