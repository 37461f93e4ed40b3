"""Result models returned by the pipeline instead of raising for business conditions."""

from pydantic import BaseModel, Field

from grantflow.domain.models.approval import ApprovalDecision, ApprovalRecord, Gate
from grantflow.domain.models.grant import Grant
from grantflow.domain.models.stage import Stage


class ReadinessResult(BaseModel):
    """Derived readiness of a grant; never persisted."""

    model_config = {"frozen": True}

    score: int = Field(ge=0, le=100)
    missing: list[str] = Field(default_factory=list)
    next_action: str


class GateCheck(BaseModel):
    """Outcome of checking one transition (or a planned multi-hop move).

    Attributes:
        allowed: Whether the move may proceed
        gate: Gate that blocked the move, if a gate was the reason
        reason: Human-readable reason when not allowed
        hops: Single-hop transitions the move was decomposed into
    """

    model_config = {"frozen": True}

    allowed: bool
    gate: Gate | None = None
    reason: str | None = None
    hops: list[tuple[Stage, Stage]] = Field(default_factory=list)


class StageMoveResult(BaseModel):
    allowed: bool
    grant: Grant
    from_stage: Stage
    to_stage: Stage
    reason: str | None = None
    gate: Gate | None = None


class PersonaReviewResult(BaseModel):
    """Outcome of an AI reviewer speaking for a team member on a gate.

    ``decision`` and ``record`` are None when the AI request failed; the
    failure string is in ``text`` and no review was recorded.
    """

    text: str
    decision: ApprovalDecision | None = None
    record: ApprovalRecord | None = None
