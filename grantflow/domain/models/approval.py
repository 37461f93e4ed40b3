"""Approval gates and approval records.

A gate is a rule on a stage transition. An approval record is the persisted
request/decision pair used when the requester cannot clear the gate alone.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Gate(BaseModel):
    """Minimum role needed to authorise one stage transition."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str
    need: str
    label: str


class ApprovalDecision(str, Enum):
    """Decision carried by a single review.

    PENDING is only used to open a request; a review is either
    APPROVED or REJECTED.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Review(BaseModel):
    """One reviewer's decision on an approval request."""

    model_config = ConfigDict(extra="forbid")

    reviewer_id: str
    decision: ApprovalDecision
    feedback: str | None = None
    binding: bool = False
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _validate_rejection_has_feedback(self) -> "Review":
        """Ensure rejected decisions include meaningful feedback."""
        if self.decision == ApprovalDecision.PENDING:
            raise ValueError("A review must approve or reject")
        if self.decision == ApprovalDecision.REJECTED:
            if self.feedback is None:
                raise ValueError("Rejection requires feedback explaining why")
            if not self.feedback.strip():
                raise ValueError("Rejection feedback cannot be empty or whitespace")
        return self


class ApprovalRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    org_id: str
    grant_id: str
    gate: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    requested_by: str | None = None
    reviews: list[Review] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_open(self) -> bool:
        return self.status == ApprovalStatus.PENDING
