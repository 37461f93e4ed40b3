"""Grant event payload model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from grantflow.domain.events.event_types import GrantEventType
from grantflow.domain.models.stage import Stage

# Metadata keys shown in one-line summaries, in display order
SUMMARY_KEYS = ("action", "gate", "status")


class GrantEvent(BaseModel):
    """Something that happened to one grant.

    ``stage`` is the grant's stage once the operation finished. ``metadata``
    carries the per-type details, e.g. the gate and reason of a denied
    move, or token counts and attempts of an AI request.
    """

    model_config = {"frozen": True}

    event_type: GrantEventType
    org_id: str
    grant_id: str
    timestamp: datetime
    stage: Stage | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def summary(self) -> str:
        """One line, e.g. ``approval_recorded grant=g1 stage=review gate=review->submitted``."""
        parts = [self.event_type.value, f"grant={self.grant_id}"]
        if self.stage:
            parts.append(f"stage={self.stage.value}")
        parts.extend(f"{key}={self.metadata[key]}" for key in SUMMARY_KEYS if key in self.metadata)
        return " ".join(parts)
