"""Pipeline event types for observer pattern notifications."""

from enum import Enum


class GrantEventType(str, Enum):
    """Typed pipeline events; observers double as the audit sink."""

    # Stage lifecycle
    STAGE_MOVED = "stage_moved"
    STAGE_MOVE_DENIED = "stage_move_denied"

    # Approval gates
    APPROVAL_RECORDED = "approval_recorded"

    # AI artifacts
    AI_REQUESTED = "ai_requested"
    ARTIFACT_RECORDED = "artifact_recorded"
