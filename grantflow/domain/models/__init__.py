"""Domain models for grantflow."""

from .stage import Stage, StageClass, TERMINAL_STAGES, gate_key
from .grant import (
    ArtifactVersion,
    AskSource,
    BudgetLine,
    BudgetTable,
    FollowUp,
    FunderType,
    Grant,
    LogEntry,
    ProposalSection,
    Relationship,
)
from .team import DEFAULT_ROLES, RoleSpec, TeamMember
from .approval import ApprovalDecision, ApprovalRecord, ApprovalStatus, Gate, Review
from .org import (
    ComplianceDoc,
    ComplianceStatus,
    ImpactStats,
    OrgProfile,
    Programme,
    Upload,
    UploadContext,
)
from .ai_request import ActionType, AIRequest, AIResponse
from .results import GateCheck, ReadinessResult, StageMoveResult


__all__ = [
    "Stage",
    "StageClass",
    "TERMINAL_STAGES",
    "gate_key",
    "ArtifactVersion",
    "AskSource",
    "BudgetLine",
    "BudgetTable",
    "FollowUp",
    "FunderType",
    "Grant",
    "LogEntry",
    "ProposalSection",
    "Relationship",
    "DEFAULT_ROLES",
    "RoleSpec",
    "TeamMember",
    "ApprovalDecision",
    "ApprovalRecord",
    "ApprovalStatus",
    "Gate",
    "Review",
    "ComplianceDoc",
    "ComplianceStatus",
    "ImpactStats",
    "OrgProfile",
    "Programme",
    "Upload",
    "UploadContext",
    "ActionType",
    "AIRequest",
    "AIResponse",
    "GateCheck",
    "ReadinessResult",
    "StageMoveResult",
]
