"""Storing AI replies on a grant and reading the structured lines they carry."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from grantflow.application.gateway import is_ai_error
from grantflow.domain.constants import MAX_ARTIFACT_HISTORY
from grantflow.domain.models.ai_request import ActionType
from grantflow.domain.models.approval import ApprovalDecision
from grantflow.domain.models.grant import ArtifactVersion, AskSource, Grant

logger = logging.getLogger(__name__)

_ASK_RE = re.compile(
    r"ASK_RECOMMENDATION:\s*Type\s*(\d),\s*(\d+)\s*cohort(?:\(s\)|s)?,\s*R\s?([\d,]+)",
    re.IGNORECASE,
)
_SCORE_RE = re.compile(r"SCORE:\s*(\d+)")

# Programme types referenced by the draft prompt
PROGRAMME_TYPES = range(1, 8)


@dataclass(frozen=True, slots=True)
class ArtifactField:
    """Where an action's reply lives on the grant."""

    text: str
    timestamp: str
    history: str | None
    log_text: str


ARTIFACT_FIELDS: dict[ActionType, ArtifactField] = {
    ActionType.DRAFT: ArtifactField("ai_draft", "ai_draft_at", "draft_history", "Draft proposal generated"),
    ActionType.RESEARCH: ArtifactField(
        "ai_research", "ai_research_at", "research_history", "Funder research completed"
    ),
    ActionType.FITSCORE: ArtifactField("ai_fitscore", "ai_fitscore_at", "fitscore_history", "Fit score run"),
    ActionType.FOLLOWUP: ArtifactField("ai_followup", "ai_followup_at", None, "Follow-up email drafted"),
    ActionType.WINLOSS: ArtifactField("ai_winloss", "ai_winloss_at", None, "Win/loss analysis completed"),
}


@dataclass(frozen=True, slots=True)
class AskRecommendation:
    programme_type: int
    cohorts: int
    amount: int


def parse_ask_recommendation(text: str | None) -> AskRecommendation | None:
    """Read the ``ASK_RECOMMENDATION:`` line a draft ends with.

    Returns None when the line is absent, names an unknown programme type
    or carries a zero amount.
    """
    if not text:
        return None
    match = _ASK_RE.search(text)
    if match is None:
        return None
    programme_type = int(match.group(1))
    amount = int(match.group(3).replace(",", ""))
    if programme_type not in PROGRAMME_TYPES or amount <= 0:
        return None
    return AskRecommendation(programme_type=programme_type, cohorts=int(match.group(2)), amount=amount)


def parse_fit_score(text: str | None) -> int | None:
    """Read ``SCORE: <n>`` from a fit-score reply, capped at 100."""
    if not text:
        return None
    match = _SCORE_RE.search(text)
    if match is None:
        return None
    return min(int(match.group(1)), 100)


def record_artifact(
    grant: Grant, action: ActionType, text: str, now: datetime | None = None
) -> bool:
    """Store an AI reply on the grant.

    Failure strings from the gateway are ignored so a failed request never
    overwrites a good artifact. The previous value moves into the bounded
    history (oldest dropped). A draft that recommends an ask sets the
    grant's ask when none was committed; a fit score reply sets
    ``fit_score`` from its ``SCORE:`` line.

    Returns:
        True if the grant was changed
    """
    if is_ai_error(text):
        logger.info(f"Not recording {action.value} for grant {grant.id}: {text[:80]!r}")
        return False

    now = now or datetime.now(timezone.utc)
    spec = ARTIFACT_FIELDS[action]

    previous = getattr(grant, spec.text)
    if spec.history and previous:
        previous_at = getattr(grant, spec.timestamp) or now
        history = [*getattr(grant, spec.history), ArtifactVersion(at=previous_at, text=previous)]
        setattr(grant, spec.history, history[-MAX_ARTIFACT_HISTORY:])

    setattr(grant, spec.text, text)
    setattr(grant, spec.timestamp, now)
    grant.append_log(spec.log_text, on=now.date())

    if action == ActionType.FITSCORE:
        grant.fit_score = parse_fit_score(text)
        if grant.fit_score is not None:
            grant.append_log(f"Fit score: {grant.fit_score}%", on=now.date())

    if action == ActionType.DRAFT and grant.ask == 0:
        recommendation = parse_ask_recommendation(text)
        if recommendation is not None:
            grant.ask = recommendation.amount
            grant.ask_source = AskSource.AI_RECOMMENDED
            grant.append_log(f"Ask set to R{recommendation.amount:,} (AI recommendation)", on=now.date())
    return True


def parse_review_decision(text: str | None) -> ApprovalDecision | None:
    """Read the ``DECISION:`` of a persona review.

    APPROVE counts only when the reply never says NEEDS WORK. Failure
    strings from the gateway give None so no review is recorded.
    """
    if is_ai_error(text):
        return None
    if "APPROVE" in text and "NEEDS WORK" not in text:
        return ApprovalDecision.APPROVED
    return ApprovalDecision.REJECTED
