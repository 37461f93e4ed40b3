"""Builds the character-budgeted organisation context sent with an AI request."""

from dataclasses import dataclass

from grantflow.application.config_models import ContextConfig
from grantflow.domain.models.ai_request import ActionType
from grantflow.domain.models.grant import Grant
from grantflow.domain.models.org import OrgProfile, Upload, UploadContext
from grantflow.domain.models.team import TeamMember

TRIM_MARKER = "\n[...context trimmed for length]"

# Prior research forwarded into a draft request
PRIOR_RESEARCH_CHARS = 2000

FACT_GUARD = """CRITICAL ACCURACY RULES:
- ONLY use facts, names, figures, dates, and programme costs that appear in the organisation context or uploaded documents provided below.
- If specific information is not provided (e.g. a director's full name, exact budget figure, or date), write [TO BE CONFIRMED] rather than inventing it.
- Never fabricate statistics, names, amounts, or achievements not present in the provided context.
- The uploaded documents and organisation profile are your ONLY source of truth. Do not add details that are not in them."""


@dataclass(frozen=True, slots=True)
class AssembledContext:
    """Context for one AI request.

    Attributes:
        text: Organisation context, already capped for the action
        fact_guard: Anti-fabrication instructions for the system prompt
        trimmed: Whether ``text`` was cut to the cap
        prior_research: Earlier funder research (draft requests only)
    """

    text: str
    fact_guard: str = FACT_GUARD
    trimmed: bool = False
    prior_research: str | None = None


def _team_block(team: list[TeamMember]) -> str | None:
    members = [m for m in team if not m.is_unassigned]
    directors = [m for m in members if m.role == "director"]
    staff = [m for m in members if m.role not in ("director", "none")]
    if not directors and not staff:
        return None

    lines = ["=== TEAM ==="]
    if directors:
        lines.append("Directors: " + "; ".join(f"{m.name} ({m.persona or m.role})" for m in directors))
    if staff:
        lines.append(
            "Staff: "
            + "; ".join(
                f"{m.name} - {m.role}" + (f" ({m.persona})" if m.persona else "") for m in staff
            )
        )
    return "\n".join(lines)


def _profile_sections(action: ActionType, profile: OrgProfile, team: list[TeamMember]) -> list[str]:
    sections = []

    team_block = _team_block(team)
    if team_block:
        sections.append(team_block)

    if action == ActionType.DRAFT and profile.programmes:
        sections.append(
            "=== EXACT PROGRAMME COSTS (use these figures) ===\n"
            + "\n".join(f"{p.name}: R{p.cost:,.0f} - {p.description}" for p in profile.programmes)
        )

    if action == ActionType.DRAFT and profile.impact_stats:
        s = profile.impact_stats
        sections.append(
            "=== VERIFIED IMPACT STATS (use these exact numbers) ===\n"
            f"Completion rate: {round(s.completion_rate * 100)}% "
            f"(sector avg: {round(s.sector_average_completion * 100)}%)\n"
            f"Employment rate: {round(s.employment_rate * 100)}% "
            f"within {s.employment_window_months} months\n"
            f"Learners trained: {s.learners_trained or '[TO BE CONFIRMED]'}"
        )

    if profile.tone:
        sections.append(f"TONE: {profile.tone}")
    if profile.anti_patterns:
        sections.append(f"ANTI-PATTERNS: {profile.anti_patterns}")
    if profile.past_funders:
        sections.append(f"PAST FUNDERS: {profile.past_funders}")
    return sections


def _newest_first(uploads: list[Upload]) -> list[Upload]:
    return sorted(
        uploads,
        key=lambda u: u.created_at.timestamp() if u.created_at else float("-inf"),
        reverse=True,
    )


def _upload_section(heading: str, uploads: list[Upload], budget: int, per_document: int) -> list[str]:
    """Excerpts of uploads within a character budget.

    Each document contributes at most ``per_document`` characters and never
    more than what is left of the budget. Once the budget is spent the
    remaining documents are skipped.
    """
    parts = []
    for upload in _newest_first(uploads):
        if budget <= 0:
            break
        if not upload.extracted_text:
            continue
        excerpt = upload.extracted_text[: min(per_document, budget)]
        parts.append(f"[{upload.original_name}]\n{excerpt}")
        budget -= len(excerpt)
    return [heading, *parts] if parts else []


def assemble(
    action: ActionType,
    grant: Grant,
    profile: OrgProfile,
    uploads: UploadContext,
    team: list[TeamMember],
    config: ContextConfig | None = None,
) -> AssembledContext:
    """Assemble the organisation context for one action on one grant.

    Side-effect free; the caller fetches (and caches) the uploads.

    Args:
        action: AI action being requested
        grant: Grant the action is for
        profile: Organisation profile
        uploads: Grant-specific and org-wide uploads
        team: Team roster
        config: Character budgets (defaults apply when None)

    Returns:
        AssembledContext whose text never exceeds the action's cap plus
        the trim marker
    """
    config = config or ContextConfig()
    budget = config.budget_for(action)

    text = profile.context_slim or profile.mission or profile.name or ""

    sections = _profile_sections(action, profile, team)
    if sections:
        text += "\n\n" + "\n\n".join(sections)

    upload_parts = _upload_section(
        "=== GRANT DOCUMENTS ===", uploads.grant_uploads, budget.grant_uploads, config.per_document_chars
    ) + _upload_section(
        "=== ORG KNOWLEDGE BASE ===", uploads.org_uploads, budget.org_uploads, config.per_document_chars
    )
    if upload_parts:
        text += "\n\n" + "\n\n".join(upload_parts)

    trimmed = len(text) > budget.max_chars
    if trimmed:
        text = text[: budget.max_chars] + TRIM_MARKER

    prior_research = None
    if action == ActionType.DRAFT and grant.ai_research:
        prior_research = grant.ai_research[:PRIOR_RESEARCH_CHARS]

    return AssembledContext(text=text, trimmed=trimmed, prior_research=prior_research)
