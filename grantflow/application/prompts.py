"""System and user prompt templates per AI action."""

from dataclasses import dataclass

from grantflow.application.context_assembler import AssembledContext
from grantflow.domain.models.ai_request import ActionType, AIRequest
from grantflow.domain.models.grant import Grant
from grantflow.domain.models.stage import Stage
from grantflow.domain.models.team import TeamMember


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """Request shape of one action.

    Attributes:
        system: System prompt (the fact guard is appended at build time)
        max_output_tokens: Output token ceiling
        search_enabled: Whether the provider's web search tool is offered
    """

    system: str
    max_output_tokens: int
    search_enabled: bool = False


DRAFT_SYSTEM = """Grant writer for a South African NPO. Produce a COVER EMAIL then FULL PROPOSAL.

COVER EMAIL: Subject line + 5-8 sentence body. Open with who you are + what you're submitting. One proof point. Close with low-friction next step. Sign off as director.

PROPOSAL: Structured, evidence-based, tailored to this funder. Use EXACT programme costs, director names, impact stats from the context. If grant notes mention a programme type, use that type's budget. If uploaded docs contain RFP guidelines, address them directly.

FORMAT: "COVER EMAIL" heading, then separator, then "PROPOSAL" heading.

NEVER: "I hope this finds you well", "SA has X% unemployment", "we believe/are passionate", invented budget figures.

At the very END of your proposal, include this structured line (the system parses it to set the grant ask):
ASK_RECOMMENDATION: Type [1-7], [count] cohort(s), R[total amount as integer]"""

RESEARCH_SYSTEM = """You are a funder intelligence analyst for a South African NPO. Research this funder and provide actionable insights for a grant applicant.

Provide:
1. Funder overview: what they fund, typical grant size, focus areas
2. Strategic fit: how well this organisation matches what they fund
3. Application tips: what to emphasise, what to avoid
4. Key contacts or application channels if known
5. Relationship strategy: how to approach (cold vs warm)

Use uploaded documents for additional context about the organisation. Reference specific programme types and costs from the org profile when discussing fit."""

FITSCORE_SYSTEM = """You assess how well a South African NPO fits a funding opportunity.

Start your answer with a line of the form:
SCORE: [0-100]

Then give 3-5 short bullets on the strongest alignment points and the biggest gaps, referencing the organisation's programmes and outcomes."""

FOLLOWUP_SYSTEM = """You are a grants coordinator for a South African NPO. Draft a professional follow-up email for this grant application.

The email should:
- Be warm but professional
- Reference the specific grant/proposal submitted
- Include a concrete next step or ask
- Be concise (under 200 words)
- Sign off as the organisation director
- Reference specific details from the uploaded documents or organisation profile if relevant"""

WINLOSS_SYSTEM = """You analyse the outcome of a grant application for a South African NPO.

For a win: what most likely made the application succeed, and what to repeat with this funder and similar funders.
For a loss: the most likely reasons, what to change next time, and whether to reapply.

Be specific to this funder and this organisation. Keep it under 300 words."""

ACTION_SPECS: dict[ActionType, ActionSpec] = {
    ActionType.DRAFT: ActionSpec(DRAFT_SYSTEM, max_output_tokens=3000),
    ActionType.RESEARCH: ActionSpec(RESEARCH_SYSTEM, max_output_tokens=2000, search_enabled=True),
    ActionType.FITSCORE: ActionSpec(FITSCORE_SYSTEM, max_output_tokens=1000),
    ActionType.FOLLOWUP: ActionSpec(FOLLOWUP_SYSTEM, max_output_tokens=1000),
    ActionType.WINLOSS: ActionSpec(WINLOSS_SYSTEM, max_output_tokens=1500),
}


def _money(amount: float) -> str:
    return f"R{amount:,.0f}"


def _grant_lines(action: ActionType, grant: Grant) -> list[str]:
    focus = ", ".join(grant.focus) or "None"
    notes = grant.notes or "None"

    if action == ActionType.DRAFT:
        ask = (
            f"Ask: {_money(grant.ask)}"
            if grant.ask > 0
            else f"Funder budget: ~{_money(grant.funder_budget)} (recommend the best programme type and ask)"
        )
        return [
            f"Grant: {grant.name}",
            f"Funder: {grant.funder}",
            f"Type: {grant.funder_type.value}",
            ask,
            f"Focus: {focus}",
            f"Notes: {notes}",
        ]
    if action == ActionType.RESEARCH:
        return [
            f"Funder: {grant.funder}",
            f"Type: {grant.funder_type.value}",
            f"Grant: {grant.name}",
            f"Ask: {_money(grant.effective_ask)}",
            f"Relationship: {grant.relationship.value}",
            f"Focus areas: {focus}",
            f"Notes: {notes}",
        ]
    if action == ActionType.FOLLOWUP:
        submitted = grant.submitted_on.isoformat() if grant.submitted_on else "Not yet"
        return [
            f"Grant: {grant.name}",
            f"Funder: {grant.funder}",
            f"Stage: {grant.stage.label}",
            f"Ask: {_money(grant.effective_ask)}",
            f"Submitted: {submitted}",
            f"Notes: {notes}",
        ]
    if action == ActionType.WINLOSS:
        return [
            f"Grant: {grant.name}",
            f"Funder: {grant.funder}",
            f"Type: {grant.funder_type.value}",
            f"Outcome: {grant.stage.label}",
            f"Ask: {_money(grant.effective_ask)}",
            f"Relationship: {grant.relationship.value}",
            f"Notes: {notes}",
        ]
    return [
        f"Grant: {grant.name}",
        f"Funder: {grant.funder}",
        f"Type: {grant.funder_type.value}",
        f"Ask: {_money(grant.effective_ask)}",
        f"Geography: {', '.join(grant.geography) or 'None'}",
        f"Focus: {focus}",
        f"Notes: {notes}",
    ]


def build_request(action: ActionType, grant: Grant, context: AssembledContext) -> AIRequest:
    """Combine an action's templates with the grant and assembled context."""
    spec = ACTION_SPECS[action]

    system = spec.system
    if action == ActionType.DRAFT and context.prior_research:
        system += "\n\nUse the funder intelligence below to tailor tone and emphasis."
    system += "\n\n" + context.fact_guard

    user = "Organisation:\n" + context.text + "\n\n" + "\n".join(_grant_lines(action, grant))
    if action == ActionType.DRAFT and context.prior_research:
        user += "\n\n=== FUNDER INTELLIGENCE (from prior research) ===\n" + context.prior_research

    return AIRequest(
        system_prompt=system,
        user_prompt=user,
        search_enabled=spec.search_enabled,
        max_output_tokens=spec.max_output_tokens,
    )


# ---------------------------------------------------------------------------
# Persona review of a pending approval
# ---------------------------------------------------------------------------

REVIEW_CRITERIA: dict[Stage, str] = {
    Stage.QUALIFYING: "Worth pursuing? Funder fit, realistic ask, relationship warmth, strategic value.",
    Stage.DRAFTING: "Enough intel to draft? Do we know what they fund, typical size, process?",
    Stage.REVIEW: (
        "Submission-ready? Budget accurate, programme type correct, docs ready, narrative compelling."
    ),
    Stage.SUBMITTED: "Final check: all docs, clean formatting, justified ask, nothing missing.",
}
DEFAULT_REVIEW_CRITERIA = "Does this stage move make sense?"

REVIEW_RESPONSE_FORMAT = """RESPOND EXACTLY:
DECISION: APPROVE or NEEDS WORK
REASONING: [2-3 sentences in character, specific about what's good or missing]
CONDITIONS: [specific items, or "None"]"""


def build_review_request(
    grant: Grant,
    from_stage: Stage,
    to_stage: Stage,
    reviewer: TeamMember,
    role_label: str,
    docs_ready: int,
    docs_total: int,
    context: AssembledContext,
) -> AIRequest:
    """Ask the model to review a stage move in the voice of a team member.

    The reviewer's ``persona`` text leads the system prompt; members
    without one are introduced by name and role.
    """
    persona = reviewer.persona or f"You are {reviewer.name}, {role_label}."
    system = persona + "\n\n" + context.text + "\n\n" + context.fact_guard

    deadline = grant.deadline.isoformat() if grant.deadline else "Rolling"
    fit = "not scored" if grant.fit_score is None else f"{grant.fit_score}%"
    user = "\n".join(
        [
            f'Review whether "{grant.name}" ({_money(grant.effective_ask)} to {grant.funder}) '
            f'should move from "{from_stage.label}" to "{to_stage.label}".',
            "",
            f"FACTS: {grant.funder_type.value} | {_money(grant.effective_ask)} | Deadline: {deadline} | "
            f"Relationship: {grant.relationship.value} | Fit: {fit} | Docs: {docs_ready}/{docs_total}",
            f"Notes: {grant.notes or 'None'}",
            "",
            f'CRITERIA for "{to_stage.label}":',
            REVIEW_CRITERIA.get(to_stage, DEFAULT_REVIEW_CRITERIA),
            "",
            REVIEW_RESPONSE_FORMAT,
        ]
    )
    return AIRequest(system_prompt=system, user_prompt=user, max_output_tokens=1000)
