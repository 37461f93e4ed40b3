"""Readiness scoring.

Three weighted sub-scores, each in [0, 1]:

- documents (40%): required compliance documents for the funder type
- AI coverage (30%): fit score, research, draft
- metadata (30%): deadline, owner, budget signal

The score reaches 100 only when every sub-score is complete; rounding can
never turn a partial grant into a perfect one.
"""

from typing import Callable

from grantflow.application.config_models import PipelineConfig
from grantflow.domain.constants import UNASSIGNED_OWNER
from grantflow.domain.models.grant import Grant
from grantflow.domain.models.org import ComplianceDoc
from grantflow.domain.models.results import ReadinessResult
from grantflow.domain.models.stage import Stage
from grantflow.domain.models.team import TeamMember

DOC_WEIGHT = 40
AI_WEIGHT = 30
META_WEIGHT = 30


def _present(text: str | None) -> bool:
    return bool(text and text.strip())


def missing_doc_count(
    grant: Grant, compliance_docs: list[ComplianceDoc], pipeline: PipelineConfig
) -> tuple[int, int]:
    """Return (required, missing) document counts for the grant's funder type."""
    required = pipeline.docs_for(grant.funder_type)
    ready_ids = {d.doc_id for d in compliance_docs if d.status.is_ready}
    ready_names = {d.name for d in compliance_docs if d.status.is_ready and d.name}

    missing = 0
    for name in required:
        doc_id = pipeline.doc_map.get(name)
        if (doc_id and doc_id in ready_ids) or name in ready_names:
            continue
        missing += 1
    return len(required), missing


def _owner_assigned(grant: Grant, team: list[TeamMember]) -> bool:
    if grant.owner == UNASSIGNED_OWNER:
        return False
    return any(m.id == grant.owner and not m.is_unassigned for m in team)


def _has_budget(grant: Grant) -> bool:
    table_total = grant.budget_table.total if grant.budget_table else 0
    return grant.ask > 0 or grant.funder_budget > 0 or table_total > 0


def _next_action(grant: Grant, owner_assigned: bool, missing_docs: int) -> str:
    rules: dict[Stage, Callable[[], str]] = {
        Stage.SCOUTED: lambda: "Run a fit score" if owner_assigned else "Assign an owner",
        Stage.QUALIFYING: lambda: (
            "Research the funder" if not _present(grant.ai_research)
            else "Run a fit score" if not _present(grant.ai_fitscore)
            else "Move to drafting"
        ),
        Stage.DRAFTING: lambda: (
            "Submit for review" if grant.has_draft else "Generate a draft proposal"
        ),
        Stage.REVIEW: lambda: (
            f"Upload {missing_docs} missing documents" if missing_docs
            else "Get director sign-off for submission"
        ),
        Stage.SUBMITTED: lambda: (
            "Schedule follow-ups" if not grant.follow_ups
            else "Complete the next follow-up" if any(not f.done for f in grant.follow_ups)
            else "Move to awaiting"
        ),
        Stage.AWAITING: lambda: (
            "Await the funder's decision" if _present(grant.ai_followup)
            else "Draft a follow-up email"
        ),
        Stage.WON: lambda: (
            "Plan reporting for the funder" if _present(grant.ai_winloss)
            else "Run a win analysis"
        ),
        Stage.LOST: lambda: (
            "Record lessons learned" if _present(grant.ai_winloss)
            else "Run a loss analysis"
        ),
        Stage.DEFERRED: lambda: "Revisit at the next funding window",
    }
    return rules[grant.stage]()


def compute_readiness(
    grant: Grant,
    compliance_docs: list[ComplianceDoc],
    team: list[TeamMember],
    pipeline: PipelineConfig,
) -> ReadinessResult:
    """Score how ready a grant is for submission.

    Pure: the inputs are never mutated and identical inputs always give an
    identical result, including the order of ``missing``.

    Args:
        grant: Grant to score
        compliance_docs: The org's compliance document records
        team: The org's team roster
        pipeline: Required-document checklists and the doc-name map

    Returns:
        ReadinessResult with score, missing items and the suggested next action
    """
    missing: list[str] = []

    required, missing_docs = missing_doc_count(grant, compliance_docs, pipeline)
    doc_score = 1.0 if required == 0 else (required - missing_docs) / required
    if missing_docs:
        missing.append(f"{missing_docs} docs missing")

    ai_checks = [
        (_present(grant.ai_fitscore), "No fit score"),
        (_present(grant.ai_research), "No research"),
        (grant.has_draft, "No draft"),
    ]
    owner_assigned = _owner_assigned(grant, team)
    meta_checks = [
        (grant.deadline is not None, "No deadline"),
        (owner_assigned, "Unassigned"),
        (_has_budget(grant), "No budget"),
    ]
    missing.extend(label for ok, label in ai_checks if not ok)
    missing.extend(label for ok, label in meta_checks if not ok)
    ai_score = sum(ok for ok, _ in ai_checks) / len(ai_checks)
    meta_score = sum(ok for ok, _ in meta_checks) / len(meta_checks)

    score = round(doc_score * DOC_WEIGHT + ai_score * AI_WEIGHT + meta_score * META_WEIGHT)
    if min(doc_score, ai_score, meta_score) < 1.0:
        score = min(score, 99)

    return ReadinessResult(
        score=score,
        missing=missing,
        next_action=_next_action(grant, owner_assigned, missing_docs),
    )
