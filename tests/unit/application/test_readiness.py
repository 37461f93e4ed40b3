"""Tests for readiness scoring."""

from datetime import date

import pytest

from grantflow.application.config_models import PipelineConfig
from grantflow.application.readiness import compute_readiness
from grantflow.domain.models.grant import BudgetTable, FollowUp
from grantflow.domain.models.org import ComplianceDoc, ComplianceStatus
from grantflow.domain.models.stage import Stage
from tests.fakes import make_grant

THREE_DOCS = PipelineConfig(
    required_docs={"Foundation": ["PBO Certificate", "NPO Registration", "Audited Financials"]}
)


def _three_valid_docs() -> list[ComplianceDoc]:
    return [
        ComplianceDoc(doc_id="pbo", status=ComplianceStatus.VALID),
        ComplianceDoc(doc_id="npo", status=ComplianceStatus.UPLOADED),
        ComplianceDoc(doc_id="fin1", status=ComplianceStatus.VALID),
    ]


def _complete_grant(**overrides):
    fields = {
        "stage": Stage.DRAFTING,
        "ai_fitscore": "SCORE: 82",
        "ai_research": "Funder prefers youth programmes.",
        "ai_draft": "Proposal text",
        "deadline": date(2026, 12, 1),
        "owner": "pete",
        "ask": 250000,
    }
    fields.update(overrides)
    return make_grant(**fields)


class TestComputeReadiness:
    def test_drafting_grant_without_draft_scores_90(self, team) -> None:
        grant = _complete_grant(ai_draft=None)

        result = compute_readiness(grant, _three_valid_docs(), team, THREE_DOCS)

        assert result.score == 90
        assert result.missing == ["No draft"]
        assert result.next_action == "Generate a draft proposal"

    def test_fully_ready_grant_scores_100(self, team) -> None:
        result = compute_readiness(_complete_grant(), _three_valid_docs(), team, THREE_DOCS)

        assert result.score == 100
        assert result.missing == []
        assert result.next_action == "Submit for review"

    def test_empty_grant(self, team) -> None:
        grant = make_grant()

        result = compute_readiness(grant, [], team, THREE_DOCS)

        assert result.score == 0
        assert result.missing == [
            "3 docs missing",
            "No fit score",
            "No research",
            "No draft",
            "No deadline",
            "Unassigned",
            "No budget",
        ]
        assert result.next_action == "Assign an owner"

    def test_expired_and_missing_docs_do_not_count(self, team) -> None:
        docs = [
            ComplianceDoc(doc_id="pbo", status=ComplianceStatus.EXPIRED),
            ComplianceDoc(doc_id="npo", status=ComplianceStatus.MISSING),
            ComplianceDoc(doc_id="fin1", status=ComplianceStatus.VALID),
        ]

        result = compute_readiness(_complete_grant(), docs, team, THREE_DOCS)

        assert result.missing == ["2 docs missing"]
        assert result.score == round(40 / 3 + 30 + 30)

    def test_near_complete_never_rounds_to_100(self, team) -> None:
        """With 199 of 200 docs the raw score rounds to 100 but is capped."""
        names = [f"Doc {i}" for i in range(200)]
        pipeline = PipelineConfig(required_docs={"Foundation": names}, doc_map={})
        docs = [ComplianceDoc(doc_id=str(i), name=n, status=ComplianceStatus.VALID) for i, n in enumerate(names[:-1])]

        result = compute_readiness(_complete_grant(), docs, team, pipeline)

        assert result.score == 99

    def test_funder_type_without_checklist_counts_docs_complete(self, team) -> None:
        pipeline = PipelineConfig(required_docs={})

        result = compute_readiness(_complete_grant(), [], team, pipeline)

        assert result.score == 100

    def test_default_checklist(self, team, ready_docs) -> None:
        result = compute_readiness(_complete_grant(), ready_docs, team, PipelineConfig())

        assert result.score == 100

    def test_owner_must_be_on_team(self, team) -> None:
        result = compute_readiness(_complete_grant(owner="stranger"), _three_valid_docs(), team, THREE_DOCS)

        assert "Unassigned" in result.missing

    def test_budget_table_counts_as_budget(self, team) -> None:
        grant = _complete_grant(ask=0, budget_table=BudgetTable(total=120000))

        result = compute_readiness(grant, _three_valid_docs(), team, THREE_DOCS)

        assert "No budget" not in result.missing

    def test_deterministic_and_pure(self, team) -> None:
        grant = _complete_grant(ai_research=None, deadline=None)
        docs = _three_valid_docs()
        before = grant.model_dump()

        first = compute_readiness(grant, docs, team, THREE_DOCS)
        second = compute_readiness(grant, docs, team, THREE_DOCS)

        assert first == second
        assert grant.model_dump() == before

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"ai_draft": None},
            {"ai_fitscore": None, "ai_research": None},
            {"owner": "team", "deadline": None},
            {"ask": 0, "funder_budget": 0},
        ],
    )
    def test_score_bounds(self, team, overrides) -> None:
        result = compute_readiness(_complete_grant(**overrides), _three_valid_docs()[:1], team, THREE_DOCS)

        assert 0 <= result.score <= 99


class TestNextAction:
    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"stage": Stage.SCOUTED}, "Run a fit score"),
            ({"stage": Stage.SCOUTED, "owner": "team"}, "Assign an owner"),
            ({"stage": Stage.QUALIFYING, "ai_research": None}, "Research the funder"),
            ({"stage": Stage.QUALIFYING, "ai_fitscore": None}, "Run a fit score"),
            ({"stage": Stage.QUALIFYING}, "Move to drafting"),
            ({"stage": Stage.REVIEW}, "Get director sign-off for submission"),
            ({"stage": Stage.SUBMITTED}, "Schedule follow-ups"),
            (
                {"stage": Stage.SUBMITTED, "follow_ups": [FollowUp(date=date(2026, 1, 1), label="Status check")]},
                "Complete the next follow-up",
            ),
            ({"stage": Stage.AWAITING}, "Draft a follow-up email"),
            ({"stage": Stage.WON}, "Run a win analysis"),
            ({"stage": Stage.LOST, "ai_winloss": "Lessons"}, "Record lessons learned"),
            ({"stage": Stage.DEFERRED}, "Revisit at the next funding window"),
        ],
    )
    def test_next_action_by_stage(self, team, overrides, expected) -> None:
        result = compute_readiness(_complete_grant(**overrides), _three_valid_docs(), team, THREE_DOCS)

        assert result.next_action == expected

    def test_review_with_missing_docs(self, team) -> None:
        result = compute_readiness(_complete_grant(stage=Stage.REVIEW), [], team, THREE_DOCS)

        assert result.next_action == "Upload 3 missing documents"
