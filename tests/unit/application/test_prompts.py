"""Tests for per-action request building."""

from datetime import date

from grantflow.application.context_assembler import AssembledContext
from grantflow.application.prompts import ACTION_SPECS, DEFAULT_REVIEW_CRITERIA, build_request, build_review_request
from grantflow.domain.models.ai_request import ActionType
from grantflow.domain.models.stage import Stage
from grantflow.domain.models.team import TeamMember
from tests.fakes import make_grant


class TestBuildRequest:
    def test_research_enables_search(self) -> None:
        request = build_request(ActionType.RESEARCH, make_grant(), AssembledContext(text="Org"))

        assert request.search_enabled
        assert request.max_output_tokens == 2000

    def test_only_research_searches(self) -> None:
        searching = {action for action, spec in ACTION_SPECS.items() if spec.search_enabled}
        assert searching == {ActionType.RESEARCH}

    def test_fact_guard_appended_to_system_prompt(self) -> None:
        context = AssembledContext(text="Org", fact_guard="ONLY USE GIVEN FACTS")

        request = build_request(ActionType.FITSCORE, make_grant(), context)

        assert request.system_prompt.endswith("ONLY USE GIVEN FACTS")
        assert "SCORE: [0-100]" in request.system_prompt

    def test_user_prompt_carries_context_and_grant(self) -> None:
        grant = make_grant(ask=250000, focus=["Youth", "AI"])

        request = build_request(ActionType.FITSCORE, grant, AssembledContext(text="We train coders."))

        assert request.user_prompt.startswith("Organisation:\nWe train coders.\n\n")
        assert "Funder: Acme Foundation" in request.user_prompt
        assert "Ask: R250,000" in request.user_prompt
        assert "Focus: Youth, AI" in request.user_prompt

    def test_draft_without_ask_asks_for_recommendation(self) -> None:
        grant = make_grant(funder_budget=800000)
        context = AssembledContext(text="Org", prior_research="Funder likes cohorts.")

        request = build_request(ActionType.DRAFT, grant, context)

        assert "Funder budget: ~R800,000" in request.user_prompt
        assert request.user_prompt.endswith("Funder likes cohorts.")
        assert "ASK_RECOMMENDATION" in request.system_prompt
        assert request.max_output_tokens == 3000

    def test_followup_mentions_submission(self) -> None:
        grant = make_grant(stage=Stage.AWAITING, submitted_on=date(2026, 5, 4))

        request = build_request(ActionType.FOLLOWUP, grant, AssembledContext(text="Org"))

        assert "Submitted: 2026-05-04" in request.user_prompt
        assert "Stage: Awaiting" in request.user_prompt


class TestBuildReviewRequest:
    def _request(self, grant, from_stage: Stage, to_stage: Stage, persona: str | None = None):
        reviewer = TeamMember(id="hana", name="Hana", role="hop", persona=persona)
        return build_review_request(
            grant, from_stage, to_stage, reviewer, "Head of Programmes", 3, 9, AssembledContext(text="Org")
        )

    def test_unscored_grant_with_rolling_deadline(self) -> None:
        request = self._request(make_grant(ask=120000), Stage.DRAFTING, Stage.REVIEW)

        assert request.system_prompt.startswith("You are Hana, Head of Programmes.\n\nOrg")
        assert "R120,000 to Acme Foundation" in request.user_prompt
        assert "Deadline: Rolling" in request.user_prompt
        assert "Fit: not scored" in request.user_prompt
        assert "Docs: 3/9" in request.user_prompt
        assert "Submission-ready?" in request.user_prompt
        assert request.user_prompt.rstrip().endswith('CONDITIONS: [specific items, or "None"]')
        assert not request.search_enabled

    def test_stage_without_criteria_uses_default(self) -> None:
        grant = make_grant(stage=Stage.AWAITING, deadline=date(2026, 9, 1))

        request = self._request(grant, Stage.AWAITING, Stage.WON, persona="You are Hana. Be practical.")

        assert request.system_prompt.startswith("You are Hana. Be practical.")
        assert "Deadline: 2026-09-01" in request.user_prompt
        assert DEFAULT_REVIEW_CRITERIA in request.user_prompt
