"""Tests for the stage graph and the approval gate engine."""

import itertools
from pathlib import Path

import pytest

from grantflow.application.config_models import PipelineConfig
from grantflow.application.stage_gates import StageGateEngine, StageGraph
from grantflow.domain.errors import UnknownGateError
from grantflow.domain.models.approval import ApprovalDecision, ApprovalStatus, Gate
from grantflow.domain.models.stage import TERMINAL_STAGES, Stage, gate_key
from grantflow.domain.models.team import DEFAULT_ROLES, TeamMember
from grantflow.domain.persistence.approval_store import JsonApprovalStore


@pytest.fixture
def engine(store_root: Path) -> StageGateEngine:
    return StageGateEngine.from_config(PipelineConfig(), JsonApprovalStore(store_root))


ALL_PAIRS = list(itertools.permutations(Stage, 2))


class TestStageGraph:
    def test_terminal_stages_have_no_successors(self) -> None:
        for stage in TERMINAL_STAGES:
            assert StageGraph.successors(stage) == ()

    def test_every_live_stage_can_be_deferred(self) -> None:
        for stage in Stage:
            if not stage.is_terminal:
                assert StageGraph.is_edge(stage, Stage.DEFERRED)

    def test_forward_path_visits_every_intermediate_stage(self) -> None:
        hops = StageGraph.shortest_path(Stage.SCOUTED, Stage.SUBMITTED)

        assert hops == [
            (Stage.SCOUTED, Stage.QUALIFYING),
            (Stage.QUALIFYING, Stage.DRAFTING),
            (Stage.DRAFTING, Stage.REVIEW),
            (Stage.REVIEW, Stage.SUBMITTED),
        ]

    def test_no_rework_after_submission(self) -> None:
        assert StageGraph.shortest_path(Stage.SUBMITTED, Stage.DRAFTING) == []

    def test_rework_edges(self) -> None:
        assert StageGraph.is_edge(Stage.REVIEW, Stage.DRAFTING)
        assert StageGraph.is_edge(Stage.QUALIFYING, Stage.SCOUTED)
        assert not StageGraph.is_edge(Stage.AWAITING, Stage.SUBMITTED)


class TestCanAdvance:
    @pytest.mark.parametrize("role", ["director", "board", "hop", "pm", "coord", "comms", "none", None, "intern"])
    def test_ungated_pairs_always_allowed(self, engine: StageGateEngine, role: str | None) -> None:
        """Pairs without a registered gate pass for every role."""
        for from_stage, to_stage in ALL_PAIRS:
            if engine.gate_for(from_stage, to_stage) is None:
                assert engine.can_advance(from_stage, to_stage, role).allowed

    def test_gate_authority_for_every_role(self, engine: StageGateEngine) -> None:
        """Allowed iff the actor's level reaches the gate's level."""
        for gate in engine.gates.values():
            from_value, to_value = gate.key.split("->")
            from_stage, to_stage = Stage(from_value), Stage(to_value)
            for role, spec in engine.roles.items():
                check = engine.can_advance(from_stage, to_stage, role)
                assert check.allowed == (spec.level >= engine.role_level(gate.need)), (gate.key, role)

    def test_pm_denied_drafting_to_review(self, engine: StageGateEngine) -> None:
        check = engine.can_advance(Stage.DRAFTING, Stage.REVIEW, "pm")

        assert not check.allowed
        assert check.gate is not None
        assert check.gate.key == "drafting->review"
        assert check.gate.need == "hop"
        assert check.reason == "Head of Programmes must approve draft for review"

    def test_unknown_role_has_no_authority(self, engine: StageGateEngine) -> None:
        assert not engine.can_advance(Stage.AWAITING, Stage.WON, "intern").allowed

    def test_gate_needing_unregistered_role_admits_nobody(self) -> None:
        engine = StageGateEngine(
            gates={"review->submitted": Gate(key="review->submitted", need="directr", label="Director signs")},
            roles=dict(DEFAULT_ROLES),
        )

        for role in [*DEFAULT_ROLES, None]:
            assert not engine.can_advance(Stage.REVIEW, Stage.SUBMITTED, role).allowed


class TestCheckMove:
    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STAGES, key=lambda s: s.value))
    def test_terminal_stages_are_immutable(self, engine: StageGateEngine, terminal: Stage) -> None:
        for target in Stage:
            if target == terminal:
                continue
            check = engine.check_move(terminal, target, "director")
            assert not check.allowed
            assert "terminal stage" in check.reason

    def test_same_stage_rejected(self, engine: StageGateEngine) -> None:
        check = engine.check_move(Stage.DRAFTING, Stage.DRAFTING, "director")

        assert not check.allowed
        assert check.reason == "Grant is already in Drafting"

    def test_unreachable_target_rejected(self, engine: StageGateEngine) -> None:
        check = engine.check_move(Stage.AWAITING, Stage.SCOUTED, "director")

        assert not check.allowed
        assert check.reason == "No transition path from Awaiting to Scouted"

    def test_multi_hop_move_cannot_skip_a_gate(self, engine: StageGateEngine) -> None:
        """A pm jumping Qualifying -> Review is stopped at the drafting gate."""
        check = engine.check_move(Stage.QUALIFYING, Stage.REVIEW, "pm")

        assert not check.allowed
        assert check.gate.key == "drafting->review"
        assert len(check.hops) == 2

    def test_multi_hop_move_allowed_with_authority(self, engine: StageGateEngine) -> None:
        check = engine.check_move(Stage.SCOUTED, Stage.SUBMITTED, "director")

        assert check.allowed
        assert check.hops[-1] == (Stage.REVIEW, Stage.SUBMITTED)

    def test_approved_gate_lets_lower_role_through(self, engine: StageGateEngine) -> None:
        check = engine.check_move(
            Stage.DRAFTING, Stage.REVIEW, "pm", approved_gates={gate_key(Stage.DRAFTING, Stage.REVIEW)}
        )
        assert check.allowed

    def test_director_vs_pm_on_award(self, engine: StageGateEngine) -> None:
        denied = engine.check_move(Stage.AWAITING, Stage.WON, "pm")
        allowed = engine.check_move(Stage.AWAITING, Stage.WON, "director")

        assert not denied.allowed
        assert denied.reason == "Director must confirm award"
        assert allowed.allowed

    def test_rework_and_deferral_are_ungated(self, engine: StageGateEngine) -> None:
        assert engine.check_move(Stage.REVIEW, Stage.DRAFTING, "coord").allowed
        assert engine.check_move(Stage.AWAITING, Stage.DEFERRED, "none").allowed


class TestRecordApproval:
    def test_pending_opens_single_request(self, engine: StageGateEngine) -> None:
        pete = TeamMember(id="pete", name="Pete", role="pm")

        first = engine.record_approval("dlab", "g1", "drafting->review", ApprovalDecision.PENDING, pete)
        second = engine.record_approval("dlab", "g1", "drafting->review", ApprovalDecision.PENDING, pete)

        assert first.id == second.id
        assert first.requested_by == "pete"
        assert len(engine.approval_store.list_by_grant("dlab", "g1")) == 1

    def test_binding_review_resolves_request(self, engine: StageGateEngine) -> None:
        hana = TeamMember(id="hana", name="Hana", role="hop")

        record = engine.record_approval("dlab", "g1", "drafting->review", ApprovalDecision.APPROVED, hana)

        assert record.status == ApprovalStatus.APPROVED
        assert record.reviews[0].binding
        assert engine.approved_gates("dlab", "g1") == {"drafting->review"}

    def test_advisory_review_keeps_request_open(self, engine: StageGateEngine) -> None:
        pete = TeamMember(id="pete", name="Pete", role="pm")

        record = engine.record_approval("dlab", "g1", "review->submitted", ApprovalDecision.APPROVED, pete)

        assert record.status == ApprovalStatus.PENDING
        assert not record.reviews[0].binding
        assert engine.approved_gates("dlab", "g1") == set()

    def test_rejection_requires_feedback(self, engine: StageGateEngine) -> None:
        alison = TeamMember(id="alison", name="Alison", role="director")

        with pytest.raises(ValueError, match="feedback"):
            engine.record_approval("dlab", "g1", "review->submitted", ApprovalDecision.REJECTED, alison)

    def test_rejection_closes_request(self, engine: StageGateEngine) -> None:
        alison = TeamMember(id="alison", name="Alison", role="director")

        record = engine.record_approval(
            "dlab", "g1", "review->submitted", ApprovalDecision.REJECTED, alison, feedback="Budget unclear"
        )

        assert record.status == ApprovalStatus.REJECTED
        assert engine.open_request("dlab", "g1", "review->submitted") is None

    def test_unknown_gate(self, engine: StageGateEngine) -> None:
        alison = TeamMember(id="alison", name="Alison", role="director")

        with pytest.raises(UnknownGateError) as exc_info:
            engine.record_approval("dlab", "g1", "scouted->won", ApprovalDecision.APPROVED, alison)

        assert "drafting->review" in str(exc_info.value)

    def test_requires_store(self) -> None:
        engine = StageGateEngine.from_config(PipelineConfig())
        alison = TeamMember(id="alison", name="Alison", role="director")

        with pytest.raises(RuntimeError):
            engine.record_approval("dlab", "g1", "awaiting->won", ApprovalDecision.APPROVED, alison)
        assert engine.approved_gates("dlab", "g1") == set()
