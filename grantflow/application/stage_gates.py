"""Stage graph and approval gates.

The graph is an explicit adjacency table of single-hop transitions:

- forward: scouted -> qualifying -> drafting -> review -> submitted -> awaiting,
  awaiting -> won, awaiting -> lost
- rework: qualifying -> scouted, drafting -> qualifying, review -> drafting
- deferral: every non-terminal stage -> deferred

Terminal stages have no outgoing edges. Gates are looked up per single hop,
so a multi-hop move can never skip an intermediate gate.
"""

import logging
import uuid
from collections import deque
from typing import Iterable

from grantflow.application.config_models import PipelineConfig
from grantflow.domain.errors import UnknownGateError
from grantflow.domain.models.approval import (
    ApprovalDecision,
    ApprovalRecord,
    ApprovalStatus,
    Gate,
    Review,
)
from grantflow.domain.models.results import GateCheck
from grantflow.domain.models.stage import TRANSITIONS, Stage, gate_key
from grantflow.domain.models.team import RoleSpec, TeamMember
from grantflow.domain.persistence.protocols import ApprovalStore

logger = logging.getLogger(__name__)

_Hop = tuple[Stage, Stage]


class StageGraph:
    """Allowed single-hop transitions between stages."""

    _EDGES: dict[Stage, tuple[Stage, ...]] = TRANSITIONS

    @classmethod
    def successors(cls, stage: Stage) -> tuple[Stage, ...]:
        return cls._EDGES[stage]

    @classmethod
    def is_edge(cls, from_stage: Stage, to_stage: Stage) -> bool:
        return to_stage in cls._EDGES[from_stage]

    @classmethod
    def shortest_path(cls, from_stage: Stage, to_stage: Stage) -> list[_Hop]:
        """Breadth-first search; returns the hops, or [] when unreachable."""
        if from_stage == to_stage:
            return []
        previous: dict[Stage, Stage] = {}
        queue = deque([from_stage])
        seen = {from_stage}
        while queue:
            current = queue.popleft()
            for nxt in cls._EDGES[current]:
                if nxt in seen:
                    continue
                seen.add(nxt)
                previous[nxt] = current
                if nxt == to_stage:
                    return cls._unwind(previous, from_stage, to_stage)
                queue.append(nxt)
        return []

    @staticmethod
    def _unwind(previous: dict[Stage, Stage], start: Stage, end: Stage) -> list[_Hop]:
        hops: list[_Hop] = []
        node = end
        while node != start:
            hops.append((previous[node], node))
            node = previous[node]
        hops.reverse()
        return hops


class StageGateEngine:
    """Decides whether an actor may move a grant between stages.

    Gates and the role table come from configuration. When an approval
    store is supplied, the engine also records approval requests and
    reviews for gated transitions.
    """

    def __init__(
        self,
        gates: dict[str, Gate],
        roles: dict[str, RoleSpec],
        approval_store: ApprovalStore | None = None,
    ) -> None:
        self.gates = gates
        self.roles = roles
        self.approval_store = approval_store

    @classmethod
    def from_config(
        cls, pipeline: PipelineConfig, approval_store: ApprovalStore | None = None
    ) -> "StageGateEngine":
        gates = {
            key: Gate(key=key, need=g.need, label=g.label)
            for key, g in pipeline.gates.items()
        }
        return cls(gates=gates, roles=dict(pipeline.roles), approval_store=approval_store)

    # -------------------------------------------------------------------------
    # Gate checks
    # -------------------------------------------------------------------------

    def role_level(self, role: str | None) -> int:
        spec = self.roles.get(role or "")
        return spec.level if spec else 0

    def gate_for(self, from_stage: Stage, to_stage: Stage) -> Gate | None:
        return self.gates.get(gate_key(from_stage, to_stage))

    def can_advance(self, from_stage: Stage, to_stage: Stage, actor_role: str | None) -> GateCheck:
        """Check the gate registered on one stage pair.

        A pair with no registered gate is always allowed. Otherwise the
        actor's level must reach the gate's required level. A gate whose
        required role is missing from the role table admits nobody.
        """
        hops = [(from_stage, to_stage)]
        gate = self.gate_for(from_stage, to_stage)
        if gate is None:
            return GateCheck(allowed=True, hops=hops)
        if gate.need not in self.roles:
            logger.warning(f"Gate {gate.key} needs unknown role '{gate.need}'; denying")
            return GateCheck(allowed=False, gate=gate, reason=gate.label, hops=hops)
        if self.role_level(actor_role) >= self.role_level(gate.need):
            return GateCheck(allowed=True, gate=gate, hops=hops)
        return GateCheck(allowed=False, gate=gate, reason=gate.label, hops=hops)

    def plan_move(self, from_stage: Stage, to_stage: Stage) -> list[_Hop]:
        return StageGraph.shortest_path(from_stage, to_stage)

    def check_move(
        self,
        from_stage: Stage,
        to_stage: Stage,
        actor_role: str | None,
        approved_gates: Iterable[str] = (),
    ) -> GateCheck:
        """Check a (possibly multi-hop) move through the stage graph.

        Args:
            from_stage: Current stage
            to_stage: Requested stage
            actor_role: Role key of the actor
            approved_gates: Gate keys already signed off by an authorised
                reviewer; hops on these gates pass regardless of role

        Returns:
            GateCheck for the first denied hop, or an allowed check
            carrying every hop of the planned path
        """
        if from_stage.is_terminal:
            return GateCheck(
                allowed=False,
                reason=f"{from_stage.label} is a terminal stage; the grant cannot be moved",
            )
        if from_stage == to_stage:
            return GateCheck(allowed=False, reason=f"Grant is already in {to_stage.label}")

        hops = self.plan_move(from_stage, to_stage)
        if not hops:
            return GateCheck(
                allowed=False,
                reason=f"No transition path from {from_stage.label} to {to_stage.label}",
            )

        approved = set(approved_gates)
        for hop in hops:
            check = self.can_advance(*hop, actor_role)
            if check.allowed:
                continue
            if check.gate is not None and check.gate.key in approved:
                continue
            return GateCheck(allowed=False, gate=check.gate, reason=check.reason, hops=hops)
        return GateCheck(allowed=True, hops=hops)

    # -------------------------------------------------------------------------
    # Approvals
    # -------------------------------------------------------------------------

    def record_approval(
        self,
        org_id: str,
        grant_id: str,
        gate: str,
        decision: ApprovalDecision,
        reviewer: TeamMember,
        feedback: str | None = None,
    ) -> ApprovalRecord:
        """Open an approval request or record a review on it.

        A PENDING decision opens a request (or returns the one already
        open). APPROVED or REJECTED appends a review; the review resolves
        the request only when the reviewer's role can clear the gate,
        otherwise it is advisory and the request stays pending.

        Raises:
            UnknownGateError: If ``gate`` is not a registered gate key
            ValueError: If a rejection carries no feedback
            StoreError: If the approval store fails
        """
        target = self.gates.get(gate)
        if target is None:
            raise UnknownGateError(gate, sorted(self.gates))
        if self.approval_store is None:
            raise RuntimeError("StageGateEngine has no approval store configured")

        record = self.open_request(org_id, grant_id, gate)
        if record is None:
            record = ApprovalRecord(
                id=uuid.uuid4().hex[:12],
                org_id=org_id,
                grant_id=grant_id,
                gate=gate,
                requested_by=reviewer.id,
            )

        if decision != ApprovalDecision.PENDING:
            binding = target.need in self.roles and (
                self.role_level(reviewer.role) >= self.role_level(target.need)
            )
            review = Review(
                reviewer_id=reviewer.id,
                decision=decision,
                feedback=feedback,
                binding=binding,
            )
            record.reviews = [*record.reviews, review]
            if binding:
                record.status = ApprovalStatus(decision.value)
            logger.info(
                f"Approval {record.id} on {gate} for grant {grant_id}: "
                f"{decision.value} by {reviewer.id} ({'binding' if binding else 'advisory'})"
            )
        else:
            logger.info(f"Approval {record.id} requested on {gate} for grant {grant_id}")

        self.approval_store.save(record)
        return record

    def open_request(self, org_id: str, grant_id: str, gate: str) -> ApprovalRecord | None:
        if self.approval_store is None:
            return None
        for record in self.approval_store.list_by_grant(org_id, grant_id):
            if record.gate == gate and record.is_open:
                return record
        return None

    def approved_gates(self, org_id: str, grant_id: str) -> set[str]:
        """Gate keys with an approved record for this grant."""
        if self.approval_store is None:
            return set()
        return {
            record.gate
            for record in self.approval_store.list_by_grant(org_id, grant_id)
            if record.status == ApprovalStatus.APPROVED
        }
