"""Pipeline orchestration: the single façade the CLI talks to.

Business conditions (gate denials, missing documents, AI failures) come
back as values. Only store failures propagate as exceptions.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from grantflow.application.artifacts import parse_review_decision, record_artifact
from grantflow.application.config_models import CadenceStep, GrantflowConfig
from grantflow.application.context_assembler import AssembledContext, assemble
from grantflow.application.gateway import AIGatewayClient, GatewayReply
from grantflow.application.prompts import build_request, build_review_request
from grantflow.application.readiness import compute_readiness, missing_doc_count
from grantflow.application.stage_gates import StageGateEngine
from grantflow.application.upload_cache import UploadContextCache
from grantflow.domain.constants import DEFAULT_STORE_ROOT
from grantflow.domain.events.emitter import GrantEventEmitter
from grantflow.domain.events.event import GrantEvent
from grantflow.domain.errors import UnknownGateError
from grantflow.domain.events.event_types import GrantEventType
from grantflow.domain.models.ai_request import ActionType, AIRequest
from grantflow.domain.models.approval import ApprovalDecision, ApprovalRecord
from grantflow.domain.models.grant import FollowUp, Grant
from grantflow.domain.models.results import PersonaReviewResult, ReadinessResult, StageMoveResult
from grantflow.domain.models.stage import Stage, parse_gate_key
from grantflow.domain.models.team import TeamMember
from grantflow.domain.persistence.approval_store import JsonApprovalStore
from grantflow.domain.persistence.grant_store import JsonGrantStore
from grantflow.domain.persistence.org_store import JsonOrgStore
from grantflow.domain.persistence.protocols import (
    ComplianceDocStore,
    GrantStore,
    OrgProfileStore,
    TeamStore,
    UploadStore,
)
from grantflow.domain.providers.ai_provider import AIProvider
from grantflow.domain.providers.provider_factory import ProviderFactory

logger = logging.getLogger(__name__)

# Prompt excerpt kept in audit events
PROMPT_SUMMARY_CHARS = 200


def schedule_follow_ups(grant: Grant, cadence: list[CadenceStep], submitted_on: date) -> list[FollowUp]:
    """Append the funder type's follow-up cadence, counted from submission."""
    scheduled = [
        FollowUp(date=submitted_on + timedelta(days=step.days), label=step.label, kind=step.kind)
        for step in cadence
    ]
    grant.follow_ups = [*grant.follow_ups, *scheduled]
    return scheduled


@dataclass
class PipelineOrchestrator:
    """Coordinates the stage-gate engine, readiness scorer and AI gateway.

    The upload cache belongs to the orchestrator instance, so its lifetime
    is that of one CLI invocation or one test.
    """

    config: GrantflowConfig
    grant_store: GrantStore
    engine: StageGateEngine
    gateway: AIGatewayClient
    profile_store: OrgProfileStore
    compliance_store: ComplianceDocStore
    upload_store: UploadStore
    team_store: TeamStore
    event_emitter: GrantEventEmitter | None = None
    upload_cache: UploadContextCache = field(default_factory=UploadContextCache)
    today: Callable[[], date] = date.today

    def __post_init__(self) -> None:
        if self.event_emitter is None:
            self.event_emitter = GrantEventEmitter()

    @classmethod
    def from_config(
        cls,
        config: GrantflowConfig,
        *,
        provider: AIProvider | None = None,
        event_emitter: GrantEventEmitter | None = None,
    ) -> "PipelineOrchestrator":
        """Wire the JSON file stores and the configured provider.

        Raises:
            KeyError: If the configured provider is not registered
        """
        root: Path = config.store_root or DEFAULT_STORE_ROOT
        org_store = JsonOrgStore(root)
        approval_store = JsonApprovalStore(root)
        if provider is None:
            provider = ProviderFactory.create(config.provider, config.provider_config())
        gateway = AIGatewayClient(
            provider,
            max_retries=config.gateway.max_retries,
            ceiling_seconds=config.gateway.ceiling_seconds,
            attempt_timeout=config.gateway.attempt_timeout_seconds,
        )
        return cls(
            config=config,
            grant_store=JsonGrantStore(root),
            engine=StageGateEngine.from_config(config.pipeline, approval_store),
            gateway=gateway,
            profile_store=org_store,
            compliance_store=org_store,
            upload_store=org_store,
            team_store=org_store,
            event_emitter=event_emitter,
        )

    # ========================================================================
    # AI artifacts
    # ========================================================================

    def request_ai_artifact(self, grant: Grant, action: ActionType) -> str:
        """Assemble context, call the gateway and return the raw reply text.

        Nothing is persisted; see ``run_ai_action`` for the storing variant.
        """
        context = self._assemble(grant, action)
        request = build_request(action, grant, context)
        return self._send(grant, action.value, request, context).text

    def _assemble(self, grant: Grant, action: ActionType) -> AssembledContext:
        uploads = self.upload_cache.get_or_load(
            (grant.org_id, grant.id),
            lambda: self.upload_store.get_context(grant.org_id, grant.id),
        )
        return assemble(
            action,
            grant,
            self.profile_store.get(grant.org_id),
            uploads,
            self.team_store.list_team(grant.org_id),
            self.config.context,
        )

    def _send(
        self, grant: Grant, label: str, request: AIRequest, context: AssembledContext
    ) -> GatewayReply:
        started = time.monotonic()
        reply = self.gateway.send(request)
        duration_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            f"AI {label} for grant {grant.id}: "
            f"{'ok' if reply.ok else 'failed'} after {reply.attempts} attempt(s)"
        )
        self._emit(
            GrantEventType.AI_REQUESTED,
            grant,
            action=label,
            prompt_summary=request.user_prompt[:PROMPT_SUMMARY_CHARS],
            result_summary=reply.text[:PROMPT_SUMMARY_CHARS],
            tokens_in=reply.response.input_tokens if reply.response else 0,
            tokens_out=reply.response.output_tokens if reply.response else 0,
            duration_ms=duration_ms,
            attempts=reply.attempts,
            success=reply.ok,
            context_trimmed=context.trimmed,
        )
        return reply

    def run_ai_action(self, grant: Grant, action: ActionType, *, save: bool = True) -> str:
        """Request an artifact and, on success, record it on the grant."""
        text = self.request_ai_artifact(grant, action)
        if save and record_artifact(grant, action, text, datetime.now(timezone.utc)):
            self.grant_store.save(grant)
            self._emit(GrantEventType.ARTIFACT_RECORDED, grant, action=action.value)
        return text

    def invalidate_uploads(self, org_id: str, grant_id: str | None = None) -> None:
        """Drop cached uploads after an upload changes.

        Without a grant id every entry for the org is dropped, since each
        grant's entry also carries the org-wide uploads.
        """
        if grant_id is None:
            self.upload_cache.invalidate_where(lambda key: key[0] == org_id)
        else:
            self.upload_cache.invalidate((org_id, grant_id))

    # ========================================================================
    # Stage moves
    # ========================================================================

    def attempt_stage_move(self, grant: Grant, to_stage: Stage, actor_role: str | None) -> StageMoveResult:
        """Move a grant through the stage graph if every hop is cleared.

        A hop blocked only by a gate still passes when an approved approval
        record exists for that grant and gate. On success each hop is
        logged as ``"Moved to <Stage>"`` and the grant is saved; on denial
        nothing is saved.
        """
        from_stage = grant.stage
        approved = self.engine.approved_gates(grant.org_id, grant.id)
        check = self.engine.check_move(from_stage, to_stage, actor_role, approved_gates=approved)

        if not check.allowed:
            logger.info(
                f"Move {from_stage.value}->{to_stage.value} denied for grant {grant.id}: {check.reason}"
            )
            self._emit(
                GrantEventType.STAGE_MOVE_DENIED,
                grant,
                to_stage=to_stage.value,
                reason=check.reason,
                gate=check.gate.key if check.gate else None,
            )
            return StageMoveResult(
                allowed=False,
                grant=grant,
                from_stage=from_stage,
                to_stage=to_stage,
                reason=check.reason,
                gate=check.gate,
            )

        today = self.today()
        for _, hop_to in check.hops:
            grant.stage = hop_to
            grant.append_log(f"Moved to {hop_to.label}", on=today)
            if hop_to == Stage.SUBMITTED and grant.submitted_on is None:
                grant.submitted_on = today
                cadence = self.config.pipeline.cadence_for(grant.funder_type)
                schedule_follow_ups(grant, cadence, today)

        self.grant_store.save(grant)
        logger.info(f"Grant {grant.id} moved {from_stage.value}->{to_stage.value}")
        self._emit(
            GrantEventType.STAGE_MOVED,
            grant,
            from_stage=from_stage.value,
            hops=len(check.hops),
        )
        return StageMoveResult(allowed=True, grant=grant, from_stage=from_stage, to_stage=to_stage)

    # ========================================================================
    # Readiness and approvals
    # ========================================================================

    def compute_readiness(self, grant: Grant) -> ReadinessResult:
        """Advisory readiness; never blocks a move."""
        return compute_readiness(
            grant,
            self.compliance_store.list_by_org(grant.org_id),
            self.team_store.list_team(grant.org_id),
            self.config.pipeline,
        )

    def record_approval(
        self,
        grant: Grant,
        gate: str,
        decision: ApprovalDecision,
        reviewer: TeamMember,
        feedback: str | None = None,
    ) -> ApprovalRecord:
        """Open an approval request or record a review on it.

        Opening a new request appends ``"Approval requested: <From> → <To>"``
        to the grant's log.
        """
        opening = self.engine.open_request(grant.org_id, grant.id, gate) is None
        record = self.engine.record_approval(
            grant.org_id, grant.id, gate, decision, reviewer, feedback
        )
        if opening:
            from_stage, to_stage = parse_gate_key(gate)
            grant.append_log(
                f"Approval requested: {from_stage.label} → {to_stage.label}", on=self.today()
            )
            self.grant_store.save(grant)
        self._emit(
            GrantEventType.APPROVAL_RECORDED,
            grant,
            gate=gate,
            decision=decision.value,
            status=record.status.value,
            reviewer=reviewer.id,
        )
        return record

    def review_approval(self, grant: Grant, gate: str, reviewer: TeamMember) -> PersonaReviewResult:
        """Have the AI review a gated move in the voice of ``reviewer``.

        An approval request is opened first when none is pending. The
        reply's ``DECISION:`` line becomes a review by ``reviewer``, binding
        or advisory by the same role rule as a human review; a NEEDS WORK
        reply is recorded as a rejection with the reply as feedback. A
        failed AI request records nothing.

        Raises:
            UnknownGateError: If ``gate`` is not a registered gate key
            StoreError: If a store fails
        """
        if gate not in self.engine.gates:
            raise UnknownGateError(gate, sorted(self.engine.gates))
        self.record_approval(grant, gate, ApprovalDecision.PENDING, reviewer)

        from_stage, to_stage = parse_gate_key(gate)
        required, missing = missing_doc_count(
            grant, self.compliance_store.list_by_org(grant.org_id), self.config.pipeline
        )
        role = self.config.pipeline.roles.get(reviewer.role)
        # Review context uses the default budget without draft-only sections
        context = self._assemble(grant, ActionType.FITSCORE)
        request = build_review_request(
            grant,
            from_stage,
            to_stage,
            reviewer,
            role.label if role else reviewer.role,
            required - missing,
            required,
            context,
        )
        text = self._send(grant, f"review:{gate}", request, context).text

        decision = parse_review_decision(text)
        if decision is None:
            return PersonaReviewResult(text=text)
        record = self.record_approval(grant, gate, decision, reviewer, feedback=text)
        return PersonaReviewResult(text=text, decision=decision, record=record)

    def _emit(self, event_type: GrantEventType, grant: Grant, **metadata: Any) -> None:
        assert self.event_emitter is not None
        self.event_emitter.emit(
            GrantEvent(
                event_type=event_type,
                org_id=grant.org_id,
                grant_id=grant.id,
                timestamp=datetime.now(timezone.utc),
                stage=grant.stage,
                metadata=metadata,
            )
        )
