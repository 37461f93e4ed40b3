import logging
import uuid
from pathlib import Path

import click
from pydantic import BaseModel

from grantflow.application.config_loader import load_config
from grantflow.application.config_models import GrantflowConfig
from grantflow.domain.constants import DEFAULT_STORE_ROOT
from grantflow.domain.models.ai_request import ActionType
from grantflow.domain.models.approval import ApprovalDecision
from grantflow.domain.models.grant import FunderType, Grant, Relationship
from grantflow.domain.models.stage import Stage
from grantflow.domain.models.team import TeamMember
from grantflow.interface.cli.output_models import (
    AddOutput,
    AIOutput,
    ApproveOutput,
    GrantSummary,
    ListOutput,
    MoveOutput,
    ProviderSummary,
    ProvidersOutput,
    ReadinessOutput,
    ReviewOutput,
    ShowOutput,
)

logger = logging.getLogger(__name__)

# Exit code for a stage move refused by the gate engine
EXIT_MOVE_DENIED = 2


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields.
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _format_error(e: Exception) -> str:
    """Format exception into a one-line user-facing message."""
    if isinstance(e, KeyError):
        return str(e.args[0]) if e.args else str(e)
    return str(e).splitlines()[0] if str(e) else type(e).__name__


def _fail(ctx: click.Context, output: BaseModel, e: Exception) -> None:
    """Report an error in the active output mode and exit with code 1."""
    message = _format_error(e)
    if _get_json_mode(ctx):
        _json_emit(output.model_copy(update={"exit_code": 1, "error": message}))
        raise click.exceptions.Exit(1)
    raise click.ClickException(message) from e


def _load_config(ctx: click.Context) -> GrantflowConfig:
    return load_config(
        project_root=Path.cwd(),
        user_home=Path.home(),
        overrides=ctx.obj.get("overrides"),
    )


def _orchestrator(ctx: click.Context, events: bool = False):
    from grantflow.application.pipeline_orchestrator import PipelineOrchestrator
    from grantflow.domain.events.audit_observer import JsonlAuditObserver
    from grantflow.domain.events.emitter import GrantEventEmitter

    cfg = _load_config(ctx)
    event_emitter = GrantEventEmitter()
    event_emitter.subscribe(JsonlAuditObserver(cfg.store_root or DEFAULT_STORE_ROOT))
    if events:
        from grantflow.domain.events.stderr_observer import StderrEventObserver
        event_emitter.subscribe(StderrEventObserver())
    return PipelineOrchestrator.from_config(cfg, event_emitter=event_emitter)


def _find_member(orchestrator, org_id: str, member_id: str) -> TeamMember:
    for member in orchestrator.team_store.list_team(org_id):
        if member.id == member_id:
            return member
    raise click.ClickException(f"Team member '{member_id}' not found in org '{org_id}'")


@click.group(help="Grant pipeline CLI.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.option("--store-root", type=click.Path(path_type=Path), help="Store root directory.")
@click.option("--org", type=str, help="Organisation id.")
@click.option("--provider", type=str, help="AI provider key.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    store_root: Path | None,
    org: str | None,
    provider: str | None,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["overrides"] = {
        "store_root": str(store_root) if store_root else None,
        "org": org,
        "provider": provider,
    }


@cli.command("add")
@click.option("--name", required=True, type=str)
@click.option("--funder", required=True, type=str)
@click.option(
    "--funder-type",
    "funder_type",
    required=True,
    type=click.Choice([t.value for t in FunderType]),
)
@click.option("--id", "grant_id", type=str, help="Grant id (generated when omitted).")
@click.option("--ask", type=float, default=0)
@click.option("--funder-budget", "funder_budget", type=float, default=0)
@click.option("--deadline", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--owner", type=str)
@click.option("--priority", type=int, default=3)
@click.option(
    "--relationship",
    type=click.Choice([r.value for r in Relationship]),
    default=Relationship.COLD.value,
)
@click.option("--focus", multiple=True)
@click.option("--geography", multiple=True)
@click.option("--notes", type=str, default="")
@click.pass_context
def add_cmd(
    ctx: click.Context,
    name: str,
    funder: str,
    funder_type: str,
    grant_id: str | None,
    ask: float,
    funder_budget: float,
    deadline,
    owner: str | None,
    priority: int,
    relationship: str,
    focus: tuple[str, ...],
    geography: tuple[str, ...],
    notes: str,
) -> None:
    """Create a grant in the Scouted stage."""
    try:
        from grantflow.domain.persistence.grant_store import JsonGrantStore

        cfg = _load_config(ctx)
        store = JsonGrantStore(cfg.store_root or DEFAULT_STORE_ROOT)
        grant_id = grant_id or uuid.uuid4().hex[:8]
        if store.exists(cfg.org, grant_id):
            raise ValueError(f"Grant '{grant_id}' already exists")

        grant = Grant(
            id=grant_id,
            org_id=cfg.org,
            name=name,
            funder=funder,
            funder_type=FunderType(funder_type),
            ask=ask,
            funder_budget=funder_budget,
            deadline=deadline.date() if deadline else None,
            owner=owner,
            priority=priority,
            relationship=Relationship(relationship),
            focus=list(focus),
            geography=list(geography),
            notes=notes,
        )
        grant.append_log("Grant added")
        store.save(grant)
        logger.info(f"Created grant {grant.id} for org {cfg.org}")

        if _get_json_mode(ctx):
            _json_emit(AddOutput(exit_code=0, grant_id=grant.id))
            raise click.exceptions.Exit(0)
        click.echo(grant.id)
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, AddOutput(exit_code=1), e)


@cli.command("list")
@click.option("--stage", type=click.Choice([s.value for s in Stage]), help="Only grants in this stage.")
@click.pass_context
def list_cmd(ctx: click.Context, stage: str | None) -> None:
    """List the org's grants."""
    try:
        from grantflow.domain.persistence.grant_store import JsonGrantStore

        cfg = _load_config(ctx)
        grants = JsonGrantStore(cfg.store_root or DEFAULT_STORE_ROOT).list_by_org(cfg.org)
        if stage:
            grants = [g for g in grants if g.stage == Stage(stage)]
        grants.sort(key=lambda g: (g.priority, g.deadline is None, g.deadline or g.created_at.date()))

        summaries = [
            GrantSummary(
                grant_id=g.id,
                name=g.name,
                funder=g.funder,
                stage=g.stage.value,
                priority=g.priority,
                owner=g.owner,
                ask=g.effective_ask,
                deadline=g.deadline.isoformat() if g.deadline else None,
            )
            for g in grants
        ]

        if _get_json_mode(ctx):
            _json_emit(ListOutput(exit_code=0, grants=summaries, total=len(summaries)))
            raise click.exceptions.Exit(0)

        if not summaries:
            click.echo("No grants found.")
            return
        click.echo(f"{'ID':<10} {'STAGE':<11} {'P':<2} {'DEADLINE':<11} {'ASK':>12}  NAME")
        for s in summaries:
            click.echo(
                f"{s.grant_id:<10} {s.stage:<11} {s.priority:<2} "
                f"{s.deadline or '-':<11} {s.ask:>12,.0f}  {s.name}"
            )
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, ListOutput(exit_code=1), e)


@cli.command("show")
@click.argument("grant_id", type=str)
@click.pass_context
def show_cmd(ctx: click.Context, grant_id: str) -> None:
    """Show one grant with its activity log."""
    try:
        from grantflow.domain.persistence.grant_store import JsonGrantStore

        cfg = _load_config(ctx)
        grant = JsonGrantStore(cfg.store_root or DEFAULT_STORE_ROOT).get(cfg.org, grant_id)

        if _get_json_mode(ctx):
            _json_emit(ShowOutput(exit_code=0, grant_id=grant_id, grant=grant.model_dump(mode="json")))
            raise click.exceptions.Exit(0)

        click.echo(f"{grant.name} ({grant.id})")
        click.echo(f"funder={grant.funder} type={grant.funder_type.value}")
        click.echo(f"stage={grant.stage.value} priority={grant.priority} owner={grant.owner}")
        fit = "-" if grant.fit_score is None else f"{grant.fit_score}%"
        click.echo(f"ask={grant.effective_ask:,.0f} deadline={grant.deadline or '-'} fit={fit}")
        for entry in grant.log:
            click.echo(f"  {entry.date.isoformat()}  {entry.text}")
        for follow_up in grant.follow_ups:
            mark = "x" if follow_up.done else " "
            click.echo(f"  [{mark}] {follow_up.date.isoformat()}  {follow_up.label}")
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, ShowOutput(exit_code=1, grant_id=grant_id), e)


@cli.command("readiness")
@click.argument("grant_id", type=str)
@click.pass_context
def readiness_cmd(ctx: click.Context, grant_id: str) -> None:
    """Score how ready a grant is for submission."""
    try:
        orchestrator = _orchestrator(ctx)
        grant = orchestrator.grant_store.get(orchestrator.config.org, grant_id)
        result = orchestrator.compute_readiness(grant)

        if _get_json_mode(ctx):
            _json_emit(
                ReadinessOutput(
                    exit_code=0,
                    grant_id=grant_id,
                    score=result.score,
                    missing=result.missing,
                    next_action=result.next_action,
                )
            )
            raise click.exceptions.Exit(0)

        click.echo(f"score={result.score}")
        click.echo(f"next_action={result.next_action}")
        for item in result.missing:
            click.echo(f"missing: {item}")
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, ReadinessOutput(exit_code=1, grant_id=grant_id), e)


@cli.command("move")
@click.argument("grant_id", type=str)
@click.argument("to_stage", type=click.Choice([s.value for s in Stage]))
@click.option("--actor", type=str, help="Team member id performing the move.")
@click.option("--role", type=str, help="Role of the actor (overrides the member's role).")
@click.option("--events", is_flag=True, help="Emit pipeline events to stderr.")
@click.pass_context
def move_cmd(
    ctx: click.Context,
    grant_id: str,
    to_stage: str,
    actor: str | None,
    role: str | None,
    events: bool,
) -> None:
    """Move a grant to another stage, subject to approval gates."""
    try:
        if not actor and not role:
            raise click.UsageError("Provide --actor or --role")

        orchestrator = _orchestrator(ctx, events=events)
        grant = orchestrator.grant_store.get(orchestrator.config.org, grant_id)
        if role is None:
            role = _find_member(orchestrator, grant.org_id, actor).role

        result = orchestrator.attempt_stage_move(grant, Stage(to_stage), role)
        exit_code = 0 if result.allowed else EXIT_MOVE_DENIED

        if _get_json_mode(ctx):
            _json_emit(
                MoveOutput(
                    exit_code=exit_code,
                    grant_id=grant_id,
                    from_stage=result.from_stage.value,
                    to_stage=result.to_stage.value,
                    allowed=result.allowed,
                    reason=result.reason,
                    gate=result.gate.key if result.gate else None,
                )
            )
            raise click.exceptions.Exit(exit_code)

        if result.allowed:
            click.echo(f"{grant_id}: {result.from_stage.value} -> {result.to_stage.value}")
            return
        click.echo(f"denied: {result.reason}", err=True)
        raise click.exceptions.Exit(EXIT_MOVE_DENIED)
    except click.exceptions.Exit:
        raise
    except click.UsageError:
        raise
    except Exception as e:
        _fail(ctx, MoveOutput(exit_code=1, grant_id=grant_id), e)


@cli.command("approve")
@click.argument("grant_id", type=str)
@click.argument("gate", type=str)
@click.option("--reviewer", required=True, type=str, help="Team member id of the reviewer.")
@click.option(
    "--decision",
    type=click.Choice([d.value for d in ApprovalDecision]),
    default=ApprovalDecision.APPROVED.value,
    show_default=True,
)
@click.option("--feedback", type=str, help="Required when rejecting.")
@click.option("--events", is_flag=True, help="Emit pipeline events to stderr.")
@click.pass_context
def approve_cmd(
    ctx: click.Context,
    grant_id: str,
    gate: str,
    reviewer: str,
    decision: str,
    feedback: str | None,
    events: bool,
) -> None:
    """Request, approve or reject sign-off on a gate (e.g. drafting->review)."""
    try:
        orchestrator = _orchestrator(ctx, events=events)
        grant = orchestrator.grant_store.get(orchestrator.config.org, grant_id)
        member = _find_member(orchestrator, grant.org_id, reviewer)

        record = orchestrator.record_approval(
            grant, gate, ApprovalDecision(decision), member, feedback
        )
        binding = bool(record.reviews) and record.reviews[-1].binding and decision != "pending"

        if _get_json_mode(ctx):
            _json_emit(
                ApproveOutput(
                    exit_code=0,
                    grant_id=grant_id,
                    gate=gate,
                    approval_id=record.id,
                    status=record.status.value,
                    binding=binding,
                )
            )
            raise click.exceptions.Exit(0)

        click.echo(f"approval={record.id} gate={gate} status={record.status.value}")
        if decision != "pending" and not binding:
            click.echo("note: reviewer cannot clear this gate; review recorded as advisory")
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, ApproveOutput(exit_code=1, grant_id=grant_id, gate=gate), e)


@cli.command("review")
@click.argument("grant_id", type=str)
@click.argument("gate", type=str)
@click.option("--reviewer", required=True, type=str, help="Team member id the AI speaks for.")
@click.option("--events", is_flag=True, help="Emit pipeline events to stderr.")
@click.pass_context
def review_cmd(ctx: click.Context, grant_id: str, gate: str, reviewer: str, events: bool) -> None:
    """Have the AI review a gate in a team member's voice and record the decision."""
    try:
        orchestrator = _orchestrator(ctx, events=events)
        grant = orchestrator.grant_store.get(orchestrator.config.org, grant_id)
        member = _find_member(orchestrator, grant.org_id, reviewer)

        result = orchestrator.review_approval(grant, gate, member)
        record = result.record
        exit_code = 1 if record is None else 0

        if _get_json_mode(ctx):
            _json_emit(
                ReviewOutput(
                    exit_code=exit_code,
                    grant_id=grant_id,
                    gate=gate,
                    reviewer=reviewer,
                    decision=result.decision.value if result.decision else None,
                    status=record.status.value if record else None,
                    binding=bool(record and record.reviews[-1].binding),
                    text=result.text,
                    error=result.text if record is None else None,
                )
            )
            raise click.exceptions.Exit(exit_code)

        click.echo(result.text)
        if record is None:
            raise click.exceptions.Exit(1)
        click.echo(f"approval={record.id} gate={gate} status={record.status.value}")
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, ReviewOutput(exit_code=1, grant_id=grant_id, gate=gate), e)


@cli.command("ai")
@click.argument("grant_id", type=str)
@click.argument("action", type=click.Choice([a.value for a in ActionType]))
@click.option("--save/--no-save", default=False, help="Store the reply on the grant.")
@click.option("--events", is_flag=True, help="Emit pipeline events to stderr.")
@click.pass_context
def ai_cmd(ctx: click.Context, grant_id: str, action: str, save: bool, events: bool) -> None:
    """Run an AI action (draft, research, fitscore, followup, winloss) for a grant."""
    try:
        from grantflow.application.gateway import is_ai_error

        orchestrator = _orchestrator(ctx, events=events)
        grant = orchestrator.grant_store.get(orchestrator.config.org, grant_id)
        text = orchestrator.run_ai_action(grant, ActionType(action), save=save)
        failed = is_ai_error(text)
        exit_code = 1 if failed else 0

        if _get_json_mode(ctx):
            _json_emit(
                AIOutput(
                    exit_code=exit_code,
                    grant_id=grant_id,
                    action=action,
                    text=text,
                    saved=save and not failed,
                    error=text if failed else None,
                )
            )
            raise click.exceptions.Exit(exit_code)

        click.echo(text)
        if failed:
            raise click.exceptions.Exit(1)
    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, AIOutput(exit_code=1, grant_id=grant_id, action=action), e)


@cli.command("providers")
@click.pass_context
def providers_cmd(ctx: click.Context) -> None:
    """List available AI providers."""
    from grantflow.domain.providers import ProviderFactory

    summaries = []
    for key in ProviderFactory.list_providers():
        metadata = ProviderFactory.get_metadata(key) or {}
        summaries.append(
            ProviderSummary(
                name=key,
                description=metadata.get("description", ""),
                requires_config=metadata.get("requires_config", False),
                config_keys=metadata.get("config_keys", []),
            )
        )

    if _get_json_mode(ctx):
        _json_emit(ProvidersOutput(exit_code=0, providers=summaries))
        raise click.exceptions.Exit(0)

    for s in summaries:
        click.echo(f"{s.name:<12} {s.description}")
