from enum import Enum


class StageClass(str, Enum):
    """Disjoint classes of pipeline stages."""

    PRE_SUBMISSION = "pre_submission"
    POST_SUBMISSION = "post_submission"
    TERMINAL = "terminal"


class Stage(str, Enum):
    """Pipeline position a grant occupies.

    Declaration order is display order only. Allowed moves live in the
    stage graph, not in this ordering.
    """

    SCOUTED = "scouted"
    QUALIFYING = "qualifying"
    DRAFTING = "drafting"
    REVIEW = "review"
    SUBMITTED = "submitted"
    AWAITING = "awaiting"
    WON = "won"
    LOST = "lost"
    DEFERRED = "deferred"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def stage_class(self) -> StageClass:
        return _STAGE_CLASSES[self]

    @property
    def is_terminal(self) -> bool:
        return self.stage_class == StageClass.TERMINAL


_STAGE_CLASSES: dict[Stage, StageClass] = {
    Stage.SCOUTED: StageClass.PRE_SUBMISSION,
    Stage.QUALIFYING: StageClass.PRE_SUBMISSION,
    Stage.DRAFTING: StageClass.PRE_SUBMISSION,
    Stage.REVIEW: StageClass.PRE_SUBMISSION,
    Stage.SUBMITTED: StageClass.POST_SUBMISSION,
    Stage.AWAITING: StageClass.POST_SUBMISSION,
    Stage.WON: StageClass.TERMINAL,
    Stage.LOST: StageClass.TERMINAL,
    Stage.DEFERRED: StageClass.TERMINAL,
}

TERMINAL_STAGES = frozenset(s for s, c in _STAGE_CLASSES.items() if c == StageClass.TERMINAL)


def gate_key(from_stage: Stage, to_stage: Stage) -> str:
    """Key used to register a gate on a transition, e.g. ``drafting->review``."""
    return f"{from_stage.value}->{to_stage.value}"


def parse_gate_key(key: str) -> tuple[Stage, Stage]:
    """Inverse of ``gate_key``.

    Raises:
        ValueError: If ``key`` is not ``<stage>-><stage>`` over known stages
    """
    from_value, sep, to_value = key.partition("->")
    if not sep:
        raise ValueError(f"gate key '{key}' must have the form '<from>-><to>'")
    try:
        return Stage(from_value.strip()), Stage(to_value.strip())
    except ValueError:
        raise ValueError(f"gate key '{key}' names an unknown stage") from None


def _build_transitions() -> dict[Stage, tuple[Stage, ...]]:
    forward = {
        Stage.SCOUTED: (Stage.QUALIFYING,),
        Stage.QUALIFYING: (Stage.DRAFTING,),
        Stage.DRAFTING: (Stage.REVIEW,),
        Stage.REVIEW: (Stage.SUBMITTED,),
        Stage.SUBMITTED: (Stage.AWAITING,),
        Stage.AWAITING: (Stage.WON, Stage.LOST),
    }
    rework = {
        Stage.QUALIFYING: (Stage.SCOUTED,),
        Stage.DRAFTING: (Stage.QUALIFYING,),
        Stage.REVIEW: (Stage.DRAFTING,),
    }
    transitions: dict[Stage, tuple[Stage, ...]] = {}
    for stage in Stage:
        if stage.is_terminal:
            transitions[stage] = ()
            continue
        transitions[stage] = forward.get(stage, ()) + rework.get(stage, ()) + (Stage.DEFERRED,)
    return transitions


# Single-hop moves: forward, rework, and deferral from any non-terminal stage
TRANSITIONS: dict[Stage, tuple[Stage, ...]] = _build_transitions()
