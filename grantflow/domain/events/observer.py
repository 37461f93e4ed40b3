"""Grant observer protocol."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from grantflow.domain.events.event import GrantEvent


class GrantObserver(Protocol):
    """Receives grant events synchronously, after the change is saved.

    Exceptions raised here are logged by the emitter and never undo or
    fail the pipeline operation.
    """

    def on_event(self, event: "GrantEvent") -> None: ...
