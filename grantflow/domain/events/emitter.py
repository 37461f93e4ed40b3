"""Grant event emitter for dispatching events to observers."""

import logging
from dataclasses import dataclass

from grantflow.domain.events.event import GrantEvent
from grantflow.domain.events.event_types import GrantEventType
from grantflow.domain.events.observer import GrantObserver

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Subscription:
    observer: GrantObserver
    event_types: frozenset[GrantEventType] | None
    org_id: str | None

    def wants(self, event: GrantEvent) -> bool:
        if self.org_id is not None and event.org_id != self.org_id:
            return False
        return self.event_types is None or event.event_type in self.event_types


class GrantEventEmitter:
    """Delivers each event to matching observers in subscription order.

    Observer failures are logged and never reach the caller.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        observer: GrantObserver,
        event_types: list[GrantEventType] | None = None,
        org_id: str | None = None,
    ) -> None:
        """Subscribe to some event types (all when None), optionally for one org only."""
        types = frozenset(event_types) if event_types is not None else None
        self._subscriptions.append(_Subscription(observer, types, org_id))

    def unsubscribe(self, observer: GrantObserver) -> None:
        """Remove every subscription of ``observer``."""
        self._subscriptions = [s for s in self._subscriptions if s.observer is not observer]

    def emit(self, event: GrantEvent) -> None:
        for subscription in self._subscriptions:
            if subscription.wants(event):
                self._safe_notify(subscription.observer, event)

    def _safe_notify(self, observer: GrantObserver, event: GrantEvent) -> None:
        try:
            observer.on_event(event)
        except Exception as e:
            logger.warning(
                f"Observer {type(observer).__name__} failed on {event.event_type.value} "
                f"for grant {event.grant_id}: {e}"
            )
