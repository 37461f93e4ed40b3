"""Pipeline event system for observer pattern notifications."""

from grantflow.domain.events.event_types import GrantEventType
from grantflow.domain.events.event import GrantEvent
from grantflow.domain.events.observer import GrantObserver
from grantflow.domain.events.emitter import GrantEventEmitter
from grantflow.domain.events.stderr_observer import StderrEventObserver
from grantflow.domain.events.audit_observer import JsonlAuditObserver

__all__ = [
    "GrantEventType",
    "GrantEvent",
    "GrantObserver",
    "GrantEventEmitter",
    "StderrEventObserver",
    "JsonlAuditObserver",
]
