"""Stderr event observer for CLI integration."""

import click

from grantflow.domain.events.event import GrantEvent


class StderrEventObserver:
    """Writes ``[EVENT] <summary>`` lines to stderr for ``--events``."""

    def on_event(self, event: GrantEvent) -> None:
        click.echo(f"[EVENT] {event.summary()}", err=True)
