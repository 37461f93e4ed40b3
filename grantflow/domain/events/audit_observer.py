"""Append-only JSONL audit sink.

One line per event under the store root. Write failures raise here and are
swallowed by the emitter, so auditing never fails the triggering operation.
"""

import json
from pathlib import Path

from grantflow.domain.events.event import GrantEvent

AUDIT_FILENAME = "audit.jsonl"


class JsonlAuditObserver:
    def __init__(self, root: Path):
        self.path = root / AUDIT_FILENAME

    def on_event(self, event: GrantEvent) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = event.model_dump_json()
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read(self) -> list[dict]:
        """Return recorded events, oldest first."""
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
