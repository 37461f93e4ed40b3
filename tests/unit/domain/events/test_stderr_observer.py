"""Tests for StderrEventObserver."""

from datetime import datetime, timezone
from unittest.mock import patch

from grantflow.domain.events.event import GrantEvent
from grantflow.domain.events.event_types import GrantEventType
from grantflow.domain.events.stderr_observer import StderrEventObserver
from grantflow.domain.models.stage import Stage


def _event(event_type: GrantEventType, **kwargs) -> GrantEvent:
    return GrantEvent(
        event_type=event_type,
        org_id="dlab",
        grant_id="g1",
        timestamp=datetime.now(timezone.utc),
        **kwargs,
    )


class TestStderrEventObserver:
    def test_emits_event_type_to_stderr(self) -> None:
        """Observer emits [EVENT] prefix with event type and grant."""
        with patch("click.echo") as mock_echo:
            StderrEventObserver().on_event(_event(GrantEventType.STAGE_MOVED))

            mock_echo.assert_called_once()
            assert mock_echo.call_args[0][0] == "[EVENT] stage_moved grant=g1"
            assert mock_echo.call_args[1]["err"] is True

    def test_includes_stage_and_known_metadata(self) -> None:
        event = _event(
            GrantEventType.APPROVAL_RECORDED,
            stage=Stage.DRAFTING,
            metadata={"gate": "drafting->review", "status": "approved", "reviewer": "hana"},
        )

        with patch("click.echo") as mock_echo:
            StderrEventObserver().on_event(event)

        output = mock_echo.call_args[0][0]
        assert "stage=drafting" in output
        assert "gate=drafting->review status=approved" in output
        assert "reviewer" not in output
