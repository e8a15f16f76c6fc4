"""Tests for CLI."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from horde_gallery.api.schemas import QueueStatus
from horde_gallery.cli import main
from horde_gallery.core.types import DeleteMode
from horde_gallery.throttle import ThrottleGate
from tests.helpers.fakes import FakeGalleryClient, make_request


@pytest.fixture
def client() -> FakeGalleryClient:
    return FakeGalleryClient(
        [
            make_request("r1", "completed", prompt="a fox"),
            make_request("r2", "processing"),
            make_request("r3", "failed"),
        ]
    )


@pytest.fixture(autouse=True)
def fresh_gate():
    """Keep CLI runs from sharing the process-wide gate with other tests."""
    with patch("horde_gallery.cli.init_throttle_gate", return_value=ThrottleGate(0.0)):
        yield


class TestCli:
    """Tests for CLI entry point."""

    def test_requests_command(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Requests command prints queue status and requests."""
        client.status = QueueStatus(active=1, pending_requests=2)

        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["requests"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Queue: 1 active, 2 pending" in out
        assert "[completed] r1 a fox" in out
        assert client.closed is True

    def test_delete_command_defaults_to_prune(self, client: FakeGalleryClient) -> None:
        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["delete", "r1"])

        assert exit_code == 0
        assert client.delete_calls == [("r1", DeleteMode.PRUNE)]

    def test_delete_failure_returns_error(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        client.fail_delete.add("r1")

        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["delete", "r1", "--mode", "delete"])

        assert exit_code == 1
        assert "Delete failed" in capsys.readouterr().err

    def test_delete_all_command(self, client: FakeGalleryClient) -> None:
        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["delete-all", "--mode", "delete"])

        assert exit_code == 0
        assert client.delete_calls == [("r1", DeleteMode.DELETE), ("r3", DeleteMode.DELETE)]

    def test_delete_all_fails_when_server_unreachable(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An unreachable server is an error, not an empty list."""
        client.fail_fetch = True

        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["delete-all"])

        assert exit_code == 1
        assert "Delete all failed: server unavailable" in capsys.readouterr().err
        assert client.delete_calls == []

    def test_retry_command(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["retry", "r3"])

        assert exit_code == 0
        assert "Retried request r3 as r3-retry" in capsys.readouterr().out

    def test_estimate_command(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["estimate", "--model", "stable_diffusion"])

        assert exit_code == 0
        assert "Estimated cost: 12 kudos" in capsys.readouterr().out
        assert client.estimate_calls[0]["models"] == ["stable_diffusion"]

    def test_estimate_command_prints_fractional_cost(
        self, client: FakeGalleryClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        client.kudos = 7.62

        with patch("horde_gallery.cli.create_client", return_value=client):
            exit_code = main(["estimate", "--model", "stable_diffusion"])

        assert exit_code == 0
        assert "Estimated cost: 7.62 kudos" in capsys.readouterr().out

    def test_watch_command_with_duration(self, client: FakeGalleryClient) -> None:
        with (
            patch("horde_gallery.cli.create_client", return_value=client),
            patch("horde_gallery.session.init_throttle_gate", return_value=ThrottleGate(0.0)),
        ):
            exit_code = main(["watch", "--duration", "0.05"])

        assert exit_code == 0
        assert client.closed is True

    def test_missing_command_exits(self) -> None:
        with pytest.raises(SystemExit):
            main([])
