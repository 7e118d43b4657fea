"""CLI wiring tests -- the bootstrap itself is replaced by a mock."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from wsloader.bootstrap.auth import StaticTokenProvider
from wsloader.bootstrap.context import BootstrapSession
from wsloader.bootstrap.location import BrowserNavigator, EchoNavigator
from wsloader.bootstrap.models.enums import LoaderState
from wsloader.cli import main


def _session(state: LoaderState) -> BootstrapSession:
    session = BootstrapSession(workspace_id="w1")
    session.state = state
    return session


@pytest.fixture
def run_mock():
    with (
        patch("wsloader.cli._run", new_callable=AsyncMock) as mock,
        patch("wsloader.bootstrap.log.setup_logging"),
    ):
        yield mock


def test_open_success(run_mock) -> None:
    run_mock.return_value = _session(LoaderState.NAVIGATING)

    result = CliRunner().invoke(main, ["open", "https://che.example.com/loader/w1?ref=dash", "--token", "t0k3n"])

    assert result.exit_code == 0, result.output
    location = run_mock.await_args.args[0]
    kwargs = run_mock.await_args.kwargs
    assert location.workspace_key() == "w1"
    assert location.search == "?ref=dash"
    assert isinstance(kwargs["credentials"], StaticTokenProvider)
    assert kwargs["credentials"].get_token() == "t0k3n"
    assert isinstance(kwargs["navigator"], BrowserNavigator)


def test_open_failure_exits_1(run_mock) -> None:
    run_mock.return_value = _session(LoaderState.FAILED)

    result = CliRunner().invoke(main, ["open", "https://che.example.com/loader/w1"])

    assert result.exit_code == 1


def test_token_from_env(run_mock, set_env) -> None:
    set_env("WSLOADER_TOKEN", "from-env")
    run_mock.return_value = _session(LoaderState.NAVIGATING)

    result = CliRunner().invoke(main, ["open", "https://che.example.com/loader/w1", "--no-browser"])

    assert result.exit_code == 0, result.output
    kwargs = run_mock.await_args.kwargs
    assert kwargs["credentials"].get_token() == "from-env"
    assert isinstance(kwargs["navigator"], EchoNavigator)


def test_relative_url_is_a_usage_error(run_mock) -> None:
    result = CliRunner().invoke(main, ["open", "loader/w1"])

    assert result.exit_code == 2
    assert "Not an absolute URL" in result.output
    run_mock.assert_not_called()
