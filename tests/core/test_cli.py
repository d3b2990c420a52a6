"""
Tests for the kvgate command line interface.
"""

from typer.testing import CliRunner

from kvgate.cli import main as cli_main
from kvgate.persistence.redis.errors import StoreConnectionError

runner = CliRunner()


def test_ping_prints_reply(monkeypatch):
    async def fake_ping():
        return "PONG"

    monkeypatch.setattr(cli_main, "_ping", fake_ping)

    result = runner.invoke(cli_main.app, ["ping"])

    assert result.exit_code == 0
    assert "PONG" in result.output


def test_ping_unreachable_exits_with_error(monkeypatch):
    async def fake_ping():
        raise StoreConnectionError("Gave up connecting to redis://localhost:6379/0")

    monkeypatch.setattr(cli_main, "_ping", fake_ping)

    result = runner.invoke(cli_main.app, ["ping"])

    assert result.exit_code == 1


def test_serve_runs_uvicorn_factory(monkeypatch):
    calls = {}

    def fake_run(target, **kwargs):
        calls["target"] = target
        calls.update(kwargs)

    monkeypatch.setattr("uvicorn.run", fake_run)

    result = runner.invoke(cli_main.app, ["serve", "--port", "9001"])

    assert result.exit_code == 0
    assert calls["target"] == "kvgate.core.app:create_app"
    assert calls["factory"] is True
    assert calls["port"] == 9001
