from __future__ import annotations

from typer.testing import CliRunner

from feedstore.cli import app


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--help" in result.output
    for command in ("show", "insert", "clear", "debug"):
        assert command in result.output
