from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from feedstore.cli import app

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


def test_cli_debug_storage_smoke(tmp_path) -> None:
    runner = CliRunner()
    db_path = tmp_path / "storage.db"

    result = runner.invoke(app, ["debug", "storage", "--db-path", str(db_path)])

    assert result.exit_code == 0
    assert "storage ok" in result.output
    assert db_path.exists()


def test_cli_show_on_empty_cache(tmp_path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["show", "--db-path", str(tmp_path / "storage.db")])

    assert result.exit_code == 0
    assert "cache empty" in result.output


def test_cli_insert_show_clear(tmp_path) -> None:
    runner = CliRunner()
    db_args = ["--db-path", str(tmp_path / "storage.db")]

    inserted = runner.invoke(
        app,
        [
            "insert",
            "--feed-file",
            str(FIXTURE_DIR / "feed.sample.json"),
            "--timestamp",
            "2024-05-01T09:30:00+00:00",
            *db_args,
        ],
    )
    assert inserted.exit_code == 0
    assert "stored 3 items" in inserted.output

    shown = runner.invoke(app, ["show", *db_args])
    assert shown.exit_code == 0
    assert "timestamp: 2024-05-01T09:30:00+00:00" in shown.output
    lines = shown.output.splitlines()
    harbour = next(index for index, line in enumerate(lines) if "harbour.jpg" in line)
    bridge = next(index for index, line in enumerate(lines) if "bridge.jpg" in line)
    assert harbour < bridge

    cleared = runner.invoke(app, ["clear", *db_args])
    assert cleared.exit_code == 0
    assert "cache cleared" in cleared.output

    shown_again = runner.invoke(app, ["show", *db_args])
    assert "cache empty" in shown_again.output


def test_cli_insert_rejects_bad_timestamp(tmp_path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        app,
        [
            "insert",
            "--feed-file",
            str(FIXTURE_DIR / "feed.sample.json"),
            "--timestamp",
            "last tuesday",
            "--db-path",
            str(tmp_path / "storage.db"),
        ],
    )

    assert result.exit_code == 1


def test_cli_show_fails_on_unreadable_store(tmp_path) -> None:
    runner = CliRunner()
    db_path = tmp_path / "storage.db"
    db_path.write_bytes(b"garbage" * 200)

    result = runner.invoke(app, ["show", "--db-path", str(db_path)])

    assert result.exit_code == 1


def test_cli_uses_store_path_from_config(tmp_path) -> None:
    runner = CliRunner()
    db_path = tmp_path / "configured.db"
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(f"store:\n  path: {db_path}\n", encoding="utf-8")

    result = runner.invoke(app, ["debug", "storage", "--config", str(cfg_path)])

    assert result.exit_code == 0
    assert db_path.exists()
