from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import typer
from pydantic import ValidationError

from feedstore.config import AppConfig, load_config
from feedstore.errors import ConstructionError
from feedstore.schemas import (
    CacheSnapshot,
    CacheStatus,
    FeedImage,
    now_utc,
    validate_feed_json,
)
from feedstore.storage import SQLiteFeedStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = typer.Typer(help="Feed cache store CLI")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(debug_app, name="debug")

_DB_PATH_OPTION = typer.Option(
    None,
    "--db-path",
    help="SQLite DB file path (overrides store.path from --config).",
)
_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="Config file path (YAML or JSON).",
    exists=True,
    dir_okay=False,
    readable=True,
)


@app.command("show")
def show(
    db_path: Path | None = _DB_PATH_OPTION,
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Print the cached feed snapshot."""
    with _open_store(db_path, config_path) as store:
        result = store.retrieve().result()

    if result.status == CacheStatus.FAILURE:
        typer.echo(f"retrieve failed: {result.error}", err=True)
        raise typer.Exit(code=1)
    if result.snapshot is None:
        typer.echo("cache empty")
        return

    typer.echo(f"timestamp: {result.snapshot.timestamp.isoformat()}")
    typer.echo(_render_feed_table(result.snapshot))


@app.command("insert")
def insert(
    feed_file: Path = typer.Option(
        ...,
        "--feed-file",
        help="JSON array of feed images (id, description, location, url).",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    timestamp: str | None = typer.Option(
        None,
        "--timestamp",
        help="ISO-8601 capture time. Defaults to now (UTC).",
    ),
    db_path: Path | None = _DB_PATH_OPTION,
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Replace the cached feed with the contents of a JSON file."""
    try:
        feed = validate_feed_json(feed_file.read_bytes())
    except ValidationError as exc:
        typer.echo(f"invalid feed file: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    try:
        captured_at = datetime.fromisoformat(timestamp) if timestamp else now_utc()
    except ValueError as exc:
        typer.echo(f"invalid timestamp: {timestamp}", err=True)
        raise typer.Exit(code=1) from exc

    with _open_store(db_path, config_path) as store:
        error = store.insert(feed, captured_at).result()

    if error is not None:
        typer.echo(f"insert failed: {error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"stored {len(feed)} items (timestamp={captured_at.isoformat()})")


@app.command("clear")
def clear(
    db_path: Path | None = _DB_PATH_OPTION,
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Delete the cached feed."""
    with _open_store(db_path, config_path) as store:
        error = store.delete().result()

    if error is not None:
        typer.echo(f"delete failed: {error}", err=True)
        raise typer.Exit(code=1)
    typer.echo("cache cleared")


@debug_app.command("storage")
def debug_storage(
    db_path: Path | None = _DB_PATH_OPTION,
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Run storage smoke test."""
    sample = [
        FeedImage(
            id="00000000-0000-4000-8000-000000000001",
            description="storage smoke test",
            location="debug",
            url="https://example.com/debug-storage",
        )
    ]
    captured_at = now_utc()

    with _open_store(db_path, config_path) as store:
        insert_error = store.insert(sample, captured_at).result()
        result = store.retrieve().result()
        delete_error = store.delete().result()
        cleared = store.retrieve().result()

    expected = CacheSnapshot(feed=sample, timestamp=captured_at)
    if (
        insert_error is not None
        or delete_error is not None
        or result.snapshot != expected
        or cleared.status != CacheStatus.EMPTY
    ):
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo("storage ok")


def _open_store(db_path: Path | None, config_path: Path | None) -> SQLiteFeedStore:
    try:
        config = load_config(config_path) if config_path is not None else AppConfig()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    logging.getLogger().setLevel(config.logging_level())
    store_config = config.store
    if db_path is not None:
        store_config = store_config.model_copy(update={"path": str(db_path)})

    try:
        return SQLiteFeedStore.from_config(store_config)
    except ConstructionError as exc:
        typer.echo(f"failed to open store ({exc.reason}): {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _render_feed_table(snapshot: CacheSnapshot) -> str:
    if not snapshot.feed:
        return "no feed images"

    headers = ("#", "id", "url", "location", "description")
    rows = [
        (
            str(index),
            str(image.id),
            image.url,
            image.location or "-",
            _truncate(image.description or "-", limit=60),
        )
        for index, image in enumerate(snapshot.feed, start=1)
    ]

    widths = [
        max(len(headers[column]), *(len(row[column]) for row in rows))
        for column in range(len(headers))
    ]

    def _line(values: tuple[str, ...]) -> str:
        return " | ".join(value.ljust(widths[index]) for index, value in enumerate(values))

    separator = "-+-".join("-" * width for width in widths)
    return "\n".join([_line(headers), separator, *(_line(row) for row in rows)])


def _truncate(text: str, *, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def main() -> None:
    app()


if __name__ == "__main__":
    main()
