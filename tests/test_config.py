from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from feedstore.config import AppConfig, StoreConfig, load_config
from feedstore.storage import SQLiteFeedStore

ROOT = Path(__file__).resolve().parents[1]


def test_config_example_load_and_validate() -> None:
    config = load_config(ROOT / "config" / "config.example.yaml")

    assert isinstance(config, AppConfig)
    assert config.log_level == "INFO"
    assert config.store.journal_mode == "WAL"
    assert config.store.path.endswith("feed_cache.db")


def test_config_defaults() -> None:
    config = AppConfig()

    assert config.store.path == "data/storage/feed_cache.db"
    assert config.store.schema_path is None
    assert config.store.timeout_seconds == 5.0
    assert config.logging_level() == logging.INFO


def test_json_config_is_normalized(tmp_path) -> None:
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text(
        json.dumps({"log_level": "debug", "store": {"path": " cache.db ", "journal_mode": "wal"}}),
        encoding="utf-8",
    )

    config = load_config(cfg_path)

    assert config.log_level == "DEBUG"
    assert config.store.path == "cache.db"
    assert config.store.journal_mode == "WAL"


@pytest.mark.parametrize(
    "payload",
    [
        "store:\n  journal_mode: turbo\n",
        "store:\n  timeout_seconds: 0\n",
        "store:\n  path: ''\n",
        "log_level: chatty\n",
        "unknown_section: true\n",
        "- just\n- a\n- list\n",
    ],
)
def test_invalid_config_raises_value_error(tmp_path, payload) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(payload, encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_store_from_config(tmp_path) -> None:
    config = StoreConfig(path=str(tmp_path / "from-config.db"), journal_mode="wal")

    with SQLiteFeedStore.from_config(config) as store:
        assert store.journal_mode == "WAL"
        assert store.retrieve().result().status == "empty"

    assert (tmp_path / "from-config.db").exists()
