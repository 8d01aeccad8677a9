"""Tests for config loading and atomic writes."""

import json
import logging

from factory_utils import atomic_write_json, atomic_write_text, config_float, get_logger, load_config

REDDIT_KEYS = ("REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "REDDIT_USER_AGENT", "REDDIT_PROXY_URL",
               "REDDIT_REQUEST_TIMEOUT", "GEMINI_API_KEY")


def clear_env(monkeypatch):
    for key in REDDIT_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_reads_env_file(tmp_path, monkeypatch):
    clear_env(monkeypatch)
    env_file = tmp_path / ".env"
    env_file.write_text("REDDIT_CLIENT_ID=abc\nREDDIT_CLIENT_SECRET=shh\n", encoding="utf-8")

    config = load_config(env_file)

    assert config["REDDIT_CLIENT_ID"] == "abc"
    assert config["REDDIT_CLIENT_SECRET"] == "shh"
    assert config["REDDIT_USER_AGENT"].startswith("reddit-post-forge/")
    assert config["REDDIT_REQUEST_TIMEOUT"] == "10"
    assert config["REDDIT_PROXY_URL"] is None


def test_process_env_wins_over_file(tmp_path, monkeypatch):
    clear_env(monkeypatch)
    env_file = tmp_path / ".env"
    env_file.write_text("REDDIT_USER_AGENT=from-file\n", encoding="utf-8")
    monkeypatch.setenv("REDDIT_USER_AGENT", "from-env")

    assert load_config(env_file)["REDDIT_USER_AGENT"] == "from-env"


def test_missing_env_file_is_fine(tmp_path, monkeypatch):
    clear_env(monkeypatch)

    config = load_config(tmp_path / "missing.env")

    assert config["REDDIT_CLIENT_ID"] is None


def test_config_float():
    assert config_float({"T": "2.5"}, "T", 10.0) == 2.5
    assert config_float({"T": "soon"}, "T", 10.0) == 10.0
    assert config_float({}, "T", 10.0) == 10.0


def test_atomic_writes(tmp_path):
    json_path = tmp_path / "nested" / "out.json"
    atomic_write_json(json_path, {"title": "سڵاو"})
    assert json.loads(json_path.read_text(encoding="utf-8")) == {"title": "سڵاو"}

    text_path = tmp_path / "out.md"
    atomic_write_text(text_path, "hello")
    assert text_path.read_text(encoding="utf-8") == "hello"
    assert list(tmp_path.glob("*.tmp")) == []


def test_get_logger_is_configured_once():
    first = get_logger("factory_utils_test")
    second = get_logger("factory_utils_test")

    assert first is second
    assert len(first.handlers) == 2
    assert first.level == logging.DEBUG
