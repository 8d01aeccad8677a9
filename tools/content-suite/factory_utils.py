"""
factory_utils.py: shared infrastructure for the Reddit-to-post pipeline.

Provides logging, config loading, output paths, and atomic file writes
used by the retrieval layer, the generation stage, and the CLI.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent
DRAFTS_DIR = PROJECT_ROOT / "drafts"
IMAGES_DIR = PROJECT_ROOT / "images"
DUMPS_DIR = PROJECT_ROOT / "logs"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger with console (INFO) and rotating file (DEBUG) handlers."""
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger  # already configured

    logger.setLevel(logging.DEBUG)

    # Console handler, INFO
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(console)

    # File handler, DEBUG, rotating 5 MB x 3 backups
    log_path = PROJECT_ROOT / "factory.log"
    file_handler = RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(file_handler)

    return logger


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

_ENV_DEFAULTS: dict[str, str | None] = {
    "REDDIT_CLIENT_ID": None,
    "REDDIT_CLIENT_SECRET": None,
    "REDDIT_USER_AGENT": "reddit-post-forge/1.0 (content pipeline)",
    "REDDIT_PROXY_URL": None,
    "REDDIT_REQUEST_TIMEOUT": "10",
    "GEMINI_API_KEY": None,
}

# Keys whose absence only disables an optional feature
_OPTIONAL_KEYS = ("REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "GEMINI_API_KEY")

_logger = get_logger("factory_utils")


def load_config(env_path: str | Path | None = None) -> dict[str, str | None]:
    """Load .env and return the pipeline settings as a plain dict.

    Process environment wins over the .env file. Warns (but does not crash)
    when optional keys are missing or empty.
    """
    env_path = Path(env_path) if env_path else PROJECT_ROOT / ".env"
    raw = dotenv_values(env_path) if env_path.exists() else {}

    config: dict[str, str | None] = {}
    for key, default in _ENV_DEFAULTS.items():
        value = os.environ.get(key) or raw.get(key)
        config[key] = value if value else default

    for key in _OPTIONAL_KEYS:
        if not config[key]:
            _logger.warning("Config key %s is not set; some features may be unavailable", key)

    return config


def config_float(config: dict[str, str | None], key: str, default: float) -> float:
    """Read a numeric setting, falling back to *default* on junk values."""
    try:
        return float(config.get(key) or default)
    except (TypeError, ValueError):
        _logger.warning("Config key %s=%r is not a number, using %s", key, config.get(key), default)
        return default


# ---------------------------------------------------------------------------
# Atomic file writes
# ---------------------------------------------------------------------------


def atomic_write_json(filepath: str | Path, data: Any) -> None:
    """Write *data* as JSON to *filepath* atomically via temp-file + rename."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=filepath.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, filepath)
    except BaseException:
        os.unlink(tmp_path)
        raise


def atomic_write_text(filepath: str | Path, text: str) -> None:
    """Write *text* to *filepath* atomically via temp-file + rename."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=filepath.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, filepath)
    except BaseException:
        os.unlink(tmp_path)
        raise
