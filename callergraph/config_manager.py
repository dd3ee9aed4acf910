"""TOML-backed settings for the crawler (the ``[crawl]`` table)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

import toml

logger = logging.getLogger(__name__)

DEFAULT_CRAWL_CONFIG: Dict[str, Any] = {
    "max_lineages": 20,
    "max_workers": 8,
    "gopls": "gopls",
    "timeout": 60.0,
    "fail_fast": False,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    from .config import CONFIG_FILE

    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, exc)
        return {}


def load_crawl_config() -> Dict[str, Any]:
    """Crawl settings with defaults filled in for anything not in the file."""
    config = DEFAULT_CRAWL_CONFIG.copy()
    crawl = load_full_config().get("crawl", {})
    config.update({k: v for k, v in crawl.items() if k in DEFAULT_CRAWL_CONFIG})
    return config


def validate_crawl_config(config: Dict[str, Any]) -> Tuple[bool, str]:
    """Check bounds of crawl settings.

    Returns:
        (True, "Valid") or (False, reason).
    """
    for key in ("max_lineages", "max_workers"):
        value = config.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            return False, f"{key} must be a positive integer, got {value!r}"
    timeout = config.get("timeout")
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        return False, f"timeout must be a positive number, got {timeout!r}"
    if not config.get("gopls"):
        return False, "gopls executable must not be empty"
    return True, "Valid"


def save_crawl_config(**values: Any) -> bool:
    """Merge *values* into the ``[crawl]`` table, preserving other sections.

    Returns:
        True if saved, False if the values are invalid or the write failed.
    """
    from .config import CONFIG_FILE, ensure_base_dirs

    full = load_full_config()
    crawl = load_crawl_config()
    crawl.update({k: v for k, v in values.items() if v is not None})

    ok, reason = validate_crawl_config(crawl)
    if not ok:
        logger.error("Refusing to save config: %s", reason)
        return False

    full["crawl"] = crawl
    ensure_base_dirs()
    try:
        with open(CONFIG_FILE, "w") as f:
            toml.dump(full, f)
    except OSError as exc:
        logger.error("Could not write %s: %s", CONFIG_FILE, exc)
        return False
    return True
