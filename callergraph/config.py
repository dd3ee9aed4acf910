"""Configuration paths and crawl defaults for CallerGraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CALLERGRAPH_HOME", str(Path.home() / ".callergraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Load [crawl] settings from ~/.callergraph/config.toml (set via `callergraph set-config`)
from .config_manager import load_crawl_config  # noqa: E402

_crawl_config = load_crawl_config()

MAX_LINEAGES: int = int(_crawl_config["max_lineages"])
MAX_WORKERS: int = int(_crawl_config["max_workers"])
GOPLS_PATH: str = str(_crawl_config["gopls"])
QUERY_TIMEOUT: float = float(_crawl_config["timeout"])
FAIL_FAST: bool = bool(_crawl_config["fail_fast"])


def ensure_base_dirs() -> None:
    """Create the base directory if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
