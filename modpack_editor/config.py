"""Runtime settings, read from the environment and overridden by CLI flags."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from .api import API_BASE_URL, GRAPHQL_URL
from .cache import DEFAULT_CACHE_FILE
from .modinfo import DEFAULT_MAX_WORKERS


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EditorConfig:
    cache_file: Path = field(default_factory=lambda: Path(DEFAULT_CACHE_FILE))
    # False keeps the cache in memory only (tests, throwaway sessions)
    persist_cache: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    api_url: str = API_BASE_URL
    graphql_url: str = GRAPHQL_URL
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "EditorConfig":
        config = cls()
        if os.environ.get("MODPACK_EDITOR_CACHE_FILE"):
            config.cache_file = Path(os.environ["MODPACK_EDITOR_CACHE_FILE"])
        if _env_flag("MODPACK_EDITOR_NO_CACHE"):
            config.persist_cache = False
        if os.environ.get("MODPACK_EDITOR_WORKERS"):
            config.max_workers = max(1, int(os.environ["MODPACK_EDITOR_WORKERS"]))
        config.api_url = os.environ.get("MODPACK_EDITOR_API_URL", config.api_url)
        config.graphql_url = os.environ.get("MODPACK_EDITOR_GRAPHQL_URL", config.graphql_url)
        if os.environ.get("MODPACK_EDITOR_TIMEOUT"):
            config.timeout = float(os.environ["MODPACK_EDITOR_TIMEOUT"])
        return config
