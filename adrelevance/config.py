from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for ranking, caching, and the optional LLM boundary."""
    cache_ttl_sec: float = 30.0
    cache_max_entries: int = 1000
    min_relevance: float = 0.1
    top_k: int = 3
    lookup_k: int = 10
    recent_window: int = 5
    learn_from_signals: bool = True
    max_workers: int = 4
    catalog_path: Optional[Path] = None
    prompts_dir: Path = BASE_DIR / "prompts"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    llm_timeout_sec: float = 20.0
    llm_confidence_threshold: float = 0.3

    @property
    def llm_enabled(self) -> bool:
        return bool(self.gemini_api_key)


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables only.
    Dependencies: Uses os.getenv and BASE_DIR for the prompt directory.
    Failure Modes: Non-numeric values for numeric keys raise ValueError; a cache capacity,
        ranking depth, window, or worker count below 1 raises ValueError.
    If Removed: The engine and HTTP app fall back to hard-coded limits only.
    Testing Notes: Verify defaults and overrides via monkeypatched environment variables.
    """
    # Resolve optional catalog path, then build Settings from env with defaults.
    catalog_path = os.getenv("CATALOG_PATH")
    settings = Settings(
        cache_ttl_sec=float(os.getenv("ADRELEVANCE_CACHE_TTL_SEC", "30")),
        cache_max_entries=int(os.getenv("ADRELEVANCE_CACHE_MAX_ENTRIES", "1000")),
        min_relevance=float(os.getenv("ADRELEVANCE_MIN_RELEVANCE", "0.1")),
        top_k=int(os.getenv("ADRELEVANCE_TOP_K", "3")),
        lookup_k=int(os.getenv("ADRELEVANCE_LOOKUP_K", "10")),
        recent_window=int(os.getenv("ADRELEVANCE_RECENT_WINDOW", "5")),
        learn_from_signals=_env_flag("ADRELEVANCE_LEARN_FROM_SIGNALS", True),
        max_workers=int(os.getenv("ADRELEVANCE_WORKERS", "4")),
        catalog_path=Path(catalog_path) if catalog_path else None,
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        llm_timeout_sec=float(os.getenv("LLM_TIMEOUT_SEC", "20")),
        llm_confidence_threshold=float(os.getenv("LLM_CONFIDENCE_THRESHOLD", "0.3")),
    )
    for name in ("cache_max_entries", "top_k", "lookup_k", "recent_window", "max_workers"):
        if getattr(settings, name) < 1:
            raise ValueError(f"{name} must be at least 1")
    return settings


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}
