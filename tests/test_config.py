from pathlib import Path

import pytest

from adrelevance.config import load_settings

ENV_KEYS = [
    "ADRELEVANCE_CACHE_TTL_SEC",
    "ADRELEVANCE_CACHE_MAX_ENTRIES",
    "ADRELEVANCE_MIN_RELEVANCE",
    "ADRELEVANCE_TOP_K",
    "ADRELEVANCE_LOOKUP_K",
    "ADRELEVANCE_RECENT_WINDOW",
    "ADRELEVANCE_LEARN_FROM_SIGNALS",
    "ADRELEVANCE_WORKERS",
    "CATALOG_PATH",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "LLM_TIMEOUT_SEC",
    "LLM_CONFIDENCE_THRESHOLD",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.cache_ttl_sec == 30.0
    assert settings.cache_max_entries == 1000
    assert settings.min_relevance == 0.1
    assert settings.top_k == 3
    assert settings.lookup_k == 10
    assert settings.recent_window == 5
    assert settings.learn_from_signals is True
    assert settings.catalog_path is None
    assert settings.llm_enabled is False
    assert settings.prompts_dir.joinpath("ad_suggestion.txt").exists()


def test_overrides(monkeypatch):
    monkeypatch.setenv("ADRELEVANCE_MIN_RELEVANCE", "0.25")
    monkeypatch.setenv("ADRELEVANCE_TOP_K", "5")
    monkeypatch.setenv("ADRELEVANCE_LEARN_FROM_SIGNALS", "false")
    monkeypatch.setenv("CATALOG_PATH", "/tmp/items.json")
    monkeypatch.setenv("GEMINI_API_KEY", "key")

    settings = load_settings()

    assert settings.min_relevance == 0.25
    assert settings.top_k == 5
    assert settings.learn_from_signals is False
    assert settings.catalog_path == Path("/tmp/items.json")
    assert settings.llm_enabled is True


@pytest.mark.parametrize("key", ["ADRELEVANCE_TOP_K", "ADRELEVANCE_CACHE_MAX_ENTRIES", "ADRELEVANCE_WORKERS"])
def test_non_positive_sizes_are_rejected(monkeypatch, key):
    monkeypatch.setenv(key, "0")

    with pytest.raises(ValueError):
        load_settings()


def test_non_numeric_value_is_rejected(monkeypatch):
    monkeypatch.setenv("ADRELEVANCE_CACHE_TTL_SEC", "soon")

    with pytest.raises(ValueError):
        load_settings()
