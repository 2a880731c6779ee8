from __future__ import annotations

import random

import pytest

from adrelevance.config import Settings
from adrelevance.engine import RelevanceEngine
from adrelevance.response_composer import ResponseComposer
from adrelevance.suggestion_cache import SuggestionCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_engine(clock):
    created = []

    def _make(settings: Settings = None, **overrides) -> RelevanceEngine:
        settings = settings or Settings()
        overrides.setdefault("composer", ResponseComposer(rng=random.Random(7)))
        overrides.setdefault(
            "cache",
            SuggestionCache(ttl_sec=settings.cache_ttl_sec, max_entries=settings.cache_max_entries, clock=clock),
        )
        engine = RelevanceEngine(settings=settings, **overrides)
        created.append(engine)
        return engine

    yield _make
    for engine in created:
        engine.shutdown()


@pytest.fixture
def engine(make_engine) -> RelevanceEngine:
    return make_engine()
