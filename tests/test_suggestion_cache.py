import pytest

from adrelevance.suggestion_cache import SuggestionCache, make_cache_key


def test_entry_expires_after_ttl(clock):
    cache = SuggestionCache(ttl_sec=30, max_entries=10, clock=clock)
    key = make_cache_key("c1", "u1", "hello")
    cache.put(key, "value")

    clock.advance(29.9)
    assert cache.get(key) == "value"

    clock.advance(0.1)
    assert cache.get(key) is None
    assert len(cache) == 0


def test_oldest_insertion_is_evicted_at_capacity(clock):
    cache = SuggestionCache(ttl_sec=30, max_entries=2, clock=clock)
    keys = [make_cache_key("c1", "u1", text) for text in ("a", "b", "c")]
    for key in keys:
        cache.put(key, key[2])
        clock.advance(1)

    assert len(cache) == 2
    assert cache.get(keys[0]) is None
    assert cache.get(keys[1]) is not None
    assert cache.get(keys[2]) is not None


def test_overwriting_existing_key_does_not_evict(clock):
    cache = SuggestionCache(ttl_sec=30, max_entries=2, clock=clock)
    first, second = make_cache_key("c1", "u1", "a"), make_cache_key("c1", "u1", "b")
    cache.put(first, 1)
    cache.put(second, 2)

    cache.put(first, 3)

    assert cache.get(first) == 3
    assert cache.get(second) == 2


def test_bound_holds_with_default_capacity(clock):
    cache = SuggestionCache(clock=clock)
    for n in range(1200):
        cache.put(make_cache_key("c", "u", str(n)), n)
        clock.advance(0.001)

    assert len(cache) == 1000


def test_invalidate_by_conversation(clock):
    cache = SuggestionCache(clock=clock)
    cache.put(make_cache_key("c1", "u1", "x"), 1)
    cache.put(make_cache_key("c2", "u1", "x"), 2)

    assert cache.invalidate(lambda key: key[0] == "c1") == 1
    assert cache.get(make_cache_key("c2", "u1", "x")) == 2


def test_keys_differ_by_text_and_conversation():
    assert make_cache_key("c1", "u1", "a") != make_cache_key("c1", "u1", "b")
    assert make_cache_key("c1", "u1", "a") != make_cache_key("c2", "u1", "a")


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        SuggestionCache(max_entries=0)


def test_put_with_stale_generation_is_dropped(clock):
    cache = SuggestionCache(ttl_sec=30, max_entries=10, clock=clock)
    key = make_cache_key("c1", "u1", "hello")
    seen = cache.generation

    cache.clear()

    assert cache.put(key, "old", generation=seen) is False
    assert cache.get(key) is None
    assert cache.put(key, "new", generation=cache.generation) is True
    assert cache.get(key) == "new"


def test_invalidate_advances_generation(clock):
    cache = SuggestionCache(ttl_sec=30, max_entries=10, clock=clock)
    before = cache.generation

    cache.invalidate(lambda key: key[0] == "c1")

    assert cache.generation == before + 1
