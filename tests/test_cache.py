# tests/test_cache.py
from freezegun import freeze_time

import personalizer.cache as cache_mod
from personalizer.cache import (
    CacheKeys,
    MemoryCache,
    cache_get,
    cache_get_many,
    cache_set,
    cache_set_many,
    get_cache,
    invalidate_user_scores,
    set_cache,
)


class BrokenCache:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise ConnectionError("cache down")
        return fail


def test_entries_expire_after_ttl():
    cache = MemoryCache()
    with freeze_time("2025-01-01 00:00:00") as frozen:
        cache.set("k", {"score": 0.7}, 60)
        frozen.tick(59)
        assert cache.get("k") == {"score": 0.7}
        frozen.tick(1)
        assert cache.get("k") is None
    assert len(cache) == 0


def test_hits_are_copies():
    cache = MemoryCache()
    cache.set("k", {"matches": [1, 2]}, 60)
    hit = cache.get("k")
    hit["matches"].append(3)
    assert cache.get("k") == {"matches": [1, 2]}


def test_get_many_and_set_many_keep_order():
    cache = MemoryCache()
    cache.set_many([("a", 1, 60), ("c", 3, 60)])
    assert cache.get_many(["c", "b", "a"]) == [3, None, 1]


def test_delete_pattern_only_hits_matching_keys():
    cache = MemoryCache()
    for key in ("score:u1:a", "score:u1:b", "score:u10:a", "other:u1:a"):
        cache.set(key, 1, 60)
    assert cache.delete_pattern("score:u1:*") == 2
    assert cache.get("score:u10:a") == 1
    assert cache.get("other:u1:a") == 1


def test_user_scores_pattern_escapes_glob_characters():
    cache = MemoryCache()
    cache.set(CacheKeys.article_score("u*", "a"), 1, 60)
    cache.set(CacheKeys.article_score("u1", "a"), 1, 60)
    cache.set(CacheKeys.article_score("u[1]", "a"), 1, 60)

    assert cache.delete_pattern(CacheKeys.user_scores("u*")) == 1
    assert cache.get(CacheKeys.article_score("u1", "a")) == 1
    assert cache.delete_pattern(CacheKeys.user_scores("u[1]")) == 1
    assert cache.get(CacheKeys.article_score("u1", "a")) == 1


def test_invalidate_user_scores():
    cache_set(CacheKeys.article_score("u1", "a"), 1, 60)
    cache_set(CacheKeys.article_score("u1", "b"), 1, 60)
    cache_set(CacheKeys.article_score("u2", "a"), 1, 60)
    assert invalidate_user_scores("u1") == 2
    assert len(get_cache()) == 1


def test_helpers_absorb_backend_failures(mocker):
    warning = mocker.patch.object(cache_mod.logger, "warning")
    set_cache(BrokenCache())
    assert cache_get("k") is None
    assert cache_get_many(["a", "b"]) == [None, None]
    assert cache_set("k", 1, 60) is False
    assert cache_set_many([("k", 1, 60)]) is False
    assert invalidate_user_scores("u1") == 0

    messages = {c.args[0] for c in warning.call_args_list}
    assert len(messages) == 5
    assert {"CACHE_GET_FAILED", "CACHE_SET_FAILED", "CACHE_INVALIDATE_FAILED"} <= messages


def test_helpers_skip_empty_batches():
    set_cache(BrokenCache())
    assert cache_get_many([]) == []
    assert cache_set_many([]) is True


def test_expired_entries_are_purged_on_write():
    cache = MemoryCache()
    for i in range(1000):
        cache.set(f"score:u1:{i}", 1, 0)
    cache.set("score:u1:live", 1, 60)
    assert len(cache) == 1
    assert cache.get("score:u1:live") == 1


def test_slot_cap_drops_entries_closest_to_expiry():
    cache = MemoryCache(max_slots=3)
    for i in range(5):
        cache.set(f"k{i}", i, 60 + i)
    assert len(cache) == 3
    assert cache.get_many(["k0", "k1", "k2", "k3", "k4"]) == [None, None, 2, 3, 4]
