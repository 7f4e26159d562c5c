# tests/test_patterns.py
from datetime import datetime, timedelta

import pytest
from freezegun import freeze_time
from sqlmodel import select

import personalizer.patterns as patterns_mod
from personalizer.cache import CacheKeys, get_cache
from personalizer.errors import ArticleNotFound
from personalizer.maintenance import apply_pattern_decay
from personalizer.models import UserPattern
from personalizer.patterns import (
    get_pattern_stats,
    get_user_patterns,
    get_user_patterns_map,
    increment_or_create,
    reset_user_patterns,
    update_user_patterns,
)
from personalizer.store import get_session

# rust: 4/5 * 1.5 = 1.2 relevance -> delta 0.12 (kept)
# compiler: 1/5 = 0.2 relevance -> delta 0.02 (below the noise band)
RUST_ARTICLE = "rust rust rust rust compiler"


def _pattern(user_id, keyword):
    with get_session() as s:
        return s.exec(
            select(UserPattern).where(UserPattern.user_id == user_id, UserPattern.keyword == keyword)
        ).first()


def test_increment_or_create_creates_then_increments():
    t0 = datetime(2025, 1, 1)
    increment_or_create("u1", "rust", 0.3, now=t0)
    p = _pattern("u1", "rust")
    assert (p.weight, p.feedback_count, p.updated_at) == (pytest.approx(0.3), 1, t0)

    t1 = t0 + timedelta(days=3)
    increment_or_create("u1", "rust", -0.1, now=t1)
    p = _pattern("u1", "rust")
    assert p.weight == pytest.approx(0.2)
    assert p.feedback_count == 2
    assert p.updated_at == t1
    assert p.created_at == t0


def test_increment_resets_folded_decay_periods():
    increment_or_create("u1", "rust", 0.5, now=datetime(2025, 1, 1))
    with get_session() as s:
        p = s.exec(select(UserPattern)).one()
        p.decay_periods = 2
        s.add(p)
        s.commit()
    increment_or_create("u1", "rust", 0.5, now=datetime(2025, 3, 15))
    assert _pattern("u1", "rust").decay_periods == 0


def test_patterns_are_per_user():
    increment_or_create("u1", "rust", 0.5)
    increment_or_create("u2", "rust", -0.5)
    assert get_user_patterns_map("u1") == {"rust": pytest.approx(0.5)}
    assert get_user_patterns_map("u2") == {"rust": pytest.approx(-0.5)}


def test_update_user_patterns_applies_dampened_deltas(make_article):
    make_article("a1", RUST_ARTICLE)
    report = update_user_patterns("u1", "a1", 1.0)

    assert sorted(report.updated) == ["compiler", "rust"]
    assert report.failed == {}
    assert report.ok
    assert report.removed == 1  # compiler fell inside the noise band
    assert get_user_patterns_map("u1") == {"rust": pytest.approx(0.12)}

    update_user_patterns("u1", "a1", 1.0)
    p = _pattern("u1", "rust")
    assert p.weight == pytest.approx(0.24)
    assert p.feedback_count == 2


def test_negative_feedback_creates_negative_patterns(make_article):
    make_article("a1", RUST_ARTICLE, title="Rust")
    update_user_patterns("u1", "a1", -1.0)
    # title adds a fifth rust: 5/6 * 1.5 = 1.25
    assert get_user_patterns_map("u1") == {"rust": pytest.approx(-0.125)}


def test_update_requires_article():
    with pytest.raises(ArticleNotFound):
        update_user_patterns("u1", "missing", 1.0)


def test_empty_article_is_not_an_error(make_article):
    make_article("empty", "")
    report = update_user_patterns("u1", "empty", 1.0)
    assert report.updated == [] and report.failed == {}
    assert get_user_patterns("u1") == []


def test_one_failing_keyword_does_not_abort_the_others(make_article, mocker):
    make_article("a1", RUST_ARTICLE)
    real = patterns_mod.increment_or_create

    def flaky(user_id, keyword, delta, now=None):
        if keyword == "compiler":
            raise RuntimeError("disk hiccup")
        return real(user_id, keyword, delta, now)

    mocker.patch.object(patterns_mod, "increment_or_create", side_effect=flaky)
    report = update_user_patterns("u1", "a1", 1.0)

    assert report.updated == ["rust"]
    assert list(report.failed) == ["compiler"]
    assert "disk hiccup" in report.failed["compiler"]
    assert not report.ok
    assert get_user_patterns_map("u1") == {"rust": pytest.approx(0.12)}


def test_update_invalidates_only_that_users_scores(make_article):
    make_article("a1", RUST_ARTICLE)
    cache = get_cache()
    cache.set(CacheKeys.article_score("u1", "x"), {"score": 0.9}, 60)
    cache.set(CacheKeys.article_score("u2", "x"), {"score": 0.9}, 60)

    update_user_patterns("u1", "a1", 1.0)

    assert cache.get(CacheKeys.article_score("u1", "x")) is None
    assert cache.get(CacheKeys.article_score("u2", "x")) == {"score": 0.9}


def test_update_restarts_the_decay_clock(make_article):
    make_article("a1", RUST_ARTICLE)
    with freeze_time("2025-01-01"):
        update_user_patterns("u1", "a1", 1.0)
    # 72 days later: two periods folded in
    assert apply_pattern_decay("u1", now=datetime(2025, 3, 14)) == 1
    assert _pattern("u1", "rust").weight == pytest.approx(0.12 * 0.81)

    with freeze_time("2025-03-15"):
        update_user_patterns("u1", "a1", 1.0)
    p = _pattern("u1", "rust")
    assert p.weight == pytest.approx(0.12 * 0.81 + 0.12)
    assert p.updated_at == datetime(2025, 3, 15)
    assert p.decay_periods == 0

    # The clock now runs from March 15th
    assert apply_pattern_decay("u1", now=datetime(2025, 4, 13)) == 0


def test_pattern_stats_and_reset():
    increment_or_create("u1", "rust", 0.8)
    increment_or_create("u1", "golang", 0.3)
    increment_or_create("u1", "politics", -0.6)
    increment_or_create("u1", "gossip", -0.2)

    stats = get_pattern_stats("u1")
    assert (stats.total_patterns, stats.positive_patterns, stats.negative_patterns) == (4, 2, 2)
    assert stats.strongest_positive.keyword == "rust"
    assert stats.strongest_negative.keyword == "politics"

    assert [p.keyword for p in get_user_patterns("u1", limit=2)] == ["rust", "golang"]

    get_cache().set(CacheKeys.article_score("u1", "x"), {"score": 0.9}, 60)
    assert reset_user_patterns("u1") == 4
    assert get_user_patterns("u1") == []
    assert get_cache().get(CacheKeys.article_score("u1", "x")) is None

    empty = get_pattern_stats("u1")
    assert empty.total_patterns == 0 and empty.strongest_positive is None


def test_concurrent_increments_on_one_keyword_all_land():
    from concurrent.futures import ThreadPoolExecutor

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: increment_or_create("u1", "rust", 0.5), range(40)))

    p = _pattern("u1", "rust")
    assert p.feedback_count == 40
    assert p.weight == pytest.approx(20.0)


def test_concurrent_feedback_on_one_article_all_land(make_article):
    from concurrent.futures import ThreadPoolExecutor

    make_article("a1", RUST_ARTICLE)
    with ThreadPoolExecutor(max_workers=4) as pool:
        reports = list(pool.map(lambda _: update_user_patterns("u1", "a1", 1.0), range(8)))

    assert all(r.ok for r in reports)
    p = _pattern("u1", "rust")
    assert p.feedback_count == 8
    assert p.weight == pytest.approx(0.96)
