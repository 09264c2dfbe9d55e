"""Tests for the reference result cache."""

from __future__ import annotations

from dnd_solo.tools.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for expiry and eviction."""

    def test_hit_returns_same_object(self) -> None:
        cache = TTLCache(60, 10)
        value = {"name": "Fireball"}
        cache.set("fireball", value)

        assert cache.get("fireball") is value
        assert "fireball" in cache

    def test_miss(self) -> None:
        assert TTLCache().get("nothing") is None

    def test_expiry(self) -> None:
        clock = FakeClock()
        cache = TTLCache(60, 10, clock=clock)
        cache.set("goblin", {"hp": 7})

        clock.now += 59
        assert cache.get("goblin") == {"hp": 7}

        clock.now += 1
        assert cache.get("goblin") is None
        assert len(cache) == 0

    def test_len_ignores_expired_entries(self) -> None:
        clock = FakeClock()
        cache = TTLCache(60, 10, clock=clock)
        cache.set("goblin", {"hp": 7})
        clock.now += 30
        cache.set("orc", {"hp": 15})

        clock.now += 30

        assert len(cache) == 1
        assert "orc" in cache

    def test_lru_eviction(self) -> None:
        """The least recently read entry is evicted first."""
        cache = TTLCache(60, 2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_zero_entries_disables_cache(self) -> None:
        cache = TTLCache(60, 0)
        cache.set("a", 1)

        assert cache.get("a") is None

    def test_clear(self) -> None:
        cache = TTLCache(60, 10)
        cache.set("a", 1)
        cache.clear()

        assert len(cache) == 0
