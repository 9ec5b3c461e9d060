from ttl_cache import TTLCache


def test_get_returns_value_within_ttl(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("RELIANCE.NS", {"price": 1})
    clock.advance(59)
    assert cache.get("RELIANCE.NS") == {"price": 1}


def test_entry_expires_at_ttl(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("TCS.NS", 1)
    clock.advance(60)
    assert cache.get("TCS.NS") is None
    # Expired entries are dropped on read
    assert len(cache) == 0


def test_set_refreshes_timestamp(clock):
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("k", "old")
    clock.advance(8)
    cache.set("k", "new")
    clock.advance(8)
    assert cache.get("k") == "new"


def test_missing_key(clock):
    cache = TTLCache(ttl=10, clock=clock)
    assert cache.get("nope") is None
    assert "nope" not in cache


def test_tuple_keys_and_contains(clock):
    cache = TTLCache(ttl=10, clock=clock)
    cache.set(("INFY.NS", "1y"), [1, 2, 3])
    assert ("INFY.NS", "1y") in cache
    assert ("INFY.NS", "5y") not in cache


def test_invalidate_one_or_all(clock):
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate()
    assert len(cache) == 0


def test_set_drops_expired_entries(clock):
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(10)
    cache.set("c", 3)
    assert len(cache) == 1
    assert cache.get("c") == 3
