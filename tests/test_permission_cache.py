import threading

import pytest

from inventory_api.core.permission_cache import PermissionCache

from conftest import FakeClock


def test_entry_is_served_until_ttl_elapses():
    clock = FakeClock()
    cache = PermissionCache(ttl_seconds=300, clock=clock)
    cache.put(1, {"products:read"})

    clock.advance(299.9)
    assert cache.get(1) == frozenset({"products:read"})

    clock.advance(0.1)
    assert cache.get(1) is None


def test_put_overwrites_and_restarts_ttl():
    clock = FakeClock()
    cache = PermissionCache(ttl_seconds=10, clock=clock)
    cache.put(1, {"products:read"})
    clock.advance(8)
    cache.put(1, {"products:read", "products:create"})
    clock.advance(8)

    assert cache.get(1) == frozenset({"products:read", "products:create"})


def test_invalidate_drops_only_that_user():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    cache.put(1, {"products:read"})
    cache.put(2, {"stock:read"})

    cache.invalidate(1)

    assert cache.get(1) is None
    assert cache.get(2) == frozenset({"stock:read"})


def test_invalidate_all_clears_every_entry():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    cache.put(1, {"products:read"})
    cache.put(2, {"stock:read"})

    cache.invalidate_all()

    assert cache.get(1) is None
    assert cache.get(2) is None
    assert cache.stats()["entries"] == 0


def test_cached_sets_are_immutable_copies():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    source = {"products:read"}
    cache.put(1, source)
    source.add("products:delete")

    cached = cache.get(1)
    assert cached == frozenset({"products:read"})
    assert isinstance(cached, frozenset)


def test_stats_count_hits_and_misses():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    cache.get(1)
    cache.put(1, set())
    cache.get(1)

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["ttl_seconds"] == 300


@pytest.mark.parametrize("ttl", [0, -1])
def test_rejects_non_positive_ttl(ttl):
    with pytest.raises(ValueError):
        PermissionCache(ttl_seconds=ttl)


def test_concurrent_writers_leave_a_complete_entry():
    cache = PermissionCache(ttl_seconds=300)
    expected = frozenset(f"module{i}:read" for i in range(50))
    torn = []

    def writer():
        for _ in range(200):
            cache.put(7, expected)
            value = cache.get(7)
            if value is not None and value != expected:
                torn.append(value)

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert torn == []
    assert cache.get(7) == expected


def test_expired_entries_are_evicted_without_being_read():
    clock = FakeClock()
    cache = PermissionCache(ttl_seconds=1, clock=clock, maxsize=20000)
    for user_id in range(10000):
        cache.put(user_id, {"products:read"})

    clock.advance(3600)
    cache.put(10000, {"products:read"})

    assert cache.stats()["entries"] == 1


def test_maxsize_bounds_the_number_of_entries():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock(), maxsize=3)
    for user_id in range(5):
        cache.put(user_id, {"stock:read"})

    assert cache.stats()["entries"] == 3
    assert cache.get(4) == frozenset({"stock:read"})


def test_write_from_before_an_invalidation_is_dropped():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    generation = cache.generation

    cache.invalidate(7)
    returned = cache.put(7, {"products:read"}, generation=generation)

    assert returned == frozenset({"products:read"})
    assert cache.get(7) is None


def test_invalidate_all_also_drops_in_flight_writes():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())
    generation = cache.generation

    cache.invalidate_all()
    cache.put(7, {"products:read"}, generation=generation)

    assert cache.get(7) is None


def test_write_with_current_generation_is_kept():
    cache = PermissionCache(ttl_seconds=300, clock=FakeClock())

    cache.put(7, {"products:read"}, generation=cache.generation)

    assert cache.get(7) == frozenset({"products:read"})
