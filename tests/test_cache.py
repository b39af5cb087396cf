from caisse.utils.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("recettes-page1", ["a"], ttl=30)

    clock.now += 29
    assert cache.get("recettes-page1") == ["a"]

    clock.now += 1
    assert cache.get("recettes-page1") is None
    assert len(cache) == 0


def test_clear_single_key_and_all():
    cache = TTLCache()
    cache.set("recettes-page1", 1, ttl=60)
    cache.set("depenses-page1", 2, ttl=60)

    cache.clear("recettes-page1")
    assert cache.get("recettes-page1") is None
    assert cache.get("depenses-page1") == 2

    cache.clear("missing")
    cache.clear_all()
    assert len(cache) == 0
