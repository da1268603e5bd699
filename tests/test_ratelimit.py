import time

from limits.storage import MemoryStorage

from supportchat.ratelimit import RateLimiter


def test_allows_up_to_limit_then_refuses():
    limiter = RateLimiter(limit=3, window=60)
    results = [limiter.hit("1.2.3.4") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]


def test_window_resets():
    limiter = RateLimiter(limit=1, window=1)
    assert limiter.hit("a").allowed
    assert not limiter.hit("a").allowed

    time.sleep(1.2)
    assert limiter.hit("a").allowed


def test_clients_are_counted_separately():
    limiter = RateLimiter(limit=1, window=60)
    assert limiter.hit("a").allowed
    assert limiter.hit("b").allowed
    assert not limiter.hit("a").allowed


def test_limiters_on_shared_storage_share_the_ceiling():
    # two workers pointed at one backend
    storage = MemoryStorage()
    worker_a = RateLimiter(limit=2, window=60, storage=storage)
    worker_b = RateLimiter(limit=2, window=60, storage=storage)

    assert worker_a.hit("client").allowed
    assert worker_b.hit("client").allowed
    assert not worker_a.hit("client").allowed
    assert not worker_b.hit("client").allowed


def test_sub_second_window_rounds_up():
    assert RateLimiter(limit=1, window=0.2).window == 1


def test_headers():
    limiter = RateLimiter(limit=5, window=900)
    headers = limiter.headers(limiter.hit("a"))

    assert headers["RateLimit-Limit"] == "5"
    assert headers["RateLimit-Remaining"] == "4"
    assert 899 <= int(headers["RateLimit-Reset"]) <= 900


def test_reset_clears_counts():
    limiter = RateLimiter(limit=1, window=60)
    limiter.hit("a")
    limiter.reset()
    assert limiter.hit("a").allowed
