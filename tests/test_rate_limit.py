from healing_hub.apps.api.deps import rate_limit as rate_limit_module
from healing_hub.apps.api.deps.rate_limit import RateLimiter


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_sliding_window_allows_again_after_expiry(monkeypatch):
    clock = _Clock()
    monkeypatch.setattr(rate_limit_module.time, "monotonic", clock)
    limiter = RateLimiter("window_check", max_requests=2, window_seconds=60)

    assert limiter._allow_memory("203.0.113.9")
    assert limiter._allow_memory("203.0.113.9")
    assert not limiter._allow_memory("203.0.113.9")
    assert limiter._allow_memory("198.51.100.7")

    clock.now += 60
    assert limiter._allow_memory("203.0.113.9")


def test_idle_clients_are_dropped(monkeypatch):
    clock = _Clock()
    monkeypatch.setattr(rate_limit_module.time, "monotonic", clock)
    monkeypatch.setattr(rate_limit_module, "SWEEP_THRESHOLD", 3)
    limiter = RateLimiter("sweep_check", max_requests=5, window_seconds=10)

    for index in range(3):
        limiter._allow_memory(f"10.0.0.{index}")
    assert limiter.tracked_clients == 3

    clock.now += 11
    limiter._allow_memory("10.0.0.200")
    assert limiter.tracked_clients == 1
