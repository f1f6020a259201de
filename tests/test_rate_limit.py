from bravebooks.services.rate_limit import RateLimiter, client_ip


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_fifth_failure_allowed_sixth_denied():
    clock = FakeClock()
    limiter = RateLimiter("login:email", 5, 15, clock=clock, action="login attempts")
    key = "login:email:a@x.com"

    for _ in range(5):
        assert limiter.check(key).allowed
        limiter.record_failed_attempt(key)

    denied = limiter.check(key)
    assert not denied.allowed
    assert denied.message == "Too many login attempts. Please try again in 15 minutes."


def test_window_elapsing_resets_counter():
    clock = FakeClock()
    limiter = RateLimiter("login:email", 5, 15, clock=clock)
    key = "k"
    for _ in range(5):
        limiter.record_failed_attempt(key)
    assert not limiter.check(key).allowed

    clock.advance(15 * 60 + 1)
    assert limiter.check(key).allowed
    assert limiter.record_failed_attempt(key) == 1


def test_retry_message_counts_down():
    clock = FakeClock()
    limiter = RateLimiter("reset:ip", 1, 60, clock=clock, action="password reset requests")
    limiter.record_failed_attempt("ip")
    clock.advance(59 * 60 + 30)
    result = limiter.check("ip")
    assert not result.allowed
    assert result.retry_after == 30
    assert result.message.endswith("1 minute.")


def test_reset_clears_key_only():
    limiter = RateLimiter("x", 1, 15, clock=FakeClock())
    limiter.record_failed_attempt("a")
    limiter.record_failed_attempt("b")
    limiter.reset("a")
    assert limiter.check("a").allowed
    assert not limiter.check("b").allowed


def test_max_attempts_can_follow_settings():
    limit = {"value": 2}
    limiter = RateLimiter("x", lambda: limit["value"], 15, clock=FakeClock())
    limiter.record_failed_attempt("k")
    limiter.record_failed_attempt("k")
    assert not limiter.check("k").allowed
    limit["value"] = 3
    assert limiter.check("k").allowed


def test_client_ip_prefers_forwarded_headers():
    assert client_ip({"x-forwarded-for": "1.2.3.4, 10.0.0.1"}) == "1.2.3.4"
    assert client_ip({"x-real-ip": "5.6.7.8"}) == "5.6.7.8"
    assert client_ip({}, "9.9.9.9") == "9.9.9.9"
    assert client_ip({}) == "unknown"


def test_expired_windows_are_dropped():
    clock = FakeClock()
    limiter = RateLimiter("reset:ip", 3, 60, clock=clock)
    for ip in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
        limiter.record_failed_attempt(f"reset:ip:{ip}")
    assert len(limiter) == 3

    clock.advance(60 * 60 + 1)
    limiter.record_failed_attempt("reset:ip:10.0.0.4")

    assert len(limiter) == 1
    assert limiter.count("reset:ip:10.0.0.1") == 0
