import pytest

from statuswatch.ratelimit import FixedWindowRateLimiter, RateLimitDecision


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestFixedWindow:
    def test_sixty_first_request_is_rejected(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=60, window_seconds=60, clock=clock)

        for _ in range(60):
            assert limiter.check("10.0.0.1").allowed
        clock.advance(15)
        decision = limiter.check("10.0.0.1")

        assert decision.allowed is False
        assert decision.count == 61
        assert 0 < decision.retry_after <= 60
        assert decision.retry_after_header == "45"

    def test_window_expiry_starts_fresh_count(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        for _ in range(3):
            limiter.check("10.0.0.1")

        clock.advance(61)
        decision = limiter.check("10.0.0.1")

        assert decision.allowed is True
        assert decision.count == 1

    def test_window_is_fixed_not_sliding(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.check("a")
        clock.advance(59)
        limiter.check("a")
        clock.advance(2)

        # first window opened at t=0 and has ended, so this opens a new one
        assert limiter.check("a").count == 1

    def test_clients_are_counted_separately(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.allow("a")
        assert not limiter.allow("a")
        assert limiter.allow("b")

    def test_reset_forgets_all_clients(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.check("a")
        limiter.check("a")

        limiter.reset()

        assert len(limiter) == 0
        assert limiter.allow("a")


class TestBoundedRecords:
    def test_expired_records_are_swept_first(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=60, max_clients=2, clock=clock)
        limiter.check("a")
        limiter.check("b")
        clock.advance(61)

        limiter.check("c")

        assert len(limiter) == 1

    def test_least_recently_seen_client_is_evicted(self, clock):
        limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, max_clients=2, clock=clock)
        limiter.check("a")
        limiter.check("b")
        limiter.check("a")  # "a" is now over its limit and most recently seen

        limiter.check("c")

        assert len(limiter) == 2
        # "a" is still tracked and still limited; "b" was dropped
        assert not limiter.allow("a")
        assert len(limiter) == 2

    def test_zero_capacity_does_not_hang(self, clock):
        limiter = FixedWindowRateLimiter(max_clients=0, clock=clock)
        assert limiter.allow("a")


class TestDecision:
    @pytest.mark.parametrize("remaining,header", [(0.2, "1"), (1.0, "1"), (59.1, "60")])
    def test_retry_after_rounds_up_to_whole_seconds(self, remaining, header):
        assert RateLimitDecision(False, 61, remaining).retry_after_header == header

    def test_allowed_decision_has_no_header(self):
        assert RateLimitDecision(True, 1).retry_after_header is None
