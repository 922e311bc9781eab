"""Tests for BackoffPolicy."""

import random

import pytest

from app.feeds.backoff import BackoffPolicy


class TestBackoffPolicy:
    """Unit tests for reconnect delays."""

    def test_second_attempt_waits_twice_base(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0)
        assert policy.raw_delay(2) == 2.0

    def test_doubles_per_attempt(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0)
        assert [policy.raw_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_capped_at_max(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0)
        assert policy.raw_delay(6) == 30.0
        assert policy.raw_delay(1000) == 30.0

    def test_raw_sequence_non_decreasing_and_bounded(self):
        """Raw delays never shrink and never exceed the cap."""
        for base, cap in [(0.1, 5.0), (1.0, 30.0), (2.5, 7.0), (3.0, 1.0)]:
            policy = BackoffPolicy(base_delay=base, max_delay=cap)
            delays = [policy.raw_delay(n) for n in range(1, 40)]
            assert all(a <= b for a, b in zip(delays, delays[1:]))
            assert max(delays) <= cap

    def test_jitter_within_ten_percent(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0)
        rng = random.Random(42)
        for attempt in range(1, 20):
            raw = policy.raw_delay(attempt)
            for _ in range(50):
                delay = policy.delay(attempt, rng)
                assert raw * 0.9 <= delay <= raw * 1.1

    def test_jitter_goes_both_ways(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0)
        rng = random.Random(7)
        delays = [policy.delay(2, rng) for _ in range(200)]
        assert min(delays) < 2.0 < max(delays)

    def test_zero_jitter_is_exact(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=30.0, jitter=0.0)
        assert policy.delay(3) == 4.0

    def test_exhausted(self):
        policy = BackoffPolicy(max_attempts=5)
        assert not policy.exhausted(4)
        assert policy.exhausted(5)

    def test_from_millis(self):
        policy = BackoffPolicy.from_millis(1000, 30000, 5)
        assert policy.base_delay == 1.0
        assert policy.max_delay == 30.0
        assert policy.max_attempts == 5

    def test_attempt_must_be_positive(self):
        with pytest.raises(ValueError):
            BackoffPolicy().raw_delay(0)

    @pytest.mark.parametrize(
        "kwargs",
        [{"base_delay": 0}, {"max_delay": -1}, {"max_attempts": 0}, {"jitter": 1.5}],
    )
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            BackoffPolicy(**kwargs)
