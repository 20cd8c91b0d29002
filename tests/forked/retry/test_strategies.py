"""
Tests for the retry strategies (retry/always.py, retry/backoff.py).

Strategies run with an injected clock and sleeper so backoff delays can be
observed without waiting.
"""

from unittest.mock import Mock

import pytest

from forked.retry import Always, ExponentialBackoff
from forked.shutdown import StopIndicator


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, secs: float) -> None:
        self.sleeps.append(secs)
        self.now += secs


def failing_until(stop: StopIndicator, failures: int):
    """Work function that raises, setting stop after the given failures."""
    calls = {"n": 0}

    def work():
        calls["n"] += 1
        if calls["n"] >= failures:
            stop.set()
        raise RuntimeError(f"failure {calls['n']}")

    work.calls = calls  # type: ignore[attr-defined]
    return work


# =============================================================================
# Test Always
# =============================================================================


@pytest.mark.unit
class TestAlways:
    """Test the Always strategy."""

    def test_retries_back_to_back(self, mock_logger):
        clock = FakeClock()
        on_error = Mock()
        stop = StopIndicator()
        strategy = Always(mock_logger, on_error, clock=clock, sleeper=clock.sleep)

        strategy.run(stop, failing_until(stop, 5))

        assert strategy.attempts == 5
        assert strategy.failures == 5
        assert on_error.call_count == 5
        assert clock.sleeps == []

    def test_on_error_receives_exception(self, mock_logger):
        on_error = Mock()
        stop = StopIndicator()

        Always(mock_logger, on_error).run(stop, failing_until(stop, 1))

        (error,), _ = on_error.call_args
        assert isinstance(error, RuntimeError)
        assert str(error) == "failure 1"

    def test_failure_logged(self, mock_logger):
        stop = StopIndicator()

        Always(mock_logger).run(stop, failing_until(stop, 1))

        mock_logger.error.assert_called_once_with(
            "work failed", extra={"error": "RuntimeError: failure 1", "attempt": 1}
        )

    def test_normal_return_calls_again(self, mock_logger):
        stop = StopIndicator()
        calls = []

        def work():
            calls.append(1)
            if len(calls) == 3:
                stop.set()

        Always(mock_logger).run(stop, work)

        assert len(calls) == 3

    def test_already_stopped_never_calls_work(self, mock_logger):
        stop = StopIndicator()
        stop.set()
        work = Mock()

        Always(mock_logger).run(stop, work)

        work.assert_not_called()

    def test_raising_on_error_does_not_stop_loop(self, mock_logger):
        stop = StopIndicator()
        on_error = Mock(side_effect=ValueError("bad callback"))

        strategy = Always(mock_logger, on_error)
        strategy.run(stop, failing_until(stop, 3))

        assert strategy.failures == 3
        assert mock_logger.exception.call_count == 3

    def test_base_exception_propagates(self, mock_logger):
        def work():
            raise KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            Always(mock_logger).run(StopIndicator(), work)


# =============================================================================
# Test ExponentialBackoff
# =============================================================================


def backoff(lg, clock, **kwargs):
    return ExponentialBackoff(lg, clock=clock, sleeper=clock.sleep, **kwargs)


@pytest.mark.unit
class TestExponentialBackoff:
    """Test the ExponentialBackoff strategy."""

    def test_defaults(self, mock_logger):
        strategy = ExponentialBackoff(mock_logger)

        assert strategy.base_delay == 1.0
        assert strategy.factor == 2.0
        assert strategy.max_delay == 60.0

    def test_delays_double_up_to_cap(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        on_error = Mock()
        strategy = backoff(mock_logger, clock, on_error=on_error, max_delay=8.0)

        strategy.run(stop, failing_until(stop, 7))

        # No delay after the final failure: stop was already set
        assert list(strategy.delays) == [1.0, 2.0, 4.0, 8.0, 8.0, 8.0]
        assert on_error.call_count == 7
        assert clock.now == pytest.approx(31.0)

    def test_sleep_is_sliced(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        strategy = backoff(mock_logger, clock, sleep_granularity=0.25)

        strategy.run(stop, failing_until(stop, 2))

        assert clock.sleeps == [0.25] * 4

    def test_stop_during_sleep_returns_early(self, mock_logger):
        stop = StopIndicator()
        clock = FakeClock()

        def sleeper(secs):
            clock.sleep(secs)
            stop.set()

        strategy = ExponentialBackoff(
            mock_logger, base_delay=30.0, clock=clock, sleeper=sleeper
        )

        strategy.run(stop, Mock(side_effect=RuntimeError("down")))

        assert strategy.attempts == 1
        assert clock.now <= 0.1 + 1e-9

    def test_brief_successes_do_not_reset_growth(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        calls = {"n": 0}

        def work():
            calls["n"] += 1
            if calls["n"] >= 8:
                stop.set()
            if calls["n"] % 2:
                raise RuntimeError("odd call")

        strategy = backoff(mock_logger, clock)
        strategy.run(stop, work)

        assert list(strategy.delays) == [1.0, 2.0, 4.0, 8.0]

    def test_sustained_success_resets_growth(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        calls = {"n": 0}
        counts = []

        def work():
            calls["n"] += 1
            if calls["n"] in (2, 3):
                clock.now += 30.0  # two healthy runs, 60 seconds in total
                return
            if calls["n"] == 4:
                counts.append(strategy.consecutive)
            if calls["n"] >= 5:
                stop.set()
            raise RuntimeError("down")

        strategy = backoff(mock_logger, clock, reset_after=60.0)
        strategy.run(stop, work)

        assert counts == [0]
        assert list(strategy.delays) == [1.0, 1.0]

    def test_success_shorter_than_reset_after_keeps_count(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        calls = {"n": 0}

        def work():
            calls["n"] += 1
            if calls["n"] == 2:
                clock.now += 59.0
                return
            if calls["n"] >= 3:
                stop.set()
            raise RuntimeError("down")

        strategy = backoff(mock_logger, clock, reset_after=60.0)
        strategy.run(stop, work)

        assert strategy.consecutive == 2

    def test_default_on_error_is_noop(self, mock_logger):
        stop = StopIndicator()
        strategy = ExponentialBackoff(mock_logger, sleeper=lambda secs: None)

        strategy.run(stop, failing_until(stop, 1))

        assert strategy.failures == 1
        mock_logger.exception.assert_not_called()

    def test_long_running_attempt_resets_growth(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        calls = {"n": 0}

        def work():
            calls["n"] += 1
            if calls["n"] == 3:
                clock.now += 120.0  # healthy for two minutes, then fails
            if calls["n"] >= 4:
                stop.set()
            raise RuntimeError("down")

        strategy = backoff(mock_logger, clock, reset_after=60.0)
        strategy.run(stop, work)

        assert list(strategy.delays) == [1.0, 2.0, 1.0]

    def test_backoff_logged(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()

        backoff(mock_logger, clock).run(stop, failing_until(stop, 2))

        mock_logger.info.assert_called_once_with(
            "backing off before retry", extra={"delay": "1.00s", "failures": 1}
        )

    def test_delay_for_zero_failures(self, mock_logger):
        assert ExponentialBackoff(mock_logger).delay_for(0) == 0.0

    def test_delay_for_overflow_is_capped(self, mock_logger):
        strategy = ExponentialBackoff(mock_logger, factor=10.0, max_delay=5.0)

        assert strategy.delay_for(100000) == 5.0

    def test_delay_history_bounded(self, mock_logger):
        clock = FakeClock()
        stop = StopIndicator()
        strategy = backoff(mock_logger, clock, base_delay=0.01, max_delay=0.01)

        strategy.run(stop, failing_until(stop, ExponentialBackoff.HISTORY_SIZE + 50))

        assert len(strategy.delays) == ExponentialBackoff.HISTORY_SIZE
