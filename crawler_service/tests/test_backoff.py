"""Tests for exponential backoff around completion calls."""
import json

import pytest

from crawler_service.analysis.backoff import (
    RetriesExhaustedError,
    RetryConfig,
    TransientCompletionError,
    backoff_delays_ms,
    is_transient,
    retry_with_backoff,
)


class FlakyOperation:
    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or TransientCompletionError("overloaded")
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def test_delay_sequence_doubles_up_to_cap():
    """Delays start at the initial delay and double until the cap."""
    config = RetryConfig(max_attempts=6, initial_delay_ms=1000, max_delay_ms=5000)
    assert backoff_delays_ms(config) == [1000, 2000, 4000, 5000, 5000]


def test_default_config():
    """Defaults are three attempts starting at one second, capped at ten."""
    config = RetryConfig()
    assert (config.max_attempts, config.initial_delay_ms, config.max_delay_ms) == (3, 1000, 10000)
    assert backoff_delays_ms(config) == [1000, 2000]


@pytest.mark.parametrize("failures", [0, 1, 2])
def test_succeeds_after_transient_failures(failures):
    """The operation runs failures + 1 times and sleeps between attempts."""
    sleeps = []
    op = FlakyOperation(failures)
    assert retry_with_backoff(op, RetryConfig(), sleep=sleeps.append) == "ok"
    assert op.calls == failures + 1
    assert sleeps == [1.0, 2.0][:failures]


def test_exhaustion_raises_after_max_attempts():
    """Transient failures past max_attempts raise RetriesExhaustedError."""
    sleeps = []
    op = FlakyOperation(10)
    with pytest.raises(RetriesExhaustedError) as excinfo:
        retry_with_backoff(op, RetryConfig(max_attempts=3), sleep=sleeps.append)
    assert op.calls == 3
    assert sleeps == [1.0, 2.0]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, TransientCompletionError)


def test_fatal_errors_are_not_retried():
    """Anything that is not transient propagates on the first failure."""
    sleeps = []
    op = FlakyOperation(5, error=KeyError("boom"))
    with pytest.raises(KeyError):
        retry_with_backoff(op, RetryConfig(), sleep=sleeps.append)
    assert op.calls == 1
    assert sleeps == []


def test_json_decode_errors_are_transient():
    """Malformed JSON counts as transient."""
    try:
        json.loads("{not json")
    except json.JSONDecodeError as e:
        assert is_transient(e)
    assert is_transient(TransientCompletionError("x"))
    assert not is_transient(ValueError("x"))


def test_zero_attempts_is_rejected():
    """A config without attempts is a programming error."""
    with pytest.raises(ValueError):
        retry_with_backoff(lambda: "ok", RetryConfig(max_attempts=0))
