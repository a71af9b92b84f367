from typing import Callable, Optional, Protocol

from loguru import logger
from video_translation_client.clock import monotonic_ms
from video_translation_client.models import (
    BackoffConfig,
    ExpectedTimeConfig,
    PollingSession,
)


class IntervalScheduler(Protocol):
    def next_interval(self, session: PollingSession) -> float: ...


class BackoffScheduler:
    """Doubles the polling interval after every pending status, up to a ceiling.

    The first wait equals `initial_interval`. Intervals never shrink and no
    jitter is applied.
    """

    def __init__(self, config: Optional[BackoffConfig] = None):
        self.config = config or BackoffConfig()

    def next_interval(self, session: PollingSession) -> float:
        if session.current_interval is None:
            return self.config.initial_interval
        return min(session.current_interval * 2, self.config.stable_interval)


class PredictiveScheduler:
    """Shrinks the polling interval as the expected completion time approaches.

    The interval is I(t) = a*t^2 + b*t + c where t is the time remaining until
    the expected completion, clamped to [minimum_interval, maximum_interval].
    Once the expected time has passed, t stays at 0 and so does the interval
    at its clamped floor.
    """

    def __init__(
        self,
        config: ExpectedTimeConfig,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.config = config
        self.clock = clock
        self.job_start_time = (
            config.job_start_time if config.job_start_time is not None else clock()
        )
        self.logger = logger

    def interval_at(self, elapsed: float) -> float:
        time_remaining = max(0.0, self.config.expected_completion_time - elapsed)
        coefficients = self.config.coefficients
        raw = (
            coefficients.a * time_remaining**2
            + coefficients.b * time_remaining
            + coefficients.c
        )
        return max(
            self.config.minimum_interval, min(raw, self.config.maximum_interval)
        )

    def next_interval(self, session: PollingSession) -> float:
        elapsed = self.clock() - self.job_start_time
        interval = self.interval_at(elapsed)
        self.logger.debug(
            f"Elapsed {elapsed:.0f}ms of expected "
            f"{self.config.expected_completion_time:.0f}ms, next interval {interval:.0f}ms"
        )
        return interval
