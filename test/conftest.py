import random

import pytest
from video_translation_client.job_store import JobStore


class FakeClock:
    """Manually advanced millisecond clock"""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> JobStore:
    """Provide a job store driven by the fake clock and a seeded RNG."""
    return JobStore(clock=clock, rng=random.Random(1234))
