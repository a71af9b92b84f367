import random
import threading
from typing import Callable, Dict, Optional

from loguru import logger
from video_translation_client.clock import monotonic_ms
from video_translation_client.errors import (
    ConfigurationError,
    DuplicateIdError,
    InvalidIdError,
    NotFoundError,
)
from video_translation_client.models import Job, JobOutcome, JobStatus


def derive_status(now: float, job: Job) -> JobStatus:
    """Status of a job at time `now`, computed from its creation parameters"""
    if job.outcome is JobOutcome.error:
        return JobStatus.error
    if job.completed or now - job.created_at >= job.total_delay:
        return JobStatus.completed
    return JobStatus.pending


class JobStore:
    """In-memory registry of simulated translation jobs.

    Outcome and duration are drawn once when a job is created. Status is
    evaluated lazily on read, so no background timers are involved.
    """

    def __init__(
        self,
        clock: Callable[[], float] = monotonic_ms,
        rng: Optional[random.Random] = None,
    ):
        self.clock = clock
        self.rng = rng or random.Random()
        self.logger = logger
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def __contains__(self, video_id: str) -> bool:
        return video_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def create(
        self, video_id: str, min_delay: int, max_delay: int, error_rate: float
    ) -> Job:
        """Registers a new job with a random delay and a pre-determined outcome"""
        if not video_id or not isinstance(video_id, str):
            raise InvalidIdError("videoID is required and must be a string")
        if min_delay < 0 or min_delay > max_delay:
            raise ConfigurationError(
                f"Invalid delay range [{min_delay}, {max_delay}]"
            )
        if not 0.0 <= error_rate <= 1.0:
            raise ConfigurationError(f"error_rate must be in [0, 1], got {error_rate}")

        with self._lock:
            if video_id in self._jobs:
                raise DuplicateIdError(
                    f"VideoID '{video_id}' already exists. Please choose a different ID."
                )

            total_delay = self.rng.randint(int(min_delay), int(max_delay))
            outcome = (
                JobOutcome.error if self.rng.random() < error_rate else JobOutcome.pending
            )
            job = Job(
                id=video_id,
                created_at=self.clock(),
                total_delay=total_delay,
                outcome=outcome,
            )
            self._jobs[video_id] = job

        self.logger.info(
            f"Video ID: {video_id}, Delay: {total_delay} ms, Initial Status: {outcome.value}"
        )
        return job

    def get(self, video_id: str) -> Job:
        job = self._jobs.get(video_id) if isinstance(video_id, str) else None
        if job is None:
            raise NotFoundError("Video not found")
        return job

    def get_status(self, video_id: str) -> JobStatus:
        """Returns the current status, recording completion once the delay has passed"""
        job = self.get(video_id)

        with self._lock:
            status = derive_status(self.clock(), job)
            if status is JobStatus.completed and not job.completed:
                job.completed = True
                self.logger.info(f"Video ID: {video_id} completed")

        return status
