from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from video_translation_client.errors import ConfigurationError


class JobStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    error = "error"


class JobOutcome(str, Enum):
    """Disposition fixed when a job is created"""

    pending = "pending"
    error = "error"


class PollState(str, Enum):
    waiting = "waiting"
    polling = "polling"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class Job(BaseModel):
    id: str = Field(frozen=True)
    created_at: float = Field(frozen=True)
    total_delay: int = Field(frozen=True)
    outcome: JobOutcome = Field(frozen=True)
    completed: bool = False


class PollingSession(BaseModel):
    video_id: str
    started_at: float
    state: PollState = PollState.waiting
    current_interval: Optional[float] = None
    attempts: int = 0
    last_status: Optional[str] = None
    result: Optional[JobStatus] = None


class BackoffConfig(BaseModel):
    initial_interval: float = 1000.0
    stable_interval: float = 8000.0

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.initial_interval <= 0 or self.stable_interval <= 0:
            raise ConfigurationError("Backoff intervals must be positive")
        if self.initial_interval > self.stable_interval:
            raise ConfigurationError(
                "initial_interval must not exceed stable_interval"
            )
        return self


class Coefficients(BaseModel):
    a: float
    b: float
    c: float


class ExpectedTimeConfig(BaseModel):
    expected_completion_time: Optional[float] = None
    coefficients: Coefficients
    job_start_time: Optional[float] = None
    minimum_interval: float = 500.0
    maximum_interval: float = 3000.0

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.expected_completion_time is None or self.expected_completion_time <= 0:
            raise ConfigurationError("Expected completion time must be provided")
        if self.minimum_interval > self.maximum_interval:
            raise ConfigurationError(
                "minimum_interval must not exceed maximum_interval"
            )
        return self


class JobCreated(BaseModel):
    video_id: str = Field(alias="videoID")
    message: str
