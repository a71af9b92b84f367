import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger
from video_translation_client.clock import monotonic_ms
from video_translation_client.errors import (
    PollCancelledError,
    PollTimeoutError,
    TranslationError,
)
from video_translation_client.models import JobStatus, PollingSession, PollState
from video_translation_client.schedulers import IntervalScheduler

StatusCheck = Callable[[str], Awaitable[Union[JobStatus, str]]]


class CancellationToken:
    """Signals a running poll loop to stop before its next cycle"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class PollLoop:
    """Polls a status check until the job completes, fails or is cancelled.

    Each cycle awaits `check_status(video_id)`. A completed status ends the
    loop, an error status raises `TranslationError`, anything else is treated
    as pending and the loop sleeps for the interval chosen by `scheduler`.
    Failures of `check_status` itself end the loop immediately and are never
    retried here.
    """

    def __init__(
        self,
        check_status: StatusCheck,
        scheduler: IntervalScheduler,
        cancel_token: Optional[CancellationToken] = None,
        on_status_change: Optional[Callable[[PollingSession], Awaitable[Any]]] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.check_status = check_status
        self.scheduler = scheduler
        self.cancel_token = cancel_token or CancellationToken()
        self.on_status_change = on_status_change
        self.timeout = timeout
        self.clock = clock
        self.logger = logger
        self.session: Optional[PollingSession] = None
        self._running = False

    @property
    def state(self) -> PollState:
        if self.session is None:
            return PollState.waiting
        return self.session.state

    async def run(self, video_id: str) -> JobStatus:
        if self._running:
            raise RuntimeError("PollLoop is already polling a job")

        self._running = True
        self.session = PollingSession(video_id=video_id, started_at=self.clock())
        try:
            return await self._poll(self.session)
        except (PollCancelledError, asyncio.CancelledError):
            self.session.state = PollState.cancelled
            self.logger.info(f"Polling of {video_id} cancelled")
            raise
        except Exception as e:
            self.session.state = PollState.failed
            self.logger.error(f"Polling of {video_id} failed: {e!r}")
            raise
        finally:
            self._running = False

    async def _poll(self, session: PollingSession) -> JobStatus:
        while True:
            if self.cancel_token.cancelled:
                raise PollCancelledError(f"Polling of {session.video_id} was cancelled")

            session.state = PollState.polling
            session.attempts += 1
            status = await self.check_status(session.video_id)
            await self._handle_status_change(session, status)

            if status == JobStatus.completed:
                session.state = PollState.completed
                session.result = JobStatus.completed
                self.logger.info(
                    f"Video {session.video_id} completed after {session.attempts} polls"
                )
                return JobStatus.completed

            if status == JobStatus.error:
                session.result = JobStatus.error
                raise TranslationError("Error in video translation.")

            await self._wait_before_next_poll(session)

    async def _handle_status_change(
        self, session: PollingSession, status: Union[JobStatus, str]
    ) -> None:
        """Invoke the status change callback if the status has changed"""
        value = status.value if isinstance(status, JobStatus) else str(status)
        changed = session.last_status != value
        session.last_status = value
        if changed and self.on_status_change is not None:
            self.logger.debug(f"Job status changed to {value}")
            await self.on_status_change(session)

    async def _wait_before_next_poll(self, session: PollingSession) -> None:
        """Sleeps for the scheduled interval unless cancelled first"""
        interval = self.scheduler.next_interval(session)
        session.current_interval = interval

        if self.timeout is not None:
            deadline = session.started_at + self.timeout
            if self.clock() + interval > deadline:
                raise PollTimeoutError(
                    f"Job did not complete within {self.timeout:.0f} ms"
                )

        self.logger.debug(
            f"Polling: status={session.last_status}, next interval={interval:.0f}ms"
        )
        try:
            await asyncio.wait_for(self.cancel_token.wait(), timeout=interval / 1000)
        except asyncio.TimeoutError:
            return
        raise PollCancelledError(f"Polling of {session.video_id} was cancelled")
