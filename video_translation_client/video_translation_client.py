import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import aiohttp
from loguru import logger
from video_translation_client.errors import (
    DuplicateIdError,
    InvalidIdError,
    NotFoundError,
    TransportError,
)
from video_translation_client.models import JobCreated, JobStatus, PollingSession
from video_translation_client.poll_loop import CancellationToken, PollLoop
from video_translation_client.schedulers import IntervalScheduler

_CREATE_ERRORS = {
    "invalid_id": InvalidIdError,
    "duplicate_id": DuplicateIdError,
}
_KNOWN_STATUSES = {status.value for status in JobStatus}


class VideoTranslationClient:
    def __init__(
        self,
        base_url: str,
        request_timeout: float = 10.0,
        on_status_change: Optional[Callable[[PollingSession], Awaitable[Any]]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.logger = logger
        self.on_status_change = on_status_change
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "VideoTranslationClient":
        self._session = self._new_session()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.request_timeout)
        )

    @asynccontextmanager
    async def _client_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Yields the shared session, or a short-lived one outside `async with`"""
        if self._session is not None:
            yield self._session
            return
        async with self._new_session() as session:
            yield session

    @staticmethod
    async def _error_payload(response: aiohttp.ClientResponse) -> dict:
        try:
            payload = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            return {"error": await response.text()}
        return payload if isinstance(payload, dict) else {"error": str(payload)}

    async def create_job(self, video_id: str) -> JobCreated:
        """Asks the server to start a translation job under `video_id`"""
        url = f"{self.base_url}/create"

        try:
            async with self._client_session() as session:
                async with session.post(url, json={"videoID": video_id}) as response:
                    if response.status == 400:
                        payload = await self._error_payload(response)
                        error_cls = _CREATE_ERRORS.get(payload.get("code"), InvalidIdError)
                        raise error_cls(payload.get("error", "Invalid request"))
                    response.raise_for_status()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Error creating job at {url}: {e!r}")
            raise TransportError(f"Error creating job: {e}") from e

        self.logger.info(f"Created translation job {video_id}")
        return JobCreated.model_validate(data)

    async def check_status(self, video_id: str) -> Union[JobStatus, str]:
        """Fetches the status of a job from the server"""
        url = f"{self.base_url}/status"

        try:
            async with self._client_session() as session:
                async with session.get(url, params={"videoID": video_id}) as response:
                    if response.status == 404:
                        payload = await self._error_payload(response)
                        raise NotFoundError(payload.get("error", "Video not found"))
                    response.raise_for_status()
                    data = await response.json()
        except aiohttp.ClientResponseError as e:
            self.logger.error(f"HTTP error {e.status} at {url}: {e.message}")
            raise TransportError(f"Error checking status: {e.message}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Error checking status at {url}: {e!r}")
            raise TransportError(f"Error checking status: {e}") from e
        except ValueError as e:
            self.logger.error(f"Invalid JSON in status response from {url}: {e}")
            raise TransportError(f"Malformed status response from {url}") from e

        if not isinstance(data, dict) or "result" not in data:
            raise TransportError(f"Malformed status response from {url}: {data}")
        result = data["result"]
        if result in _KNOWN_STATUSES:
            return JobStatus(result)
        self.logger.warning(f"Unrecognised status {result!r} for {video_id}")
        return result

    async def poll_until_complete(
        self,
        video_id: str,
        scheduler: IntervalScheduler,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> JobStatus:
        """Poll the status endpoint until job completion or error, pacing requests with `scheduler`"""
        poll_loop = PollLoop(
            self.check_status,
            scheduler,
            cancel_token=cancel_token,
            on_status_change=self.on_status_change,
            timeout=timeout,
        )
        return await poll_loop.run(video_id)
