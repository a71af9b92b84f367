import asyncio
import sys
from typing import Optional

from aiohttp import web
from loguru import logger
from video_translation_client.config import ServerSettings
from video_translation_client.errors import (
    DuplicateIdError,
    InvalidIdError,
    NotFoundError,
)
from video_translation_client.job_store import JobStore


class TranslationServer:
    """Simulated video translation backend.

    POST /create registers a job with a random processing delay and an outcome
    fixed up front (completed after the delay, or error). GET /status reports
    the job's current status.
    """

    def __init__(
        self,
        settings: Optional[ServerSettings] = None,
        store: Optional[JobStore] = None,
    ):
        self.settings = settings or ServerSettings()
        self.store = store or JobStore()
        self.app = web.Application()
        self.app.router.add_post("/create", self.handle_create)
        self.app.router.add_get("/status", self.handle_status)
        self.logger = logger
        self.runner: Optional[web.AppRunner] = None
        self.port: Optional[int] = None

    async def handle_create(self, request):
        try:
            body = await request.json()
        except ValueError:
            body = {}
        video_id = body.get("videoID") if isinstance(body, dict) else None
        # Numeric ids are accepted and stored under their query-string form
        if isinstance(video_id, (int, float)) and not isinstance(video_id, bool):
            video_id = str(video_id)
        self.logger.info(f"Received POST /create request for {video_id!r}")

        try:
            self.store.create(
                video_id,
                self.settings.min_delay,
                self.settings.max_delay,
                self.settings.error_rate,
            )
        except InvalidIdError:
            return web.json_response(
                {"error": "videoID must be a non-empty string or number", "code": "invalid_id"},
                status=400,
            )
        except DuplicateIdError as e:
            return web.json_response(
                {"error": str(e), "code": "duplicate_id"}, status=400
            )

        return web.json_response(
            {
                "videoID": video_id,
                "message": f"Video translation added. Check status using /status?videoID={video_id}",
            }
        )

    async def handle_status(self, request):
        video_id = request.query.get("videoID")

        try:
            status = self.store.get_status(video_id)
        except NotFoundError:
            self.logger.info(f"Status requested for unknown video {video_id!r}")
            return web.json_response(
                {"error": "Video not found", "code": "not_found"}, status=404
            )

        self.logger.debug(f"Returning {status.value} status for {video_id}")
        return web.json_response({"result": status.value})

    async def start(self, host: Optional[str] = None, port: Optional[int] = None):
        host = host or self.settings.host
        port = self.settings.port if port is None else port

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()
        # Port 0 binds a free port; report the one actually chosen
        self.port = self.runner.addresses[0][1]
        self.logger.info(f"Server started on port {self.port}")
        return site

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("Server stopped")


async def serve(settings: ServerSettings) -> None:
    server = TranslationServer(settings)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    settings = ServerSettings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
