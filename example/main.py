import asyncio

from translation_server import TranslationServer
from video_translation_client.config import ServerSettings
from video_translation_client.errors import TranslationError
from video_translation_client.models import (
    BackoffConfig,
    Coefficients,
    ExpectedTimeConfig,
)
from video_translation_client.schedulers import BackoffScheduler, PredictiveScheduler
from video_translation_client.video_translation_client import VideoTranslationClient

STRATEGIES = ("exponential", "expected-time")


async def status_changed(session):
    print(f"Status of {session.video_id} changed to: {session.last_status}")
    print(f"Polls so far: {session.attempts}")


def make_scheduler(name):
    """Builds a fresh scheduler; call it after the job is created so the
    expected-time strategy measures from the job's own start"""
    if name == "exponential":
        return BackoffScheduler(
            BackoffConfig(initial_interval=1000, stable_interval=8000)
        )
    return PredictiveScheduler(
        ExpectedTimeConfig(
            expected_completion_time=15000,
            coefficients=Coefficients(a=1 / 30000, b=0.01, c=500),
            minimum_interval=500,
            maximum_interval=3000,
        )
    )


async def main():
    PORT = 8000
    settings = ServerSettings(port=PORT, min_delay=5000, max_delay=20000, error_rate=0.1)
    server = TranslationServer(settings)
    await server.start()
    print(f"Server started on http://localhost:{PORT}")

    try:
        async with VideoTranslationClient(
            f"http://localhost:{PORT}", on_status_change=status_changed
        ) as client:
            for name in STRATEGIES:
                video_id = f"demo-{name}"
                await client.create_job(video_id)
                scheduler = make_scheduler(name)
                try:
                    final_status = await client.poll_until_complete(
                        video_id, scheduler, timeout=60000
                    )
                    print(f"[{name}] Final status: {final_status.value}")
                except TimeoutError as e:
                    print(f"[{name}] Polling timed out: {e}")
                except TranslationError as e:
                    print(f"[{name}] Translation failed: {e}")
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
