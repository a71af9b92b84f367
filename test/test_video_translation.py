import asyncio
from typing import AsyncGenerator

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from translation_server import TranslationServer
from video_translation_client.config import ServerSettings
from video_translation_client.errors import (
    DuplicateIdError,
    InvalidIdError,
    NotFoundError,
    PollCancelledError,
    TranslationError,
    TransportError,
)
from video_translation_client.models import (
    BackoffConfig,
    Coefficients,
    ExpectedTimeConfig,
    JobStatus,
)
from video_translation_client.poll_loop import CancellationToken
from video_translation_client.schedulers import BackoffScheduler, PredictiveScheduler
from video_translation_client.video_translation_client import VideoTranslationClient

BASE_URL_TEMPLATE = "http://127.0.0.1:{}"


@pytest_asyncio.fixture
async def server() -> AsyncGenerator[TranslationServer, None]:
    """Start and yield a test TranslationServer instance on a free port."""
    settings = ServerSettings(host="127.0.0.1", min_delay=200, max_delay=400, error_rate=0.0)
    server_instance = TranslationServer(settings)
    await server_instance.start(port=0)
    try:
        yield server_instance
    finally:
        await server_instance.stop()


@pytest.fixture
def base_url(server) -> str:
    return BASE_URL_TEMPLATE.format(server.port)


@pytest.fixture
def backoff() -> BackoffScheduler:
    """Provide a fast exponential scheduler for the client."""
    return BackoffScheduler(BackoffConfig(initial_interval=50, stable_interval=200))


@pytest.mark.asyncio
async def test_successful_completion(server, base_url, backoff):
    """Test normal successful completion flow."""
    status_changes = []

    async def status_callback(session):
        status_changes.append(session.last_status)

    async with VideoTranslationClient(base_url, on_status_change=status_callback) as client:
        created = await client.create_job("exp-test")
        result = await client.poll_until_complete("exp-test", backoff)

    assert created.video_id == "exp-test"
    assert "/status?videoID=exp-test" in created.message
    assert result == JobStatus.completed
    assert status_changes == ["pending", "completed"]


@pytest.mark.asyncio
async def test_expected_time_strategy(server, base_url):
    scheduler = PredictiveScheduler(
        ExpectedTimeConfig(
            expected_completion_time=300,
            coefficients=Coefficients(a=1 / 30000, b=0.01, c=20),
            minimum_interval=20,
            maximum_interval=100,
        )
    )

    async with VideoTranslationClient(base_url) as client:
        await client.create_job("expected-test")
        result = await client.poll_until_complete("expected-test", scheduler)

    assert result == JobStatus.completed


@pytest.mark.asyncio
async def test_zero_delay_job_completes_on_first_check(server, base_url):
    server.settings.min_delay = server.settings.max_delay = 0

    client = VideoTranslationClient(base_url)
    await client.create_job("t1")

    assert await client.check_status("t1") == JobStatus.completed


@pytest.mark.asyncio
async def test_error_scenario(server, base_url, backoff):
    """Test error handling with high error rate."""
    server.settings.error_rate = 1.0

    async with VideoTranslationClient(base_url) as client:
        await client.create_job("err")
        assert await client.check_status("err") == JobStatus.error
        with pytest.raises(TranslationError):
            await client.poll_until_complete("err", backoff)


@pytest.mark.asyncio
async def test_duplicate_id(server, base_url):
    async with VideoTranslationClient(base_url) as client:
        await client.create_job("dup")
        first_delay = server.store.get("dup").total_delay

        with pytest.raises(DuplicateIdError):
            await client.create_job("dup")

    assert server.store.get("dup").total_delay == first_delay
    assert len(server.store) == 1


@pytest.mark.asyncio
async def test_missing_id(server, base_url):
    async with VideoTranslationClient(base_url) as client:
        with pytest.raises(InvalidIdError):
            await client.create_job("")


@pytest.mark.asyncio
async def test_unknown_id(server, base_url, backoff):
    async with VideoTranslationClient(base_url) as client:
        with pytest.raises(NotFoundError):
            await client.check_status("missing")
        with pytest.raises(NotFoundError):
            await client.poll_until_complete("missing", backoff)


@pytest.mark.asyncio
async def test_server_unavailable(backoff):
    """Test behavior when server is not available."""
    client = VideoTranslationClient(base_url="http://127.0.0.1:9999")  # Invalid port

    with pytest.raises(TransportError):
        await client.poll_until_complete("anything", backoff)


@pytest.mark.asyncio
async def test_cancel_polling(server, base_url):
    server.settings.min_delay = server.settings.max_delay = 60000
    token = CancellationToken()
    scheduler = BackoffScheduler(BackoffConfig(initial_interval=50, stable_interval=50))

    async with VideoTranslationClient(base_url) as client:
        await client.create_job("cancel-me")
        task = asyncio.create_task(
            client.poll_until_complete("cancel-me", scheduler, cancel_token=token)
        )
        await asyncio.sleep(0.2)
        token.cancel()

        with pytest.raises(PollCancelledError):
            await task


@pytest.mark.asyncio
async def test_multiple_clients(server, base_url, backoff):
    """Test multiple clients polling different jobs simultaneously."""

    async def run_client(video_id):
        async with VideoTranslationClient(base_url) as client:
            await client.create_job(video_id)
            return await client.poll_until_complete(
                video_id, BackoffScheduler(backoff.config)
            )

    results = await asyncio.gather(*[run_client(f"multi-{i}") for i in range(3)])

    assert results == [JobStatus.completed] * 3


@pytest.mark.asyncio
async def test_numeric_id_is_stored_as_string(server, base_url):
    async with aiohttp.ClientSession() as session:
        async with session.post(f"{base_url}/create", json={"videoID": 123}) as response:
            assert response.status == 200
            assert (await response.json())["videoID"] == "123"

    assert "123" in server.store
    async with VideoTranslationClient(base_url) as client:
        assert await client.check_status("123") in (JobStatus.pending, JobStatus.completed)


@pytest.mark.asyncio
@pytest.mark.parametrize("video_id", [["a"], {"id": "a"}, True])
async def test_non_scalar_id_is_rejected(server, base_url, video_id):
    async with aiohttp.ClientSession() as session:
        async with session.post(f"{base_url}/create", json={"videoID": video_id}) as response:
            assert response.status == 400
            assert (await response.json())["code"] == "invalid_id"

    assert len(server.store) == 0


@pytest_asyncio.fixture
async def malformed_server() -> AsyncGenerator[str, None]:
    """Serve status bodies that are not a valid status object."""
    bodies = {"bad-json": "{not json", "scalar": "5", "no-result": '{"state": "pending"}'}

    async def handle_status(request):
        body = bodies[request.query["videoID"]]
        return web.Response(text=body, content_type="application/json")

    app = web.Application()
    app.router.add_get("/status", handle_status)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    try:
        yield BASE_URL_TEMPLATE.format(runner.addresses[0][1])
    finally:
        await runner.cleanup()


@pytest.mark.asyncio
@pytest.mark.parametrize("video_id", ["bad-json", "scalar", "no-result"])
async def test_malformed_status_body_is_transport_error(malformed_server, video_id):
    async with VideoTranslationClient(malformed_server) as client:
        with pytest.raises(TransportError):
            await client.check_status(video_id)
