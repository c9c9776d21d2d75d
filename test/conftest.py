from typing import AsyncGenerator, List, Tuple

import pytest
import pytest_asyncio
from actions_server import ActionsServer
from pydantic import SecretStr
from regexp_or_gate.jobs_client import ActionsJobsClient
from regexp_or_gate.models import RetryPolicy, RunIdentity

BASE_URL_TEMPLATE = "http://localhost:{}"


@pytest_asyncio.fixture
async def server(unused_tcp_port_factory) -> AsyncGenerator[Tuple[ActionsServer, int], None]:
    """Start and yield a fake jobs endpoint on a random port."""
    port = unused_tcp_port_factory()
    server_instance = ActionsServer()
    await server_instance.start(port=port)
    try:
        yield server_instance, port
    finally:
        await server_instance.stop()


@pytest.fixture
def run_identity(server) -> RunIdentity:
    _, port = server
    return RunIdentity(
        base_url=BASE_URL_TEMPLATE.format(port),
        owner="octo",
        repo="demo",
        run_id="42",
        auth_token=SecretStr("secret"),
    )


@pytest.fixture
def client(run_identity) -> ActionsJobsClient:
    return ActionsJobsClient(run_identity)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    """Record requested delays instead of waiting."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def policies() -> Tuple[RetryPolicy, RetryPolicy]:
    return (
        RetryPolicy(max_attempts=3, delay_seconds=5),
        RetryPolicy(max_attempts=4, delay_seconds=7),
    )


@pytest.fixture
def offline_client() -> ActionsJobsClient:
    """A client pointed at an address nothing listens on."""
    return ActionsJobsClient(
        RunIdentity(
            base_url="http://localhost:9",
            owner="octo",
            repo="demo",
            run_id="42",
            auth_token=SecretStr("secret"),
        )
    )
