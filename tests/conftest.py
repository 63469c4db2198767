import httpx
import pytest

from apitransport.backoff import BackoffPolicy
from apitransport.config import TransportSettings
from apitransport.executor import RequestExecutor


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FixedRandom:
    """Random source that always returns the same sample."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


class ScriptedServer:
    """MockTransport handler that replays a list of status codes and records requests."""

    def __init__(self, statuses, body="ok", headers=None):
        self.statuses = list(statuses)
        self.body = body
        self.headers = headers or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.statuses)) - 1
        return httpx.Response(self.statuses[index], text=self.body, headers=self.headers)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_executor(sleep_recorder):
    def _make(handler, rng_value=0.5, **settings):
        transport = httpx.MockTransport(handler)
        client = httpx.AsyncClient(transport=transport, follow_redirects=False)
        backoff = BackoffPolicy(
            base_delay=1.0,
            max_delay=100.0,
            rng=FixedRandom(rng_value),
            sleep=sleep_recorder,
        )
        return RequestExecutor(
            settings=TransportSettings(**settings),
            client=client,
            backoff=backoff,
        )

    return _make
