"""Pytest configuration helpers.

This conftest ensures the project root is on `sys.path` so tests can import
the `jimeng_client` package regardless of how pytest is invoked, and provides a
scripted fake vendor served through `httpx.MockTransport`.
"""
import json
import os
import sys
from collections import defaultdict

import httpx
import pytest
import pytest_asyncio


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from jimeng_client import ClientOptions, Credentials, JimengClient  # noqa: E402

SUBMIT = "CVSync2AsyncSubmitTask"
GET_RESULT = "CVSync2AsyncGetResult"
PROCESS = "CVProcess"
UPLOAD = "CVUploadImages"


def ok(data, **extra):
    return 200, {"code": 10000, "status": 10000, "message": "Success", "data": data, **extra}


def task_status(status, **fields):
    return ok({"status": status, **fields})


class FakeVendor:
    """Answers each Action from its own queue; the last queued answer repeats."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._queues: dict[str, list] = defaultdict(list)

    def queue(self, action, *responses):
        self._queues[action].extend(responses)

    def calls(self, action):
        return [r for r in self.requests if r.url.params.get("Action") == action]

    def body(self, request):
        return json.loads(request.content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        action = request.url.params.get("Action")
        queue = self._queues.get(action)
        if not queue:
            raise AssertionError(f"unexpected call: {action}")
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        status, body = answer
        return httpx.Response(status, json=body)


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def credentials():
    return Credentials(access_key="AKTEST", secret_key="SKTEST")


@pytest.fixture
def vendor():
    return FakeVendor()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest_asyncio.fixture
async def make_client(credentials, vendor, sleeps):
    created = []

    def _make(**option_overrides):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(vendor.handler))
        created.append(http_client)
        return JimengClient(
            credentials,
            ClientOptions(**option_overrides),
            http_client=http_client,
            sleep=sleeps,
        )

    yield _make
    for http_client in created:
        await http_client.aclose()


@pytest.fixture
def client(make_client):
    return make_client()
