import json

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rate_limited_proxy.db import init_models
from rate_limited_proxy.services.relay import OriginClient


class RecordingOrigin:
    """Stands in for the origin; records every request it receives."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    @property
    def last_message(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_models(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def origin():
    return RecordingOrigin()


@pytest_asyncio.fixture
async def origin_client(origin):
    client = OriginClient(transport=httpx.MockTransport(origin))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def origin_factory():
    """Build ``(origin, client)`` pairs answering with a given handler or status."""

    clients: list[OriginClient] = []

    def build(status_code: int = 200, *, handler=None, config=None):
        origin = RecordingOrigin(status_code)
        client = OriginClient(config, transport=httpx.MockTransport(handler or origin))
        clients.append(client)
        return origin, client

    yield build
    for client in clients:
        await client.close()
