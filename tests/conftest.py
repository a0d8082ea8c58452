"""
Shared pytest fixtures.

Every test gets its own tmp data dir, sqlite file and assets dir; store and
API fixtures run once per backend ("sql" and "json").
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from helpers import make_settings
from offerdesk.main import create_app
from offerdesk.store import build_store


@pytest.fixture(params=["sql", "json"])
def backend(request):
    return request.param


@pytest.fixture
def settings(tmp_path, backend):
    return make_settings(tmp_path, backend)


@pytest.fixture
def run_store(settings):
    """
    run_store(scenario) builds a fresh store, awaits scenario(store) and
    closes the store, all inside one event loop.
    """

    def runner(scenario):
        async def main():
            store = build_store(settings)
            await store.init()
            try:
                return await scenario(store)
            finally:
                await store.close()

        return asyncio.run(main())

    return runner


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
