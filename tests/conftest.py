import asyncio
import inspect
from unittest.mock import AsyncMock, MagicMock

import pytest
from sse_starlette.sse import AppStatus

from coingecko_relay.coingecko import PriceResult


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


def pytest_addoption(parser):
    parser.addini("asyncio_mode", "asyncio execution mode compatibility")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            signature = inspect.signature(test_function)
            filtered_args = {
                name: value
                for name, value in pyfuncitem.funcargs.items()
                if name in signature.parameters
            }
            loop.run_until_complete(test_function(**filtered_args))
        finally:
            loop.run_until_complete(asyncio.sleep(0))
            loop.close()
            asyncio.set_event_loop(None)
        return True
    return None


@pytest.fixture(autouse=True)
def reset_sse_app_status(monkeypatch):
    # sse-starlette keeps a module-level exit event bound to the first event loop;
    # every TestClient runs its own loop.
    if getattr(AppStatus, "should_exit_event", None) is not None:
        monkeypatch.setattr(AppStatus, "should_exit_event", None)


@pytest.fixture
def price_client():
    """CoinGecko client double; tests set ``fetch_price.return_value``."""
    client = MagicMock()
    client.fetch_price = AsyncMock(return_value=PriceResult(price=65000))
    client.close = AsyncMock()
    return client
