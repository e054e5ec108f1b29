# tests/core/test_service_base.py
"""
Tests for the store lifecycle base class.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from laravel_session.core.exceptions import ConfigurationError, StoreError
from laravel_session.core.service_base import BaseService


class FakeService(BaseService[dict]):
    def __init__(self, config=None, factory=None):
        super().__init__(config)
        self.factory = factory or AsyncMock(return_value=object())
        self.cleanup = AsyncMock()

    async def _initialize_client(self):
        return await self.factory()

    async def health_check(self):
        return {"healthy": self.is_initialized, "status": "ok"}

    async def _cleanup(self):
        await self.cleanup()


async def test_lazy_and_idempotent():
    service = FakeService({})

    assert service.is_initialized is False
    await service.initialize()
    await service.initialize()

    assert service.is_initialized is True
    service.factory.assert_awaited_once()


async def test_concurrent_first_calls_share_one_client():
    calls = []

    async def slow_factory():
        calls.append(1)
        await asyncio.sleep(0.01)
        return object()

    service = FakeService({}, factory=slow_factory)

    await asyncio.gather(*(service.initialize() for _ in range(5)))

    assert len(calls) == 1


async def test_missing_config():
    with pytest.raises(ConfigurationError):
        await FakeService(None).initialize()


async def test_failure_is_wrapped():
    service = FakeService({}, factory=AsyncMock(side_effect=OSError("refused")))

    with pytest.raises(StoreError) as exc_info:
        await service.initialize()

    assert exc_info.value.operation == "initialize"
    assert isinstance(exc_info.value.__cause__, OSError)
    assert service.is_initialized is False


def test_client_requires_initialize():
    with pytest.raises(StoreError, match="not initialized"):
        FakeService({}).client


async def test_shutdown_never_raises():
    service = FakeService({})
    service.cleanup.side_effect = RuntimeError("close failed")
    await service.initialize()

    await service.shutdown()

    assert service.is_initialized is False
    service.cleanup.assert_awaited_once()
