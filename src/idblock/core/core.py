from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from pymongo import AsyncMongoClient

from idblock.config import Config
from idblock.core.modules.counter.store import CounterStore, MongoCounterStore

if TYPE_CHECKING:
    from idblock.core.modules.counter.service import CounterService


class Service:
    """Base class for services working against the counter store."""

    def __init__(self, store: CounterStore, config: Config) -> None:
        self.store = store
        self.config = config
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry."""

    counter: CounterService

    def __init__(self, store: CounterStore, config: Config) -> None:
        from idblock.core.modules.counter.service import CounterService  # noqa: PLC0415

        self.counter = CounterService(store, config)
        self._services: list[Service] = [self.counter]

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, the counter store, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    store: CounterStore
    services: Services

    def __init__(self, config: Config, store: CounterStore | None = None) -> None:
        """Initialize core with config and MongoDB, unless a store is supplied."""
        self.config = config
        self.mongo_client = None
        if store is None:
            self.mongo_client = AsyncMongoClient(config.database_url)
            database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
            store = MongoCounterStore(self.mongo_client, database)
        self.store = store
        self.services = Services(store, config)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None, None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
