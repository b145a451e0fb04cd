"""Shared pytest fixtures."""

import asyncio
import copy
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import pytest

from idblock.config import Config
from idblock.core.modules.counter.allocator import BlockAllocator
from idblock.core.modules.counter.models import AllocatorOptions
from idblock.errors import ConflictError, CorruptStateError

Hook = Callable[..., Awaitable[None]]


class MemoryCounterStore:
    """In-memory counter store that records every access.

    Reads yield to the event loop after taking their snapshot, so concurrent
    callers see stale values and have to rely on the compare-and-swap.
    """

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = collections or {}
        self.unique: set[str] = set()
        self.calls: list[str] = []
        self.hooks: dict[str, Hook] = {}
        self.failures: dict[str, Exception] = {}
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def connect(self) -> AsyncIterator["MemoryCounterStore"]:
        self.acquired += 1
        try:
            yield self
        finally:
            self.released += 1

    @property
    def mutations(self) -> list[str]:
        return [call for call in self.calls if call in ("ensure_collection", "insert", "atomic_update", "increment")]

    def get(self, collection: str, name: str) -> dict[str, Any] | None:
        for document in self.collections.get(collection, []):
            if document.get("name") == name:
                return document
        return None

    async def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]
        if operation in self.hooks:
            await self.hooks[operation](*args)

    async def collection_exists(self, collection: str) -> bool:
        await self._enter("collection_exists", collection)
        return collection in self.collections

    async def ensure_collection(self, collection: str) -> None:
        await self._enter("ensure_collection", collection)
        self.collections.setdefault(collection, [])
        self.unique.add(collection)

    async def find_one(self, collection: str, name: str) -> dict[str, Any] | None:
        await self._enter("find_one", collection, name)
        snapshot = copy.deepcopy(self.get(collection, name))
        await asyncio.sleep(0)
        return snapshot

    async def insert(self, collection: str, document: dict[str, Any]) -> None:
        await self._enter("insert", collection, document)
        if collection in self.unique and self.get(collection, document["name"]) is not None:
            raise ConflictError(f"Counter '{document['name']}' already exists in '{collection}'")
        self.collections.setdefault(collection, []).append(dict(document))

    async def atomic_update(self, collection: str, name: str, expected: int, new: int) -> bool:
        await self._enter("atomic_update", collection, name, expected, new)
        document = self.get(collection, name)
        if document is None or not _is_integer(document.get("value")) or document["value"] != expected:
            return False
        document["value"] = new
        return True

    async def increment(self, collection: str, name: str, amount: int) -> dict[str, Any] | None:
        await self._enter("increment", collection, name, amount)
        document = self.get(collection, name)
        if document is None:
            return None
        if not _is_integer(document.get("value")):
            raise CorruptStateError(f"Counter '{name}' in '{collection}' has a non-numeric value")
        document["value"] += amount
        return dict(document)


def _is_integer(value: Any) -> bool:
    """Integral like a BSON int32/int64 read back by the driver; bool is not."""
    return isinstance(value, int) and not isinstance(value, bool)


@pytest.fixture
def store():
    """Empty in-memory counter store."""
    return MemoryCounterStore()


@pytest.fixture
def options():
    """Allocator options with the defaults."""
    return AllocatorOptions()


@pytest.fixture
def allocator(store, options):
    return BlockAllocator(store, options)


@pytest.fixture
def config():
    """Config that never reads the environment for the database."""
    return Config(database_url="mongodb://localhost:27017/idblock_test", _env_file=None)
