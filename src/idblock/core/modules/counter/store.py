"""Counter storage: the collaborator interface and its MongoDB adapter."""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol

import structlog
from bson.int64 import Int64
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import (
    CollectionInvalid,
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout,
    OperationFailure,
    PyMongoError,
)

from idblock.errors import ConflictError, CorruptStateError, StoreUnavailableError

logger = structlog.get_logger(__name__)

# Server error codes
DUPLICATE_KEY = 11000
TYPE_MISMATCH = 14  # $inc on a non-numeric field


class CounterConnection(Protocol):
    """Operations the allocator needs from one acquired store connection."""

    async def collection_exists(self, collection: str) -> bool: ...

    async def ensure_collection(self, collection: str) -> None: ...

    async def find_one(self, collection: str, name: str) -> dict[str, Any] | None: ...

    async def insert(self, collection: str, document: dict[str, Any]) -> None: ...

    async def atomic_update(self, collection: str, name: str, expected: int, new: int) -> bool: ...

    async def increment(self, collection: str, name: str, amount: int) -> dict[str, Any] | None: ...


class CounterStore(Protocol):
    """Hands out scoped connections; leaving the context releases the connection."""

    def connect(self) -> AbstractAsyncContextManager[CounterConnection]: ...


class MongoCounterConnection:
    """Counter operations bound to one client session."""

    def __init__(
        self,
        database: AsyncDatabase[dict[str, Any]],
        session: AsyncClientSession,
        ensured: set[str] | None = None,
    ) -> None:
        self._database = database
        self._session = session
        self._ensured = ensured if ensured is not None else set()

    async def collection_exists(self, collection: str) -> bool:
        try:
            names = await self._database.list_collection_names(filter={"name": collection}, session=self._session)
        except PyMongoError as e:
            raise _translate(e) from e
        return collection in names

    async def ensure_collection(self, collection: str) -> None:
        """Create the collection and its unique index on name, if missing.

        Done once per collection for the lifetime of the store.
        """
        if collection in self._ensured:
            return
        try:
            if not await self.collection_exists(collection):
                try:
                    await self._database.create_collection(collection, session=self._session)
                    logger.info("Created counter collection", collection=collection)
                except CollectionInvalid:
                    # Another process created it first
                    pass
            await self._database.get_collection(collection).create_index(
                [("name", 1)], unique=True, session=self._session
            )
        except OperationFailure as e:
            if e.code == DUPLICATE_KEY:
                raise CorruptStateError(f"Collection '{collection}' holds duplicate counter names") from e
            raise _translate(e) from e
        except PyMongoError as e:
            raise _translate(e) from e
        self._ensured.add(collection)

    async def find_one(self, collection: str, name: str) -> dict[str, Any] | None:
        try:
            return await self._database.get_collection(collection).find_one({"name": name}, session=self._session)
        except PyMongoError as e:
            raise _translate(e) from e

    async def insert(self, collection: str, document: dict[str, Any]) -> None:
        try:
            await self._database.get_collection(collection).insert_one(document, session=self._session)
        except DuplicateKeyError as e:
            raise ConflictError(f"Counter '{document.get('name')}' already exists in '{collection}'") from e
        except PyMongoError as e:
            raise _translate(e) from e

    async def atomic_update(self, collection: str, name: str, expected: int, new: int) -> bool:
        """Set value to new only if it still equals expected."""
        try:
            result = await self._database.get_collection(collection).update_one(
                {"name": name, "value": Int64(expected)},
                {"$set": {"value": Int64(new)}},
                session=self._session,
            )
        except PyMongoError as e:
            raise _translate(e) from e
        return result.modified_count == 1

    async def increment(self, collection: str, name: str, amount: int) -> dict[str, Any] | None:
        """Atomically add amount to value and return the document after the update."""
        try:
            return await self._database.get_collection(collection).find_one_and_update(
                {"name": name},
                {"$inc": {"value": Int64(amount)}},
                return_document=ReturnDocument.AFTER,
                session=self._session,
            )
        except OperationFailure as e:
            if e.code == TYPE_MISMATCH:
                raise CorruptStateError(f"Counter '{name}' in '{collection}' has a non-numeric value") from e
            raise _translate(e) from e
        except PyMongoError as e:
            raise _translate(e) from e


class MongoCounterStore:
    """CounterStore backed by a pymongo AsyncMongoClient."""

    def __init__(self, client: AsyncMongoClient[dict[str, Any]], database: AsyncDatabase[dict[str, Any]]) -> None:
        self._client = client
        self._database = database
        self._ensured: set[str] = set()

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[MongoCounterConnection]:
        try:
            session = self._client.start_session()
        except PyMongoError as e:
            raise _translate(e) from e
        try:
            yield MongoCounterConnection(self._database, session, self._ensured)
        finally:
            await session.end_session()


def _translate(error: PyMongoError) -> Exception:
    """Map a driver error onto the allocation error taxonomy."""
    if isinstance(error, DuplicateKeyError):
        return ConflictError(str(error))
    if isinstance(error, ConnectionFailure | ExecutionTimeout):
        return StoreUnavailableError(f"Counter store unavailable: {error}")
    return StoreUnavailableError(f"Counter store operation failed: {error}")
