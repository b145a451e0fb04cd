"""Block allocation of identifiers from a shared counter document."""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from idblock.core.modules.counter.models import INT64_MAX, AllocationStrategy, AllocatorOptions, Counter
from idblock.core.modules.counter.store import CounterConnection, CounterStore
from idblock.errors import ConfigurationError, ConflictError, CorruptStateError, CounterOverflowError

logger = structlog.get_logger(__name__)


class BlockAllocator:
    """Reserves contiguous blocks of identifiers per counter name.

    Holds no mutable state of its own: any number of allocators, in any
    number of processes, may share one collection. Lost updates are
    prevented by the store's compare-and-swap (or fetch-and-add), never
    by an in-process lock.
    """

    def __init__(self, store: CounterStore, options: AllocatorOptions | None = None) -> None:
        self._store = store
        self.options = options or AllocatorOptions()

    async def allocate(self, name: str, size: int) -> list[int]:
        """Reserve the next ``size`` identifiers for ``name``.

        Args:
            name: Counter name, one per independent sequence
            size: Number of identifiers wanted; below 1 returns an empty list
                without touching the store

        Returns:
            Strictly ascending, contiguous identifiers, each greater than any
            identifier previously returned for ``name``

        Raises:
            ConfigurationError: The collection must exist but does not
            StoreUnavailableError: The store could not be reached
            CorruptStateError: The stored counter is malformed
            ConflictError: Concurrent writers kept winning the swap
            CounterOverflowError: The block would pass the signed 64-bit maximum
        """
        if not name:
            raise ValueError("Counter name must not be empty")
        if size < 1:
            return []

        collection = self.options.collection_name
        async with self._store.connect() as conn:
            await self._prepare_collection(conn, collection)
            await self._bootstrap(conn, collection, name)
            if self.options.strategy == AllocationStrategy.INCREMENT:
                first = await self._fetch_and_add(conn, collection, name, size)
            else:
                first = await self._compare_and_swap(conn, collection, name, size)

        block = list(range(first, first + size))
        logger.debug("Allocated block", name=name, collection=collection, first=block[0], last=block[-1])
        return block

    async def _prepare_collection(self, conn: CounterConnection, collection: str) -> None:
        if self.options.require_existing_collection:
            if not await conn.collection_exists(collection):
                raise ConfigurationError(f"Counter collection '{collection}' does not exist")
        else:
            await conn.ensure_collection(collection)

    async def _bootstrap(self, conn: CounterConnection, collection: str, name: str) -> None:
        """Create the counter for a never-seen name so the first block starts at initial_value."""
        if await conn.find_one(collection, name) is not None:
            return
        counter = Counter(name=name, value=self.options.initial_value - 1)
        try:
            await conn.insert(collection, counter.to_mongo())
            logger.info("Created counter", name=name, collection=collection, value=counter.value)
        except ConflictError:
            # Lost the race to another first-time caller; its counter is the one to use
            logger.debug("Counter created concurrently", name=name, collection=collection)

    async def _compare_and_swap(self, conn: CounterConnection, collection: str, name: str, size: int) -> int:
        for attempt in range(1, self.options.max_attempts + 1):
            base = _parse(await conn.find_one(collection, name), collection, name).value
            new = _advance(base, size, name)
            if await conn.atomic_update(collection, name, base, new):
                return base + 1
            logger.debug("Counter changed concurrently, retrying", name=name, collection=collection, attempt=attempt)
        raise ConflictError(
            f"Counter '{name}' in '{collection}' kept changing; gave up after {self.options.max_attempts} attempts"
        )

    async def _fetch_and_add(self, conn: CounterConnection, collection: str, name: str, size: int) -> int:
        # No write for a block that cannot fit in int64
        current = _parse(await conn.find_one(collection, name), collection, name).value
        _advance(current, size, name)
        new = _parse(await conn.increment(collection, name, size), collection, name).value
        return new - size + 1


def _parse(document: dict[str, Any] | None, collection: str, name: str) -> Counter:
    if document is None:
        raise CorruptStateError(f"Counter '{name}' disappeared from '{collection}'")
    try:
        return Counter.from_mongo(document)
    except PydanticValidationError as e:
        raise CorruptStateError(f"Counter '{name}' in '{collection}' is malformed: {e}") from e


def _advance(base: int, size: int, name: str) -> int:
    new = base + size
    if new > INT64_MAX:
        raise CounterOverflowError(f"Counter '{name}' cannot advance by {size} from {base}")
    return new
