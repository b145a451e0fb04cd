import asyncio
from collections import deque

from idblock.core.modules.counter.allocator import BlockAllocator


class IdGenerator:
    """Hands out identifiers one at a time from a locally reserved block.

    A fresh block of ``batch_size`` is reserved whenever the cached one runs
    out, so most calls never touch the store. Identifiers still cached when
    the process stops are skipped, never reissued.
    """

    def __init__(self, allocator: BlockAllocator, name: str, batch_size: int = 1) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.allocator = allocator
        self.name = name
        self.batch_size = batch_size
        self._cached: deque[int] = deque()
        self._current: int | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> int | None:
        """Last identifier handed out by this generator."""
        return self._current

    @property
    def cached(self) -> int:
        """How many reserved identifiers remain in the local block."""
        return len(self._cached)

    async def next(self) -> int:
        return (await self.next_many(1))[0]

    async def next_many(self, count: int) -> list[int]:
        if count < 1:
            return []
        async with self._lock:
            if len(self._cached) < count:
                missing = count - len(self._cached)
                self._cached.extend(await self.allocator.allocate(self.name, max(missing, self.batch_size)))
            ids = [self._cached.popleft() for _ in range(count)]
            self._current = ids[-1]
            return ids
