from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from idblock.config import Config
from idblock.core.core import Core
from idblock.core.modules.counter.models import Counter
from idblock.core.modules.counter.store import CounterStore
from idblock.errors import ValidationError


class App:
    """Facade for all application operations, validates input before delegating to Core."""

    def __init__(self, config: Config, store: CounterStore | None = None) -> None:
        self._core = Core(config, store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None, None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def allocate(self, name: str, size: int) -> list[int]:
        """Reserve a contiguous block of identifiers for a counter."""
        self._validate_name(name)
        max_block_size = self._core.config.max_block_size
        if size > max_block_size:
            raise ValidationError(f"Block size must not exceed {max_block_size}")
        return await self._core.services.counter.allocate(name, size)

    async def next_id(self, name: str) -> int:
        """Get the next identifier for a counter."""
        self._validate_name(name)
        return await self._core.services.counter.next_id(name)

    async def get_counter(self, name: str) -> Counter:
        """Get the current high-water mark of a counter."""
        self._validate_name(name)
        return await self._core.services.counter.get_counter(name)

    def _validate_name(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Counter name must not be empty")
