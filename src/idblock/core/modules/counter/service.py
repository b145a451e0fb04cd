from collections import OrderedDict

import structlog

from idblock.config import Config
from idblock.core.core import Service
from idblock.core.modules.counter.allocator import BlockAllocator
from idblock.core.modules.counter.generator import IdGenerator
from idblock.core.modules.counter.models import Counter
from idblock.core.modules.counter.store import CounterStore
from idblock.errors import CorruptStateError, NotFoundError

logger = structlog.get_logger(__name__)


class CounterService(Service):
    """Allocates identifier blocks and keeps one cached generator per counter name."""

    def __init__(self, store: CounterStore, config: Config) -> None:
        super().__init__(store, config)
        self.allocator = BlockAllocator(store, config.allocator_options())
        self._generators: OrderedDict[str, IdGenerator] = OrderedDict()

    async def on_start(self) -> None:
        """Create the counter collection and its unique index unless it must already exist."""
        options = self.allocator.options
        if options.require_existing_collection:
            return
        async with self.store.connect() as conn:
            await conn.ensure_collection(options.collection_name)
        logger.debug("counter_service_started", collection=options.collection_name, strategy=options.strategy)

    async def on_stop(self) -> None:
        # Cached identifiers are abandoned, never returned to the counter
        abandoned = sum(generator.cached for generator in self._generators.values())
        if abandoned:
            logger.info("Discarding cached identifiers", count=abandoned)
        self._generators.clear()

    async def allocate(self, name: str, size: int) -> list[int]:
        return await self.allocator.allocate(name, size)

    async def next_id(self, name: str) -> int:
        """Next identifier for name, served from the generator's cached block."""
        return await self.get_generator(name).next()

    def get_generator(self, name: str) -> IdGenerator:
        """Generator for name; least recently used ones are dropped past max_generators."""
        generator = self._generators.get(name)
        if generator is not None:
            self._generators.move_to_end(name)
            return generator

        generator = IdGenerator(self.allocator, name, self.allocator.options.batch_size)
        self._generators[name] = generator
        while len(self._generators) > self.config.max_generators:
            evicted_name, evicted = self._generators.popitem(last=False)
            # Its cached identifiers are abandoned, as on shutdown
            logger.debug("Evicted generator", name=evicted_name, abandoned=evicted.cached)
        return generator

    @property
    def generator_count(self) -> int:
        return len(self._generators)

    async def get_counter(self, name: str) -> Counter:
        """Read the stored counter without advancing it."""
        collection = self.allocator.options.collection_name
        async with self.store.connect() as conn:
            document = await conn.find_one(collection, name)
        if document is None:
            raise NotFoundError(f"Counter '{name}' not found")
        try:
            return Counter.from_mongo(document)
        except ValueError as e:
            raise CorruptStateError(f"Counter '{name}' in '{collection}' is malformed: {e}") from e
