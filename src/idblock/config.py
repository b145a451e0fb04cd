from pydantic import Field
from pydantic_settings import BaseSettings

from idblock.core.modules.counter.models import DEFAULT_COLLECTION_NAME, AllocationStrategy, AllocatorOptions


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # e.g. mongodb://localhost:27017/idblock, database name taken from the path
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    collection_name: str = DEFAULT_COLLECTION_NAME
    initial_value: int = 0  # First identifier ever returned for a new counter
    require_existing_collection: bool = False  # Fail instead of creating the collection on demand
    batch_size: int = Field(1, ge=1)  # Identifiers reserved per store round-trip by next_id
    max_attempts: int = Field(5, ge=1)  # Compare-and-swap attempts before giving up
    strategy: AllocationStrategy = AllocationStrategy.CAS
    max_block_size: int = Field(10_000, ge=1)  # Upper bound for a single allocate request
    max_generators: int = Field(1024, ge=1)  # Cached per-name generators kept in memory

    model_config = {
        "env_file": [".env"],
        "env_prefix": "IDBLOCK_",
        "extra": "ignore",
    }

    def allocator_options(self) -> AllocatorOptions:
        return AllocatorOptions(
            collection_name=self.collection_name,
            initial_value=self.initial_value,
            require_existing_collection=self.require_existing_collection,
            batch_size=self.batch_size,
            max_attempts=self.max_attempts,
            strategy=self.strategy,
        )
