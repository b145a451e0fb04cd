"""Counter documents and allocator options."""

from enum import StrEnum
from typing import Any, Self

from bson.int64 import Int64
from pydantic import BaseModel, ConfigDict, Field, StrictInt

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

DEFAULT_COLLECTION_NAME = "IncrementTable"


class AllocationStrategy(StrEnum):
    """How the counter value is advanced in the store."""

    CAS = "cas"  # read, then compare-and-swap; retried on mismatch
    INCREMENT = "increment"  # store-native fetch-and-add


class Counter(BaseModel):
    """High-water mark for one named identifier sequence.

    Stored as ``{name, value}``; ``value`` is the last identifier handed out,
    so a fresh counter holds ``initial_value - 1``.
    Indexed on name - unique.
    """

    name: str = Field(..., min_length=1)
    value: StrictInt = Field(..., ge=INT64_MIN, le=INT64_MAX)

    model_config = ConfigDict(extra="ignore", frozen=True)

    def to_mongo(self) -> dict[str, Any]:
        """Convert the counter to a dictionary for MongoDB storage; value is always BSON int64."""
        return {"name": self.name, "value": Int64(self.value)}

    @classmethod
    def from_mongo(cls, document: dict[str, Any]) -> Self:
        """Validate a raw document; Mongo's own _id is dropped."""
        return cls.model_validate(document)


class AllocatorOptions(BaseModel):
    """Options a BlockAllocator is constructed with."""

    collection_name: str = Field(DEFAULT_COLLECTION_NAME, min_length=1)
    initial_value: int = Field(0, ge=INT64_MIN + 1, le=INT64_MAX)
    require_existing_collection: bool = False
    batch_size: int = Field(1, ge=1)
    max_attempts: int = Field(5, ge=1)
    strategy: AllocationStrategy = AllocationStrategy.CAS

    model_config = ConfigDict(frozen=True)
