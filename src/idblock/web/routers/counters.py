from fastapi import APIRouter
from pydantic import BaseModel, Field

from idblock.core.modules.counter.models import Counter
from idblock.web.deps import AppDep
from idblock.web.openapi import ErrorResponse

router = APIRouter(tags=["counters"])


class AllocateRequest(BaseModel):
    """Request to reserve a block of identifiers."""

    size: int = Field(1, description="Number of identifiers to reserve; below 1 reserves nothing")


class AllocateResponse(BaseModel):
    """Reserved identifiers, ascending and contiguous."""

    name: str
    ids: list[int]


class NextIdResponse(BaseModel):
    name: str
    id: int


@router.post(
    "/counters/{name}/allocate",
    summary="Allocate identifier block",
    description="Reserve a contiguous block of identifiers for the counter, creating the counter on first use.",
    operation_id="allocateBlock",
    responses={
        200: {"description": "Reserved identifiers"},
        400: {"model": ErrorResponse, "description": "Block size above the configured maximum"},
        409: {"model": ErrorResponse, "description": "Concurrent writers kept winning"},
        503: {"model": ErrorResponse, "description": "Counter store unavailable"},
    },
)
async def allocate_block(name: str, request: AllocateRequest, app: AppDep) -> AllocateResponse:
    ids = await app.allocate(name, request.size)
    return AllocateResponse(name=name, ids=ids)


@router.post(
    "/counters/{name}/next",
    summary="Next identifier",
    description="Get one identifier, served from a locally cached block when available.",
    operation_id="nextId",
    responses={
        200: {"description": "Next identifier"},
        503: {"model": ErrorResponse, "description": "Counter store unavailable"},
    },
)
async def next_id(name: str, app: AppDep) -> NextIdResponse:
    return NextIdResponse(name=name, id=await app.next_id(name))


@router.get(
    "/counters/{name}",
    summary="Get counter",
    description="Get the highest identifier allocated so far for the counter.",
    operation_id="getCounter",
    responses={
        200: {"description": "Counter high-water mark"},
        404: {"model": ErrorResponse, "description": "Counter not found"},
    },
)
async def get_counter(name: str, app: AppDep) -> Counter:
    return await app.get_counter(name)
