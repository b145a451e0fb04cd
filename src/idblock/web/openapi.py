from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="idblock API",
            version="0.1.0",
            summary="Distributed-safe blocks of unique, increasing identifiers",
            routes=app.routes,
            tags=[{"name": "counters", "description": "Named counters and identifier blocks"}],
        )

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Counter 'order' not found", "type": "not_found"},
                {"message": "Counter store unavailable, retry later.", "type": "store_unavailable"},
                {"message": "Counter collection 'IncrementTable' does not exist", "type": "configuration_error"},
            ]
        }
    }
