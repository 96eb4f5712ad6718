"""Health endpoint factory."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse


if TYPE_CHECKING:
    from starlette.requests import Request

    from doc_index_server.service_layer.index_store import IndexStore


def build_health_endpoint(get_store: Callable[[], IndexStore | None]):
    """Return a coroutine function reporting store state and collection sizes."""

    async def health_check(request: Request) -> JSONResponse:
        store = get_store()
        if store is None or store.closed:
            return JSONResponse({"status": "unavailable", "collection_count": 0, "collections": {}}, status_code=503)

        collections = store.describe()
        return JSONResponse(
            {
                "status": "healthy",
                "collection_count": len(collections),
                "collections": collections,
            }
        )

    return health_check
