"""Composable builder for the HTTP front of the document index."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
import logging
from typing import Any

import orjson
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from doc_index_server.adapters.codec import StorageError
from doc_index_server.adapters.filesystem_repository import AbstractIndexRepository, FileSystemIndexRepository
from doc_index_server.config import Settings
from doc_index_server.domain.model import Hit, Mapping
from doc_index_server.observability import (
    TraceContextMiddleware,
    get_metrics,
    get_metrics_content_type,
    trace_request,
)
from doc_index_server.runtime.health import build_health_endpoint
from doc_index_server.search.dsl import DslQuery
from doc_index_server.search.keyword import KeywordQuery
from doc_index_server.search.knn import VectorQuery
from doc_index_server.service_layer import services
from doc_index_server.service_layer.index_store import IndexStore, InvalidCollectionName, StoreClosedError


logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "index not found"

Endpoint = Callable[[Request], Awaitable[Response]]


class OrjsonResponse(JSONResponse):
    """JSON response rendered with orjson; non-finite floats become null."""

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content)


class BulkDocuments(BaseModel):
    documents: list[Any]


class BadRequest(Exception):
    """Request body or parameters could not be parsed."""


def _error(message: str, status_code: int) -> OrjsonResponse:
    return OrjsonResponse({"error": message}, status_code=status_code)


def _not_found() -> OrjsonResponse:
    return _error(NOT_FOUND_MESSAGE, 404)


def _hits_payload(hits: list[Hit]) -> dict[str, Any]:
    return {"hits": [hit.to_dict() for hit in hits]}


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise BadRequest(f"Invalid JSON body: {exc}") from exc


def _validate(model: type[BaseModel], payload: Any) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise BadRequest(str(exc)) from exc


def _guarded(handler: Endpoint) -> Endpoint:
    """Map service-layer exceptions onto HTTP error payloads."""

    async def endpoint(request: Request) -> Response:
        try:
            return await handler(request)
        except BadRequest as exc:
            return _error(str(exc), 400)
        except InvalidCollectionName as exc:
            return _error(str(exc), 400)
        except StorageError as exc:
            logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
            return _error("failed to persist collection", 500)
        except StoreClosedError:
            return _error("index store is shutting down", 503)

    endpoint.__name__ = handler.__name__
    return endpoint


class AppBuilder:
    """Builds the Starlette app around one ``IndexStore``."""

    def __init__(self, settings: Settings | None = None, repository: AbstractIndexRepository | None = None) -> None:
        self.settings = settings or Settings()
        self.repository = repository or FileSystemIndexRepository(self.settings.data_dir)
        self.store: IndexStore | None = None

    def build(self) -> Starlette:
        """Build and return the Starlette application."""
        settings = self.settings
        app = Starlette(
            debug=settings.log_level.lower() == "debug",
            routes=self._build_routes(),
            lifespan=self._build_lifespan_manager(),
        )
        app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
        app.middleware("http")(trace_request)
        app.add_middleware(TraceContextMiddleware)
        logger.info("Document index server initialized (data dir: %s)", settings.data_dir)
        return app

    def _build_lifespan_manager(self):
        @asynccontextmanager
        async def lifespan(app: Starlette) -> AsyncIterator[None]:
            self.store = await IndexStore.open(self.repository)
            app.state.store = self.store
            try:
                yield
            finally:
                await self.store.aclose()

        return lifespan

    def _require_store(self) -> IndexStore:
        if self.store is None:
            raise StoreClosedError("Index store is not open")
        return self.store

    def _build_routes(self) -> list[Route]:
        return [
            Route("/", endpoint=self._build_root_endpoint(), methods=["GET"]),
            Route("/health", endpoint=build_health_endpoint(lambda: self.store), methods=["GET"]),
            Route("/metrics", endpoint=self._build_metrics_endpoint(), methods=["GET"]),
            Route("/indexes/{name}/documents", endpoint=self._build_insert_endpoint(), methods=["POST"]),
            Route("/indexes/{name}/bulk", endpoint=self._build_bulk_endpoint(), methods=["POST"]),
            Route("/indexes/{name}/mapping", endpoint=self._build_set_mapping_endpoint(), methods=["PUT"]),
            Route("/indexes/{name}/mapping", endpoint=self._build_get_mapping_endpoint(), methods=["GET"]),
            Route("/indexes/{name}/search", endpoint=self._build_search_endpoint(), methods=["GET"]),
            Route("/indexes/{name}/query", endpoint=self._build_query_endpoint(), methods=["POST"]),
            Route("/indexes/{name}/search_vector", endpoint=self._build_vector_endpoint(), methods=["POST"]),
        ]

    def _build_root_endpoint(self) -> Endpoint:
        async def root(_: Request) -> Response:
            return PlainTextResponse("Hello world")

        return root

    def _build_metrics_endpoint(self) -> Endpoint:
        async def metrics_endpoint(_: Request) -> Response:
            return Response(content=get_metrics(), media_type=get_metrics_content_type())

        return metrics_endpoint

    def _build_insert_endpoint(self) -> Endpoint:
        async def insert_document(request: Request) -> Response:
            data = await _json_body(request)
            doc_id = await services.insert(self._require_store(), request.path_params["name"], data)
            return OrjsonResponse({"id": doc_id})

        return _guarded(insert_document)

    def _build_bulk_endpoint(self) -> Endpoint:
        async def bulk_documents(request: Request) -> Response:
            bulk = _validate(BulkDocuments, await _json_body(request))
            ids = await services.insert_many(self._require_store(), request.path_params["name"], bulk.documents)
            return OrjsonResponse({"ids": ids})

        return _guarded(bulk_documents)

    def _build_set_mapping_endpoint(self) -> Endpoint:
        async def set_mapping(request: Request) -> Response:
            mapping = _validate(Mapping, await _json_body(request))
            await services.set_mapping(self._require_store(), request.path_params["name"], mapping)
            return OrjsonResponse({"status": "ok"})

        return _guarded(set_mapping)

    def _build_get_mapping_endpoint(self) -> Endpoint:
        async def get_mapping(request: Request) -> Response:
            lookup = await services.get_mapping(self._require_store(), request.path_params["name"])
            if lookup is None:
                return _not_found()
            return OrjsonResponse(lookup.to_dict())

        return _guarded(get_mapping)

    def _build_search_endpoint(self) -> Endpoint:
        default_limit = self.settings.default_search_limit

        async def search_documents(request: Request) -> Response:
            params: dict[str, Any] = {"limit": default_limit, **request.query_params}
            query = _validate(KeywordQuery, params)
            hits = await services.search(self._require_store(), request.path_params["name"], query)
            if hits is None:
                return _not_found()
            return OrjsonResponse(_hits_payload(hits))

        return _guarded(search_documents)

    def _build_query_endpoint(self) -> Endpoint:
        async def structured_query(request: Request) -> Response:
            query = _validate(DslQuery, await _json_body(request))
            result = await services.structured_query(self._require_store(), request.path_params["name"], query)
            if result is None:
                return _not_found()
            return OrjsonResponse(result.to_dict())

        return _guarded(structured_query)

    def _build_vector_endpoint(self) -> Endpoint:
        default_limit = self.settings.default_search_limit

        async def search_vector(request: Request) -> Response:
            payload = await _json_body(request)
            if isinstance(payload, dict) and payload.get("limit") is None and payload.get("k") is None:
                payload = {key: value for key, value in payload.items() if key not in ("limit", "k")}
                payload["limit"] = default_limit
            query = _validate(VectorQuery, payload)
            hits = await services.vector_search(self._require_store(), request.path_params["name"], query)
            if hits is None:
                return _not_found()
            return OrjsonResponse(_hits_payload(hits))

        return _guarded(search_vector)
