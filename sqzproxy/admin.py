"""Admin HTTP API: health check, rule management, statistics and experiments."""

from __future__ import annotations

import json
import uuid
from typing import Any, Callable, TypeVar

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .admin_types import (
    CreateRuleRequest,
    PaginationParams,
    RuleResponse,
    StatsResponse,
    UpdateRuleRequest,
)
from .errors import ErrorKind, ProxyError
from .middleware import RequestIdMiddleware, TimingMiddleware
from .models import RuleRow, utc_timestamp
from .store import Store, StoreError

T = TypeVar("T")


def _store(request: Request) -> Store:
    return request.app.state.store


async def _call(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking store call off the event loop, mapping store errors."""
    try:
        return await run_in_threadpool(func, *args)
    except StoreError as exc:
        raise ProxyError.from_store_error(exc) from exc


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ProxyError(ErrorKind.DESERIALIZATION, f"invalid request body: {exc}") from exc


def _pagination(request: Request) -> PaginationParams:
    try:
        return PaginationParams.from_query(request.query_params)
    except ValueError as exc:
        raise ProxyError(ErrorKind.DESERIALIZATION, str(exc)) from exc


async def health_check(request: Request) -> JSONResponse:
    """``GET /health``: liveness check."""
    return JSONResponse({"status": "ok"})


async def list_rules(request: Request) -> JSONResponse:
    """``GET /admin/rules``: list rules with optional filters and pagination."""
    params = _pagination(request)
    rows = await _call(
        _store(request).list_rules,
        params.layer,
        params.domain,
        params.limit,
        params.offset,
    )
    return JSONResponse([RuleResponse.from_row(row).to_dict() for row in rows])


async def create_rule(request: Request) -> JSONResponse:
    """``POST /admin/rules``: create a new, enabled rule."""
    try:
        req = CreateRuleRequest.from_dict(await _json_body(request))
    except ValueError as exc:
        if isinstance(exc, ProxyError):
            raise
        raise ProxyError(ErrorKind.DESERIALIZATION, str(exc)) from exc

    now = utc_timestamp()
    row = RuleRow(
        id=str(uuid.uuid4()),
        pattern=req.pattern,
        replacement=req.replacement,
        layer=req.layer,
        domain=req.domain,
        confidence=0.0,
        samples=0,
        enabled=True,
        priority=req.priority if req.priority is not None else 0,
        created_at=now,
        updated_at=now,
    )
    await _call(_store(request).create_rule, row)
    return JSONResponse(RuleResponse.from_row(row).to_dict(), status_code=201)


async def update_rule(request: Request) -> JSONResponse:
    """``PUT /admin/rules/{id}``: apply a partial update to a rule."""
    rule_id = request.path_params["id"]
    try:
        req = UpdateRuleRequest.from_dict(await _json_body(request))
    except ValueError as exc:
        if isinstance(exc, ProxyError):
            raise
        raise ProxyError(ErrorKind.DESERIALIZATION, str(exc)) from exc

    store = _store(request)
    existing = await _call(store.get_rule, rule_id)
    if req.pattern is not None:
        existing.pattern = req.pattern
    if req.replacement is not None:
        existing.replacement = req.replacement
    if req.enabled is not None:
        existing.enabled = req.enabled
    if req.priority is not None:
        existing.priority = req.priority
    if req.domain is not None:
        existing.domain = req.domain
    existing.updated_at = utc_timestamp()

    await _call(store.update_rule, existing)
    return JSONResponse(RuleResponse.from_row(existing).to_dict())


async def delete_rule(request: Request) -> Response:
    """``DELETE /admin/rules/{id}``: delete a rule."""
    await _call(_store(request).delete_rule, request.path_params["id"])
    return Response(status_code=204)


async def get_stats(request: Request) -> JSONResponse:
    """``GET /admin/stats``: overall compression statistics."""
    overview = await _call(_store(request).get_stats_overview)
    return JSONResponse(StatsResponse.from_overview(overview).to_dict())


async def get_compression_stats(request: Request) -> JSONResponse:
    """``GET /admin/stats/compression``: recent compression stat entries."""
    params = _pagination(request)
    stats = await _call(
        _store(request).get_compression_stats, params.limit, params.offset
    )
    return JSONResponse([stat.to_dict() for stat in stats])


async def list_experiments(request: Request) -> JSONResponse:
    """``GET /admin/experiments``: list experiments with pagination."""
    params = _pagination(request)
    experiments = await _call(
        _store(request).list_experiments, params.limit, params.offset
    )
    return JSONResponse([exp.to_dict() for exp in experiments])


async def _handle_proxy_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, ProxyError)
    return exc.to_response()


def build_app(store: Store) -> Starlette:
    """Build the admin application with its routes and middleware."""
    routes = [
        Route("/admin/rules", list_rules, methods=["GET"]),
        Route("/admin/rules", create_rule, methods=["POST"]),
        Route("/admin/rules/{id}", update_rule, methods=["PUT"]),
        Route("/admin/rules/{id}", delete_rule, methods=["DELETE"]),
        Route("/admin/stats", get_stats, methods=["GET"]),
        Route("/admin/stats/compression", get_compression_stats, methods=["GET"]),
        Route("/admin/experiments", list_experiments, methods=["GET"]),
        Route("/health", health_check, methods=["GET"]),
    ]
    app = Starlette(
        routes=routes,
        middleware=[Middleware(RequestIdMiddleware), Middleware(TimingMiddleware)],
        exception_handlers={ProxyError: _handle_proxy_error},
    )
    app.state.store = store
    return app