# backend/agency_crm/middleware/tenant_routing.py

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from agency_crm.core.logging import bind_request_context, clear_request_context, get_logger
from agency_crm.core.tenant_routing import (
    RouteDecision,
    RoutingConfig,
    is_local_host,
    resolve_route,
)

CLIENT_SLUG_HEADER = "x-client-slug"
_CLIENT_SLUG_HEADER_RAW = CLIENT_SLUG_HEADER.encode("latin-1")

log = get_logger(__name__)


def _rewritten_raw_path(scope: Scope, new_path: str) -> bytes:
    """Area prefix + the request's still-encoded raw_path."""
    path = scope.get("path", "/")
    raw = scope.get("raw_path")
    if raw is None:
        raw = quote(path).encode("ascii")
    if not path.startswith("/"):
        path = "/" + path
        raw = b"/" + raw

    if new_path.endswith(path):
        prefix = new_path[: len(new_path) - len(path)]
        return quote(prefix).encode("ascii") + raw
    return quote(new_path).encode("ascii")


class TenantRoutingMiddleware:
    """
    Rewrites the request path by Host before routing.

    - path/raw_path replaced with the internal area path
    - x-client-slug request header set from the subdomain (spoofed values dropped)
    - request.state.tenant_slug populated
    - x-client-slug echoed on the response for tenant requests

    On the local dev host, a client-supplied x-client-slug is kept when the
    host itself carries no tenant, so `localhost:3000/client/...` can be
    exercised against any tenant.
    """

    def __init__(self, app: ASGIApp, config: Optional[RoutingConfig] = None) -> None:
        self.app = app
        self.config = config or RoutingConfig()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        host = Headers(scope=scope).get("host", "")
        original_path = scope.get("path", "/")
        decision = resolve_route(host, original_path, self.config)

        clear_request_context()
        bind_request_context(tenant_slug=decision.tenant, route_area=decision.area)

        if decision.rewritten:
            log.debug(
                "route_rewritten",
                host=host,
                path=original_path,
                rewritten_to=decision.path,
            )

        await self.app(self._rewrite_scope(scope, host, decision), receive, self._wrap_send(send, decision))

    def _rewrite_scope(self, scope: Scope, host: str, decision: RouteDecision) -> Scope:
        keep_incoming_slug = decision.tenant is None and is_local_host(host, self.config)

        headers = [
            (k, v)
            for (k, v) in scope.get("headers", [])
            if keep_incoming_slug or k.lower() != _CLIENT_SLUG_HEADER_RAW
        ]
        if decision.tenant:
            headers.append((_CLIENT_SLUG_HEADER_RAW, decision.tenant.encode("latin-1")))

        new_scope = dict(scope)
        new_scope["headers"] = headers
        new_scope["state"] = {**scope.get("state", {}), "tenant_slug": decision.tenant}

        if decision.rewritten:
            new_scope["path"] = decision.path
            new_scope["raw_path"] = _rewritten_raw_path(scope, decision.path)

        return new_scope

    @staticmethod
    def _wrap_send(send: Send, decision: RouteDecision) -> Send:
        if not decision.tenant:
            return send

        async def send_with_slug(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(CLIENT_SLUG_HEADER, decision.tenant)
            await send(message)

        return send_with_slug
