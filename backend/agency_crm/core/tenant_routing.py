# backend/agency_crm/core/tenant_routing.py
"""
Host-based area routing.

    admin.agency.com/users     -> /master/users
    demo.agency.com/invoices   -> /client/invoices   (tenant = "demo")
    agency.com/                -> /home/
    localhost:3000/master/...  -> unchanged (local development shortcut)

resolve_route() is pure: it never raises and always returns a decision.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

MASTER_ROOT = "/master"
CLIENT_ROOT = "/client"
HOME_ROOT = "/home"
AUTH_ROOT = "/auth"

WWW_LABEL = "www"

AREA_MASTER = "master"
AREA_CLIENT = "client"
AREA_HOME = "home"
AREA_AUTH = "auth"

# Paths the browser-facing rewrite never touches: the JSON API, framework
# assets, docs and anything that looks like a root-level file (favicon.ico).
DEFAULT_PASSTHROUGH_PREFIXES: tuple[str, ...] = (
    "/api/",
    "/_next/",
    "/_static/",
    "/_vercel",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health",
)

_FILE_SEGMENT_RE = re.compile(r"^/[\w-]+\.\w+")


@dataclass(frozen=True)
class RoutingConfig:
    root_domains: tuple[str, ...] = ("agency.com",)
    local_host: str = "localhost"
    admin_label: str = "admin"
    passthrough_prefixes: tuple[str, ...] = field(default=DEFAULT_PASSTHROUGH_PREFIXES)

    @classmethod
    def from_settings(cls, cfg) -> "RoutingConfig":
        return cls(
            root_domains=tuple(cfg.root_domains),
            local_host=cfg.LOCAL_DEV_HOST.strip().lower(),
            admin_label=cfg.ADMIN_SUBDOMAIN.strip().lower(),
        )


@dataclass(frozen=True)
class RouteDecision:
    path: str
    tenant: Optional[str] = None
    rewritten: bool = False
    area: Optional[str] = None


DEFAULT_CONFIG = RoutingConfig()


def _strip_port(host: str) -> str:
    if host.startswith("["):
        # [::1]:3000
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    if ":" in host:
        return host.rsplit(":", 1)[0]
    return host


def _targets(path: str, root: str) -> bool:
    return path == root or path.startswith(root + "/")


def _prefixed(root: str, path: str) -> str:
    return f"{root}{path}"


def is_local_host(host: Optional[str], config: RoutingConfig = DEFAULT_CONFIG) -> bool:
    return config.local_host in (host or "").strip().lower()


def extract_subdomain(host: Optional[str], config: RoutingConfig = DEFAULT_CONFIG) -> Optional[str]:
    """
    localhost:3000         -> None
    admin.localhost:3000   -> "admin"
    agency.com / www.agency.com -> None
    dash.agency.com        -> "dash"
    anything else (IPs, foreign domains) -> None
    """
    h = (host or "").strip().lower()
    if not h:
        return None

    if is_local_host(h, config):
        parts = h.split(".")
        if len(parts) > 1 and parts[0] != config.local_host:
            return parts[0] or None
        return None

    hostname = _strip_port(h)
    for root in config.root_domains:
        if hostname == root or hostname == f"{WWW_LABEL}.{root}":
            return None
        suffix = f".{root}"
        if hostname.endswith(suffix):
            label = hostname[: -len(suffix)].split(".")[0]
            return label or None

    return None


def is_passthrough_path(path: str, config: RoutingConfig = DEFAULT_CONFIG) -> bool:
    for prefix in config.passthrough_prefixes:
        # "/api/" style prefixes match anything below them; the rest match whole segments
        if prefix.endswith("/"):
            if path.startswith(prefix):
                return True
        elif _targets(path, prefix):
            return True
    return bool(_FILE_SEGMENT_RE.match(path))


def resolve_route(
    host: Optional[str],
    path: Optional[str],
    config: RoutingConfig = DEFAULT_CONFIG,
) -> RouteDecision:
    p = path or "/"
    if not p.startswith("/"):
        p = "/" + p

    if is_passthrough_path(p, config):
        return RouteDecision(path=p)

    subdomain = extract_subdomain(host, config)

    # admin.<domain>
    if subdomain == config.admin_label:
        if _targets(p, AUTH_ROOT):
            return RouteDecision(path=p, area=AREA_AUTH)
        if _targets(p, MASTER_ROOT):
            return RouteDecision(path=p, area=AREA_MASTER)
        return RouteDecision(path=_prefixed(MASTER_ROOT, p), rewritten=True, area=AREA_MASTER)

    # <tenant>.<domain>
    if subdomain and subdomain != WWW_LABEL:
        if _targets(p, AUTH_ROOT):
            return RouteDecision(path=p, area=AREA_AUTH)
        if _targets(p, CLIENT_ROOT):
            return RouteDecision(path=p, tenant=subdomain, area=AREA_CLIENT)
        return RouteDecision(
            path=_prefixed(CLIENT_ROOT, p),
            tenant=subdomain,
            rewritten=True,
            area=AREA_CLIENT,
        )

    # bare root domain or www
    if is_local_host(host, config):
        if _targets(p, MASTER_ROOT):
            return RouteDecision(path=p, area=AREA_MASTER)
        if _targets(p, CLIENT_ROOT):
            return RouteDecision(path=p, area=AREA_CLIENT)

    return RouteDecision(path=_prefixed(HOME_ROOT, p), rewritten=True, area=AREA_HOME)
