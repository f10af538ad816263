# backend/agency_crm/core/sidebar.py
"""
Client navigation menu.

The menu is derived only from the client's ACTIVE services:
  - base entries (Dashboard, Services, Support, Settings)
  - situational entries (Databases, Products) when any service carries a
    feature that produces that kind of data
  - one entry per service, its items chosen by the service's feature keys
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

# Feature keys (Service.features and ServiceModule.key)
TRACKING = "TRACKING"
CAMPAIGNS = "CAMPAIGNS"
SEO = "SEO"
CMS = "CMS"
FORMS = "FORMS"
CHECKOUT = "CHECKOUT"
STRIPE = "STRIPE"
PRODUCTS = "PRODUCTS"
ECOMMERCE = "ECOMMERCE"

# Labels older services were created with before keys were normalized
_LEGACY_ALIASES = {
    CAMPAIGNS: ("Gestão de Ads",),
    SEO: ("Análise de keywords",),
}

DATABASE_FEATURES = frozenset({TRACKING, CMS, FORMS, STRIPE, CHECKOUT})
PRODUCT_FEATURES = frozenset({PRODUCTS, CHECKOUT, ECOMMERCE})

_SEO_TITLE_WORDS = ("seo", "optimization", "otimização")
_SOCIAL_TITLE_WORDS = ("social", "instagram", "facebook")
_ADS_TITLE_WORDS = ("ads", "traffic", "tráfego", "google")


@dataclass(frozen=True)
class SidebarService:
    id: str
    title: str
    features: tuple[str, ...] = field(default_factory=tuple)
    module_keys: tuple[str, ...] = field(default_factory=tuple)

    @property
    def keys(self) -> frozenset[str]:
        return frozenset(self.features) | frozenset(self.module_keys)

    def has(self, key: str) -> bool:
        keys = self.keys
        return key in keys or any(alias in keys for alias in _LEGACY_ALIASES.get(key, ()))


def _link(title: str, url: str) -> dict[str, str]:
    return {"title": title, "url": url}


def _entry(title: str, url: str, icon: str, items: list[dict[str, str]] | None = None) -> dict[str, Any]:
    return {"title": title, "url": url, "icon": icon, "items": items or []}


def _base_menu(all_keys: frozenset[str]) -> list[dict[str, Any]]:
    situational: list[dict[str, Any]] = []
    if all_keys & DATABASE_FEATURES:
        situational.append(_entry("Databases", "/client/databases", "Database"))
    if all_keys & PRODUCT_FEATURES:
        situational.append(_entry("Products", "/client/products", "ShoppingBag"))

    return [
        _entry(
            "Dashboard",
            "/client",
            "LayoutDashboard",
            [
                _link("Overview", "/client"),
                _link("Reports", "/client/reports"),
                _link("My Team", "/client/team"),
            ],
        ),
        *situational,
        _entry(
            "Services",
            "/client/services",
            "SquareTerminal",
            [
                _link("My Contracts", "/client/services"),
                _link("Invoices", "/client/invoices"),
            ],
        ),
        _entry(
            "Support",
            "/client/support",
            "LifeBuoy",
            [
                _link("Open Ticket", "/client/support/new"),
                _link("My Tickets", "/client/support"),
            ],
        ),
        _entry(
            "Settings",
            "/client/settings",
            "Settings",
            [
                _link("Business", "/client/settings"),
                _link("Team", "/client/team"),
            ],
        ),
    ]


def _service_icon(service: SidebarService, title_lower: str) -> str:
    # First matching feature wins
    if service.has(CAMPAIGNS):
        if any(w in title_lower for w in _SOCIAL_TITLE_WORDS):
            return "Megaphone"
        if any(w in title_lower for w in _ADS_TITLE_WORDS):
            return "TrendingUp"
        return "BarChart3"
    if service.has(CMS):
        return "PenTool" if "blog" in title_lower else "Monitor"
    if service.has(FORMS):
        return "ClipboardList"
    if service.has(CHECKOUT):
        return "CreditCard"
    if service.has(TRACKING):
        return "Database"
    return "Search"


def _service_entry(service: SidebarService) -> dict[str, Any]:
    base = f"/client/services/{service.id}"
    title_lower = service.title.lower()

    has_seo = service.has(SEO) or any(w in title_lower for w in _SEO_TITLE_WORDS)

    items: list[dict[str, str]] = []
    if service.has(TRACKING):
        items.append(_link("Databases", f"{base}/integrations"))
    if service.has(CAMPAIGNS):
        items.append(_link("Campaigns", f"{base}/campaigns"))
    if has_seo:
        items.append(_link("SEO & Visibility", f"{base}/seo"))
    if service.has(CMS):
        items.append(_link("Content (CMS)", f"{base}/cms"))
    if service.has(FORMS):
        items.append(_link("Forms", f"{base}/web-dev/forms"))
    if service.has(CHECKOUT):
        items.append(_link("Checkout", f"{base}/web-dev/checkout"))

    if items:
        icon = _service_icon(service, title_lower)
    else:
        # Nothing configured yet; an admin still has to assign features
        icon = "Box"
        items = [_link("Settings", f"{base}/settings")]

    items.append(_link("Talk to a specialist", f"{base}/contact"))
    return _entry(service.title, base, icon, items)


def build_sidebar_menu(services: Iterable[SidebarService]) -> list[dict[str, Any]]:
    services = list(services)
    all_keys: frozenset[str] = frozenset().union(*(s.keys for s in services)) if services else frozenset()
    return _base_menu(all_keys) + [_service_entry(s) for s in services]
