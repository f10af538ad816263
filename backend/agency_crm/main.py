# backend/agency_crm/main.py
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agency_crm.core.config import settings
from agency_crm.core.logging import configure_logging, get_logger
from agency_crm.core.tenant_routing import RoutingConfig
from agency_crm.middleware.tenant_routing import CLIENT_SLUG_HEADER, TenantRoutingMiddleware
import agency_crm.models  # noqa: F401  # force model registration

from agency_crm.api.v1.auth import router as auth_router
from agency_crm.api.v1.client import router as client_router
from agency_crm.api.v1.home import router as home_router
from agency_crm.api.v1.marketing import router as marketing_router
from agency_crm.api.v1.master import router as master_router
from agency_crm.api.v1.public import router as public_router
from agency_crm.api.v1.seo import router as seo_router
from agency_crm.api.v1.tracking import router as tracking_router

log = get_logger(__name__)


def build_client_area() -> APIRouter:
    """Every tenant-scoped router, mounted once per client prefix."""
    area = APIRouter()
    area.include_router(client_router)
    area.include_router(seo_router)
    area.include_router(marketing_router)
    area.include_router(tracking_router)
    return area


def create_application() -> FastAPI:
    configure_logging(settings)

    docs_enabled = not settings.is_production
    app = FastAPI(
        title=settings.APP_NAME,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    # Host based area routing runs before the router sees the path.
    app.add_middleware(TenantRoutingMiddleware, config=RoutingConfig.from_settings(settings))

    # Added last so it wraps everything, including preflights on rewritten paths
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.CORS_ORIGIN_REGEX or None,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CLIENT_SLUG_HEADER],
    )

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "service": settings.APP_NAME}

    # Host-routed areas (what the middleware rewrites to)
    app.include_router(auth_router, prefix="/auth")
    app.include_router(master_router, prefix="/master")
    app.include_router(build_client_area(), prefix="/client")
    app.include_router(home_router)

    # Explicit JSON API, never rewritten. /api/public must precede /api/{client_slug}.
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(master_router, prefix="/api/master")
    app.include_router(public_router, prefix="/api/public")
    app.include_router(build_client_area(), prefix="/api/{client_slug}")

    log.info("application_created", environment=settings.ENVIRONMENT, root_domains=settings.root_domains)
    return app


app = create_application()
