"""
CRM auth service — main application.

Assembles all packages: config, stores, middleware, auth, profile,
organization.
"""

import asyncio
import traceback
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from crm.config import settings, db_manager
from crm.middleware import (
    AuthMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
)
from crm.notifications import EmailNotifier
from crm.stores import StoreRegistry
from crm.utils import Logger, error_response, set_log_level, utcnow
from crm.utils.exceptions import CRMError, InternalError, ValidationError

# ── Route imports ────────────────────────────────────────────────
from crm.auth import AuthService
from crm.auth.routes import auth_router
from crm.auth.schemas import RegisterRequest
from crm.organization.routes import org_router
from crm.profile.routes import profile_router

logger = Logger("app")

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "password"


# ── Background jobs ──────────────────────────────────────────────
async def sweep_reset_tokens(stores: StoreRegistry, interval: float) -> None:
    """Delete expired reset tokens every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await stores.reset_tokens.sweep_expired()
            if removed:
                logger.debug(f"Swept {removed} expired reset token(s)")
        except Exception as exc:
            logger.error(f"Reset token sweep failed: {exc}")


async def seed_demo_data(stores: StoreRegistry, notifier: EmailNotifier) -> None:
    if await stores.users.find_by_email(DEMO_EMAIL):
        return
    await AuthService(stores, notifier).register(
        RegisterRequest(
            first_name="Demo",
            last_name="User",
            email=DEMO_EMAIL,
            password=DEMO_PASSWORD,
            organization_name="Demo Company",
        )
    )
    logger.info(f"Seeded demo account {DEMO_EMAIL}")


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


# ── App factory ──────────────────────────────────────────────────
def create_app(
    stores: StoreRegistry | None = None,
    notifier: EmailNotifier | None = None,
) -> FastAPI:
    """
    Build the application.

    `stores` and `notifier` may be injected (tests do). Otherwise the
    backend named by STORAGE_BACKEND is used: memory stores are created
    right away, Mongo stores once the lifespan has connected.
    """
    set_log_level(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        connected_here = False
        if app.state.stores is None:
            await db_manager.connect()
            connected_here = True
            app.state.stores = StoreRegistry.for_mongo(db_manager.database)
        await app.state.stores.ensure_indexes()

        if settings.seed_demo_data:
            await seed_demo_data(app.state.stores, app.state.notifier)

        sweeper = asyncio.create_task(
            sweep_reset_tokens(app.state.stores, settings.reset_token_sweep_interval)
        )
        logger.info(
            f"{settings.service_name} started "
            f"[{app.state.stores.backend} storage, {settings.environment}]"
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            if connected_here:
                db_manager.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Authentication and session service for the multi-tenant CRM",
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    if stores is None and settings.storage_backend == "memory":
        stores = StoreRegistry.in_memory()
    app.state.stores = stores
    app.state.notifier = notifier or EmailNotifier()

    # ── Auth middleware ──────────────────────────────────────
    app.add_middleware(AuthMiddleware)

    # ── Rate limiting on the credential endpoints ───────────
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware)

    # ── Request logging (runs on every request) ──────────────
    app.add_middleware(RequestLoggingMiddleware)

    # ── CORS (added last so it wraps everything, 401s included) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    # ── Exception handlers ───────────────────────────────────
    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError):
        data = None
        if isinstance(exc, ValidationError) and exc.errors:
            data = {"errors": exc.errors}
        return error_response(
            exc.detail,
            code=exc.status_code,
            error_type=exc.error_type,
            data=data,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        message = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        return error_response(
            message or ValidationError.default_detail,
            code=400,
            error_type=ValidationError.error_type,
            data={"errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}:")
        logger.error(traceback.format_exc())
        return error_response(
            str(exc) if settings.debug else InternalError.default_detail,
            code=500,
            error_type=InternalError.error_type,
        )

    # ── Routes ───────────────────────────────────────────────
    app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(profile_router, prefix="/api/users", tags=["Profile & Password"])
    app.include_router(org_router, prefix="/api/organizations", tags=["Organization"])

    # ── Health check ─────────────────────────────────────────
    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": settings.service_name,
            "version": settings.app_version,
            "timestamp": utcnow().isoformat(),
        }

    return app


# ── Create the app instance ──────────────────────────────────────
app = create_app()
