from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from apps.purchase_orders.router import router as purchase_orders_router
from models.base import Base, engine
from settings.config import get_settings
from utils.logging import setup_logging

# Register every table on Base.metadata before create_all runs
import models.project_item  # noqa: F401
import models.purchase_order  # noqa: F401
import models.supplier  # noqa: F401


def _rate_limit_string(requests: int, window: int) -> str:
    if window == 1:
        return f"{requests}/second"
    if window == 60:
        return f"{requests}/minute"
    if window == 3600:
        return f"{requests}/hour"
    if window == 86400:
        return f"{requests}/day"
    return f"{requests} per {window} seconds"


def create_app() -> FastAPI:
    """
    Application factory to build a FastAPI app with all middlewares and routers.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version="1.0.0",
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Security headers middleware (helmet-like)
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response

    if settings.ENABLE_RATE_LIMITER:
        limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[_rate_limit_string(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)],
            storage_uri=settings.RATE_LIMIT_STORAGE_URI or "memory://",
        )
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        app.add_middleware(SlowAPIMiddleware)

    app.include_router(purchase_orders_router)

    # Ensure tables exist (for local/dev). In prod, use Alembic migrations.
    @app.on_event("startup")
    async def on_startup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
