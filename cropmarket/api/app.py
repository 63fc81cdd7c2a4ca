"""
FastAPI application factory.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cropmarket import __version__
from cropmarket.api.middleware import setup_compression, setup_cors, setup_request_size_limit, setup_security_headers
from cropmarket.api.observability import ObservabilityMiddleware, generate_request_id, get_request_id
from cropmarket.api.routes import assistant as assistant_routes
from cropmarket.api.routes import auth as auth_routes
from cropmarket.api.routes import cart as cart_routes
from cropmarket.api.routes import checkout as checkout_routes
from cropmarket.api.routes import farmer as farmer_routes
from cropmarket.api.routes import favorites as favorites_routes
from cropmarket.api.routes import listings as listings_routes
from cropmarket.api.routes import orders as orders_routes
from cropmarket.api.routes import profile as profile_routes
from cropmarket.api.routes import quality as quality_routes
from cropmarket.api.state import AppState
from cropmarket.config import Settings, get_settings
from cropmarket.exceptions import CropMarketError, RateLimitError, exception_to_http_status
from cropmarket.logging_config import get_logger
from cropmarket.rate_limit import RateLimitConfig, SQLiteRateLimiter
from cropmarket.repository import FavoriteSellerRepo, MarketStore
from cropmarket.services.assistant import FarmerAssistant
from cropmarket.services.storage import FileStorage

logger = get_logger(__name__)


def create_app(
    *,
    db_path: Path | None = None,
    storage_path: Path | None = None,
    rate_limit_path: Path | None = None,
    settings: Settings | None = None,
    assistant: FarmerAssistant | None = None,
    favorites: FavoriteSellerRepo | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    storage_root = Path(storage_path or settings.storage_path)
    storage_root.mkdir(parents=True, exist_ok=True)

    store = MarketStore(db_path or settings.db_path)
    state = AppState(
        store=store,
        settings=settings,
        storage=FileStorage(storage_root, settings),
        assistant=assistant or FarmerAssistant(settings=settings),
        rate_limiter=SQLiteRateLimiter(
            rate_limit_path or settings.rate_limit_path,
            RateLimitConfig(
                requests_per_window=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            ),
        ),
        favorites=favorites,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        removed = store.delete_expired_sessions()
        logger.info("startup", extra={"db_path": str(store.db_path), "expired_sessions_removed": removed})
        yield

    app = FastAPI(
        title="CropMarket API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.state = state

    setup_compression(app)
    setup_cors(app, settings)
    setup_security_headers(app)
    setup_request_size_limit(app)

    # Observability middleware (must be added last to wrap all others)
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/v1/health")
    def health(response: Response) -> dict:
        response.headers["Cache-Control"] = "no-store"
        return {"ok": True, "db": store.ping()}

    app.include_router(auth_routes.router)
    app.include_router(profile_routes.router)
    app.include_router(listings_routes.router)
    app.include_router(cart_routes.router)
    app.include_router(checkout_routes.router)
    app.include_router(orders_routes.router)
    app.include_router(farmer_routes.router)
    app.include_router(assistant_routes.router)
    app.include_router(quality_routes.router)
    app.include_router(favorites_routes.router)

    # Uploaded avatars and listing photos.
    if settings.public_storage_url.startswith("/"):
        app.mount(settings.public_storage_url, StaticFiles(directory=storage_root), name="storage")

    def _error_headers(request: Request) -> dict[str, str]:
        rid = get_request_id() or request.headers.get("x-request-id") or generate_request_id()
        return {"X-Request-ID": rid, "Cache-Control": "no-store"}

    @app.exception_handler(CropMarketError)
    def _cropmarket_error(request: Request, exc: CropMarketError) -> JSONResponse:
        headers = _error_headers(request)
        exc.request_id = headers["X-Request-ID"]
        if isinstance(exc, RateLimitError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(status_code=exception_to_http_status(exc), content=exc.to_dict(), headers=headers)

    @app.exception_handler(Exception)
    def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # ObservabilityMiddleware logs the exception; we still return a safe, stable envelope.
        headers = _error_headers(request)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
                "request_id": headers["X-Request-ID"],
            },
            headers=headers,
        )

    return app
