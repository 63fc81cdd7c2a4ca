"""
Middleware and request helpers for the API.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from cropmarket.config import Settings, get_settings

# Largest accepted request body; uploads are further capped by FileStorage.
MAX_REQUEST_BYTES = 10_000_000

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Nearby search asks the browser for the buyer's location.
    "Permissions-Policy": "geolocation=(self), camera=()",
}


def _request_settings(request: Request) -> Settings:
    state = getattr(request.app.state, "state", None)
    return state.settings if state is not None else get_settings()


def get_client_ip(request: Request) -> str:
    """
    Client address used for rate limiting and request logs.

    ``X-Forwarded-For`` / ``X-Real-IP`` are only read when TRUST_PROXY_HEADERS
    is on and the direct peer is listed in TRUSTED_PROXY_IPS (or ``*`` is).
    """
    peer = (request.client.host if request.client else "") or ""
    settings = _request_settings(request)
    if not settings.trust_proxy_headers:
        return peer

    trusted = {ip.strip() for ip in settings.trusted_proxy_ips or () if ip and ip.strip()}
    if "*" not in trusted and peer not in trusted:
        return peer

    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    return forwarded or real_ip or peer


def setup_compression(app: FastAPI) -> None:
    app.add_middleware(GZipMiddleware, minimum_size=800)


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
        max_age=settings.cors_max_age,
    )


def setup_security_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        # Swagger UI and ReDoc load their own scripts.
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


def setup_request_size_limit(app: FastAPI, max_bytes: int = MAX_REQUEST_BYTES) -> None:
    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        declared = request.headers.get("content-length") or ""
        if declared.isdigit() and int(declared) > max_bytes:
            return JSONResponse(
                status_code=413,
                content={"error": "payload_too_large", "message": f"Request body exceeds {max_bytes} bytes"},
                headers={"Cache-Control": "no-store"},
            )
        return await call_next(request)
