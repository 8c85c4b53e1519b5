import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hostdesk.api.v1.ai import router as ai_router
from hostdesk.api.v1.profile import router as profile_router
from hostdesk.api.v1.requests import router as requests_router
from hostdesk.core.config import get_settings
from hostdesk.utils.rate_limit import get_client_ip, rate_limiter

settings = get_settings()

logger = logging.getLogger(__name__)

AI_PATH_PREFIX = "/api/v1/ai/"
# Upstream-failure and storage responses carry client-facing details.
PUBLIC_ERROR_STATUSES = frozenset({502, 503})

app = FastAPI(
    title="HostDesk API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.include_router(requests_router, prefix="/api/v1", tags=["requests"])
app.include_router(ai_router, prefix="/api/v1", tags=["ai"])
app.include_router(profile_router, prefix="/api/v1", tags=["profile"])


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    hidden = exc.status_code >= 500 and exc.status_code not in PUBLIC_ERROR_STATUSES
    if hidden and not get_settings().expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if get_settings().expose_error_details:
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    return JSONResponse(status_code=500, content={"detail": "Internal error"})


@app.middleware("http")
async def ai_rate_limit_middleware(request: Request, call_next):
    if request.method != "POST" or not request.url.path.startswith(AI_PATH_PREFIX):
        return await call_next(request)

    current = get_settings()
    if not current.rate_limit_ai_enabled:
        return await call_next(request)

    ip = get_client_ip(request) or "unknown"
    if not rate_limiter.allow(f"ai:ip:{ip}", current.rate_limit_ai_per_min, 60):
        logger.warning("AI rate limit hit ip=%s path=%s", ip, request.url.path)
        return JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
    return await call_next(request)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not get_settings().security_headers_enabled:
        return response

    headers = response.headers
    headers.setdefault("X-Content-Type-Options", "nosniff")
    headers.setdefault("X-Frame-Options", "DENY")
    headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    headers.setdefault("Cache-Control", "no-store")
    headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    return response


@app.get("/health")
async def health_check():
    return {"status": "ok"}
