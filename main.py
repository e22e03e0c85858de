"""
FastAPI application for the image studio backend.
Middleware stack, router registration table, health endpoints and exception handlers.
"""
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from utils.exceptions import StudioError
from utils.logging_config import setup_logging

setup_logging(level=settings.log_level, enable_file_logging=settings.is_production())
logger = logging.getLogger(__name__)

SERVICE_NAME = settings.app_name
SERVICE_VERSION = settings.app_version
PORT = 8000

logger.info(f"[STARTUP] {SERVICE_NAME} v{SERVICE_VERSION} ({settings.environment})")


# =============================================================================
# LIFESPAN MANAGEMENT
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    logger.info("[STARTUP] Beginning application startup...")
    settings.validate_production_security()

    try:
        from database import initialize_database
        start_time = time.time()
        available = await initialize_database()
        init_time_ms = (time.time() - start_time) * 1000
        if available:
            logger.info(f"[STARTUP] Database ready in {init_time_ms:.2f}ms")
        else:
            logger.warning(f"[STARTUP] Database unreachable after {init_time_ms:.2f}ms")
    except Exception as e:
        # Requests create the client lazily, so start-up continues
        logger.error(f"[STARTUP] Database initialization failed: {e}")

    yield

    logger.info("[SHUTDOWN] Application shutting down")


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

app = FastAPI(
    title=SERVICE_NAME,
    version=SERVICE_VERSION,
    description="AI image studio API: generation, history, collections, prompt library and credits",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production() or settings.debug else None,
    redoc_url="/redoc" if not settings.is_production() or settings.debug else None,
)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================

@app.get("/health")
async def health():
    """Liveness check - must always work."""
    return {"status": "healthy", "timestamp": time.time()}


@app.get("/api/v1/health/config")
async def health_config():
    """Which integrations are configured (never their values)."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.environment,
        "supabase": {
            "configured": bool(settings.supabase_url and settings.supabase_anon_key),
            "service_key": bool(settings.supabase_service_role_key),
            "jwt_secret": bool(settings.supabase_jwt_secret),
        },
        "integrations": {
            "fal": bool(settings.fal_key),
            "ai_gateway": bool(settings.ai_gateway_api_key),
            "transcription": bool(settings.google_api_key),
        },
        "features": {
            "rate_limit_enabled": settings.rate_limit_enabled,
            "persist_generated_images": settings.persist_generated_images,
            "generation_credit_cost": settings.generation_credit_cost,
        }
    }


# =============================================================================
# MIDDLEWARE CONFIGURATION (Order matters - last added = outermost)
# =============================================================================

from middleware.auth import AuthMiddleware
from middleware.global_error_handler import GlobalErrorMiddleware
from middleware.request_tracking import RequestTrackingMiddleware

# 1. Auth (innermost): attaches request.state.user, never rejects
app.add_middleware(AuthMiddleware)
# 2. Global error handler: JSON 500 for anything that escapes
app.add_middleware(GlobalErrorMiddleware)
# 3. Request ID and timing
app.add_middleware(RequestTrackingMiddleware)
# 4. CORS (outermost) so every response, errors included, carries CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time", "Server-Timing", "Content-Disposition", "Retry-After"],
    max_age=86400
)
logger.info(f"[MW] Middleware stack loaded, CORS with {len(settings.cors_origins)} origins")


# =============================================================================
# REGISTER ROUTERS
# =============================================================================

def register_router_safe(app: FastAPI, module_path: str, prefix: str, tag: str) -> bool:
    """
    Register a router by module name.
    In production a broken router is logged and skipped; elsewhere the import error is raised.
    """
    try:
        module = __import__(f"routers.{module_path}", fromlist=["router"])
        router = getattr(module, "router")
        app.include_router(router, prefix=prefix, tags=[tag])
        logger.info(f"[ROUTER] {tag} registered at {prefix}")
        return True
    except Exception as e:
        logger.error(f"[ROUTER] {tag} failed: {e}")
        if not settings.is_production():
            raise
        return False


routers_config = [
    ("auth", "/api/v1/auth", "Authentication"),
    ("user", "/api/v1/user", "User"),
    ("credits", "/api/v1/credits", "Credits"),
    ("generations", "/api/v1/generations", "Generations"),
    ("history", "/api/v1/history", "History"),
    ("favorites", "/api/v1/favorites", "Favorites"),
    ("collections", "/api/v1/collections", "Collections"),
    ("prompts", "/api/v1/prompts", "Prompts"),
    ("payments", "/api/v1/payments", "Payments"),
    ("admin", "/api/v1/admin", "Admin"),
    ("ai_tools", "/api/v1/ai", "AI Tools"),
]

registered_count = 0
for module, prefix, tag in routers_config:
    if register_router_safe(app, module, prefix, tag):
        registered_count += 1

logger.info(f"[ROUTERS] {registered_count}/{len(routers_config)} routers registered")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = getattr(request.state, "request_id", "unknown")
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "request_id": request_id,
            "status_code": exc.status_code
        },
        headers=getattr(exc, "headers", None)
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(StudioError)
async def studio_exception_handler(request: Request, exc: StudioError):
    """StudioErrors that reach here were not mapped by a router."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"[{request_id}] {exc.__class__.__name__}: {exc.message}")
    response = JSONResponse(
        status_code=exc.http_status,
        content={
            "detail": exc.user_message,
            "error_code": exc.error_code,
            "request_id": request_id,
            "status_code": exc.http_status
        }
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid input is a 400 with the first message as detail."""
    request_id = getattr(request.state, "request_id", "unknown")
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    detail = "Invalid request"
    if errors:
        field = ".".join(part for part in errors[0]["loc"] if part not in ("body", "query", "path", "form"))
        message = errors[0]["msg"].removeprefix("Value error, ")
        detail = f"{field}: {message}" if field else message

    response = JSONResponse(
        status_code=400,
        content={"detail": detail, "errors": errors, "request_id": request_id, "status_code": 400}
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions with CORS headers."""
    request_id = getattr(request.state, "request_id", "unknown")
    origin = request.headers.get("Origin", "")

    logger.exception(f"[{request_id}] Unhandled exception: {exc}")

    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "request_id": request_id,
            "error": "internal_server_error"
        }
    )

    # This handler runs outside CORSMiddleware
    if origin and origin in settings.cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"

    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", PORT)),
        log_level=settings.log_level.lower(),
        reload=settings.is_development()
    )
