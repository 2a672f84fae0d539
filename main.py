import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import ENV, LOG_LEVEL
from app.core.exceptions import RelayError, RateLimitError
from app.core.logging import get_logger, set_trace_id, setup_logging
from app.db.session import init_db
from app.routers.admin import router as admin_router
from app.routers.auth import router as auth_router
from app.routers.categories import router as categories_router
from app.routers.comments import router as comments_router
from app.routers.deals import router as deals_router
from app.routers.images import router as images_router
from app.routers.social import router as social_router
from app.routers.tracking import router as tracking_router

setup_logging(level=LOG_LEVEL)
logger = get_logger(__name__)

# =============================================================================
# APP CONFIGURATION
# =============================================================================

API_VERSION = "1.0.0"
API_TITLE = "Relay Station API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Relay Station API started", env=ENV)
    yield


app = FastAPI(
    lifespan=lifespan,
    title=API_TITLE,
    version=API_VERSION,
    description="Affiliate deals: tracking, images, admin and social posts",
    docs_url="/docs",
    redoc_url="/redoc",
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, PATCH, DELETE, OPTIONS",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time", "X-Image-Source", "Location"],
)


# =============================================================================
# MIDDLEWARE - Preflight, request tracking & timing
# =============================================================================

@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Add trace_id and timing to all requests. OPTIONS answers immediately."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    trace_id = set_trace_id()
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Request-ID"] = trace_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    # Log request (skip health checks)
    if request.url.path != "/health":
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    return response


# =============================================================================
# ERROR HANDLERS - {"error": "<message>"}
# =============================================================================

def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers={**CORS_HEADERS, **(headers or {})},
    )


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    headers = {}
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.error(exc.message, path=request.url.path, status_code=exc.status_code, exc_info=False)
    return error_response(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        message = f"Invalid field: {loc}" if loc else errors[0].get("msg", message)
    return error_response(400, message)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        f"Store error: {exc}",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=False,
    )
    return error_response(500, "Internal server error")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error: {exc}",
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return error_response(500, "Internal server error")


# =============================================================================
# SYSTEM ENDPOINTS
# =============================================================================

@app.get("/health")
def health():
    """Health check endpoint for load balancers & monitoring."""
    return {"status": "ok"}


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(tracking_router)     # /track-click, /track-share
app.include_router(admin_router)        # /admin-*, /admin/*
app.include_router(deals_router)        # /deals/*, /og-image
app.include_router(comments_router)     # /deals/{id}/comments, /comments/{id}
app.include_router(categories_router)   # /categories
app.include_router(images_router)       # /image-proxy
app.include_router(social_router)       # /generate-social-post
app.include_router(auth_router)         # /auth/*
