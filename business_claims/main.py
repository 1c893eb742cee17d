"""
FastAPI application main module.
Claim lifecycle service with request tracing, structured error envelopes and health checks.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import os
from contextlib import asynccontextmanager
from business_claims import database
from business_claims.api.v1 import api_router
from business_claims.utils import setup_logging, get_logger
from business_claims.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER
from business_claims.utils.observability import REQUEST_ID_HEADER, ensure_request_id, request_id_of
from business_claims.services.authorization import AllowlistReviewerAuthorizer
from business_claims.services.errors import ClaimServiceError
from business_claims.services.notifications import build_notifier
from business_claims.services.place_lookup import build_place_lookup_service

SERVICE_NAME = "business-claims"
SERVICE_VERSION = "1.0.0"

# Setup logging before creating the app
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE", "logs/business_claims.log"),
    enable_console=True,
    audit_log_file=os.getenv("AUDIT_LOG_FILE", "logs/claims_audit.log"),
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Creates tables and wires the outbound collaborators into app state.
    """
    logger.info("Application startup initiated")
    try:
        database.Base.metadata.create_all(bind=database.engine)
        app.state.place_lookup = build_place_lookup_service()
        app.state.notifier = build_notifier()
        app.state.reviewer_authorizer = AllowlistReviewerAuthorizer()
        logger.info(
            "Application startup completed",
            place_provider=app.state.place_lookup.provider.name,
            notifier=type(app.state.notifier).__name__,
        )
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown completed")


app = FastAPI(
    title="Business Claims Service",
    description="""
    Ownership claims for place listings.

    ## Lifecycle
    * **Submit** - a user claims a listing (pending)
    * **Review** - a reviewer approves or rejects; approval is exclusive per listing
    * **Convert** - an approved claimant becomes a business account
    * **Revoke** - an approved claim can be withdrawn by a reviewer, freeing the listing

    ## Authentication
    The host application forwards the authenticated user:
    ```
    Authorization: Gateway <internal token>
    X-User-ID: <user id>
    X-User-Email: <email>
    ```
    """,
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

# CORS middleware - configure appropriately for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """Assign the request id, time the request and echo the id back to the caller."""
    request_id = ensure_request_id(request.headers)
    request.state.request_id = request_id
    request.state.start_time = time.time()

    logger.debug(
        "Request started",
        method=request.method,
        path=request.url.path,
        caller_id=request.headers.get("X-User-ID"),
        request_id=request_id
    )

    response = await call_next(request)
    process_time_ms = round((time.time() - request.state.start_time) * 1000, 2)

    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers["X-Process-Time"] = str(process_time_ms)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time_ms=process_time_ms,
        request_id=request_id
    )
    return response


def _error_response(request: Request, status_code: int, message, headers=None, **fields) -> JSONResponse:
    """Shared failure envelope; every error carries the request id for support lookups."""
    content = {"success": False, **fields, "message": message, "request_id": request_id_of(request)}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(ClaimServiceError)
async def claim_error_handler(request: Request, exc: ClaimServiceError):
    """Map lifecycle errors to their HTTP status with a machine-readable code."""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        "Claim operation rejected",
        error_code=exc.code,
        error_message=exc.message,
        request_id=request_id_of(request),
        path=request.url.path,
        method=request.method,
        **exc.context
    )
    return _error_response(
        request, exc.http_status, exc.message, error=exc.code, retryable=exc.retryable
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    logger.warning(
        "Request validation failed",
        errors=exc.errors(),
        request_id=request_id_of(request),
        path=request.url.path,
        method=request.method
    )
    return _error_response(
        request, 422, "Request validation failed",
        error="ValidationError", details=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (gateway authentication, unknown routes)."""
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id_of(request),
        path=request.url.path,
        method=request.method
    )
    return _error_response(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id_of(request),
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return _error_response(request, 500, "Internal server error")


@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Basic health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": time.time(),
    }


@app.get("/health/detailed", tags=["health"], summary="Detailed health check")
async def detailed_health_check():
    """Database connectivity plus the state of every place lookup circuit."""
    checks = {}
    status = "healthy"

    try:
        db = database.SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"
        status = "degraded"

    # An open lookup circuit only delays conversion; approvals keep working
    circuits = GLOBAL_CIRCUIT_BREAKER.snapshot()
    checks["circuits"] = circuits
    if any(c["state"] != "CLOSED" for c in circuits.values()):
        status = "degraded"

    return {
        "status": status,
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": time.time(),
        "checks": checks,
    }


@app.get("/", tags=["root"])
async def root():
    """API root endpoint with basic information."""
    return {
        "message": "Business Claims Service API",
        "version": SERVICE_VERSION,
        "documentation": "/docs",
        "health_check": "/health",
        "api_base": "/api/v1"
    }


app.include_router(api_router, prefix="/api/v1")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "business_claims.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        reload_dirs=["business_claims"],
        log_level="info",
    )
