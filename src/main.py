"""
Code Violation Detector - Main Application

FastAPI application with:
- Browser UI at / (upload an image, list ranked violations)
- POST /api/predict (multipart `image`) -> ranked OSHA / ANSI predictions
- API versioning (/api/v1/)
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
- ONNX model preloading at startup
"""

import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from src.core.config import settings
from src.core.logging import setup_logging, get_logger, request_id_var
from src.core.exceptions import register_exception_handlers
from src.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from src.api.v1 import api_v1_router
from src.api.v1.predict import router as predict_router
from src.api.dependencies import preload_models_async, get_model_loading_status


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)

UI_INDEX = os.path.join(os.path.dirname(__file__), "static", "index.html")


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    startup_start = time.time()

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    if settings.PRELOAD_MODEL:
        if await preload_models_async():
            logger.info("model_preloaded")
        else:
            logger.warning("model_preload_failed", model_path=str(settings.MODEL_PATH))

    logger.info("application_ready", startup_time_seconds=time.time() - startup_start)

    yield

    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Workplace safety code violation detector.

    Upload a photo and the service reports, most probable first, whether it
    shows a violation of one of six regulatory codes (OSHA 1910 / ANSI),
    stopping once 99% of the probability mass is covered.

    ## Endpoints

    - `POST /api/predict` - multipart field `image`
    - `GET /api/v1/metrics` - Prometheus metrics
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware
# =============================================================================

# CORS
cors_origins = settings.CORS_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Assign a request id and track request timing for metrics."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    start_time = time.time()

    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    duration = time.time() - start_time

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(duration)

    return response


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Include API Routers
# =============================================================================
app.include_router(api_v1_router)

# Unversioned route used by the browser UI
app.include_router(predict_router, prefix="/api", tags=["prediction"])


# =============================================================================
# UI & Root Endpoints
# =============================================================================

@app.get("/", include_in_schema=False)
async def ui():
    """Serve the upload UI."""
    return FileResponse(UI_INDEX, media_type="text/html")


@app.get("/api", tags=["root"])
async def root():
    """API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
        "ui": "/",
        "predict": "/api/predict",
        "api_v1": "/api/v1",
        "metrics": "/api/v1/metrics"
    }


@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/ready", tags=["health"])
async def ready():
    """Readiness check - the model must be loaded."""
    model_status = get_model_loading_status()
    is_ready = model_status["models_loaded"]

    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "ready": is_ready,
            "checks": {"model": is_ready},
            "model_status": {
                "loaded": model_status["models_loaded"],
                "loading": model_status["is_loading"],
            }
        }
    )


@app.get("/models/status", tags=["health"])
async def models_status():
    """Get detailed model loading status."""
    return get_model_loading_status()


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
