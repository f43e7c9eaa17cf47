"""
Global Exception Handling

Domain exceptions for the upload -> preprocess -> inference pipeline and the
FastAPI handlers that turn them into structured JSON error responses.
Every error body carries an "error" message.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.logging import get_logger, request_id_var

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class DetectorBaseException(Exception):
    """Base exception for the violation detector."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.stage = stage
        self.details = details or {}
        super().__init__(self.message)


class DecodeError(DetectorBaseException):
    """Raised when the uploaded bytes cannot be decoded as an image."""

    def __init__(self, message: str = "Unable to decode image", **kwargs):
        super().__init__(message, code=400, stage="preprocess", **kwargs)


class FormParseError(DetectorBaseException):
    """Raised when the multipart upload cannot be parsed."""

    def __init__(self, message: str = "Error parsing the file", **kwargs):
        super().__init__(message, code=500, stage="upload", **kwargs)


class MissingFileError(DetectorBaseException):
    """Raised when the upload has no usable `image` file."""

    def __init__(self, message: str = "No image provided", **kwargs):
        super().__init__(message, code=400, stage="upload", **kwargs)


class UploadTooLargeError(DetectorBaseException):
    """Raised when the uploaded file exceeds MAX_IMAGE_SIZE_BYTES."""

    def __init__(self, size_bytes: int, limit_bytes: int, **kwargs):
        super().__init__(
            f"Image size ({size_bytes / (1024 * 1024):.2f}MB) exceeds maximum "
            f"({limit_bytes / (1024 * 1024):.0f}MB)",
            code=413,
            stage="upload",
            **kwargs
        )
        self.details["size_bytes"] = size_bytes
        self.details["limit_bytes"] = limit_bytes


class InferenceError(DetectorBaseException):
    """Raised when the model produces no usable output."""

    def __init__(self, message: str, output_key: Optional[str] = None, **kwargs):
        super().__init__(message, code=500, stage="inference", **kwargs)
        if output_key is not None:
            self.details["output_key"] = output_key


# =============================================================================
# Exception Handlers
# =============================================================================

def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(DetectorBaseException)
    async def detector_exception_handler(request: Request, exc: DetectorBaseException):
        logger.error(
            "detector_exception",
            error=exc.message,
            code=exc.code,
            stage=exc.stage,
            details=exc.details,
            path=str(request.url.path)
        )

        return JSONResponse(
            status_code=exc.code,
            content={
                "error": exc.message,
                "request_id": request_id_var.get(),
                "code": exc.code,
                "stage": exc.stage,
                "details": exc.details,
                "timestamp": _timestamp()
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "request_id": request_id_var.get(),
                "code": exc.status_code,
                "timestamp": _timestamp()
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "request_id": request_id_var.get(),
                "code": 500,
                "timestamp": _timestamp()
            }
        )
