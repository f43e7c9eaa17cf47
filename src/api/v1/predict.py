"""
Prediction Endpoint

POST /api/predict (and /api/v1/predict)

Accepts a multipart upload with a single file field `image` and returns the
ranked violation predictions:

    {"predictions": [{"prediction", "probability", "caption", "code"}, ...]}
"""

import time

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile

from src.core.config import settings
from src.core.exceptions import (
    DetectorBaseException,
    FormParseError,
    MissingFileError,
    UploadTooLargeError,
)
from src.core.logging import get_logger, LogContext
from src.core.metrics import record_prediction
from src.api.dependencies import get_detection_service
from src.engines.violation.schemas import PredictionResponseDTO, ErrorResponseDTO
from src.engines.violation.services import ViolationDetectionService

logger = get_logger(__name__)
router = APIRouter()

IMAGE_FIELD = "image"


def _select_upload(form: FormData) -> UploadFile:
    """Pick the uploaded image, first file wins when several are sent."""
    uploads = [v for v in form.getlist(IMAGE_FIELD) if isinstance(v, UploadFile)]
    if not uploads:
        raise MissingFileError("No image provided")

    upload = uploads[0]
    if not upload.filename:
        raise MissingFileError("No valid file path provided.")
    return upload


async def _read_upload(request: Request) -> bytes:
    try:
        form = await request.form()
    except Exception as e:
        logger.error("form_parse_failed", error=str(e), error_type=type(e).__name__)
        raise FormParseError("Error parsing the file") from e

    try:
        upload = _select_upload(form)
        image_bytes = await upload.read()
    finally:
        await form.close()

    if not image_bytes:
        raise MissingFileError("No valid file path provided.")
    if len(image_bytes) > settings.MAX_IMAGE_SIZE_BYTES:
        raise UploadTooLargeError(len(image_bytes), settings.MAX_IMAGE_SIZE_BYTES)

    logger.info(
        "upload_received",
        filename=upload.filename,
        content_type=upload.content_type,
        size_bytes=len(image_bytes)
    )
    return image_bytes


@router.post(
    "/predict",
    response_model=PredictionResponseDTO,
    responses={
        400: {"model": ErrorResponseDTO},
        405: {"model": ErrorResponseDTO},
        413: {"model": ErrorResponseDTO},
        500: {"model": ErrorResponseDTO},
    },
)
async def predict(
    request: Request,
    service: ViolationDetectionService = Depends(get_detection_service)
):
    """
    Classify an uploaded image against the regulatory code taxonomy.

    Pipeline:
    - Upload: multipart field `image`
    - Preprocess: decode, 640x640, RGB, [0,1], channel-major
    - Inference: ONNX model, one probability per class
    - Ranking: descending, truncated at 99% cumulative probability

    Returns:
        PredictionResponseDTO with the ranked predictions
    """
    start_time = time.time()

    with LogContext(stage="upload"):
        try:
            image_bytes = await _read_upload(request)
            result = await service.predict(image_bytes)
        except DetectorBaseException as e:
            record_prediction(status="error", error_type=type(e).__name__)
            raise

        record_prediction(status="success")
        logger.info(
            "predict_request_complete",
            processing_time_ms=int((time.time() - start_time) * 1000)
        )
        return result
