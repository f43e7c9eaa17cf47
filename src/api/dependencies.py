"""
FastAPI Dependencies for the Violation Detector

Provides dependency injection for:
- Model Repository (process-wide singleton, lazy session)
- Violation Detection Service (singleton)

Plus startup preloading and loading status for the health endpoints.
"""

import asyncio
import logging

from src.core.config import settings
from src.engines.violation.repositories import ModelRepository
from src.engines.violation.services import ViolationDetectionService

logger = logging.getLogger(__name__)


# =============================================================================
# Global Singletons - the ONNX session is expensive, only load once per process
# =============================================================================

_model_repo = ModelRepository.get_instance()
_detection_service = ViolationDetectionService(
    _model_repo,
    threshold=settings.CUMULATIVE_PROBABILITY_THRESHOLD,
    input_size=settings.INPUT_SIZE,
    resize_mode=settings.RESIZE_MODE,
)

_model_loading = False


# =============================================================================
# Model Preloading
# =============================================================================

def preload_models() -> bool:
    """Load the ONNX model before the first request.

    A failure is not fatal: the model is loaded again on first use.
    """
    global _model_loading
    _model_loading = True

    logger.info(f"Pre-loading model from {_model_repo.model_path}...")
    try:
        success = _model_repo.preload()
        if success:
            stats = _model_repo.get_loading_stats()
            logger.info(
                f"Model pre-loaded successfully | "
                f"Load time: {stats['loading_time']:.2f}s | "
                f"Outputs: {stats['output_names']}"
            )
        return success
    finally:
        _model_loading = False


async def preload_models_async() -> bool:
    """Run model preloading in a worker thread."""
    return await asyncio.to_thread(preload_models)


def get_model_loading_status() -> dict:
    """Get current model loading status."""
    return {
        "models_loaded": _model_repo.models_loaded,
        "is_loading": _model_loading,
        "loading_stats": _model_repo.get_loading_stats() if _model_repo.models_loaded else None,
        "config": {
            "model_path": str(settings.MODEL_PATH),
            "input_size": settings.INPUT_SIZE,
            "resize_mode": settings.RESIZE_MODE,
            "threshold": settings.CUMULATIVE_PROBABILITY_THRESHOLD,
        }
    }


# =============================================================================
# Providers
# =============================================================================

def get_model_repo() -> ModelRepository:
    """Returns singleton model repository."""
    return _model_repo


def get_detection_service() -> ViolationDetectionService:
    """Returns singleton detection service."""
    return _detection_service
