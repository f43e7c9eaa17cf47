"""
Violation Detection Service

Runs one uploaded image through Normalizer -> Model -> Ranker. Decoding and
inference are CPU bound and run in a worker thread so the event loop stays free.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

import numpy as np

from src.core.exceptions import InferenceError
from src.core.logging import get_logger, with_logging
from src.core.metrics import track_stage_latency, record_top_prediction
from src.engines.violation.preprocessing import INPUT_SIZE, RESIZE_COVER, normalize_image
from src.engines.violation.ranking import DEFAULT_THRESHOLD, rank_predictions
from src.engines.violation.repositories import ModelRepository
from src.engines.violation.schemas import PredictionResponseDTO
from src.engines.violation.taxonomy import TAXONOMY, ViolationClass

logger = get_logger(__name__)


class ViolationDetectionService:
    """Stateless per request; only the model repository is shared."""

    def __init__(
        self,
        model_repo: ModelRepository,
        threshold: float = DEFAULT_THRESHOLD,
        input_size: int = INPUT_SIZE,
        resize_mode: str = RESIZE_COVER,
        taxonomy: Sequence[ViolationClass] = TAXONOMY,
        descriptions: Optional[Dict[str, str]] = None
    ):
        self.model_repo = model_repo
        self.threshold = threshold
        self.input_size = input_size
        self.resize_mode = resize_mode
        self.taxonomy = taxonomy
        self.descriptions = descriptions

    @with_logging("preprocess")
    def _preprocess(self, image_bytes: bytes) -> np.ndarray:
        with track_stage_latency("preprocess"):
            return normalize_image(image_bytes, size=self.input_size, resize_mode=self.resize_mode)

    @with_logging("inference")
    def _infer(self, tensor: np.ndarray) -> List[float]:
        with track_stage_latency("inference"):
            probabilities = self.model_repo.predict(tensor)

        if len(probabilities) != len(self.taxonomy):
            raise InferenceError(
                f"Model returned {len(probabilities)} values, expected {len(self.taxonomy)}",
                details={"output_length": len(probabilities)}
            )
        return probabilities

    def _run_sync(self, image_bytes: bytes) -> PredictionResponseDTO:
        tensor = self._preprocess(image_bytes)
        probabilities = self._infer(tensor)
        logger.debug("raw_predictions", probabilities=probabilities)

        with track_stage_latency("ranking"):
            ranked = rank_predictions(
                probabilities,
                threshold=self.threshold,
                taxonomy=self.taxonomy,
                descriptions=self.descriptions
            )

        return PredictionResponseDTO(predictions=ranked)

    async def predict(self, image_bytes: bytes) -> PredictionResponseDTO:
        """
        Classify an uploaded image.

        Raises:
            DecodeError: The bytes are not an image
            InferenceError: The model is unavailable or its output is unusable
        """
        result = await asyncio.to_thread(self._run_sync, image_bytes)

        if result.predictions:
            top = result.predictions[0]
            record_top_prediction(top.code, top.prediction.startswith("Violation"))

        logger.info(
            "prediction_completed",
            returned=len(result.predictions),
            top_prediction=result.predictions[0].prediction if result.predictions else None
        )
        return result
