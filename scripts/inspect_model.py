#!/usr/bin/env python3
"""
Model Inspection Script - Check an ONNX model against the detector contract

This script:
1. Loads the ONNX model with onnxruntime
2. Checks the input (name, shape [1, 3, 640, 640])
3. Checks the output (name or fallback, 12 values)
4. Optionally classifies a sample image and prints the ranked predictions

Run before deploying a new model:
    python scripts/inspect_model.py --image sample.jpg

Environment variables:
    MODEL_PATH: Path to the ONNX model (default: ./models/best.onnx)
"""

import sys
import time
import logging
import argparse
from pathlib import Path

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import settings
from src.core.exceptions import DetectorBaseException
from src.engines.violation.preprocessing import normalize_image
from src.engines.violation.ranking import rank_predictions
from src.engines.violation.repositories import ModelRepository
from src.engines.violation.taxonomy import TAXONOMY

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def inspect_model(model_path: str, image_path: str = None) -> bool:
    """Load the model, check its signature and optionally run one image.

    Args:
        model_path: ONNX model file
        image_path: Optional image to classify

    Returns:
        True if the model satisfies the contract
    """
    repo = ModelRepository(
        model_path=Path(model_path),
        input_name=settings.MODEL_INPUT_NAME,
        output_name=settings.MODEL_OUTPUT_NAME,
        providers=settings.onnx_providers,
        input_size=settings.INPUT_SIZE,
    )

    logger.info("=" * 60)
    logger.info("ONNX Model Inspection")
    logger.info("=" * 60)
    logger.info(f"Model: {Path(model_path).absolute()}")

    try:
        session = repo.get_session()
    except DetectorBaseException as e:
        logger.error(f"Could not load model: {e.message}")
        return False

    ok = True
    expected_shape = [1, 3, settings.INPUT_SIZE, settings.INPUT_SIZE]

    inputs = {i.name: i for i in session.get_inputs()}
    logger.info(f"Inputs: {[(i.name, i.shape, i.type) for i in inputs.values()]}")
    model_input = inputs.get(settings.MODEL_INPUT_NAME)
    if model_input is None:
        logger.error(f"Input '{settings.MODEL_INPUT_NAME}' not found")
        ok = False
    elif any(isinstance(d, int) and d != e for d, e in zip(model_input.shape, expected_shape)):
        logger.error(f"Input shape {model_input.shape} does not match {expected_shape}")
        ok = False

    outputs = [(o.name, o.shape) for o in session.get_outputs()]
    logger.info(f"Outputs: {outputs}")
    if settings.MODEL_OUTPUT_NAME not in [name for name, _ in outputs]:
        logger.warning(
            f"Output '{settings.MODEL_OUTPUT_NAME}' not found, "
            f"falling back to '{outputs[0][0] if outputs else None}'"
        )

    if not ok:
        return False

    if image_path:
        image_bytes = Path(image_path).read_bytes()
        tensor = normalize_image(image_bytes, size=settings.INPUT_SIZE, resize_mode=settings.RESIZE_MODE)
    else:
        tensor = np.zeros(3 * settings.INPUT_SIZE * settings.INPUT_SIZE, dtype=np.float32)

    start = time.time()
    try:
        probabilities = repo.predict(tensor)
    except DetectorBaseException as e:
        logger.error(f"Inference failed: {e.message}")
        return False
    logger.info(f"Inference time: {(time.time() - start) * 1000:.1f}ms")

    if len(probabilities) != len(TAXONOMY):
        logger.error(f"Output has {len(probabilities)} values, expected {len(TAXONOMY)}")
        return False
    logger.info(f"Probability sum: {sum(probabilities):.4f}")

    if image_path:
        for pred in rank_predictions(probabilities, threshold=settings.CUMULATIVE_PROBABILITY_THRESHOLD):
            logger.info(f"  {pred.prediction:<55} {pred.probability * 100:6.2f}%")

    logger.info("=" * 60)
    logger.info("Model satisfies the detector contract")
    logger.info("=" * 60)
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Check an ONNX model against the violation detector contract"
    )
    parser.add_argument(
        "--model",
        default=str(settings.MODEL_PATH),
        help="Path to the ONNX model"
    )
    parser.add_argument(
        "--image",
        default=None,
        help="Optional image to classify"
    )

    args = parser.parse_args()

    success = inspect_model(args.model, args.image)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
