"""
Violation Detection Engine

Image normalization, ONNX inference and cumulative-probability ranking of
regulatory code violations (OSHA / ANSI).
"""

from src.engines.violation.taxonomy import TAXONOMY, Phase, ViolationClass
from src.engines.violation.ranking import rank_predictions
from src.engines.violation.preprocessing import normalize_image

__all__ = ["TAXONOMY", "Phase", "ViolationClass", "rank_predictions", "normalize_image"]
