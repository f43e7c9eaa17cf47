"""
Result Ranker

Converts the raw probability vector into the ranked list shown to reviewers:
most probable classes first, stopping once the emitted classes cover the
cumulative probability threshold.

The vector is not validated as a distribution. Negative or out-of-range
values are sorted and summed as-is.
"""

from operator import itemgetter
from typing import Dict, List, Optional, Sequence

from src.engines.violation.schemas import RankedPredictionDTO
from src.engines.violation.taxonomy import (
    TAXONOMY,
    NO_VIOLATION_CAPTION,
    ViolationClass,
    describe,
)

DEFAULT_THRESHOLD = 0.99


def rank_predictions(
    probabilities: Sequence[float],
    threshold: float = DEFAULT_THRESHOLD,
    taxonomy: Sequence[ViolationClass] = TAXONOMY,
    descriptions: Optional[Dict[str, str]] = None
) -> List[RankedPredictionDTO]:
    """
    Rank class probabilities and truncate by cumulative mass.

    Args:
        probabilities: One value per taxonomy entry, in taxonomy order
        threshold: Stop once the running sum reaches this value (inclusive)
        taxonomy: Class for each index
        descriptions: Code -> description mapping (defaults to CODE_DESCRIPTIONS)

    Returns:
        Ranked predictions, descending by probability. All entries when the
        threshold is never reached.
    """
    # sorted() is stable with reverse=True, ties keep index order
    ranked = sorted(enumerate(probabilities), key=itemgetter(1), reverse=True)

    results: List[RankedPredictionDTO] = []
    cumulative = 0.0

    for index, probability in ranked:
        cls = taxonomy[index]
        if cls.is_violation:
            caption = describe(cls.code, descriptions)
        else:
            caption = NO_VIOLATION_CAPTION

        results.append(RankedPredictionDTO(
            prediction=cls.label,
            probability=float(probability),
            caption=caption,
            code=cls.code,
        ))

        cumulative += probability
        if cumulative >= threshold:
            break

    return results
