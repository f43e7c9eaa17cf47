import pytest

from src.engines.violation.ranking import rank_predictions
from src.engines.violation.taxonomy import (
    TAXONOMY,
    CODE_DESCRIPTIONS,
    NO_DESCRIPTION_CAPTION,
    NO_VIOLATION_CAPTION,
    Phase,
)

SAMPLE = [0.5, 0.3, 0.05, 0.05, 0.02, 0.02, 0.02, 0.02, 0.01, 0.005, 0.004, 0.001]


def test_taxonomy_alternates_before_after():
    assert len(TAXONOMY) == 12
    for index, cls in enumerate(TAXONOMY):
        expected = Phase.BEFORE if index % 2 == 0 else Phase.AFTER
        assert cls.phase is expected
        if index % 2 == 0:
            assert TAXONOMY[index + 1].code == cls.code


def test_every_before_code_has_description():
    for cls in TAXONOMY:
        if cls.phase is Phase.BEFORE:
            assert cls.code in CODE_DESCRIPTIONS


def test_sample_vector_stops_after_crossing_threshold():
    results = rank_predictions(SAMPLE)

    # 0.5, 0.8, 0.85, 0.9, 0.92, 0.94, 0.96, 0.98 -> 0.99 on the ninth entry
    assert len(results) == 9
    assert sum(r.probability for r in results[:8]) < 0.99
    assert sum(r.probability for r in results) >= 0.99

    assert results[0].prediction == "Violation - OSHA 1910.37(a)(3)"
    assert results[0].probability == 0.5
    assert results[0].caption == CODE_DESCRIPTIONS["OSHA 1910.37(a)(3)"]
    assert results[1].prediction == "No Violation - OSHA 1910.37(a)(3)"
    assert results[1].caption == NO_VIOLATION_CAPTION
    assert results[-1].prediction == "Violation - ANSI A13.1 (Pipe Marking)"
    assert results[-1].probability == 0.01


def test_output_is_non_increasing():
    probabilities = [0.02, 0.4, 0.01, 0.07, 0.1, 0.0, 0.3, 0.05, 0.0, 0.02, 0.01, 0.02]
    results = rank_predictions(probabilities)

    values = [r.probability for r in results]
    assert values == sorted(values, reverse=True)


def test_returns_smallest_prefix_reaching_threshold():
    probabilities = [0.02, 0.4, 0.01, 0.07, 0.1, 0.0, 0.3, 0.05, 0.0, 0.02, 0.01, 0.02]
    results = rank_predictions(probabilities)

    ordered = sorted(probabilities, reverse=True)
    running = 0.0
    expected_length = len(ordered)
    for position, value in enumerate(ordered, start=1):
        running += value
        if running >= 0.99:
            expected_length = position
            break

    assert len(results) == expected_length


def test_all_entries_returned_when_threshold_unreachable():
    results = rank_predictions([0.05] * 12)

    assert len(results) == 12


def test_ties_keep_index_order():
    results = rank_predictions([0.05] * 12)

    assert [r.code for r in results] == [cls.code for cls in TAXONOMY]
    assert [r.prediction.startswith("Violation") for r in results] == [
        cls.phase is Phase.BEFORE for cls in TAXONOMY
    ]


def test_single_dominant_class():
    probabilities = [0.0] * 12
    probabilities[7] = 0.995

    results = rank_predictions(probabilities)

    assert len(results) == 1
    assert results[0].prediction == "No Violation - OSHA 1910.157(c)(1)"
    assert results[0].code == "OSHA 1910.157(c)(1)"
    assert results[0].caption == NO_VIOLATION_CAPTION


@pytest.mark.parametrize("index", range(12))
def test_label_matches_phase(index):
    probabilities = [0.0] * 12
    probabilities[index] = 1.0

    top = rank_predictions(probabilities)[0]

    if index % 2 == 0:
        assert top.prediction.startswith("Violation - ")
    else:
        assert top.prediction.startswith("No Violation - ")
    assert top.code == TAXONOMY[index].code


def test_unknown_code_uses_fallback_caption():
    probabilities = [0.0] * 12
    probabilities[4] = 1.0

    results = rank_predictions(probabilities, descriptions={})

    assert results[0].caption == NO_DESCRIPTION_CAPTION
    assert results[0].caption == "No description available."


def test_negative_values_are_not_rejected():
    probabilities = [-0.2, 0.6, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.5]

    results = rank_predictions(probabilities)

    # 0.6 + 0.5 reaches the threshold before the negative entry is seen
    assert [r.probability for r in results] == [0.6, 0.5]


def test_negative_values_sorted_last_when_threshold_unreachable():
    probabilities = [-0.2] + [0.01] * 11

    results = rank_predictions(probabilities)

    assert len(results) == 12
    assert results[-1].probability == -0.2
    assert results[-1].prediction == "Violation - OSHA 1910.37(a)(3)"


def test_custom_threshold():
    results = rank_predictions(SAMPLE, threshold=0.8)

    assert len(results) == 2
