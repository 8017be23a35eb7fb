# tests/test_offset_match.py
#
# Tests for mscore/offset_match.py: shift recovery, confidence behaviour,
# tie-breaking and failure modes.

import numpy as np
import pytest

from mscore.errors import InsufficientData, InvalidInput
from mscore.offset_match import (
    cosine_similarity,
    cosine_similarity_matrix,
    find_best_offset,
)


def test_identical_sequences_zero_offset_full_confidence(rng):
    A = rng.randn(40, 10)
    res = find_best_offset(A, A.copy(), sample_rate=10)
    assert res.offset_frames == 0
    assert res.offset_seconds == 0.0
    assert res.confidence == pytest.approx(1.0)
    assert res.match_score == pytest.approx(1.0)
    assert res.comparisons == 40


@pytest.mark.parametrize("k", [1, 3, 7])
def test_user_starting_later_recovers_negative_shift(rng, k):
    base = rng.randn(50, 10)
    user = base[k:]  # user[i] == base[i + k]
    res = find_best_offset(user, base, sample_rate=10)
    assert res.offset_frames == -k
    assert res.offset_seconds == pytest.approx(-k / 10)
    assert res.confidence == pytest.approx(1.0)


@pytest.mark.parametrize("k", [2, 5])
def test_reference_starting_later_recovers_positive_shift(rng, k):
    base = rng.randn(50, 10)
    res = find_best_offset(base, base[k:], sample_rate=5)
    assert res.offset_frames == k
    assert res.offset_seconds == pytest.approx(k / 5)


def test_confidence_decreases_with_noise(rng):
    A = rng.randn(60, 10)
    noise = rng.randn(60, 10)
    confidences = []
    for sigma in (0.0, 0.1, 0.3, 0.6, 1.0):
        res = find_best_offset(A + sigma * noise, A, sample_rate=10)
        assert res.offset_frames == 0
        confidences.append(res.confidence)
    assert all(a > b for a, b in zip(confidences, confidences[1:]))


def test_end_to_end_scenario_one_sample_shift():
    A = [[0, 0], [1, 1], [2, 2], [3, 3]]
    B = [[1, 1], [2, 2], [3, 3]]
    res = find_best_offset(B, A, sample_rate=1)
    assert res.offset_frames == -1
    assert res.offset_seconds == pytest.approx(-1.0)
    assert res.confidence == pytest.approx(1.0)


def test_ties_prefer_smallest_absolute_offset():
    v = [[1.0, 2.0, 3.0]] * 6
    res = find_best_offset(v, v, sample_rate=10)
    assert res.offset_frames == 0


def test_equal_absolute_ties_prefer_first_found():
    a, b = [1.0, 0.0], [0.0, 1.0]
    # offsets -1 and +1 both score 1.0, offset 0 scores 0.0
    res = find_best_offset([b, a, b], [a, b], sample_rate=1)
    assert res.offset_frames == -1
    assert res.match_score == pytest.approx(1.0)


def test_search_range_is_bounded_by_fraction():
    # true shift of 9 samples lies outside floor(0.8 * 10) = 8
    base = np.eye(20)
    res = find_best_offset(base[9:19], base[:10], sample_rate=1)
    assert abs(res.offset_frames) <= 8


def test_zero_vectors_have_zero_similarity():
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [0.0, 0.0]) == 0.0
    S = cosine_similarity_matrix(np.zeros((2, 3)), np.ones((4, 3)))
    assert S.shape == (2, 4)
    assert not S.any()


def test_cosine_similarity_range():
    assert cosine_similarity([1.0, 0.0], [-2.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([1.0, 1.0], [3.0, 3.0]) == pytest.approx(1.0)


def test_all_zero_sequences_give_half_confidence():
    res = find_best_offset(np.zeros((5, 3)), np.zeros((5, 3)), sample_rate=10)
    assert res.offset_frames == 0
    assert res.match_score == 0.0
    assert res.confidence == pytest.approx(0.5)


@pytest.mark.parametrize("user,pro", [([], [[1.0]]), ([[1.0]], []), ([], [])])
def test_empty_sequence_insufficient_data(user, pro):
    with pytest.raises(InsufficientData):
        find_best_offset(user, pro, sample_rate=10)


def test_mismatched_width_invalid_input():
    with pytest.raises(InvalidInput):
        find_best_offset([[1.0, 2.0]], [[1.0]], sample_rate=10)


def test_non_positive_sample_rate_invalid_input():
    with pytest.raises(InvalidInput):
        find_best_offset([[1.0]], [[1.0]], sample_rate=0)
