"""Tests for the key encoder."""

import numpy as np
import pytest

from productrec.exceptions import UnseenKeyError
from productrec.recommender.encoding import UNSEEN_KEY, KeyEncoder


@pytest.fixture
def encoder() -> KeyEncoder:
    """Encoder fitted on values with repeats."""
    return KeyEncoder("product_id").fit([5, 3, 5, 9, 3, 3])


def test_fit_assigns_dense_keys_in_order_of_occurrence(encoder: KeyEncoder) -> None:
    """Test that keys are 0..K-1 in order of first occurrence."""
    assert len(encoder) == 3
    assert encoder.value_to_key == {5.0: 0, 3.0: 1, 9.0: 2}
    np.testing.assert_array_equal(encoder.key_to_value, [5.0, 3.0, 9.0])


def test_mapping_is_injective() -> None:
    """Test that distinct values never share a key."""
    values = np.random.default_rng(0).integers(0, 1000, size=5000)
    encoder = KeyEncoder().fit(values)

    keys = encoder.transform(np.unique(values))

    assert len(set(keys.tolist())) == len(np.unique(values))
    assert sorted(keys.tolist()) == list(range(len(encoder)))


def test_transform_is_stable(encoder: KeyEncoder) -> None:
    """Test that re-encoding a value always yields the same key."""
    first = encoder.transform([9, 5, 3])
    second = encoder.transform([9, 5, 3])

    np.testing.assert_array_equal(first, [2, 0, 1])
    np.testing.assert_array_equal(first, second)
    assert encoder.encode(9) == 2


def test_transform_marks_unseen_values(encoder: KeyEncoder) -> None:
    """Test that values absent at fit time map to UNSEEN_KEY."""
    keys = encoder.transform([3, 999999])

    np.testing.assert_array_equal(keys, [1, UNSEEN_KEY])


def test_encode_unseen_value_raises(encoder: KeyEncoder) -> None:
    """Test that encoding a single unseen value raises UnseenKeyError."""
    with pytest.raises(UnseenKeyError) as exc_info:
        encoder.encode(999999)

    assert exc_info.value.details == {"column": "product_id", "value": 999999}


def test_inverse_transform(encoder: KeyEncoder) -> None:
    """Test that keys map back to their raw values."""
    np.testing.assert_array_equal(encoder.inverse_transform([2, 0]), [9.0, 5.0])

    with pytest.raises(IndexError):
        encoder.inverse_transform([3])


def test_contains(encoder: KeyEncoder) -> None:
    assert 5 in encoder
    assert 5.0 in encoder
    assert 7 not in encoder
    assert "not a number" not in encoder


def test_unfitted_encoder_raises() -> None:
    """Test that using an unfitted encoder fails loudly."""
    encoder = KeyEncoder()

    assert not encoder.is_fitted
    with pytest.raises(RuntimeError, match="not been fitted"):
        encoder.transform([1])
