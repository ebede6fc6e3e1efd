import pytest

from learnlink.exceptions import ValidationError
from learnlink.learning_plans.service import assign_order_indexes


def test_missing_indexes_are_appended_in_request_order() -> None:
    assert assign_order_indexes([], [None, None, None]) == [0, 1, 2]
    assert assign_order_indexes([0, 1], [None]) == [2]


def test_explicit_indexes_are_kept_and_gaps_filled_after_the_highest() -> None:
    assert assign_order_indexes([0], [5, None, 2]) == [5, 6, 2]


def test_duplicate_against_existing_topic_is_rejected() -> None:
    with pytest.raises(ValidationError, match="order_index 1"):
        assign_order_indexes([0, 1], [1])


def test_duplicate_within_request_is_rejected() -> None:
    with pytest.raises(ValidationError):
        assign_order_indexes([], [3, 3])
