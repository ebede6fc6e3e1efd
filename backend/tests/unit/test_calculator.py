"""Completion percentage rules, no database involved."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from learnlink.learning_plans.models import CompletionStatus
from learnlink.progress.calculator import (
    calculate_overlay_completion,
    calculate_plan_completion,
    derive_topic_status,
    to_percentage,
    topic_weight,
)


def make_topic(status: CompletionStatus) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), completion_status=status)


def make_resources(total: int, completed: int) -> list[SimpleNamespace]:
    return [SimpleNamespace(id=uuid4(), is_completed=index < completed) for index in range(total)]


def test_plan_without_topics_is_zero() -> None:
    assert calculate_plan_completion([], {}) == 0
    assert calculate_overlay_completion([], {}, {}, set()) == 0


@pytest.mark.parametrize(("total", "completed"), [(0, 0), (3, 0), (3, 1), (3, 3)])
def test_completed_topic_counts_fully_whatever_its_resources(total: int, completed: int) -> None:
    assert topic_weight(CompletionStatus.COMPLETED, completed, total) == 1.0

    topic = make_topic(CompletionStatus.COMPLETED)
    assert calculate_plan_completion([topic], {topic.id: make_resources(total, completed)}) == 100


def test_in_progress_one_of_three_resources_is_17() -> None:
    topic = make_topic(CompletionStatus.IN_PROGRESS)
    resources = make_resources(3, 1)

    assert topic_weight(CompletionStatus.IN_PROGRESS, 1, 3) == pytest.approx(0.1667, abs=1e-4)
    assert calculate_plan_completion([topic], {topic.id: resources}) == 17


def test_in_progress_topic_without_resources_counts_nothing() -> None:
    in_progress = make_topic(CompletionStatus.IN_PROGRESS)
    completed = make_topic(CompletionStatus.COMPLETED)

    # Same shape, different status: 0 versus a full topic
    assert calculate_plan_completion([in_progress], {in_progress.id: []}) == 0
    assert calculate_plan_completion([completed], {completed.id: []}) == 100


def test_in_progress_with_every_resource_done_is_capped_at_half() -> None:
    topic = make_topic(CompletionStatus.IN_PROGRESS)
    assert calculate_plan_completion([topic], {topic.id: make_resources(2, 2)}) == 50


def test_not_started_topic_ignores_completed_resources() -> None:
    topic = make_topic(CompletionStatus.NOT_STARTED)
    assert calculate_plan_completion([topic], {topic.id: make_resources(2, 2)}) == 0


def test_rust_basics_scenario_is_50() -> None:
    topic_a = make_topic(CompletionStatus.COMPLETED)
    topic_b = make_topic(CompletionStatus.NOT_STARTED)
    resources = {topic_a.id: make_resources(2, 1), topic_b.id: make_resources(4, 0)}

    assert calculate_plan_completion([topic_a, topic_b], resources) == 50


@pytest.mark.parametrize(
    ("ratio", "expected"),
    [(0.0, 0), (0.125, 13), (0.5, 50), (1 / 3, 33), (2 / 3, 67), (1.0, 100)],
)
def test_percentage_rounds_half_up(ratio: float, expected: int) -> None:
    assert to_percentage(ratio) == expected


def test_overlay_reads_status_and_completion_from_the_overlay() -> None:
    # Creator defaults say everything is done; the viewer's overlay does not
    topic_a = make_topic(CompletionStatus.COMPLETED)
    topic_b = make_topic(CompletionStatus.COMPLETED)
    resources_b = make_resources(3, 3)
    resources = {topic_a.id: [], topic_b.id: resources_b}

    statuses = {topic_a.id: CompletionStatus.NOT_STARTED, topic_b.id: CompletionStatus.IN_PROGRESS}
    completed = {resources_b[0].id}

    # (0 + 0.5 * 1/3) / 2
    assert calculate_overlay_completion([topic_a, topic_b], resources, statuses, completed) == 8


def test_overlay_topic_without_row_contributes_nothing_but_still_counts() -> None:
    tracked = make_topic(CompletionStatus.NOT_STARTED)
    untracked = make_topic(CompletionStatus.COMPLETED)

    percentage = calculate_overlay_completion(
        [tracked, untracked],
        {tracked.id: [], untracked.id: []},
        {tracked.id: CompletionStatus.COMPLETED},
        set(),
    )
    assert percentage == 50


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [
        (0, 0, None),
        (0, 3, CompletionStatus.NOT_STARTED),
        (1, 3, CompletionStatus.IN_PROGRESS),
        (2, 3, CompletionStatus.IN_PROGRESS),
        (3, 3, CompletionStatus.COMPLETED),
    ],
)
def test_derive_topic_status(completed: int, total: int, expected: CompletionStatus | None) -> None:
    assert derive_topic_status(completed, total) == expected
