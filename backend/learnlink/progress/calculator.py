"""Completion percentage rules.

Pure functions, no I/O. A plan's percentage is the mean topic weight:

- COMPLETED topic: 1.0, whatever its resources say
- IN_PROGRESS topic: 0.5 * completed/total resources, 0 when it has none
- NOT_STARTED topic: 0

An IN_PROGRESS topic without resources is worth nothing while a COMPLETED one
without resources is worth a full topic. Both rules are intentional.
"""

import math
from collections.abc import Collection, Mapping, Sequence
from typing import Protocol
from uuid import UUID

from learnlink.learning_plans.models import CompletionStatus


IN_PROGRESS_CEILING = 0.5


class TopicLike(Protocol):
    id: UUID
    completion_status: CompletionStatus


class ResourceLike(Protocol):
    id: UUID
    is_completed: bool


def to_percentage(ratio: float) -> int:
    """Round a 0..1 ratio to a whole percentage, halves rounding up."""
    return math.floor(ratio * 100 + 0.5)


def topic_weight(status: CompletionStatus, completed_resources: int, total_resources: int) -> float:
    """Weight of a single topic in the plan average."""
    if status == CompletionStatus.COMPLETED:
        return 1.0
    if status == CompletionStatus.IN_PROGRESS:
        if total_resources == 0:
            return 0.0
        return IN_PROGRESS_CEILING * completed_resources / total_resources
    return 0.0


def calculate_plan_completion(
    topics: Sequence[TopicLike],
    resources_by_topic: Mapping[UUID, Sequence[ResourceLike]],
) -> int:
    """Creator's default completion from the topics' and resources' own fields."""
    if not topics:
        return 0

    total_weight = 0.0
    for topic in topics:
        resources = resources_by_topic.get(topic.id, [])
        completed = sum(1 for resource in resources if resource.is_completed)
        total_weight += topic_weight(topic.completion_status, completed, len(resources))

    return to_percentage(total_weight / len(topics))


def calculate_overlay_completion(
    topics: Sequence[TopicLike],
    resources_by_topic: Mapping[UUID, Sequence[ResourceLike]],
    topic_statuses: Mapping[UUID, CompletionStatus],
    completed_resource_ids: Collection[UUID],
) -> int:
    """A viewer's completion, reading status and completion from their overlay.

    The plan's topics are the denominator; a topic the overlay does not track
    counts as not started.
    """
    if not topics:
        return 0

    total_weight = 0.0
    for topic in topics:
        status = topic_statuses.get(topic.id)
        if status is None:
            continue
        resources = resources_by_topic.get(topic.id, [])
        completed = sum(1 for resource in resources if resource.id in completed_resource_ids)
        total_weight += topic_weight(status, completed, len(resources))

    return to_percentage(total_weight / len(topics))


def derive_topic_status(completed_resources: int, total_resources: int) -> CompletionStatus | None:
    """Topic status implied by its resources, or None for a topic without any."""
    if total_resources == 0:
        return None
    if completed_resources == total_resources:
        return CompletionStatus.COMPLETED
    if completed_resources > 0:
        return CompletionStatus.IN_PROGRESS
    return CompletionStatus.NOT_STARTED
