"""Explicit loading of a plan's topic/resource tree.

Tables are linked only by foreign key ids; callers get a read-only snapshot
instead of navigating ORM relationships.
"""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.exceptions import InvalidRelationshipError, ResourceNotFoundError
from learnlink.learning_plans.models import LearningPlan, Resource, Topic


@dataclass(frozen=True)
class PlanStructure:
    """A plan with its topics in ``order_index`` order and resources per topic."""

    plan: LearningPlan
    topics: list[Topic] = field(default_factory=list)
    resources: dict[UUID, list[Resource]] = field(default_factory=dict)

    def resources_for(self, topic_id: UUID) -> list[Resource]:
        return self.resources.get(topic_id, [])

    def all_resources(self) -> list[Resource]:
        return [resource for topic in self.topics for resource in self.resources_for(topic.id)]


async def get_plan(session: AsyncSession, plan_id: UUID) -> LearningPlan:
    """Fetch a plan or raise ResourceNotFoundError."""
    plan = await session.get(LearningPlan, plan_id)
    if plan is None:
        msg = "Learning plan"
        raise ResourceNotFoundError(msg, plan_id)
    return plan


async def load_plan_structure(session: AsyncSession, plan_id: UUID) -> PlanStructure:
    """Load ``plan_id`` with its ordered topics and their resources (two queries)."""
    plan = await get_plan(session, plan_id)

    topics_result = await session.execute(
        select(Topic).where(Topic.learning_plan_id == plan_id).order_by(Topic.order_index)
    )
    topics = list(topics_result.scalars().all())

    resources: dict[UUID, list[Resource]] = {topic.id: [] for topic in topics}
    if topics:
        resources_result = await session.execute(
            select(Resource)
            .where(Resource.topic_id.in_(list(resources)))
            .order_by(Resource.created_at, Resource.id)
        )
        for resource in resources_result.scalars():
            resources[resource.topic_id].append(resource)

    return PlanStructure(plan=plan, topics=topics, resources=resources)


async def get_topic_in_plan(session: AsyncSession, plan_id: UUID, topic_id: UUID) -> Topic:
    """Fetch a topic and check it belongs to ``plan_id``.

    Raises
    ------
    ResourceNotFoundError
        If the plan or the topic does not exist
    InvalidRelationshipError
        If the topic belongs to a different plan
    """
    await get_plan(session, plan_id)

    topic = await session.get(Topic, topic_id)
    if topic is None:
        msg = "Topic"
        raise ResourceNotFoundError(msg, topic_id)
    if topic.learning_plan_id != plan_id:
        raise InvalidRelationshipError("Topic", topic_id, "Learning plan", plan_id)
    return topic


async def get_resource_in_topic(
    session: AsyncSession,
    plan_id: UUID,
    topic_id: UUID,
    resource_id: UUID,
) -> tuple[Topic, Resource]:
    """Validate plan -> topic -> resource and return the topic and resource."""
    topic = await get_topic_in_plan(session, plan_id, topic_id)

    resource = await session.get(Resource, resource_id)
    if resource is None:
        msg = "Resource"
        raise ResourceNotFoundError(msg, resource_id)
    if resource.topic_id != topic_id:
        raise InvalidRelationshipError("Resource", resource_id, "Topic", topic_id)
    return topic, resource
