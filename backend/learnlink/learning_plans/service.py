import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.database.pagination import Paginator
from learnlink.exceptions import UnauthorizedActionError, ValidationError
from learnlink.learning_plans.models import CompletionStatus, LearningPlan, Resource, Topic
from learnlink.learning_plans.schemas import (
    LearningPlanCreate,
    LearningPlanResponse,
    LearningPlanUpdate,
    ResourceCreate,
    ResourceUpdate,
    TopicCreate,
    TopicUpdate,
)
from learnlink.learning_plans.structure import (
    PlanStructure,
    get_plan,
    get_resource_in_topic,
    get_topic_in_plan,
    load_plan_structure,
)
from learnlink.learning_plans.view import build_plan_view
from learnlink.progress.calculator import calculate_plan_completion


logger = logging.getLogger(__name__)

PLAN = "Learning plan"

# Columns a PUT may not null out
_REQUIRED_PLAN_FIELDS = {"title", "category", "is_public"}
_REQUIRED_TOPIC_FIELDS = {"title", "order_index"}
_REQUIRED_RESOURCE_FIELDS = {"title", "type"}

_LIKE_ESCAPE = "/"


def _contains_pattern(keyword: str) -> str:
    """Lowercased LIKE pattern matching ``keyword`` literally anywhere in the text."""
    escaped = (
        keyword.lower()
        .replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", f"{_LIKE_ESCAPE}%")
        .replace("_", f"{_LIKE_ESCAPE}_")
    )
    return f"%{escaped}%"


def assign_order_indexes(taken: Iterable[int], requested: list[int | None]) -> list[int]:
    """
    Resolve the order_index of new topics.

    Explicit values must not collide with ``taken`` or with each other; missing
    ones are appended after the highest index in use.

    Raises
    ------
    ValidationError
        On a duplicate order_index
    """
    used = set(taken)
    resolved: list[int | None] = []
    for order_index in requested:
        if order_index is not None:
            if order_index in used:
                msg = f"A topic with order_index {order_index} already exists in this learning plan"
                raise ValidationError(msg)
            used.add(order_index)
        resolved.append(order_index)

    next_index = max(used, default=-1) + 1
    result = []
    for order_index in resolved:
        if order_index is None:
            order_index = next_index
            next_index += 1
        result.append(order_index)
    return result


class LearningPlanService:
    """Authoring and reading of learning plans, topics and resources.

    Only the creator may mutate a plan tree. Every mutation that can move the
    creator's completion recalculates it before committing.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # Helpers

    async def _get_owned_plan(self, plan_id: UUID, user_id: UUID, action: str = "modify") -> LearningPlan:
        plan = await get_plan(self._session, plan_id)
        if plan.user_id != user_id:
            raise UnauthorizedActionError(action, PLAN)
        return plan

    async def _recalculate(self, plan: LearningPlan) -> PlanStructure:
        structure = await load_plan_structure(self._session, plan.id)
        plan.completion_percentage = calculate_plan_completion(structure.topics, structure.resources)
        return structure

    async def _commit_and_view(self, plan: LearningPlan, user_id: UUID) -> LearningPlanResponse:
        structure = await self._recalculate(plan)
        await self._session.commit()
        return await build_plan_view(self._session, structure, user_id)

    def _add_resources(self, topic_id: UUID, resources: list[ResourceCreate]) -> None:
        for data in resources:
            self._session.add(Resource(topic_id=topic_id, is_completed=False, **data.model_dump()))

    # Plans

    async def create_learning_plan(self, user_id: UUID, data: LearningPlanCreate) -> LearningPlanResponse:
        """Create a plan for ``user_id`` with any nested topics and resources."""
        order_indexes = assign_order_indexes([], [topic.order_index for topic in data.topics])

        plan = LearningPlan(
            user_id=user_id,
            completion_percentage=0,
            **data.model_dump(exclude={"topics"}),
        )
        self._session.add(plan)
        await self._session.flush()

        for topic_data, order_index in zip(data.topics, order_indexes, strict=True):
            topic = Topic(
                learning_plan_id=plan.id,
                order_index=order_index,
                completion_status=CompletionStatus.NOT_STARTED,
                **topic_data.model_dump(exclude={"order_index", "resources"}),
            )
            self._session.add(topic)
            await self._session.flush()
            self._add_resources(topic.id, topic_data.resources)

        logger.info(f"Created learning plan {plan.id} with {len(data.topics)} topics for user {user_id}")
        return await self._commit_and_view(plan, user_id)

    async def get_learning_plan(self, plan_id: UUID, user_id: UUID) -> LearningPlanResponse:
        """
        Get a plan as seen by ``user_id``.

        Raises
        ------
        ResourceNotFoundError
            If the plan does not exist
        UnauthorizedActionError
            If the plan is private and ``user_id`` is not its creator
        """
        structure = await load_plan_structure(self._session, plan_id)
        if not structure.plan.is_public and structure.plan.user_id != user_id:
            raise UnauthorizedActionError("view", PLAN)
        return await build_plan_view(self._session, structure, user_id)

    async def get_public_learning_plans(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[LearningPlan], int]:
        """Public plans by other users, newest first."""
        query = (
            select(LearningPlan)
            .where(LearningPlan.is_public.is_(True), LearningPlan.user_id != user_id)
            .order_by(LearningPlan.created_at.desc(), LearningPlan.id)
        )
        return await Paginator(page=page, limit=limit).paginate(self._session, query)

    async def get_user_learning_plans(
        self,
        owner_id: UUID,
        viewer_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[LearningPlan], int]:
        """All of a user's plans for themselves, only the public ones for anyone else."""
        query = select(LearningPlan).where(LearningPlan.user_id == owner_id)
        if owner_id != viewer_id:
            query = query.where(LearningPlan.is_public.is_(True))
        query = query.order_by(LearningPlan.created_at.desc(), LearningPlan.id)
        return await Paginator(page=page, limit=limit).paginate(self._session, query)

    async def search_learning_plans(
        self,
        keyword: str,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[LearningPlan], int]:
        """Case-insensitive title/description match over public plans and the caller's own."""
        pattern = _contains_pattern(keyword)
        query = (
            select(LearningPlan)
            .where(
                or_(LearningPlan.is_public.is_(True), LearningPlan.user_id == user_id),
                or_(
                    func.lower(LearningPlan.title).like(pattern, escape=_LIKE_ESCAPE),
                    func.lower(func.coalesce(LearningPlan.description, "")).like(pattern, escape=_LIKE_ESCAPE),
                ),
            )
            .order_by(LearningPlan.created_at.desc(), LearningPlan.id)
        )
        return await Paginator(page=page, limit=limit).paginate(self._session, query)

    async def update_learning_plan(
        self,
        plan_id: UUID,
        user_id: UUID,
        data: LearningPlanUpdate,
    ) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id, "update")

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in _REQUIRED_PLAN_FIELDS:
                continue
            setattr(plan, key, value)

        return await self._commit_and_view(plan, user_id)

    async def delete_learning_plan(self, plan_id: UUID, user_id: UUID) -> None:
        """Delete a plan; topics, resources and every overlay go with it at the database level."""
        await self._get_owned_plan(plan_id, user_id, "delete")
        await self._session.execute(delete(LearningPlan).where(LearningPlan.id == plan_id))
        await self._session.commit()
        logger.info(f"Deleted learning plan {plan_id}")

    # Topics

    async def add_topic(self, plan_id: UUID, user_id: UUID, data: TopicCreate) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)

        taken = await self._session.scalars(select(Topic.order_index).where(Topic.learning_plan_id == plan_id))
        [order_index] = assign_order_indexes(taken.all(), [data.order_index])

        topic = Topic(
            learning_plan_id=plan_id,
            order_index=order_index,
            completion_status=CompletionStatus.NOT_STARTED,
            **data.model_dump(exclude={"order_index", "resources"}),
        )
        self._session.add(topic)
        await self._session.flush()
        self._add_resources(topic.id, data.resources)

        logger.info(f"Added topic {topic.id} at position {order_index} to learning plan {plan_id}")
        return await self._commit_and_view(plan, user_id)

    async def update_topic(
        self,
        plan_id: UUID,
        topic_id: UUID,
        user_id: UUID,
        data: TopicUpdate,
    ) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)
        topic = await get_topic_in_plan(self._session, plan_id, topic_id)

        changes = data.model_dump(exclude_unset=True)
        new_index = changes.get("order_index")
        if new_index is not None and new_index != topic.order_index:
            clash = await self._session.scalar(
                select(Topic.id).where(Topic.learning_plan_id == plan_id, Topic.order_index == new_index)
            )
            if clash is not None:
                msg = f"A topic with order_index {new_index} already exists in this learning plan"
                raise ValidationError(msg)

        for key, value in changes.items():
            if value is None and key in _REQUIRED_TOPIC_FIELDS:
                continue
            setattr(topic, key, value)

        return await self._commit_and_view(plan, user_id)

    async def delete_topic(self, plan_id: UUID, topic_id: UUID, user_id: UUID) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)
        await get_topic_in_plan(self._session, plan_id, topic_id)

        await self._session.execute(delete(Topic).where(Topic.id == topic_id))
        logger.info(f"Deleted topic {topic_id} from learning plan {plan_id}")
        return await self._commit_and_view(plan, user_id)

    async def update_topic_status(
        self,
        plan_id: UUID,
        topic_id: UUID,
        status: CompletionStatus,
        user_id: UUID,
    ) -> LearningPlanResponse:
        """Creator's own topic status (the plan default, not an overlay)."""
        plan = await self._get_owned_plan(plan_id, user_id)
        topic = await get_topic_in_plan(self._session, plan_id, topic_id)
        topic.set_status(status)
        return await self._commit_and_view(plan, user_id)

    # Resources

    async def add_resource(
        self,
        plan_id: UUID,
        topic_id: UUID,
        user_id: UUID,
        data: ResourceCreate,
    ) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)
        await get_topic_in_plan(self._session, plan_id, topic_id)
        self._add_resources(topic_id, [data])
        return await self._commit_and_view(plan, user_id)

    async def update_resource(
        self,
        plan_id: UUID,
        topic_id: UUID,
        resource_id: UUID,
        user_id: UUID,
        data: ResourceUpdate,
    ) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)
        _, resource = await get_resource_in_topic(self._session, plan_id, topic_id, resource_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in _REQUIRED_RESOURCE_FIELDS:
                continue
            setattr(resource, key, value)

        return await self._commit_and_view(plan, user_id)

    async def delete_resource(
        self,
        plan_id: UUID,
        topic_id: UUID,
        resource_id: UUID,
        user_id: UUID,
    ) -> LearningPlanResponse:
        plan = await self._get_owned_plan(plan_id, user_id)
        await get_resource_in_topic(self._session, plan_id, topic_id, resource_id)
        await self._session.execute(delete(Resource).where(Resource.id == resource_id))
        return await self._commit_and_view(plan, user_id)

    async def update_resource_status(
        self,
        plan_id: UUID,
        topic_id: UUID,
        resource_id: UUID,
        is_completed: bool,
        user_id: UUID,
    ) -> LearningPlanResponse:
        """Creator's own resource completion flag."""
        plan = await self._get_owned_plan(plan_id, user_id)
        _, resource = await get_resource_in_topic(self._session, plan_id, topic_id, resource_id)
        resource.is_completed = is_completed
        return await self._commit_and_view(plan, user_id)
