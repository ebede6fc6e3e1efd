"""UserProgressService against a real (SQLite) database."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnlink.activities.models import ActivityType, UserActivity
from learnlink.activities.service import ActivityService
from learnlink.exceptions import InvalidRelationshipError, ResourceNotFoundError
from learnlink.learning_plans.models import CompletionStatus, LearningPlan
from learnlink.learning_plans.schemas import LearningPlanCreate, LearningPlanResponse, ResourceCreate, TopicCreate
from learnlink.learning_plans.service import LearningPlanService
from learnlink.posts.models import Post
from learnlink.posts.service import PostService
from learnlink.progress import service as progress_service
from learnlink.progress.models import ResourceProgress, TopicProgress, UserProgress
from learnlink.progress.overlay import ProgressOverlay
from learnlink.progress.service import UserProgressService
from tests.helpers import ALICE, BOB, rust_basics_payload


@pytest_asyncio.fixture
async def rust_plan(db_session: AsyncSession) -> LearningPlanResponse:
    data = LearningPlanCreate(**rust_basics_payload())
    return await LearningPlanService(db_session).create_learning_plan(ALICE, data)


@pytest_asyncio.fixture
async def service(db_session: AsyncSession) -> UserProgressService:
    return UserProgressService(db_session)


async def count(session: AsyncSession, model: type, *criteria: object) -> int:
    return await session.scalar(select(func.count()).select_from(model).where(*criteria)) or 0


async def activity_types(session: AsyncSession, user_id: UUID) -> list[ActivityType]:
    result = await session.scalars(select(UserActivity.type).where(UserActivity.user_id == user_id))
    return sorted(result.all())


# Overlay lifecycle


@pytest.mark.asyncio
async def test_reading_progress_never_creates_an_overlay(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    progress = await service.get_progress(rust_plan.id, BOB)

    assert progress.id is None
    assert progress.completion_percentage == 0
    assert [t.status for t in progress.topics] == [CompletionStatus.NOT_STARTED] * 2
    assert len(progress.resources) == 3
    assert await count(db_session, UserProgress) == 0


@pytest.mark.asyncio
async def test_get_or_create_seeds_a_row_per_topic_and_resource(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    overlay = await service.get_or_create_progress(rust_plan.id, BOB)

    assert overlay.progress.completion_percentage == 0
    assert set(overlay.topics) == {topic.id for topic in rust_plan.topics}
    assert all(row.status == CompletionStatus.NOT_STARTED for row in overlay.topics.values())
    assert len(overlay.resources) == 3
    assert not any(row.is_completed for row in overlay.resources.values())

    again = await service.get_or_create_progress(rust_plan.id, BOB)
    assert again.progress.id == overlay.progress.id
    assert await count(db_session, UserProgress) == 1
    assert await count(db_session, TopicProgress) == 2


@pytest.mark.asyncio
async def test_get_or_create_unknown_plan_fails(service: UserProgressService) -> None:
    with pytest.raises(ResourceNotFoundError):
        await service.get_or_create_progress(uuid4(), BOB)


@pytest.mark.asyncio
async def test_overlay_picks_up_topics_added_later(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    await service.set_topic_status(rust_plan.id, rust_plan.topics[0].id, CompletionStatus.COMPLETED, BOB)

    await LearningPlanService(db_session).add_topic(
        rust_plan.id,
        ALICE,
        TopicCreate(title="Lifetimes", resources=[ResourceCreate(title="Lifetimes by example")]),
    )

    overlay = await service.get_or_create_progress(rust_plan.id, BOB)
    assert len(overlay.topics) == 3
    assert len(overlay.resources) == 4
    assert overlay.topics[rust_plan.topics[0].id].status == CompletionStatus.COMPLETED


@pytest.mark.asyncio
async def test_create_race_reuses_the_row_created_concurrently(
    service: UserProgressService,
    db_session: AsyncSession,
    rust_plan: LearningPlanResponse,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    first = await service.get_or_create_progress(rust_plan.id, BOB)
    await db_session.commit()

    real_find = progress_service.find_user_progress
    calls = 0

    async def find_losing_the_race(session: AsyncSession, plan_id: UUID, user_id: UUID) -> UserProgress | None:
        # The first lookup misses the row, as a request that raced another one would
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_find(session, plan_id, user_id)

    monkeypatch.setattr(progress_service, "find_user_progress", find_losing_the_race)

    second = await service.get_or_create_progress(rust_plan.id, BOB)

    assert calls == 2
    assert second.progress.id == first.progress.id
    assert await count(db_session, UserProgress, UserProgress.user_id == BOB) == 1


@pytest.mark.asyncio
async def test_create_race_surfaces_error_when_refetch_finds_nothing(
    service: UserProgressService,
    db_session: AsyncSession,
    rust_plan: LearningPlanResponse,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await service.get_or_create_progress(rust_plan.id, BOB)
    await db_session.commit()

    monkeypatch.setattr(progress_service, "find_user_progress", AsyncMock(return_value=None))

    with pytest.raises(IntegrityError):
        await service.get_or_create_progress(rust_plan.id, BOB)


@pytest.mark.asyncio
async def test_seeding_race_reuses_rows_added_concurrently(
    service: UserProgressService,
    db_session: AsyncSession,
    rust_plan: LearningPlanResponse,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await service.get_or_create_progress(rust_plan.id, BOB)
    await db_session.commit()
    added = await LearningPlanService(db_session).add_topic(rust_plan.id, ALICE, TopicCreate(title="Lifetimes"))
    new_topic_id = added.topics[-1].id
    await service.get_or_create_progress(rust_plan.id, BOB)
    await db_session.commit()

    real_load = progress_service.load_overlay
    calls = 0

    async def load_before_other_seed(session: AsyncSession, progress: UserProgress) -> ProgressOverlay:
        # The first load misses the row another request has just seeded
        nonlocal calls
        calls += 1
        overlay = await real_load(session, progress)
        if calls == 1:
            overlay.topics.pop(new_topic_id)
        return overlay

    monkeypatch.setattr(progress_service, "load_overlay", load_before_other_seed)

    view = await service.set_topic_status(rust_plan.id, new_topic_id, CompletionStatus.COMPLETED, BOB)

    assert calls == 2
    assert view.topics[-1].completion_status == CompletionStatus.COMPLETED
    assert await count(db_session, TopicProgress, TopicProgress.topic_id == new_topic_id) == 1


# Topic status


@pytest.mark.asyncio
async def test_completing_a_topic_updates_only_the_viewers_progress(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]

    view = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)

    assert view.completion_percentage == 50
    assert view.topics[0].completion_status == CompletionStatus.COMPLETED
    assert view.topics[0].completion_date is not None
    assert view.topics[1].completion_status == CompletionStatus.NOT_STARTED

    plan = await db_session.get(LearningPlan, rust_plan.id)
    assert plan.completion_percentage == 0


@pytest.mark.asyncio
async def test_leaving_completed_clears_the_completion_date(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]
    await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)

    view = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.IN_PROGRESS, BOB)

    assert view.topics[0].completion_status == CompletionStatus.IN_PROGRESS
    assert view.topics[0].completion_date is None
    assert view.completion_percentage == 0


@pytest.mark.asyncio
async def test_completing_a_completed_topic_keeps_its_date(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]
    first = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)
    second = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)

    assert second.topics[0].completion_date == first.topics[0].completion_date


@pytest.mark.asyncio
async def test_completion_dates_read_back_as_utc(
    service: UserProgressService,
    session_maker: async_sessionmaker[AsyncSession],
    rust_plan: LearningPlanResponse,
) -> None:
    topic_a = rust_plan.topics[0]
    view = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)

    async with session_maker() as session:
        row = await session.scalar(select(TopicProgress).where(TopicProgress.topic_id == topic_a.id))

    assert row is not None
    assert row.completion_date is not None
    assert row.completion_date.utcoffset() == timedelta(0)
    assert row.completion_date == view.topics[0].completion_date


@pytest.mark.asyncio
async def test_topic_from_another_plan_is_rejected_without_creating_progress(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    other = await LearningPlanService(db_session).create_learning_plan(
        ALICE, LearningPlanCreate(title="Go", category="PROGRAMMING", topics=[TopicCreate(title="Goroutines")])
    )

    with pytest.raises(InvalidRelationshipError):
        await service.set_topic_status(rust_plan.id, other.topics[0].id, CompletionStatus.COMPLETED, BOB)

    assert await count(db_session, UserProgress) == 0


@pytest.mark.asyncio
async def test_unknown_topic_is_not_found(service: UserProgressService, rust_plan: LearningPlanResponse) -> None:
    with pytest.raises(ResourceNotFoundError):
        await service.set_topic_status(rust_plan.id, uuid4(), CompletionStatus.COMPLETED, BOB)


# Resource status


@pytest.mark.asyncio
async def test_completing_a_resource_twice_is_idempotent(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]
    resource_id = topic_a.resources[0].id

    first = await service.set_resource_status(rust_plan.id, topic_a.id, resource_id, True, BOB)
    overlay = await service.get_or_create_progress(rust_plan.id, BOB)
    first_date = overlay.resources[resource_id].completion_date

    second = await service.set_resource_status(rust_plan.id, topic_a.id, resource_id, True, BOB)
    overlay = await service.get_or_create_progress(rust_plan.id, BOB)

    assert first_date is not None
    assert overlay.resources[resource_id].completion_date == first_date
    assert second.completion_percentage == first.completion_percentage == 50
    assert second.topics[0].completion_date == first.topics[0].completion_date


@pytest.mark.asyncio
async def test_complete_then_uncomplete_round_trips(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_b = rust_plan.topics[1]
    resource_id = topic_b.resources[0].id

    done = await service.set_resource_status(rust_plan.id, topic_b.id, resource_id, True, BOB)
    assert done.topics[1].completion_status == CompletionStatus.IN_PROGRESS
    # (0 + 0.5 * 1/2) / 2
    assert done.completion_percentage == 13

    undone = await service.set_resource_status(rust_plan.id, topic_b.id, resource_id, False, BOB)
    overlay = await service.get_or_create_progress(rust_plan.id, BOB)

    assert overlay.resources[resource_id].completion_date is None
    assert undone.topics[1].completion_status == CompletionStatus.NOT_STARTED
    assert undone.topics[1].completion_date is None
    assert undone.completion_percentage == 0


@pytest.mark.asyncio
async def test_completing_every_resource_completes_the_topic(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_b = rust_plan.topics[1]

    for resource in topic_b.resources:
        view = await service.set_resource_status(rust_plan.id, topic_b.id, resource.id, True, BOB)

    assert view.topics[1].completion_status == CompletionStatus.COMPLETED
    assert view.topics[1].completion_date is not None
    assert all(resource.is_completed for resource in view.topics[1].resources)
    assert view.completion_percentage == 50


@pytest.mark.asyncio
async def test_derived_completion_keeps_an_earlier_topic_date(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]
    completed = await service.set_topic_status(rust_plan.id, topic_a.id, CompletionStatus.COMPLETED, BOB)

    view = await service.set_resource_status(rust_plan.id, topic_a.id, topic_a.resources[0].id, True, BOB)

    assert view.topics[0].completion_status == CompletionStatus.COMPLETED
    assert view.topics[0].completion_date == completed.topics[0].completion_date


@pytest.mark.asyncio
async def test_resource_from_another_topic_is_rejected(
    service: UserProgressService, rust_plan: LearningPlanResponse
) -> None:
    topic_a, topic_b = rust_plan.topics

    with pytest.raises(InvalidRelationshipError):
        await service.set_resource_status(rust_plan.id, topic_a.id, topic_b.resources[0].id, True, BOB)


# Side effects


@pytest.mark.asyncio
async def test_progress_is_copied_onto_every_post_of_the_user(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    db_session.add_all(
        [
            Post(user_id=BOB, title="Day 1", content="Started Rust", learning_plan_id=rust_plan.id),
            Post(user_id=BOB, title="Unrelated", content="Coffee"),
            Post(user_id=ALICE, title="Authoring", content="Made a plan"),
        ]
    )
    await db_session.commit()

    await service.set_topic_status(rust_plan.id, rust_plan.topics[0].id, CompletionStatus.COMPLETED, BOB)

    bob_progress = await db_session.scalars(select(Post.learning_plan_progress).where(Post.user_id == BOB))
    alice_progress = await db_session.scalar(select(Post.learning_plan_progress).where(Post.user_id == ALICE))
    assert bob_progress.all() == [50, 50]
    assert alice_progress is None


@pytest.mark.asyncio
async def test_post_propagation_without_posts_is_a_noop(db_session: AsyncSession) -> None:
    assert await PostService(db_session).update_posts_with_learning_plan_progress(BOB, 40) == 0


@pytest.mark.asyncio
async def test_topic_completion_records_activities(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    await service.set_topic_status(rust_plan.id, rust_plan.topics[0].id, CompletionStatus.COMPLETED, BOB)
    await service.set_topic_status(rust_plan.id, rust_plan.topics[1].id, CompletionStatus.IN_PROGRESS, BOB)

    assert await activity_types(db_session, BOB) == sorted(
        [ActivityType.LEARNING_PROGRESS, ActivityType.LEARNING_PROGRESS, ActivityType.TOPIC_COMPLETED]
    )


@pytest.mark.asyncio
async def test_resource_completion_records_activities(
    service: UserProgressService, db_session: AsyncSession, rust_plan: LearningPlanResponse
) -> None:
    topic_a = rust_plan.topics[0]
    resource_id = topic_a.resources[0].id

    await service.set_resource_status(rust_plan.id, topic_a.id, resource_id, True, BOB)
    await service.set_resource_status(rust_plan.id, topic_a.id, resource_id, False, BOB)

    assert await activity_types(db_session, BOB) == sorted(
        [ActivityType.LEARNING_PROGRESS, ActivityType.LEARNING_PROGRESS, ActivityType.RESOURCE_COMPLETED]
    )
    recorded = await db_session.scalar(
        select(UserActivity).where(UserActivity.type == ActivityType.RESOURCE_COMPLETED)
    )
    assert recorded.resource_id == resource_id
    assert recorded.topic_title == "Ownership"


@pytest.mark.asyncio
async def test_failing_post_update_keeps_the_progress_change(
    service: UserProgressService,
    session_maker: async_sessionmaker[AsyncSession],
    rust_plan: LearningPlanResponse,
) -> None:
    failing = AsyncMock(side_effect=RuntimeError("posts unavailable"))
    with patch.object(PostService, "update_posts_with_learning_plan_progress", failing):
        view = await service.set_topic_status(rust_plan.id, rust_plan.topics[0].id, CompletionStatus.COMPLETED, BOB)

    failing.assert_awaited_once()
    assert view.completion_percentage == 50

    async with session_maker() as fresh:
        stored = await fresh.scalar(select(UserProgress.completion_percentage).where(UserProgress.user_id == BOB))
        assert stored == 50
        assert await count(fresh, UserActivity, UserActivity.user_id == BOB) == 2


@pytest.mark.asyncio
async def test_failing_activity_record_keeps_the_progress_change(
    service: UserProgressService,
    db_session: AsyncSession,
    session_maker: async_sessionmaker[AsyncSession],
    rust_plan: LearningPlanResponse,
) -> None:
    db_session.add(Post(user_id=BOB, title="Day 1", content="Started Rust"))
    await db_session.commit()

    failing = AsyncMock(side_effect=RuntimeError("activity store unavailable"))
    with patch.object(ActivityService, "record_learning_plan_progress", failing):
        await service.set_resource_status(
            rust_plan.id, rust_plan.topics[0].id, rust_plan.topics[0].resources[0].id, True, BOB
        )

    async with session_maker() as fresh:
        assert await fresh.scalar(select(UserProgress.completion_percentage)) == 50
        assert await fresh.scalar(select(Post.learning_plan_progress)) == 50
        assert await count(fresh, UserActivity) == 0
        assert await count(fresh, ResourceProgress, ResourceProgress.is_completed.is_(True)) == 1
