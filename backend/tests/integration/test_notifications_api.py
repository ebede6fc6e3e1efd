"""Notifications for likes, comments and follows over HTTP."""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnlink.notifications.models import Notification
from tests.helpers import ALICE, BOB


ClientFactory = Callable[..., Awaitable[AsyncClient]]

NOTIFICATIONS_URL = "/api/v1/notifications"


async def create_profile(client: AsyncClient, name: str) -> None:
    response = await client.put("/api/v1/users/me", json={"name": name})
    assert response.status_code == 200, response.text


async def create_post(client: AsyncClient) -> dict[str, Any]:
    response = await client.post("/api/v1/posts", json={"title": "Week one", "content": "Borrow checker won"})
    assert response.status_code == 201, response.text
    return response.json()


async def list_notifications(client: AsyncClient, **params: Any) -> dict[str, Any]:
    response = await client.get(NOTIFICATIONS_URL, params=params)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_likes_and_comments_notify_the_author(client_factory: ClientFactory) -> None:
    alice = await client_factory(ALICE)
    bob = await client_factory(BOB)
    await create_profile(bob, "Bob")
    post = await create_post(alice)

    await bob.post(f"/api/v1/posts/{post['id']}/like")
    await bob.post(f"/api/v1/posts/{post['id']}/like")
    comment = (await bob.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "Congrats"})).json()

    inbox = await list_notifications(alice)
    assert inbox["total"] == 2
    assert inbox["unread"] == 2
    by_type = {item["type"]: item for item in inbox["items"]}
    assert by_type["LIKE"]["message"] == "Bob liked your post"
    assert by_type["LIKE"]["post_id"] == post["id"]
    assert by_type["COMMENT"]["message"] == "Bob commented on your post"
    assert by_type["COMMENT"]["comment_id"] == comment["id"]
    assert all(item["actor_id"] == str(BOB) and not item["is_read"] for item in inbox["items"])

    assert (await list_notifications(bob))["total"] == 0


@pytest.mark.asyncio
async def test_own_actions_do_not_notify(client_factory: ClientFactory) -> None:
    alice = await client_factory(ALICE)
    post = await create_post(alice)

    await alice.post(f"/api/v1/posts/{post['id']}/like")
    await alice.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "Note to self"})

    assert (await list_notifications(alice))["total"] == 0


@pytest.mark.asyncio
async def test_actor_without_profile_name_is_someone(client_factory: ClientFactory) -> None:
    alice = await client_factory(ALICE)
    bob = await client_factory(BOB)
    post = await create_post(alice)

    await bob.post(f"/api/v1/posts/{post['id']}/like")

    [notification] = (await list_notifications(alice))["items"]
    assert notification["message"] == "Someone liked your post"


@pytest.mark.asyncio
async def test_mark_one_then_all_read(client_factory: ClientFactory) -> None:
    alice = await client_factory(ALICE)
    bob = await client_factory(BOB)
    await create_profile(alice, "Alice")
    await create_profile(bob, "Bob")
    post = await create_post(alice)

    await bob.post(f"/api/v1/users/{ALICE}/follow")
    await bob.post(f"/api/v1/posts/{post['id']}/like")
    await bob.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "Nice"})

    inbox = await list_notifications(alice)
    assert inbox["unread"] == 3
    first_id = inbox["items"][0]["id"]

    read = await alice.put(f"{NOTIFICATIONS_URL}/{first_id}/read")
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    assert read.json()["read_at"] is not None

    unread = await list_notifications(alice, unread_only="true")
    assert unread["total"] == 2
    assert first_id not in {item["id"] for item in unread["items"]}

    assert (await bob.put(f"{NOTIFICATIONS_URL}/{first_id}/read")).status_code == 403
    assert (await alice.put(f"{NOTIFICATIONS_URL}/{uuid4()}/read")).status_code == 404

    read_all = await alice.put(f"{NOTIFICATIONS_URL}/read-all")
    assert read_all.status_code == 200
    assert read_all.json() == {"updated": 2}

    after = await list_notifications(alice)
    assert after["unread"] == 0
    assert after["total"] == 3


@pytest.mark.asyncio
async def test_deleting_a_post_removes_its_notifications(
    client_factory: ClientFactory, session_maker: async_sessionmaker[AsyncSession]
) -> None:
    alice = await client_factory(ALICE)
    bob = await client_factory(BOB)
    post = await create_post(alice)
    await bob.post(f"/api/v1/posts/{post['id']}/like")
    await bob.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "Nice"})

    assert (await alice.delete(f"/api/v1/posts/{post['id']}")).status_code == 204

    async with session_maker() as session:
        assert await session.scalar(select(func.count()).select_from(Notification)) == 0
