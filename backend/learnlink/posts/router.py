from uuid import UUID

from fastapi import APIRouter, Depends, status

from learnlink.auth import CurrentAuth
from learnlink.database.pagination import Paginator
from learnlink.dependencies import LimitParam, PageParam
from learnlink.middleware.security import posts_rate_limit
from learnlink.posts.schemas import (
    CommentCreate,
    CommentResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from learnlink.posts.service import PostService


router = APIRouter(prefix="/api/v1/posts", tags=["posts"], dependencies=[Depends(posts_rate_limit)])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(data: PostCreate, auth: CurrentAuth) -> PostResponse:
    """Create a post authored by the current user."""
    service = PostService(auth.session)
    post = await service.create_post(auth.user_id, data)
    [response] = await service.build_responses([post], auth.user_id)
    return response


@router.get("/user/{user_id}")
async def list_user_posts(
    user_id: UUID,
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> PostListResponse:
    """Get a user's posts, newest first."""
    service = PostService(auth.session)
    posts, total = await service.list_user_posts(user_id, page=page, limit=limit)

    paginator = Paginator(page=page, limit=limit)
    return PostListResponse(
        items=await service.build_responses(posts, auth.user_id),
        total=total,
        page=paginator.page,
        pages=(total + paginator.limit - 1) // paginator.limit,
    )


@router.get("/{post_id}", responses={404: {"description": "Post not found"}})
async def get_post(post_id: UUID, auth: CurrentAuth) -> PostResponse:
    service = PostService(auth.session)
    post = await service.get_post(post_id)
    [response] = await service.build_responses([post], auth.user_id)
    return response


@router.put("/{post_id}")
async def update_post(post_id: UUID, data: PostUpdate, auth: CurrentAuth) -> PostResponse:
    """Update a post. Only its author may do this."""
    service = PostService(auth.session)
    post = await service.update_post(post_id, auth.user_id, data)
    [response] = await service.build_responses([post], auth.user_id)
    return response


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_post(post_id: UUID, auth: CurrentAuth) -> None:
    """Delete a post. Only its author may do this."""
    await PostService(auth.session).delete_post(post_id, auth.user_id)


@router.post("/{post_id}/like", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def like_post(post_id: UUID, auth: CurrentAuth) -> None:
    await PostService(auth.session).like_post(post_id, auth.user_id)


@router.delete("/{post_id}/like", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def unlike_post(post_id: UUID, auth: CurrentAuth) -> None:
    await PostService(auth.session).unlike_post(post_id, auth.user_id)


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(post_id: UUID, data: CommentCreate, auth: CurrentAuth) -> CommentResponse:
    comment = await PostService(auth.session).add_comment(post_id, auth.user_id, data)
    return CommentResponse.model_validate(comment)


@router.get("/{post_id}/comments")
async def list_comments(post_id: UUID, auth: CurrentAuth) -> list[CommentResponse]:
    comments = await PostService(auth.session).list_comments(post_id)
    return [CommentResponse.model_validate(comment) for comment in comments]
