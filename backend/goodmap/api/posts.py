from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from goodmap.api.deps import get_post_service
from goodmap.auth.middleware import CurrentUser, get_optional_admin, require_admin
from goodmap.schemas.post import (
    PostCreate,
    PostDelete,
    PostDeleteResponse,
    PostPage,
    PostResponse,
    PostUpdate,
)
from goodmap.services.post_service import PostService

router = APIRouter(tags=["posts"])


@router.get("/markers/{marker_id}/posts", response_model=List[PostResponse])
def get_marker_posts(
    marker_id: str,
    service: PostService = Depends(get_post_service)
):
    """Get the posts of a marker, newest first."""
    return service.list(marker_id)


@router.post("/markers/{marker_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    marker_id: str,
    post_data: PostCreate,
    service: PostService = Depends(get_post_service)
):
    """Create a password-protected post on a marker."""
    return service.create(
        marker_id=marker_id,
        title=post_data.title,
        content=post_data.content,
        password=post_data.password,
    )


@router.get("/posts", response_model=PostPage)
def get_all_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: PostService = Depends(get_post_service),
    current_user: CurrentUser = Depends(require_admin)
):
    """List every post for moderation (admin only)."""
    return service.list_all(page=page, limit=limit)


@router.patch("/posts/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    post_data: PostUpdate,
    service: PostService = Depends(get_post_service),
    is_admin: bool = Depends(get_optional_admin)
):
    """Edit a post's title and content. Requires the post password unless admin."""
    return service.edit(
        post_id,
        title=post_data.title,
        content=post_data.content,
        password=post_data.password,
        is_admin=is_admin,
    )


@router.delete("/posts/{post_id}", response_model=PostDeleteResponse)
def delete_post(
    post_id: str,
    delete_data: Optional[PostDelete] = None,
    service: PostService = Depends(get_post_service),
    is_admin: bool = Depends(get_optional_admin)
):
    """Delete a post. Requires the post password unless admin."""
    password = delete_data.password if delete_data else None
    return service.delete(post_id, password=password, is_admin=is_admin)


@router.post("/posts/{post_id}/likes", response_model=PostResponse)
def like_post(
    post_id: str,
    service: PostService = Depends(get_post_service)
):
    """Add one like to a post."""
    return service.like(post_id)
