from fastapi import Depends, Request
from sqlalchemy.orm import Session

from goodmap.auth.password import password_manager
from goodmap.core.cache import PostCache
from goodmap.core.database import get_db
from goodmap.services.marker_service import MarkerService
from goodmap.services.post_service import PostService


def get_post_cache(request: Request) -> PostCache:
    return request.app.state.post_cache


def get_marker_service(
    db: Session = Depends(get_db),
    cache: PostCache = Depends(get_post_cache)
) -> MarkerService:
    return MarkerService(db, cache)


def get_post_service(
    db: Session = Depends(get_db),
    cache: PostCache = Depends(get_post_cache)
) -> PostService:
    return PostService(db, cache, password_manager)
