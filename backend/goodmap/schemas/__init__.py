"""Pydantic Schemas"""
from goodmap.schemas.marker import MarkerCreate, MarkerTagsUpdate, MarkerResponse
from goodmap.schemas.post import (
    PostCreate,
    PostUpdate,
    PostDelete,
    PostResponse,
    PostDeleteResponse,
    PostPage,
)

__all__ = [
    "MarkerCreate",
    "MarkerTagsUpdate",
    "MarkerResponse",
    "PostCreate",
    "PostUpdate",
    "PostDelete",
    "PostResponse",
    "PostDeleteResponse",
    "PostPage",
]
