"""
Post Schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., description="Rich-text HTML body")
    password: str = Field(..., min_length=1, description="Secret needed to edit or delete the post")


class PostUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str
    password: Optional[str] = Field(None, description="Omit only with an admin session")


class PostDelete(BaseModel):
    password: Optional[str] = None


class PostResponse(BaseModel):
    """Public view of a post. The password hash is never included."""
    id: str
    marker_id: str
    title: str
    content: str
    likes: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PostDeleteResponse(BaseModel):
    post_id: str
    marker_id: str


class PostPage(BaseModel):
    posts: List[PostResponse]
    total: int
    page: int
    limit: int
