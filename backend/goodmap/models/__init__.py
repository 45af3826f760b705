from .base import BaseModel
from .marker import Marker, MarkerTag
from .post import Post
from .user import User

__all__ = [
    "BaseModel",
    "Marker",
    "MarkerTag",
    "Post",
    "User",
]
