from enum import Enum

from sqlalchemy import Column, Float, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel


class MarkerTag(str, Enum):
    RESTAURANT = "restaurant"
    ACCOMMODATION = "accommodation"
    TOURISM_VIEW = "tourism_view"
    CAFE = "cafe"
    SHOPPING = "shopping"
    INCIDENT = "incident"
    OTHER = "other"


class Marker(BaseModel):
    __tablename__ = "marker"
    __table_args__ = (
        UniqueConstraint("latitude", "longitude", name="uq_marker_coordinates"),
    )

    name = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    tags = Column(JSON, nullable=False, default=list)  # List of MarkerTag values

    # Relationships
    posts = relationship("Post", back_populates="marker", order_by="Post.created_at.desc()")

    @property
    def post_ids(self) -> list[str]:
        return [post.id for post in self.posts]
