from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from .base import BaseModel, utcnow


class Post(BaseModel):
    __tablename__ = "post"

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)  # Rich-text HTML from the editor
    hashed_password = Column(String(255), nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Foreign keys
    marker_id = Column(String(36), ForeignKey("marker.id"), index=True, nullable=False)

    # Relationships
    marker = relationship("Marker", back_populates="posts")
