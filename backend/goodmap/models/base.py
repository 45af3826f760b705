import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from goodmap.core.database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    __abstract__ = True

    id = Column(String(36), primary_key=True, index=True, default=generate_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
