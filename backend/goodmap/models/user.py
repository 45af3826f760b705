from sqlalchemy import Boolean, Column, DateTime, String
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "user"

    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
