import uuid

from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func
from db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    national_id = Column(String(50), unique=True, index=True, nullable=False)
    role = Column(String(20), default="member", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    __table_args__ = (
        Index("idx_role", "role"),
    )
