import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Index, ForeignKey
from sqlalchemy.sql import func
from db.session import Base


class AuthToken(Base):
    __tablename__ = "auth_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # the unique constraint is the lookup index
    token = Column(String(255), unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # user_role / user_name are copied at issue time and never refreshed
    user_role = Column(String(20), nullable=False)
    user_name = Column(String(255), nullable=False)
    # naive UTC
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    __table_args__ = (
        Index("idx_user_id", "user_id"),
        Index("idx_expires_at", "expires_at"),
        Index("idx_is_active", "is_active"),
    )
