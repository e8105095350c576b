import uuid

from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func

from app.core.database import Base, utc_now


class ActionRequest(Base):
    """Request filed by a regular user for an action only admins can perform."""
    __tablename__ = "action_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Supabase user id of the requester
    user_id = Column(String(64), nullable=False, index=True)

    # Free-form action name (e.g. "DELETE_CLIENT") and its arguments
    action = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self):
        return f"<ActionRequest(id={self.id}, action='{self.action}')>"
