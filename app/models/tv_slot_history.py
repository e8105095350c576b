import uuid
from enum import Enum as PythonEnum

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now


class SlotAction(str, PythonEnum):
    ASSIGNED = "ASSIGNED"
    RELEASED = "RELEASED"
    UPDATED = "UPDATED"


class TVSlotHistory(Base):
    """Audit trail of everything that happened to a TV slot."""
    __tablename__ = "tv_slot_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tv_slot_id = Column(
        Uuid,
        ForeignKey("tv_slots.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    action = Column(String(30), nullable=False)

    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True
    )

    slot = relationship("TVSlot", back_populates="history")

    def __repr__(self):
        return f"<TVSlotHistory(tv_slot_id={self.tv_slot_id}, action='{self.action}')>"
