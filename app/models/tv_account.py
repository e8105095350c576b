import uuid

from sqlalchemy import Column, String, Integer, DateTime, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now


class TVAccount(Base):
    """
    Shared streaming account. Standard accounts are named after the user range
    they hold ("1a8@domain", "9a16@domain", ...); custom accounts carry a
    client-provided email and a single slot.
    """
    __tablename__ = "tv_accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)

    # Capacity used when migrating assignments between accounts
    max_slots = Column(Integer, nullable=False, default=8)

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )

    slots = relationship(
        "TVSlot",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TVSlot.slot_number",
    )

    def __repr__(self):
        return f"<TVAccount(id={self.id}, email='{self.email}')>"
