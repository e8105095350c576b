import uuid
from enum import Enum as PythonEnum

from sqlalchemy import (
    Column, String, Integer, Text, Boolean, Date, DateTime, ForeignKey, UniqueConstraint, Uuid
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SQLAlchemyEnum

from app.core.database import Base, utc_now


class SlotStatus(str, PythonEnum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    USED = "USED"


class PlanType(str, PythonEnum):
    ESSENCIAL = "ESSENCIAL"
    PREMIUM = "PREMIUM"


class TVSlot(Base):
    """
    One assignable seat (profile) inside a shared TV account.

    A slot is free when status is AVAILABLE and client_id is NULL. Released
    slots become USED and are not handed out again until a pool reset.
    """
    __tablename__ = "tv_slots"
    __table_args__ = (
        UniqueConstraint("tv_account_id", "slot_number", name="uq_tv_slots_account_slot"),
    )

    # ------------------------------------------------------------------
    # IDENTIFICATION
    # ------------------------------------------------------------------
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tv_account_id = Column(
        Uuid,
        ForeignKey("tv_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    slot_number = Column(Integer, nullable=False)

    # ------------------------------------------------------------------
    # CREDENTIALS
    # ------------------------------------------------------------------
    username = Column(String(50), nullable=False)
    password = Column(String(10), nullable=False)  # 4-digit PIN

    # ------------------------------------------------------------------
    # ASSIGNMENT
    # ------------------------------------------------------------------
    status = Column(
        SQLAlchemyEnum(SlotStatus, native_enum=False, length=12),
        nullable=False,
        default=SlotStatus.AVAILABLE,
        index=True,
    )
    client_id = Column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    sold_by = Column(String(255), nullable=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)
    starts_at = Column(Date, nullable=True)
    expires_at = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    plan_type = Column(SQLAlchemyEnum(PlanType, native_enum=False, length=12), nullable=True)
    has_telephony = Column(Boolean, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False
    )

    # ------------------------------------------------------------------
    # RELATIONSHIPS
    # ------------------------------------------------------------------
    account = relationship("TVAccount", back_populates="slots")
    client = relationship("Client", back_populates="tv_slots")
    history = relationship(
        "TVSlotHistory",
        back_populates="slot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<TVSlot(id={self.id}, slot_number={self.slot_number}, status='{self.status}')>"
