import uuid
from enum import Enum as PythonEnum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SQLAlchemyEnum

from app.core.database import Base, utc_now


class ContractStatus(str, PythonEnum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    SIGNED = "SIGNED"
    CANCELLED = "CANCELLED"


class Contract(Base):
    """
    Contract generated for a client.

    Lifecycle: DRAFT -> SENT -> SIGNED, or CANCELLED at any point.
    """
    __tablename__ = "contracts"

    # ------------------------------------------------------------------
    # IDENTIFICATION
    # ------------------------------------------------------------------
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    status = Column(
        SQLAlchemyEnum(ContractStatus, native_enum=False, length=12),
        nullable=False,
        default=ContractStatus.DRAFT,
        index=True,
    )

    # Rendered body (template with placeholders substituted)
    content = Column(Text, nullable=False)

    # ------------------------------------------------------------------
    # E-SIGNATURE
    # ------------------------------------------------------------------
    sign_url = Column(String(500), nullable=True)
    external_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    storage_location = Column(String(500), nullable=True)

    # ------------------------------------------------------------------
    # RELATIONS
    # ------------------------------------------------------------------
    client_id = Column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    template_id = Column(
        Uuid,
        ForeignKey("contract_templates.id", ondelete="SET NULL"),
        nullable=True
    )

    # Supabase user id of the author (ownership checks)
    created_by = Column(String(64), nullable=True, index=True)

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

    client = relationship("Client", back_populates="contracts")
    template = relationship("ContractTemplate")

    def __repr__(self):
        return f"<Contract(id={self.id}, title='{self.title}', status='{self.status}')>"
