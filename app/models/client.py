import uuid
from enum import Enum as PythonEnum

from sqlalchemy import Column, String, Text, DateTime, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SQLAlchemyEnum

from app.core.database import Base, utc_now


class CostCenter(str, PythonEnum):
    LUXUS = "LUXUS"
    NEXUS = "NEXUS"


class Client(Base):
    """
    A customer of the reseller (person or company).

    The document column holds only digits: 11 for CPF, 14 for CNPJ.
    """
    __tablename__ = "clients"

    # Primary key
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Contact information
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)

    # CPF or CNPJ, digits only
    document = Column(String(14), nullable=False, unique=True, index=True)

    # Billing unit the client belongs to
    cost_center = Column(
        SQLAlchemyEnum(CostCenter, native_enum=False, length=10),
        nullable=False,
        default=CostCenter.LUXUS,
    )

    company_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(50), nullable=True)

    # Supabase user id of whoever registered the client (ownership checks)
    opened_by = Column(String(64), nullable=True, index=True)

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

    # Relationships
    service_links = relationship(
        "ClientService",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    cloud_accesses = relationship(
        "CloudAccess",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    lines = relationship(
        "Line",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    contracts = relationship(
        "Contract",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tv_slots = relationship("TVSlot", back_populates="client", passive_deletes=True)

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}', document='{self.document}')>"
