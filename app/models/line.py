import uuid
from enum import Enum as PythonEnum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SQLAlchemyEnum

from app.core.database import Base, utc_now


class LineType(str, PythonEnum):
    TITULAR = "TITULAR"
    DEPENDENTE = "DEPENDENTE"


class Line(Base):
    """Mobile phone line held by a client (holder or dependent)."""
    __tablename__ = "lines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    client_id = Column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    nickname = Column(String(120), nullable=True)
    phone_number = Column(String(30), nullable=False)
    type = Column(
        SQLAlchemyEnum(LineType, native_enum=False, length=12),
        nullable=False,
        default=LineType.TITULAR,
    )
    document = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

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

    client = relationship("Client", back_populates="lines")

    def __repr__(self):
        return f"<Line(id={self.id}, phone_number='{self.phone_number}', type='{self.type}')>"
