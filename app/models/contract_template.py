import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, Uuid
from sqlalchemy.sql import func

from app.core.database import Base, utc_now


class ContractTemplate(Base):
    """
    Reusable contract body with {{placeholder}} fields filled at generation time.
    """
    __tablename__ = "contract_templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)

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

    def __repr__(self):
        return f"<ContractTemplate(id={self.id}, name='{self.name}', active={self.active})>"
