import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, Numeric, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now


class Service(Base):
    """
    A product in the reseller catalog (TV plans, cloud storage, telemedicine...).

    Service names drive behavior: names containing "tv" trigger slot
    assignment, names matching cloud keywords require an expiration date.
    """
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    # Monthly list price in BRL
    price = Column(Numeric(10, 2), nullable=False, default=0)

    # Whether sellers may negotiate a per-client price
    allow_custom_price = Column(Boolean, nullable=False, default=False)

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

    client_links = relationship("ClientService", back_populates="service", passive_deletes=True)

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', price={self.price})>"
