import uuid

from sqlalchemy import Column, Text, Boolean, Date, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now


class CloudAccess(Base):
    """
    Time-bounded grant of a cloud-type service (storage, HubPlay, telemedicine)
    to a client. One access per client and service.
    """
    __tablename__ = "cloud_accesses"
    __table_args__ = (
        UniqueConstraint("client_id", "service_id", name="uq_cloud_accesses_client_service"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    service_id = Column(
        Uuid,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    expires_at = Column(Date, nullable=False, index=True)

    # Trial accesses are excluded from active counts
    is_test = Column(Boolean, nullable=False, default=False)
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

    client = relationship("Client", back_populates="cloud_accesses")
    service = relationship("Service")

    def __repr__(self):
        return f"<CloudAccess(client_id={self.client_id}, service_id={self.service_id}, expires_at={self.expires_at})>"
