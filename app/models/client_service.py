import uuid

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now


class ClientService(Base):
    """
    Association between a client and a contracted service, with optional
    negotiated prices.
    """
    __tablename__ = "client_services"
    __table_args__ = (
        UniqueConstraint("client_id", "service_id", name="uq_client_services_client_service"),
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

    # Negotiated prices; the TV service keeps one per plan
    custom_price = Column(Numeric(10, 2), nullable=True)
    custom_price_essencial = Column(Numeric(10, 2), nullable=True)
    custom_price_premium = Column(Numeric(10, 2), nullable=True)

    # Seller credited with the sale
    sold_by = Column(String(255), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )

    client = relationship("Client", back_populates="service_links")
    service = relationship("Service", back_populates="client_links")

    def __repr__(self):
        return f"<ClientService(client_id={self.client_id}, service_id={self.service_id})>"
