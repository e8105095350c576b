"""
Pydantic schemas for the services catalog.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Union
from datetime import datetime
from uuid import UUID

from app.core.validation import normalize_price_input


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    allow_custom_price: bool = False


class ServiceCreate(ServiceBase):
    """
    Price accepts numbers or Brazilian-formatted strings ("1.234,56").
    """
    price: Union[float, str] = 0

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, value):
        return normalize_price_input(value)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    price: Optional[Union[float, str]] = None
    allow_custom_price: Optional[bool] = None

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, value):
        if value is None:
            return value
        return normalize_price_input(value)


class ServiceResponse(ServiceBase):
    id: UUID
    price: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ServiceBrief(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class ClientServiceResponse(ServiceResponse):
    """Service contracted by a client, with negotiated prices."""
    custom_price: Optional[float] = None
    custom_price_essencial: Optional[float] = None
    custom_price_premium: Optional[float] = None
    sold_by: Optional[str] = None
