from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from app.models.line import LineType


class LineBase(BaseModel):
    nickname: Optional[str] = Field(None, max_length=120)
    document: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None


class LineCreate(LineBase):
    client_id: UUID
    phone_number: str = Field(..., min_length=8, max_length=30)
    type: LineType = LineType.TITULAR


class LineUpdate(LineBase):
    client_id: Optional[UUID] = None
    phone_number: Optional[str] = Field(None, min_length=8, max_length=30)
    type: Optional[LineType] = None


class LineResponse(LineBase):
    id: UUID
    client_id: UUID
    phone_number: str
    type: LineType
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
