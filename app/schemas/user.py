"""
Pydantic schemas for authenticated users and Supabase Auth administration.

Users live in Supabase Auth; role and display name are kept in
user_metadata, so there is no local users table.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime


class CurrentUser(BaseModel):
    """
    Identity extracted from a validated Supabase JWT.
    """
    id: str
    email: Optional[str] = None
    role: str = "user"
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AdminUserCreate(BaseModel):
    """
    Schema for creating a user through the Supabase admin API.
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "user"] = "user"
    name: Optional[str] = Field(None, max_length=255)


class AdminUserUpdate(BaseModel):
    """
    Schema for updating a user (all fields optional).

    An empty name removes it from the user metadata.
    """
    email: Optional[EmailStr] = None
    role: Optional[Literal["admin", "user"]] = None
    name: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, min_length=6)


class AdminUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "user"
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


class VendorResponse(BaseModel):
    """Seller entry used to fill 'sold by' pickers."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "user"
