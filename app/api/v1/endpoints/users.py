"""
Endpoints about the signed-in user and the seller list.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user
from app.core.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.schemas.user import CurrentUser, VendorResponse

router = APIRouter()


@router.get("/me", response_model=CurrentUser)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    """
    Get the authenticated user's identity as read from the Supabase JWT.

    Requires:
        - Valid Supabase JWT in Authorization header
    """
    return user


@router.get("/vendors", response_model=List[VendorResponse])
async def list_vendors(
    user: CurrentUser = Depends(get_current_user),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
):
    """Everyone who can appear as 'sold by', sorted by display name."""
    users = await supabase_admin.list_users()
    vendors = [
        VendorResponse(id=item["id"], email=item["email"], name=item["name"], role=item["role"])
        for item in users
    ]
    vendors.sort(key=lambda vendor: (vendor.name or vendor.email or "").casefold())
    return vendors
