"""
User administration through the Supabase Auth admin API.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.core.dependencies import require_admin
from app.core.privacy import mask_email
from app.core.rate_limit import ADMIN, limiter
from app.core.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.schemas.user import AdminUserCreate, AdminUserResponse, AdminUserUpdate, CurrentUser

router = APIRouter()


@router.get("", response_model=List[AdminUserResponse])
@limiter.limit(ADMIN)
async def list_users(
    request: Request,
    response: Response,
    admin: CurrentUser = Depends(require_admin),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
):
    return await supabase_admin.list_users()


@router.post("", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ADMIN)
async def create_user(
    request: Request,
    response: Response,
    payload: AdminUserCreate,
    admin: CurrentUser = Depends(require_admin),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
):
    """
    Create a user with a confirmed email.

    Raises:
        HTTPException 409: If the email is already registered
    """
    name = (payload.name or "").strip() or None
    user = await supabase_admin.create_user(str(payload.email), payload.password, payload.role, name)
    print(f"[ADMIN] {admin.id} created {mask_email(str(payload.email))}")
    return user


@router.patch("/{user_id}", response_model=AdminUserResponse)
@limiter.limit(ADMIN)
async def update_user(
    request: Request,
    response: Response,
    user_id: str,
    payload: AdminUserUpdate,
    admin: CurrentUser = Depends(require_admin),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
):
    """
    Update role, name, email or password. An empty name removes it.
    """
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")

    return await supabase_admin.update_user(
        user_id,
        email=str(payload.email) if payload.email else None,
        password=payload.password,
        role=payload.role,
        name=(payload.name or "").strip() or None,
        name_set="name" in changes,
    )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(ADMIN)
async def delete_user(
    request: Request,
    response: Response,
    user_id: str,
    admin: CurrentUser = Depends(require_admin),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    await supabase_admin.delete_user(user_id)
