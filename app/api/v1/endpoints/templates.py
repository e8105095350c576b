from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user, require_admin
from app.core.rate_limit import AUTH_STRICT, limiter
from app.core.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.models.contract_template import ContractTemplate
from app.schemas.contract import TemplateCreate, TemplateDeleteRequest, TemplateResponse, TemplateUpdate
from app.schemas.user import CurrentUser

router = APIRouter()


async def _get_template_or_404(db: AsyncSession, template_id: UUID) -> ContractTemplate:
    template = await db.get(ContractTemplate, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.get("", response_model=List[TemplateResponse])
async def list_templates(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(ContractTemplate).order_by(ContractTemplate.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = ContractTemplate(**payload.model_dump())
    db.add(template)
    await db.commit()
    return template


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    payload: TemplateUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await _get_template_or_404(db, template_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(template, field, value)
    await db.commit()
    await db.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(AUTH_STRICT)
async def delete_template(
    request: Request,
    response: Response,
    template_id: UUID,
    payload: TemplateDeleteRequest,
    admin: CurrentUser = Depends(require_admin),
    supabase_admin: SupabaseAdmin = Depends(get_supabase_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a template after re-checking the admin's password.

    Raises:
        HTTPException 400: If the account has no email
        HTTPException 401: If the password is wrong
    """
    if not admin.email:
        raise HTTPException(status_code=400, detail="Account has no email. Sign in again.")

    if not await supabase_admin.verify_password(admin.email, payload.password):
        raise HTTPException(status_code=401, detail="Incorrect password")

    template = await _get_template_or_404(db, template_id)
    await db.delete(template)
    await db.commit()
    print(f"[TEMPLATES] Template {template_id} deleted by {admin.id}")
