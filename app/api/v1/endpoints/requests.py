from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.action_request import ActionRequest
from app.schemas.action_request import ActionRequestCreate
from app.schemas.user import CurrentUser

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_action_request(
    payload: ActionRequestCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a user request (e.g. a change that needs an admin) for later review."""
    db.add(ActionRequest(user_id=user.id, action=payload.action, payload=payload.payload))
    await db.commit()
    print(f"[REQUESTS] {payload.action} requested by {user.id}")
    return {"message": "Request recorded"}
