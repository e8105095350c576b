"""
FastAPI dependencies for authentication and authorization.

Every API route authenticates with a Supabase JWT sent as
`Authorization: Bearer <token>`. Admin-only routes add `require_admin`.
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.privacy import mask_email
from app.core.supabase_auth import decode_supabase_jwt, user_from_payload
from app.schemas.user import CurrentUser

# Security scheme for FastAPI
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Authentication dependency used by all protected endpoints.

    Usage in endpoints:
        @router.get("/protected")
        async def protected_route(user: CurrentUser = Depends(get_current_user)):
            return {"user_id": user.id}

    Args:
        request (Request): FastAPI request object
        credentials: Bearer credentials from the Authorization header

    Returns:
        CurrentUser: Identity and role taken from the token

    Raises:
        HTTPException 401: If the header is missing or the token is invalid
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token. Send Authorization: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_supabase_jwt(credentials.credentials)
    user = user_from_payload(payload)

    request.state.user = user
    print(f"[AUTH] Authenticated {mask_email(user.email)} ({user.role})")
    return user


async def require_admin(
    user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """
    Authorization dependency that requires admin privileges.

    Raises:
        HTTPException 403: If user does not have admin role
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint requires admin privileges"
        )
    return user
