"""
Supabase Auth administration (service role).

The supabase client is synchronous; calls run in the threadpool so they do
not block the event loop.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool
from supabase import AuthApiError, AuthError, Client, create_client

from app.core.privacy import mask_email

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

LIST_USERS_PAGE_SIZE = 1000


def _metadata(user) -> dict:
    return dict(getattr(user, "user_metadata", None) or {})


def normalize_user(user) -> dict:
    """Flatten a Supabase user into the fields the API exposes."""
    metadata = _metadata(user)
    return {
        "id": str(user.id),
        "email": user.email,
        "role": metadata.get("role") or "user",
        "name": metadata.get("name"),
        "created_at": getattr(user, "created_at", None),
        "last_sign_in_at": getattr(user, "last_sign_in_at", None),
    }


def _raise_for_auth_error(e: AuthError, action: str):
    code = getattr(e, "status", None)
    print(f"[AUTH] [ERROR] Supabase failed to {action}: {e} (status={code})")
    if code in (401, 403):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to manage users. Check SUPABASE_SERVICE_ROLE_KEY.",
        )
    if code == 404:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if code == 422:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    if code and 400 <= code < 500:
        raise HTTPException(status_code=code, detail=str(e))
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Supabase error while trying to {action}",
    )


class SupabaseAdmin:
    """
    Wrapper around supabase.auth.admin.

    Users are returned as plain dicts (see normalize_user).
    """

    def __init__(self, url: str, service_role_key: str, anon_key: Optional[str] = None):
        self.url = url
        self.anon_key = anon_key or service_role_key
        self.client: Client = create_client(url, service_role_key)

    async def list_users(self) -> List[dict]:
        try:
            users = await run_in_threadpool(
                self.client.auth.admin.list_users, page=1, per_page=LIST_USERS_PAGE_SIZE
            )
        except AuthError as e:
            _raise_for_auth_error(e, "list users")
        return [normalize_user(user) for user in users]

    async def get_user(self, user_id: str) -> dict:
        try:
            response = await run_in_threadpool(self.client.auth.admin.get_user_by_id, user_id)
        except AuthError as e:
            _raise_for_auth_error(e, "load user")
        if not response or not response.user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return normalize_user(response.user)

    async def create_user(self, email: str, password: str, role: str, name: Optional[str] = None) -> dict:
        """
        Create a confirmed user with role (and name) in user_metadata.

        Raises:
            HTTPException 409: If the email is already registered
        """
        metadata = {"role": role}
        if name:
            metadata["name"] = name
        try:
            response = await run_in_threadpool(self.client.auth.admin.create_user, {
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": metadata,
            })
        except AuthApiError as e:
            if "already" in str(e).lower():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
            _raise_for_auth_error(e, "create user")
        except AuthError as e:
            _raise_for_auth_error(e, "create user")

        print(f"[AUTH] Created user {mask_email(email)} with role {role}")
        return normalize_user(response.user)

    async def update_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
        name: Optional[str] = None,
        name_set: bool = False,
    ) -> dict:
        """
        Update credentials and merge role/name into the existing metadata.

        When `name_set` is true an empty name removes it.
        """
        try:
            current = await run_in_threadpool(self.client.auth.admin.get_user_by_id, user_id)
        except AuthError as e:
            _raise_for_auth_error(e, "load user")
        metadata = _metadata(current.user)
        if role:
            metadata["role"] = role
        if name_set:
            if name:
                metadata["name"] = name
            else:
                metadata.pop("name", None)

        attributes = {"user_metadata": metadata}
        if email:
            attributes["email"] = email
        if password:
            attributes["password"] = password

        try:
            response = await run_in_threadpool(
                self.client.auth.admin.update_user_by_id, user_id, attributes
            )
        except AuthError as e:
            _raise_for_auth_error(e, "update user")

        print(f"[AUTH] Updated user {user_id}")
        return normalize_user(response.user)

    async def delete_user(self, user_id: str) -> None:
        try:
            await run_in_threadpool(self.client.auth.admin.delete_user, user_id)
        except AuthError as e:
            _raise_for_auth_error(e, "delete user")
        print(f"[AUTH] Deleted user {user_id}")

    async def verify_password(self, email: str, password: str) -> bool:
        """
        Check a password by signing in with a throwaway anon client.
        """
        anon = create_client(self.url, self.anon_key)
        try:
            await run_in_threadpool(
                anon.auth.sign_in_with_password, {"email": email, "password": password}
            )
        except AuthApiError:
            print(f"[AUTH] Password re-check failed for {mask_email(email)}")
            return False
        return True


_admin: Optional[SupabaseAdmin] = None


def get_supabase_admin() -> SupabaseAdmin:
    """
    Dependency returning the shared SupabaseAdmin.

    Raises:
        HTTPException 500: If the service role key is not configured
    """
    global _admin
    if _admin is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            print("[AUTH] [ERROR] SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server configuration incomplete: SUPABASE_SERVICE_ROLE_KEY is missing",
            )
        _admin = SupabaseAdmin(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_ANON_KEY)
    return _admin


def get_optional_supabase_admin() -> Optional[SupabaseAdmin]:
    """Same as get_supabase_admin, but None when Supabase is not configured."""
    try:
        return get_supabase_admin()
    except HTTPException:
        return None
