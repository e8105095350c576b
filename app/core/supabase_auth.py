"""
Validation of Supabase Auth JWTs.

Users live in Supabase; the API keeps no local user table. The role and the
display name travel inside the token metadata.
"""
import os
import requests
from jose import jwt, JWTError
from fastapi import HTTPException, status
from dotenv import load_dotenv

from app.schemas.user import CurrentUser

load_dotenv()

# Supabase configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")

# Cache for JWKS (public keys)
_jwks_cache = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_jwks():
    """
    Fetch the public keys (JWKS) Supabase uses to sign asymmetric tokens.

    Keys are cached for the lifetime of the process.
    """
    global _jwks_cache

    if _jwks_cache is not None:
        return _jwks_cache

    if not SUPABASE_URL:
        return None

    try:
        response = requests.get(f"{SUPABASE_URL}/auth/v1/.well-known/jwks.json", timeout=5)
        response.raise_for_status()
        _jwks_cache = response.json()
        return _jwks_cache
    except (requests.RequestException, ValueError) as e:
        print(f"[AUTH] [WARNING] Failed to fetch JWKS from Supabase: {e}")
        return None


def decode_supabase_jwt(token: str) -> dict:
    """
    Decode and validate a JWT issued by Supabase Auth.

    HS256 with the project secret is tried first; tokens signed with an
    asymmetric key are checked against the JWKS.

    Args:
        token: JWT token string

    Returns:
        dict: Token payload ('sub', 'email', 'user_metadata', ...)

    Raises:
        HTTPException 401: If the token is invalid or expired
    """
    if SUPABASE_JWT_SECRET:
        try:
            return jwt.decode(
                token,
                SUPABASE_JWT_SECRET,
                algorithms=["HS256"],
                options={"verify_aud": False}
            )
        except JWTError as e:
            print(f"[AUTH] HS256 validation failed: {e}, trying JWKS...")

    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        raise _unauthorized("Invalid authentication token")

    algorithm = unverified_header.get("alg", "ES256")
    kid = unverified_header.get("kid")
    if algorithm == "HS256":
        raise _unauthorized("Invalid authentication token")

    jwks = get_jwks()
    if not jwks:
        raise _unauthorized("Invalid authentication token")

    public_key = next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)
    if not public_key:
        raise _unauthorized(f"Could not find public key for kid: {kid}")

    try:
        return jwt.decode(
            token,
            public_key,
            algorithms=[algorithm],
            options={"verify_aud": False}
        )
    except JWTError as e:
        raise _unauthorized(f"Invalid authentication token: {str(e)}")


def user_from_payload(payload: dict) -> CurrentUser:
    """
    Build the request identity from a decoded token.

    The role is read from user_metadata, then app_metadata, and defaults
    to "user".

    Raises:
        HTTPException 401: If the token has no subject
    """
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload: missing sub")

    user_metadata = payload.get("user_metadata") or {}
    app_metadata = payload.get("app_metadata") or {}
    role = user_metadata.get("role") or app_metadata.get("role") or "user"

    return CurrentUser(
        id=str(user_id),
        email=payload.get("email"),
        role=role,
        name=user_metadata.get("name"),
    )
