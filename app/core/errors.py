"""
Classification of database errors raised through SQLAlchemy.

The live schema may lag behind the code (tables or columns not migrated
yet). Endpoints use these helpers to degrade instead of failing with 500.
"""
from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, IntegrityError

# PostgreSQL SQLSTATE codes
UNDEFINED_TABLE = "42P01"
UNDEFINED_COLUMN = "42703"
UNIQUE_VIOLATION = "23505"

SCHEMA_MISSING_CODES = {UNDEFINED_TABLE, UNDEFINED_COLUMN}

TV_FEATURE_UNAVAILABLE = (
    "TV feature unavailable. Run the database migrations and try again."
)


def _sqlstate(exc: BaseException) -> str | None:
    """Extract the SQLSTATE from a DBAPI error, whatever the driver."""
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    # asyncpg errors are wrapped by the SQLAlchemy adapter
    cause = getattr(orig, "__cause__", None)
    code = getattr(cause, "sqlstate", None)
    return str(code) if code else None


def is_schema_missing(exc: BaseException) -> bool:
    """
    Return True when the error means a referenced table or column does not exist.
    """
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) in SCHEMA_MISSING_CODES:
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return "no such table" in message or "no such column" in message


def is_unique_violation(exc: BaseException) -> bool:
    if not isinstance(exc, IntegrityError):
        return False
    if _sqlstate(exc) == UNIQUE_VIOLATION:
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return "unique constraint failed" in message or "duplicate key" in message


def tv_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=TV_FEATURE_UNAVAILABLE,
    )
