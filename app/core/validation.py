"""
Validation and normalization of Brazilian documents, phones and prices.
"""
import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from fastapi import HTTPException, status

CPF_LENGTH = 11
CNPJ_LENGTH = 14


def only_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def document_type(document: str | None) -> str:
    """Classify a document by its digit count: CPF, CNPJ or UNKNOWN."""
    digits = only_digits(document)
    if len(digits) == CPF_LENGTH:
        return "CPF"
    if len(digits) == CNPJ_LENGTH:
        return "CNPJ"
    return "UNKNOWN"


def sanitize_document(document: str) -> str:
    """
    Strip formatting from a CPF/CNPJ.

    Raises:
        HTTPException 400: If the result is not 11 or 14 digits long
    """
    digits = only_digits(document)
    if len(digits) in (CPF_LENGTH, CNPJ_LENGTH):
        return digits
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide a valid CPF or CNPJ",
    )


def _cnpj_check_digit(digits: str) -> int:
    # Weights cycle 2..9 from the rightmost digit
    total = 0
    weight = 2
    for char in reversed(digits):
        total += int(char) * weight
        weight = 2 if weight == 9 else weight + 1
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_cnpj(value: str | None) -> bool:
    """
    Validate a CNPJ using its two mod-11 check digits.

    Example:
        >>> is_valid_cnpj("11.222.333/0001-81")
        True
    """
    digits = only_digits(value)
    if len(digits) != CNPJ_LENGTH or len(set(digits)) == 1:
        return False
    first = _cnpj_check_digit(digits[:12])
    second = _cnpj_check_digit(digits[:12] + str(first))
    return digits[12:] == f"{first}{second}"


def is_valid_uuid(value: str | None) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


def normalize_price_input(value) -> float:
    """
    Convert a user-entered price to a float.

    Accepts numbers and strings in Brazilian ("1.234,56") or plain ("1234.56")
    notation.

    Raises:
        ValueError: If the value cannot be parsed or is negative
    """
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        number = Decimal(str(value))
    else:
        text = str(value or "").strip().replace("R$", "").replace(" ", "")
        if not text:
            raise ValueError("Price is required")
        if "," in text:
            # Brazilian notation: dots group thousands, comma is the decimal mark
            text = text.replace(".", "").replace(",", ".")
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Invalid price: {value}")
    if number < 0:
        raise ValueError("Price must be greater than or equal to zero")
    return float(round(number, 2))


def format_phone(value: str | None) -> str | None:
    """Format a Brazilian phone number as (dd) ddddd-dddd or (dd) dddd-dddd."""
    digits = only_digits(value)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return digits or None


def parse_date_input(value, field: str = "date") -> date | None:
    """
    Parse a YYYY-MM-DD value (longer ISO strings are truncated).

    Empty strings and None yield None.

    Raises:
        HTTPException 400: If the value is not a valid date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field}: {value}",
        )


def parse_sold_at(value) -> datetime | None:
    """
    Parse a sale timestamp.

    A bare date (YYYY-MM-DD) is read as noon UTC of that day so it stays on
    the same calendar day in Brazilian time zones.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    try:
        if len(text) == 10:
            parsed = datetime.fromisoformat(f"{text}T12:00:00")
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid sold_at: {value}",
        )
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
