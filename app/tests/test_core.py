"""
Unit tests for validation, privacy and password helpers, the rate limit
key and database error classification.
"""
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import is_schema_missing, is_unique_violation
from app.core.privacy import REDACTED, mask_email, sanitize_for_logging, sanitize_url
from app.core.rate_limit import get_rate_limit_key
from app.core.security import generate_numeric_password, generate_secure_password
from app.core.validation import (
    document_type,
    format_phone,
    is_valid_cnpj,
    is_valid_uuid,
    normalize_price_input,
    parse_date_input,
    parse_sold_at,
    sanitize_document,
)


# ------------------------------------------------------------------
# VALIDATION
# ------------------------------------------------------------------
def test_sanitize_document():
    assert sanitize_document("529.982.247-25") == "52998224725"
    assert sanitize_document("11.222.333/0001-81") == "11222333000181"
    with pytest.raises(HTTPException) as exc_info:
        sanitize_document("1234")
    assert exc_info.value.status_code == 400


def test_document_type():
    assert document_type("529.982.247-25") == "CPF"
    assert document_type("11222333000181") == "CNPJ"
    assert document_type("123") == "UNKNOWN"


def test_is_valid_cnpj():
    assert is_valid_cnpj("11.222.333/0001-81")
    assert not is_valid_cnpj("11222333000182")
    assert not is_valid_cnpj("11111111111111")
    assert not is_valid_cnpj(None)


def test_is_valid_uuid():
    assert is_valid_uuid("11111111-1111-1111-1111-111111111111")
    assert is_valid_uuid("11111111111111111111111111111111")
    assert not is_valid_uuid("1a8")
    assert not is_valid_uuid("")
    assert not is_valid_uuid(None)


@pytest.mark.parametrize("raw, expected", [
    (10, 10.0),
    ("37,99", 37.99),
    ("1.234,56", 1234.56),
    ("R$ 8,35", 8.35),
    ("1234.5", 1234.5),
])
def test_normalize_price_input(raw, expected):
    assert normalize_price_input(raw) == expected


def test_normalize_price_input_rejects_bad_values():
    for raw in ("", "abc", -1):
        with pytest.raises(ValueError):
            normalize_price_input(raw)


def test_format_phone():
    assert format_phone("51999990000") == "(51) 99999-0000"
    assert format_phone("5133334444") == "(51) 3333-4444"
    assert format_phone("") is None


def test_parse_dates():
    assert parse_date_input("2027-03-01T10:00:00Z").isoformat() == "2027-03-01"
    assert parse_date_input("") is None
    with pytest.raises(HTTPException):
        parse_date_input("01/03/2027", "expires_at")

    sold_at = parse_sold_at("2026-03-10")
    assert sold_at.hour == 12
    assert sold_at.utcoffset().total_seconds() == 0


# ------------------------------------------------------------------
# PRIVACY AND PASSWORDS
# ------------------------------------------------------------------
def test_mask_email():
    assert mask_email("joao.silva@example.com") == "jo***@example.com"
    assert mask_email("ab@example.com") == "a***@example.com"
    assert mask_email(None) == "***"


def test_sanitize_for_logging_redacts_nested_keys():
    data = {"email": "a@b.com", "password": "x", "nested": [{"access_token": "t", "ok": 1}]}

    cleaned = sanitize_for_logging(data)

    assert cleaned == {"email": "a@b.com", "password": REDACTED, "nested": [{"access_token": REDACTED, "ok": 1}]}


def test_sanitize_url():
    url = sanitize_url("/api/v1/clients?search=ana&token=abc")
    assert "abc" not in url
    assert "search=ana" in url
    assert sanitize_url("/api/v1/clients") == "/api/v1/clients"


def test_generated_passwords():
    pin = generate_numeric_password()
    assert len(pin) == 4 and pin.isdigit()

    password = generate_secure_password(12)
    assert len(password) == 12
    assert any(char.isupper() for char in password)
    assert any(char.islower() for char in password)
    assert any(char.isdigit() for char in password)
    with pytest.raises(ValueError):
        generate_secure_password(5)


# ------------------------------------------------------------------
# RATE LIMIT KEY
# ------------------------------------------------------------------
def _request(headers):
    return SimpleNamespace(headers=headers, client=SimpleNamespace(host="10.0.0.1"))


def test_rate_limit_key_uses_forwarded_ip_and_token_suffix():
    token = "header.payload.0123456789abcdefSIGNATURE"
    request = _request({"x-forwarded-for": "200.1.2.3, 10.0.0.1", "authorization": f"Bearer {token}"})

    assert get_rate_limit_key(request) == f"200.1.2.3:{token[-16:]}"


def test_rate_limit_key_without_token():
    assert get_rate_limit_key(_request({"x-real-ip": "200.9.9.9"})) == "200.9.9.9"
    assert get_rate_limit_key(_request({})) == "10.0.0.1"


# ------------------------------------------------------------------
# DATABASE ERRORS
# ------------------------------------------------------------------
class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__("error")
        self.sqlstate = sqlstate


def test_schema_missing_detection():
    assert is_schema_missing(OperationalError("SELECT", {}, _PgError("42P01")))
    assert is_schema_missing(OperationalError("SELECT", {}, Exception("no such table: tv_slots")))
    assert not is_schema_missing(OperationalError("SELECT", {}, Exception("database is locked")))
    assert not is_schema_missing(ValueError("no such table"))


def test_unique_violation_detection():
    assert is_unique_violation(IntegrityError("INSERT", {}, _PgError("23505")))
    assert is_unique_violation(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: clients.document")))
    assert not is_unique_violation(IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed")))


# ------------------------------------------------------------------
# APP
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_health_checks_database(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


@pytest.mark.asyncio
async def test_responses_carry_request_id(client):
    response = await client.get("/", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"
