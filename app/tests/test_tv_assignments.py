"""
Unit tests for TV account naming and profile labelling.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.core.tv_assignments import TVAssignmentService, account_sort_key, label_assignments


def test_build_account_email_ranges():
    assert TVAssignmentService.build_account_email(0) == "1a8@nexusrs.com.br"
    assert TVAssignmentService.build_account_email(1) == "9a16@nexusrs.com.br"
    assert TVAssignmentService.build_account_email(124) == "993a1000@nexusrs.com.br"


def test_parse_email_index():
    assert TVAssignmentService.parse_email_index("1a8@nexusrs.com.br") == 0
    assert TVAssignmentService.parse_email_index("17a24@nexusrs.com.br") == 2
    assert TVAssignmentService.parse_email_index("cliente@gmail.com") is None
    assert TVAssignmentService.parse_email_index("0a7@nexusrs.com.br") is None
    assert TVAssignmentService.parse_email_index(None) is None


def test_is_standard_email_requires_domain():
    assert TVAssignmentService.is_standard_email("9A16@NEXUSRS.COM.BR")
    assert not TVAssignmentService.is_standard_email("9a16@gmail.com")
    assert not TVAssignmentService.is_standard_email("familia@nexusrs.com.br")
    assert not TVAssignmentService.is_standard_email("")


def test_account_sort_key_orders_standard_first():
    emails = ["zeca@example.com", "17a24@nexusrs.com.br", "Ana@example.com", "1a8@nexusrs.com.br", "9a16@nexusrs.com.br"]

    ordered = sorted(emails, key=account_sort_key)

    assert ordered == [
        "1a8@nexusrs.com.br",
        "9a16@nexusrs.com.br",
        "17a24@nexusrs.com.br",
        "Ana@example.com",
        "zeca@example.com",
    ]


def test_label_assignments_orders_by_email_and_slot():
    """
    Profiles are numbered after sorting by account email, then slot number,
    and each history list ends up newest first.
    """
    # Setup
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    older = SimpleNamespace(created_at=now - timedelta(days=2))
    newer = SimpleNamespace(created_at=now)
    items = [
        SimpleNamespace(email="9a16@nexusrs.com.br", slot_number=1, history=[], profile_label=None),
        SimpleNamespace(email="1a8@nexusrs.com.br", slot_number=5, history=[older, newer], profile_label=None),
        SimpleNamespace(email="1a8@nexusrs.com.br", slot_number=2, history=[], profile_label=None),
    ]

    # Execute
    label_assignments(items)

    # Assert
    assert [(item.email, item.slot_number, item.profile_label) for item in items] == [
        ("1a8@nexusrs.com.br", 2, "Perfil 1"),
        ("1a8@nexusrs.com.br", 5, "Perfil 2"),
        ("9a16@nexusrs.com.br", 1, "Perfil 3"),
    ]
    assert items[1].history == [newer, older]
