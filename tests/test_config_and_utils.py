"""Tests for settings, date parsing and amount parsing."""

from datetime import date
from decimal import Decimal

import pytest

from sortit.config import DEFAULT_SETTINGS, default_database_path, load_settings
from sortit.domain.errors import ValidationError
from sortit.utils.amount_parser import parse_amount
from sortit.utils.date_parser import get_date_range, parse_date

TODAY = date(2024, 3, 15)


def test_default_settings():
    assert load_settings({}) == DEFAULT_SETTINGS
    assert DEFAULT_SETTINGS.transfer_window_days == 3
    assert DEFAULT_SETTINGS.split_tolerance == Decimal("0.01")


def test_settings_from_environment():
    settings = load_settings(
        {
            "SORTIT_TRANSFER_WINDOW_DAYS": "5",
            "SORTIT_REIMBURSEMENT_TOLERANCE": "0.2",
            "SORTIT_RULE_CONFIDENCE": "0.9",
        }
    )

    assert settings.transfer_window_days == 5
    assert settings.reimbursement_tolerance == Decimal("0.2")
    assert settings.rule_confidence == 0.9


@pytest.mark.parametrize(
    "environ",
    [
        {"SORTIT_PREVIEW_LIMIT": "many"},
        {"SORTIT_PREVIEW_LIMIT": "0"},
        {"SORTIT_TRANSFER_WINDOW_DAYS": "-1"},
    ],
)
def test_invalid_settings(environ):
    with pytest.raises(ValidationError):
        load_settings(environ)


def test_database_path_from_environment():
    assert default_database_path({"SORTIT_DB_PATH": "/tmp/x.db"}) == "/tmp/x.db"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("2024-01-15", date(2024, 1, 15)),
        ("Jan 15 2024", date(2024, 1, 15)),
        ("today", TODAY),
        ("yesterday", date(2024, 3, 14)),
        ("3 days ago", date(2024, 3, 12)),
        ("this month", date(2024, 3, 1)),
        ("last month", date(2024, 2, 1)),
        ("next year", date(2025, 1, 1)),
        ("last week", date(2024, 3, 4)),
    ],
)
def test_parse_date(text, expected):
    assert parse_date(text, today=TODAY) == expected


def test_parse_date_invalid():
    with pytest.raises(ValueError):
        parse_date("not a date")


@pytest.mark.parametrize(
    "period,expected",
    [
        ("this-month", (date(2024, 3, 1), TODAY)),
        ("last-month", (date(2024, 2, 1), date(2024, 2, 29))),
        ("last-year", (date(2023, 1, 1), date(2023, 12, 31))),
        ("this-week", (date(2024, 3, 11), TODAY)),
    ],
)
def test_get_date_range(period, expected):
    assert get_date_range(period, today=TODAY) == expected


def test_get_date_range_unknown():
    with pytest.raises(ValueError):
        get_date_range("next-decade")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("12.5", Decimal("12.50")),
        ("-$1,234.56", Decimal("-1234.56")),
        ("(45.00)", Decimal("-45.00")),
        ("€ 3", Decimal("3.00")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "NaN"])
def test_parse_amount_invalid(text):
    with pytest.raises(ValueError):
        parse_amount(text)
