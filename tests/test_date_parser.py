"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from bankrec.utils.date_parser import month_range, parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    result = parse_date("2024-01-15")
    assert result == date(2024, 1, 15)


def test_parse_today():
    """Test parsing 'today'."""
    result = parse_date("today")
    assert result == date.today()


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    result = parse_date(" Yesterday ")
    assert result == date.today() - timedelta(days=1)


def test_parse_this_month():
    """Test parsing 'this month'."""
    result = parse_date("this month")
    assert result == date.today().replace(day=1)


def test_parse_last_month():
    """Test parsing 'last month'."""
    result = parse_date("last month")
    expected = (date.today() - relativedelta(months=1)).replace(day=1)
    assert result == expected


def test_dayfirst():
    """Numeric dates follow the dayfirst flag."""
    assert parse_date("03/04/2024") == date(2024, 3, 4)
    assert parse_date("03/04/2024", dayfirst=True) == date(2024, 4, 3)


@pytest.mark.parametrize("text", ["", "   ", "not a date", "2024-13-45"])
def test_invalid_dates(text):
    with pytest.raises(ValueError):
        parse_date(text)


def test_month_range():
    assert month_range("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_range(" 2023-12 ") == (date(2023, 12, 1), date(2023, 12, 31))


@pytest.mark.parametrize("text", ["2024", "2024-13", "march", "2024-03-01"])
def test_month_range_invalid(text):
    with pytest.raises(ValueError, match="YYYY-MM"):
        month_range(text)
