"""Utility functions for bankrec."""

from bankrec.utils.date_parser import parse_date
from bankrec.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_amount"]
