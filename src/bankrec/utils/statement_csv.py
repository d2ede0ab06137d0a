"""Reader for the normalized statement CSV the CLI imports.

The file has one header row with the columns
``Date,Description,Reference,Debit,Credit,Balance``. Header matching is
case-insensitive; Reference and Balance may be left out entirely.
"""

import csv
from datetime import date
from pathlib import Path
from typing import Optional

from bankrec.domain.entities import RawStatementLine, ZERO
from bankrec.domain.errors import ValidationError
from bankrec.utils.amount_parser import parse_optional_amount
from bankrec.utils.date_parser import parse_date

REQUIRED_COLUMNS = ("date", "description", "debit", "credit")
OPTIONAL_COLUMNS = ("reference", "balance")


def _sniff_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
    except csv.Error:
        return ","


def read_statement_csv(csv_file_path: str, dayfirst: bool = False) -> list[RawStatementLine]:
    """Read every line of a statement CSV in file order.

    The whole file is rejected on the first malformed row so that a
    statement is never created from partial data.

    Args:
        csv_file_path: Path to the CSV file
        dayfirst: Parse numeric dates as day/month/year

    Returns:
        Raw lines ready for import

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If a required column is missing or a row is malformed
    """
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

    lines: list[RawStatementLine] = []
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(2048)
        f.seek(0)
        reader = csv.DictReader(f, delimiter=_sniff_delimiter(sample))

        if reader.fieldnames is None:
            raise ValidationError("CSV file has no columns")
        columns = {name.strip().lower(): name for name in reader.fieldnames if name}
        missing = [col for col in REQUIRED_COLUMNS if col not in columns]
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

        for row_num, row in enumerate(reader, start=2):
            values = {
                key: (row.get(original) or "").strip()
                for key, original in columns.items()
                if key in REQUIRED_COLUMNS + OPTIONAL_COLUMNS
            }
            if not any(values.values()):
                continue
            try:
                lines.append(_to_raw_line(values, dayfirst))
            except ValueError as e:
                raise ValidationError(f"Row {row_num}: {e}") from e

    return lines


def _to_raw_line(values: dict[str, str], dayfirst: bool) -> RawStatementLine:
    if not values.get("date"):
        raise ValueError("Missing date")
    line_date = parse_date(values["date"], dayfirst=dayfirst)
    debit = parse_optional_amount(values.get("debit")) or ZERO
    credit = parse_optional_amount(values.get("credit")) or ZERO
    # Some banks print debits with a minus sign
    if debit < 0:
        debit = -debit
    return RawStatementLine(
        line_date=line_date,
        description=values.get("description", ""),
        debit=debit,
        credit=credit,
        reference=values.get("reference") or None,
        balance=parse_optional_amount(values.get("balance")),
    )


def statement_period(lines: list[RawStatementLine]) -> Optional[tuple[date, date]]:
    """Earliest and latest line date, or None for an empty list."""
    if not lines:
        return None
    dates = [line.line_date for line in lines]
    return min(dates), max(dates)
