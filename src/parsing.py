"""Member sheet (CSV / Excel upload template) parsing and date handling."""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
import re

import pandas as pd

from models import MemberRecord


class SheetError(ValueError):
    """Raised when a member sheet cannot be read at all."""


# Upload template header -> MemberRecord field
SHEET_COLUMNS = {
    "Unique ID": "id",
    "Picture Link": "portrait_url",
    "Gender": "gender",
    "First Name": "first_name",
    "Last Name": "last_name",
    "Fathers' First Name": "father_first_name",
    "Fathers' Last Name": "father_last_name",
    "Mothers' First Name": "mother_first_name",
    "Mothers' Last Name": "mother_last_name",
    "Order of Birth": "birth_order",
    "Order of Marriage": "marriage_order",
    "Marital Status": "marital_status",
    "Spouses' First Name": "spouse_first_name",
    "Spouses' Last Name": "spouse_last_name",
    "Date of Birth": "birth_date",
}

VALID_GENDERS = {"male", "female", "other", "m", "f"}

MONTH_MAP = {
    "JAN": 1,
    "JANUARY": 1,
    "FEB": 2,
    "FEBRUARY": 2,
    "MAR": 3,
    "MARCH": 3,
    "APR": 4,
    "APRIL": 4,
    "MAY": 5,
    "JUN": 6,
    "JUNE": 6,
    "JUL": 7,
    "JULY": 7,
    "AUG": 8,
    "AUGUST": 8,
    "SEP": 9,
    "SEPT": 9,
    "SEPTEMBER": 9,
    "OCT": 10,
    "OCTOBER": 10,
    "NOV": 11,
    "NOVEMBER": 11,
    "DEC": 12,
    "DECEMBER": 12,
}


@dataclass(frozen=True)
class RowError:
    row: int  # 1-based data row, header excluded
    field: str
    message: str


def _iso(year: int, month: int | None, day: int) -> str | None:
    """ISO string for a real calendar date, None otherwise (e.g. Feb 30, month 0)."""
    if month is None:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _month(name: str) -> int | None:
    return MONTH_MAP.get(name.upper().rstrip("."))


def parse_date_string(date_str: str | None) -> str | None:
    """
    Parse a date of birth into ISO format (YYYY-MM-DD).
    Returns None if the date cannot be parsed.

    Handles formats like:
    - "1954-11-25" (and "1954-11-25T00:00:00" from spreadsheets)
    - "25 NOV 1954", "25 November 1954"
    - "NOV 1954", "May, 1837"
    - "1698"
    - "11/25/1954", "11-25-1954" (month first)
    - "November 25, 1954"
    """
    if not date_str:
        return None

    s = str(date_str).strip().strip("()").rstrip("?").strip()
    s = re.sub(r"^(ABT\.?|ABOUT|CIRCA|CA\.?|AROUND):?\s*", "", s, flags=re.IGNORECASE)
    if not s:
        return None

    match = re.match(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ][\d:.]+)?$", s)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _iso(year, month, day)

    match = re.match(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s*(\d{4})$", s)
    if match:
        return _iso(int(match.group(3)), _month(match.group(2)), int(match.group(1)))

    match = re.match(r"^([A-Za-z]+)\.?,?\s*(\d{4})$", s)
    if match:
        return _iso(int(match.group(2)), _month(match.group(1)), 1)

    match = re.match(r"^(\d{4})$", s)
    if match:
        return _iso(int(match.group(1)), 1, 1)

    match = re.match(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$", s)
    if match:
        return _iso(int(match.group(3)), int(match.group(1)), int(match.group(2)))

    match = re.match(r"^([A-Za-z]+)\.?\s*(\d{1,2}),?\s*(\d{4})$", s)
    if match:
        return _iso(int(match.group(3)), _month(match.group(1)), int(match.group(2)))

    return None


def parse_order(value) -> int | None:
    """Order of birth/marriage: blank or unparseable -> None, '2.0' -> 2."""
    s = str(value).strip() if value is not None else ""
    if not s:
        return None
    try:
        return int(float(s))
    except ValueError:
        return None


def read_member_sheet(path: Path) -> pd.DataFrame:
    """Read a CSV or Excel member sheet into a DataFrame of strings."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".csv", ".xlsx", ".xls"):
        raise SheetError(f"Unsupported sheet type '{suffix}'; use .csv, .xlsx or .xls")

    try:
        if suffix == ".csv":
            df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
        else:
            df = pd.read_excel(path, dtype=str)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise SheetError(f"Cannot read member sheet {path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    return df.fillna("")


def validate_rows(df: pd.DataFrame) -> list[RowError]:
    """
    Check each row of a member sheet.

    Only the Unique ID is required; a date of birth or gender, when present,
    must be valid.
    """
    errors: list[RowError] = []
    for i, row in enumerate(df.to_dict(orient="records"), start=1):
        if not str(row.get("Unique ID", "")).strip():
            errors.append(RowError(i, "Unique ID", "Unique ID is required"))

        dob = str(row.get("Date of Birth", "")).strip()
        if dob and parse_date_string(dob) is None:
            errors.append(RowError(i, "Date of Birth", "Invalid date format"))

        gender = str(row.get("Gender", "")).strip()
        if gender and gender.lower() not in VALID_GENDERS:
            errors.append(RowError(i, "Gender", "Gender must be Male, Female, Other, M, or F"))
    return errors


def rows_to_records(df: pd.DataFrame) -> list[MemberRecord]:
    """Convert sheet rows to MemberRecords; rows without a Unique ID are skipped."""
    records: list[MemberRecord] = []
    for row in df.to_dict(orient="records"):
        values = {
            field: str(row.get(column, "")).strip() for column, field in SHEET_COLUMNS.items()
        }
        if not values["id"]:
            continue
        values["birth_order"] = parse_order(values["birth_order"])
        values["marriage_order"] = parse_order(values["marriage_order"])
        values["birth_date"] = parse_date_string(values["birth_date"])
        records.append(MemberRecord(**values))
    return records


def load_member_records(path: Path) -> tuple[list[MemberRecord], list[RowError]]:
    """Read, validate and convert a member sheet."""
    df = read_member_sheet(path)
    return rows_to_records(df), validate_rows(df)
