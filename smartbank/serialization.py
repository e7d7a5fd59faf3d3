"""
Line Serialization

Records are stored one per line. Entity files separate fields with
FIELD_DELIMITER; the ledger and session logs use LOG_DELIMITER.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List

FIELD_DELIMITER = " || "
LOG_DELIMITER = "#//#"

# Written where a field does not apply (no counterparty, no duration yet)
PLACEHOLDER = "-"

TIME_FORMAT = "%I:%M:%S %p"

# Balances and rates carry exactly this many decimal places
FIXED_PLACES = Decimal("0.000001")


def join_fields(values: Iterable[str], delimiter: str = FIELD_DELIMITER) -> str:
    """Join field values into one line, rejecting values that would break it"""
    values = [str(v) for v in values]
    for value in values:
        if delimiter in value or "\n" in value or "\r" in value:
            raise ValueError(f"Field value {value!r} cannot be stored on one line")
    line = delimiter.join(values)
    if values and split_line(line, delimiter) != values:
        raise ValueError(f"Field values {values!r} would not split back from {line!r}")
    return line


def split_line(line: str, delimiter: str = FIELD_DELIMITER) -> List[str]:
    """Split a stored line back into its field values"""
    return line.rstrip("\r\n").split(delimiter)


def parse_decimal(value: str) -> Decimal:
    """Parse a stored number into a Decimal"""
    try:
        return Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def to_fixed(value) -> Decimal:
    """
    Convert a number to a finite Decimal with six decimal places.

    Raises:
        ValueError: If value is not a number, or is NaN or infinite
    """
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    if not number.is_finite():
        raise ValueError(f"Amount must be finite, got {number}")
    try:
        return number.quantize(FIXED_PLACES)
    except InvalidOperation:
        raise ValueError(f"Amount {number} is too large to store")


def format_fixed(value: Decimal) -> str:
    """Six-decimal fixed notation used for balances and rates (500.000000)"""
    return f"{Decimal(value):.6f}"


def format_amount(value: Decimal) -> str:
    """Shortest plain notation used in the logs (500, 300.5)"""
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def format_date(moment: datetime) -> str:
    """D/M/YYYY without zero padding"""
    return f"{moment.day}/{moment.month}/{moment.year}"


def format_time(moment: datetime) -> str:
    """12-hour clock with AM/PM suffix (01:30:45 PM)"""
    return moment.strftime(TIME_FORMAT)
