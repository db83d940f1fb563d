"""
Raw query/body values -> typed, nullable values.

Rules shared by every handler:
- None or "" -> None (absent but optional).
- Non-numeric text for a number -> ValidationError(INVALID_NUMBER).
- Integers truncate a fractional input ("12.7" -> 12).
- Booleans pass through untouched; the body model rejects anything else.
- Dates/timestamps that cannot be parsed -> ValidationError (400), never a silent None.
"""
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from planilla.exceptions import ValidationError

# At most 19 integer digits, the width of BIGINT; checked before int() expands the value
MAX_ADJUSTED_EXPONENT = 18


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", kind=ValidationError.INVALID_NUMBER, field=field)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", kind=ValidationError.INVALID_NUMBER, field=field)
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number", kind=ValidationError.INVALID_NUMBER, field=field)
    if number.adjusted() > MAX_ADJUSTED_EXPONENT:
        raise ValidationError(f"{field} is out of range", kind=ValidationError.INVALID_NUMBER, field=field)
    return number


def to_int(value: Any, field: str) -> Optional[int]:
    if _is_blank(value):
        return None
    return int(_to_decimal(value, field))


def to_decimal(value: Any, field: str) -> Optional[Decimal]:
    if _is_blank(value):
        return None
    return _to_decimal(value, field)


def to_whole(value: Optional[Decimal]) -> Optional[int]:
    """Round a NUMERIC value half-up for an INT routine parameter."""
    if value is None:
        return None
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_date(value: Any, field: str) -> Optional[date]:
    """
    Calendar date at day precision (YYYY-MM-DD); accepts a date or a full ISO timestamp.
    A timestamp with an offset is taken at its UTC date.
    """
    if _is_blank(value):
        return None
    parsed = _parse_datetime(value)
    if parsed is None:
        raise ValidationError(
            f"{field} must be a valid date (YYYY-MM-DD)",
            kind=ValidationError.INVALID_DATE,
            field=field,
        )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def to_timestamp(value: Any, field: str, status_code: int = 400) -> datetime:
    """
    Required timestamp. The zone designator is dropped without conversion, as a
    TIMESTAMP (without time zone) column does with an ISO literal.
    """
    parsed = None if _is_blank(value) else _parse_datetime(value)
    if parsed is None:
        raise ValidationError(
            f"{field} must be a valid timestamp",
            kind=ValidationError.INVALID_TIMESTAMP,
            field=field,
            status_code=status_code,
        )
    return parsed.replace(tzinfo=None)


def to_id_list(value: Any, field: str) -> List[int]:
    if not isinstance(value, (list, tuple)) or len(value) == 0:
        raise ValidationError(
            f"{field} must be a non-empty list",
            kind=ValidationError.MISSING_REQUIRED,
            field=field,
        )
    ids = []
    for item in value:
        number = to_int(item, field)
        if number is None:
            raise ValidationError(
                f"{field} must not contain empty values",
                kind=ValidationError.MISSING_REQUIRED,
                field=field,
            )
        ids.append(number)
    return ids


def require_id(value: Optional[int], message: str, field: Optional[str] = None) -> int:
    """Identifiers are required and never 0."""
    if not value:
        raise ValidationError(message, kind=ValidationError.MISSING_REQUIRED, field=field)
    return value
