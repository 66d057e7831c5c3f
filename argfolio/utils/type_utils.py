# argfolio/utils/type_utils.py
from decimal import Decimal, InvalidOperation, Context
from typing import Any, Optional
from datetime import datetime, timezone

from dateutil import parser as dateutil_parser

import argfolio.config as global_config

ZERO = Decimal('0')


def get_calculation_context() -> Context:
    """Decimal context used for every engine calculation."""
    return Context(prec=global_config.INTERNAL_CALCULATION_PRECISION,
                   rounding=global_config.DECIMAL_ROUNDING_MODE)


def safe_decimal(value: Any, default: Optional[Decimal] = None, raise_error: bool = False) -> Optional[Decimal]:
    """
    Safely converts a value to a finite Decimal.
    Handles None, empty strings, strings with commas (as thousands or decimal).
    NaN and Infinity are treated as unparseable: they return default.
    If raise_error is True, re-raises InvalidOperation instead of returning default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, (int, float)): # float conversion goes through str to avoid binary artefacts
        result = Decimal(str(value))
        return result if result.is_finite() else default

    s_value = str(value).strip()
    if not s_value:
        return default

    try:
        # "1,234.56" -> thousands separator; "12,34" -> decimal comma
        if '.' in s_value and ',' in s_value:
            s_value = s_value.replace(',', '')
        elif ',' in s_value and '.' not in s_value:
            s_value = s_value.replace(',', '.')
        result = Decimal(s_value)
    except InvalidOperation as e:
        if raise_error:
            raise e
        return default
    return result if result.is_finite() else default


def decimal_or_zero(value: Optional[Decimal]) -> Decimal:
    """Missing or non-finite numerics degrade to 0."""
    if value is None or not isinstance(value, Decimal) or not value.is_finite():
        return ZERO
    return value


def is_present(value: Optional[Decimal]) -> bool:
    return isinstance(value, Decimal) and value.is_finite()


def positive_or_none(value: Optional[Decimal]) -> Optional[Decimal]:
    if is_present(value) and value > ZERO:
        return value
    return None


def safe_divide(numerator: Decimal, denominator: Optional[Decimal], ctx: Optional[Context] = None) -> Decimal:
    """numerator / denominator, or 0 when the denominator is missing, zero or non-finite."""
    if not is_present(denominator) or denominator == ZERO:
        return ZERO
    ctx = ctx or get_calculation_context()
    return ctx.divide(numerator, denominator)


def parse_movement_datetime(datetime_str: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parses the ISO-8601 timestamp of a movement into an aware datetime.
    Naive timestamps (and date-only strings) are interpreted as UTC.
    Returns default when the string cannot be parsed.
    """
    if not datetime_str or not str(datetime_str).strip():
        return default

    s_datetime_str = str(datetime_str).strip()
    try:
        parsed = datetime.fromisoformat(s_datetime_str.replace('Z', '+00:00'))
    except ValueError:
        try:
            parsed = dateutil_parser.isoparse(s_datetime_str)
        except (ValueError, OverflowError):
            try:
                parsed = dateutil_parser.parse(s_datetime_str)
            except (ValueError, OverflowError, TypeError):
                return default

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
