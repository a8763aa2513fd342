"""
Numeric and timestamp coercion for stream read models.

Stream rows come from an indexer that may lag or hold partially written
records, so every value is coerced instead of validated: a single bad row
must degrade to zero, never take the dashboard or an alert run down.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce a raw numeric value to a finite Decimal, falling back to zero."""
    if value is None or isinstance(value, bool):
        return ZERO

    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Coercing non-numeric value {value!r} to 0")
        return ZERO

    if not result.is_finite():
        logger.warning(f"Coercing non-finite value {value!r} to 0")
        return ZERO

    return result


def to_amount(value: Any) -> Decimal:
    """Coerce a raw token amount or rate; negative values are clamped to zero."""
    result = to_decimal(value)
    if result < 0:
        logger.warning(f"Clamping negative amount {value!r} to 0")
        return ZERO
    return result


def round_amount(value: Decimal, decimals: int = 6) -> Decimal:
    """Round a token amount half-up to a fixed number of fractional digits."""
    if not value.is_finite():
        return ZERO
    return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime or ISO-8601 string; unparsable input becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(date_parser.isoparse(value))
        except (ValueError, OverflowError):
            logger.warning(f"Failed to parse timestamp {value!r}")
            return None
    logger.warning(f"Unsupported timestamp type {type(value).__name__}")
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
