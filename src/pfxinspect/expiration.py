"""
Expiration arithmetic for certificate records.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_WARNING_DAYS = 30  # Certificates expiring within this window need attention


class ExpirationStatus(str, Enum):
    """Expiration state of a certificate relative to a reference day."""

    VALID = "valid"
    WARNING = "warning"
    EXPIRED = "expired"


def _utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def days_remaining(expiration: datetime, today: Optional[date] = None) -> int:
    """
    Whole calendar days from ``today`` until ``expiration``.

    Both sides are compared as UTC dates, so a certificate that expires later
    today has 0 days remaining and one that expired yesterday has -1.

    Args:
        expiration: Certificate notAfter
        today: Reference day (defaults to the current UTC date)

    Returns:
        Signed number of days
    """
    if today is None:
        today = datetime.now(timezone.utc).date()
    return (_utc_date(expiration) - today).days


def certificate_status(
    expiration: datetime,
    today: Optional[date] = None,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> ExpirationStatus:
    """Classify a certificate as valid, warning (expiring soon) or expired."""
    days = days_remaining(expiration, today)
    if days < 0:
        return ExpirationStatus.EXPIRED
    if days <= warning_days:
        return ExpirationStatus.WARNING
    return ExpirationStatus.VALID
