# storefront/utils/license_keys.py
"""
License serials: TND-XXXX-XXXX-XXXX (upper-case hex), plus plan limits and
expiration durations.
"""

from __future__ import annotations

import calendar
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, NamedTuple, Optional

SERIAL_RE = re.compile(r"^TND-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{4}$")

UNLIMITED = 999999


class PlanLimits(NamedTuple):
    max_products: Optional[int]
    max_orders: Optional[int]


PLAN_LIMITS: Dict[str, PlanLimits] = {
    "trial": PlanLimits(5, 10),
    "free": PlanLimits(10, 50),
    "starter": PlanLimits(50, 100),
    "pro": PlanLimits(2000, None),
    "enterprise": PlanLimits(None, None),
}

_DURATION_MONTHS = {"1month": 1, "3months": 3, "6months": 6, "1year": 12}

EXPIRATION_DURATIONS = ("1week", "1month", "3months", "6months", "1year", "lifetime")


def generate_serial() -> str:
    return "TND-" + "-".join(secrets.token_hex(2).upper() for _ in range(3))


def validate_serial(serial: str) -> bool:
    return bool(SERIAL_RE.match(serial or ""))


def plan_limits(plan: str) -> PlanLimits:
    return PLAN_LIMITS.get(plan, PLAN_LIMITS["free"])


def _add_months(dt: datetime, months: int) -> datetime:
    # clamp to the last day of the target month (Jan 31 + 1 month -> Feb 28/29)
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def expiration_date(duration: str, *, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    '1week' | '1month' | '3months' | '6months' | '1year' -> aware datetime.
    'lifetime' and unknown durations -> None (never expires).
    """
    base = now or datetime.now(timezone.utc)
    if duration == "1week":
        return base + timedelta(days=7)
    months = _DURATION_MONTHS.get(duration)
    if months is None:
        return None
    return _add_months(base, months)
