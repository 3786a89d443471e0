# SPDX-License-Identifier: Apache-2.0

"""
Resolution deadline policy and urgency derivation.

Deadlines are whole calendar days added to the intake instant. Urgency is
computed at query time from the current clock and never stored.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from models.base import utc_now, ensure_utc
from models.entities import Complaint
from models.enums import ComplaintCategory, ComplaintStatus

DEFAULT_DEADLINE_DAYS = 14
URGENCY_THRESHOLD_DAYS = 2

DEADLINE_DAYS_BY_CATEGORY = {
    # Urgent utilities
    ComplaintCategory.WATER.value: 3,
    ComplaintCategory.ELECTRICITY.value: 3,
    # Public safety
    ComplaintCategory.PUBLIC_SAFETY.value: 2,
    # Infrastructure
    ComplaintCategory.ROADS.value: 7,
    ComplaintCategory.SANITATION.value: 7,
}

SECONDS_PER_DAY = 24 * 60 * 60


def deadline_days_for(category: Union[ComplaintCategory, str, None]) -> int:
    """Number of days an institution has to resolve a complaint of this category."""
    key = category.value if isinstance(category, ComplaintCategory) else category
    return DEADLINE_DAYS_BY_CATEGORY.get(key, DEFAULT_DEADLINE_DAYS)


def compute_deadline(category: Union[ComplaintCategory, str, None], now: Optional[datetime] = None) -> datetime:
    """
    Compute the resolution deadline for a new complaint.

    Args:
        category: Complaint category; unrecognised values get the default window
        now: Intake instant (defaults to the current time)

    Returns:
        Deadline as a timezone-aware UTC datetime
    """
    now = ensure_utc(now) if now else utc_now()
    return now + timedelta(days=deadline_days_for(category))


def days_until_deadline(deadline: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left until the deadline, rounded up; negative once overdue."""
    now = ensure_utc(now) if now else utc_now()
    remaining = (ensure_utc(deadline) - now).total_seconds()
    return math.ceil(remaining / SECONDS_PER_DAY)


def is_deadline_in_future(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A deadline is acceptable only when strictly after the update time."""
    if deadline is None:
        return False
    now = ensure_utc(now) if now else utc_now()
    return ensure_utc(deadline) > now


def build_urgency(complaint: Complaint, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Derive urgency fields for a complaint.

    Returns:
        Dictionary with daysUntilDeadline and isUrgent
    """
    days = days_until_deadline(complaint.resolution_deadline, now)
    return {
        "daysUntilDeadline": days,
        "isUrgent": days <= URGENCY_THRESHOLD_DAYS and complaint.status != ComplaintStatus.RESOLVED
    }
