# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Ijwi complaint routing platform.
"""

from enum import Enum


class ComplaintStatus(str, Enum):
    """Complaint lifecycle status enumeration."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


class ComplaintCategory(str, Enum):
    """Complaint categories accepted at intake."""
    WATER = "WATER"
    ELECTRICITY = "ELECTRICITY"
    PUBLIC_SAFETY = "PUBLIC_SAFETY"
    ROADS = "ROADS"
    SANITATION = "SANITATION"
    HEALTH = "HEALTH"
    EDUCATION = "EDUCATION"
    ENVIRONMENT = "ENVIRONMENT"
    TRANSPORT = "TRANSPORT"
    OTHER = "OTHER"


class UserRole(str, Enum):
    """Roles carried by authenticated actors."""
    CITIZEN = "CITIZEN"
    INSTITUTION = "INSTITUTION"
    DISTRICT = "DISTRICT"
    ADMIN = "ADMIN"


class NotificationEvent(str, Enum):
    """Notification event kinds published on lifecycle changes."""
    SUBMITTED = "SUBMITTED"
    RESOLVED = "RESOLVED"
    DEADLINE_SET = "DEADLINE_SET"
    COMPLAINT_FORWARDED = "COMPLAINT_FORWARDED"


class PerformanceTimeframe(str, Enum):
    """Reporting windows for performance aggregation."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all-time"


class ComplaintSort(str, Enum):
    """Sort orders for the institution complaint queue."""
    DEADLINE = "deadline"
    OLDEST = "oldest"
    NEWEST = "newest"
