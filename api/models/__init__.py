# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Ijwi platform.
"""

# Base models
from .base import BaseEntity, generate_object_id, utc_now, ensure_utc

# Enumerations
from .enums import (
    ComplaintStatus,
    ComplaintCategory,
    UserRole,
    NotificationEvent,
    PerformanceTimeframe,
    ComplaintSort
)

# Core entities
from .entities import (
    User,
    DistrictDepartment,
    Complaint,
    ForwardingRecord,
    Actor
)

# Request models
from .requests import (
    SubmitComplaintRequest,
    UpdateStatusRequest,
    UpdateDeadlineRequest,
    ForwardComplaintRequest,
    ComplaintPath,
    TrackingPath,
    InstitutionQueueQuery,
    PerformanceQuery
)

# Response models
from .responses import (
    HalLink,
    NotificationStatusResponse,
    ComplaintResponse,
    ForwardingRecordResponse,
    InstitutionPerformanceResponse,
    SystemStatsResponse,
    PerformanceReportResponse,
    ErrorResponse
)

__all__ = [
    # Base models
    "BaseEntity",
    "generate_object_id",
    "utc_now",
    "ensure_utc",

    # Enumerations
    "ComplaintStatus",
    "ComplaintCategory",
    "UserRole",
    "NotificationEvent",
    "PerformanceTimeframe",
    "ComplaintSort",

    # Core entities
    "User",
    "DistrictDepartment",
    "Complaint",
    "ForwardingRecord",
    "Actor",

    # Request models
    "SubmitComplaintRequest",
    "UpdateStatusRequest",
    "UpdateDeadlineRequest",
    "ForwardComplaintRequest",
    "ComplaintPath",
    "TrackingPath",
    "InstitutionQueueQuery",
    "PerformanceQuery",

    # Response models
    "HalLink",
    "NotificationStatusResponse",
    "ComplaintResponse",
    "ForwardingRecordResponse",
    "InstitutionPerformanceResponse",
    "SystemStatsResponse",
    "PerformanceReportResponse",
    "ErrorResponse"
]
