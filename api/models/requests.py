# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from .enums import ComplaintCategory, ComplaintStatus, ComplaintSort, PerformanceTimeframe


class SubmitComplaintRequest(BaseModel):
    """Request model for submitting a complaint."""

    title: str = Field(..., min_length=1, max_length=200, description="Complaint title")
    description: str = Field(..., min_length=1, max_length=5000, description="Complaint description")
    category: ComplaintCategory = Field(..., description="Complaint category")
    province: str = Field(..., min_length=1, max_length=100, description="Province")
    district: str = Field(..., min_length=1, max_length=100, description="District")

    @field_validator('title', 'description', 'province', 'district')
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be blank')
        return v.strip()


class UpdateStatusRequest(BaseModel):
    """Request model for updating complaint status."""

    status: ComplaintStatus = Field(..., description="New status")
    resolution_deadline: Optional[datetime] = Field(
        None, alias="resolutionDeadline", description="Optional new deadline"
    )

    model_config = {"populate_by_name": True}


class UpdateDeadlineRequest(BaseModel):
    """Request model for updating a complaint deadline."""

    new_deadline: datetime = Field(..., alias="newDeadline", description="New resolution deadline")

    model_config = {"populate_by_name": True}


class ForwardComplaintRequest(BaseModel):
    """Request model for forwarding a complaint to a district department."""

    department_id: str = Field(..., min_length=1, alias="departmentId", description="Target department ID")
    forwarding_note: str = Field(
        "", max_length=2000, alias="forwardingNote", description="Note for the receiving department"
    )

    model_config = {"populate_by_name": True}


class ComplaintPath(BaseModel):
    """Path parameters identifying a complaint."""

    complaint_id: str = Field(..., description="Complaint ID")


class TrackingPath(BaseModel):
    """Path parameters identifying a complaint by tracking number."""

    tracking_number: str = Field(..., description="Complaint tracking number")


class InstitutionQueueQuery(BaseModel):
    """Query parameters for the institution complaint queue."""

    status: Optional[str] = Field(None, description="'unresolved' to hide resolved complaints")
    deadline_approaching: bool = Field(
        False, alias="deadlineApproaching", description="Only complaints due within two days"
    )
    sort_by: ComplaintSort = Field(ComplaintSort.DEADLINE, alias="sortBy", description="Sort order")

    model_config = {"populate_by_name": True}


class PerformanceQuery(BaseModel):
    """Query parameters for the performance report."""

    timeframe: PerformanceTimeframe = Field(
        PerformanceTimeframe.ALL_TIME, description="Reporting window"
    )
