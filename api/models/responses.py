# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class NotificationStatusResponse(BaseModel):
    """Outcome of best-effort notification dispatch."""

    success: bool = Field(..., description="Whether every notification was delivered to the broker")
    pending: Optional[List[str]] = Field(None, description="Events still being dispatched")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Per-event failures")


class ComplaintResponse(BaseModel):
    """Complaint response model."""

    id: str = Field(..., description="Complaint ID")
    trackingNumber: str = Field(..., description="Tracking number")
    title: str = Field(..., description="Title")
    description: str = Field(..., description="Description")
    category: str = Field(..., description="Category")
    province: str = Field(..., description="Province")
    district: str = Field(..., description="District")
    status: str = Field(..., description="Lifecycle status")
    citizenId: str = Field(..., description="Submitting citizen")
    institutionId: str = Field(..., description="Assigned institution")
    assignedDepartmentId: str = Field(..., description="Current handler")
    submissionDate: datetime = Field(..., description="Submission timestamp")
    resolutionDeadline: datetime = Field(..., description="Resolution deadline")
    resolutionDate: Optional[datetime] = Field(None, description="Resolution timestamp")
    assignedTo: Optional[str] = Field(None, description="Assigned institution name")
    notificationStatus: Optional[NotificationStatusResponse] = Field(None, description="Notification outcome")


class ForwardingRecordResponse(BaseModel):
    """Forwarding record response model."""

    id: str = Field(..., description="Record ID")
    complaintId: str = Field(..., description="Complaint ID")
    fromInstitutionId: str = Field(..., description="Forwarding institution")
    toDepartmentId: str = Field(..., description="Receiving department")
    forwardingNote: str = Field(..., description="Note")
    forwardedAt: datetime = Field(..., description="Forwarding timestamp")


class InstitutionPerformanceResponse(BaseModel):
    """Per-institution performance metrics."""

    institutionId: str
    institutionName: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    totalComplaints: int
    resolvedComplaints: int
    resolvedOnTime: int
    averageResolutionTime: Optional[float] = None
    resolutionRate: float
    onTimeResolutionRate: float


class SystemStatsResponse(BaseModel):
    """System-wide performance totals."""

    totalComplaints: int
    totalResolved: int
    totalResolvedOnTime: int
    systemResolutionRate: float
    systemOnTimeRate: float


class PerformanceReportResponse(BaseModel):
    """Performance report response model."""

    timeframe: str
    systemStats: SystemStatsResponse
    institutionPerformance: List[InstitutionPerformanceResponse]


class ErrorResponse(BaseModel):
    """RFC 7807 problem details response."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation errors")
