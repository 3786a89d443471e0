# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Ijwi complaint routing platform.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity, ensure_utc, utc_now
from .enums import ComplaintStatus, ComplaintCategory, UserRole


class User(BaseEntity):
    """Platform user: citizen, institution, district officer or administrator."""

    role: UserRole = Field(..., description="User role")
    name: str = Field(..., min_length=1, max_length=200, description="Full name or display name")
    institution_name: Optional[str] = Field(None, max_length=200, description="Institution name (institutions only)")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")
    province: Optional[str] = Field(None, description="Province the user is scoped to")
    district: Optional[str] = Field(None, description="District the user is scoped to")
    categories: List[str] = Field(
        default_factory=list,
        description="Categories an institution declares it handles (not used for routing)"
    )

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if v is None:
            return v
        import re
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('User name cannot be empty')
        return v.strip()

    @property
    def display_name(self) -> str:
        """Institution name for institutions, personal name otherwise."""
        if self.role == UserRole.INSTITUTION and self.institution_name:
            return self.institution_name
        return self.name

    def contact_channels(self) -> dict:
        return {"email": self.email, "phone": self.phone}


class DistrictDepartment(BaseEntity):
    """Department scoped to exactly one district."""

    name: str = Field(..., min_length=1, max_length=200, description="Department name")
    province: Optional[str] = Field(None, description="Province of the district")
    district: str = Field(..., min_length=1, description="District the department serves")
    email: Optional[str] = Field(None, description="Notification email")
    phone: Optional[str] = Field(None, description="Notification phone")

    def contact_channels(self) -> dict:
        return {"email": self.email, "phone": self.phone}


class Complaint(BaseEntity):
    """Citizen complaint routed to a handling institution."""

    tracking_number: str = Field(..., min_length=1, description="Citizen-facing tracking number")
    title: str = Field(..., min_length=1, max_length=200, description="Complaint title")
    description: str = Field(..., min_length=1, max_length=5000, description="Complaint description")
    category: str = Field(..., description="Complaint category")
    province: str = Field(..., min_length=1, description="Province of the complaint")
    district: str = Field(..., min_length=1, description="District of the complaint")
    citizen_id: str = Field(..., description="Citizen who submitted the complaint")
    institution_id: str = Field(..., description="Institution the complaint is assigned to")
    assigned_department_id: str = Field(..., description="Current internal handler")
    status: ComplaintStatus = Field(default=ComplaintStatus.PENDING, description="Lifecycle status")
    submission_date: datetime = Field(default_factory=utc_now, description="Submission timestamp")
    resolution_deadline: datetime = Field(..., description="SLA deadline")
    resolution_date: Optional[datetime] = Field(None, description="Resolution timestamp")
    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")

    @field_validator('title', 'description')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()

    @field_validator('submission_date', 'resolution_deadline', 'resolution_date')
    @classmethod
    def validate_dates(cls, v):
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_resolution_fields(self):
        """resolution_date is present if and only if the complaint is resolved."""
        if self.status == ComplaintStatus.RESOLVED and self.resolution_date is None:
            raise ValueError('resolution_date is required when status is RESOLVED')
        if self.status != ComplaintStatus.RESOLVED and self.resolution_date is not None:
            raise ValueError('resolution_date must be empty unless status is RESOLVED')
        return self

    def is_resolved(self) -> bool:
        return self.status == ComplaintStatus.RESOLVED

    def is_forwarded(self) -> bool:
        return self.assigned_department_id != self.institution_id

    def resolved_on_time(self) -> bool:
        """Resolved no later than the deadline."""
        return self.is_resolved() and self.resolution_date <= self.resolution_deadline


class ForwardingRecord(BaseEntity):
    """Append-only audit of one escalation to a district department."""

    model_config = ConfigDict(frozen=True)

    complaint_id: str = Field(..., description="Forwarded complaint")
    from_institution_id: str = Field(..., description="Institution that forwarded")
    to_department_id: str = Field(..., description="Receiving district department")
    forwarding_note: str = Field(default="", max_length=2000, description="Free-text note")
    forwarded_at: datetime = Field(default_factory=utc_now, description="Forwarding timestamp")

    @field_validator('forwarded_at')
    @classmethod
    def validate_forwarded_at(cls, v):
        return ensure_utc(v)


class Actor(BaseModel):
    """Authenticated caller with role and ownership capabilities."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: UserRole = Field(..., description="Caller role")
    email: Optional[str] = Field(None, description="Caller email")
    phone: Optional[str] = Field(None, description="Caller phone")
    name: Optional[str] = Field(None, description="Caller display name")

    model_config = ConfigDict(
        use_enum_values=True
    )

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

    def is_citizen(self) -> bool:
        return self.role == UserRole.CITIZEN

    def is_institution(self) -> bool:
        return self.role == UserRole.INSTITUTION

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns_assignment(self, complaint: Complaint) -> bool:
        """Caller is the institution the complaint was assigned to at intake."""
        return self.is_institution() and complaint.institution_id == self.user_id

    def owns_submission(self, complaint: Complaint) -> bool:
        """Caller is the citizen who submitted the complaint."""
        return complaint.citizen_id == self.user_id

    def contact_channels(self) -> dict:
        return {"email": self.email, "phone": self.phone}
