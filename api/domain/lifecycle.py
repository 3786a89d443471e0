# SPDX-License-Identifier: Apache-2.0

"""
Complaint lifecycle domain logic.

This module contains pure transition functions for a single complaint:
intake, status updates and deadline updates. Transitions never mutate their
input; they return a LifecycleResult holding the new complaint, the
notifications to dispatch once the change is persisted, and a summary of
the changed fields.
"""

import logging
import secrets
from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime

from models.base import utc_now, ensure_utc
from models.entities import Complaint, User, Actor
from models.enums import ComplaintStatus, ComplaintCategory, NotificationEvent
from .authorization import can_manage_complaint, enforce
from .deadlines import compute_deadline, is_deadline_in_future
from .errors import ValidationError

logger = logging.getLogger(__name__)

TRACKING_PREFIX = "CMP"


@dataclass
class NotificationRequest:
    """A notification to send after a lifecycle change is committed."""
    event: NotificationEvent
    channels: Dict[str, Optional[str]]
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LifecycleResult:
    """Result of a lifecycle transition."""
    complaint: Complaint
    notifications: List[NotificationRequest] = field(default_factory=list)
    changes: Dict[str, Any] = field(default_factory=dict)


def generate_tracking_number(now: Optional[datetime] = None) -> str:
    """
    Generate a citizen-facing tracking number.

    Format is CMP-YYYYMMDD-XXXXXX with six uppercase hex digits. Uniqueness is
    enforced by the storage index; callers retry on collision.
    """
    now = ensure_utc(now) if now else utc_now()
    return f"{TRACKING_PREFIX}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def rebuild_complaint(complaint: Complaint, updates: Dict[str, Any], now: datetime) -> Complaint:
    # Rebuild so the resolution invariant is validated across all fields at once
    data = complaint.model_dump()
    data.update(updates)
    data["updated_at"] = now
    return Complaint.model_validate(data)


def open_complaint(
    *,
    citizen: Actor,
    institution: User,
    title: str,
    description: str,
    category: Union[ComplaintCategory, str],
    province: str,
    district: str,
    tracking_number: Optional[str] = None,
    now: Optional[datetime] = None
) -> LifecycleResult:
    """
    Build a new PENDING complaint assigned to the given institution.

    Args:
        citizen: Submitting citizen
        institution: Institution chosen by the assignment resolver
        title: Complaint title
        description: Complaint description
        category: Complaint category
        province: Province of the complaint
        district: District of the complaint
        tracking_number: Pre-generated tracking number (generated if omitted)
        now: Intake instant

    Returns:
        LifecycleResult with the complaint and a SUBMITTED notification
    """
    now = ensure_utc(now) if now else utc_now()
    category_value = getattr(category, "value", category)

    complaint = Complaint(
        tracking_number=tracking_number or generate_tracking_number(now),
        title=title,
        description=description,
        category=category_value,
        province=province,
        district=district,
        citizen_id=citizen.user_id,
        institution_id=institution.id,
        assigned_department_id=institution.id,
        status=ComplaintStatus.PENDING,
        submission_date=now,
        resolution_deadline=compute_deadline(category_value, now),
        created_at=now,
        updated_at=now
    )

    notification = NotificationRequest(
        event=NotificationEvent.SUBMITTED,
        channels=citizen.contact_channels(),
        payload={
            "complaintId": complaint.id,
            "trackingNumber": complaint.tracking_number
        }
    )

    return LifecycleResult(
        complaint=complaint,
        notifications=[notification],
        changes={"status": ComplaintStatus.PENDING.value}
    )


def apply_status_update(
    complaint: Complaint,
    actor: Actor,
    new_status: Union[ComplaintStatus, str],
    new_deadline: Optional[datetime] = None,
    citizen_channels: Optional[Dict[str, Optional[str]]] = None,
    now: Optional[datetime] = None
) -> LifecycleResult:
    """
    Change a complaint's status, optionally moving its deadline too.

    A transition into RESOLVED stamps the resolution date. Resolving an
    already resolved complaint keeps the original stamp but still sends the
    RESOLVED notification. Moving away from RESOLVED clears the stamp.

    Raises:
        AuthorizationError: If the actor is not an institution
        ComplaintNotFound: If the actor does not own the complaint
        ValidationError: If the new deadline is not in the future
    """
    enforce(can_manage_complaint(actor, complaint))

    now = ensure_utc(now) if now else utc_now()
    status = ComplaintStatus(getattr(new_status, "value", new_status))
    channels = citizen_channels or {}

    if new_deadline is not None and not is_deadline_in_future(new_deadline, now):
        raise ValidationError(
            "Resolution deadline must be in the future",
            validation_errors=[{"field": "resolutionDeadline", "message": "must be in the future"}]
        )

    updates: Dict[str, Any] = {"status": status}
    notifications: List[NotificationRequest] = []

    if status == ComplaintStatus.RESOLVED:
        if complaint.resolution_date is None:
            updates["resolution_date"] = now
        else:
            logger.info(
                "Complaint already resolved, keeping resolution date",
                extra={"extra_fields": {"complaint_id": complaint.id}}
            )
        notifications.append(NotificationRequest(
            event=NotificationEvent.RESOLVED,
            channels=channels,
            payload={
                "complaintId": complaint.id,
                "trackingNumber": complaint.tracking_number
            }
        ))
    else:
        updates["resolution_date"] = None

    if new_deadline is not None:
        updates["resolution_deadline"] = ensure_utc(new_deadline)
        notifications.append(NotificationRequest(
            event=NotificationEvent.DEADLINE_SET,
            channels=channels,
            payload={
                "complaintId": complaint.id,
                "trackingNumber": complaint.tracking_number,
                "deadline": ensure_utc(new_deadline).isoformat()
            }
        ))

    updated = rebuild_complaint(complaint, updates, now)
    changes = {
        key: getattr(updated, key)
        for key in updates
        if getattr(updated, key) != getattr(complaint, key)
    }

    return LifecycleResult(complaint=updated, notifications=notifications, changes=changes)


def apply_deadline_update(
    complaint: Complaint,
    actor: Actor,
    new_deadline: datetime,
    citizen_channels: Optional[Dict[str, Optional[str]]] = None,
    now: Optional[datetime] = None
) -> LifecycleResult:
    """
    Move a complaint's resolution deadline.

    Raises:
        AuthorizationError: If the actor is not an institution
        ComplaintNotFound: If the actor does not own the complaint
        ValidationError: If the deadline is not strictly after now
    """
    enforce(can_manage_complaint(actor, complaint))

    now = ensure_utc(now) if now else utc_now()
    if not is_deadline_in_future(new_deadline, now):
        raise ValidationError(
            "New deadline must be in the future",
            validation_errors=[{"field": "newDeadline", "message": "must be in the future"}]
        )

    deadline = ensure_utc(new_deadline)
    updated = rebuild_complaint(complaint, {"resolution_deadline": deadline}, now)

    notification = NotificationRequest(
        event=NotificationEvent.DEADLINE_SET,
        channels=citizen_channels or {},
        payload={
            "complaintId": complaint.id,
            "trackingNumber": complaint.tracking_number,
            "deadline": deadline.isoformat()
        }
    )

    return LifecycleResult(
        complaint=updated,
        notifications=[notification],
        changes={"resolution_deadline": deadline}
    )
