# SPDX-License-Identifier: Apache-2.0

"""
Forwarding domain logic.

Validates escalation of a complaint from its institution to a district
department and computes the resulting record and complaint state.
"""

import logging
from typing import List, Optional
from dataclasses import dataclass
from datetime import datetime

from models.base import utc_now, ensure_utc
from models.entities import Actor, Complaint, DistrictDepartment, ForwardingRecord
from models.enums import ComplaintStatus, NotificationEvent
from .authorization import can_forward_complaint, can_view_forwarding_history, enforce
from .errors import DepartmentNotFound, CrossDistrictForwarding
from .lifecycle import NotificationRequest, rebuild_complaint

logger = logging.getLogger(__name__)


@dataclass
class ForwardingResult:
    """Result of a forwarding operation."""
    record: ForwardingRecord
    complaint: Complaint
    notification: NotificationRequest


def validate_forwarding(
    complaint: Optional[Complaint],
    actor: Actor,
    department: Optional[DistrictDepartment]
) -> None:
    """
    Check forwarding preconditions in order.

    Raises:
        ComplaintNotFound: Complaint missing or not owned by the actor
        DepartmentNotFound: Target department missing
        CrossDistrictForwarding: Department serves another district
    """
    enforce(can_forward_complaint(actor, complaint))

    if department is None:
        raise DepartmentNotFound()

    if department.district != complaint.district:
        raise CrossDistrictForwarding()


def apply_forwarding(
    complaint: Complaint,
    actor: Actor,
    department: DistrictDepartment,
    note: str = "",
    now: Optional[datetime] = None
) -> ForwardingResult:
    """
    Forward a complaint to a district department.

    The complaint is always moved to IN_PROGRESS, including when it was
    already resolved. In that case the resolution date is cleared.

    Args:
        complaint: Complaint being forwarded
        actor: Owning institution
        department: Receiving district department
        note: Free-text forwarding note
        now: Forwarding instant

    Returns:
        ForwardingResult with the new record, updated complaint and the
        notification for the department
    """
    validate_forwarding(complaint, actor, department)
    now = ensure_utc(now) if now else utc_now()
    note = note or ""

    if complaint.status == ComplaintStatus.RESOLVED:
        logger.warning(
            "Forwarding a resolved complaint reopens it",
            extra={
                "extra_fields": {
                    "complaint_id": complaint.id,
                    "department_id": department.id,
                    "resolution_date": complaint.resolution_date.isoformat()
                }
            }
        )

    record = ForwardingRecord(
        complaint_id=complaint.id,
        from_institution_id=actor.user_id,
        to_department_id=department.id,
        forwarding_note=note,
        forwarded_at=now,
        created_at=now,
        updated_at=now
    )

    updated = rebuild_complaint(complaint, {
        "assigned_department_id": department.id,
        "status": ComplaintStatus.IN_PROGRESS,
        "resolution_date": None
    }, now)

    notification = NotificationRequest(
        event=NotificationEvent.COMPLAINT_FORWARDED,
        channels=department.contact_channels(),
        payload={
            "departmentName": department.name,
            "complaintId": complaint.id,
            "trackingNumber": complaint.tracking_number,
            "title": complaint.title,
            "note": note
        }
    )

    return ForwardingResult(record=record, complaint=updated, notification=notification)


def order_history(
    complaint: Optional[Complaint],
    actor: Actor,
    records: List[ForwardingRecord]
) -> List[ForwardingRecord]:
    """
    Return a complaint's forwarding history newest first.

    Raises:
        ComplaintNotFound: If the actor is neither the owning institution nor
            the submitting citizen
    """
    enforce(can_view_forwarding_history(actor, complaint))
    return sorted(records, key=lambda r: r.forwarded_at, reverse=True)
