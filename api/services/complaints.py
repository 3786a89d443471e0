# SPDX-License-Identifier: Apache-2.0

"""
Complaint service orchestrating domain transitions, persistence and
notification dispatch.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from opentelemetry import trace
from pymongo.errors import DuplicateKeyError

from domain.assignment import resolve_institution
from domain.authorization import (
    can_submit_complaint, can_list_own_complaints,
    can_list_institution_complaints, can_view_forwarding_history, enforce
)
from domain.deadlines import URGENCY_THRESHOLD_DAYS, build_urgency
from domain.errors import ComplaintNotFound, ConcurrentModificationError
from domain.forwarding import apply_forwarding, order_history
from domain.lifecycle import apply_deadline_update, apply_status_update, open_complaint
from models.base import utc_now
from models.entities import Actor, Complaint, DistrictDepartment, ForwardingRecord, User
from models.enums import ComplaintSort
from models.requests import SubmitComplaintRequest
from .notifications import NotificationDispatcher, NotificationStatus
from .repositories import (
    ComplaintRepository, DepartmentRepository,
    ForwardingRecordRepository, UserRepository
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_TRACKING_ATTEMPTS = 3


@dataclass
class ComplaintView:
    """Complaint with the display names of related parties."""
    complaint: Complaint
    citizen_name: Optional[str] = None
    institution_name: Optional[str] = None
    department_name: Optional[str] = None
    urgency: Optional[Dict[str, Any]] = None


@dataclass
class ComplaintOutcome:
    """Result of a complaint mutation."""
    complaint: Complaint
    notification_status: NotificationStatus = field(default_factory=NotificationStatus)
    institution: Optional[User] = None


@dataclass
class ForwardingOutcome:
    record: ForwardingRecord
    complaint: Complaint
    department: DistrictDepartment
    notification_status: NotificationStatus = field(default_factory=NotificationStatus)


@dataclass
class HistoryEntry:
    record: ForwardingRecord
    institution_name: Optional[str] = None
    department_name: Optional[str] = None


class ComplaintService:
    """Entry point for every complaint lifecycle operation."""

    def __init__(
        self,
        complaints: ComplaintRepository,
        forwarding_records: ForwardingRecordRepository,
        departments: DepartmentRepository,
        users: UserRepository,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now
    ):
        self.complaints = complaints
        self.forwarding_records = forwarding_records
        self.departments = departments
        self.users = users
        self.dispatcher = dispatcher
        self.clock = clock

    # Intake

    def submit(self, actor: Actor, request: SubmitComplaintRequest) -> ComplaintOutcome:
        """
        Take in a complaint, assign it and notify the citizen.

        Raises:
            AuthorizationError: If the actor is not a citizen
            NoInstitutionAvailable: If no institution covers the province
            ConcurrentModificationError: If no unique tracking number could be allocated
        """
        enforce(can_submit_complaint(actor))

        with tracer.start_as_current_span("complaints.submit") as span:
            institution = resolve_institution(
                request.category,
                request.province,
                request.district,
                district_lookup=lambda: self.users.find_institution(request.province, request.district),
                province_lookup=lambda: self.users.find_institution_in_province(request.province)
            )
            span.set_attribute("complaint.institution_id", institution.id)

            result = None
            for attempt in range(1, MAX_TRACKING_ATTEMPTS + 1):
                result = open_complaint(
                    citizen=actor,
                    institution=institution,
                    title=request.title,
                    description=request.description,
                    category=request.category,
                    province=request.province,
                    district=request.district,
                    now=self.clock()
                )
                try:
                    self.complaints.create(result.complaint)
                    break
                except DuplicateKeyError:
                    logger.warning(
                        "Tracking number collision, regenerating",
                        extra={
                            "extra_fields": {
                                "tracking_number": result.complaint.tracking_number,
                                "attempt": attempt
                            }
                        }
                    )
            else:
                raise ConcurrentModificationError("Could not allocate a unique tracking number")

            complaint = result.complaint
            span.set_attribute("complaint.id", complaint.id)
            logger.info(
                "Complaint submitted",
                extra={
                    "extra_fields": {
                        "complaint_id": complaint.id,
                        "tracking_number": complaint.tracking_number,
                        "category": complaint.category,
                        "institution_id": institution.id
                    }
                }
            )

        status = self.dispatcher.dispatch_all(result.notifications)
        return ComplaintOutcome(complaint=complaint, notification_status=status, institution=institution)

    # Queries

    def track(self, tracking_number: str) -> ComplaintView:
        complaint = self.complaints.find_by_tracking_number(tracking_number)
        if complaint is None:
            raise ComplaintNotFound("Complaint not found")
        return self._describe([complaint])[0]

    def list_mine(self, actor: Actor) -> List[ComplaintView]:
        """Citizens see what they submitted; institutions see what they were assigned."""
        enforce(can_list_own_complaints(actor))

        if actor.is_citizen():
            complaints = self.complaints.find_for_citizen(actor.user_id)
        else:
            complaints = self.complaints.find_for_institution(actor.user_id, sort_by=ComplaintSort.NEWEST)
        return self._describe(complaints)

    def institution_queue(
        self,
        actor: Actor,
        status: Optional[str] = None,
        deadline_approaching: bool = False,
        sort_by: ComplaintSort = ComplaintSort.DEADLINE
    ) -> List[ComplaintView]:
        """
        Work queue of an institution with urgency fields.

        Args:
            actor: Institution
            status: 'unresolved' hides resolved complaints
            deadline_approaching: Only complaints due within the urgency threshold
            sort_by: deadline, oldest or newest
        """
        enforce(can_list_institution_complaints(actor))
        now = self.clock()

        complaints = self.complaints.find_for_institution(
            actor.user_id,
            unresolved_only=(status == "unresolved"),
            deadline_within_days=URGENCY_THRESHOLD_DAYS if deadline_approaching else None,
            sort_by=sort_by,
            now=now
        )

        views = self._describe(complaints)
        for view in views:
            view.urgency = build_urgency(view.complaint, now)
        return views

    def forwarding_history(self, actor: Actor, complaint_id: str) -> List[HistoryEntry]:
        complaint = self.complaints.find_by_id(complaint_id)
        enforce(can_view_forwarding_history(actor, complaint))

        records = order_history(complaint, actor, self.forwarding_records.find_for_complaint(complaint_id))
        institutions = self.users.find_by_ids([r.from_institution_id for r in records])
        departments = self.departments.find_by_ids([r.to_department_id for r in records])

        return [
            HistoryEntry(
                record=record,
                institution_name=_display_name(institutions.get(record.from_institution_id)),
                department_name=_display_name(departments.get(record.to_department_id))
            )
            for record in records
        ]

    # Mutations

    def update_status(
        self,
        actor: Actor,
        complaint_id: str,
        status: str,
        new_deadline: Optional[datetime] = None
    ) -> ComplaintOutcome:
        """
        Change a complaint's status and optionally its deadline.

        Raises:
            AuthorizationError: If the actor is not an institution
            ComplaintNotFound: If the complaint is missing or owned by another institution
            ValidationError: If the new deadline is not in the future
            ConcurrentModificationError: If the complaint changed concurrently
        """
        with tracer.start_as_current_span("complaints.update_status") as span:
            span.set_attribute("complaint.id", complaint_id)
            complaint = self.complaints.find_by_id(complaint_id)

            result = apply_status_update(
                complaint,
                actor,
                status,
                new_deadline=new_deadline,
                citizen_channels=self._citizen_channels(complaint),
                now=self.clock()
            )
            stored = self.complaints.update(result.complaint, complaint.version)

            logger.info(
                "Complaint status updated",
                extra={
                    "extra_fields": {
                        "complaint_id": complaint_id,
                        "status": stored.status,
                        "changes": sorted(result.changes)
                    }
                }
            )

        status_result = self.dispatcher.dispatch_all(result.notifications)
        return ComplaintOutcome(complaint=stored, notification_status=status_result)

    def update_deadline(self, actor: Actor, complaint_id: str, new_deadline: datetime) -> ComplaintOutcome:
        with tracer.start_as_current_span("complaints.update_deadline") as span:
            span.set_attribute("complaint.id", complaint_id)
            complaint = self.complaints.find_by_id(complaint_id)

            result = apply_deadline_update(
                complaint,
                actor,
                new_deadline,
                citizen_channels=self._citizen_channels(complaint),
                now=self.clock()
            )
            stored = self.complaints.update(result.complaint, complaint.version)

            logger.info(
                "Complaint deadline updated",
                extra={
                    "extra_fields": {
                        "complaint_id": complaint_id,
                        "resolution_deadline": stored.resolution_deadline.isoformat()
                    }
                }
            )

        status_result = self.dispatcher.dispatch_all(result.notifications)
        return ComplaintOutcome(complaint=stored, notification_status=status_result)

    def forward(self, actor: Actor, complaint_id: str, department_id: str, note: str = "") -> ForwardingOutcome:
        """
        Forward a complaint to a district department.

        The forwarding record and the complaint update are stored together:
        if the complaint update fails, the record is removed again.

        Raises:
            ComplaintNotFound: Complaint missing or not owned by the actor
            DepartmentNotFound: Unknown department
            CrossDistrictForwarding: Department serves another district
            ConcurrentModificationError: If the complaint changed concurrently
        """
        with tracer.start_as_current_span("complaints.forward") as span:
            span.set_attributes({"complaint.id": complaint_id, "department.id": department_id})

            complaint = self.complaints.find_by_id(complaint_id)
            department = self.departments.find_by_id(department_id)
            result = apply_forwarding(complaint, actor, department, note, now=self.clock())

            self.forwarding_records.create(result.record)
            try:
                stored = self.complaints.update(result.complaint, complaint.version)
            except Exception:
                logger.error(
                    "Complaint update failed, removing forwarding record",
                    extra={
                        "extra_fields": {
                            "complaint_id": complaint_id,
                            "record_id": result.record.id
                        }
                    }
                )
                self.forwarding_records.delete(result.record.id)
                raise

            logger.info(
                "Complaint forwarded",
                extra={
                    "extra_fields": {
                        "complaint_id": complaint_id,
                        "department_id": department_id,
                        "record_id": result.record.id
                    }
                }
            )

        status_result = self.dispatcher.dispatch_all([result.notification])
        return ForwardingOutcome(
            record=result.record,
            complaint=stored,
            department=department,
            notification_status=status_result
        )

    # Helpers

    def _citizen_channels(self, complaint: Optional[Complaint]) -> Dict[str, Optional[str]]:
        if complaint is None:
            return {}
        citizen = self.users.find_by_id(complaint.citizen_id)
        return citizen.contact_channels() if citizen else {}

    def _describe(self, complaints: List[Complaint]) -> List[ComplaintView]:
        user_ids = [c.citizen_id for c in complaints] + [c.institution_id for c in complaints]
        users = self.users.find_by_ids(user_ids)
        departments = self.departments.find_by_ids(
            [c.assigned_department_id for c in complaints if c.is_forwarded()]
        )

        views = []
        for complaint in complaints:
            institution_name = _display_name(users.get(complaint.institution_id))
            if complaint.is_forwarded():
                department_name = _display_name(departments.get(complaint.assigned_department_id))
            else:
                department_name = institution_name

            views.append(ComplaintView(
                complaint=complaint,
                citizen_name=_display_name(users.get(complaint.citizen_id)),
                institution_name=institution_name,
                department_name=department_name
            ))
        return views


def _display_name(entity) -> Optional[str]:
    if entity is None:
        return None
    return getattr(entity, "display_name", None) or entity.name
