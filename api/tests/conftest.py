# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

Repositories are replaced by in-memory fakes with the same interface, so no
MongoDB, broker or cache is needed to run the suite.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import Mock
from pymongo.errors import DuplicateKeyError

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'ijwi_test'

from domain.errors import ConcurrentModificationError
from domain.lifecycle import generate_tracking_number
from models.entities import Actor, Complaint, DistrictDepartment, User
from models.enums import ComplaintStatus, UserRole
from services.amqp import PublishResult
from services.complaints import ComplaintService
from services.notifications import NotificationDispatcher

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeRepository:
    """In-memory stand-in for MongoRepository."""

    def __init__(self, items: Optional[List] = None):
        self.items: Dict[str, object] = {}
        for item in items or []:
            self.items[item.id] = item

    def create(self, entity):
        self.items[entity.id] = entity
        return entity

    def find_by_id(self, entity_id):
        return self.items.get(entity_id)

    def find_by_ids(self, entity_ids):
        return {i: self.items[i] for i in set(entity_ids) if i in self.items}


class FakeComplaintRepository(FakeRepository):

    def __init__(self, items=None):
        super().__init__(items)
        self.fail_next_update = False

    def create(self, complaint: Complaint):
        if any(c.tracking_number == complaint.tracking_number for c in self.items.values()):
            raise DuplicateKeyError("duplicate trackingNumber")
        return super().create(complaint)

    def find_by_tracking_number(self, tracking_number):
        return next((c for c in self.items.values() if c.tracking_number == tracking_number), None)

    def update(self, complaint: Complaint, expected_version: int) -> Complaint:
        current = self.items.get(complaint.id)
        if self.fail_next_update or current is None or current.version != expected_version:
            self.fail_next_update = False
            raise ConcurrentModificationError()
        stored = complaint.model_copy(update={"version": expected_version + 1})
        self.items[complaint.id] = stored
        return stored

    def find_for_citizen(self, citizen_id):
        found = [c for c in self.items.values() if c.citizen_id == citizen_id]
        return sorted(found, key=lambda c: c.submission_date, reverse=True)

    def find_for_institution(self, institution_id, unresolved_only=False,
                             deadline_within_days=None, sort_by="newest", now=None):
        found = [c for c in self.items.values() if c.institution_id == institution_id]
        if unresolved_only or deadline_within_days is not None:
            found = [c for c in found if c.status != ComplaintStatus.RESOLVED.value]
        if deadline_within_days is not None:
            end = now + timedelta(days=deadline_within_days)
            found = [c for c in found if now <= c.resolution_deadline <= end]

        sort_key = getattr(sort_by, "value", sort_by)
        if sort_key == "deadline":
            return sorted(found, key=lambda c: c.resolution_deadline)
        return sorted(found, key=lambda c: c.submission_date, reverse=(sort_key == "newest"))

    def find_submitted_since(self, start=None):
        return [c for c in self.items.values() if start is None or c.submission_date >= start]


class FakeForwardingRecordRepository(FakeRepository):

    def delete(self, record_id):
        return self.items.pop(record_id, None) is not None

    def find_for_complaint(self, complaint_id):
        found = [r for r in self.items.values() if r.complaint_id == complaint_id]
        return sorted(found, key=lambda r: r.forwarded_at, reverse=True)


class FakeDepartmentRepository(FakeRepository):

    def find_by_district(self, district, province=None):
        return [d for d in self.items.values() if d.district == district]


class FakeUserRepository(FakeRepository):

    def _institutions(self):
        return sorted(
            (u for u in self.items.values() if u.role == UserRole.INSTITUTION.value),
            key=lambda u: u.id
        )

    def find_institution(self, province, district):
        return next((u for u in self._institutions()
                     if u.province == province and u.district == district), None)

    def find_institution_in_province(self, province):
        return next((u for u in self._institutions() if u.province == province), None)

    def list_institutions(self):
        return self._institutions()


def actor_for(user: User) -> Actor:
    """Actor as it would be built from the user's access token."""
    return Actor(
        user_id=user.id,
        role=user.role,
        email=user.email,
        phone=user.phone,
        name=user.display_name
    )


def make_complaint(citizen: User, institution: User, **overrides) -> Complaint:
    """Complaint assigned to an institution, submitted at NOW unless overridden."""
    data = {
        "tracking_number": generate_tracking_number(NOW),
        "title": "Burst water pipe",
        "description": "Water has been leaking onto the road for two days",
        "category": "WATER",
        "province": institution.province or "Kigali",
        "district": institution.district or "Gasabo",
        "citizen_id": citizen.id,
        "institution_id": institution.id,
        "assigned_department_id": institution.id,
        "status": ComplaintStatus.PENDING,
        "submission_date": NOW,
        "resolution_deadline": NOW + timedelta(days=3),
    }
    data.update(overrides)
    return Complaint(**data)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def citizen():
    return User(role=UserRole.CITIZEN, name="Aline Uwase", email="aline@example.com", phone="+250780000001")


@pytest.fixture
def other_citizen():
    return User(role=UserRole.CITIZEN, name="Eric Mugisha", email="eric@example.com")


@pytest.fixture
def institution():
    return User(
        role=UserRole.INSTITUTION,
        name="Gasabo District",
        institution_name="Gasabo District Office",
        email="gasabo@example.com",
        province="Kigali",
        district="Gasabo"
    )


@pytest.fixture
def province_institution():
    return User(
        role=UserRole.INSTITUTION,
        name="Southern Province Office",
        institution_name="Southern Province Office",
        email="south@example.com",
        province="Southern"
    )


@pytest.fixture
def other_institution():
    return User(
        role=UserRole.INSTITUTION,
        name="Nyarugenge District",
        institution_name="Nyarugenge District Office",
        email="nyarugenge@example.com",
        province="Kigali",
        district="Nyarugenge"
    )


@pytest.fixture
def admin():
    return User(role=UserRole.ADMIN, name="Platform Admin", email="admin@example.com")


@pytest.fixture
def department():
    return DistrictDepartment(
        name="Gasabo Water Department",
        province="Kigali",
        district="Gasabo",
        email="water.gasabo@example.com"
    )


@pytest.fixture
def remote_department():
    return DistrictDepartment(
        name="Huye Water Department",
        province="Southern",
        district="Huye",
        email="water.huye@example.com"
    )


@pytest.fixture
def users(citizen, other_citizen, institution, province_institution, other_institution, admin):
    return FakeUserRepository([citizen, other_citizen, institution, province_institution, other_institution, admin])


@pytest.fixture
def departments(department, remote_department):
    return FakeDepartmentRepository([department, remote_department])


@pytest.fixture
def complaints():
    return FakeComplaintRepository()


@pytest.fixture
def forwarding_records():
    return FakeForwardingRecordRepository()


@pytest.fixture
def amqp_service():
    """AMQP service mock that accepts every publish."""
    service = Mock()
    service.publish_event.side_effect = lambda event, body, correlation_id=None: PublishResult(
        success=True,
        correlation_id="00000000-0000-0000-0000-000000000000",
        exchange="complaints.notifications",
        routing_key=f"notification.{event}"
    )
    return service


@pytest.fixture
def dispatcher(amqp_service):
    dispatcher = NotificationDispatcher(amqp_service, max_workers=2, timeout=5.0)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def complaint_service(complaints, forwarding_records, departments, users, dispatcher, clock):
    return ComplaintService(complaints, forwarding_records, departments, users, dispatcher, clock=clock)
