# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Typed repositories over MongoDB collections.

Each repository converts between snake_case entity fields and the camelCase
keys stored in MongoDB, and returns entities or None for a missing document.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from opentelemetry import trace
from pydantic.alias_generators import to_camel, to_snake

from domain.errors import ConcurrentModificationError
from models.base import BaseEntity, utc_now
from models.entities import Complaint, DistrictDepartment, ForwardingRecord, User
from models.enums import ComplaintSort, ComplaintStatus, UserRole
from .mongodb import (
    MongoDBService, ASCENDING, DESCENDING,
    COMPLAINTS, FORWARDING_RECORDS, DISTRICT_DEPARTMENTS, USERS
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

EntityT = TypeVar("EntityT", bound=BaseEntity)

QUEUE_SORTS = {
    ComplaintSort.DEADLINE.value: [("resolutionDeadline", ASCENDING)],
    ComplaintSort.OLDEST.value: [("submissionDate", ASCENDING)],
    ComplaintSort.NEWEST.value: [("submissionDate", DESCENDING)],
}


class MongoRepository(Generic[EntityT]):
    """Base repository mapping one collection to one entity type."""

    collection: str
    entity: Type[EntityT]

    def __init__(self, mongodb: MongoDBService):
        self.mongodb = mongodb

    def to_document(self, entity: EntityT) -> Dict[str, Any]:
        return {to_camel(key): value for key, value in entity.model_dump().items()}

    def to_entity(self, document: Optional[Dict[str, Any]]) -> Optional[EntityT]:
        if document is None:
            return None
        return self.entity.model_validate({to_snake(key): value for key, value in document.items()})

    def _many(self, documents: List[Dict[str, Any]]) -> List[EntityT]:
        return [self.to_entity(doc) for doc in documents]

    def find_by_id(self, entity_id: str) -> Optional[EntityT]:
        return self.to_entity(self.mongodb.find_by_id(self.collection, entity_id))

    def find_by_ids(self, entity_ids: List[str]) -> Dict[str, EntityT]:
        """Load several entities at once, keyed by ID."""
        object_ids = [oid for oid in map(self.mongodb.to_object_id, set(entity_ids)) if oid is not None]
        if not object_ids:
            return {}
        documents = self.mongodb.find(self.collection, {"_id": {"$in": object_ids}})
        return {entity.id: entity for entity in self._many(documents)}

    def create(self, entity: EntityT) -> EntityT:
        """Insert an entity. DuplicateKeyError propagates to the caller."""
        with tracer.start_as_current_span(f"repository.{self.collection}.create") as span:
            span.set_attribute("entity.id", entity.id)
            self.mongodb.insert(self.collection, self.to_document(entity))
            return entity


class ComplaintRepository(MongoRepository[Complaint]):
    collection = COMPLAINTS
    entity = Complaint

    def find_by_tracking_number(self, tracking_number: str) -> Optional[Complaint]:
        return self.to_entity(self.mongodb.find_one(self.collection, {"trackingNumber": tracking_number}))

    def update(self, complaint: Complaint, expected_version: int) -> Complaint:
        """
        Persist a complaint if nobody changed it since it was read.

        Args:
            complaint: New complaint state
            expected_version: Version the caller read

        Returns:
            The stored complaint with its version incremented

        Raises:
            ConcurrentModificationError: If the stored version differs
        """
        with tracer.start_as_current_span("repository.complaints.update") as span:
            span.set_attribute("complaint.id", complaint.id)
            span.set_attribute("complaint.version", expected_version)

            stored = complaint.model_copy(update={"version": expected_version + 1})
            document = self.to_document(stored)
            document.pop("id")

            object_id = self.mongodb.to_object_id(complaint.id)
            matched = self.mongodb.update_one(
                self.collection,
                {"_id": object_id, "version": expected_version},
                document
            )

            if not matched:
                logger.warning(
                    "Complaint version conflict",
                    extra={
                        "extra_fields": {
                            "complaint_id": complaint.id,
                            "expected_version": expected_version
                        }
                    }
                )
                raise ConcurrentModificationError()

            return stored

    def find_for_citizen(self, citizen_id: str) -> List[Complaint]:
        """Complaints submitted by a citizen, newest first."""
        return self._many(self.mongodb.find(
            self.collection,
            {"citizenId": citizen_id},
            sort=[("submissionDate", DESCENDING)]
        ))

    def find_for_institution(
        self,
        institution_id: str,
        unresolved_only: bool = False,
        deadline_within_days: Optional[int] = None,
        sort_by: Union[ComplaintSort, str] = ComplaintSort.NEWEST,
        now: Optional[datetime] = None
    ) -> List[Complaint]:
        """
        Complaints assigned to an institution.

        Args:
            institution_id: Assigned institution
            unresolved_only: Exclude RESOLVED complaints
            deadline_within_days: Only unresolved complaints whose deadline
                falls between now and now plus this many days
            sort_by: deadline (soonest first), oldest or newest
            now: Reference time for the deadline window
        """
        query: Dict[str, Any] = {"institutionId": institution_id}

        if unresolved_only or deadline_within_days is not None:
            query["status"] = {"$ne": ComplaintStatus.RESOLVED.value}

        if deadline_within_days is not None:
            now = now or utc_now()
            query["resolutionDeadline"] = {
                "$gte": now,
                "$lte": now + timedelta(days=deadline_within_days)
            }

        sort_key = getattr(sort_by, "value", sort_by)
        sort = QUEUE_SORTS.get(sort_key, QUEUE_SORTS[ComplaintSort.NEWEST.value])
        return self._many(self.mongodb.find(self.collection, query, sort=sort))

    def find_submitted_since(self, start: Optional[datetime] = None) -> List[Complaint]:
        """Complaints submitted at or after start; all complaints when start is None."""
        query = {"submissionDate": {"$gte": start}} if start is not None else {}
        return self._many(self.mongodb.find(self.collection, query))


class ForwardingRecordRepository(MongoRepository[ForwardingRecord]):
    collection = FORWARDING_RECORDS
    entity = ForwardingRecord

    def delete(self, record_id: str) -> bool:
        """Remove a record whose complaint update failed."""
        return self.mongodb.delete_by_id(self.collection, record_id)

    def find_for_complaint(self, complaint_id: str) -> List[ForwardingRecord]:
        return self._many(self.mongodb.find(
            self.collection,
            {"complaintId": complaint_id},
            sort=[("forwardedAt", DESCENDING)]
        ))


class DepartmentRepository(MongoRepository[DistrictDepartment]):
    collection = DISTRICT_DEPARTMENTS
    entity = DistrictDepartment

    def find_by_district(self, district: str, province: Optional[str] = None) -> List[DistrictDepartment]:
        query = {"district": district}
        if province:
            query["province"] = province
        return self._many(self.mongodb.find(self.collection, query, sort=[("name", ASCENDING)]))


class UserRepository(MongoRepository[User]):
    collection = USERS
    entity = User

    def find_institution(self, province: str, district: str) -> Optional[User]:
        """Institution scoped to the exact (province, district) pair."""
        return self.to_entity(self.mongodb.find_one(
            self.collection,
            {"role": UserRole.INSTITUTION.value, "province": province, "district": district},
            sort=[("_id", ASCENDING)]
        ))

    def find_institution_in_province(self, province: str) -> Optional[User]:
        """Any institution scoped to the province."""
        return self.to_entity(self.mongodb.find_one(
            self.collection,
            {"role": UserRole.INSTITUTION.value, "province": province},
            sort=[("_id", ASCENDING)]
        ))

    def list_institutions(self) -> List[User]:
        return self._many(self.mongodb.find(
            self.collection,
            {"role": UserRole.INSTITUTION.value},
            sort=[("institutionName", ASCENDING)]
        ))
