# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from services.hal import (
    HalLinkBuilder, AffordanceLinkBuilder, HalResponseBuilder, HalFormatter, create_hal_formatter
)
from services.complaints import ComplaintView, HistoryEntry
from models.entities import ForwardingRecord
from models.responses import HalLink
from conftest import NOW, actor_for, make_complaint

BASE_URL = "https://api.example.com"


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/api/complaints/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/complaints/123"
        assert link.method == "GET"
        assert link.type is None
        assert link.templated is None

    def test_build_action_link(self):
        """Test building an action link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_action_link("/api/complaints/123", "forward")

        assert link.href == "https://api.example.com/api/complaints/123/forward"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Forward"

    def test_base_url_normalization(self):
        """Test that base URL is properly normalized."""
        builder = HalLinkBuilder("https://api.example.com/")

        link = builder.build_self_link("/api/test")

        assert link.href == "https://api.example.com/api/test"
        assert link.title == "Self"


class TestAffordanceLinkBuilder:
    """Links offered depend on who is asking."""

    def setup_method(self):
        self.builder = AffordanceLinkBuilder(BASE_URL)

    def test_anonymous_gets_self_only(self, citizen, institution):
        complaint = make_complaint(citizen, institution)

        links = self.builder.build_complaint_affordances(complaint, None)

        assert list(links) == ['self']
        assert links['self'].href == f"{BASE_URL}/api/complaints/track/{complaint.tracking_number}"

    def test_owning_institution_gets_actions(self, citizen, institution):
        complaint = make_complaint(citizen, institution)

        links = self.builder.build_complaint_affordances(complaint, actor_for(institution))

        assert set(links) == {'self', 'forwarding-history', 'update-status', 'update-deadline', 'forward'}
        assert links['update-status'].method == "PATCH"
        assert links['update-deadline'].href.endswith(f"/api/complaints/{complaint.id}/deadline")
        assert links['forward'].method == "POST"

    def test_submitting_citizen_gets_history(self, citizen, institution):
        complaint = make_complaint(citizen, institution)

        links = self.builder.build_complaint_affordances(complaint, actor_for(citizen))

        assert set(links) == {'self', 'forwarding-history'}

    def test_unrelated_actors_get_self_only(self, citizen, other_citizen, institution, other_institution):
        complaint = make_complaint(citizen, institution)

        assert set(self.builder.build_complaint_affordances(complaint, actor_for(other_citizen))) == {'self'}
        assert set(self.builder.build_complaint_affordances(complaint, actor_for(other_institution))) == {'self'}


class TestHalResponseBuilder:

    def setup_method(self):
        self.builder = HalResponseBuilder(BASE_URL)

    def test_collection_self_link_carries_filters(self):
        response = self.builder.build_collection_response(
            [{"id": "1"}],
            "/api/complaints/institution",
            {"status": "unresolved", "deadlineApproaching": False, "sortBy": "deadline"},
            "complaints"
        )

        assert response['count'] == 1
        assert response['_embedded'] == {"complaints": [{"id": "1"}]}
        assert response['_links']['self']['href'] == (
            f"{BASE_URL}/api/complaints/institution?status=unresolved&sortBy=deadline"
        )

    def test_error_response_is_problem_document(self):
        error = self.builder.build_error_response(
            "resource-not-found", "Resource Not Found", 404, "Complaint not found", "/api/complaints/x/status"
        )

        assert error['type'] == "https://api.ijwi.rw/problems/resource-not-found"
        assert error['status'] == 404
        assert error['instance'] == "/api/complaints/x/status"
        assert 'errors' not in error
        assert set(error['_links']) == {'help'}

    def test_validation_error_links_schema(self):
        error = self.builder.build_error_response(
            "validation-error", "Validation Error", 400, "Request validation failed", "/api/complaints",
            validation_errors=[{"field": "title", "message": "Field required", "type": "missing"}]
        )

        assert error['errors'][0]['field'] == "title"
        assert error['_links']['schema']['href'] == f"{BASE_URL}/openapi/openapi.json"


class TestHalFormatter:

    def setup_method(self):
        self.formatter = create_hal_formatter(BASE_URL)

    def test_factory(self):
        assert isinstance(self.formatter, HalFormatter)

    def test_complaint_uses_camel_case_and_iso_dates(self, citizen, institution):
        complaint = make_complaint(citizen, institution)

        body = self.formatter.format_complaint(complaint, actor_for(citizen), {"assignedTo": "Gasabo", "skip": None})

        assert body['trackingNumber'] == complaint.tracking_number
        assert body['status'] == "PENDING"
        assert body['submissionDate'] == NOW.isoformat()
        assert body['resolutionDate'] is None
        assert body['assignedTo'] == "Gasabo"
        assert 'skip' not in body
        assert 'forwarding-history' in body['_links']

    def test_complaint_view_includes_names_and_urgency(self, citizen, institution):
        view = ComplaintView(
            complaint=make_complaint(citizen, institution),
            citizen_name="Aline Uwase",
            institution_name="Gasabo District Office",
            department_name="Gasabo District Office",
            urgency={"daysUntilDeadline": 3, "isUrgent": False}
        )

        body = self.formatter.format_complaint_view(view, actor_for(institution))

        assert body['citizenName'] == "Aline Uwase"
        assert body['assignedDepartmentName'] == "Gasabo District Office"
        assert body['daysUntilDeadline'] == 3
        assert body['isUrgent'] is False

    def test_forwarding_history(self, citizen, institution, department):
        complaint = make_complaint(citizen, institution)
        record = ForwardingRecord(
            complaint_id=complaint.id,
            from_institution_id=institution.id,
            to_department_id=department.id,
            forwarding_note="Send a crew",
            forwarded_at=NOW
        )

        body = self.formatter.format_forwarding_history(
            complaint.id, [HistoryEntry(record, "Gasabo District Office", None)]
        )
        item = body['_embedded']['forwardingRecords'][0]

        assert body['count'] == 1
        assert item['forwardingNote'] == "Send a crew"
        assert item['fromInstitutionName'] == "Gasabo District Office"
        assert 'toDepartmentName' not in item
        assert item['_links']['complaint-history']['href'].endswith(
            f"/api/complaints/{complaint.id}/forwarding-history"
        )

    def test_performance_report_links(self):
        body = self.formatter.format_performance_report({"timeframe": "all-time", "systemStats": {}})

        assert body['_links']['self']['href'] == f"{BASE_URL}/api/admin/performance?timeframe=all-time"
        assert body['_links']['institutions']['href'] == f"{BASE_URL}/api/admin/institutions"

    @pytest.mark.parametrize("error_type,title", [
        ("cross-district-forwarding", "Cross-District Forwarding Rejected"),
        ("no-institution-available", "No Institution Available"),
        ("unprocessable-thing", "Unprocessable Thing"),
    ])
    def test_error_titles(self, error_type, title):
        assert self.formatter.format_error(error_type, 400, "detail", "/x")['title'] == title

    def test_authentication_error(self):
        error = self.formatter.format_authentication_error("Missing authorization token", "/api/complaints/mine")

        assert error['status'] == 401
        assert error['type'].endswith("/authentication-required")
