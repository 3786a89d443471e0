# SPDX-License-Identifier: Apache-2.0

"""
HTTP tests for the complaint and administration endpoints.

The application is built with create_app and its complaint and performance
services are rebuilt on the in-memory repositories. Requests carry real
access tokens issued by the application's development key pair.
"""

import pytest
from unittest.mock import Mock, patch

from app import create_app
from services.performance import PerformanceService
from conftest import NOW, make_complaint

PROBLEMS = "https://api.ijwi.rw/problems"

SUBMISSION = {
    "title": "Burst water pipe",
    "description": "Water has been leaking onto the road for two days",
    "category": "WATER",
    "province": "Kigali",
    "district": "Gasabo"
}


@pytest.fixture
def app(complaint_service, complaints, users, clock):
    app = create_app({
        "ENVIRONMENT": "test",
        "OTEL_ENABLED": False,
        "DOCS_ENABLED": False,
        "BASE_URL": "http://testserver"
    })
    app.config['TESTING'] = True
    app.complaint_service = complaint_service
    app.performance_service = PerformanceService(complaints, users, clock=clock)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth(app):
    """Authorization headers for a user."""
    def headers(user):
        return {"Authorization": f"Bearer {app.auth_service.generate_access_token(user)}"}
    return headers


class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get('/api/complaints/mine')

        assert response.status_code == 401
        data = response.get_json()
        assert data['type'] == f"{PROBLEMS}/authentication-required"
        assert data['detail'] == "Missing authorization token"
        assert data['instance'] == "/api/complaints/mine"

    def test_invalid_token(self, client):
        response = client.get('/api/complaints/mine', headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401

    def test_raw_token_is_accepted(self, client, app, citizen):
        token = app.auth_service.generate_access_token(citizen)

        response = client.get('/api/complaints/mine', headers={"Authorization": token})

        assert response.status_code == 200


class TestSubmitEndpoint:

    def test_submit(self, client, auth, citizen):
        response = client.post('/api/complaints', json=SUBMISSION, headers=auth(citizen))

        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == "PENDING"
        assert data['assignedTo'] == "Gasabo District Office"
        assert data['notificationStatus'] == {"success": True, "errors": []}
        assert data['trackingNumber'].startswith("CMP-20240301-")
        assert set(data['_links']) == {'self', 'forwarding-history'}

    def test_validation_error(self, client, auth, citizen):
        response = client.post(
            '/api/complaints',
            json={**SUBMISSION, "title": "", "category": "NOISE"},
            headers=auth(citizen)
        )

        assert response.status_code == 400
        data = response.get_json()
        assert data['type'] == f"{PROBLEMS}/validation-error"
        assert {e['field'] for e in data['errors']} >= {"title", "category"}
        assert 'schema' in data['_links']

    def test_institution_cannot_submit(self, client, auth, institution):
        response = client.post('/api/complaints', json=SUBMISSION, headers=auth(institution))

        assert response.status_code == 403
        assert response.get_json()['type'] == f"{PROBLEMS}/insufficient-permissions"

    def test_uncovered_province(self, client, auth, citizen):
        response = client.post(
            '/api/complaints',
            json={**SUBMISSION, "province": "Western", "district": "Rubavu"},
            headers=auth(citizen)
        )

        assert response.status_code == 404
        assert response.get_json()['type'] == f"{PROBLEMS}/no-institution-available"


class TestComplaintEndpoints:

    def test_track(self, client, auth, complaints, citizen, institution, other_citizen):
        complaint = complaints.create(make_complaint(citizen, institution))

        response = client.get(f'/api/complaints/track/{complaint.tracking_number}', headers=auth(other_citizen))

        assert response.status_code == 200
        data = response.get_json()
        assert data['citizenName'] == "Aline Uwase"
        assert data['institutionName'] == "Gasabo District Office"
        assert set(data['_links']) == {'self'}

    def test_track_unknown(self, client, auth, citizen):
        response = client.get('/api/complaints/track/CMP-00000000-000000', headers=auth(citizen))

        assert response.status_code == 404
        assert response.get_json()['type'] == f"{PROBLEMS}/resource-not-found"

    def test_institution_queue(self, client, auth, complaints, citizen, institution):
        complaints.create(make_complaint(citizen, institution))

        response = client.get(
            '/api/complaints/institution?status=unresolved&sortBy=deadline', headers=auth(institution)
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['count'] == 1
        assert data['_embedded']['complaints'][0]['daysUntilDeadline'] == 3
        assert data['_links']['self']['href'].endswith("?status=unresolved&sortBy=deadline")

    def test_queue_rejects_citizens(self, client, auth, citizen):
        assert client.get('/api/complaints/institution', headers=auth(citizen)).status_code == 403

    def test_foreign_institution_sees_not_found(self, client, auth, complaints, citizen, institution, other_institution):
        complaint = complaints.create(make_complaint(citizen, institution))

        response = client.patch(
            f'/api/complaints/{complaint.id}/status',
            json={"status": "RESOLVED"},
            headers=auth(other_institution)
        )

        assert response.status_code == 404

    def test_deadline_in_past(self, client, auth, complaints, citizen, institution):
        complaint = complaints.create(make_complaint(citizen, institution))

        response = client.patch(
            f'/api/complaints/{complaint.id}/deadline',
            json={"newDeadline": "2024-02-01T00:00:00Z"},
            headers=auth(institution)
        )

        assert response.status_code == 400
        assert response.get_json()['detail'] == "New deadline must be in the future"

    def test_cross_district_forwarding(self, client, auth, complaints, citizen, institution, remote_department):
        complaint = complaints.create(make_complaint(citizen, institution))

        response = client.post(
            f'/api/complaints/{complaint.id}/forward',
            json={"departmentId": remote_department.id},
            headers=auth(institution)
        )

        assert response.status_code == 400
        assert response.get_json()['type'] == f"{PROBLEMS}/cross-district-forwarding"

    def test_concurrent_update_conflict(self, client, auth, complaints, citizen, institution):
        complaint = complaints.create(make_complaint(citizen, institution))
        complaints.fail_next_update = True

        response = client.patch(
            f'/api/complaints/{complaint.id}/status',
            json={"status": "IN_PROGRESS"},
            headers=auth(institution)
        )

        assert response.status_code == 409
        assert response.get_json()['type'] == f"{PROBLEMS}/resource-conflict"

    def test_unexpected_error_is_problem_document(self, client, app, auth, citizen):
        app.complaint_service = Mock()
        app.complaint_service.track.side_effect = RuntimeError("database exploded")

        response = client.get('/api/complaints/track/CMP-1', headers=auth(citizen))

        assert response.status_code == 500
        data = response.get_json()
        assert data['type'] == f"{PROBLEMS}/internal-server-error"
        assert "RuntimeError" in data['detail']


class TestAdminEndpoints:

    def test_performance_requires_admin(self, client, auth, institution):
        response = client.get('/api/admin/performance', headers=auth(institution))

        assert response.status_code == 403

    def test_unknown_timeframe_rejected(self, client, auth, admin):
        response = client.get('/api/admin/performance?timeframe=decade', headers=auth(admin))

        assert response.status_code == 400

    def test_institution_directory(self, client, auth, admin):
        response = client.get('/api/admin/institutions', headers=auth(admin))

        assert response.status_code == 200
        data = response.get_json()
        assert data['count'] == 3
        assert {row['institutionName'] for row in data['_embedded']['institutions']} >= {"Gasabo District Office"}


class TestHealthEndpoint:

    @pytest.mark.parametrize("status,code", [("healthy", 200), ("degraded", 200), ("unhealthy", 503)])
    def test_status_codes(self, client, app, status, code):
        app.health_service = Mock()
        app.health_service.get_health.return_value = {"status": status, "service": "ijwi-api"}

        response = client.get('/api/healthz')

        assert response.status_code == code
        data = response.get_json()
        assert data['status'] == status
        assert data['_links']['self']['href'] == "http://testserver/api/healthz"


class TestComplaintJourneyOverHttp:
    """A complaint travels from submission to the performance report."""

    def test_submit_forward_resolve_report(self, client, auth, clock, citizen, institution, department, admin):
        submitted = client.post('/api/complaints', json=SUBMISSION, headers=auth(citizen)).get_json()
        complaint_id = submitted['id']

        clock.advance(hours=3)
        forwarded = client.post(
            f'/api/complaints/{complaint_id}/forward',
            json={"departmentId": department.id, "forwardingNote": "Needs a plumbing crew"},
            headers=auth(institution)
        )
        assert forwarded.status_code == 200
        forwarded_data = forwarded.get_json()
        assert forwarded_data['status'] == "IN_PROGRESS"
        assert forwarded_data['assignedDepartmentName'] == "Gasabo Water Department"
        assert forwarded_data['_embedded']['forwardingRecord']['forwardingNote'] == "Needs a plumbing crew"

        clock.advance(days=1)
        resolved = client.patch(
            f'/api/complaints/{complaint_id}/status',
            json={"status": "RESOLVED"},
            headers=auth(institution)
        )
        assert resolved.status_code == 200
        assert resolved.get_json()['resolutionDate'] == clock.now.isoformat()

        history = client.get(f'/api/complaints/{complaint_id}/forwarding-history', headers=auth(citizen))
        assert history.status_code == 200
        records = history.get_json()['_embedded']['forwardingRecords']
        assert len(records) == 1
        assert records[0]['toDepartmentName'] == "Gasabo Water Department"

        mine = client.get('/api/complaints/mine', headers=auth(citizen)).get_json()
        assert mine['_embedded']['complaints'][0]['status'] == "RESOLVED"

        report = client.get('/api/admin/performance?timeframe=week', headers=auth(admin))
        assert report.status_code == 200
        rows = {row['institutionId']: row for row in report.get_json()['institutionPerformance']}
        assert rows[institution.id]['resolvedOnTime'] == 1
        assert report.get_json()['_links']['self']['href'].endswith("timeframe=week")
        assert submitted['submissionDate'] == NOW.isoformat()


class TestApplicationFactory:

    def test_dispatcher_is_bounded_and_shut_down_at_exit(self):
        with patch("app.atexit.register") as register:
            app = create_app({
                "ENVIRONMENT": "test",
                "OTEL_ENABLED": False,
                "DOCS_ENABLED": False,
                "NOTIFICATION_MAX_BACKLOG": 7
            })

        assert app.notification_dispatcher.max_backlog == 7
        register.assert_called_once_with(app.notification_dispatcher.shutdown)
        app.notification_dispatcher.shutdown()
