# SPDX-License-Identifier: Apache-2.0

"""
Complaint endpoints.

This module implements complaint intake, tracking, the citizen and
institution listings, status and deadline updates, forwarding to district
departments and the forwarding history.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from middleware.auth import require_auth, get_current_actor
from models.requests import (
    SubmitComplaintRequest, UpdateStatusRequest, UpdateDeadlineRequest,
    ForwardComplaintRequest, ComplaintPath, TrackingPath, InstitutionQueueQuery
)
from models.responses import ComplaintResponse, ForwardingRecordResponse, ErrorResponse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

complaints_tag = Tag(name="Complaints", description="Complaint intake, tracking and handling")
complaints_bp = APIBlueprint(
    'complaints',
    __name__,
    url_prefix='/api',
    abp_tags=[complaints_tag],
    abp_security=[{"jwt": []}]
)

ERROR_RESPONSES = {400: ErrorResponse, 401: ErrorResponse, 403: ErrorResponse, 404: ErrorResponse}


def _complaint_body(outcome, extra=None):
    actor = get_current_actor()
    data = {"notificationStatus": outcome.notification_status.to_dict()}
    data.update(extra or {})
    return current_app.hal_formatter.format_complaint(outcome.complaint, actor, data)


@complaints_bp.post('/complaints', responses={201: ComplaintResponse, **ERROR_RESPONSES})
@require_auth
def submit_complaint(body: SubmitComplaintRequest):
    """
    Submit a complaint.

    The complaint is assigned to the institution responsible for its
    district, given a tracking number and an SLA deadline, and the citizen
    is notified.
    """
    actor = get_current_actor()

    with tracer.start_as_current_span("route.complaints.submit") as span:
        span.set_attributes({"user.id": actor.user_id, "complaint.category": body.category.value})
        outcome = current_app.complaint_service.submit(actor, body)

    response = _complaint_body(outcome, {
        "assignedTo": outcome.institution.display_name if outcome.institution else None
    })
    return jsonify(response), 201


@complaints_bp.get('/complaints/track/<tracking_number>', responses={200: ComplaintResponse, **ERROR_RESPONSES})
@require_auth
def track_complaint(path: TrackingPath):
    """Get a complaint by its tracking number."""
    view = current_app.complaint_service.track(path.tracking_number)
    return jsonify(current_app.hal_formatter.format_complaint_view(view, get_current_actor()))


@complaints_bp.get('/complaints/mine', responses=ERROR_RESPONSES)
@require_auth
def list_my_complaints():
    """
    List the caller's complaints, newest first.

    Citizens see the complaints they submitted; institutions see the ones
    assigned to them.
    """
    actor = get_current_actor()
    views = current_app.complaint_service.list_mine(actor)
    return jsonify(current_app.hal_formatter.format_complaint_collection(
        views, actor, "/api/complaints/mine"
    ))


@complaints_bp.get('/complaints/institution', responses=ERROR_RESPONSES)
@require_auth
def list_institution_complaints(query: InstitutionQueueQuery):
    """Institution work queue with urgency information."""
    actor = get_current_actor()
    views = current_app.complaint_service.institution_queue(
        actor,
        status=query.status,
        deadline_approaching=query.deadline_approaching,
        sort_by=query.sort_by
    )
    return jsonify(current_app.hal_formatter.format_complaint_collection(
        views,
        actor,
        "/api/complaints/institution",
        {
            "status": query.status,
            "deadlineApproaching": "true" if query.deadline_approaching else None,
            "sortBy": query.sort_by.value
        }
    ))


@complaints_bp.patch('/complaints/<complaint_id>/status', responses={200: ComplaintResponse, **ERROR_RESPONSES})
@require_auth
def update_complaint_status(path: ComplaintPath, body: UpdateStatusRequest):
    """Update a complaint's status and optionally its resolution deadline."""
    outcome = current_app.complaint_service.update_status(
        get_current_actor(),
        path.complaint_id,
        body.status,
        new_deadline=body.resolution_deadline
    )
    return jsonify(_complaint_body(outcome))


@complaints_bp.patch('/complaints/<complaint_id>/deadline', responses={200: ComplaintResponse, **ERROR_RESPONSES})
@require_auth
def update_complaint_deadline(path: ComplaintPath, body: UpdateDeadlineRequest):
    """Set a new resolution deadline."""
    outcome = current_app.complaint_service.update_deadline(
        get_current_actor(),
        path.complaint_id,
        body.new_deadline
    )
    return jsonify(_complaint_body(outcome))


@complaints_bp.post('/complaints/<complaint_id>/forward', responses={200: ComplaintResponse, **ERROR_RESPONSES})
@require_auth
def forward_complaint(path: ComplaintPath, body: ForwardComplaintRequest):
    """Forward a complaint to a district department of the same district."""
    outcome = current_app.complaint_service.forward(
        get_current_actor(),
        path.complaint_id,
        body.department_id,
        body.forwarding_note
    )

    response = _complaint_body(outcome, {"assignedDepartmentName": outcome.department.name})
    response["_embedded"] = {
        "forwardingRecord": current_app.hal_formatter.format_forwarding_record(
            outcome.record, department_name=outcome.department.name
        )
    }
    return jsonify(response)


@complaints_bp.get(
    '/complaints/<complaint_id>/forwarding-history',
    responses={200: ForwardingRecordResponse, **ERROR_RESPONSES}
)
@require_auth
def get_forwarding_history(path: ComplaintPath):
    """Forwarding history of a complaint, newest first."""
    entries = current_app.complaint_service.forwarding_history(get_current_actor(), path.complaint_id)
    return jsonify(current_app.hal_formatter.format_forwarding_history(path.complaint_id, entries))
