# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
from datetime import datetime

from models.entities import Actor, Complaint, ForwardingRecord
from models.responses import HalLink

PROBLEM_BASE_URI = "https://api.ijwi.rw/problems"

ERROR_TITLES = {
    "validation-error": "Validation Error",
    "authentication-required": "Authentication Required",
    "insufficient-permissions": "Insufficient Permissions",
    "resource-not-found": "Resource Not Found",
    "no-institution-available": "No Institution Available",
    "cross-district-forwarding": "Cross-District Forwarding Rejected",
    "resource-conflict": "Resource Conflict",
    "method-not-allowed": "Method Not Allowed",
    "bad-request": "Bad Request",
    "internal-server-error": "Internal Server Error",
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.replace('-', ' ').title()
        )


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on the actor and complaint state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_complaint_affordances(self, complaint: Complaint, actor: Optional[Actor]) -> Dict[str, HalLink]:
        """
        Build links for a complaint.

        Only the assigned institution gets mutation links; the institution and
        the submitting citizen both get the forwarding history link.
        """
        links = {}
        base_path = f"/api/complaints/{complaint.id}"

        links['self'] = self.link_builder.build_self_link(
            f"/api/complaints/track/{complaint.tracking_number}"
        )

        if actor is None:
            return links

        owns = actor.owns_assignment(complaint)
        if owns or actor.owns_submission(complaint):
            links['forwarding-history'] = self.link_builder.build_link(
                f"{base_path}/forwarding-history",
                title="Forwarding history"
            )

        if owns:
            links['update-status'] = self.link_builder.build_action_link(
                base_path, "status", method="PATCH", title="Update status"
            )
            links['update-deadline'] = self.link_builder.build_action_link(
                base_path, "deadline", method="PATCH", title="Update deadline"
            )
            links['forward'] = self.link_builder.build_action_link(
                base_path, "forward", title="Forward to district department"
            )

        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None,
        embedded_name: str = "items"
    ) -> Dict[str, Any]:
        """Build a HAL collection response with a self link."""
        params = {k: v for k, v in (query_params or {}).items() if v not in (None, False, "")}
        path = f"{collection_path}?{urlencode(params)}" if params else collection_path

        return {
            'count': len(items),
            '_links': {'self': self.link_builder.build_self_link(path).model_dump(exclude_none=True)},
            '_embedded': {embedded_name: items}
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URI}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    # Resources

    @staticmethod
    def complaint_data(complaint: Complaint) -> Dict[str, Any]:
        """Plain camelCase representation of a complaint."""
        return {
            "id": complaint.id,
            "trackingNumber": complaint.tracking_number,
            "title": complaint.title,
            "description": complaint.description,
            "category": complaint.category,
            "province": complaint.province,
            "district": complaint.district,
            "status": complaint.status,
            "citizenId": complaint.citizen_id,
            "institutionId": complaint.institution_id,
            "assignedDepartmentId": complaint.assigned_department_id,
            "submissionDate": _iso(complaint.submission_date),
            "resolutionDeadline": _iso(complaint.resolution_deadline),
            "resolutionDate": _iso(complaint.resolution_date),
            "updatedAt": _iso(complaint.updated_at)
        }

    def format_complaint(
        self,
        complaint: Complaint,
        actor: Optional[Actor],
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a complaint with affordance links and optional extra fields."""
        data = self.complaint_data(complaint)
        if extra:
            data.update({k: v for k, v in extra.items() if v is not None})
        links = self.builder.affordance_builder.build_complaint_affordances(complaint, actor)
        return self.builder.build_resource_response(data, links)

    def format_complaint_view(self, view, actor: Optional[Actor]) -> Dict[str, Any]:
        """Format a complaint together with the names of its related parties."""
        extra = {
            "citizenName": view.citizen_name,
            "institutionName": view.institution_name,
            "assignedDepartmentName": view.department_name
        }
        if view.urgency:
            extra.update(view.urgency)
        return self.format_complaint(view.complaint, actor, extra)

    def format_complaint_collection(
        self,
        views: List[Any],
        actor: Actor,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        items = [self.format_complaint_view(view, actor) for view in views]
        return self.builder.build_collection_response(items, collection_path, query_params, "complaints")

    def format_forwarding_record(
        self,
        record: ForwardingRecord,
        institution_name: Optional[str] = None,
        department_name: Optional[str] = None
    ) -> Dict[str, Any]:
        data = {
            "id": record.id,
            "complaintId": record.complaint_id,
            "fromInstitutionId": record.from_institution_id,
            "toDepartmentId": record.to_department_id,
            "forwardingNote": record.forwarding_note,
            "forwardedAt": _iso(record.forwarded_at)
        }
        if institution_name:
            data["fromInstitutionName"] = institution_name
        if department_name:
            data["toDepartmentName"] = department_name

        links = {
            'complaint-history': self.builder.link_builder.build_link(
                f"/api/complaints/{record.complaint_id}/forwarding-history",
                title="Forwarding history"
            )
        }
        return self.builder.build_resource_response(data, links)

    def format_forwarding_history(self, complaint_id: str, entries: List[Any]) -> Dict[str, Any]:
        items = [
            self.format_forwarding_record(e.record, e.institution_name, e.department_name)
            for e in entries
        ]
        return self.builder.build_collection_response(
            items, f"/api/complaints/{complaint_id}/forwarding-history", embedded_name="forwardingRecords"
        )

    def format_performance_report(self, report: Dict[str, Any]) -> Dict[str, Any]:
        links = {
            'self': self.builder.link_builder.build_self_link(
                f"/api/admin/performance?{urlencode({'timeframe': report['timeframe']})}"
            ),
            'institutions': self.builder.link_builder.build_link(
                "/api/admin/institutions", title="Institutions"
            )
        }
        return self.builder.build_resource_response(report, links)

    def format_institution_collection(self, institutions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.builder.build_collection_response(
            institutions, "/api/admin/institutions", embedded_name="institutions"
        )

    # Errors

    def format_error(
        self,
        error_type: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Format a problem document for an error type."""
        title = ERROR_TITLES.get(error_type, error_type.replace('-', ' ').title())
        return self.builder.build_error_response(
            error_type, title, status, detail, instance, validation_errors
        )

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return self.format_error("validation-error", 400, detail, instance, validation_errors)

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.format_error("authentication-required", 401, detail, instance)

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.format_error("internal-server-error", 500, detail, instance)


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
