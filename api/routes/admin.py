# SPDX-License-Identifier: Apache-2.0

"""
Administrator endpoints: performance reports and the institution directory.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
import logging

from middleware.auth import require_auth, get_current_actor
from models.requests import PerformanceQuery
from models.responses import PerformanceReportResponse, ErrorResponse

logger = logging.getLogger(__name__)

admin_tag = Tag(name="Administration", description="Performance reporting for administrators")
admin_bp = APIBlueprint(
    'admin',
    __name__,
    url_prefix='/api/admin',
    abp_tags=[admin_tag],
    abp_security=[{"jwt": []}]
)


@admin_bp.get('/performance', responses={200: PerformanceReportResponse, 401: ErrorResponse, 403: ErrorResponse})
@require_auth
def get_performance_report(query: PerformanceQuery):
    """Institution performance for a reporting window (week, month, year or all-time)."""
    report = current_app.performance_service.report(get_current_actor(), query.timeframe)
    return jsonify(current_app.hal_formatter.format_performance_report(report.to_dict()))


@admin_bp.get('/institutions', responses={401: ErrorResponse, 403: ErrorResponse})
@require_auth
def list_institutions():
    """Every institution with its complaint statistics."""
    institutions = current_app.performance_service.institutions(get_current_actor())
    return jsonify(current_app.hal_formatter.format_institution_collection(institutions))
