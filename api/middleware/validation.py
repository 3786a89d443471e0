# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation error formatting.

flask-openapi3 validates path, query and body parameters against the
Pydantic request models; this module turns its validation failures into
problem documents.
"""

from flask import request, jsonify, current_app, make_response
from typing import Dict, Any, List
from pydantic import ValidationError
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def validation_error_callback(validation_error: ValidationError):
    """Render a request validation failure as a 400 problem document."""
    with tracer.start_as_current_span("validation.request_rejected") as span:
        errors = format_validation_errors(validation_error)
        span.set_attributes({
            "validation.result": "validation_error",
            "validation.error_count": len(errors),
            "http.path": request.path
        })

        logger.warning(
            "Request validation failed",
            extra={
                "extra_fields": {
                    "path": request.path,
                    "method": request.method,
                    "fields": [e["field"] for e in errors]
                }
            }
        )

        body = current_app.hal_formatter.format_validation_error(
            "Request validation failed",
            request.path,
            errors
        )
        return make_response(jsonify(body), 400)
