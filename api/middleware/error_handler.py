# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from domain.errors import ComplaintServiceError, ValidationError
from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

HTTP_ERROR_TYPES = {
    400: "bad-request",
    401: "authentication-required",
    403: "insufficient-permissions",
    404: "resource-not-found",
    405: "method-not-allowed",
    409: "resource-conflict",
    422: "validation-error",
}


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(ComplaintServiceError)
        def handle_domain_error(error):
            return self.handle_domain_error(error)

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error)
            return self.handle_client_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_domain_error(self, error: ComplaintServiceError) -> Tuple[Dict[str, Any], int]:
        """
        Render a domain error as a problem document.

        Args:
            error: Domain error carrying its status code and problem type

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.domain_error") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Domain error: {error.error_type}",
                extra={
                    "extra_fields": {
                        "error_type": error.error_type,
                        "status_code": error.status_code,
                        "detail": error.message,
                        "path": request.path,
                        "method": request.method
                    }
                }
            )

            validation_errors = error.validation_errors if isinstance(error, ValidationError) else None
            body = self.hal_formatter.format_error(
                error.error_type,
                error.status_code,
                error.message,
                request.path,
                validation_errors
            )
            return jsonify(body), error.status_code

    def handle_client_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """Handle werkzeug client errors (4xx status codes)."""
        with tracer.start_as_current_span("error_handler.client_error") as span:
            error_type = HTTP_ERROR_TYPES.get(error.code, "bad-request")
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else error.name

            logger.warning(
                f"Client error: {error.name}",
                extra={
                    "extra_fields": {
                        "error_type": error_type,
                        "status_code": error.code,
                        "path": request.path,
                        "method": request.method
                    }
                }
            )

            body = self.hal_formatter.format_error(error_type, error.code, detail, request.path)
            return jsonify(body), error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        with tracer.start_as_current_span("error_handler.server_error") as span:
            span.set_attributes({
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.error(
                f"Server error: {error.name}",
                extra={"extra_fields": {"status_code": error.code, "path": request.path}}
            )

            detail = str(error.description) if error.description else error.name
            if self.app.config.get('ENVIRONMENT') == 'production':
                detail = "An internal server error occurred"

            body = self.hal_formatter.format_server_error(detail, request.path)
            body['status'] = error.code
            return jsonify(body), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Details are hidden in production.
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "extra_fields": {
                        "error_class": error.__class__.__name__,
                        "error_message": str(error),
                        "path": request.path,
                        "method": request.method
                    }
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            body = self.hal_formatter.format_server_error(detail, request.path)
            return jsonify(body), 500
