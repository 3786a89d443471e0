# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and actor extraction.

This module provides Flask helpers for reading bearer tokens, validating
them and exposing the authenticated Actor on ``flask.g`` for the duration
of a request.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Callable
from opentelemetry import trace
import logging

from domain.errors import AuthenticationError
from models.entities import Actor
from services.auth import AuthService, TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction and validation for protected endpoints.
    """

    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def authenticate(self) -> Actor:
        """
        Authenticate the current request.

        Raises:
            AuthenticationError: If the token is missing or invalid
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationError("Missing authorization token")

            try:
                actor = self.auth_service.actor_from_token(token)
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationError(str(e))

            span.set_attributes({
                "auth.result": "success",
                "user.id": actor.user_id,
                "user.role": actor.role
            })
            return actor


def require_auth(f: Callable) -> Callable:
    """
    Decorator requiring a valid JWT for a Flask route.

    The authenticated Actor is stored on ``g.actor``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.actor = current_app.auth_middleware.authenticate()
        return f(*args, **kwargs)

    return decorated_function


def get_current_actor() -> Actor:
    """
    Get the Actor authenticated for the current request.

    Raises:
        AuthenticationError: If the route is not protected by require_auth
    """
    actor = getattr(g, 'actor', None)
    if actor is None:
        raise AuthenticationError("Missing authorization token")
    return actor
