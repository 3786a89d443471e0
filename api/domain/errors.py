# SPDX-License-Identifier: Apache-2.0

"""
Domain error taxonomy.

Each error carries the HTTP status and problem type it maps to so the error
handler middleware can render it without knowing individual classes.
"""

from typing import Any, Dict, List, Optional


class ComplaintServiceError(Exception):
    """Base class for domain errors."""

    status_code = 500
    error_type = "application-error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplaintServiceError):
    """Malformed or missing input, e.g. a deadline in the past."""

    status_code = 400
    error_type = "validation-error"

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []


class AuthenticationError(ComplaintServiceError):
    status_code = 401
    error_type = "authentication-required"


class AuthorizationError(ComplaintServiceError):
    """Wrong actor, wrong role or wrong ownership."""

    status_code = 403
    error_type = "insufficient-permissions"


class NotFoundError(ComplaintServiceError):
    status_code = 404
    error_type = "resource-not-found"


class ComplaintNotFound(NotFoundError):
    """Unknown complaint, or one the actor may not see.

    The two cases share one error so callers cannot probe for existence.
    """

    def __init__(self, message: str = "Complaint not found or you do not have permission to access it"):
        super().__init__(message)


class DepartmentNotFound(NotFoundError):

    def __init__(self, message: str = "District department not found"):
        super().__init__(message)


class NoInstitutionAvailable(ComplaintServiceError):
    """No institution covers the complaint's province."""

    status_code = 404
    error_type = "no-institution-available"

    def __init__(self, message: str = "No appropriate institution found to handle this complaint"):
        super().__init__(message)


class CrossDistrictForwarding(ComplaintServiceError):
    status_code = 400
    error_type = "cross-district-forwarding"

    def __init__(self, message: str = "Department must be in the same district as the complaint"):
        super().__init__(message)


class ConcurrentModificationError(ComplaintServiceError):
    """The complaint changed between read and write."""

    status_code = 409
    error_type = "resource-conflict"

    def __init__(self, message: str = "Complaint was modified by another request, please retry"):
        super().__init__(message)
