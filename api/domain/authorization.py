# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for complaint operations.

This module contains pure capability checks. Every lifecycle operation names
the check it requires here instead of comparing role strings inline, so the
rules can be tested in isolation.
"""

from typing import Optional
from dataclasses import dataclass

from models.entities import Actor, Complaint
from models.enums import UserRole
from .errors import AuthorizationError, ComplaintNotFound


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    # Denials that must look like a missing resource to the caller
    conceal: bool = False


ALLOWED = AuthorizationResult(allowed=True)


def check_role(actor: Actor, *roles: UserRole) -> AuthorizationResult:
    """
    Check that the actor holds one of the given roles.

    Args:
        actor: Authenticated caller
        roles: Accepted roles

    Returns:
        AuthorizationResult indicating if the role is accepted
    """
    if actor.has_role(*roles):
        return ALLOWED

    accepted = ", ".join(sorted(getattr(r, "value", r) for r in roles))
    return AuthorizationResult(
        allowed=False,
        reason=f"Role {actor.role} is not allowed; requires one of: {accepted}"
    )


def can_submit_complaint(actor: Actor) -> AuthorizationResult:
    """Only citizens submit complaints."""
    result = check_role(actor, UserRole.CITIZEN)
    if not result.allowed:
        return AuthorizationResult(allowed=False, reason="Only citizens can submit complaints")
    return result


def can_manage_complaint(actor: Actor, complaint: Optional[Complaint]) -> AuthorizationResult:
    """
    Check that the actor may change a complaint's status or deadline.

    Only the institution recorded at intake qualifies; a district department the
    complaint was forwarded to does not. Non-institution actors get an explicit
    denial, while institutions that do not own the complaint are told it does
    not exist.
    """
    role_check = check_role(actor, UserRole.INSTITUTION)
    if not role_check.allowed:
        return AuthorizationResult(allowed=False, reason="Only institutions can update complaints")

    if complaint is None or not actor.owns_assignment(complaint):
        return AuthorizationResult(
            allowed=False,
            reason="Complaint not found or you do not have permission to update it",
            conceal=True
        )

    return ALLOWED


def can_forward_complaint(actor: Actor, complaint: Optional[Complaint]) -> AuthorizationResult:
    """Forwarding requires ownership of the assignment; every denial is concealed."""
    if complaint is None or not actor.owns_assignment(complaint):
        return AuthorizationResult(
            allowed=False,
            reason="Complaint not found or you do not have permission to forward it",
            conceal=True
        )
    return ALLOWED


def can_view_forwarding_history(actor: Actor, complaint: Optional[Complaint]) -> AuthorizationResult:
    """The owning institution and the submitting citizen may read the history."""
    if complaint is not None and (actor.owns_assignment(complaint) or actor.owns_submission(complaint)):
        return ALLOWED

    return AuthorizationResult(
        allowed=False,
        reason="Complaint not found or you do not have permission to view it",
        conceal=True
    )


def can_list_own_complaints(actor: Actor) -> AuthorizationResult:
    result = check_role(actor, UserRole.CITIZEN, UserRole.INSTITUTION)
    if not result.allowed:
        return AuthorizationResult(allowed=False, reason="Unauthorized access")
    return result


def can_list_institution_complaints(actor: Actor) -> AuthorizationResult:
    result = check_role(actor, UserRole.INSTITUTION)
    if not result.allowed:
        return AuthorizationResult(
            allowed=False,
            reason="Access denied. Only institutions can view these complaints"
        )
    return result


def can_view_performance(actor: Actor) -> AuthorizationResult:
    return check_role(actor, UserRole.ADMIN)


def enforce(result: AuthorizationResult) -> None:
    """
    Raise the error matching a denied check.

    Raises:
        ComplaintNotFound: For concealed denials
        AuthorizationError: For role denials
    """
    if result.allowed:
        return
    if result.conceal:
        raise ComplaintNotFound(result.reason)
    raise AuthorizationError(result.reason)
