from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ..core.security import Role, AuthenticationError, AuthorizationError
from ..models.user import User
from .role_resolver import RoleResolver


class AccessDecision(str, Enum):
    ALLOW = "allow"
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_FORBIDDEN = "deny_forbidden"


class AccessControlGate:
    """Per-request yes/no check of a principal against a required role.

    Holds no state between calls. For ``doctor`` the verification status is
    not consulted; an unverified doctor still reaches their own dashboard.
    """

    def __init__(self, db: Session, resolver: Optional[RoleResolver] = None):
        self.db = db
        self.resolver = resolver or RoleResolver(db)

    def authorize(self, principal: Optional[User], required_role: Optional[Role] = None) -> AccessDecision:
        if principal is None:
            return AccessDecision.DENY_UNAUTHENTICATED

        if required_role is None:
            return AccessDecision.ALLOW

        if required_role == Role.NONE:
            return AccessDecision.DENY_FORBIDDEN

        if self.resolver.has_membership(principal.id, required_role):
            return AccessDecision.ALLOW

        return AccessDecision.DENY_FORBIDDEN

    def enforce(self, principal: Optional[User], required_role: Optional[Role] = None) -> User:
        """Raise the matching HTTP error unless the decision is ALLOW."""
        decision = self.authorize(principal, required_role)

        if decision == AccessDecision.DENY_UNAUTHENTICATED:
            raise AuthenticationError("Not authenticated")
        if decision == AccessDecision.DENY_FORBIDDEN:
            raise AuthorizationError()

        return principal
