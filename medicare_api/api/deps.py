from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import NotFoundError
from ..core.security import security, verify_token, AuthenticationError, Role
from ..models.user import User
from ..models.doctor import DoctorProfile
from ..services.access_control import AccessControlGate
from ..services.notification_service import NotificationService
from ..services.role_resolver import RoleResolver


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """CurrentPrincipal lookup; ``None`` when no bearer token was sent."""
    if credentials is None:
        return None

    token_payload = verify_token(credentials.credentials)
    if not token_payload or token_payload.token_type != "access":
        raise AuthenticationError("Invalid or expired token")

    if token_payload.principal_id is None:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.principal_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


def require_role(required_role: Optional[Role] = None):
    """Create a dependency running the access gate for one route."""
    async def role_checker(
        principal: Optional[User] = Depends(get_current_principal),
        db: Session = Depends(get_db)
    ) -> User:
        return AccessControlGate(db).enforce(principal, required_role)

    return role_checker


get_current_user = require_role()
get_admin_user = require_role(Role.ADMIN)
get_doctor_user = require_role(Role.DOCTOR)
get_patient_user = require_role(Role.PATIENT)


async def get_current_doctor_profile(
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
) -> DoctorProfile:
    """The caller's own doctor profile, whatever its verification status."""
    doctor = RoleResolver(db).get_doctor_profile(current_user.id)
    if not doctor:
        raise NotFoundError("Doctor profile")
    return doctor


def get_notifier() -> NotificationService:
    return NotificationService()


# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client=Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for registration endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, 3600, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
