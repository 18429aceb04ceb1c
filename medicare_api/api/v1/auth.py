from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...core.security import Role
from ...api.deps import get_current_user, get_current_principal, rate_limit_check
from ...services.access_control import AccessControlGate
from ...services.auth_service import AuthService
from ...services.role_resolver import RoleResolver
from ...schemas.auth import (
    UserLogin, PatientRegister, DoctorRegister, TokenResponse, UserResponse,
    MeResponse, RefreshTokenRequest, AuthorizeResponse
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register/patient", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_patient(
    data: PatientRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a patient account."""
    user = AuthService(db).register_patient(data)
    return UserResponse.model_validate(user)


@router.post("/register/doctor", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_doctor(
    data: DoctorRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a doctor account. The profile starts in ``pending`` verification."""
    user = AuthService(db).register_doctor(data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
):
    """Authenticate user and return access tokens."""
    return AuthService(db).authenticate_user(login_data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token."""
    return AuthService(db).refresh_access_token(refresh_data.refresh_token)


@router.post("/logout")
async def logout(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Logout user by revoking refresh token."""
    success = AuthService(db).logout_user(refresh_data.refresh_token)

    return {"message": "Successfully logged out" if success else "Logout completed"}


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current principal with its freshly resolved role."""
    role = RoleResolver(db).resolve(current_user.id)
    return MeResponse(**UserResponse.model_validate(current_user).model_dump(), role=role)


@router.get("/authorize", response_model=AuthorizeResponse)
async def authorize(
    required_role: Optional[Role] = None,
    principal: Optional[User] = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Screen-level access check for the UI's protected routes.

    401 means redirect to login, 403 means render the generic denial view.
    """
    gate = AccessControlGate(db)
    gate.enforce(principal, required_role)

    return AuthorizeResponse(decision="allow", role=gate.resolver.resolve(principal.id))
