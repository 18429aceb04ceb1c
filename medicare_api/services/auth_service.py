import hashlib
import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.user import User, RefreshToken
from ..models.doctor import DoctorProfile, VerificationStatus
from ..models.patient import PatientProfile
from ..core.security import verify_password, get_password_hash, create_token_pair, verify_token
from ..schemas.auth import UserLogin, PatientRegister, DoctorRegister, TokenResponse, UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def _create_principal(self, email: str, password: str) -> User:
        existing_user = self.db.query(User).filter(
            func.lower(User.email) == email.lower()
        ).first()

        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        user = User(
            email=email.lower(),
            password_hash=get_password_hash(password),
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def register_patient(self, data: PatientRegister) -> User:
        """Register a principal together with its patient profile."""
        user = self._create_principal(data.email, data.password)

        self.db.add(PatientProfile(
            user_id=user.id,
            full_name=data.full_name.strip(),
            email=user.email,
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            gender=data.gender,
        ))

        self.db.commit()
        self.db.refresh(user)

        logger.info("Patient registered: user %s", user.id)
        return user

    def register_doctor(self, data: DoctorRegister) -> User:
        """Register a principal with a doctor profile awaiting verification."""
        registration_number = data.registration_number.strip()
        duplicate = self.db.query(DoctorProfile.id).filter(
            func.lower(DoctorProfile.registration_number) == registration_number.lower()
        ).first()

        if duplicate:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Registration number already registered"
            )

        user = self._create_principal(data.email, data.password)

        self.db.add(DoctorProfile(
            user_id=user.id,
            full_name=data.full_name.strip(),
            email=user.email,
            phone=data.phone,
            specialization=data.specialization.strip(),
            registration_number=registration_number,
            hospital_affiliation=data.hospital_affiliation,
            experience_years=data.experience_years,
            verification_status=VerificationStatus.PENDING,
            is_active=True,
        ))

        self.db.commit()
        self.db.refresh(user)

        logger.info("Doctor registered: user %s (pending verification)", user.id)
        return user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            func.lower(User.email) == login_data.email.lower()
        ).first()

        if not user or not verify_password(login_data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        user.last_login = datetime.utcnow()

        tokens = create_token_pair(user.id, user.email)
        self._store_refresh_token(user.id, tokens.refresh_token)

        self.db.commit()

        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(user)
        )

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        token_hash = hashlib.sha256(refresh_token.encode()).hexdigest()
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == token_hash,
            RefreshToken.is_revoked.is_(False),
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired refresh token"
            )

        user = self.db.query(User).filter(
            User.id == token_payload.principal_id
        ).first()

        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found or inactive"
            )

        new_tokens = create_token_pair(user.id, user.email)

        # Revoke old refresh token and store new one
        stored_token.is_revoked = True
        self._store_refresh_token(user.id, new_tokens.refresh_token)

        self.db.commit()

        return TokenResponse(
            access_token=new_tokens.access_token,
            refresh_token=new_tokens.refresh_token,
            token_type=new_tokens.token_type,
            expires_in=new_tokens.expires_in,
            user=UserResponse.model_validate(user)
        )

    def logout_user(self, refresh_token: str) -> bool:
        """Logout user by revoking refresh token."""
        token_hash = hashlib.sha256(refresh_token.encode()).hexdigest()
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == token_hash
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Store refresh token in database."""
        token_hash = hashlib.sha256(refresh_token.encode()).hexdigest()

        token_payload = verify_token(refresh_token)
        expires_at = (
            datetime.utcfromtimestamp(token_payload.exp)
            if token_payload and token_payload.exp
            else datetime.utcnow() + timedelta(days=7)
        )

        # One live refresh token per user
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).update({"is_revoked": True})

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at
        ))
