"""Auth service — sign-up, JWT login, refresh, logout, self-service profile, super-admin bootstrap."""

import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Any, Tuple
from urllib.parse import quote_plus

from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.core.exceptions import AuthenticationError, ResourceConflictError, ValidationError
from qrstudio.core.rbac import is_valid_role
from qrstudio.core.security import (
    hash_password, verify_password,
    create_access_token, create_refresh_token, decode_token,
)
from qrstudio.db.session import store_errors
from qrstudio.models.profile import Profile
from qrstudio.models.refresh_token import RefreshToken
from qrstudio.services.audit_service import audit_service
from qrstudio.services.cache_service import cache_service

logger = logging.getLogger("qrstudio.auth")

SUPER_ADMIN_ROLE = "superAdmin"
PROFILE_FIELDS = frozenset({"name", "avatar_url"})


def default_avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(name)}&background=3b82f6&color=fff"


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def user_summary(user: Profile) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "plan": user.plan,
        "avatar_url": user.avatar_url,
    }


class AuthService:
    """Handles sign-up, authentication and token lifecycle."""

    @staticmethod
    def register(db: Session, email: str, password: str, name: str) -> Profile:
        """Create a profile with the default signup role and plan.

        Raises:
            ResourceConflictError: the email is taken.
        """
        email = email.strip().lower()
        name = name.strip()
        if not name:
            raise ValidationError("Name is required")
        if not is_valid_role(settings.DEFAULT_SIGNUP_ROLE):
            raise ValidationError(f"DEFAULT_SIGNUP_ROLE '{settings.DEFAULT_SIGNUP_ROLE}' is not a known role")

        with store_errors(db, "Register user"):
            existing = db.query(Profile).filter(Profile.email == email).first()
            if existing:
                raise ResourceConflictError(f"User with email {email} already exists")

            user = Profile(
                email=email,
                name=name,
                hashed_password=hash_password(password),
                role=settings.DEFAULT_SIGNUP_ROLE,
                plan=settings.DEFAULT_PLAN,
                avatar_url=default_avatar_url(name),
                is_active=True,
            )
            db.add(user)
            db.commit()
            db.refresh(user)

        cache_service.delete("users:stats")
        logger.info("Registered user %s (%s)", user.id, user.role)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return JWT tokens.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = db.query(Profile).filter(Profile.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        token_data = {"sub": str(user.id), "email": user.email, "role": user.role}
        access_token = create_access_token(token_data)
        # jti keeps two sign-ins within the same second from colliding on token_hash
        refresh_token_str = create_refresh_token({**token_data, "jti": secrets.token_hex(8)})

        with store_errors(db, "Sign in"):
            # Store refresh token hash
            rt = RefreshToken(
                user_id=user.id,
                token_hash=_token_hash(refresh_token_str),
                expires_at=datetime.fromtimestamp(
                    decode_token(refresh_token_str)["exp"], tz=timezone.utc
                ).replace(tzinfo=None),
            )
            db.add(rt)

            user.last_login_at = datetime.now(timezone.utc)
            db.commit()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token_str,
            "token_type": "bearer",
            "user": user_summary(user),
        }

    @staticmethod
    def refresh_access_token(db: Session, refresh_token: str) -> Dict[str, Any]:
        """Refresh access token using a valid refresh token."""
        payload = decode_token(refresh_token)
        if payload.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token")

        stored = db.query(RefreshToken).filter(
            RefreshToken.token_hash == _token_hash(refresh_token),
            RefreshToken.revoked_at.is_(None),
        ).first()
        if not stored:
            raise AuthenticationError("Invalid refresh token")

        user = db.query(Profile).filter(Profile.id == int(payload["sub"])).first()
        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated")

        token_data = {"sub": str(user.id), "email": user.email, "role": user.role}
        return {
            "access_token": create_access_token(token_data),
            "token_type": "bearer",
        }

    @staticmethod
    def logout(db: Session, user_id: int) -> None:
        """Revoke all refresh tokens for a user."""
        with store_errors(db, "Sign out"):
            db.query(RefreshToken).filter(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
            ).update({"revoked_at": datetime.now(timezone.utc)})
            db.commit()

    @staticmethod
    def update_profile(db: Session, user: Profile, changes: Dict[str, Any]) -> Profile:
        """Self-service edit of the caller's own name and avatar."""
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be changed here: {', '.join(sorted(unknown))}")
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Name is required")
            changes = {**changes, "name": name}

        with store_errors(db, "Update profile"):
            for field, value in changes.items():
                setattr(user, field, value)
            user.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(user)

        logger.info("User %s updated profile fields %s", user.id, sorted(changes))
        return user

    @staticmethod
    def change_password(db: Session, user: Profile, current_password: str, new_password: str) -> None:
        """Replace the caller's password and sign out every session.

        Raises:
            AuthenticationError: current_password is wrong.
        """
        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")

        with store_errors(db, "Change password"):
            user.hashed_password = hash_password(new_password)
            user.updated_at = datetime.now(timezone.utc)
            db.query(RefreshToken).filter(
                RefreshToken.user_id == user.id,
                RefreshToken.revoked_at.is_(None),
            ).update({"revoked_at": datetime.now(timezone.utc)})
            db.commit()

        logger.info("User %s changed password", user.id)

    @staticmethod
    def seed_super_admin(db: Session) -> Tuple[Profile, bool]:
        """Create or promote the configured super admin.

        Returns:
            (profile, created) where ``created`` is False if an existing
            account was promoted or was already a super admin.
        """
        email = settings.SUPER_ADMIN_EMAIL.strip().lower()
        with store_errors(db, "Seed super admin"):
            user = db.query(Profile).filter(Profile.email == email).first()
            created = user is None
            if created:
                user = Profile(
                    email=email,
                    name=settings.SUPER_ADMIN_NAME,
                    hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
                    plan="enterprise",
                    avatar_url=default_avatar_url(settings.SUPER_ADMIN_NAME),
                    is_active=True,
                )
                db.add(user)
            elif user.role == SUPER_ADMIN_ROLE and user.is_active:
                return user, False

            user.role = SUPER_ADMIN_ROLE
            user.is_active = True
            db.flush()
            audit_service.log(db, "super_admin_seeded", user_id=user.id, details={"created": created})
            db.refresh(user)

        cache_service.delete("users:stats")
        logger.info("Super admin %s %s", email, "created" if created else "promoted")
        return user, created


auth_service = AuthService()
