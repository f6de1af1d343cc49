"""Auth API router — login, register, refresh, logout, me, password."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.core.exceptions import AuthenticationError
from qrstudio.core.rate_limiter import limiter
from qrstudio.core.security import get_current_user, get_current_user_id
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import (
    LoginRequest, RegisterRequest, RefreshRequest,
    ProfileUpdateRequest, PasswordChangeRequest,
    TokenResponse, UserOut, MessageResponse,
)
from qrstudio.services.auth_service import auth_service
from qrstudio.services.user_service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return JWT tokens."""
    try:
        return auth_service.authenticate(db, body.email, body.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)


@router.post("/register", response_model=UserOut, status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user with the default signup role."""
    user = auth_service.register(db, body.email, body.password, body.name)
    return UserOut.model_validate(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Refresh access token."""
    try:
        return auth_service.refresh_access_token(db, body.refresh_token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Revoke all refresh tokens."""
    auth_service.logout(db, user_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Get current user profile."""
    return UserOut.model_validate(user_service.get_user_by_id(db, user.id))


@router.patch("/me", response_model=UserOut)
async def update_me(
    body: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Edit your own name or avatar."""
    auth_service.update_profile(db, user, body.model_dump(exclude_unset=True))
    return UserOut.model_validate(user_service.get_user_by_id(db, user.id))


@router.post("/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Change your password; every refresh token is revoked."""
    auth_service.change_password(db, user, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
