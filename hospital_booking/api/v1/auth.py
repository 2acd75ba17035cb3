from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...core.security import SessionToken
from ...api.deps import TOKEN_COOKIE, get_current_user, get_settings
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserEnvelope, UserResponse,
    ChangePassword, MessageResponse
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _token_response(response: Response, session: SessionToken, settings: Settings) -> TokenResponse:
    """Set the session cookie and echo the token in the body."""
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=session.token,
        max_age=settings.COOKIE_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return TokenResponse(
        token=session.token,
        token_type=session.token_type,
        expires_in=session.expires_in
    )

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Register a new user and start a session."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)
    return _token_response(response, auth_service.issue_token(user), settings)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Authenticate user and return a session token."""
    auth_service = AuthService(db)
    return _token_response(response, auth_service.authenticate_user(login_data), settings)

@router.get("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """End the session by clearing the token cookie."""
    response.delete_cookie(TOKEN_COOKIE, httponly=True)
    return MessageResponse(message="Successfully logged out")

@router.get("/me", response_model=UserEnvelope)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserEnvelope(data=UserResponse.from_orm(current_user))

@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    AuthService(db).change_password(current_user, password_data)
    return MessageResponse(message="Password changed successfully")
