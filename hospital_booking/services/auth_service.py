from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timezone
from typing import Optional
import logging

from ..models.user import User
from ..core.exceptions import (
    AuthenticationError, DuplicateEmailError, InvalidCredentialsError, ValidationError
)
from ..core.security import (
    verify_password, get_password_hash, create_session_token,
    verify_token, Identity, SessionToken, UserRole
)
from ..schemas.auth import UserLogin, UserRegister, ChangePassword

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister, role: UserRole = UserRole.USER) -> User:
        """Register a new user."""
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise DuplicateEmailError()

        new_user = User(
            name=user_data.name,
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=role,
        )

        self.db.add(new_user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateEmailError()
        self.db.refresh(new_user)

        logger.info(f"Registered user {new_user.id} with role {new_user.role.value}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> SessionToken:
        """Authenticate user and return a session token."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login attempt for {login_data.email}")
            raise InvalidCredentialsError()

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()

        return self.issue_token(user)

    def issue_token(self, user: User) -> SessionToken:
        return create_session_token(user.id, user.email, user.role)

    def verify_token(self, token: Optional[str]) -> Identity:
        """Decode a session token into the caller's identity."""
        if not token or token == "none":
            raise AuthenticationError()

        token_payload = verify_token(token)
        if not token_payload:
            raise AuthenticationError("Invalid or expired token")

        if token_payload.token_type != "access":
            raise AuthenticationError("Invalid token type")

        if not token_payload.sub or not token_payload.role:
            raise AuthenticationError("Invalid token payload")

        try:
            return Identity(user_id=int(token_payload.sub), role=token_payload.role)
        except ValueError:
            raise AuthenticationError("Invalid token payload")

    def get_user(self, identity: Identity) -> User:
        """Load the user behind an identity."""
        user = self.db.query(User).filter(User.id == identity.user_id).first()
        if not user:
            raise AuthenticationError("User not found")
        return user

    def change_password(self, user: User, password_data: ChangePassword) -> None:
        if not verify_password(password_data.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = get_password_hash(password_data.new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")
