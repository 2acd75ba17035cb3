from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import Settings
from ..core.database import get_db
from ..core.security import Identity, UserRole, authorize
from ..models.user import User
from ..services.auth_service import AuthService

# Bearer header is optional so the session cookie can be used instead
security = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "token"

def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings

async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_cookie: Optional[str] = Cookie(None, alias=TOKEN_COOKIE),
    db: Session = Depends(get_db)
) -> Identity:
    """Verify the session token from the Authorization header or cookie."""
    token = credentials.credentials if credentials else token_cookie
    return AuthService(db).verify_token(token)

async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    return AuthService(db).get_user(identity)

# Role-based access control dependencies
def require_role(*allowed_roles: UserRole):
    """Create a dependency that requires one of the given roles."""
    async def role_checker(
        identity: Identity = Depends(get_current_identity)
    ) -> Identity:
        return authorize(identity, *allowed_roles)

    return role_checker

get_admin_identity = require_role(UserRole.ADMIN)
