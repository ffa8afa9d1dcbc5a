from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session
from busbooking.core.config import Settings
from busbooking.core.security import Identity, decode_token
from busbooking.db.session import get_db
from busbooking.models.user import User

bearer = HTTPBearer(auto_error=False)

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def _user_from_token(token: str, settings: Settings, db: Session) -> User | None:
    try:
        payload = decode_token(settings, token)
    except JWTError:
        return None
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        return None
    return user

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> User:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = _user_from_token(creds.credentials, settings, db)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token or inactive user")
    return user

def get_identity(user: User = Depends(get_current_user)) -> Identity:
    return Identity(user_id=user.id, role=user.role)

def get_optional_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Identity | None:
    """Guest when there is no token; a bad token is also treated as guest."""
    if not creds:
        return None
    user = _user_from_token(creds.credentials, settings, db)
    return Identity(user_id=user.id, role=user.role) if user else None

def require_roles(*roles: str):
    def _guard(identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
        return identity
    return _guard
