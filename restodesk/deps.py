from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from restodesk.config import settings
from restodesk.db import get_db
from restodesk.models.core import User, UserRole

auth_scheme = HTTPBearer(auto_error=False)

def require_auth(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> str:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = jwt.decode(creds.credentials, settings.APP_SECRET, algorithms=["HS256"], options={"verify_aud": False})
        return data["sub"]
    except (jwt.InvalidTokenError, KeyError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def require_role(*roles: UserRole):
    """Dependency factory: caller must be an active user holding one of `roles`."""
    allowed = set(roles)

    def _dep(sub: str = Depends(require_auth), db: Session = Depends(get_db)) -> str:
        # role is read from the store so demotions take effect before token expiry
        user = db.get(User, sub)
        if not user or not user.active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return sub
    return _dep

require_owner = require_role(UserRole.OWNER)
require_manager = require_role(UserRole.OWNER, UserRole.MANAGER)
