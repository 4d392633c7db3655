"""
Auth dependencies: JWT from the spendos_token cookie or a Bearer header
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from spendos import config
from spendos.services.auth_service import AuthUser, decode_access_token

security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    token = request.cookies.get(config.AUTH_COOKIE_NAME)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return AuthUser.from_payload(payload)


def require_roles(*roles: str):
    """Dependency that lets through users holding any of `roles`"""

    def checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if not any(role in user.roles for role in roles):
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")
        return user

    return checker
