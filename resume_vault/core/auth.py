"""
Authentication Utility - JWT bearer tokens.

Token issuance belongs to the identity provider; this module only verifies
tokens and turns their claims into a Principal. create_access_token exists
for scripts and tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from resume_vault.core.config import get_settings
from resume_vault.core.errors import PermissionDeniedError

ADMIN_ROLE = "admin"

# Bearer token extractor (we raise 401 ourselves so the response is stable)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def can_modify(self, owner_id: str) -> bool:
        """Owners and admins may change a resume."""
        return self.is_admin or self.id == owner_id


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """
    FastAPI dependency - Get the authenticated principal.

    Usage:
        @router.post("/protected")
        async def route(principal: Principal = Depends(get_current_principal)):
            ...
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    principal_id = payload.get("sub")
    if not principal_id:
        raise credentials_exception

    return Principal(id=str(principal_id), role=payload.get("role") or "user")


async def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Dependency - Require admin role."""
    if not principal.is_admin:
        raise PermissionDeniedError("Permission denied. Admin access required.")
    return principal
