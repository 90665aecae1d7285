"""
Security and identity for the CCP Guard API.

Identities arrive as signed JWT bearer tokens issued by the surrounding
back-office. Roles are mapped to an explicit capability set instead of
being string-matched at each call site.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ccpguard.app.core.config import get_settings
from ccpguard.app.core.logging import staff_id_ctx

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token")


class Role:
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    CHEF = "chef"
    STAFF = "staff"


class Capability(str, Enum):
    RECORD_CHECK = "ccp:check:record"
    RECORD_CORRECTIVE_ACTION = "ccp:action:record"
    READ_INCIDENTS = "incident:read"
    ANNOTATE_INCIDENT = "incident:annotate"
    RESOLVE_INCIDENT = "incident:resolve"
    RECONCILE = "incident:reconcile"


_STAFF_CAPABILITIES = frozenset({
    Capability.RECORD_CHECK,
    Capability.RECORD_CORRECTIVE_ACTION,
    Capability.RESOLVE_INCIDENT,
})

_MANAGEMENT_CAPABILITIES = _STAFF_CAPABILITIES | {
    Capability.READ_INCIDENTS,
    Capability.ANNOTATE_INCIDENT,
}

ROLE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    Role.OWNER: _MANAGEMENT_CAPABILITIES | {Capability.RECONCILE},
    Role.ADMIN: _MANAGEMENT_CAPABILITIES | {Capability.RECONCILE},
    Role.MANAGER: _MANAGEMENT_CAPABILITIES,
    Role.CHEF: _STAFF_CAPABILITIES,
    Role.STAFF: _STAFF_CAPABILITIES,
}


class User(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str = Role.STAFF

    @property
    def display_name(self) -> Optional[str]:
        return self.full_name or self.email


def has_role(user: Optional[User], roles: Iterable[str]) -> bool:
    return user is not None and user.role in set(roles)


def has_capability(user: Optional[User], capability: Capability) -> bool:
    if user is None:
        return False
    return capability in ROLE_CAPABILITIES.get(user.role, frozenset())


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """
    Generate a signed JWT token.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    """
    Validate the JWT token and build the acting identity.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = User(
        id=user_id,
        email=payload.get("email"),
        full_name=payload.get("name"),
        role=payload.get("role", Role.STAFF),
    )
    staff_id_ctx.set(user.id)
    return user


def require_capability(capability: Capability):
    """Dependency factory rejecting identities without the capability."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not has_capability(user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not enough permissions. Required capability: {capability.value}",
            )
        return user

    return _check
