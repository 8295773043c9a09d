"""FastAPI dependencies for settings, authentication, and shared per-app state."""

from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, Query, Request
from jwt import PyJWTError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .config import Settings
from .exceptions import AuthenticationError, AuthorizationError
from .locks import VenueLocks


class CurrentUser(BaseModel):
    """Identity carried by a verified bearer token."""

    user_id: UUID
    tenant_id: UUID
    role: str

    @property
    def is_staff(self) -> bool:
        """Owners and managers administer every venue and booking of their tenant."""
        return self.role in ("owner", "manager")


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_venue_locks(request: Request) -> VenueLocks:
    """Per-application venue lock registry."""
    return request.app.state.venue_locks


class PageParams(BaseModel):
    """Resolved offset pagination."""

    page: int
    limit: int


def get_page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: Optional[int] = Query(None, ge=1, description="Page size"),
    settings: Settings = Depends(get_app_settings),
) -> PageParams:
    """Default the page size from settings and cap it at the configured maximum."""
    size = min(limit or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, limit=size)


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token
        settings: Application settings holding the verification secret

    Returns:
        CurrentUser: Identity from the validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError("No token provided")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid token format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except PyJWTError:
        raise AuthenticationError("Invalid token")

    try:
        return CurrentUser(
            user_id=payload.get("sub") or payload.get("userId"),
            tenant_id=payload.get("tenant_id") or payload.get("tenantId"),
            role=payload.get("role", "customer"),
        )
    except PydanticValidationError:
        raise AuthenticationError("Invalid token payload")


def require_role(*allowed_roles: str):
    """Build a dependency that admits only the given roles."""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed_roles:
            raise AuthorizationError(required_roles=list(allowed_roles))
        return user

    return checker


RequiredAuth = Depends(get_current_user)
StaffOnly = Depends(require_role("owner", "manager"))
VenueLockRegistry = Depends(get_venue_locks)
Pagination = Depends(get_page_params)
