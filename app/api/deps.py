# app/api/deps.py
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.core.owner import Owner
from app.core.security import decode_access_token
from app.crud.user import get_user_by_id
from app.services.scope import resolve_scope

# Security schemes
optional_security = HTTPBearer(auto_error=False)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> User:
    """
    Resolve the user from a bearer token found in:
    - Authorization header
    - ``token`` / ``access_token`` query parameters
    - ``access_token`` cookie
    """
    token = credentials.credentials if credentials and credentials.credentials else None

    if not token:
        token = request.query_params.get("token") or request.query_params.get("access_token")

    if not token:
        token = request.cookies.get("access_token")
        # Remove "Bearer " prefix if present in cookie
        if token and token.startswith("Bearer "):
            token = token[7:]

    if not token:
        raise _unauthorized("Not authenticated")

    user_id = decode_access_token(token)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")

    user = await get_user_by_id(user_id, db)
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("Inactive user")
    return user

async def get_workspace_owner(
    x_workspace_id: Optional[uuid.UUID] = Header(None, description="Vault id; omit for the personal workspace"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> Owner:
    """Re-resolved on every request; membership may have changed since the last one."""
    return await resolve_scope(user.id, x_workspace_id or user.id, db)
