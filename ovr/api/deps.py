"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ovr.core.security import decode_access_token
from ovr.db.session import get_db
from ovr.services.rbac import Principal

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict | None:
    """Extract and decode the current JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Decoded token payload or None
    """
    if not credentials:
        return None

    return decode_access_token(credentials.credentials)


def _principal_from_token(token: dict) -> Principal:
    try:
        return Principal.from_token_payload(token)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


async def get_current_principal(
    token: Annotated[dict | None, Depends(get_current_token)],
) -> Principal:
    """Get the authenticated principal.

    Args:
        token: Decoded JWT token

    Returns:
        Principal

    Raises:
        HTTPException: If not authenticated
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _principal_from_token(token)


async def get_optional_principal(
    token: Annotated[dict | None, Depends(get_current_token)],
) -> Principal | None:
    """Get the principal if a bearer token was sent, otherwise None."""
    if not token:
        return None

    return _principal_from_token(token)


async def get_access_token_param(
    token: Annotated[str | None, Query(description="Shared access token")] = None,
) -> str | None:
    """Read the shared-access token from the query string."""
    return token or None


async def require_principal_or_token(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    token: Annotated[str | None, Depends(get_access_token_param)],
) -> tuple[Principal | None, str | None]:
    """Accept either a bearer principal or a shared-access token.

    Raises:
        HTTPException: If neither was supplied
    """
    if principal is None and not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal, token


# Type aliases for cleaner dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
PrincipalOrToken = Annotated[
    tuple[Principal | None, str | None], Depends(require_principal_or_token)
]
DbSession = Annotated[AsyncSession, Depends(get_db)]
