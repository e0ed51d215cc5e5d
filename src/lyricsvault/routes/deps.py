"""Shared route dependencies: service registry, gateway auth and caller identity."""

from typing import TYPE_CHECKING, Optional

from fastapi import Depends, Header, HTTPException

from ..core.context import Caller

if TYPE_CHECKING:
    from ..bootstrap import AppServices

# Global services reference - set in main.py
services: Optional["AppServices"] = None


def set_services(app_services: Optional["AppServices"]) -> None:
    """Set the global services reference.

    Args:
        app_services: Wired services (None clears the reference)
    """
    global services
    services = app_services


def get_services() -> "AppServices":
    """Return the wired services.

    Raises:
        HTTPException: If the application has not finished starting
    """
    if services is None:
        raise HTTPException(500, "Services not initialized")
    return services


async def verify_api_key(
    authorization: Optional[str] = Header(None),
    app_services: "AppServices" = Depends(get_services),
) -> str:
    """Verify Bearer token matches LYRICSVAULT_API_KEY.

    Args:
        authorization: Authorization header value

    Returns:
        Validated token

    Raises:
        HTTPException: If token is invalid
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Missing or invalid Authorization header")

    token = authorization[7:]

    if not app_services.settings.LYRICSVAULT_API_KEY:
        raise HTTPException(500, "LYRICSVAULT_API_KEY not configured on server")

    if token != app_services.settings.LYRICSVAULT_API_KEY:
        raise HTTPException(401, "Invalid API key")

    return token


async def get_caller(
    x_user_id: Optional[str] = Header(None),
    api_key: str = Depends(verify_api_key),
) -> Caller:
    """Identify the end user on whose behalf the gateway is calling.

    Raises:
        HTTPException: If the X-User-Id header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(401, "Missing X-User-Id header")
    return Caller(user_id=x_user_id.strip())
