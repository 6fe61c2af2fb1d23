"""Authentication dependencies: bearer token or cookie to the current user"""
from typing import Callable, Dict, Optional

from fastapi import Request

from core.errors import ErrorCode, PlatformError, forbidden
from services.auth_service import decode_token

COOKIE_NAME = "access_token"


def _extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return request.cookies.get(COOKIE_NAME)


async def get_optional_user(request: Request) -> Optional[Dict]:
    """Dependency: token data or None for anonymous requests"""
    token = _extract_token(request)
    if not token:
        return None
    return decode_token(token)


async def get_current_user(request: Request) -> Dict:
    """Dependency: Returns dict with 'id' and 'role' keys"""
    token = _extract_token(request)
    if not token:
        raise PlatformError(ErrorCode.UNAUTHORIZED, "Authentication required", 401)
    user_data = decode_token(token)
    if not user_data:
        raise PlatformError(ErrorCode.UNAUTHORIZED, "Invalid or expired token", 401)
    return user_data


def require_role(*roles: str) -> Callable:
    """Dependency factory: token role must be one of roles.

    Services still check the stored profile, so a stale token cannot
    outlive a role change.
    """
    async def dependency(request: Request) -> Dict:
        user = await get_current_user(request)
        if user.get("role") not in roles:
            raise forbidden(f"This action requires the {' or '.join(roles)} role")
        return user
    return dependency
