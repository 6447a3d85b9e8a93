"""
FastAPI dependencies for bearer-token authentication.

Example:
    from common.auth import JWTAuth, create_auth_dependency

    auth = JWTAuth(secret="your-secret")
    require_auth = create_auth_dependency(lambda: auth)

    @router.get("/notifications")
    async def notifications(user_id: str = Depends(require_auth)):
        ...
"""

from typing import Callable, Optional

from fastapi import Header

from common.auth.base import AuthProvider
from common.utils.exceptions import UnauthorizedException


def bearer_token(authorization: Optional[str], scheme: str = "Bearer") -> str:
    """
    Pull the token out of an ``Authorization`` header value.

    Raises:
        UnauthorizedException: If the header is missing, uses another
            scheme or carries no token
    """
    if not authorization:
        raise UnauthorizedException("Missing authorization header")

    given, _, token = authorization.partition(" ")
    if given != scheme:
        raise UnauthorizedException(
            f"Invalid authorization scheme. Expected: {scheme}",
            code="INVALID_AUTH_SCHEME",
        )
    token = token.strip()
    if not token:
        raise UnauthorizedException("Token is empty", code="EMPTY_TOKEN")
    return token


def create_auth_dependency(
    get_auth_provider: Callable[[], AuthProvider],
    scheme: str = "Bearer",
):
    """
    Build a dependency that resolves the calling user's id.

    Args:
        get_auth_provider: Returns the provider at request time, so the
            provider can be swapped after the routers are imported
        scheme: Expected authorization scheme
    """

    async def get_current_user_id(
        authorization: Optional[str] = Header(None),
    ) -> str:
        token = bearer_token(authorization, scheme)
        try:
            claims = await get_auth_provider().verify_token(token)
        except ValueError as e:
            raise UnauthorizedException(str(e), code="INVALID_TOKEN")

        user_id = claims.get("sub")
        if not user_id:
            raise UnauthorizedException("Token missing user ID", code="INVALID_TOKEN")
        return user_id

    return get_current_user_id
