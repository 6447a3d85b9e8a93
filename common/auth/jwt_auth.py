"""
JWT token provider.

Tokens are signed with python-jose and carry a random ``jti``. Logging out
revokes that id until the token would have expired anyway; revocations are
kept in process memory, so they do not survive a restart or span workers.

Example:
    auth = JWTAuth(secret=settings.JWT_SECRET, access_token_expire_minutes=60)

    token = await auth.create_token(user.id)
    user_id = (await auth.verify_token(token))["sub"]
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt

from common.auth.base import AuthProvider

logger = logging.getLogger(__name__)


class JWTAuth(AuthProvider):
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 30,
    ):
        """
        Args:
            secret: Signing key
            algorithm: JWT algorithm (default: HS256)
            access_token_expire_minutes: Lifetime of issued tokens
        """
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = timedelta(minutes=access_token_expire_minutes)

        # jti -> expiry timestamp
        self._revoked: Dict[str, float] = {}

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise ValueError(f"Invalid token: {e}") from e

    def _prune(self) -> None:
        now = datetime.now(timezone.utc).timestamp()
        for jti in [jti for jti, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]

    async def create_token(self, user_id: str, **claims: Any) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "sub": user_id,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    async def verify_token(self, token: str) -> Dict[str, Any]:
        claims = self._decode(token)
        if claims.get("jti") in self._revoked:
            raise ValueError("Token has been revoked")
        return claims

    async def revoke_token(self, token: str) -> None:
        claims = self._decode(token)
        self._prune()
        self._revoked[claims.get("jti", "")] = float(claims.get("exp", 0))
        logger.info(f"Revoked token for user {claims.get('sub')}")
