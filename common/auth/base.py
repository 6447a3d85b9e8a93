"""
Token provider contract.

Route handlers only ever see a user id; how the bearer token proving it is
issued, checked and withdrawn is up to the provider.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class AuthProvider(ABC):
    """Issues, verifies and revokes bearer tokens."""

    @abstractmethod
    async def create_token(self, user_id: str, **claims: Any) -> str:
        """Issue a token whose subject is `user_id`."""

    @abstractmethod
    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Decode a token and return its claims (``sub`` at least).

        Raises:
            ValueError: If the token is malformed, expired or revoked
        """

    @abstractmethod
    async def revoke_token(self, token: str) -> None:
        """Make a token unusable before it expires. Revoking twice is a no-op."""
