"""
Authentication module - Pluggable token providers and credential hashing.
"""

from common.auth.base import AuthProvider
from common.auth.jwt_auth import JWTAuth
from common.auth.credentials import CredentialHasher
from common.auth.dependencies import bearer_token, create_auth_dependency

__all__ = ["AuthProvider", "JWTAuth", "CredentialHasher", "bearer_token", "create_auth_dependency"]
