"""
Common library for reusable infrastructure components.

This package provides generic modules that can be used across projects:

- database: Async MongoDB connection and the document store gateway
- auth: JWT tokens and bcrypt credential hashing
- utils: Standard responses, exceptions, credential validation
- config: Base settings class
"""

from common.database import MongoDB, DocumentStore, MongoDocumentStore
from common.auth import AuthProvider, JWTAuth, CredentialHasher, create_auth_dependency
from common.utils import (
    success_response,
    error_response,
    APIException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    ValidationException,
    InconsistencyException,
    TransportException,
    PasswordPolicy,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    "DocumentStore",
    "MongoDocumentStore",
    # Auth
    "AuthProvider",
    "JWTAuth",
    "CredentialHasher",
    "create_auth_dependency",
    # Utils
    "success_response",
    "error_response",
    "APIException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "ValidationException",
    "InconsistencyException",
    "TransportException",
    "PasswordPolicy",
    # Config
    "BaseAppSettings",
]
