"""
User identity service.

Handles user accounts: creation with unique emails, credential checks,
profile updates and account deletion. A user's emails are ordered; the
first one is the primary email and the list is never empty.
"""

import logging
from typing import Any, Dict, List, Optional

from common.auth.credentials import CredentialHasher
from common.database import DocumentStore
from common.utils.dates import utcnow
from common.utils.exceptions import (
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from common.utils.validation import PasswordPolicy, is_valid_email, normalize_email
from toople.database import BY_EMAIL, BY_USER_DISMISSALS
from toople.models import User
from toople.services.circles.circle_service import CircleService
from toople.services.circles.membership import ensure_admin_retained

logger = logging.getLogger(__name__)

class UserService:
    """
    Handles user accounts.
    """

    def __init__(
        self,
        store: DocumentStore,
        circle_service: CircleService,
        hasher: Optional[CredentialHasher] = None,
        password_policy: Optional[PasswordPolicy] = None,
    ):
        """
        Initialize UserService.

        Args:
            store: Document store gateway
            circle_service: Used to drop memberships when a user is deleted
            hasher: Credential hasher (bcrypt)
            password_policy: Strength rules for new passwords
        """
        self._store = store
        self._circle_service = circle_service
        self._hasher = hasher or CredentialHasher()
        self._password_policy = password_policy or PasswordPolicy()

    # ─────────────────────────────────────────────────────────────
    # Validation helpers
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationException(message="Name is required", code="NAME_REQUIRED")
        return name

    @staticmethod
    def _validate_email(email: str) -> str:
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationException(message="Invalid email address", code="INVALID_EMAIL")
        return email

    def _validate_password(self, password: str) -> None:
        problems = self._password_policy.check(password)
        if problems:
            raise ValidationException(message="Password is too weak", code="WEAK_PASSWORD", errors=problems)

    async def _ensure_email_available(self, email: str, user_id: Optional[str] = None) -> None:
        rows = await self._store.query(BY_EMAIL, email)
        if any(row.id != user_id for row in rows):
            raise ConflictException(message="Email is already registered", code="EMAIL_TAKEN")

    # ─────────────────────────────────────────────────────────────
    # Creation and reading
    # ─────────────────────────────────────────────────────────────

    async def create_user(self, name: str, email: str, password: str) -> User:
        """
        Create a user account.

        Raises:
            ValidationException: If name, email or password is invalid
            ConflictException: If the email is already registered
        """
        name = self._validate_name(name)
        email = self._validate_email(email)
        self._validate_password(password)

        await self._ensure_email_available(email)

        doc = {
            "type": "user",
            "name": name,
            "emails": [email],
            "password": self._hasher.hash_credential(password),
            "createdAt": utcnow(),
        }
        user_id, _ = await self._store.create(doc)
        doc["_id"] = user_id

        logger.info(f"User {user_id} created")
        return User.from_doc(doc)

    async def get_user_doc(self, user_id: str) -> Dict[str, Any]:
        """Get raw user document (with revision) by ID."""
        doc = await self._store.get(user_id)
        if not doc or doc.get("type") != "user":
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")
        return doc

    async def get_user(self, user_id: str) -> User:
        return User.from_doc(await self.get_user_doc(user_id))

    async def user_exists(self, user_id: str) -> bool:
        doc = await self._store.get(user_id)
        return bool(doc) and doc.get("type") == "user"

    async def get_user_by_email(self, email: str) -> User:
        rows = await self._store.query(BY_EMAIL, normalize_email(email), include_docs=True)
        if not rows or not rows[0].doc:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")
        return User.from_doc(rows[0].doc)

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials for an email.

        Raises:
            UnauthorizedException: If no user has the email or the password
                does not match
        """
        rows = await self._store.query(BY_EMAIL, normalize_email(email), include_docs=True)
        doc = rows[0].doc if rows else None
        if not doc or not self._hasher.verify_credential(doc.get("password", ""), password or ""):
            logger.info("Failed authentication attempt")
            raise UnauthorizedException(message="Invalid email or password", code="INVALID_CREDENTIALS")
        return User.from_doc(doc)

    # ─────────────────────────────────────────────────────────────
    # Updates
    # ─────────────────────────────────────────────────────────────

    async def _save(self, doc: Dict[str, Any]) -> User:
        doc["_rev"] = await self._store.put(doc["_id"], doc["_rev"], doc)
        return User.from_doc(doc)

    async def update_name(self, user_id: str, name: str) -> User:
        name = self._validate_name(name)
        doc = await self.get_user_doc(user_id)
        doc["name"] = name
        return await self._save(doc)

    async def add_email(self, user_id: str, email: str) -> User:
        """Add a secondary email."""
        email = self._validate_email(email)
        doc = await self.get_user_doc(user_id)
        if email in doc["emails"]:
            raise ConflictException(message="Email already on this account", code="DUPLICATE_EMAIL")
        await self._ensure_email_available(email, user_id)
        doc["emails"].append(email)
        return await self._save(doc)

    async def remove_email(self, user_id: str, email: str) -> User:
        """
        Remove an email. If it was primary, the next one becomes primary.

        Raises:
            ValidationException: If it is the last email
            NotFoundException: If the email is not on the account
        """
        email = normalize_email(email)
        doc = await self.get_user_doc(user_id)
        if email not in doc["emails"]:
            raise NotFoundException(message="Email not found on this account", code="EMAIL_NOT_FOUND")
        if len(doc["emails"]) < 2:
            raise ValidationException(message="Cannot remove the last email address", code="LAST_EMAIL")
        doc["emails"].remove(email)
        return await self._save(doc)

    async def set_primary_email(self, user_id: str, email: str) -> User:
        """Make an email primary, adding it first if it is new."""
        email = self._validate_email(email)
        doc = await self.get_user_doc(user_id)
        emails: List[str] = doc["emails"]
        if email in emails:
            emails.remove(email)
        else:
            await self._ensure_email_available(email, user_id)
        doc["emails"] = [email] + emails
        return await self._save(doc)

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        doc = await self.get_user_doc(user_id)
        if not self._hasher.verify_credential(doc.get("password", ""), current_password or ""):
            raise UnauthorizedException(message="Current password is incorrect", code="INVALID_CREDENTIALS")
        self._validate_password(new_password)
        doc["password"] = self._hasher.hash_credential(new_password)
        await self._save(doc)
        logger.info(f"Password changed for user {user_id}")

    # ─────────────────────────────────────────────────────────────
    # Deletion
    # ─────────────────────────────────────────────────────────────

    async def delete_user(self, user_id: str) -> None:
        """
        Delete a user and their memberships and dismissals.

        Every circle is checked before anything is written, so a sole-admin
        conflict leaves the account untouched. Memberships are then removed
        one circle at a time and the user document goes last; if a step
        fails, calling this again picks up where it stopped.
        Participations are kept so event statuses never regress.

        Raises:
            ConflictException: If the user is the sole admin of a circle
                with other members, or on a concurrent modification
        """
        user_doc = await self.get_user_doc(user_id)
        circle_docs = await self._circle_service.get_circle_docs_for_user(user_id)

        for circle_doc in circle_docs:
            ensure_admin_retained(circle_doc.get("members", {}), user_id)

        for circle_doc in circle_docs:
            await self._circle_service.remove_membership(circle_doc, user_id)

        dismissal_rows = await self._store.query(BY_USER_DISMISSALS, user_id)
        for row in dismissal_rows:
            dismissal = await self._store.get(row.id)
            if dismissal:
                await self._store.delete(row.id, dismissal["_rev"])

        await self._store.delete(user_id, user_doc["_rev"])
        logger.info(
            f"User {user_id} deleted; left {len(circle_docs)} circles, "
            f"dropped {len(dismissal_rows)} dismissals"
        )
