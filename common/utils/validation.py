"""
Input validation for account credentials.

Emails are compared in normalized form (trimmed, lower-cased), so the same
helper is used both when storing and when looking one up.
"""

import re
from dataclasses import dataclass
from typing import List

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SPECIAL_PATTERN = re.compile(r"[^A-Za-z0-9\s]")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    """Check an already-normalized email address."""
    return bool(_EMAIL_PATTERN.match(email))


@dataclass(frozen=True)
class PasswordPolicy:
    """
    Password strength rules.

    Example:
        problems = PasswordPolicy(min_length=10).check("weakpass")
        if problems:
            raise ValidationException(message="Password is too weak", errors=problems)
    """

    min_length: int = 8
    max_length: int = 128
    mixed_case: bool = True
    digit: bool = True
    special: bool = True

    def check(self, password: str) -> List[str]:
        """Return the list of broken rules; empty when the password is acceptable."""
        password = password or ""
        problems: List[str] = []

        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters")
        if len(password) > self.max_length:
            problems.append(f"Password must be no more than {self.max_length} characters")
        if self.mixed_case and (password.lower() == password or password.upper() == password):
            problems.append("Password must mix uppercase and lowercase letters")
        if self.digit and not any(ch.isdigit() for ch in password):
            problems.append("Password must contain at least one digit")
        if self.special and not _SPECIAL_PATTERN.search(password):
            problems.append("Password must contain at least one special character")

        return problems
