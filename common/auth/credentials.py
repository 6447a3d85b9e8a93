"""
Credential hashing with bcrypt.

Passwords are pre-hashed with SHA-256 before bcrypt, which sidesteps
bcrypt's 72-byte input limit. Hashes without the pre-hash (plain bcrypt)
still verify.

Example:
    hasher = CredentialHasher()
    stored = hasher.hash_credential("Str0ng!pass")
    assert hasher.verify_credential(stored, "Str0ng!pass")
"""

import base64
import hashlib

import bcrypt as bcrypt_lib


class CredentialHasher:
    """Hash and verify user credentials."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _prehash(plaintext: str) -> bytes:
        sha256_hash = hashlib.sha256(plaintext.encode("utf-8")).digest()
        return base64.b64encode(sha256_hash)

    def hash_credential(self, plaintext: str) -> str:
        """Hash a plaintext credential."""
        salt = bcrypt_lib.gensalt(rounds=self.rounds)
        return bcrypt_lib.hashpw(self._prehash(plaintext), salt).decode("utf-8")

    def verify_credential(self, hashed: str, candidate: str) -> bool:
        """Check a candidate plaintext against a stored hash."""
        if not hashed:
            return False
        hashed_bytes = hashed.encode("utf-8")

        try:
            if bcrypt_lib.checkpw(self._prehash(candidate), hashed_bytes):
                return True
        except ValueError:
            # Malformed hash
            return False

        try:
            return bcrypt_lib.checkpw(candidate.encode("utf-8"), hashed_bytes)
        except ValueError:
            # Candidate too long for direct bcrypt, cannot match
            return False