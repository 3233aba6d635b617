"""Password validation against the stored user credential.

The credential lives under ``user.hashedPassword`` as
``scrypt$<n>$<r>$<p>$<salt hex>$<hash hex>``.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from lifecycle.services.store import JsonStore


SCHEME = "scrypt"
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1
SALT_BYTES = 16
KEY_BYTES = 32


def _derive(password: str, salt: bytes, n: int, r: int, p: int) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"), salt=salt, n=n, r=r, p=p, dklen=KEY_BYTES
    )


class StoreAuthenticator:
    """Validates the user password against ``user.hashedPassword``."""

    def __init__(self, store: JsonStore, key: str = "user.hashedPassword"):
        self.logger = logging.getLogger("lifecycle.auth")
        self.store = store
        self.key = key

    @staticmethod
    def hash_password(password: str, salt: Optional[bytes] = None) -> str:
        """Derive the stored credential for a password.

        Args:
            password: Plain-text password
            salt: Salt to use (random if None)

        Returns:
            Encoded scrypt credential
        """
        salt = salt if salt is not None else secrets.token_bytes(SALT_BYTES)
        digest = _derive(password, salt, SCRYPT_N, SCRYPT_R, SCRYPT_P)
        return f"{SCHEME}${SCRYPT_N}${SCRYPT_R}${SCRYPT_P}${salt.hex()}${digest.hex()}"

    @staticmethod
    def verify_password(password: str, credential: str) -> bool:
        """Check a password against an encoded credential in constant time.

        Raises:
            ValueError: If the credential is not a valid scrypt encoding
        """
        scheme, n, r, p, salt, expected = credential.split("$")
        if scheme != SCHEME:
            raise ValueError(f"Unsupported password scheme: {scheme}")
        digest = _derive(password, bytes.fromhex(salt), int(n), int(r), int(p))
        return hmac.compare_digest(digest, bytes.fromhex(expected))

    async def validate_password(self, password: str) -> bool:
        """Check a password against the stored credential.

        Args:
            password: Plain-text password supplied by the user

        Returns:
            True if it matches, False otherwise (including when no user
            exists yet or the stored credential is unreadable)
        """
        credential = await self.store.get(self.key)
        if not isinstance(credential, str) or not credential:
            self.logger.warning("No stored password, rejecting")
            return False
        try:
            return self.verify_password(password, credential)
        except ValueError as e:
            self.logger.error(f"Stored password is malformed: {e}")
            return False
