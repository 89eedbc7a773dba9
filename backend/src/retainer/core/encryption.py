"""Field encryption for plugin configurations and export URLs.

Uses Fernet symmetric encryption. The key is always passed explicitly by the
caller; nothing in this module reads it from settings, so tests can supply
their own key.

Stored representation:
- configurations are serialized as canonical JSON (sorted keys) and then
  encrypted. An absent or empty map is stored as NULL, never as an encrypted
  ``{}``, and NULL reads back as ``{}``.
- optional URLs are stored as NULL when unset or empty.
"""

import json
import logging

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import EncryptionError

logger = logging.getLogger(__name__)


class EncryptionGateway:
    """Encrypts and decrypts individual stored fields."""

    def __init__(self) -> None:
        self._fernets: dict[str, Fernet] = {}

    def _fernet(self, key: str) -> Fernet:
        if not key:
            raise EncryptionError("Encryption key not configured. Set RETAINER_DB_KEY environment variable.")
        fernet = self._fernets.get(key)
        if fernet is None:
            try:
                fernet = Fernet(key.encode())
            except (ValueError, TypeError) as e:
                raise EncryptionError(f"Invalid encryption key: {e}")
            self._fernets[key] = fernet
        return fernet

    def encrypt(self, plaintext: str, key: str) -> str:
        """Encrypt a string value for storage.

        Args:
            plaintext: The value to encrypt
            key: Fernet key (urlsafe base64)

        Returns:
            The Fernet token as a string

        Raises:
            EncryptionError: If the key is invalid

        """
        return self._fernet(key).encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str, key: str) -> str:
        """Decrypt a stored value.

        Raises:
            EncryptionError: If the data is corrupt or was written with another key

        """
        try:
            return self._fernet(key).decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Failed to decrypt stored field: invalid token or key")
            raise EncryptionError("Decryption failed: invalid token or key")

    def encrypt_configurations(self, configurations: dict[str, str] | None, key: str) -> str | None:
        if not configurations:
            return None
        blob = json.dumps(configurations, sort_keys=True, separators=(",", ":"))
        return self.encrypt(blob, key)

    def decrypt_configurations(self, ciphertext: str | None, key: str) -> dict[str, str]:
        if not ciphertext:
            return {}
        blob = self.decrypt(ciphertext, key)
        try:
            configurations = json.loads(blob)
        except json.JSONDecodeError as e:
            raise EncryptionError(f"Stored configurations are not valid JSON: {e.msg}")
        if not isinstance(configurations, dict):
            raise EncryptionError("Stored configurations are not a mapping")
        return {str(k): str(v) for k, v in configurations.items()}

    def encrypt_optional(self, value: str | None, key: str) -> str | None:
        if not value:
            return None
        return self.encrypt(value, key)

    def decrypt_optional(self, ciphertext: str | None, key: str) -> str | None:
        if not ciphertext:
            return None
        return self.decrypt(ciphertext, key)


def generate_key() -> str:
    """Generate a new Fernet key suitable for RETAINER_DB_KEY."""
    return Fernet.generate_key().decode()
