"""Encryption of user API keys at rest."""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from imagineer.core.config import get_settings
from imagineer.core.exceptions import ConfigurationError
from imagineer.core.logging import get_logger

logger = get_logger(__name__)

ENCRYPTED_PREFIX = "enc:"


class ApiKeyCipher:
    """Fernet encryption for stored API keys.

    Encrypted values carry the ``enc:`` prefix. Values without it are
    legacy plaintext and are returned unchanged by ``decrypt``. Without a
    key, values are stored as plaintext and a warning is logged once.
    """

    def __init__(self, key: str | None = None) -> None:
        """Initialize the cipher.

        Args:
            key: URL-safe base64 Fernet key, None to store plaintext.

        Raises:
            ConfigurationError: If the key is not a valid Fernet key.
        """
        self._warned = False
        if key:
            try:
                self._fernet: Fernet | None = Fernet(key.encode() if isinstance(key, str) else key)
            except (ValueError, TypeError) as exc:
                raise ConfigurationError("Invalid encryption key", config_key="encryption_key") from exc
        else:
            self._fernet = None

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plain: str) -> str:
        """Encrypt a key for storage."""
        if self._fernet is None:
            self._warn_plaintext()
            return plain
        return ENCRYPTED_PREFIX + self._fernet.encrypt(plain.encode()).decode()

    def decrypt(self, stored: str) -> str:
        """Recover a stored key.

        Raises:
            ConfigurationError: If the value is encrypted but cannot be
                decrypted with the configured key.
        """
        if not stored.startswith(ENCRYPTED_PREFIX):
            return stored
        if self._fernet is None:
            raise ConfigurationError(
                "Stored API key is encrypted but no encryption key is configured",
                config_key="encryption_key",
            )
        try:
            return self._fernet.decrypt(stored[len(ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken as exc:
            raise ConfigurationError(
                "Stored API key cannot be decrypted with the configured key",
                config_key="encryption_key",
            ) from exc

    def _warn_plaintext(self) -> None:
        if not self._warned:
            logger.warning("No encryption key configured, storing API keys as plaintext")
            self._warned = True


def get_cipher() -> ApiKeyCipher:
    """Cipher built from the configured encryption key."""
    secret = get_settings().auth.encryption_key
    return ApiKeyCipher(secret.get_secret_value() if secret else None)


def mask_api_key(key: str | None) -> str:
    """Show only the last four characters of a key.

    Example:
        >>> mask_api_key("sk-abcdef1234")
        '****1234'
    """
    if not key:
        return ""
    if len(key) <= 4:
        return "****"
    return "****" + key[-4:]


__all__ = [
    "ENCRYPTED_PREFIX",
    "ApiKeyCipher",
    "get_cipher",
    "mask_api_key",
]
