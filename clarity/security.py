"""Symmetric encryption for platform credentials.

WHAT:
    Fernet wrapper used before a connection's access token touches the
    database, and when a worker needs the plaintext back.

WHY:
    Keeps raw platform tokens out of the database, logs and API responses.

The key is TOKEN_ENCRYPTION_KEY from the validated settings.
"""

import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import CredentialError
from .settings import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def _get_cipher() -> Fernet:
    return Fernet(get_settings().TOKEN_ENCRYPTION_KEY)


def encrypt_secret(plaintext: str, *, context: str) -> str:
    """Encrypt a platform secret before persisting.

    Args:
        plaintext: Raw secret (e.g., Meta access token).
        context:   Friendly label for logs (platform/website).

    Returns:
        URL-safe base64 ciphertext suitable for DB storage.
    """
    if not plaintext:
        raise CredentialError("Cannot encrypt empty secret.")

    ciphertext = _get_cipher().encrypt(plaintext.encode("utf-8")).decode("utf-8")
    logger.info("[TOKEN_ENCRYPT] Secret encrypted for %s (length=%d)", context, len(plaintext))
    return ciphertext


def decrypt_secret(ciphertext: str, *, context: str) -> str:
    """Reverse `encrypt_secret`.

    For the event forwarding worker, which runs outside this API and needs a
    destination connection's plaintext access token to send pending events.
    Nothing in the HTTP API decrypts tokens; responses only report whether
    one is stored.

    Raises:
        CredentialError: If the stored value cannot be decrypted (wrong key or
        tampered ciphertext).
    """
    if not ciphertext:
        raise CredentialError("Cannot decrypt empty secret.")

    try:
        plaintext = _get_cipher().decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except InvalidToken as exc:
        logger.error("[TOKEN_DECRYPT] Invalid ciphertext for %s", context)
        raise CredentialError("Unable to decrypt stored token.") from exc

    logger.info("[TOKEN_DECRYPT] Secret decrypted for %s (length=%d)", context, len(plaintext))
    return plaintext
