"""OS keychain storage for the token-signing secret.

Secrets named in :data:`CREDENTIAL_KEYS` may live in the system keychain
instead of ``.env``. ``config.KeychainSettingsSource`` reads them at
startup and ``scripts/set_auth_secret.py`` writes them. ``keyring`` is
imported lazily so a missing or broken backend degrades to "not stored".
"""

import logging
import secrets
from types import ModuleType

logger = logging.getLogger(__name__)

SERVICE_NAME = "excel-analytics"

CREDENTIAL_KEYS: frozenset[str] = frozenset({"AUTH_SECRET_KEY"})

# Entropy of a generated signing secret, in bytes
SECRET_BYTES = 48


def _keyring() -> ModuleType | None:
    try:
        import keyring
    except ImportError:
        return None
    return keyring


def _is_managed(key: str, action: str) -> bool:
    if key in CREDENTIAL_KEYS:
        return True
    logger.warning("Refusing to %s non-credential key: %s", action, key)
    return False


def get_credential(key: str) -> str | None:
    """Return the stored value for ``key``, or None if absent or unreadable."""
    backend = _keyring()
    if backend is None:
        return None
    try:
        return backend.get_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store ``value`` under ``key``.

    Returns:
        ``True`` once stored. ``False`` for unmanaged keys, blank values,
        or when no keyring backend can take the write.
    """
    if not _is_managed(key, "store"):
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store empty value for %s", key)
        return False

    backend = _keyring()
    if backend is None:
        logger.warning("keyring is not installed, cannot store %s", key)
        return False
    try:
        backend.set_password(SERVICE_NAME, key, value)
    except Exception:
        logger.warning("Failed to store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    if not _is_managed(key, "delete"):
        return False

    backend = _keyring()
    if backend is None:
        return False
    try:
        backend.delete_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("Failed to delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True


def generate_secret() -> str:
    """A fresh URL-safe signing secret."""
    return secrets.token_urlsafe(SECRET_BYTES)
