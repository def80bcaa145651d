"""OS-level keyring backend using system credential stores.

Platform Support:
- macOS: Keychain
- Linux: Secret Service API (GNOME Keyring, KWallet)
- Windows: Windows Credential Locker
"""

import logging
from typing import cast

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from jtimer.exceptions import BackendNotAvailableError, CredentialError

logger = logging.getLogger(__name__)

SERVICE_NAMESPACE = "jtimer"


class KeyringBackend:
    """OS-level credential storage using the system keyring.

    Example:
        >>> backend = KeyringBackend()
        >>> backend.set('jira', 'api-token', 'ATATT3x...')
        >>> token = backend.get('jira', 'api-token')
        >>> backend.delete('jira', 'api-token')
    """

    @property
    def name(self) -> str:
        return "keyring"

    @property
    def persistent(self) -> bool:
        return True

    @property
    def available(self) -> bool:
        """Check if a usable keyring is configured.

        Headless systems commonly end up with keyring's ``fail`` backend,
        which has a priority of zero or less.
        """
        try:
            backend = keyring.get_keyring()
        except KeyringError as e:
            logger.debug(f"Keyring not available: {e}")
            return False
        return getattr(backend, "priority", 1) > 0

    def _require_available(self) -> None:
        if not self.available:
            raise BackendNotAvailableError(
                "Keyring backend is not available",
                suggestion="Configure an OS keyring or set JTIMER_API_TOKEN",
            )

    def get(self, service: str, key: str) -> str | None:
        """Retrieve credential from OS keyring.

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        self._require_available()

        try:
            credential = cast(str | None, keyring.get_password(f"{SERVICE_NAMESPACE}/{service}", key))
        except KeyringError as e:
            raise CredentialError(f"Keyring operation failed: {e}", reference=f"{service}/{key}") from e

        if credential is not None:
            logger.debug(f"Retrieved credential from keyring: {service}/{key}")
        return credential

    def set(self, service: str, key: str, value: str) -> None:
        """Store credential in OS keyring.

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        self._require_available()

        if not value:
            raise ValueError("Credential value cannot be empty")

        try:
            keyring.set_password(f"{SERVICE_NAMESPACE}/{service}", key, value)
        except KeyringError as e:
            raise CredentialError(f"Failed to store credential: {e}", reference=f"{service}/{key}") from e
        logger.info(f"Stored credential in keyring: {service}/{key}")

    def delete(self, service: str, key: str) -> bool:
        """Delete credential from OS keyring.

        Returns:
            True if deleted, False if not found

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        self._require_available()

        try:
            keyring.delete_password(f"{SERVICE_NAMESPACE}/{service}", key)
        except PasswordDeleteError:
            # Credential doesn't exist - not an error
            return False
        except KeyringError as e:
            raise CredentialError(f"Failed to delete credential: {e}", reference=f"{service}/{key}") from e
        logger.info(f"Deleted credential from keyring: {service}/{key}")
        return True
