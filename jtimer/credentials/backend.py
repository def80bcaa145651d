"""Abstract backend protocol for credential storage."""

from typing import Protocol


class CredentialBackend(Protocol):
    """Protocol defining the interface for credential storage backends."""

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'keyring', 'environment')."""
        ...

    @property
    def available(self) -> bool:
        """Check if this backend is available on the current system."""
        ...

    @property
    def persistent(self) -> bool:
        """Whether stored values outlive the current process."""
        ...

    def get(self, service: str, key: str) -> str | None:
        """Retrieve a credential.

        Args:
            service: Service identifier (e.g., 'jira')
            key: Key within the service (e.g., 'api-token')

        Returns:
            Credential value or None if not found

        Raises:
            BackendNotAvailableError: If backend is not available
        """
        ...

    def set(self, service: str, key: str, value: str) -> None:
        """Store a credential.

        Raises:
            BackendNotAvailableError: If backend is not available
        """
        ...

    def delete(self, service: str, key: str) -> bool:
        """Delete a credential.

        Returns:
            True if credential was deleted, False if not found

        Raises:
            BackendNotAvailableError: If backend is not available
        """
        ...
