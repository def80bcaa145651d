"""Storage for the single Jira API token.

The token lives under a fixed ``(service, key)`` pair. Reads go through the
backends in order and return the first value found; writes go to the first
available backend that keeps values beyond the current process. The value
itself is never logged.
"""

from collections.abc import Sequence

import structlog

from jtimer.credentials.backend import CredentialBackend
from jtimer.credentials.environment_backend import EnvironmentBackend
from jtimer.credentials.keyring_backend import KeyringBackend
from jtimer.exceptions import BackendNotAvailableError

log = structlog.get_logger(__name__)

TOKEN_SERVICE = "jira"
TOKEN_KEY = "api-token"


class TokenStore:
    """Save, read and delete the Jira API token."""

    def __init__(self, backends: Sequence[CredentialBackend] | None = None) -> None:
        self.backends: list[CredentialBackend] = (
            list(backends) if backends is not None else [KeyringBackend(), EnvironmentBackend()]
        )

    def _available(self) -> list[CredentialBackend]:
        return [backend for backend in self.backends if backend.available]

    def save_secret(self, value: str) -> str:
        """Store the token and return the name of the backend used.

        Raises:
            ValueError: If the token is empty
            BackendNotAvailableError: If no persistent backend can store it
        """
        value = value.strip()
        if not value:
            raise ValueError("API token cannot be empty")

        persistent = [backend for backend in self._available() if backend.persistent]
        if not persistent:
            raise BackendNotAvailableError(
                "No persistent credential backend is available",
                reference=f"{TOKEN_SERVICE}/{TOKEN_KEY}",
                suggestion="Configure an OS keyring, or export JTIMER_API_TOKEN in your shell profile",
            )

        backend = persistent[0]
        backend.set(TOKEN_SERVICE, TOKEN_KEY, value)
        log.info("api_token_saved", backend=backend.name)
        return backend.name

    def get_secret(self) -> str | None:
        for backend in self._available():
            value = backend.get(TOKEN_SERVICE, TOKEN_KEY)
            if value:
                log.debug("api_token_found", backend=backend.name)
                return value
        return None

    def delete_secret(self) -> bool:
        """Remove the token from every backend. True if anything was removed."""
        deleted = False
        for backend in self._available():
            deleted = backend.delete(TOKEN_SERVICE, TOKEN_KEY) or deleted
        log.info("api_token_deleted", deleted=deleted)
        return deleted
