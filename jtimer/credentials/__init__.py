"""Credential storage for the Jira API token.

Backends:
    - KeyringBackend: OS keychain (macOS Keychain, GNOME Keyring, ...)
    - EnvironmentBackend: ``JTIMER_JIRA_API_TOKEN`` / ``JTIMER_API_TOKEN``
"""

from jtimer.credentials.backend import CredentialBackend
from jtimer.credentials.environment_backend import EnvironmentBackend
from jtimer.credentials.keyring_backend import KeyringBackend
from jtimer.credentials.token_store import TOKEN_KEY, TOKEN_SERVICE, TokenStore
from jtimer.exceptions import BackendNotAvailableError, CredentialError, CredentialNotFoundError

__all__ = [
    "BackendNotAvailableError",
    "CredentialBackend",
    "CredentialError",
    "CredentialNotFoundError",
    "EnvironmentBackend",
    "KeyringBackend",
    "TOKEN_KEY",
    "TOKEN_SERVICE",
    "TokenStore",
]
