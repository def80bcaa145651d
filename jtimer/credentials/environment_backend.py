"""Environment variable backend for headless machines and CI."""

import logging
import os

logger = logging.getLogger(__name__)


class EnvironmentBackend:
    """Read-mostly credential storage in environment variables.

    ``(service, key)`` maps to ``JTIMER_<SERVICE>_<KEY>``, upper-cased with
    dashes turned into underscores, so ``('jira', 'api-token')`` is read from
    ``JTIMER_JIRA_API_TOKEN``. The legacy ``JTIMER_API_TOKEN`` name is also
    accepted for the Jira token.

    Changes made through ``set``/``delete`` only affect the current process.
    """

    @property
    def name(self) -> str:
        return "environment"

    @property
    def available(self) -> bool:
        """Environment backend is always available."""
        return True

    @property
    def persistent(self) -> bool:
        return False

    @staticmethod
    def var_name(service: str, key: str) -> str:
        return f"JTIMER_{service}_{key}".upper().replace("-", "_")

    def get(self, service: str, key: str) -> str | None:
        value = os.getenv(self.var_name(service, key))
        if value is None and (service, key) == ("jira", "api-token"):
            value = os.getenv("JTIMER_API_TOKEN")

        if value is not None:
            logger.debug(f"Retrieved credential from environment: {service}/{key}")
        return value

    def set(self, service: str, key: str, value: str) -> None:
        if not value:
            raise ValueError("Credential value cannot be empty")

        os.environ[self.var_name(service, key)] = value
        logger.debug(f"Set environment variable for {service}/{key}")

    def delete(self, service: str, key: str) -> bool:
        var_name = self.var_name(service, key)
        if var_name in os.environ:
            del os.environ[var_name]
            logger.debug(f"Deleted environment variable for {service}/{key}")
            return True
        return False
