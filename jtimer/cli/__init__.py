"""CLI command groups for jtimer.

The main entry point lives in ``jtimer.main``; this package holds command
groups registered on it.
"""

from jtimer.cli.credentials import credentials_group

__all__ = ["credentials_group"]
