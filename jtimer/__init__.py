"""jtimer: track time against Jira issues and log it back as work logs."""

__version__ = "1.0.0"
