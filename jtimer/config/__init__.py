"""Configuration for jtimer."""

from jtimer.config.settings import JiraConnection, JTimerSettings, SettingsStore

__all__ = ["JTimerSettings", "JiraConnection", "SettingsStore"]
