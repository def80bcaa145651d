"""Jira REST API access.

Key Components:
    - JiraRestClient: authenticated client (search, work logs, comments)
    - normalize_site_url: domain-to-URL normalization
"""

from jtimer.providers.jira_rest import JiraRestClient
from jtimer.providers.urls import normalize_site_url

__all__ = ["JiraRestClient", "normalize_site_url"]
