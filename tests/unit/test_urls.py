"""Tests for jtimer/providers/urls.py - site URL normalization."""

import pytest

from jtimer.exceptions import InvalidURLError
from jtimer.providers.urls import normalize_site_url


class TestNormalizeSiteUrl:
    @pytest.mark.parametrize(
        "domain,expected",
        [
            ("acme", "https://acme.atlassian.net"),
            ("acme.atlassian.net", "https://acme.atlassian.net"),
            ("jira.atlassian.com", "https://jira.atlassian.com"),
            ("https://acme.atlassian.net", "https://acme.atlassian.net"),
            ("http://jira.internal:8080", "http://jira.internal:8080"),
            ("https://jira.example.com/", "https://jira.example.com"),
            ("  acme  ", "https://acme.atlassian.net"),
        ],
    )
    def test_normalizes(self, domain: str, expected: str) -> None:
        assert normalize_site_url(domain) == expected

    @pytest.mark.parametrize("domain", ["acme", "acme.atlassian.net", "https://jira.example.com/", "http://h:1"])
    def test_idempotent(self, domain: str) -> None:
        once = normalize_site_url(domain)

        assert normalize_site_url(once) == once

    @pytest.mark.parametrize("domain", ["", "   ", "my site", "acme\t.atlassian.net"])
    def test_rejects_unusable(self, domain: str) -> None:
        with pytest.raises(InvalidURLError) as exc_info:
            normalize_site_url(domain)

        assert exc_info.value.requires_reconfiguration is True

