"""URL construction for Jira Cloud sites.

Users type their Jira domain in whatever form they have at hand. This
module turns it into a site URL without any network access.
"""

from jtimer.exceptions import InvalidURLError

HOSTED_SUFFIX = "atlassian.net"
KNOWN_HOST_MARKERS = ("atlassian.net", "atlassian.com")


def normalize_site_url(domain: str) -> str:
    """Normalize a user-supplied Jira domain to a site URL.

    - ``"https://jira.example.com"``: already a URL, used verbatim
    - ``"acme.atlassian.net"``: a known host, only the scheme is added
    - ``"acme"``: a short site name, expanded to ``https://acme.atlassian.net``

    Surrounding whitespace and trailing slashes are removed. The function is
    idempotent: feeding its output back in returns the same string.

    Raises:
        InvalidURLError: If the domain is empty or contains whitespace
    """
    value = (domain or "").strip().rstrip("/")
    if not value or any(ch.isspace() for ch in value):
        raise InvalidURLError(f"Invalid Jira domain: {domain!r}")

    if value.startswith(("https://", "http://")):
        return value
    if any(marker in value for marker in KNOWN_HOST_MARKERS):
        return f"https://{value}"
    return f"https://{value}.{HOSTED_SUFFIX}"
