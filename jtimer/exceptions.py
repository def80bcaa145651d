"""Custom exception hierarchy for jtimer.

This module defines the error taxonomy surfaced to the user. Transport and
HTTP failures are classified once, at the Jira client boundary, into one of
the ``TicketAPIError`` subclasses and propagated unchanged from there.

Exception Hierarchy:
    JTimerError (base)
    ├── ConfigurationError
    ├── CredentialError
    │   ├── CredentialNotFoundError
    │   └── BackendNotAvailableError
    └── TicketAPIError
        ├── NotAuthenticatedError
        ├── InvalidURLError
        ├── InvalidResponseError
        ├── UnauthorizedError
        ├── InvalidQueryError
        ├── ServerError
        ├── EndpointRemovedError
        ├── TLSHandshakeError
        ├── UntrustedCertificateError
        ├── RequestTimeoutError
        ├── ConnectionFailedError
        └── NetworkError

Example Usage:
    >>> from jtimer.exceptions import InvalidQueryError, TicketAPIError
    >>> try:
    ...     issues = await client.search_issues(jql)
    ... except InvalidQueryError:
    ...     ask_user_to_fix(jql)
    ... except TicketAPIError as e:
    ...     show_error(e.message)
"""


class JTimerError(Exception):
    """Base exception for all jtimer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(JTimerError):
    """Configuration-related errors.

    Examples:
        - Configuration file unreadable or not valid YAML
        - Invalid configuration values
    """

    pass


class CredentialError(JTimerError):
    """Credential-related errors.

    Attributes:
        message: Human-readable error description
        reference: The credential that failed (e.g., "jira/api-token")
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if reference:
            full_message = f"{message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class CredentialNotFoundError(CredentialError):
    """No credential stored for the requested service/key."""

    pass


class BackendNotAvailableError(CredentialError):
    """Requested backend is not available on this system."""

    pass


# =============================================================================
# Ticket API Errors
# =============================================================================


class TicketAPIError(JTimerError):
    """Base class for failures talking to the Jira REST API.

    Every subclass has a fixed, user-readable default message. Instances may
    carry the HTTP status code and a truncated response body for debugging.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status code (if applicable)
        response_text: Response body text (if applicable)
    """

    default_message = "Jira request failed"
    requires_reconfiguration = False

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message or self.default_message)


class NotAuthenticatedError(TicketAPIError):
    """No identity or API token is configured."""

    default_message = "Not authenticated with Jira"
    requires_reconfiguration = True


class InvalidURLError(TicketAPIError):
    """The configured domain does not produce a usable URL."""

    default_message = "Invalid URL"
    requires_reconfiguration = True


class InvalidResponseError(TicketAPIError):
    """The server answered with something that is not a usable response."""

    default_message = "Invalid response from server"


class UnauthorizedError(TicketAPIError):
    """HTTP 401: the email/token pair was rejected."""

    default_message = "Invalid credentials"
    requires_reconfiguration = True

    def __init__(self, message: str | None = None, response_text: str | None = None) -> None:
        super().__init__(message, status_code=401, response_text=response_text)


class InvalidQueryError(TicketAPIError):
    """HTTP 400 on search: the JQL query itself is wrong."""

    default_message = "Invalid JQL query"

    def __init__(self, message: str | None = None, response_text: str | None = None) -> None:
        super().__init__(message, status_code=400, response_text=response_text)


class ServerError(TicketAPIError):
    """Catch-all for unexpected non-success HTTP status codes."""

    def __init__(self, status_code: int, response_text: str | None = None) -> None:
        super().__init__(f"Server error: {status_code}", status_code=status_code, response_text=response_text)


class EndpointRemovedError(TicketAPIError):
    """HTTP 410: the endpoint no longer exists on this API version."""

    default_message = (
        "API endpoint no longer available (410). Your Jira instance may use a "
        "different API version or the search endpoint has moved."
    )

    def __init__(self, message: str | None = None, response_text: str | None = None) -> None:
        super().__init__(message, status_code=410, response_text=response_text)


class TLSHandshakeError(TicketAPIError):
    """The TLS handshake with the server failed."""

    default_message = "SSL connection failed. Check your network connection and domain."


class UntrustedCertificateError(TicketAPIError):
    """The server certificate could not be verified."""

    default_message = "Server certificate is not trusted. Contact your Jira administrator."


class RequestTimeoutError(TicketAPIError):
    """The request or the whole exchange took too long."""

    default_message = "Connection timeout. Check your network connection."


class ConnectionFailedError(TicketAPIError):
    """The host could not be reached."""

    default_message = "Cannot connect to Jira server. Check domain and network."


class NetworkError(TicketAPIError):
    """Any other transport-level failure.

    Attributes:
        detail: Description of the underlying failure
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Network error: {detail}")
