"""Jira Cloud client using direct REST API calls.

The client is a thin layer over ``httpx``: it builds authenticated requests,
maps HTTP status codes and transport failures onto the error taxonomy in
``jtimer.exceptions``, and decodes responses through the wire models in
``jtimer.models.wire``.

Only two failures are ever absorbed here: a 410 from the v3 search endpoint
is retried once against v2, and a failure reading one issue's work logs
during ``fetch_recent_worklogs`` skips that issue.
"""

import asyncio
import base64
import ssl
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from jtimer.config.settings import JiraConnection
from jtimer.exceptions import (
    ConnectionFailedError,
    EndpointRemovedError,
    InvalidQueryError,
    InvalidResponseError,
    InvalidURLError,
    NetworkError,
    NotAuthenticatedError,
    RequestTimeoutError,
    ServerError,
    TicketAPIError,
    TLSHandshakeError,
    UnauthorizedError,
    UntrustedCertificateError,
)
from jtimer.models.domain import Issue, TimeLogEntry, User, WorkLogRecord
from jtimer.models.wire import (
    MyselfResponse,
    SearchResponseV2,
    SearchResponseV3,
    WorklogListResponse,
    WorklogPayload,
    build_document,
    decode,
    format_jira_timestamp,
)
from jtimer.providers.urls import normalize_site_url
from jtimer.utils.connection_pool import HTTPConnectionPool

log = structlog.get_logger(__name__)

CURRENT_API_VERSION = 3
FALLBACK_API_VERSION = 2

DEFAULT_FIELDS = ("summary", "status", "assignee", "issuetype", "project", "updated", "created")
DEFAULT_MAX_RESULTS = 50
DEFAULT_WORKLOG_COMMENT = "Time tracked via JTimer"

WORKLOG_LOOKBACK_DAYS = 30
WORKLOG_ISSUE_CAP = 20

RESPONSE_SNIPPET_LENGTH = 200


def classify_transport_error(exc: BaseException) -> TicketAPIError:
    """Map a low-level transport failure onto the error taxonomy.

    TLS problems surface from httpx as ``ConnectError`` wrapping an
    ``ssl.SSLError``, so the exception chain is searched before falling back
    on the httpx exception type.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            return UntrustedCertificateError()
        if isinstance(current, ssl.SSLError):
            return TLSHandshakeError()
        current = current.__cause__ or current.__context__

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return RequestTimeoutError()
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return InvalidURLError(f"Invalid URL: {exc}")
    if isinstance(exc, httpx.ConnectError):
        return ConnectionFailedError()
    return NetworkError(str(exc) or type(exc).__name__)


class JiraRestClient:
    """Jira Cloud REST API client.

    Holds no state beyond its connection snapshot, its HTTP pool and the
    cached authenticated user. Build a new client to change configuration.

    Example:
        >>> async with JiraRestClient(settings.connection(token)) as client:
        ...     user = await client.get_current_user()
        ...     issues = await client.search_issues("assignee = currentUser()")
    """

    def __init__(self, connection: JiraConnection, pool: HTTPConnectionPool | None = None) -> None:
        """Initialize the client.

        Args:
            connection: Domain, identity and token snapshot
            pool: Pre-built connection pool (mostly for tests)
        """
        self.connection = connection
        self._pool = pool
        self.current_user: User | None = None
        self.is_authenticated = False
        self.last_error: str | None = None

    @property
    def site_url(self) -> str:
        """Normalized site URL, e.g. ``https://acme.atlassian.net``.

        Raises:
            InvalidURLError: If the configured domain is unusable
        """
        return normalize_site_url(self.connection.domain)

    def _auth_header(self) -> str:
        if not self.connection.has_credentials:
            raise NotAuthenticatedError()
        raw = f"{self.connection.email.strip()}:{self.connection.api_token}"
        return f"Basic {base64.b64encode(raw.encode('utf-8')).decode('ascii')}"

    def _get_pool(self) -> HTTPConnectionPool:
        # Credentials are checked before the URL so a blank configuration
        # reports "not authenticated" rather than "invalid URL".
        auth_header = self._auth_header()
        site_url = self.site_url
        if self._pool is None:
            self._pool = HTTPConnectionPool(
                base_url=site_url,
                timeout=self.connection.request_timeout,
                resource_timeout=self.connection.resource_timeout,
                headers={
                    "Authorization": auth_header,
                    "Accept": "application/json",
                    "User-Agent": self.connection.user_agent,
                },
            )
        return self._pool

    async def close(self) -> None:
        """Close the HTTP pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "JiraRestClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, classifying transport failures.

        Raises:
            NotAuthenticatedError: If no email/token is configured
            InvalidURLError: If the domain is unusable
            TicketAPIError: For any transport failure
        """
        pool = self._get_pool()
        try:
            response = await pool.request(method, path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError, ssl.SSLError) as e:
            error = classify_transport_error(e)
            log.warning("jira_transport_error", method=method, path=path, error=error.message)
            raise error from e

        log.debug("jira_response", method=method, path=path, status=response.status_code)
        return response

    @staticmethod
    def _snippet(response: httpx.Response) -> str:
        try:
            return response.text[:RESPONSE_SNIPPET_LENGTH]
        except (UnicodeDecodeError, httpx.ResponseNotRead):
            return ""

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError() from e

    def _raise_for_status(self, response: httpx.Response, expected: int) -> None:
        """Raise the taxonomy error for anything but ``expected``.

        Search-specific codes (400, 410) are handled by the search path.
        """
        if response.status_code == expected:
            return
        if response.status_code == 401:
            raise UnauthorizedError(response_text=self._snippet(response))
        raise ServerError(response.status_code, response_text=self._snippet(response))

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_current_user(self) -> User:
        """Fetch and cache the authenticated user.

        Raises:
            NotAuthenticatedError: If no email/token is configured
            UnauthorizedError: If Jira rejects the credentials
            TicketAPIError: For any other failure
        """
        log.info("get_current_user", site=self.connection.domain)

        response = await self._send("GET", f"/rest/api/{CURRENT_API_VERSION}/myself")
        self._raise_for_status(response, 200)

        user = decode(MyselfResponse, self._json(response)).to_user()
        self.current_user = user
        return user

    async def validate_connection(self) -> User:
        """Check the configuration by looking up the current user.

        Records the outcome on ``is_authenticated``/``last_error`` and
        re-raises any failure.
        """
        try:
            user = await self.get_current_user()
        except TicketAPIError as e:
            self.is_authenticated = False
            self.last_error = e.message
            raise
        self.is_authenticated = True
        self.last_error = None
        return user

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_issues(
        self,
        jql: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        fields: Sequence[str] = DEFAULT_FIELDS,
    ) -> list[Issue]:
        """Run a JQL search.

        Tries API v3 first. If v3 answers 410 (endpoint removed), the same
        query is retried once against v2; a second 410 is raised as
        ``EndpointRemovedError``.

        Raises:
            InvalidQueryError: On HTTP 400 (the query is wrong)
            EndpointRemovedError: If v2 also answers 410
            TicketAPIError: For any other failure
        """
        try:
            return await self._search(jql, CURRENT_API_VERSION, max_results, fields)
        except EndpointRemovedError:
            log.warning("search_endpoint_removed", api_version=CURRENT_API_VERSION, fallback=FALLBACK_API_VERSION)
            return await self._search(jql, FALLBACK_API_VERSION, max_results, fields)

    async def _search(
        self,
        jql: str,
        api_version: int,
        max_results: int,
        fields: Sequence[str],
    ) -> list[Issue]:
        log.info("search_issues", jql=jql, api_version=api_version)

        # v3 moved search to /search/jql; v2 keeps the classic endpoint
        endpoint = "/search/jql" if api_version >= 3 else "/search"
        response = await self._send(
            "GET",
            f"/rest/api/{api_version}{endpoint}",
            params={"jql": jql, "fields": ",".join(fields), "maxResults": max_results},
        )

        if response.status_code == 400:
            raise InvalidQueryError(response_text=self._snippet(response))
        if response.status_code == 410:
            raise EndpointRemovedError(response_text=self._snippet(response))
        self._raise_for_status(response, 200)

        data = self._json(response)
        if api_version >= 3:
            payloads = decode(SearchResponseV3, data).issues
        else:
            payloads = decode(SearchResponseV2, data).issues

        issues = [payload.to_issue() for payload in payloads]
        log.info("search_issues_done", api_version=api_version, count=len(issues))
        return issues

    # -------------------------------------------------------------------------
    # Work logs and comments
    # -------------------------------------------------------------------------

    async def log_work(
        self,
        issue_key: str,
        time_spent_seconds: int,
        start_time: datetime,
        comment: str | None = None,
    ) -> None:
        """Add a work log to an issue.

        Args:
            issue_key: Issue key, e.g. ``PROJ-123``
            time_spent_seconds: Duration to log
            start_time: When the work started
            comment: Work description; a placeholder is used when empty

        Raises:
            ValueError: If the duration is not positive
            TicketAPIError: If Jira does not answer 201
        """
        if time_spent_seconds <= 0:
            raise ValueError(f"time_spent_seconds must be positive, got {time_spent_seconds}")

        text = comment.strip() if comment and comment.strip() else DEFAULT_WORKLOG_COMMENT
        record = WorkLogRecord(
            time_spent_seconds=time_spent_seconds,
            comment=build_document(text),
            started=format_jira_timestamp(start_time),
        )
        log.info("log_work", issue_key=issue_key, seconds=time_spent_seconds, started=record.started)
        log.debug("log_work_body", body=record.to_payload())

        response = await self._send(
            "POST",
            f"/rest/api/{CURRENT_API_VERSION}/issue/{quote(issue_key)}/worklog",
            json=record.to_payload(),
            headers={"Content-Type": "application/json"},
        )
        self._raise_for_status(response, 201)

    async def post_comment(self, issue_key: str, text: str) -> None:
        """Add a comment to an issue.

        Raises:
            ValueError: If the text is empty
            TicketAPIError: If Jira does not answer 201
        """
        if not text or not text.strip():
            raise ValueError("Comment text cannot be empty")

        log.info("post_comment", issue_key=issue_key)

        response = await self._send(
            "POST",
            f"/rest/api/{CURRENT_API_VERSION}/issue/{quote(issue_key)}/comment",
            json={"body": build_document(text.strip())},
            headers={"Content-Type": "application/json"},
        )
        self._raise_for_status(response, 201)

    async def fetch_issue_worklogs(self, issue_key: str) -> list[WorklogPayload]:
        """All work logs on one issue, as wire records."""
        log.debug("fetch_issue_worklogs", issue_key=issue_key)

        response = await self._send("GET", f"/rest/api/{CURRENT_API_VERSION}/issue/{quote(issue_key)}/worklog")
        self._raise_for_status(response, 200)
        return decode(WorklogListResponse, self._json(response)).worklogs

    async def fetch_recent_worklogs(self, limit: int = 50) -> list[TimeLogEntry]:
        """The current user's work logs from the last 30 days, newest first.

        Phase one finds up to 20 issues the user logged work on recently;
        phase two reads each issue's work logs and keeps the user's own. A
        failure on a single issue is logged and that issue skipped.

        Raises:
            TicketAPIError: If the user lookup or the issue search fails
        """
        user = self.current_user or await self.get_current_user()

        jql = f"worklogAuthor = currentUser() AND worklogDate >= -{WORKLOG_LOOKBACK_DAYS}d ORDER BY updated DESC"
        issues = (await self.search_issues(jql, max_results=WORKLOG_ISSUE_CAP))[:WORKLOG_ISSUE_CAP]

        entries: list[TimeLogEntry] = []
        for issue in issues:
            try:
                worklogs = await self.fetch_issue_worklogs(issue.key)
                own = [
                    worklog.to_entry(issue)
                    for worklog in worklogs
                    if worklog.author is not None and user.is_same_person(worklog.author.email_address)
                ]
            except TicketAPIError as e:
                log.warning("worklog_fetch_skipped", issue_key=issue.key, error=e.message)
                continue

            entries.extend(own)

        entries.sort(key=lambda entry: entry.logged_at, reverse=True)
        log.info("fetch_recent_worklogs_done", issues=len(issues), entries=len(entries))
        return entries[:limit]

    async def fetch_recent_updates(self, days: int = 3) -> list[Issue]:
        """Issues the user is involved in that changed in the last ``days``.

        Comments are included so callers can point out activity by others
        (see ``Issue.comments_by_others``).
        """
        if days < 1:
            raise ValueError(f"days must be at least 1, got {days}")

        jql = (
            "(assignee = currentUser() OR reporter = currentUser() OR watcher = currentUser()) "
            f"AND updated >= -{days}d ORDER BY updated DESC"
        )
        return await self.search_issues(jql, fields=(*DEFAULT_FIELDS, "comment"))
