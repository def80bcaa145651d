"""Issue-list loading with a fallback cascade of default queries.

Jira sites differ in their workflow statuses, so the most specific default
query can fail (unknown status name) or come back empty. Without an explicit
query the orchestrator walks a ranked list of candidates until one returns
issues. An explicit query is run exactly once and reported as-is.

Authentication failures (``NotAuthenticatedError``, ``UnauthorizedError``)
end the cascade at once and propagate: every later candidate would be sent
with the same credentials.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from jtimer.exceptions import NotAuthenticatedError, TicketAPIError, UnauthorizedError
from jtimer.models.domain import Issue

log = structlog.get_logger(__name__)

DEFAULT_FALLBACK_QUERIES: tuple[str, ...] = (
    "assignee = currentUser() AND status NOT IN (Done, Complete, Resolved, Closed)",
    "assignee = currentUser() AND status != Done",
    "assignee = currentUser()",
    "assignee = currentUser() ORDER BY updated DESC",
)

# No later candidate can succeed after these
_FATAL_ERRORS = (NotAuthenticatedError, UnauthorizedError)


class IssueSearcher(Protocol):
    async def search_issues(self, jql: str) -> list[Issue]: ...


@dataclass(frozen=True)
class QueryOutcome:
    """What the issue list should show.

    Attributes:
        query: The query whose result is reported
        issues: Issues returned by that query (empty on error)
        error: The failure of that query, if it failed
        attempts: Every query tried, in order
    """

    query: str
    issues: list[Issue] = field(default_factory=list)
    error: TicketAPIError | None = None
    attempts: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.issues)

    def filter(self, text: str) -> list[Issue]:
        """Client-side filter on key/summary."""
        return [issue for issue in self.issues if issue.matches(text)]


class IssueQueryOrchestrator:
    """Runs an explicit query, or the fallback cascade when there is none."""

    def __init__(
        self,
        client: IssueSearcher,
        fallback_queries: Sequence[str] | None = None,
        preferred_query: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Anything with an async ``search_issues(jql)``
            fallback_queries: Replaces the default candidate list
            preferred_query: Tried before the candidates (the user's
                configured default query)
        """
        candidates = list(fallback_queries) if fallback_queries else list(DEFAULT_FALLBACK_QUERIES)
        if preferred_query and preferred_query.strip():
            preferred = preferred_query.strip()
            candidates = [preferred] + [query for query in candidates if query != preferred]
        if not candidates:
            raise ValueError("At least one fallback query is required")

        self.client = client
        self.candidates: tuple[str, ...] = tuple(candidates)

    async def load_issues(self, query: str | None = None) -> QueryOutcome:
        """Load the issue list.

        With ``query`` the query runs once and its outcome, empty or failed,
        is returned directly. Without it the candidates run in order; the
        first non-empty result wins, otherwise the last candidate's outcome
        is returned.
        """
        if query is not None:
            return await self._run(query, attempts=(query,))

        attempts: list[str] = []
        outcome: QueryOutcome | None = None
        for index, candidate in enumerate(self.candidates):
            attempts.append(candidate)
            outcome = await self._run(candidate, attempts=tuple(attempts))

            if outcome.issues:
                return outcome
            if isinstance(outcome.error, _FATAL_ERRORS):
                return outcome
            if index < len(self.candidates) - 1:
                log.info("fallback_query_next", query=candidate, error=outcome.error and outcome.error.message)

        assert outcome is not None
        return outcome

    async def _run(self, query: str, attempts: tuple[str, ...]) -> QueryOutcome:
        log.info("query_attempt", query=query)
        try:
            issues = await self.client.search_issues(query)
        except TicketAPIError as e:
            log.warning("query_failed", query=query, error=e.message)
            return QueryOutcome(query=query, error=e, attempts=attempts)

        log.info("query_succeeded", query=query, count=len(issues))
        return QueryOutcome(query=query, issues=list(issues), attempts=attempts)
