"""
Domain models for jtimer.

These models are the normalized internal representation of what the Jira
REST API returns, plus the values produced by the timer. They are immutable:
issue data is refetched live and never mutated locally.

Example:
    Building a time log result when a timer stops::

        result = TimeLogResult(
            issue=issue,
            start_time=datetime(2025, 1, 6, 9, 0, tzinfo=UTC),
            duration=1800.0,
        )
        result.seconds  # 1800
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class User:
    """The authenticated Jira user.

    Used to decide whether a work log or comment is "mine".
    """

    account_id: str
    display_name: str
    email_address: str

    def is_same_person(self, email: str | None) -> bool:
        """Return True if ``email`` belongs to this user (case-insensitive)."""
        if not email or not self.email_address:
            return False
        return email.strip().lower() == self.email_address.strip().lower()


@dataclass(frozen=True)
class IssueComment:
    """A comment on an issue, flattened to plain text."""

    author_account_id: str | None
    author_name: str
    author_email: str | None
    text: str
    created: datetime | None = None


@dataclass(frozen=True)
class Issue:
    """A Jira issue as shown in the issue list.

    ``key`` is the human-readable identifier (e.g. ``PROJ-123``); ``id`` is
    Jira's opaque numeric id, kept as a string the way Jira returns it.
    """

    id: str
    key: str
    summary: str
    status: str
    issue_type: str
    project: str
    assignee: str | None = None
    updated: datetime | None = None
    created: datetime | None = None
    comments: tuple[IssueComment, ...] = ()

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match on key or summary.

        An empty filter matches every issue.
        """
        needle = text.strip().lower()
        if not needle:
            return True
        return needle in self.key.lower() or needle in self.summary.lower()

    def browse_url(self, site_url: str) -> str:
        """Link to the issue in the Jira web UI."""
        return f"{site_url.rstrip('/')}/browse/{self.key}"

    def comments_by_others(self, user: User) -> list[IssueComment]:
        """Comments that were not written by ``user``."""
        return [
            comment
            for comment in self.comments
            if comment.author_account_id != user.account_id and not user.is_same_person(comment.author_email)
        ]


@dataclass(frozen=True)
class TimerSession:
    """An in-flight timing session. Exists only while the timer runs."""

    issue: Issue
    start_time: datetime


@dataclass(frozen=True)
class TimeLogResult:
    """What a stopped timer produces: the issue, when it started, how long.

    ``duration`` is in seconds and never negative.
    """

    issue: Issue
    start_time: datetime
    duration: float

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"duration must be non-negative, got {self.duration}")

    @property
    def seconds(self) -> int:
        """Whole seconds, as submitted to Jira."""
        return int(self.duration)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration)

    def with_duration(self, seconds: float) -> "TimeLogResult":
        """Copy with an adjusted duration (the confirm-before-submit edit)."""
        return replace(self, duration=seconds)


@dataclass(frozen=True)
class TimeLogEntry:
    """One row of the user's work-log history, read back from Jira."""

    worklog_id: str
    issue_key: str
    issue_summary: str
    duration: float
    start_time: datetime
    logged_at: datetime
    description: str = ""


@dataclass(frozen=True)
class WorkLogRecord:
    """Request body for ``POST /issue/{key}/worklog``.

    ``comment`` is the rich-document envelope and ``started`` is already in
    Jira's wire format (see ``jtimer.models.wire.format_jira_timestamp``).
    """

    time_spent_seconds: int
    comment: dict[str, Any]
    started: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "timeSpentSeconds": self.time_spent_seconds,
            "comment": self.comment,
            "started": self.started,
        }


@dataclass(frozen=True)
class QueryTemplate:
    """A named JQL query offered as a shortcut."""

    name: str
    query: str
    description: str


COMMON_TEMPLATES: tuple[QueryTemplate, ...] = (
    QueryTemplate(
        name="My Open Issues",
        query="assignee = currentUser() AND status NOT IN (Done, Complete, Resolved, Closed)",
        description="All open issues assigned to you",
    ),
    QueryTemplate(
        name="My Recent Issues",
        query="assignee = currentUser() ORDER BY updated DESC",
        description="All your issues sorted by most recent",
    ),
    QueryTemplate(
        name="My In Progress",
        query='assignee = currentUser() AND status IN ("In Progress", "Work in Progress")',
        description="Issues you're currently working on",
    ),
    QueryTemplate(
        name="My Todo",
        query='assignee = currentUser() AND status = "To Do"',
        description="Issues ready for you to start",
    ),
    QueryTemplate(
        name="All My Issues",
        query="assignee = currentUser()",
        description="Every issue assigned to you",
    ),
    QueryTemplate(
        name="Recent Updates",
        query="assignee = currentUser() AND updated >= -7d",
        description="Your issues updated in the last week",
    ),
)


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of submitting a stopped timer to Jira.

    The work log and the optional comment are independent operations, each
    with its own error. ``result`` is always the time that was being
    submitted, so a failed submission can be retried without losing it.
    """

    result: TimeLogResult
    worklog_error: Exception | None = None
    comment_error: Exception | None = None
    comment_requested: bool = False
    comment_posted: bool = False

    @property
    def succeeded(self) -> bool:
        """Work log written and, if requested, the comment too."""
        return self.worklog_error is None and self.comment_error is None

    @property
    def partial(self) -> bool:
        """Work log written but the requested comment failed."""
        return self.worklog_error is None and self.comment_error is not None
