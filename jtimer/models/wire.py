"""
Wire formats of the Jira REST API.

Responses are decoded into these pydantic models first and only then mapped
into the stable domain records in ``jtimer.models.domain``. Shapes that
differ between API versions (search results, comment bodies) are handled
here so that the version fallback never leaks into the domain model.

Atlassian Document Format (ADF):
    API v3 requires comment and work-log bodies as a rich document rather
    than a plain string::

        {"type": "doc", "version": 1, "content": [
            {"type": "paragraph", "content": [
                {"type": "text", "text": "Fixed the login bug"}
            ]}
        ]}

    API v2 returns the same bodies as plain strings.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jtimer.exceptions import InvalidResponseError
from jtimer.models.domain import Issue, IssueComment, TimeLogEntry, User

ModelT = TypeVar("ModelT", bound=BaseModel)

JIRA_TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z")


def format_jira_timestamp(value: datetime) -> str:
    """Format a datetime the way Jira's work-log endpoint requires.

    The result is UTC with millisecond precision and a numeric ``+0000``
    offset. Jira rejects the ``Z`` suffix that ``isoformat()``-style
    formatters can produce. Naive datetimes are taken to be UTC.

    >>> format_jira_timestamp(datetime(2025, 1, 6, 9, 30, 5, 123456, tzinfo=UTC))
    '2025-01-06T09:30:05.123+0000'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}+0000"


def parse_jira_timestamp(value: str) -> datetime:
    """Parse a Jira timestamp (``+0000``, ``+00:00`` or ``Z`` offsets).

    Raises:
        ValueError: If the string is not a recognizable timestamp
    """
    for fmt in JIRA_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized Jira timestamp: {value!r}")


def decode(model: type[ModelT], data: Any) -> ModelT:
    """Validate raw JSON into a wire model.

    Raises:
        InvalidResponseError: If the payload does not have the expected shape
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(f"Unexpected response from Jira: {e.error_count()} invalid field(s)") from e


# =============================================================================
# Atlassian Document Format
# =============================================================================


class AdfNode(BaseModel):
    """One node of an ADF tree (doc, paragraph, text, hardBreak, ...)."""

    model_config = ConfigDict(extra="ignore")

    type: str
    text: str | None = None
    version: int | None = None
    content: list[AdfNode] = Field(default_factory=list)


def build_document(text: str) -> dict[str, Any]:
    """Wrap plain text in a doc -> paragraph -> text envelope."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


def document_to_text(body: Any) -> str:
    """Flatten a comment body back to plain text.

    ADF documents are walked depth-first and every text node is concatenated
    in document order. Plain strings (API v2) are returned unchanged.

    Raises:
        InvalidResponseError: If ``body`` is not a well-formed document
    """
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, AdfNode):
        node = body
    else:
        try:
            node = AdfNode.model_validate(body)
        except ValidationError as e:
            raise InvalidResponseError("Unexpected comment body from Jira") from e
    parts: list[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.text is not None:
            parts.append(current.text)
        stack.extend(reversed(current.content))
    return "".join(parts)


# =============================================================================
# Users
# =============================================================================


class JiraAccount(BaseModel):
    """User object as embedded in issues, comments and work logs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: str | None = Field(default=None, alias="accountId")
    display_name: str = Field(default="", alias="displayName")
    email_address: str | None = Field(default=None, alias="emailAddress")


class MyselfResponse(BaseModel):
    """``GET /rest/api/{2,3}/myself``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: str = Field(alias="accountId")
    display_name: str = Field(alias="displayName")
    email_address: str = Field(default="", alias="emailAddress")

    def to_user(self) -> User:
        return User(
            account_id=self.account_id,
            display_name=self.display_name,
            email_address=self.email_address,
        )


# =============================================================================
# Issues and search
# =============================================================================


class NamedRef(BaseModel):
    """Status, issue type and project all arrive as objects with a name."""

    model_config = ConfigDict(extra="ignore")

    name: str


class CommentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    author: JiraAccount | None = None
    body: Any = None
    created: datetime | None = None

    @field_validator("created", mode="before")
    @classmethod
    def _parse_created(cls, value: Any) -> Any:
        return parse_jira_timestamp(value) if isinstance(value, str) else value

    def to_comment(self) -> IssueComment:
        author = self.author or JiraAccount()
        return IssueComment(
            author_account_id=author.account_id,
            author_name=author.display_name,
            author_email=author.email_address,
            text=document_to_text(self.body),
            created=self.created,
        )


class CommentPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    comments: list[CommentPayload] = Field(default_factory=list)


class IssueFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str
    status: NamedRef
    issuetype: NamedRef
    project: NamedRef
    assignee: JiraAccount | None = None
    updated: datetime | None = None
    created: datetime | None = None
    comment: CommentPage | None = None

    @field_validator("updated", "created", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return parse_jira_timestamp(value) if isinstance(value, str) else value


class IssuePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    key: str
    fields: IssueFields

    def to_issue(self) -> Issue:
        fields = self.fields
        comments = tuple(c.to_comment() for c in fields.comment.comments) if fields.comment else ()
        return Issue(
            id=self.id,
            key=self.key,
            summary=fields.summary,
            status=fields.status.name,
            issue_type=fields.issuetype.name,
            project=fields.project.name,
            assignee=fields.assignee.display_name if fields.assignee else None,
            updated=fields.updated,
            created=fields.created,
            comments=comments,
        )


class SearchResponseV2(BaseModel):
    """``GET /rest/api/2/search``: offset pagination with a total."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    issues: list[IssuePayload]
    total: int | None = None
    start_at: int | None = Field(default=None, alias="startAt")
    max_results: int | None = Field(default=None, alias="maxResults")


class SearchResponseV3(BaseModel):
    """``GET /rest/api/3/search/jql``: token pagination, no total."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    issues: list[IssuePayload]
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
    is_last: bool | None = Field(default=None, alias="isLast")


# =============================================================================
# Work logs
# =============================================================================


class WorklogPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    author: JiraAccount | None = None
    comment: Any = None
    started: datetime
    time_spent_seconds: int = Field(alias="timeSpentSeconds")
    created: datetime | None = None
    updated: datetime | None = None

    @field_validator("started", "created", "updated", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return parse_jira_timestamp(value) if isinstance(value, str) else value

    def to_entry(self, issue: Issue) -> TimeLogEntry:
        return TimeLogEntry(
            worklog_id=self.id,
            issue_key=issue.key,
            issue_summary=issue.summary,
            duration=float(self.time_spent_seconds),
            start_time=self.started,
            logged_at=self.created or self.started,
            description=document_to_text(self.comment),
        )


class WorklogListResponse(BaseModel):
    """``GET /rest/api/3/issue/{key}/worklog``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    worklogs: list[WorklogPayload] = Field(default_factory=list)
    total: int | None = None
    start_at: int | None = Field(default=None, alias="startAt")
    max_results: int | None = Field(default=None, alias="maxResults")
