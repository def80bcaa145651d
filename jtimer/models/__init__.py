"""Domain and wire models.

Key Models:
    - Issue, IssueComment, User: what Jira returns, normalized
    - TimerSession, TimeLogResult: what the timer produces
    - TimeLogEntry: one row of work-log history
    - WorkLogRecord: the body posted to Jira
"""

from jtimer.models.domain import (
    COMMON_TEMPLATES,
    Issue,
    IssueComment,
    QueryTemplate,
    SubmissionOutcome,
    TimeLogEntry,
    TimeLogResult,
    TimerSession,
    User,
    WorkLogRecord,
)

__all__ = [
    "COMMON_TEMPLATES",
    "Issue",
    "IssueComment",
    "QueryTemplate",
    "SubmissionOutcome",
    "TimeLogEntry",
    "TimeLogResult",
    "TimerSession",
    "User",
    "WorkLogRecord",
]
