"""Submitting stopped timers to Jira.

The work log and the optional "also add as comment" are two independent
requests with independently reported outcomes. Failures are captured on the
returned ``SubmissionOutcome`` together with the time being submitted, so a
failed submission never loses tracked time.
"""

from datetime import datetime
from typing import Protocol

import structlog

from jtimer.exceptions import TicketAPIError
from jtimer.models.domain import Issue, SubmissionOutcome, TimeLogEntry, TimeLogResult

log = structlog.get_logger(__name__)


class WorkLogClient(Protocol):
    async def log_work(
        self, issue_key: str, time_spent_seconds: int, start_time: datetime, comment: str | None = None
    ) -> None: ...

    async def post_comment(self, issue_key: str, text: str) -> None: ...


class WorkLogSubmitter:
    """Turns a ``TimeLogResult`` into a Jira work log (and maybe a comment)."""

    def __init__(self, client: WorkLogClient) -> None:
        self.client = client

    async def submit(
        self,
        result: TimeLogResult,
        description: str | None = None,
        also_comment: bool = False,
        duration: float | None = None,
    ) -> SubmissionOutcome:
        """Submit ``result``.

        Args:
            result: The stopped timer
            description: Work description for the log (and the comment)
            also_comment: Also post the description as an issue comment
            duration: Adjusted duration in seconds, replacing the measured one

        Returns:
            The outcome; ``outcome.result`` carries the (adjusted) time
        """
        if duration is not None:
            result = result.with_duration(duration)

        text = (description or "").strip()
        comment_requested = also_comment and bool(text)

        try:
            await self.client.log_work(
                issue_key=result.issue.key,
                time_spent_seconds=result.seconds,
                start_time=result.start_time,
                comment=text or None,
            )
        except (TicketAPIError, ValueError) as e:
            log.error("worklog_submit_failed", issue_key=result.issue.key, seconds=result.seconds, error=str(e))
            return SubmissionOutcome(result=result, worklog_error=e, comment_requested=comment_requested)

        log.info("worklog_submitted", issue_key=result.issue.key, seconds=result.seconds)

        if not comment_requested:
            return SubmissionOutcome(result=result)

        try:
            await self.client.post_comment(issue_key=result.issue.key, text=text)
        except TicketAPIError as e:
            log.error("comment_submit_failed", issue_key=result.issue.key, error=e.message)
            return SubmissionOutcome(result=result, comment_error=e, comment_requested=True)

        return SubmissionOutcome(result=result, comment_requested=True, comment_posted=True)

    async def resubmit_entry(
        self,
        entry: TimeLogEntry,
        issue: Issue,
        description: str | None = None,
        duration: float | None = None,
        also_comment: bool = False,
    ) -> SubmissionOutcome:
        """Submit a history entry again, optionally edited.

        This creates a new work log; the original entry is left in place.
        """
        if issue.key != entry.issue_key:
            raise ValueError(f"Issue {issue.key} does not match history entry {entry.issue_key}")

        result = TimeLogResult(issue=issue, start_time=entry.start_time, duration=entry.duration)
        return await self.submit(
            result,
            description=entry.description if description is None else description,
            also_comment=also_comment,
            duration=duration,
        )
