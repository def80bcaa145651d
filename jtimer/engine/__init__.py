"""Core behaviour: the timer, issue-list loading and work-log submission."""

from jtimer.engine.query_fallback import DEFAULT_FALLBACK_QUERIES, IssueQueryOrchestrator, QueryOutcome
from jtimer.engine.submission import WorkLogSubmitter
from jtimer.engine.timer import ElapsedTicker, Idle, Running, TimerStateMachine

__all__ = [
    "DEFAULT_FALLBACK_QUERIES",
    "ElapsedTicker",
    "Idle",
    "IssueQueryOrchestrator",
    "QueryOutcome",
    "Running",
    "TimerStateMachine",
    "WorkLogSubmitter",
]
