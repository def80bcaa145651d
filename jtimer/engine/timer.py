"""Single-timer state machine.

The machine is either ``Idle`` or ``Running(session)``; at most one session
exists at a time. Every transition hands back the session it ended (as a
``TimeLogResult``) so the caller decides whether that time is kept or
dropped.

Example:
    >>> machine = TimerStateMachine()
    >>> machine.start(issue)
    >>> ...
    >>> result = machine.stop()
    >>> result.seconds
    1832
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from jtimer.models.domain import Issue, TimeLogResult, TimerSession

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
StateListener = Callable[["TimerState"], None]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Idle:
    """No session."""


@dataclass(frozen=True)
class Running:
    """A session is being timed."""

    session: TimerSession


TimerState = Idle | Running

IDLE = Idle()


class TimerStateMachine:
    """Tracks zero or one timing session.

    Not thread-safe: transitions are expected from a single control flow
    (one event loop).
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._state: TimerState = IDLE
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return isinstance(self._state, Running)

    @property
    def current_issue(self) -> Issue | None:
        if isinstance(self._state, Running):
            return self._state.session.issue
        return None

    def add_listener(self, listener: StateListener) -> None:
        """Call ``listener(state)`` after every transition."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _transition(self, state: TimerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _seconds_since(self, start_time: datetime) -> float:
        # Wall-clock jumps backwards must not produce negative time
        return max((self._clock() - start_time).total_seconds(), 0.0)

    def start(self, issue: Issue) -> TimeLogResult | None:
        """Start timing ``issue``.

        A running session is ended and its result returned. Callers that
        ignore the return value abandon that time. The machine goes straight
        from one session to the next without passing through ``Idle``.
        """
        previous = self._session_result()
        if previous is not None:
            log.info(
                "timer_replaced",
                previous_issue=previous.issue.key,
                previous_seconds=previous.seconds,
                issue_key=issue.key,
            )

        self._transition(Running(TimerSession(issue=issue, start_time=self._clock())))
        log.info("timer_started", issue_key=issue.key)
        return previous

    def stop(self) -> TimeLogResult | None:
        """Stop the running session and return its result.

        Returns ``None`` (and stays idle) when nothing is running.
        """
        result = self._session_result()
        if result is not None:
            self._transition(IDLE)
            log.info("timer_stopped", issue_key=result.issue.key, seconds=result.seconds)
        return result

    def _session_result(self) -> TimeLogResult | None:
        if not isinstance(self._state, Running):
            return None

        session = self._state.session
        return TimeLogResult(
            issue=session.issue,
            start_time=session.start_time,
            duration=self._seconds_since(session.start_time),
        )

    def elapsed(self) -> float:
        """Seconds since the session started; 0.0 when idle."""
        if isinstance(self._state, Running):
            return self._seconds_since(self._state.session.start_time)
        return 0.0


class ElapsedTicker:
    """Publishes the elapsed time of a running session once per interval.

    The ticker is cooperative: it runs as an asyncio task and is cancelled
    as soon as the machine goes idle.
    """

    def __init__(
        self,
        machine: TimerStateMachine,
        on_tick: Callable[[float], None],
        interval: float = 1.0,
    ) -> None:
        self.machine = machine
        self.on_tick = on_tick
        self.interval = interval
        self._task: asyncio.Task[None] | None = None
        machine.add_listener(self._on_state_change)

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin ticking. Must be called from a running event loop."""
        if self.active or not self.machine.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def detach(self) -> None:
        """Stop ticking and stop listening to the machine."""
        self.cancel()
        self.machine.remove_listener(self._on_state_change)

    def _on_state_change(self, state: TimerState) -> None:
        if isinstance(state, Idle):
            self.cancel()

    async def _run(self) -> None:
        while self.machine.is_running:
            self.on_tick(self.machine.elapsed())
            await asyncio.sleep(self.interval)


def format_elapsed(seconds: float) -> str:
    """``mm:ss`` below one hour, ``hh:mm:ss`` from then on."""
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_duration(seconds: float) -> str:
    """Always ``hh:mm:ss``."""
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_duration(text: str) -> int:
    """Parse ``h:mm:ss``, ``m:ss`` or plain seconds into whole seconds.

    Minutes and seconds must be below 60 when a larger unit is given, so
    ``"1:99:99"`` is rejected while a bare ``"90"`` means 90 seconds.

    Raises:
        ValueError: On malformed input, negative or out-of-range components
    """
    parts = text.strip().split(":")
    if not parts or len(parts) > 3 or any(not part.isdigit() for part in parts):
        raise ValueError(f"Invalid duration: {text!r} (expected h:mm:ss)")
    if any(int(part) >= 60 for part in parts[1:]):
        raise ValueError(f"Invalid duration: {text!r} (minutes and seconds must be below 60)")

    total = 0
    for part in parts:
        total = total * 60 + int(part)
    return total
