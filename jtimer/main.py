"""CLI entry point for jtimer."""

import asyncio
import sys
from collections.abc import Coroutine
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TypeVar

import click
import structlog

from jtimer.cli.credentials import credentials_group
from jtimer.config.settings import DEFAULT_CONFIG_PATH, JTimerSettings, SettingsStore
from jtimer.credentials.token_store import TokenStore
from jtimer.engine.query_fallback import IssueQueryOrchestrator
from jtimer.engine.submission import WorkLogSubmitter
from jtimer.engine.timer import ElapsedTicker, TimerStateMachine, format_duration, format_elapsed, parse_duration
from jtimer.exceptions import ConfigurationError, CredentialError, JTimerError, TicketAPIError
from jtimer.models.domain import COMMON_TEMPLATES, Issue, SubmissionOutcome, TimeLogResult
from jtimer.providers.jira_rest import JiraRestClient
from jtimer.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning jtimer errors into CLI exits."""
    try:
        return asyncio.run(coro)
    except TicketAPIError as e:
        click.echo(f"Error: {e.message}", err=True)
        if e.requires_reconfiguration:
            click.echo("Run 'jtimer configure' to update your Jira settings.", err=True)
        log.debug("command_failed", exc_info=True)
        sys.exit(1)
    except JTimerError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("command_failed", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)


def _settings(ctx: click.Context) -> JTimerSettings:
    return ctx.obj["settings"]


def _make_client(ctx: click.Context) -> JiraRestClient:
    token = ctx.obj["tokens"].get_secret()
    return JiraRestClient(_settings(ctx).connection(api_token=token))


async def _find_issue(client: JiraRestClient, issue_key: str) -> Issue:
    issues = await client.search_issues(f'key = "{issue_key}"', max_results=1)
    if not issues:
        raise click.ClickException(f"Issue not found: {issue_key}")
    return issues[0]


def _echo_issue(issue: Issue) -> None:
    assignee = issue.assignee or "Unassigned"
    click.echo(f"{issue.key:<12} {issue.status:<14} {issue.summary}  [{issue.issue_type}, {assignee}]")


def _report_submission(outcome: SubmissionOutcome) -> None:
    result = outcome.result
    if outcome.worklog_error is not None:
        click.echo(f"Error: failed to log work: {outcome.worklog_error}", err=True)
        click.echo(
            f"Tracked time kept: {result.issue.key} {format_duration(result.duration)} "
            f"started {result.start_time.isoformat()}",
            err=True,
        )
        click.echo(
            f"Retry with: jtimer log {result.issue.key} --duration {format_duration(result.duration)} "
            f"--started {result.start_time.isoformat()}",
            err=True,
        )
        sys.exit(1)

    click.echo(f"Logged {format_duration(result.duration)} to {result.issue.key}")
    if outcome.comment_error is not None:
        click.echo(f"Warning: work logged, but the comment failed: {outcome.comment_error}", err=True)
        sys.exit(1)
    if outcome.comment_posted:
        click.echo(f"Comment added to {result.issue.key}")


@click.group()
@click.option(
    "--config",
    envvar="JTIMER_CONFIG",
    default=str(DEFAULT_CONFIG_PATH),
    show_default=True,
    help="Path to configuration file",
)
@click.option("--log-level", default=None, help="Logging level (overrides the configuration)")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str | None) -> None:
    """jtimer: track time on Jira issues and log it as work logs."""
    store = SettingsStore(Path(config))
    try:
        settings = store.load()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level, json_output=False)
    ctx.obj = {"store": store, "settings": settings, "tokens": TokenStore()}


cli.add_command(credentials_group)


@cli.command()
@click.option("--domain", prompt="Jira domain (e.g. 'acme' or 'acme.atlassian.net')", help="Jira site")
@click.option("--email", prompt="Account email", help="Account email")
@click.option("--token", prompt="API token", hide_input=True, help="API token")
@click.option("--default-jql", default=None, help="Query tried first when listing issues")
@click.option("--verify/--no-verify", default=True, help="Check the credentials against Jira before saving")
@click.pass_context
def configure(
    ctx: click.Context,
    domain: str,
    email: str,
    token: str,
    default_jql: str | None,
    verify: bool,
) -> None:
    """Save the Jira domain, email and API token."""
    current = _settings(ctx)
    jira = current.jira.model_copy(update={"domain": domain.strip(), "email": email.strip()})
    if default_jql is not None:
        jira = jira.model_copy(update={"default_jql": default_jql.strip() or None})
    settings = current.model_copy(update={"jira": jira})

    if verify:

        async def _verify() -> None:
            async with JiraRestClient(settings.connection(api_token=token.strip())) as client:
                user = await client.validate_connection()
                click.echo(f"Connected as {user.display_name} <{user.email_address}>")

        _run(_verify())

    store = ctx.obj["store"]
    store.save(settings)
    try:
        backend = ctx.obj["tokens"].save_secret(token)
    except CredentialError as e:
        click.echo(f"Configuration saved to {store.path}, but the API token was not stored.", err=True)
        click.echo(f"Error: {e.message}", err=True)
        if e.suggestion:
            click.echo(f"Suggestion: {e.suggestion}", err=True)
        sys.exit(1)
    click.echo(f"Configuration saved to {store.path} (token stored in {backend})")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the authenticated Jira user."""

    async def _whoami() -> None:
        async with _make_client(ctx) as client:
            user = await client.get_current_user()
            click.echo(f"{user.display_name} <{user.email_address}> ({user.account_id})")
            click.echo(f"Site: {client.site_url}")

    _run(_whoami())


@cli.command()
@click.option("--jql", default=None, help="Explicit JQL query (no fallback)")
@click.option("--filter", "filter_text", default="", help="Filter results by key or summary")
@click.pass_context
def issues(ctx: click.Context, jql: str | None, filter_text: str) -> None:
    """List issues to track time against."""

    async def _issues() -> None:
        async with _make_client(ctx) as client:
            orchestrator = IssueQueryOrchestrator(client, preferred_query=_settings(ctx).jira.default_jql)
            outcome = await orchestrator.load_issues(jql)

        if outcome.error is not None:
            raise outcome.error

        shown = outcome.filter(filter_text)
        click.echo(f"Query: {outcome.query}")
        click.echo(f"{outcome.count} issue(s)" + (f", {len(shown)} matching '{filter_text}'" if filter_text else ""))
        for issue in shown:
            _echo_issue(issue)

    _run(_issues())


@cli.command()
def templates() -> None:
    """Show common JQL query templates."""
    for template in COMMON_TEMPLATES:
        click.echo(f"{template.name}: {template.description}")
        click.echo(f"    {template.query}")


@cli.command()
@click.argument("issue_key")
@click.option("--comment", default=None, help="Work description")
@click.option("--also-comment", is_flag=True, help="Also post the description as an issue comment")
@click.option("--yes", "-y", is_flag=True, help="Submit without confirming the duration")
@click.pass_context
def track(ctx: click.Context, issue_key: str, comment: str | None, also_comment: bool, yes: bool) -> None:
    """Time ISSUE_KEY until Enter is pressed, then log the work."""

    async def _track() -> SubmissionOutcome:
        async with _make_client(ctx) as client:
            issue = await _find_issue(client, issue_key.upper())

            machine = TimerStateMachine()
            ticker = ElapsedTicker(
                machine,
                on_tick=lambda seconds: click.echo(f"\r{issue.key} {format_elapsed(seconds)}", nl=False, err=True),
            )
            machine.start(issue)
            ticker.start()
            click.echo(f"Tracking {issue.key}: {issue.summary}", err=True)
            click.echo(issue.browse_url(client.site_url), err=True)
            click.echo("Press Enter to stop.", err=True)

            await asyncio.to_thread(sys.stdin.readline)
            result = machine.stop()
            ticker.detach()
            click.echo("", err=True)
            assert result is not None

            duration: float | None = None
            description = comment
            if not yes:
                edited = click.prompt(
                    "Duration (h:mm:ss)", default=format_duration(result.duration), value_proc=parse_duration
                )
                duration = float(edited)
                if description is None:
                    description = click.prompt("Description", default="", show_default=False)

            outcome = await WorkLogSubmitter(client).submit(
                result, description=description, also_comment=also_comment, duration=duration
            )
        return outcome

    _report_submission(_run(_track()))


@cli.command(name="log")
@click.argument("issue_key")
@click.option("--duration", required=True, help="Time spent as h:mm:ss")
@click.option(
    "--started",
    default=None,
    help="ISO start time (default: now minus the duration)",
)
@click.option("--comment", default=None, help="Work description")
@click.option("--also-comment", is_flag=True, help="Also post the description as an issue comment")
@click.pass_context
def log_command(
    ctx: click.Context,
    issue_key: str,
    duration: str,
    started: str | None,
    comment: str | None,
    also_comment: bool,
) -> None:
    """Log time on ISSUE_KEY without running a timer."""
    try:
        seconds = parse_duration(duration)
        start_time = datetime.fromisoformat(started) if started else datetime.now(UTC) - timedelta(seconds=seconds)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    if start_time.tzinfo is None:
        start_time = start_time.astimezone()

    async def _log() -> SubmissionOutcome:
        async with _make_client(ctx) as client:
            issue = await _find_issue(client, issue_key.upper())
            result = TimeLogResult(issue=issue, start_time=start_time, duration=float(seconds))
            outcome = await WorkLogSubmitter(client).submit(result, description=comment, also_comment=also_comment)
        return outcome

    _report_submission(_run(_log()))


@cli.command()
@click.option("--limit", default=50, type=click.IntRange(min=1), show_default=True, help="Maximum entries to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show your work logs from the last 30 days."""

    async def _history() -> None:
        async with _make_client(ctx) as client:
            entries = await client.fetch_recent_worklogs(limit=limit)

        if not entries:
            click.echo("No time logs yet")
            return
        for entry in entries:
            local = entry.start_time.astimezone()
            click.echo(
                f"{local:%Y-%m-%d %H:%M}  {entry.issue_key:<12} {format_duration(entry.duration)}  "
                f"{entry.description or entry.issue_summary}"
            )

    _run(_history())


@cli.command()
@click.option("--days", default=3, type=click.IntRange(min=1), show_default=True, help="Look back this many days")
@click.pass_context
def updates(ctx: click.Context, days: int) -> None:
    """Show recently updated issues you are involved in."""

    async def _updates() -> None:
        async with _make_client(ctx) as client:
            user = await client.get_current_user()
            recent = await client.fetch_recent_updates(days=days)

        if not recent:
            click.echo("No recent updates")
            return
        for issue in recent:
            _echo_issue(issue)
            for other in issue.comments_by_others(user)[-3:]:
                click.echo(f"    {other.author_name}: {other.text[:80]}")

    _run(_updates())


if __name__ == "__main__":
    cli()
