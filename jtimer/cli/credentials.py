"""CLI commands for managing the stored Jira API token.

The token is kept in the OS keyring under a fixed service/key pair. On
machines without a usable keyring it can be supplied through the
``JTIMER_JIRA_API_TOKEN`` (or ``JTIMER_API_TOKEN``) environment variable.

Commands:
    - set: Store the token
    - show: Display the stored token (masked by default)
    - delete: Remove the token
    - test: Check availability of credential backends
"""

import sys

import click

from jtimer.credentials import (
    CredentialError,
    CredentialNotFoundError,
    EnvironmentBackend,
    KeyringBackend,
    TOKEN_KEY,
    TOKEN_SERVICE,
    TokenStore,
)


def _fail(error: CredentialError) -> None:
    click.echo(click.style(f"Error: {error.message}", fg="red"), err=True)
    if error.suggestion:
        click.echo(click.style(f"Suggestion: {error.suggestion}", fg="yellow"), err=True)
    sys.exit(1)


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:4] + "*" * (len(value) - 8) + value[-4:]
    return "*" * len(value)


@click.group(name="credentials")
def credentials_group() -> None:
    """Manage the Jira API token.

    Examples:

        # Store the token in the OS keyring
        jtimer credentials set

        # Check which backends work on this machine
        jtimer credentials test
    """
    pass


@credentials_group.command(name="set")
@click.option(
    "--value",
    prompt="API token",
    hide_input=True,
    confirmation_prompt=True,
    help="Token value (will prompt if not provided)",
)
def set_credential(value: str) -> None:
    """Store the Jira API token."""
    try:
        backend = TokenStore().save_secret(value)
    except CredentialError as e:
        _fail(e)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    else:
        click.echo(click.style(f"Token stored in {backend}", fg="green"))


@credentials_group.command(name="show")
@click.option("--show-value", is_flag=True, help="Show full token (default: masked)")
def show_credential(show_value: bool) -> None:
    """Display the stored Jira API token."""
    try:
        value = TokenStore().get_secret()
        if value is None:
            raise CredentialNotFoundError(
                "No API token stored",
                reference=f"{TOKEN_SERVICE}/{TOKEN_KEY}",
                suggestion="Run 'jtimer credentials set' or 'jtimer configure'",
            )
    except CredentialError as e:
        _fail(e)
        return

    click.echo(f"Token: {value if show_value else _mask(value)}")
    if not show_value:
        click.echo(click.style("Use --show-value to display the full token", fg="yellow"))


@credentials_group.command(name="delete")
@click.confirmation_option(prompt="Delete the stored Jira API token?")
def delete_credential() -> None:
    """Remove the stored Jira API token."""
    try:
        deleted = TokenStore().delete_secret()
    except CredentialError as e:
        _fail(e)
        return

    if deleted:
        click.echo(click.style("Token deleted", fg="green"))
    else:
        click.echo(click.style("No stored token found", fg="yellow"))


@credentials_group.command(name="test")
def test_backends() -> None:
    """Check which credential backends are available."""
    for backend in (KeyringBackend(), EnvironmentBackend()):
        if backend.available:
            click.echo(click.style(f"{backend.name}: available", fg="green"))
        else:
            click.echo(click.style(f"{backend.name}: not available", fg="red"))
