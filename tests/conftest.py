"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from jtimer.config.settings import JiraConnection
from jtimer.models.domain import Issue, User
from jtimer.utils.connection_pool import HTTPConnectionPool


@pytest.fixture
def connection() -> JiraConnection:
    """Fully configured connection snapshot."""
    return JiraConnection(
        domain="acme",
        email="dev@example.com",
        api_token="test-api-token",
    )


@pytest.fixture
def sample_user() -> User:
    return User(account_id="5b10ac8d82e05b22cc7d4ef5", display_name="Dana Dev", email_address="dev@example.com")


@pytest.fixture
def sample_issue() -> Issue:
    """Sample issue for testing."""
    return Issue(
        id="10042",
        key="PROJ-123",
        summary="Fix login redirect",
        status="In Progress",
        issue_type="Bug",
        project="Project",
        assignee="Dana Dev",
        updated=datetime(2025, 1, 6, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def issue_payload() -> Callable[..., dict[str, Any]]:
    """Factory for issue JSON as returned by the search endpoints."""

    def _make(key: str = "PROJ-123", summary: str = "Fix login redirect", **fields: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": str(10000 + int(key.rsplit("-", 1)[-1])),
            "key": key,
            "fields": {
                "summary": summary,
                "status": {"name": "In Progress"},
                "assignee": {"displayName": "Dana Dev", "accountId": "5b10ac8d82e05b22cc7d4ef5"},
                "issuetype": {"name": "Bug"},
                "project": {"name": "Project", "key": "PROJ"},
                "updated": "2025-01-06T09:00:00.000+0000",
                "created": "2025-01-02T14:30:00.000+0000",
            },
        }
        data["fields"].update(fields)
        return data

    return _make


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mocked httpx responses.

    ``json_data=None`` makes ``.json()`` raise like a non-JSON body would.
    """

    def _make(status_code: int = 200, json_data: Any = None, text: str = "") -> MagicMock:
        response = MagicMock(spec=httpx.Response)
        response.status_code = status_code
        response.text = text
        if json_data is None:
            response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        else:
            response.json.return_value = json_data
        return response

    return _make


@pytest.fixture
def mock_pool() -> AsyncMock:
    """Create a mock HTTPConnectionPool."""
    return AsyncMock(spec=HTTPConnectionPool)
