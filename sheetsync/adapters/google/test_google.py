"""
Tests for the Google Sheets and OAuth adapters.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from sheetsync.config.errors import AuthError, TransientAPIError
from sheetsync.domains.sync.models import OAuthTokens

from .oauth import USERINFO_URL, GoogleOAuth
from .sheets import GoogleSheetsClient

TOKENS = OAuthTokens(access_token="access-1", refresh_token="refresh-1")


@pytest.fixture
def mock_build() -> Generator[MagicMock, None, None]:
    """Mock googleapiclient's service builder."""
    with patch("sheetsync.adapters.google.sheets.build") as mock:
        yield mock


@pytest.fixture
def client() -> GoogleSheetsClient:
    return GoogleSheetsClient("client-id", "client-secret")


def _append_call(mock_build: MagicMock) -> MagicMock:
    return mock_build.return_value.spreadsheets.return_value.values.return_value.append


async def test_append_sends_user_entered_values(
    client: GoogleSheetsClient, mock_build: MagicMock
) -> None:
    """Test rows go to the given range with USER_ENTERED parsing."""
    append = _append_call(mock_build)
    append.return_value.execute.return_value = {"updates": {"updatedRows": 3}}

    result = await client.append_values(TOKENS, "sheet-123", "Sheet1!A1", [["a"], [1], [2]])

    append.assert_called_once_with(
        spreadsheetId="sheet-123",
        range="Sheet1!A1",
        valueInputOption="USER_ENTERED",
        body={"values": [["a"], [1], [2]]},
    )
    assert result.updated_rows == 3
    assert result.rotated_tokens is None


async def test_append_reports_refreshed_tokens(
    client: GoogleSheetsClient, mock_build: MagicMock
) -> None:
    """Test a refresh during the call is surfaced as rotated tokens."""
    captured: dict[str, Any] = {}

    def _build(*args: Any, credentials: Any, **kwargs: Any) -> MagicMock:
        captured["creds"] = credentials
        return service

    def _execute() -> dict[str, Any]:
        captured["creds"].token = "access-2"
        captured["creds"]._refresh_token = "refresh-2"
        return {"updates": {"updatedRows": 1}}

    service = MagicMock()
    service.spreadsheets.return_value.values.return_value.append.return_value.execute.side_effect = _execute
    mock_build.side_effect = _build

    result = await client.append_values(TOKENS, "sheet-123", "Sheet1!A1", [["a"]])

    assert result.rotated_tokens == OAuthTokens(access_token="access-2", refresh_token="refresh-2")


async def test_append_failure_is_transient(
    client: GoogleSheetsClient, mock_build: MagicMock
) -> None:
    _append_call(mock_build).return_value.execute.side_effect = OSError("connection reset")

    with pytest.raises(TransientAPIError) as exc_info:
        await client.append_values(TOKENS, "sheet-123", "Sheet1!A1", [["a"]])

    assert exc_info.value.details["spreadsheet_id"] == "sheet-123"
    assert exc_info.value.details["rotated_tokens"] is None


async def test_read_values(client: GoogleSheetsClient, mock_build: MagicMock) -> None:
    get = mock_build.return_value.spreadsheets.return_value.values.return_value.get
    get.return_value.execute.return_value = {"range": "Sheet1!A1:D5", "values": [["x"]]}

    data = await client.read_values(TOKENS, "sheet-123", "Sheet1!A1:D5")

    assert data["values"] == [["x"]]
    get.assert_called_once_with(spreadsheetId="sheet-123", range="Sheet1!A1:D5")


# --- OAuth Tests ---


@pytest.fixture
def oauth() -> GoogleOAuth:
    return GoogleOAuth("client-id", "client-secret", "http://localhost:8080/auth/google/callback")


def test_authorization_url_requests_offline_access(oauth: GoogleOAuth) -> None:
    url = oauth.authorization_url()
    assert url.startswith("https://accounts.google.com/o/oauth2/auth")
    assert "access_type=offline" in url
    assert "prompt=consent" in url
    assert "spreadsheets" in url


async def test_fetch_email(oauth: GoogleOAuth) -> None:
    response = httpx.Response(200, json={"email": "owner@example.com"}, request=httpx.Request("GET", USERINFO_URL))
    with patch("httpx.AsyncClient.get", return_value=response):
        assert await oauth.fetch_email("access-1") == "owner@example.com"


async def test_fetch_email_rejected_token(oauth: GoogleOAuth) -> None:
    response = httpx.Response(401, text="invalid", request=httpx.Request("GET", USERINFO_URL))
    with patch("httpx.AsyncClient.get", return_value=response):
        with pytest.raises(AuthError):
            await oauth.fetch_email("bad")


async def test_list_spreadsheets(oauth: GoogleOAuth) -> None:
    with patch("sheetsync.adapters.google.oauth.build") as mock_build:
        files = mock_build.return_value.files.return_value.list
        files.return_value.execute.return_value = {"files": [{"id": "1", "name": "Leads"}]}

        result = await oauth.list_spreadsheets(TOKENS)

    assert result == [{"id": "1", "name": "Leads"}]
    assert "spreadsheet" in files.call_args.kwargs["q"]
