"""
Google Sheets Client - Append and read spreadsheet values.

Authentication:
- Per-robot OAuth tokens (access + refresh) stored with the integration
- The google-auth Credentials object refreshes expired access tokens
  transparently; callers learn about it through `AppendResult.rotated_tokens`

The googleapiclient transport is blocking, so every call runs in a worker
thread via `asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sheetsync.config.errors import TransientAPIError
from sheetsync.domains.sync.models import AppendResult, OAuthTokens

logger = logging.getLogger(__name__)

__all__ = ["GoogleSheetsClient", "TOKEN_URI", "SCOPES"]

TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/drive.readonly",
]
VALUE_INPUT_OPTION = "USER_ENTERED"


class GoogleSheetsClient:
    """
    Thin async wrapper over the Sheets v4 API.

    Example:
        >>> client = GoogleSheetsClient(client_id, client_secret)
        >>> result = await client.append_values(tokens, "1AbC...", "Sheet1!A1", [["a"], [1]])
        >>> result.rotated_tokens  # set when the access token was refreshed
    """

    def __init__(self, client_id: str, client_secret: str, token_uri: str = TOKEN_URI) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri

    def _credentials(self, tokens: OAuthTokens) -> Credentials:
        return Credentials(
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
        )

    async def append_values(
        self,
        tokens: OAuthTokens,
        spreadsheet_id: str,
        target_range: str,
        values: list[list[Any]],
    ) -> AppendResult:
        """
        Append rows after the last row of the table at `target_range`.

        Values are sent with USER_ENTERED so the API parses numbers, dates
        and formulas the same way typing them would.

        Raises:
            TransientAPIError: any API, auth refresh or network failure;
                `details["rotated_tokens"]` holds tokens refreshed before
                the failure, if any
        """
        creds = self._credentials(tokens)
        logger.info("Attempting to write to spreadsheet: %s", spreadsheet_id)

        try:
            response = await asyncio.to_thread(
                self._append, creds, spreadsheet_id, target_range, values
            )
        except Exception as e:
            raise TransientAPIError(
                f"Google Sheets append failed: {e}",
                {
                    "spreadsheet_id": spreadsheet_id,
                    "rotated_tokens": rotated_tokens(tokens, creds),
                },
            ) from e

        updates = response.get("updates", {}) if isinstance(response, dict) else {}
        return AppendResult(
            updated_rows=int(updates.get("updatedRows", 0)),
            rotated_tokens=rotated_tokens(tokens, creds),
        )

    def _append(
        self,
        creds: Credentials,
        spreadsheet_id: str,
        target_range: str,
        values: list[list[Any]],
    ) -> dict[str, Any]:
        service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return (
            service.spreadsheets()
            .values()
            .append(
                spreadsheetId=spreadsheet_id,
                range=target_range,
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": values},
            )
            .execute()
        )

    @retry(
        retry=retry_if_exception_type(TransientAPIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def read_values(
        self,
        tokens: OAuthTokens,
        spreadsheet_id: str,
        target_range: str,
    ) -> dict[str, Any]:
        """Read a range; returns the raw ValueRange payload."""
        creds = self._credentials(tokens)

        def _get() -> dict[str, Any]:
            service = build("sheets", "v4", credentials=creds, cache_discovery=False)
            return (
                service.spreadsheets()
                .values()
                .get(spreadsheetId=spreadsheet_id, range=target_range)
                .execute()
            )

        try:
            return await asyncio.to_thread(_get)
        except Exception as e:
            raise TransientAPIError(
                f"Error accessing Google Sheets: {e}", {"spreadsheet_id": spreadsheet_id}
            ) from e


def rotated_tokens(original: OAuthTokens, creds: Credentials) -> OAuthTokens | None:
    """Tokens that differ from what was loaded, or None if nothing changed."""
    access = creds.token if creds.token and creds.token != original.access_token else None
    refresh = (
        creds.refresh_token
        if creds.refresh_token and creds.refresh_token != original.refresh_token
        else None
    )
    if access is None and refresh is None:
        return None
    return OAuthTokens(access_token=access, refresh_token=refresh)
