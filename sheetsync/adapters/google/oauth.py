"""
Google OAuth - Consent URL, code exchange, user info and Drive listing.

Flow:
    /auth/google           -> consent URL (offline access, forced consent
                              so a refresh token is always issued)
    /auth/google/callback  -> exchange code -> email -> spreadsheets list
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sheetsync.config.errors import AuthError, ErrorCode, TransientAPIError
from sheetsync.domains.sync.models import OAuthTokens

from .sheets import SCOPES, TOKEN_URI

logger = logging.getLogger(__name__)

__all__ = ["GoogleOAuth", "USERINFO_URL"]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
SPREADSHEET_MIME = "application/vnd.google-apps.spreadsheet"


class GoogleOAuth:
    """Google OAuth web-client helper."""

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def _flow(self) -> Flow:
        flow = Flow.from_client_config(
            {
                "web": {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self.redirect_uri],
                }
            },
            scopes=SCOPES,
            autogenerate_code_verifier=False,
        )
        flow.redirect_uri = self.redirect_uri
        return flow

    def authorization_url(self) -> str:
        """Consent screen URL requesting offline access."""
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    async def exchange_code(self, code: str) -> OAuthTokens:
        """
        Exchange an authorization code for tokens.

        Raises:
            AuthError: Google rejected the code
        """
        flow = self._flow()
        try:
            await asyncio.to_thread(flow.fetch_token, code=code)
        except Exception as e:
            logger.warning("Google code exchange failed: %s", e)
            raise AuthError(f"Google OAuth error: {e}", code=ErrorCode.AUTH_OAUTH_FAILED) from e

        creds = flow.credentials
        return OAuthTokens(access_token=creds.token, refresh_token=creds.refresh_token)

    async def fetch_email(self, access_token: str) -> str | None:
        """Look up the account email for an access token."""
        async with httpx.AsyncClient() as client:
            response = await client.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.status_code != 200:
            logger.warning("Token validation failed: %s", response.text)
            raise AuthError("Invalid Google token", code=ErrorCode.AUTH_OAUTH_FAILED)

        return response.json().get("email")

    @retry(
        retry=retry_if_exception_type(TransientAPIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def list_spreadsheets(self, tokens: OAuthTokens) -> list[dict[str, Any]]:
        """List the user's Google Sheets files as `{id, name}` dicts."""
        creds = Credentials(
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )

        def _list() -> dict[str, Any]:
            drive = build("drive", "v3", credentials=creds, cache_discovery=False)
            return drive.files().list(q=f"mimeType='{SPREADSHEET_MIME}'", fields="files(id, name)").execute()

        try:
            response = await asyncio.to_thread(_list)
        except Exception as e:
            raise TransientAPIError(f"Drive listing failed: {e}") from e

        return response.get("files", [])
