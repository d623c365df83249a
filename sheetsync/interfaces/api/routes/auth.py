"""
Auth Routes - Registration, login, API keys and Google OAuth.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from sheetsync.adapters.google import GoogleOAuth, GoogleSheetsClient
from sheetsync.adapters.sqlite import SQLiteRepository
from sheetsync.config import Settings, get_settings
from sheetsync.domains.identity import (
    MIN_PASSWORD_LENGTH,
    Credentials,
    User,
    generate_api_key,
    hash_password,
    issue_session_token,
    needs_rehash,
    verify_password,
)
from sheetsync.domains.sync import OAuthTokens
from sheetsync.interfaces.api.auth import SESSION_COOKIE, get_current_user
from sheetsync.interfaces.api.deps import get_oauth, get_repository, get_sheets_client

logger = logging.getLogger(__name__)

router = APIRouter()

SHEET_PREVIEW_RANGE = "Sheet1!A1:D5"


class SheetDataRequest(BaseModel):
    """Spreadsheet to preview."""

    spreadsheet_id: str = Field(..., alias="spreadsheetId", min_length=1)

    model_config = {"populate_by_name": True}


def _start_session(response: Response, user: User, settings: Settings) -> str:
    token = issue_session_token(
        user.id,
        settings.jwt_secret,
        expiry_hours=settings.jwt_expiry_hours,
        algorithm=settings.jwt_algorithm,
    )
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        max_age=settings.jwt_expiry_hours * 3600,
    )
    return token


@router.post("/register")
async def register(
    body: Credentials,
    response: Response,
    repo: SQLiteRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Create an account and start a session."""
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")
    if not body.password or len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail="Password is required and must be at least 6 characters",
        )

    if await repo.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="User already exists")

    user = await repo.create_user(body.email, hash_password(body.password))
    _start_session(response, user, settings)
    logger.info("Registered user %s", user.id)
    return user.model_dump()


@router.post("/login")
async def login(
    body: Credentials,
    response: Response,
    repo: SQLiteRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Check email/password and start a session."""
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    user = await repo.get_user_by_email(body.email)
    if user is None:
        raise HTTPException(status_code=400, detail="User does not exist")

    if not verify_password(user.password_hash, body.password):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    if needs_rehash(user.password_hash):
        await repo.set_password_hash(user.id, hash_password(body.password))

    _start_session(response, user, settings)
    return user.model_dump()


@router.get("/logout")
async def logout(response: Response) -> dict[str, str]:
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logout successful"}


@router.get("/current-user")
async def current_user(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"ok": True, "user": user.model_dump()}


@router.post("/generate-api-key")
async def create_api_key(
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Issue an API key; a user holds at most one."""
    if user.api_key:
        raise HTTPException(status_code=400, detail="API key already exists")

    api_key = generate_api_key()
    await repo.set_api_key(user.id, api_key)
    return {"message": "API key generated successfully", "api_key": api_key}


@router.get("/api-key")
async def read_api_key(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"message": "API key fetched successfully", "api_key": user.api_key}


@router.delete("/delete-api-key")
async def delete_api_key(
    user: User = Depends(get_current_user),
    repo: SQLiteRepository = Depends(get_repository),
) -> dict[str, str]:
    if not user.api_key:
        raise HTTPException(status_code=404, detail="API Key not found")

    await repo.set_api_key(user.id, None)
    return {"message": "API Key deleted successfully"}


@router.get("/google")
async def google_login(oauth: GoogleOAuth = Depends(get_oauth)) -> RedirectResponse:
    """Redirect to Google's consent screen."""
    return RedirectResponse(oauth.authorization_url())


@router.get("/google/callback")
async def google_callback(
    response: Response,
    code: str | None = None,
    oauth: GoogleOAuth = Depends(get_oauth),
    repo: SQLiteRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Finish Google sign-in.

    Creates the user on first login, stores Google tokens, and returns the
    user's spreadsheets so one can be picked for a robot.
    """
    if not code:
        raise HTTPException(status_code=400, detail="Invalid code")

    tokens = await oauth.exchange_code(code)
    email = await oauth.fetch_email(tokens.access_token or "")
    if not email:
        raise HTTPException(status_code=400, detail="Email not found")

    user = await repo.get_user_by_email(email)
    if user is None:
        user = await repo.create_user(
            email,
            hash_password(email + settings.jwt_secret),
            google_sheets_email=email,
            google_access_token=tokens.access_token,
            google_refresh_token=tokens.refresh_token,
        )
        logger.info("Created user %s from Google sign-in", user.id)
    else:
        await repo.update_google_tokens(email, tokens.access_token, tokens.refresh_token)

    files = await oauth.list_spreadsheets(tokens)
    if not files:
        raise HTTPException(status_code=404, detail="No spreadsheets found.")

    jwt_token = _start_session(response, user, settings)
    return {
        "message": "Google authentication successful",
        "email": user.email,
        "jwtToken": jwt_token,
        "files": files,
    }


@router.post("/gsheets/data")
async def sheet_data(
    body: SheetDataRequest,
    user: User = Depends(get_current_user),
    sheets: GoogleSheetsClient = Depends(get_sheets_client),
) -> dict[str, Any]:
    """Preview the first cells of a spreadsheet with the user's Google tokens."""
    if not user.google_access_token:
        raise HTTPException(status_code=400, detail="Google account not connected")

    tokens = OAuthTokens(
        access_token=user.google_access_token,
        refresh_token=user.google_refresh_token,
    )
    return await sheets.read_values(tokens, body.spreadsheet_id, SHEET_PREVIEW_RANGE)
