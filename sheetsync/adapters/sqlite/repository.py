"""
SQLite Repository - Users, robots and runs.

Features:
- Async operations via aiosqlite
- JSON columns for run output and robot integrations
- Google tokens encrypted at rest when a cipher is supplied
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite

from sheetsync.config.errors import StorageError
from sheetsync.domains.identity.models import User
from sheetsync.domains.sync.models import RobotRecord, RunRecord

if TYPE_CHECKING:
    from sheetsync.domains.identity.encryption import TokenEncryption

logger = logging.getLogger(__name__)

__all__ = ["SQLiteRepository"]

_TOKEN_FIELDS = ("access_token", "refresh_token")


class SQLiteRepository:
    """
    SQLite repository for users, robots and workflow runs.

    Implements the `RunStore` and `RobotStore` contracts of the sync domain.

    Example:
        >>> repo = SQLiteRepository("data/sheetsync.db")
        >>> await repo.initialize()
        >>> user = await repo.create_user("me@example.com", password_hash)
        >>> robot = await repo.get_robot("robot-1")
    """

    def __init__(self, db_path: str | Path, encryption: TokenEncryption | None = None) -> None:
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
            encryption: Cipher for Google tokens; stored in clear when None
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.encryption = encryption
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            try:
                self._connection = await aiosqlite.connect(str(self.db_path))
            except Exception as e:
                raise StorageError(f"Could not open database: {e}", {"path": str(self.db_path)}) from e
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Initialize database schema."""
        conn = await self._get_connection()

        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                api_key TEXT UNIQUE,
                google_sheets_email TEXT,
                google_access_token TEXT,
                google_refresh_token TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS robots (
                robot_id TEXT PRIMARY KEY,
                user_id INTEGER,
                name TEXT NOT NULL DEFAULT '',
                integrations TEXT NOT NULL DEFAULT '{}',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id)
            );

            CREATE TABLE IF NOT EXISTS runs (
                run_id TEXT PRIMARY KEY,
                robot_id TEXT NOT NULL,
                status TEXT NOT NULL,
                serializable_output TEXT,
                binary_output TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                finished_at TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_robots_user ON robots(user_id);
            CREATE INDEX IF NOT EXISTS idx_runs_robot ON runs(robot_id);
        """)

        await conn.commit()
        logger.info("Database initialized: %s", self.db_path)

    # --- Token helpers ---

    def _seal(self, value: str | None) -> str | None:
        return self.encryption.encrypt(value) if self.encryption else value

    def _open(self, value: str | None) -> str | None:
        return self.encryption.decrypt(value) if self.encryption else value

    def _seal_integrations(self, integrations: dict[str, Any]) -> str:
        sealed = dict(integrations)
        sheets = sealed.get("google_sheets")
        if sheets:
            sheets = dict(sheets)
            for field in _TOKEN_FIELDS:
                sheets[field] = self._seal(sheets.get(field))
            sealed["google_sheets"] = sheets
        return json.dumps(sealed)

    def _open_integrations(self, raw: str | None) -> dict[str, Any]:
        integrations = json.loads(raw) if raw else {}
        sheets = integrations.get("google_sheets")
        if sheets:
            for field in _TOKEN_FIELDS:
                sheets[field] = self._open(sheets.get(field))
        return integrations

    def _row_to_user(self, row: aiosqlite.Row) -> User:
        data = dict(row)
        return User(
            id=data["id"],
            email=data["email"],
            password_hash=data["password_hash"],
            api_key=data["api_key"],
            google_sheets_email=data["google_sheets_email"],
            google_access_token=self._open(data["google_access_token"]),
            google_refresh_token=self._open(data["google_refresh_token"]),
            created_at=data["created_at"],
        )

    # --- Users ---

    async def create_user(
        self,
        email: str,
        password_hash: str,
        google_sheets_email: str | None = None,
        google_access_token: str | None = None,
        google_refresh_token: str | None = None,
    ) -> User:
        """Insert a user and return it."""
        conn = await self._get_connection()

        cursor = await conn.execute(
            """
            INSERT INTO users (email, password_hash, google_sheets_email,
                               google_access_token, google_refresh_token)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                email,
                password_hash,
                google_sheets_email,
                self._seal(google_access_token),
                self._seal(google_refresh_token),
            ),
        )
        await conn.commit()

        user = await self.get_user(cursor.lastrowid)
        assert user is not None
        return user

    async def get_user(self, user_id: int) -> User | None:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM users WHERE email = ?", (email,))
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_api_key(self, api_key: str) -> User | None:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM users WHERE api_key = ?", (api_key,))
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def set_api_key(self, user_id: int, api_key: str | None) -> None:
        """Set or clear (None) a user's API key."""
        conn = await self._get_connection()
        await conn.execute("UPDATE users SET api_key = ? WHERE id = ?", (api_key, user_id))
        await conn.commit()

    async def set_password_hash(self, user_id: int, password_hash: str) -> None:
        conn = await self._get_connection()
        await conn.execute(
            "UPDATE users SET password_hash = ? WHERE id = ?", (password_hash, user_id)
        )
        await conn.commit()

    async def update_google_tokens(
        self,
        email: str,
        access_token: str | None,
        refresh_token: str | None,
    ) -> None:
        """
        Link a user's Google account: store its tokens and mark `email` as the
        Sheets account. A missing refresh token keeps the old one.
        """
        conn = await self._get_connection()
        await conn.execute(
            """
            UPDATE users
            SET google_sheets_email = ?,
                google_access_token = ?,
                google_refresh_token = COALESCE(?, google_refresh_token)
            WHERE email = ?
            """,
            (email, self._seal(access_token), self._seal(refresh_token), email),
        )
        await conn.commit()

    # --- Robots ---

    async def insert_robot(
        self,
        robot_id: str,
        name: str = "",
        user_id: int | None = None,
        integrations: dict[str, Any] | None = None,
    ) -> RobotRecord:
        conn = await self._get_connection()
        await conn.execute(
            "INSERT INTO robots (robot_id, user_id, name, integrations) VALUES (?, ?, ?, ?)",
            (robot_id, user_id, name, self._seal_integrations(integrations or {})),
        )
        await conn.commit()
        robot = await self.get_robot(robot_id)
        assert robot is not None
        return robot

    async def get_robot(self, robot_id: str) -> RobotRecord | None:
        """Get robot by ID with decrypted integrations."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM robots WHERE robot_id = ?", (robot_id,))
        row = await cursor.fetchone()
        if not row:
            return None
        data = dict(row)
        return RobotRecord(
            robot_id=data["robot_id"],
            name=data["name"],
            user_id=data["user_id"],
            integrations=self._open_integrations(data["integrations"]),
        )

    async def list_robot_ids(self, user_id: int) -> set[str]:
        """Ids of the robots a user owns."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT robot_id FROM robots WHERE user_id = ?", (user_id,))
        return {row["robot_id"] for row in await cursor.fetchall()}

    async def _write_integrations(self, robot_id: str, integrations: dict[str, Any]) -> None:
        conn = await self._get_connection()
        await conn.execute(
            """
            UPDATE robots SET integrations = ?, updated_at = CURRENT_TIMESTAMP
            WHERE robot_id = ?
            """,
            (self._seal_integrations(integrations), robot_id),
        )
        await conn.commit()

    async def update_google_sheets(self, robot_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into `integrations.google_sheets`, keeping everything else."""
        robot = await self.get_robot(robot_id)
        if robot is None:
            raise StorageError(f"Robot not found: {robot_id}", {"robot_id": robot_id})

        integrations = dict(robot.integrations)
        sheets = dict(integrations.get("google_sheets") or {
            "email": None,
            "sheet_id": None,
            "sheet_name": None,
            "access_token": None,
            "refresh_token": None,
        })
        sheets.update(fields)
        integrations["google_sheets"] = sheets
        await self._write_integrations(robot_id, integrations)

    async def remove_google_sheets(self, robot_id: str) -> bool:
        """Drop the google_sheets integration. Returns False if absent."""
        robot = await self.get_robot(robot_id)
        if robot is None or "google_sheets" not in robot.integrations:
            return False
        integrations = {k: v for k, v in robot.integrations.items() if k != "google_sheets"}
        await self._write_integrations(robot_id, integrations)
        return True

    # --- Runs ---

    async def insert_run(
        self,
        run_id: str,
        robot_id: str,
        status: str,
        serializable_output: dict[str, Any] | None = None,
        binary_output: dict[str, str] | None = None,
    ) -> RunRecord:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO runs (run_id, robot_id, status, serializable_output, binary_output)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                run_id,
                robot_id,
                status,
                json.dumps(serializable_output) if serializable_output else None,
                json.dumps(binary_output) if binary_output else None,
            ),
        )
        await conn.commit()
        run = await self.get_run(run_id)
        assert run is not None
        return run

    async def update_run(
        self,
        run_id: str,
        status: str,
        serializable_output: dict[str, Any] | None = None,
        binary_output: dict[str, str] | None = None,
    ) -> None:
        """Record a run's final status and output."""
        conn = await self._get_connection()
        await conn.execute(
            """
            UPDATE runs
            SET status = ?,
                serializable_output = COALESCE(?, serializable_output),
                binary_output = COALESCE(?, binary_output),
                finished_at = CURRENT_TIMESTAMP
            WHERE run_id = ?
            """,
            (
                status,
                json.dumps(serializable_output) if serializable_output else None,
                json.dumps(binary_output) if binary_output else None,
                run_id,
            ),
        )
        await conn.commit()

    async def get_run(self, run_id: str) -> RunRecord | None:
        """Get run by ID."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,))
        row = await cursor.fetchone()
        if not row:
            return None
        data = dict(row)
        return RunRecord(
            run_id=data["run_id"],
            robot_id=data["robot_id"],
            status=data["status"],
            serializable_output=json.loads(data["serializable_output"] or "{}"),
            binary_output=json.loads(data["binary_output"] or "{}"),
        )

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
