"""SQLite storage backend implementation."""

import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite
import structlog

from automation_flows.errors import PersistenceError
from automation_flows.storage.interface import AutomationStore
from automation_flows.storage.records import Automation, AutomationDraft, AutomationUpdate

logger = structlog.get_logger(__name__)

_COLUMNS = (
    "id, name, description, is_active, executions_count, last_executed_at, "
    "trigger_type, trigger_config, flow_data, created_at, updated_at"
)


class SQLiteAutomationStore(AutomationStore):
    """SQLite implementation of the automation store."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.db_path = self._parse_database_url(database_url)
        self._connection: Optional[aiosqlite.Connection] = None

    def _parse_database_url(self, database_url: str) -> str:
        """Parse database URL to get file path."""
        if database_url.startswith("sqlite+aiosqlite:///"):
            return database_url.replace("sqlite+aiosqlite:///", "")
        elif database_url.startswith("sqlite:///"):
            return database_url.replace("sqlite:///", "")
        elif database_url.startswith("sqlite://"):
            return database_url.replace("sqlite://", "")
        else:
            # Assume it's already a file path
            return database_url

    async def initialize(self) -> None:
        """Open the database and create tables."""
        try:
            if self.db_path != ":memory:":
                if not os.path.isabs(self.db_path):
                    self.db_path = os.path.abspath(self.db_path)
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
            await self._create_tables()
        except (aiosqlite.Error, OSError) as e:
            logger.error("sqlite_initialize_failed", path=self.db_path, error=str(e))
            raise PersistenceError(f"Failed to initialize SQLite database: {e}") from e

        logger.info("sqlite_initialized", path=self.db_path)

    async def _create_tables(self) -> None:
        await self._connection.executescript("""
            CREATE TABLE IF NOT EXISTS automations (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                is_active INTEGER NOT NULL DEFAULT 0,
                executions_count INTEGER NOT NULL DEFAULT 0,
                last_executed_at TEXT,
                trigger_type TEXT NOT NULL,
                trigger_config TEXT NOT NULL,
                flow_data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_automations_is_active
                ON automations(is_active);
            CREATE INDEX IF NOT EXISTS idx_automations_created_at
                ON automations(created_at);
        """)
        await self._connection.commit()

    async def close(self) -> None:
        """Close the storage backend."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def create_automation(self, draft: AutomationDraft) -> Automation:
        now = datetime.utcnow()
        automation = Automation(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **draft.model_dump(),
        )
        row = self._to_row(automation)

        await self._execute(
            f"INSERT INTO automations ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            tuple(row.values()),
        )
        return automation

    async def update_automation(self, update: AutomationUpdate) -> Automation:
        current = await self.get_automation(update.id)
        if current is None:
            raise PersistenceError(f"Automation not found: {update.id}")

        changes = update.changes()
        changes["updated_at"] = datetime.utcnow()
        automation = current.model_copy(update=changes)
        row = self._to_row(automation)
        row_id = row.pop("id")

        assignments = ", ".join(f"{column} = ?" for column in row)
        await self._execute(
            f"UPDATE automations SET {assignments} WHERE id = ?",
            (*row.values(), row_id),
        )
        return automation

    async def get_automation(self, automation_id: str) -> Optional[Automation]:
        rows = await self._fetch(
            f"SELECT {_COLUMNS} FROM automations WHERE id = ?", (automation_id,)
        )
        return self._from_row(rows[0]) if rows else None

    async def list_automations(self, active_only: bool = False) -> List[Automation]:
        query = f"SELECT {_COLUMNS} FROM automations"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY created_at DESC, rowid DESC"

        rows = await self._fetch(query, ())
        return [self._from_row(row) for row in rows]

    async def set_active(self, automation_id: str, is_active: bool) -> Automation:
        return await self.update_automation(AutomationUpdate(id=automation_id, is_active=is_active))

    async def delete_automation(self, automation_id: str) -> None:
        cursor = await self._execute("DELETE FROM automations WHERE id = ?", (automation_id,))
        if cursor.rowcount == 0:
            raise PersistenceError(f"Automation not found: {automation_id}")

    async def _execute(self, query: str, params: tuple) -> aiosqlite.Cursor:
        connection = self._require_connection()
        try:
            cursor = await connection.execute(query, params)
            await connection.commit()
            return cursor
        except aiosqlite.Error as e:
            logger.error("sqlite_write_failed", error=str(e))
            raise PersistenceError(f"SQLite write failed: {e}") from e

    async def _fetch(self, query: str, params: tuple) -> List[aiosqlite.Row]:
        connection = self._require_connection()
        try:
            async with connection.execute(query, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            logger.error("sqlite_read_failed", error=str(e))
            raise PersistenceError(f"SQLite read failed: {e}") from e

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connection:
            raise PersistenceError("Storage backend not initialized")
        return self._connection

    @staticmethod
    def _to_row(automation: Automation) -> Dict[str, Any]:
        return {
            "id": automation.id,
            "name": automation.name,
            "description": automation.description,
            "is_active": int(automation.is_active),
            "executions_count": automation.executions_count,
            "last_executed_at": (
                automation.last_executed_at.isoformat() if automation.last_executed_at else None
            ),
            "trigger_type": automation.trigger_type,
            "trigger_config": json.dumps(automation.trigger_config),
            "flow_data": json.dumps(automation.flow_data),
            "created_at": automation.created_at.isoformat(),
            "updated_at": automation.updated_at.isoformat(),
        }

    @staticmethod
    def _from_row(row: aiosqlite.Row) -> Automation:
        return Automation(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            is_active=bool(row["is_active"]),
            executions_count=row["executions_count"],
            last_executed_at=row["last_executed_at"],
            trigger_type=row["trigger_type"],
            trigger_config=json.loads(row["trigger_config"]),
            flow_data=json.loads(row["flow_data"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
