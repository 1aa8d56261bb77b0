"""SQLite-based persistent storage for saved production runs.

Uses aiosqlite for async database operations. Each row holds one deep
snapshot of a run, serialized in the saved-project wire format.
"""

import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from scenepack.models.project import ProjectSummary, SavedProject

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = ".scenepack/projects.db"


class ProjectStore:
    """Async SQLite project storage.

    Last write wins per project id. Projects never expire.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize project store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directory
                     will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and create schema."""
        # Ensure directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = await aiosqlite.connect(str(self.db_path))
        self.db.row_factory = aiosqlite.Row

        # Enable WAL mode for better concurrent read performance
        await self.db.execute("PRAGMA journal_mode=WAL")

        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                timestamp INTEGER NOT NULL,
                script TEXT NOT NULL DEFAULT '',
                data JSON NOT NULL
            )
        """)

        await self.db.execute("""
            CREATE INDEX IF NOT EXISTS idx_projects_timestamp
            ON projects (timestamp DESC)
        """)

        await self.db.commit()
        logger.info(f"Project store connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None
            logger.info("Project store connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db

    async def save(self, project: SavedProject) -> SavedProject:
        """Insert or replace a project snapshot.

        Raises:
            RuntimeError: If database is not connected
        """
        db = self._require_db()
        await db.execute(
            "INSERT OR REPLACE INTO projects (id, timestamp, script, data) VALUES (?, ?, ?, ?)",
            (project.id, project.timestamp, project.script, json.dumps(project.to_dict())),
        )
        await db.commit()

        logger.info(f"Saved project {project.id} ({len(project.scenes)} scenes)")
        return project

    async def get(self, project_id: str) -> SavedProject | None:
        """Get a project by ID, or None if not found."""
        db = self._require_db()
        async with db.execute(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_project(row)

    async def list(self, limit: int = 100) -> list[ProjectSummary]:
        """List saved projects, newest first."""
        db = self._require_db()
        async with db.execute(
            "SELECT * FROM projects ORDER BY timestamp DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()

        summaries = []
        for row in rows:
            project = self._row_to_project(row)
            if project is not None:
                summaries.append(project.summary())
        return summaries

    async def delete(self, project_id: str) -> bool:
        """Delete a project. Returns True if it existed."""
        db = self._require_db()
        cursor = await db.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        await db.commit()

        if cursor.rowcount > 0:
            logger.info(f"Deleted project {project_id}")
            return True
        return False

    def _row_to_project(self, row: aiosqlite.Row) -> SavedProject | None:
        """Convert a database row to a SavedProject.

        Rows whose JSON cannot be read are logged and skipped.
        """
        try:
            data: dict[str, Any] = json.loads(row["data"])
            return SavedProject.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse saved project {row['id']}: {e}")
            return None
