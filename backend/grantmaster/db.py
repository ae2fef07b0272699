from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Iterator

from grantmaster.domain import Application, Attachment, Section, SectionVersion
from grantmaster.mechanisms import MechanismConfig
from grantmaster.observability import describe_error
from grantmaster.policy import word_count

logger = logging.getLogger("grantmaster.db")

SECTION_VERSION_HISTORY_LIMIT = 20


class StorageError(RuntimeError):
    """Raised when the application store cannot be opened or queried."""


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def database_path(database_url: str) -> Path:
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        raise StorageError("Only sqlite:/// DATABASE_URL is supported.")
    return Path(database_url[len(prefix) :])


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT,
    name TEXT,
    role TEXT NOT NULL DEFAULT 'owner',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS applications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    mechanism TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(user_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_applications_user
    ON applications(user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS sections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    application_id INTEGER NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    page_limit INTEGER NOT NULL,
    page_count INTEGER NOT NULL DEFAULT 0,
    required_headings_json TEXT NOT NULL DEFAULT '[]',
    is_valid INTEGER NOT NULL DEFAULT 0,
    is_complete INTEGER NOT NULL DEFAULT 0,
    order_index INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(application_id) REFERENCES applications(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sections_application
    ON sections(application_id, order_index ASC);

CREATE TABLE IF NOT EXISTS section_versions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    section_id INTEGER NOT NULL,
    content TEXT NOT NULL,
    word_count INTEGER NOT NULL DEFAULT 0,
    note TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY(section_id) REFERENCES sections(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_section_versions_section
    ON section_versions(section_id, created_at DESC);

CREATE TABLE IF NOT EXISTS attachments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    application_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    file_url TEXT,
    required INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL,
    FOREIGN KEY(application_id) REFERENCES applications(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_attachments_application
    ON attachments(application_id);

CREATE TABLE IF NOT EXISTS validation_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    application_id INTEGER NOT NULL,
    errors_json TEXT NOT NULL,
    warnings_json TEXT NOT NULL,
    is_valid INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY(application_id) REFERENCES applications(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_validation_results_application
    ON validation_results(application_id, created_at DESC);
"""


def _row_to_application(row: sqlite3.Row) -> Application:
    return Application(
        id=int(row["id"]),
        title=str(row["title"]),
        mechanism=str(row["mechanism"]),
        status=str(row["status"]),
        user_id=str(row["user_id"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


def _row_to_section(row: sqlite3.Row) -> Section:
    headings = json.loads(row["required_headings_json"] or "[]")
    return Section(
        id=int(row["id"]),
        application_id=int(row["application_id"]),
        type=str(row["type"]),
        title=str(row["title"]),
        content=str(row["content"] or ""),
        page_limit=int(row["page_limit"]),
        page_count=int(row["page_count"] or 0),
        order_index=int(row["order_index"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        required_headings=[str(item) for item in headings] if isinstance(headings, list) else [],
        is_valid=bool(row["is_valid"]),
        is_complete=bool(row["is_complete"]),
    )


def _row_to_section_version(row: sqlite3.Row) -> SectionVersion:
    return SectionVersion(
        id=int(row["id"]),
        section_id=int(row["section_id"]),
        content=str(row["content"]),
        word_count=int(row["word_count"]),
        created_at=str(row["created_at"]),
        note=row["note"],
    )


def _row_to_attachment(row: sqlite3.Row) -> Attachment:
    return Attachment(
        id=int(row["id"]),
        application_id=int(row["application_id"]),
        name=str(row["name"]),
        required=bool(row["required"]),
        status=str(row["status"]),
        created_at=str(row["created_at"]),
        file_url=row["file_url"],
    )


class GrantRepository:
    """sqlite-backed store for applications and the sections/attachments they own.

    Writes are last-write-wins; there is no version column on sections. Every
    section save also appends a row to ``section_versions`` so earlier drafts can
    be listed and restored.
    """

    def __init__(self, database_url: str) -> None:
        self._path = database_path(database_url)

    @property
    def path(self) -> Path:
        return self._path

    def init_schema(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info("database_ready", extra={"event": "database_ready", "path": str(self._path)})

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database at '{self._path}': {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.warning(
                "database_operation_failed",
                extra={"event": "database_operation_failed", "error": describe_error(exc)},
            )
            raise StorageError(f"Database operation failed: {exc}") from exc
        finally:
            conn.close()

    def ping(self) -> None:
        with self.connect() as conn:
            conn.execute("SELECT 1").fetchone()

    def create_application(self, *, user_id: str, title: str, mechanism: MechanismConfig) -> Application:
        now = _utc_now_iso()
        with self.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users (id, role, created_at) VALUES (?, 'owner', ?)",
                (user_id, now),
            )
            cursor = conn.execute(
                """
                INSERT INTO applications (title, mechanism, status, user_id, created_at, updated_at)
                VALUES (?, ?, 'draft', ?, ?, ?)
                """,
                (title, mechanism.id, user_id, now, now),
            )
            application_id = int(cursor.lastrowid)
            conn.executemany(
                """
                INSERT INTO sections (
                    application_id, type, title, content, page_limit, page_count,
                    required_headings_json, is_valid, is_complete, order_index, created_at, updated_at
                )
                VALUES (?, ?, ?, '', ?, 0, ?, 0, 0, ?, ?, ?)
                """,
                [
                    (
                        application_id,
                        section.type,
                        section.title,
                        section.page_limit,
                        json.dumps(list(section.required_headings)),
                        index,
                        now,
                        now,
                    )
                    for index, section in enumerate(mechanism.sections)
                ],
            )
            conn.executemany(
                """
                INSERT INTO attachments (application_id, name, file_url, required, status, created_at)
                VALUES (?, ?, NULL, ?, 'pending', ?)
                """,
                [
                    (application_id, attachment.name, int(attachment.required), now)
                    for attachment in mechanism.attachments
                ],
            )
        return Application(
            id=application_id,
            title=title,
            mechanism=mechanism.id,
            status="draft",
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )

    def list_applications(self, user_id: str) -> list[Application]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT id, title, mechanism, status, user_id, created_at, updated_at
                FROM applications
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            ).fetchall()
        return [_row_to_application(row) for row in rows]

    def get_application(self, application_id: int, user_id: str | None = None) -> Application | None:
        query = """
                SELECT id, title, mechanism, status, user_id, created_at, updated_at
                FROM applications
                WHERE id = ?
        """
        params: list[object] = [application_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self.connect() as conn:
            row = conn.execute(query, tuple(params)).fetchone()
        if row is None:
            return None
        return _row_to_application(row)

    def delete_application(self, application_id: int, user_id: str) -> bool:
        with self.connect() as conn:
            owned = conn.execute(
                "SELECT 1 FROM applications WHERE id = ? AND user_id = ?",
                (application_id, user_id),
            ).fetchone()
            if owned is None:
                return False
            conn.execute("DELETE FROM validation_results WHERE application_id = ?", (application_id,))
            conn.execute("DELETE FROM attachments WHERE application_id = ?", (application_id,))
            conn.execute(
                "DELETE FROM section_versions WHERE section_id IN (SELECT id FROM sections WHERE application_id = ?)",
                (application_id,),
            )
            conn.execute("DELETE FROM sections WHERE application_id = ?", (application_id,))
            conn.execute("DELETE FROM applications WHERE id = ?", (application_id,))
        return True

    def list_sections(self, application_id: int) -> list[Section]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sections WHERE application_id = ? ORDER BY order_index ASC, id ASC",
                (application_id,),
            ).fetchall()
        return [_row_to_section(row) for row in rows]

    def get_section(self, section_id: int) -> Section | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM sections WHERE id = ?", (section_id,)).fetchone()
        if row is None:
            return None
        return _row_to_section(row)

    def save_section(self, section: Section, *, note: str | None = None) -> Section:
        with self.connect() as conn:
            conn.execute(
                """
                UPDATE sections
                SET content = ?, page_count = ?, is_valid = ?, is_complete = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    section.content,
                    section.page_count,
                    int(section.is_valid),
                    int(section.is_complete),
                    section.updated_at,
                    section.id,
                ),
            )
            conn.execute(
                "UPDATE applications SET updated_at = ? WHERE id = ?",
                (section.updated_at, section.application_id),
            )
            conn.execute(
                """
                INSERT INTO section_versions (section_id, content, word_count, note, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (section.id, section.content, word_count(section.content), note, section.updated_at),
            )
        return section

    def list_section_versions(
        self, section_id: int, *, limit: int = SECTION_VERSION_HISTORY_LIMIT
    ) -> list[SectionVersion]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT id, section_id, content, word_count, note, created_at
                FROM section_versions
                WHERE section_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (section_id, limit),
            ).fetchall()
        return [_row_to_section_version(row) for row in rows]

    def get_section_version(self, version_id: int) -> SectionVersion | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT id, section_id, content, word_count, note, created_at FROM section_versions WHERE id = ?",
                (version_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_section_version(row)

    def list_attachments(self, application_id: int) -> list[Attachment]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM attachments WHERE application_id = ? ORDER BY id ASC",
                (application_id,),
            ).fetchall()
        return [_row_to_attachment(row) for row in rows]

    def get_attachment(self, attachment_id: int) -> Attachment | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM attachments WHERE id = ?", (attachment_id,)).fetchone()
        if row is None:
            return None
        return _row_to_attachment(row)

    def update_attachment(self, attachment_id: int, *, status: str, file_url: str | None) -> Attachment | None:
        with self.connect() as conn:
            conn.execute(
                "UPDATE attachments SET status = ?, file_url = ? WHERE id = ?",
                (status, file_url, attachment_id),
            )
        return self.get_attachment(attachment_id)

    def record_validation_result(
        self,
        application_id: int,
        *,
        errors: list[str],
        warnings: list[str],
        is_valid: bool,
    ) -> dict[str, object]:
        row = {
            "application_id": application_id,
            "errors_json": json.dumps(errors),
            "warnings_json": json.dumps(warnings),
            "is_valid": int(is_valid),
            "created_at": _utc_now_iso(),
        }
        with self.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO validation_results (application_id, errors_json, warnings_json, is_valid, created_at)
                VALUES (:application_id, :errors_json, :warnings_json, :is_valid, :created_at)
                """,
                row,
            )
        return {
            "id": int(cursor.lastrowid),
            "applicationId": application_id,
            "isValid": is_valid,
            "createdAt": row["created_at"],
        }

    def list_validation_results(self, application_id: int) -> list[dict[str, object]]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT id, application_id, errors_json, warnings_json, is_valid, created_at
                FROM validation_results
                WHERE application_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (application_id,),
            ).fetchall()
        return [
            {
                "id": int(row["id"]),
                "applicationId": int(row["application_id"]),
                "errors": json.loads(row["errors_json"]),
                "warnings": json.loads(row["warnings_json"]),
                "isValid": bool(row["is_valid"]),
                "createdAt": str(row["created_at"]),
            }
            for row in rows
        ]
