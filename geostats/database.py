# geostats/database.py

import json
import logging
import os
import re
import sqlite3
import stat
import time
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Set

from geostats import settings
from geostats.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


class Workbook:
    """A per-user collection of named tables stored in one SQLite file.

    Each table is an ordered list of rows; row 0 is the header row when the
    table was created with headers. Cells are stored as JSON, so values come
    back as str / int / float / bool / None. Datetimes are written as ISO
    strings.
    """

    def __init__(self, db_path: str, name: Optional[str] = None):
        self.db_path = str(db_path)
        self.name = name or Path(self.db_path).stem
        self.conn = None
        self.init_database()

    def init_database(self):
        """Create tables if they don't exist."""
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                try:
                    os.makedirs(db_dir, exist_ok=True)
                except OSError as e:
                    raise UpstreamError(f"Failed to create workbook directory '{db_dir}': {e}")

            self.conn = sqlite3.connect(self.db_path, timeout=30.0)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA busy_timeout = 30000")

            cursor = self.conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sheets (
                    sheet_id    INTEGER PRIMARY KEY AUTOINCREMENT,
                    name        TEXT UNIQUE NOT NULL,
                    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sheet_rows (
                    sheet_id    INTEGER NOT NULL,
                    row_index   INTEGER NOT NULL,
                    cells       TEXT NOT NULL,
                    PRIMARY KEY (sheet_id, row_index),
                    FOREIGN KEY (sheet_id) REFERENCES sheets(sheet_id)
                )
            """)
            self._commit_with_retry(context="create workbook schema")
        except sqlite3.Error as e:
            raise UpstreamError(f"Failed to open workbook '{self.db_path}': {e}")

    def _commit_with_retry(self, retries: int = 8, delay_seconds: float = 0.25, context: str = "commit") -> None:
        """
        Retry commit on transient SQLITE_BUSY/locked errors.
        """
        last_error = None
        for attempt in range(retries):
            try:
                self.conn.commit()
                return
            except sqlite3.OperationalError as e:
                last_error = e
                if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                    raise
                if attempt == retries - 1:
                    break
                time.sleep(delay_seconds)
        raise UpstreamError(
            f"Failed to {context}: workbook remained locked after {retries} attempts ({last_error})"
        )

    @staticmethod
    def _encode_cell(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    @classmethod
    def _encode_row(cls, row: Iterable[Any]) -> str:
        return json.dumps([cls._encode_cell(v) for v in row], ensure_ascii=False)

    @staticmethod
    def _sort_key(value: Any) -> tuple:
        # Blank cells sort after everything else in ascending order.
        if value is None or value == "":
            return (2, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value)
        return (1, str(value))

    # --- Sheet lookup ---

    def sheet_names(self) -> List[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT name FROM sheets ORDER BY sheet_id")
        return [row["name"] for row in cursor.fetchall()]

    def has_sheet(self, name: str) -> bool:
        return self._sheet_id(name) is not None

    def _sheet_id(self, name: str) -> Optional[int]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT sheet_id FROM sheets WHERE name = ?", (name,))
        row = cursor.fetchone()
        return row["sheet_id"] if row else None

    def _require_sheet(self, name: str) -> int:
        sheet_id = self._sheet_id(name)
        if sheet_id is None:
            raise NotFoundError(f"Sheet not found: {name}")
        return sheet_id

    def get_or_create_sheet(self, name: str, headers: Optional[List[str]] = None) -> bool:
        """Create a sheet (with an optional header row). Returns True if it was created."""
        if self.has_sheet(name):
            return False
        try:
            cursor = self.conn.cursor()
            cursor.execute("INSERT INTO sheets (name) VALUES (?)", (name,))
            if headers:
                cursor.execute(
                    "INSERT INTO sheet_rows (sheet_id, row_index, cells) VALUES (?, 0, ?)",
                    (cursor.lastrowid, self._encode_row(headers)),
                )
            self._commit_with_retry(context=f"create sheet '{name}'")
            logger.debug("Created sheet '%s' in %s", name, self.name)
            return True
        except sqlite3.Error as e:
            self.conn.rollback()
            raise UpstreamError(f"Failed to create sheet '{name}': {e}")

    # --- Reads ---

    def get_values(self, name: str) -> List[List[Any]]:
        """All rows of a sheet, header row included."""
        sheet_id = self._require_sheet(name)
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT cells FROM sheet_rows WHERE sheet_id = ? ORDER BY row_index",
            (sheet_id,),
        )
        return [json.loads(row["cells"]) for row in cursor.fetchall()]

    def get_records(self, name: str) -> List[List[Any]]:
        """Data rows of a sheet (header row skipped); empty if the sheet is absent."""
        if not self.has_sheet(name):
            return []
        return self.get_values(name)[1:]

    def column_values(self, name: str, column: int, header_rows: int = 1) -> Set[Any]:
        """Distinct values of one 0-based column, skipping header rows."""
        return {
            row[column]
            for row in self.get_values(name)[header_rows:]
            if column < len(row)
        }

    def row_count(self, name: str) -> int:
        sheet_id = self._require_sheet(name)
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) AS n FROM sheet_rows WHERE sheet_id = ?", (sheet_id,))
        return cursor.fetchone()["n"]

    # --- Writes ---

    def append_row(self, name: str, row: List[Any]) -> None:
        self.append_rows(name, [row])

    def append_rows(self, name: str, rows: List[List[Any]]) -> None:
        if not rows:
            return
        sheet_id = self._require_sheet(name)
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT COALESCE(MAX(row_index), -1) AS last FROM sheet_rows WHERE sheet_id = ?",
                (sheet_id,),
            )
            next_index = cursor.fetchone()["last"] + 1
            cursor.executemany(
                "INSERT INTO sheet_rows (sheet_id, row_index, cells) VALUES (?, ?, ?)",
                [
                    (sheet_id, next_index + offset, self._encode_row(row))
                    for offset, row in enumerate(rows)
                ],
            )
            self._commit_with_retry(context=f"append to '{name}'")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise UpstreamError(f"Failed to append row to '{name}': {e}")

    def clear_sheet(self, name: str) -> None:
        sheet_id = self._require_sheet(name)
        try:
            self.conn.execute("DELETE FROM sheet_rows WHERE sheet_id = ?", (sheet_id,))
            self._commit_with_retry(context=f"clear '{name}'")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise UpstreamError(f"Failed to clear sheet '{name}': {e}")

    def replace_values(self, name: str, rows: List[List[Any]]) -> None:
        """Overwrite a sheet with `rows`, creating it first if needed."""
        self.get_or_create_sheet(name)
        sheet_id = self._require_sheet(name)
        try:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM sheet_rows WHERE sheet_id = ?", (sheet_id,))
            cursor.executemany(
                "INSERT INTO sheet_rows (sheet_id, row_index, cells) VALUES (?, ?, ?)",
                [(sheet_id, index, self._encode_row(row)) for index, row in enumerate(rows)],
            )
            self._commit_with_retry(context=f"replace '{name}'")
        except sqlite3.Error as e:
            self.conn.rollback()
            raise UpstreamError(f"Failed to write sheet '{name}': {e}")

    def sort_rows(self, name: str, column: int, descending: bool = True, header_rows: int = 1) -> None:
        """Sort the data rows of a sheet by one 0-based column; header rows stay on top."""
        values = self.get_values(name)
        header, body = values[:header_rows], values[header_rows:]
        if len(body) < 2:
            return
        body.sort(
            key=lambda row: self._sort_key(row[column] if column < len(row) else None),
            reverse=descending,
        )
        self.replace_values(name, header + body)

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "Workbook":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class WorkbookStore:
    """Create-or-reuse per-user workbooks under a shared users folder."""

    def __init__(self, data_dir: Optional[str] = None, folder_name: Optional[str] = None):
        self.data_dir = Path(data_dir) if data_dir else settings.DATA_DIR
        self.folder_name = folder_name or settings.USERS_FOLDER

    @staticmethod
    def workbook_name(user_id: Any) -> str:
        return f"{settings.WORKBOOK_PREFIX} - {user_id}"

    @staticmethod
    def _file_name(name: str) -> str:
        safe = re.sub(r'[\\/:*?"<>|]+', "_", name).strip()
        return f"{safe}{settings.WORKBOOK_SUFFIX}"

    def users_folder(self) -> Path:
        """Resolve the users folder, falling back to the data root if it can't be used."""
        folder = self.data_dir / self.folder_name
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create users folder %s (%s); using %s", folder, e, self.data_dir)
            self.data_dir.mkdir(parents=True, exist_ok=True)
            return self.data_dir
        try:
            folder.chmod(folder.stat().st_mode | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
        except OSError as e:
            logger.warning("Could not share users folder %s: %s", folder, e)
        return folder

    def workbook_path(self, user_id: Any) -> Path:
        return self.users_folder() / self._file_name(self.workbook_name(user_id))

    def get_or_create_workbook(self, user_id: Any) -> Workbook:
        """Open the user's workbook, provisioning it on first use."""
        name = self.workbook_name(user_id)
        path = self.workbook_path(user_id)
        created = not path.exists()
        workbook = Workbook(str(path), name=name)
        if created:
            logger.info("Provisioned workbook '%s' at %s", name, path)
            try:
                path.chmod(path.stat().st_mode | stat.S_IRGRP | stat.S_IWGRP)
            except OSError as e:
                logger.warning("Could not share workbook %s: %s", path, e)
        return workbook

    def open_user_workbook(self, user_id: Any) -> Workbook:
        """Open an existing user workbook without provisioning one."""
        folder = self.data_dir / self.folder_name
        file_name = self._file_name(self.workbook_name(user_id))
        for candidate in (folder / file_name, self.data_dir / file_name):
            if candidate.exists():
                return Workbook(str(candidate), name=self.workbook_name(user_id))
        raise NotFoundError(f"No workbook for user {user_id}")

    def open_workbook(self, name: Optional[str] = None) -> Workbook:
        """Open a workbook stored directly under the data root (the default one if no name)."""
        name = name or settings.DEFAULT_WORKBOOK
        path = self.data_dir / self._file_name(name)
        if not path.exists():
            raise NotFoundError(f"Workbook not found: {name}")
        return Workbook(str(path), name=name)
