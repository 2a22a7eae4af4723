"""
SQLite-backed study index.

The same class backs two stores:

* the *staging* index, opened on ``":memory:"`` at the start of every query
  run and discarded afterwards;
* the *destination* index, opened on a file and shared by every retrieve so
  that successfully moved studies are recorded persistently.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import structlog

from dicomqr.errors import StagingStoreError
from dicomqr.models import RetrieveContext, StudyRecord

log = structlog.get_logger()

MEMORY = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS studies (
    study_uid         TEXT PRIMARY KEY,
    patient_name      TEXT,
    patient_id        TEXT,
    study_date        TEXT,
    study_time        TEXT,
    study_description TEXT,
    accession_number  TEXT,
    modalities        TEXT,
    server            TEXT
);
CREATE TABLE IF NOT EXISTS retrievals (
    study_uid        TEXT PRIMARY KEY,
    server           TEXT,
    host             TEXT,
    port             INTEGER,
    called_ae_title  TEXT,
    move_destination TEXT,
    retrieved_at     TEXT
);
"""

_STUDY_COLUMNS = (
    "study_uid",
    "patient_name",
    "patient_id",
    "study_date",
    "study_time",
    "study_description",
    "accession_number",
    "modalities",
)


class StudyIndex:
    """Study-level index over an SQLite connection."""

    def __init__(self) -> None:
        self._conn: Optional[sqlite3.Connection] = None
        self.path: Optional[str] = None
        self.partial = False

    # ------------------------------------------------------------------ #
    # Lifecycle                                                           #
    # ------------------------------------------------------------------ #
    def open(self, path: str | Path = MEMORY) -> "StudyIndex":
        """Open the backing database and create the schema.

        Args:
            path: ``":memory:"`` or a database file.  The parent directory of
                a file must already exist.

        Returns:
            ``self`` so calls can be chained.

        Raises:
            StagingStoreError: If the index is already open or SQLite cannot
                open *path*.
        """
        if self._conn is not None:
            raise StagingStoreError(f"Study index already open on {self.path}")

        target = str(path) if str(path) == MEMORY else str(Path(path).expanduser())
        try:
            conn = sqlite3.connect(target)
            conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StagingStoreError(f"Cannot open study index {target}: {exc}") from exc

        conn.row_factory = sqlite3.Row
        self._conn = conn
        self.path = target
        self.partial = False
        log.debug("index.opened", path=target)
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        log.debug("index.closed", path=self.path)
        self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def mark_partial(self) -> None:
        """Flag the contents as incomplete (the run was cancelled)."""
        self.partial = True

    def __enter__(self) -> "StudyIndex":
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Studies                                                             #
    # ------------------------------------------------------------------ #
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StagingStoreError("Study index is not open")
        return self._conn

    def insert_studies(self, records: Iterable[StudyRecord], server: str) -> int:
        """Bulk-load *records* reported by *server*; existing rows are replaced.

        Returns:
            Number of rows written.
        """
        rows = [
            tuple(getattr(rec, col) for col in _STUDY_COLUMNS) + (server,)
            for rec in records
        ]
        placeholders = ", ".join("?" for _ in range(len(_STUDY_COLUMNS) + 1))
        sql = (
            f"INSERT OR REPLACE INTO studies ({', '.join(_STUDY_COLUMNS)}, server) "
            f"VALUES ({placeholders})"
        )
        conn = self._connection()
        try:
            with conn:
                conn.executemany(sql, rows)
        except sqlite3.Error as exc:
            raise StagingStoreError(f"Cannot store studies from {server}: {exc}") from exc
        return len(rows)

    def row_count(self) -> int:
        if self._conn is None:
            return 0
        return self._conn.execute("SELECT COUNT(*) FROM studies").fetchone()[0]

    def studies(self) -> List[Dict[str, str]]:
        """Return every study row ordered by date, patient and UID."""
        cur = self._connection().execute(
            "SELECT * FROM studies ORDER BY study_date, patient_name, study_uid"
        )
        return [dict(row) for row in cur.fetchall()]

    def study_uids(self) -> List[str]:
        return [row["study_uid"] for row in self.studies()]

    # ------------------------------------------------------------------ #
    # Retrievals                                                          #
    # ------------------------------------------------------------------ #
    def record_retrieval(self, context: RetrieveContext) -> None:
        """Remember that *context*'s study landed at the move destination."""
        conn = self._connection()
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO retrievals "
                    "(study_uid, server, host, port, called_ae_title, move_destination, retrieved_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        context.study_uid,
                        context.server,
                        context.host,
                        context.port,
                        context.called_ae_title,
                        context.move_destination,
                        stamp,
                    ),
                )
        except sqlite3.Error as exc:
            raise StagingStoreError(
                f"Cannot record retrieval of {context.study_uid}: {exc}"
            ) from exc

    def retrievals(self) -> List[Dict[str, str]]:
        cur = self._connection().execute("SELECT * FROM retrievals ORDER BY retrieved_at")
        return [dict(row) for row in cur.fetchall()]
