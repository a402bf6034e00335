"""SQLiteStore — the default local store.

Schema:
  state — one row per (workspace, key) holding a JSON-encoded list of strings.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from dropcomments_store.base import BaseStateStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS state (
    workspace   TEXT NOT NULL,
    key         TEXT NOT NULL,
    value_json  TEXT NOT NULL DEFAULT '[]',
    PRIMARY KEY (workspace, key)
);
"""


class SQLiteStore(BaseStateStore):
    """Stores state in a local SQLite database file.

    The database file path defaults to `.dropcomments.db` in the current
    working directory. Configure via .dropcomments.yml: `store_path: /path/to/db`.
    """

    def __init__(self, db_path: str = ".dropcomments.db", workspace: str = ""):
        super().__init__(workspace)
        # The scanner and regeneration driver run on worker threads.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get_list(self, key: str) -> list[str]:
        try:
            row = self._conn.execute(
                "SELECT value_json FROM state WHERE workspace=? AND key=?",
                (self.workspace, key),
            ).fetchone()
        except sqlite3.Error as e:
            logger.warning("SQLiteStore.get_list(%r) failed: %s", key, e)
            return []
        if row is None:
            return []
        try:
            values = json.loads(row["value_json"])
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed value for %r in %s", key, self.workspace or "<default>")
            return []
        return [str(v) for v in values] if isinstance(values, list) else []

    def set_list(self, key: str, values: list[str]) -> None:
        self._conn.execute(
            """
            INSERT INTO state (workspace, key, value_json) VALUES (?, ?, ?)
            ON CONFLICT (workspace, key) DO UPDATE SET value_json = excluded.value_json
            """,
            (self.workspace, key, json.dumps(list(values))),
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
