"""Database helpers: connection pool, idempotent upserts, run tracking."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from importlib import resources
from typing import Any, Generator, Optional, Sequence

import psycopg2
import psycopg2.extras
import psycopg2.pool

from gh_activity.config import DatabaseConfig

logger = logging.getLogger("gh_activity.db")


class Database:
    """Thin wrapper around a ThreadedConnectionPool with upsert helpers."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=config.min_connections,
            maxconn=config.max_connections,
            dsn=config.url,
        )

    def close(self) -> None:
        self._pool.closeall()

    @contextmanager
    def connection(self) -> Generator:
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Generator:
        """Yield a cursor inside an auto-commit/rollback transaction."""
        with self.connection() as conn:
            try:
                with conn.cursor() as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def apply_schema(self) -> None:
        """Create tables from the bundled schema.sql (idempotent)."""
        sql = resources.files("gh_activity").joinpath("schema.sql").read_text()
        with self.transaction() as cur:
            cur.execute(sql)
        logger.info("Schema applied")

    def upsert_row(
        self,
        table: str,
        columns: list[str],
        row: Sequence[Any],
        conflict_columns: list[str],
        update_columns: list[str],
    ) -> int:
        """Insert or update one row keyed by conflict_columns; return its id.

        The update only fires when a value actually differs, so re-running
        against unchanged data leaves the row (and its timestamps) untouched.
        """
        col_list = ", ".join(columns)
        placeholders = ", ".join(["%s"] * len(columns))
        conflict_list = ", ".join(conflict_columns)
        set_clauses = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_columns)
        set_clauses += ", updated_at = NOW(), last_synced_at = NOW()"
        current = ", ".join(f"{table}.{c}" for c in update_columns)
        incoming = ", ".join(f"EXCLUDED.{c}" for c in update_columns)

        sql = (
            f"INSERT INTO {table} ({col_list}) VALUES ({placeholders}) "
            f"ON CONFLICT ({conflict_list}) DO UPDATE SET {set_clauses} "
            f"WHERE ({current}) IS DISTINCT FROM ({incoming}) "
            f"RETURNING id"
        )
        values = [_adapt(v) for v in row]
        with self.transaction() as cur:
            cur.execute(sql, values)
            found = cur.fetchone()
            if found is None:
                # Row exists and nothing changed; read its id back
                key_values = [values[columns.index(c)] for c in conflict_columns]
                where = " AND ".join(f"{c} = %s" for c in conflict_columns)
                cur.execute(f"SELECT id FROM {table} WHERE {where}", key_values)
                found = cur.fetchone()
        return found[0]

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self.transaction() as cur:
            cur.execute(sql, params)
            cols = [d[0] for d in cur.description]
            return [dict(zip(cols, row)) for row in cur.fetchall()]

    def fetch_value(self, sql: str, params: Sequence[Any] = ()) -> Any:
        with self.transaction() as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
            return row[0] if row else None

    # ------------------------------------------------------------------
    # Ingestion run tracking
    # ------------------------------------------------------------------

    def record_run_start(self, org_logins: list[str]) -> str:
        """Insert a new ingestion_runs row with status RUNNING. Returns the run id."""
        run_id = str(uuid.uuid4())
        with self.transaction() as cur:
            cur.execute(
                """INSERT INTO ingestion_runs (id, org_logins, status)
                   VALUES (%s, %s, 'RUNNING')""",
                (run_id, org_logins),
            )
        return run_id

    def record_run_end(
        self,
        run_id: str,
        status: str,
        records_upserted: int = 0,
        failure_count: int = 0,
        error_message: Optional[str] = None,
        error_detail: Optional[dict] = None,
    ) -> None:
        """Finalise an ingestion_runs row."""
        with self.transaction() as cur:
            cur.execute(
                """UPDATE ingestion_runs
                   SET status = %s,
                       finished_at = NOW(),
                       records_upserted = %s,
                       failure_count = %s,
                       error_message = %s,
                       error_detail = %s
                   WHERE id = %s""",
                (
                    status,
                    records_upserted,
                    failure_count,
                    error_message,
                    psycopg2.extras.Json(error_detail) if error_detail else None,
                    run_id,
                ),
            )

    def get_recent_runs(self, limit: int = 10) -> list[dict[str, Any]]:
        """Fetch recent ingestion runs for status display."""
        return self.fetch_all(
            """SELECT id, org_logins, status, started_at, finished_at,
                      records_upserted, failure_count, error_message
               FROM ingestion_runs
               ORDER BY started_at DESC LIMIT %s""",
            (limit,),
        )


def _adapt(value: Any) -> Any:
    """Nested dicts go to jsonb columns."""
    if isinstance(value, dict):
        return psycopg2.extras.Json(value)
    return value
