# ==============================================================================
# PostgreSQL Event Store
# ==============================================================================
"""
PostgreSQL implementation of the EventStore interface.

Provides:
- PostgreSQLEventStore: single-row session/page view writes and range reads
- check_postgresql_connection: reachability check for the CLI

Every write commits on its own. The page count increment is one UPDATE
relative to the stored value, so concurrent collects never lose a count.
Aggregation reads run inside snapshot(), a REPEATABLE READ READ ONLY
transaction with a per-call statement timeout.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from webanalytics.base.repositories import EventStore
from webanalytics.core.errors import QueryTimeoutError, StorageError
from webanalytics.core.models import PAGE_VIEW_COLUMNS, SESSION_COLUMNS, PageView, Session
from webanalytics.utils.config import Settings, get_settings
from webanalytics.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)

# Connection timeout
CONNECT_TIMEOUT = 10


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    names = ", ".join(columns)
    values = ", ".join(f"%({c})s" for c in columns)
    return f"INSERT INTO {table} ({names}) VALUES ({values})"


class PostgreSQLEventStore(EventStore):
    """
    PostgreSQL implementation of EventStore.

    Uses one psycopg2 connection. Outside snapshot() each statement runs in
    its own short transaction; inside snapshot() reads share the snapshot
    transaction, which is rolled back (it is read only) on exit.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the event store.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.postgres.schema_name
        self._default_timeout = self._settings.analytics.query_timeout_seconds
        self._in_snapshot = False

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
    def _open_connection(self) -> psycopg2.extensions.connection:
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        return psycopg2.connect(conn_string)

    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        try:
            self._conn = self._open_connection()
        except psycopg2.Error as e:
            raise StorageError(f"Could not connect to PostgreSQL: {e}") from e
        logger.info("PostgreSQLEventStore connected (schema=%s)", self._schema)

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("PostgreSQLEventStore connection closed")
            except psycopg2.Error as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None

    # ------------------------------------------------------------------
    # Statement plumbing
    # ------------------------------------------------------------------

    def _require_conn(self) -> psycopg2.extensions.connection:
        if self._conn is None:
            raise RuntimeError("PostgreSQL connection not established. Call connect() first.")
        return self._conn

    def _rollback(self) -> None:
        if self._conn and not self._conn.closed:
            try:
                self._conn.rollback()
            except psycopg2.Error as e:
                logger.warning("Rollback failed: %s", e)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Map psycopg2 failures onto the analytics error taxonomy."""
        try:
            yield
        except psycopg2.errors.QueryCanceled as e:
            self._rollback()
            raise QueryTimeoutError(f"{operation} exceeded the statement timeout") from e
        except psycopg2.Error as e:
            self._rollback()
            logger.error("PostgreSQL %s failed: %s", operation, e)
            raise StorageError(f"{operation} failed: {e}") from e

    def _execute(self, operation: str, sql: str, params) -> int:
        """Run a write statement and commit. Returns the affected row count."""
        conn = self._require_conn()
        with self._translate_errors(operation):
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rowcount = cur.rowcount
            conn.commit()
        return rowcount

    def _fetch(self, operation: str, sql: str, params) -> list[dict]:
        """Run a read statement, staying inside the snapshot transaction if one is open."""
        conn = self._require_conn()
        with self._translate_errors(operation):
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            if not self._in_snapshot:
                conn.rollback()
        return rows

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        self._execute(
            "create_session",
            _insert_sql(f"{self._schema}.sessions", SESSION_COLUMNS),
            session.to_db_record(),
        )

    def get_session(self, session_id: str) -> Optional[Session]:
        rows = self._fetch(
            "get_session",
            f"SELECT * FROM {self._schema}.sessions WHERE id = %s",
            (session_id,),
        )
        return Session(**rows[0]) if rows else None

    def find_open_session(
        self, session_id: str, visitor_id: str, active_since: datetime
    ) -> Optional[Session]:
        rows = self._fetch(
            "find_open_session",
            f"""
            SELECT * FROM {self._schema}.sessions
            WHERE id = %s AND visitor_id = %s AND last_active_at >= %s
            """,
            (session_id, visitor_id, active_since),
        )
        return Session(**rows[0]) if rows else None

    def record_page_view_activity(self, session_id: str, path: str, now: datetime) -> None:
        self._execute(
            "record_page_view_activity",
            f"""
            UPDATE {self._schema}.sessions SET
                last_active_at = %s,
                exit_page = %s,
                page_view_count = page_view_count + 1,
                bounced = FALSE
            WHERE id = %s
            """,
            (now, path, session_id),
        )

    def update_session_activity(self, session_id: str, last_active_at: datetime, duration: int) -> None:
        self._execute(
            "update_session_activity",
            f"UPDATE {self._schema}.sessions SET last_active_at = %s, duration = %s WHERE id = %s",
            (last_active_at, duration, session_id),
        )

    # ------------------------------------------------------------------
    # Page views
    # ------------------------------------------------------------------

    def create_page_view(self, page_view: PageView) -> None:
        self._execute(
            "create_page_view",
            _insert_sql(f"{self._schema}.page_views", PAGE_VIEW_COLUMNS),
            page_view.to_db_record(),
        )

    def find_latest_page_view(self, session_id: str, path: str) -> Optional[PageView]:
        rows = self._fetch(
            "find_latest_page_view",
            f"""
            SELECT * FROM {self._schema}.page_views
            WHERE session_id = %s AND path = %s
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            (session_id, path),
        )
        return PageView(**rows[0]) if rows else None

    def update_page_view_engagement(
        self, page_view_id: str, scroll_depth: int, time_on_page: int
    ) -> None:
        self._execute(
            "update_page_view_engagement",
            f"UPDATE {self._schema}.page_views SET scroll_depth = %s, time_on_page = %s WHERE id = %s",
            (scroll_depth, time_on_page, page_view_id),
        )

    # ------------------------------------------------------------------
    # Range reads
    # ------------------------------------------------------------------

    @contextmanager
    def snapshot(self, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Open a REPEATABLE READ READ ONLY transaction for the block.

        Nested calls reuse the outer snapshot.
        """
        if self._in_snapshot:
            yield
            return

        conn = self._require_conn()
        timeout = self._default_timeout if timeout is None else timeout

        with self._translate_errors("snapshot"):
            # Ends any idle implicit transaction so SET TRANSACTION is first
            conn.rollback()
            with conn.cursor() as cur:
                cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY")
                if timeout and timeout > 0:
                    cur.execute("SET LOCAL statement_timeout = %s", (int(timeout * 1000),))

        self._in_snapshot = True
        try:
            yield
        finally:
            self._in_snapshot = False
            self._rollback()

    def _range_clause(self, column: str, since: datetime, until: Optional[datetime]) -> tuple[str, tuple]:
        if until is None:
            return f"{column} >= %s", (since,)
        return f"{column} >= %s AND {column} < %s", (since, until)

    def sessions_started_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[Session]:
        where, params = self._range_clause("started_at", since, until)
        rows = self._fetch(
            "sessions_started_between",
            f"SELECT * FROM {self._schema}.sessions WHERE {where} ORDER BY started_at",
            params,
        )
        return [Session(**row) for row in rows]

    def sessions_active_since(self, since: datetime) -> list[Session]:
        rows = self._fetch(
            "sessions_active_since",
            f"SELECT * FROM {self._schema}.sessions WHERE last_active_at >= %s",
            (since,),
        )
        return [Session(**row) for row in rows]

    def page_views_between(
        self, since: datetime, until: Optional[datetime] = None
    ) -> list[PageView]:
        where, params = self._range_clause("timestamp", since, until)
        rows = self._fetch(
            "page_views_between",
            f"SELECT * FROM {self._schema}.page_views WHERE {where} ORDER BY timestamp",
            params,
        )
        return [PageView(**row) for row in rows]

    def count_page_views_between(self, since: datetime, until: Optional[datetime] = None) -> int:
        where, params = self._range_clause("timestamp", since, until)
        rows = self._fetch(
            "count_page_views_between",
            f"SELECT COUNT(*) AS count FROM {self._schema}.page_views WHERE {where}",
            params,
        )
        return int(rows[0]["count"]) if rows else 0


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    try:
        settings = settings or get_settings()
        conn_string = _add_connect_timeout(settings.postgres.connection_string)
        conn = psycopg2.connect(conn_string)
        conn.close()
        return True
    except psycopg2.Error:
        return False
