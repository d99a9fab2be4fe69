"""SQLite snapshot store for BazaarTrack."""

import logging
import sqlite3
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from bazaartrack.errors import QueryTimeout, StoreUnavailable
from bazaartrack.models import HistoryPoint, PeriodStats, PriceSnapshot
from bazaartrack.models.requests import normalize_timestamp, utcnow

logger = logging.getLogger(__name__)


# strftime patterns that truncate a stored timestamp to its bucket start
BUCKET_FORMATS = {
    "hourly": "%Y-%m-%dT%H:00:00",
    "daily": "%Y-%m-%dT00:00:00",
}

# Number of SQLite VM instructions between deadline checks
_PROGRESS_STEPS = 1000


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as fixed-width ISO text so lexical order is time order."""
    return normalize_timestamp(value).isoformat(sep="T", timespec="microseconds")


class SnapshotStore:
    """Append-only SQLite store of bazaar price snapshots.

    Rows are only ever inserted. Every read opens its own connection so
    concurrent queries never share state, and the database runs in WAL mode
    so readers are not blocked by an in-flight batch insert.
    """

    REQUIRED_TABLES = ["bazaar_records"]

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self, deadline: Optional[float] = None) -> sqlite3.Connection:
        """Get a database connection, optionally bounded by a monotonic deadline."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        if deadline is not None:
            conn.set_progress_handler(
                lambda: 1 if time.monotonic() > deadline else 0, _PROGRESS_STEPS
            )
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot open {self.db_path}: {e}") from e
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bazaar_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_id TEXT NOT NULL CHECK (item_id <> ''),
                    timestamp TEXT NOT NULL,
                    sell_price REAL NOT NULL CHECK (sell_price >= 0),
                    buy_price REAL NOT NULL CHECK (buy_price >= 0),
                    sell_volume INTEGER NOT NULL CHECK (sell_volume >= 0),
                    buy_volume INTEGER NOT NULL CHECK (buy_volume >= 0),
                    sell_moving_week INTEGER NOT NULL CHECK (sell_moving_week >= 0),
                    buy_moving_week INTEGER NOT NULL CHECK (buy_moving_week >= 0)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_bazaar_records_item_time
                ON bazaar_records (item_id, timestamp)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_bazaar_records_time
                ON bazaar_records (timestamp)
            """)
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot initialize schema in {self.db_path}: {e}") from e
        finally:
            conn.close()

    def _fetch(
        self, sql: str, params: tuple = (), timeout: Optional[float] = None
    ) -> list[sqlite3.Row]:
        """Run a read query and return all rows.

        Raises:
            QueryTimeout: If the query ran past ``timeout`` seconds.
            StoreUnavailable: On any other SQLite failure.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        try:
            conn = self._get_connection(deadline)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot open {self.db_path}: {e}") from e
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            if deadline is not None and time.monotonic() > deadline:
                raise QueryTimeout(f"query abandoned after {timeout}s") from e
            raise StoreUnavailable(f"query failed: {e}") from e
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        rows = self._fetch(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        )
        return [row["name"] for row in rows]

    # ==================== Writes ====================

    def insert_batch(self, records: list[PriceSnapshot]) -> int:
        """Insert snapshots in a single transaction.

        Either every row is committed or none is.

        Args:
            records: Snapshots to append.

        Returns:
            Number of rows written.

        Raises:
            StoreUnavailable: If the transaction failed and was rolled back.
        """
        if not records:
            return 0

        rows = [
            (
                r.item_id,
                format_timestamp(r.timestamp),
                r.sell_price,
                r.buy_price,
                r.sell_volume,
                r.buy_volume,
                r.sell_moving_week,
                r.buy_moving_week,
            )
            for r in records
        ]
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot open {self.db_path}: {e}") from e
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO bazaar_records
                    (item_id, timestamp, sell_price, buy_price, sell_volume,
                     buy_volume, sell_moving_week, buy_moving_week)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"batch insert of {len(rows)} rows failed: {e}") from e
        finally:
            conn.close()

        logger.debug("Inserted %d rows into %s", len(rows), self.db_path)
        return len(rows)

    # ==================== Reads ====================

    def range_query(
        self,
        item_id: str,
        start: datetime,
        end: Optional[datetime],
        interval: str = "raw",
        timeout: Optional[float] = None,
    ) -> list[HistoryPoint]:
        """Get an item's rows or time buckets over ``[start, end)``.

        Args:
            item_id: Item identifier.
            start: Inclusive lower bound.
            end: Exclusive upper bound, or None for no upper bound.
            interval: "raw", "hourly" or "daily".
            timeout: Optional query deadline in seconds.

        Returns:
            Points in ascending time order. Buckets carry mean prices and
            summed volumes.
        """
        params: list = [item_id, format_timestamp(start)]
        where = "item_id = ? AND timestamp >= ?"
        if end is not None:
            where += " AND timestamp < ?"
            params.append(format_timestamp(end))

        if interval == "raw":
            sql = f"""
                SELECT timestamp, buy_price, sell_price, buy_volume, sell_volume
                FROM bazaar_records
                WHERE {where}
                ORDER BY timestamp, id
            """
        elif interval in BUCKET_FORMATS:
            bucket = f"strftime('{BUCKET_FORMATS[interval]}', timestamp)"
            sql = f"""
                SELECT
                    {bucket} AS timestamp,
                    AVG(buy_price) AS buy_price,
                    AVG(sell_price) AS sell_price,
                    SUM(buy_volume) AS buy_volume,
                    SUM(sell_volume) AS sell_volume
                FROM bazaar_records
                WHERE {where}
                GROUP BY {bucket}
                ORDER BY timestamp
            """
        else:
            raise ValueError(f"Unknown interval: {interval}")

        return [
            HistoryPoint(
                timestamp=datetime.fromisoformat(row["timestamp"]),
                buy_price=row["buy_price"],
                sell_price=row["sell_price"],
                buy_volume=row["buy_volume"],
                sell_volume=row["sell_volume"],
            )
            for row in self._fetch(sql, tuple(params), timeout)
        ]

    def latest_per_item(self, timeout: Optional[float] = None) -> list[PriceSnapshot]:
        """Get the most recent snapshot of every item ever recorded.

        Returns:
            One snapshot per item, ordered by item id.
        """
        rows = self._fetch(
            """
            SELECT r.*
            FROM bazaar_records r
            JOIN (
                SELECT item_id, MAX(timestamp) AS max_timestamp
                FROM bazaar_records
                GROUP BY item_id
            ) lt
            ON r.item_id = lt.item_id AND r.timestamp = lt.max_timestamp
            ORDER BY r.item_id, r.id
            """,
            timeout=timeout,
        )
        # Rows sharing the max timestamp collapse to the last one inserted
        latest: dict[str, PriceSnapshot] = {}
        for row in rows:
            latest[row["item_id"]] = _row_to_snapshot(row)
        return list(latest.values())

    def period_stats(
        self,
        item_id: str,
        since: timedelta,
        now: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> PeriodStats:
        """Get price extremes, averages and volume totals since ``now - since``.

        Returns:
            PeriodStats; every field is None if the item has no rows in range.
        """
        threshold = normalize_timestamp(now or utcnow()) - since
        rows = self._fetch(
            """
            SELECT
                MIN(buy_price) AS min_buy_price,
                MAX(buy_price) AS max_buy_price,
                AVG(buy_price) AS avg_buy_price,
                MIN(sell_price) AS min_sell_price,
                MAX(sell_price) AS max_sell_price,
                AVG(sell_price) AS avg_sell_price,
                SUM(buy_volume) AS total_buy_volume,
                SUM(sell_volume) AS total_sell_volume
            FROM bazaar_records
            WHERE item_id = ? AND timestamp >= ?
            """,
            (item_id, format_timestamp(threshold)),
            timeout,
        )
        return PeriodStats(**dict(rows[0]))

    def daily_buy_averages(
        self,
        since: timedelta,
        now: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, list[float]]:
        """Get each item's mean buy price per day since ``now - since``.

        Returns:
            Mapping of item id to its daily averages in ascending day order.
            Items are in ascending id order.
        """
        threshold = normalize_timestamp(now or utcnow()) - since
        bucket = f"strftime('{BUCKET_FORMATS['daily']}', timestamp)"
        rows = self._fetch(
            f"""
            SELECT item_id, {bucket} AS day, AVG(buy_price) AS avg_price
            FROM bazaar_records
            WHERE timestamp >= ?
            GROUP BY item_id, {bucket}
            ORDER BY item_id, day
            """,
            (format_timestamp(threshold),),
            timeout,
        )
        averages: dict[str, list[float]] = {}
        for row in rows:
            averages.setdefault(row["item_id"], []).append(row["avg_price"])
        return averages

    def count(self, item_id: Optional[str] = None) -> int:
        """Count stored rows, optionally for a single item."""
        if item_id is None:
            rows = self._fetch("SELECT COUNT(*) AS n FROM bazaar_records")
        else:
            rows = self._fetch(
                "SELECT COUNT(*) AS n FROM bazaar_records WHERE item_id = ?", (item_id,)
            )
        return rows[0]["n"]

    def item_ids(self) -> list[str]:
        """Get every item id that has at least one row."""
        rows = self._fetch("SELECT DISTINCT item_id FROM bazaar_records ORDER BY item_id")
        return [row["item_id"] for row in rows]


def _row_to_snapshot(row: sqlite3.Row) -> PriceSnapshot:
    return PriceSnapshot(
        item_id=row["item_id"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        sell_price=row["sell_price"],
        buy_price=row["buy_price"],
        sell_volume=row["sell_volume"],
        buy_volume=row["buy_volume"],
        sell_moving_week=row["sell_moving_week"],
        buy_moving_week=row["buy_moving_week"],
    )
