# database layer
# --sql is used for syntax highlighting inline sql queries

import logging
import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Sequence

from cafe.errors import StorageError

logger = logging.getLogger(__name__)

# sqlite has no decimal type; store the exact text and let NUMERIC affinity handle it
sqlite3.register_adapter(Decimal, str)

Params = Sequence[object]
Record = dict[str, str | None]

SCHEMA = """--sql
CREATE TABLE IF NOT EXISTS USERS (
    login TEXT PRIMARY KEY,
    password TEXT NOT NULL,
    phoneNum TEXT,
    favItems TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL DEFAULT 'Customer'
        CHECK (type IN ('Customer', 'Employee', 'Manager'))
);
CREATE TABLE IF NOT EXISTS MENU (
    itemName TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    price NUMERIC NOT NULL CHECK (price >= 0 AND price <= 99999999.99),
    description TEXT,
    imageURL TEXT
);
CREATE TABLE IF NOT EXISTS ORDERS (
    orderid INTEGER PRIMARY KEY AUTOINCREMENT,
    login TEXT NOT NULL REFERENCES USERS(login) ON UPDATE CASCADE,
    paid INTEGER NOT NULL DEFAULT 0 CHECK (paid IN (0, 1)),
    timeStampRecieved TEXT NOT NULL,
    total NUMERIC NOT NULL CHECK (total >= 0 AND total <= 99999999.99)
);
CREATE TABLE IF NOT EXISTS ITEMSTATUS (
    orderid INTEGER NOT NULL REFERENCES ORDERS(orderid) ON DELETE CASCADE ON UPDATE CASCADE,
    itemName TEXT NOT NULL,
    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity > 0),
    lastUpdated TEXT NOT NULL,
    status TEXT NOT NULL,
    comments TEXT,
    PRIMARY KEY (orderid, itemName)
);
CREATE TRIGGER IF NOT EXISTS trg_orders_paid_monotonic
BEFORE UPDATE OF paid ON ORDERS
WHEN OLD.paid = 1 AND NEW.paid = 0
BEGIN
    SELECT RAISE(ABORT, 'paid orders cannot be marked unpaid');
END;
"""

STARTER_MENU = [
    ("Latte", "Drink", Decimal("3.50"), "espresso with steamed milk", ""),
    ("Americano", "Drink", Decimal("2.75"), "espresso topped with hot water", ""),
    ("Hot Chocolate", "Drink", Decimal("3.25"), "cocoa and steamed milk", ""),
    ("Croissant", "Pastry", Decimal("2.95"), "butter croissant", ""),
    ("Blueberry Muffin", "Pastry", Decimal("3.10"), "baked daily", ""),
]


class Database:
    """owns the single sqlite connection for the process lifetime"""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def connect(cls, path: str, timeout: float = 5.0) -> "Database":
        """open the store, switch foreign keys on and create the schema if missing"""
        try:
            conn = sqlite3.connect(path, timeout=timeout)
        except sqlite3.Error as e:
            raise StorageError(f"unable to connect to database '{path}': {e}") from e
        conn.row_factory = sqlite3.Row
        conn.autocommit = True
        db = cls(conn)
        try:
            conn.execute("--sql\nPRAGMA foreign_keys=ON;")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"unable to initialise database '{path}': {e}") from e
        logger.info("connected to %s", path)
        return db

    def close(self):
        """release the connection; safe to call twice"""
        if self.conn is None:
            return
        self.conn.close()
        self.conn = None
        logger.info("connection closed")

    @property
    def closed(self) -> bool:
        return self.conn is None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info):
        self.close()

    # statement execution
    def _execute(self, statement: str, params: Params) -> sqlite3.Cursor:
        if self.conn is None:
            raise StorageError("database connection is closed")
        logger.debug("sql: %s | params: %r", " ".join(statement.split()), tuple(params))
        try:
            return self.conn.execute(statement, tuple(params))
        except sqlite3.IntegrityError as e:
            raise StorageError(f"constraint violated: {e}", constraint=True) from e
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def execute_mutation(self, statement: str, params: Params = ()) -> int:
        """run an insert/update/delete and return the affected row count"""
        return self._execute(statement, params).rowcount

    def execute_insert(self, statement: str, params: Params = ()) -> int:
        """run an insert and return the generated row id"""
        return self._execute(statement, params).lastrowid

    def execute_query(self, statement: str, params: Params = ()) -> list[Record]:
        """run a select; values come back as strings (NULL stays None)"""
        cur = self._execute(statement, params)
        try:
            return [
                {key: None if row[key] is None else str(row[key]) for key in row.keys()}
                for row in cur.fetchall()
            ]
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def execute_scalar_count(self, statement: str, params: Params = ()) -> int:
        """count the rows a select would return without building them"""
        inner = statement.strip().rstrip(";")
        row = self._execute(f"SELECT COUNT(*) FROM ({inner});", params).fetchone()
        return row[0]

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """group statements; commit on success, roll back on any error"""
        self._execute("BEGIN;", ())
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK;")
            logger.debug("transaction rolled back")
            raise
        self._execute("COMMIT;", ())

    def seed_menu(self) -> int:
        """stock an empty menu with a few starter items; returns how many were added"""
        if self.execute_scalar_count("SELECT 1 FROM MENU"):
            return 0
        added = 0
        for item in STARTER_MENU:
            added += self.execute_mutation(
                """--sql
                INSERT OR IGNORE INTO MENU (itemName, type, price, description, imageURL)
                VALUES (?, ?, ?, ?, ?);
                """,
                item
            )
        return added
