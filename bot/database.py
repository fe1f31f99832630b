"""
Module: bot/database.py

Handles SQLite database connectivity, schema initialization, and query execution for notifications.
"""
import sqlite3
from datetime import datetime, UTC
from utils import log_message

class Database:
    """
    Database wrapper for SQLite with automatic connection handling and schema setup.
    """
    def __init__(self, path='notifications.db'):
        """
        Initialize the Database instance and establish the first connection.

        Args:
            path (str): SQLite database file.
        """
        self.path = path
        self.conn = None
        self.cursor = None
        self.connect()

    def connect(self):
        """
        Establish a connection to the SQLite database, set up the timestamp
        converter, and initialize the schema if necessary.

        Reconnects if there was a previous connection.
        """
        try:
            if self.conn:
                try:
                    self.conn.close()
                except Exception as e:
                    log_message(f"Error closing existing DB connection: {e}", "warning")

            def parse_utc_timestamp(ts):
                """
                Parse a byte-string timestamp from SQLite into a Python datetime with UTC tz.
                """
                try:
                    parsed = datetime.fromisoformat(ts.decode())
                except ValueError as e:
                    log_message(f"Error parsing UTC timestamp {ts!r}: {e}", "error")
                    return None
                if parsed.tzinfo is None:
                    return parsed.replace(tzinfo=UTC)
                return parsed.astimezone(UTC)

            sqlite3.register_converter("timestamp", parse_utc_timestamp)

            self.conn = sqlite3.connect(
                self.path,
                detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
                check_same_thread=False
            )
            self.cursor = self.conn.cursor()
            self._initialize_db()

        except Exception as e:
            log_message(f"Database connection error: {e}", "error")

    def _initialize_db(self):
        """
        Create the 'notifications' table and its indexes if they do not exist.
        """
        try:
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    image_url TEXT,
                    description TEXT,
                    countdown_end TIMESTAMP,
                    giveaway_end TIMESTAMP,
                    guild_id INTEGER,
                    max_winners INTEGER,
                    sent BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_sent ON notifications (sent)')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_type ON notifications (type)')
            self.conn.commit()
        except Exception as e:
            log_message(f"Error initializing database schema: {e}", "error")

    def ensure_connection(self):
        """
        Verify that the current connection is alive by executing a simple query.
        If it fails, reconnect and reinitialize the schema.
        """
        try:
            self.cursor.execute('SELECT 1')
        except (AttributeError, sqlite3.ProgrammingError, sqlite3.InterfaceError, sqlite3.OperationalError) as e:
            log_message(f"Lost DB connection, reconnecting: {e}", "warning")
            self.connect()

    def close(self):
        """
        Close the connection; the next query reconnects.
        """
        if self.conn:
            self.conn.close()

    def execute(self, query, params=()):
        """
        Execute a modifying SQL query (INSERT/UPDATE/DELETE) with parameters,
        ensuring the connection is alive and committing after success.

        Returns the SQLite cursor for further inspection. Errors are re-raised
        for the caller to report.
        """
        try:
            self.ensure_connection()
            result = self.cursor.execute(query, params)
            self.conn.commit()
            return result
        except Exception as e:
            log_message(f"Query failed: {e}\nQuery: {query}\nParams: {params}", "debug")
            raise

    def fetchall(self, query, params=()):
        """
        Execute a SELECT query with parameters and return all fetched rows.

        Ensures the connection is alive before querying.
        """
        try:
            self.ensure_connection()
            return self.cursor.execute(query, params).fetchall()
        except Exception as e:
            log_message(f"Fetch failed: {e}\nQuery: {query}\nParams: {params}", "debug")
            raise
