"""
Database Connection and Transaction Management

Handles the SQLite file behind the metadata store: WAL journaling,
bounded lock waits and explicit read/write transaction scopes.
"""

from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, text, event, Engine, Connection
from sqlalchemy.exc import SQLAlchemyError

from .models import Base
from ..utils.logging_config import get_logger


logger = get_logger(__name__)


class DatabaseManager:
    """
    SQLite engine manager with serialized writers and snapshot readers
    """

    def __init__(self, db_path: str, open_timeout: float = 1.0, echo: bool = False):
        self.db_path = db_path
        self.open_timeout = open_timeout
        self.echo = echo
        self._engine: Optional[Engine] = None

    @property
    def connection_string(self) -> str:
        return f"sqlite:///{self.db_path}"

    @property
    def engine(self) -> Engine:
        """Get database engine, creating if necessary"""
        if self._engine is None:
            self._create_engine()
        return self._engine

    def _create_engine(self) -> None:
        """Create SQLAlchemy engine for the store file"""
        self._engine = create_engine(
            self.connection_string,
            echo=self.echo,
            connect_args={
                # sqlite3 busy timeout, bounds every lock wait
                'timeout': self.open_timeout,
                'check_same_thread': False,
            },
        )
        self._setup_engine_events()

        logger.debug("Database engine created", db_path=self.db_path,
                     open_timeout=self.open_timeout)

    def _setup_engine_events(self) -> None:
        """Take over transaction control from pysqlite"""

        @event.listens_for(self._engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # pysqlite must not emit its own BEGIN/COMMIT
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(self._engine, "begin")
        def do_begin(conn):
            mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
            conn.exec_driver_sql(f"BEGIN {mode}")

    @contextmanager
    def transaction(self, write: bool = False) -> Generator[Connection, None, None]:
        """
        Context manager for one ACID transaction

        Write transactions start with BEGIN IMMEDIATE so writers are
        serialized up front; read transactions see a WAL snapshot.

        Yields:
            Database connection inside an open transaction
        """
        with self.engine.connect() as conn:
            conn.execution_options(sqlite_begin="IMMEDIATE" if write else "DEFERRED")
            try:
                with conn.begin():
                    yield conn
            except SQLAlchemyError as e:
                logger.error("Database transaction error", error=str(e), write=write)
                raise

    def create_buckets(self) -> None:
        """Create every partition table that does not exist yet"""
        with self.transaction(write=True) as conn:
            Base.metadata.create_all(conn, checkfirst=True)
        logger.debug("Buckets created or already exist", db_path=self.db_path)

    @staticmethod
    def bucket_exists(conn: Connection, bucket: str) -> bool:
        """Check for a partition table inside an open transaction"""
        row = conn.execute(
            text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = :name"),
            {'name': bucket},
        ).first()
        return row is not None

    def close_all_connections(self) -> None:
        """Close all database connections"""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.debug("All database connections closed", db_path=self.db_path)
