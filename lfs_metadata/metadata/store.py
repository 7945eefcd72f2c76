"""
Metadata Store

Tracks which large objects exist and their declared size, and keeps
the credentials of registered users. Two partitions live in one SQLite
file: `users` (name -> password digest) and `objects` (oid -> encoded
MetaObject). Every operation runs in its own transaction.

Usage:
    store = MetadataStore("lfs.db", authenticator=my_authenticator)
    meta = store.put(authorization, oid, size)
    store.close()
"""
import threading
from contextlib import contextmanager
from typing import Any, Generator, List, Optional

from sqlalchemy import Connection, delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..config.config_manager import AppConfig, get_config
from ..database.connection import DatabaseManager
from ..database.models import (
    MetaObject, MetaUser, RequestVars, ObjectRecord, UserRecord,
    USERS_BUCKET, OBJECTS_BUCKET,
)
from ..utils.logging_config import StoreLogger
from .auth import Authenticator, BasicAuthenticator, DEFAULT_ITERATIONS, check_password, hash_password
from .codec import decode_object, encode_object
from .errors import AuthError, BucketNotFound, MetaStoreError, ObjectNotFound, StoreUnavailable


class MetadataStore:
    """Authenticated, transactional object metadata and user credential store.

    The store is not a singleton: whoever constructs it owns it and is
    responsible for calling close() once. Concurrent calls from several
    threads are fine; isolation comes from the engine, writers are
    serialized and readers see a consistent snapshot.
    """

    def __init__(self, db_path: str,
                 authenticator: Optional[Authenticator] = None,
                 open_timeout: float = 1.0,
                 logger: Optional[Any] = None,
                 hash_iterations: int = DEFAULT_ITERATIONS,
                 echo: bool = False):
        """
        Open (or create) the store file and make sure both partitions exist

        Args:
            db_path: Path of the SQLite file
            authenticator: Callable judging an Authorization value; defaults to
                Basic credentials checked against the users partition
            open_timeout: Seconds to wait for the file lock before giving up
            logger: structlog-style logger receiving lookup failures
            hash_iterations: PBKDF2 rounds used for new password digests

        Raises:
            StoreUnavailable: file cannot be opened or locked within open_timeout
        """
        if logger is None:
            logger = StoreLogger("store")
            logger.set_context(db_path=db_path)
        self.logger = logger
        self.authenticator = authenticator or BasicAuthenticator(self._verify_credentials)
        self.hash_iterations = hash_iterations
        self.db_path = db_path

        self._db = DatabaseManager(db_path, open_timeout=open_timeout, echo=echo)
        self._close_lock = threading.Lock()
        self._closed = False

        try:
            self._db.create_buckets()
        except SQLAlchemyError as e:
            self._db.close_all_connections()
            raise StoreUnavailable(f"Cannot open metadata store {db_path}: {e}") from e

        self.logger.info("Metadata store opened", open_timeout=open_timeout)

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None,
                    authenticator: Optional[Authenticator] = None) -> "MetadataStore":
        """Build a store from application configuration"""
        config = config or get_config()
        return cls(
            config.store.db_path,
            authenticator=authenticator,
            open_timeout=config.store.open_timeout,
            hash_iterations=config.auth.hash_iterations,
            echo=config.store.echo,
        )

    # ─────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the underlying engine. Closing twice is a no-op."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._db.close_all_connections()
        self.logger.info("Metadata store closed")

    def __enter__(self) -> "MetadataStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _transaction(self, write: bool = False) -> Generator[Connection, None, None]:
        if self._closed:
            raise StoreUnavailable("Metadata store is closed")
        try:
            with self._db.transaction(write=write) as conn:
                yield conn
        except OperationalError as e:
            raise StoreUnavailable(str(e)) from e

    def _require_bucket(self, conn: Connection, bucket: str) -> None:
        if not self._db.bucket_exists(conn, bucket):
            raise BucketNotFound(bucket)

    def _authenticate(self, authorization: str) -> None:
        if self.authenticator(authorization) is not True:
            raise AuthError()

    def _log_failure(self, error: Exception, oid: str) -> None:
        self.logger.error("Metadata lookup failed", operation="meta_store",
                          message=str(error), oid=oid)

    def _verify_credentials(self, name: str, password: str) -> bool:
        """verify_user for the default authenticator; a store fault rejects the credential"""
        try:
            return self.verify_user(name, password)
        except MetaStoreError as e:
            self.logger.error("Credential check failed", operation="meta_store",
                              message=str(e), user=name)
            return False

    # ─────────────────────────────────────────────────────────────
    # OBJECTS
    # ─────────────────────────────────────────────────────────────

    def _lookup(self, oid: str) -> MetaObject:
        with self._transaction() as conn:
            self._require_bucket(conn, OBJECTS_BUCKET)
            value = conn.execute(
                select(ObjectRecord.value).where(ObjectRecord.oid == oid)
            ).scalar()

        if not value:
            raise ObjectNotFound(oid)
        return decode_object(value)

    def get(self, authorization: str, oid: str) -> MetaObject:
        """
        Retrieve the metadata stored for `oid`

        Raises:
            AuthError: credential rejected, the store is not touched
            BucketNotFound: objects partition is missing
            ObjectNotFound: no record for oid
            DecodeError: stored value is malformed
        """
        self._authenticate(authorization)
        try:
            return self._lookup(oid)
        except Exception as e:
            self._log_failure(e, oid)
            raise

    def put(self, authorization: str, oid: str, size: int) -> MetaObject:
        """
        Register `oid` with `size` unless it is already known

        An existing record is returned untouched with `existing` set; its
        size is never updated. Only ObjectNotFound from the existence check
        leads to a write, any other lookup error is logged and raised.
        """
        self._authenticate(authorization)

        try:
            meta = self._lookup(oid)
        except ObjectNotFound:
            pass
        except Exception as e:
            self._log_failure(e, oid)
            raise
        else:
            meta.existing = True
            return meta

        meta = MetaObject(oid=oid, size=size)
        value = encode_object(meta)

        stmt = sqlite_insert(ObjectRecord).values(oid=oid, value=value)
        # an empty value reads as missing and may be replaced, a real record may not
        stmt = stmt.on_conflict_do_update(
            index_elements=["oid"],
            set_={"value": stmt.excluded.value},
            where=ObjectRecord.value == b"",
        )
        with self._transaction(write=True) as conn:
            self._require_bucket(conn, OBJECTS_BUCKET)
            written = conn.execute(stmt).rowcount

        if written == 0:
            # another writer stored this oid after our lookup
            winner = self._lookup(oid)
            winner.existing = True
            return winner

        self.logger.debug("Object created", oid=oid, size=size)
        return meta

    def get_request(self, v: RequestVars) -> MetaObject:
        return self.get(v.authorization, v.oid)

    def put_request(self, v: RequestVars) -> MetaObject:
        return self.put(v.authorization, v.oid, v.size)

    def objects(self) -> List[MetaObject]:
        """Return every stored object, ordered by oid.

        One undecodable record aborts the whole listing.
        """
        with self._transaction() as conn:
            self._require_bucket(conn, OBJECTS_BUCKET)
            rows = conn.execute(
                select(ObjectRecord.value).order_by(ObjectRecord.oid)
            ).scalars().all()
            return [decode_object(value) for value in rows]

    # ─────────────────────────────────────────────────────────────
    # USERS
    # ─────────────────────────────────────────────────────────────

    def add_user(self, name: str, password: str) -> None:
        """Store credentials for `name`, replacing any previous password"""
        if not name:
            raise ValueError("User name required")
        digest = hash_password(password, self.hash_iterations)

        stmt = sqlite_insert(UserRecord).values(name=name, value=digest)
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={"value": stmt.excluded.value},
        )
        with self._transaction(write=True) as conn:
            self._require_bucket(conn, USERS_BUCKET)
            conn.execute(stmt)

        self.logger.info("User stored", user=name)

    def delete_user(self, name: str) -> None:
        """Remove credentials for `name`; unknown names are ignored"""
        with self._transaction(write=True) as conn:
            self._require_bucket(conn, USERS_BUCKET)
            conn.execute(delete(UserRecord).where(UserRecord.name == name))

        self.logger.info("User deleted", user=name)

    def verify_user(self, name: str, password: str) -> bool:
        """Check `password` against the stored digest for `name`"""
        with self._transaction() as conn:
            self._require_bucket(conn, USERS_BUCKET)
            stored = conn.execute(
                select(UserRecord.value).where(UserRecord.name == name)
            ).scalar()

        if stored is None:
            return False
        return check_password(password, stored)

    def users(self) -> List[MetaUser]:
        """Return every registered user, ordered by name"""
        with self._transaction() as conn:
            self._require_bucket(conn, USERS_BUCKET)
            names = conn.execute(
                select(UserRecord.name).order_by(UserRecord.name)
            ).scalars().all()
        return [MetaUser(name=name) for name in names]
