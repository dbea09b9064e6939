"""
device_service/DB/session.py
======================================
Database Session Configuration Module
======================================

The device registry's storage subsystem: one SQLAlchemy engine (connection
pool), one session factory and one read-write lock, owned together by a
DeviceDatabase instance. The application creates it in the lifespan handler
and disposes it on shutdown; there is no module-level engine.

Architecture:
------------
- Engine: Pooled connections to the embedded SQLite database
- SessionLocal: Factory for sessions (autocommit=False, autoflush=False)
- ReadWriteLock: Readers run concurrently, a writer runs alone

Usage Example:
-------------
    database = DeviceDatabase("sqlite:///var/db/database.db")
    try:
        with database.read_session("list devices") as db:
            rows = db.query(Device).all()

        with database.write_session("book device") as db:
            device = db.get(Device, 7)
            device.available = 0
            # committed when the block exits, rolled back on any exception
    finally:
        database.close()

Transactions:
------------
write_session() commits on a clean exit and rolls back on ANY exception,
including domain errors such as DeviceNotAvailable. SQLAlchemy errors are
converted to InternalStorageFailure; other exceptions propagate unchanged.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from device_service.Core import log_ws
from device_service.Core.errors import InternalStorageFailure
from device_service.DB.base_class import Base
from device_service.DB.rwlock import ReadWriteLock


class DeviceDatabase:
    """
    Owned storage subsystem: engine + session factory + read-write lock.

    Args:
        database_url: SQLAlchemy URL, normally sqlite:///path/to/database.db
    """

    def __init__(self, database_url: str):
        url = make_url(database_url)
        connect_args = {}

        if url.get_backend_name() == "sqlite":
            # Sessions are used from FastAPI's worker threads
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self.url = url
        self.engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )
        self.lock = ReadWriteLock()

    # ============================================================
    # Sessions
    # ============================================================

    @contextmanager
    def read_session(self, operation: str = "read") -> Iterator[Session]:
        """
        Session for queries, held under the shared (read) side of the lock.

        Raises:
            InternalStorageFailure: on any SQLAlchemy error
        """
        with self.lock.read_locked():
            db = self.SessionLocal()
            try:
                yield db
            except SQLAlchemyError as e:
                log_ws.log_from_thread(f"[DB] Failed to {operation}: {e}", "error")
                raise InternalStorageFailure(operation) from e
            finally:
                db.close()

    @contextmanager
    def write_session(self, operation: str = "write") -> Iterator[Session]:
        """
        Transactional session held under the exclusive (write) side of the lock.

        Commits when the block completes, rolls back on any exception.

        Raises:
            InternalStorageFailure: on any SQLAlchemy error (after rollback)
        """
        with self.lock.write_locked():
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                log_ws.log_from_thread(f"[DB] Failed to {operation}, rolled back: {e}", "error")
                raise InternalStorageFailure(operation) from e
            except BaseException:
                db.rollback()
                raise
            finally:
                db.close()

    # ============================================================
    # Schema
    # ============================================================

    def ensure_schema(self) -> bool:
        """
        Create the registry tables if they do not exist yet.

        Returns:
            True if the devices table was already there, False if it was created

        Raises:
            InternalStorageFailure: if the schema cannot be inspected or created
        """
        # Register the models with Base.metadata
        from device_service.Models.device import Device

        with self.lock.write_locked():
            try:
                table_was_there = inspect(self.engine).has_table(Device.__table__.name)
                Base.metadata.create_all(bind=self.engine, checkfirst=True)
            except SQLAlchemyError as e:
                log_ws.log_from_thread(f"[DB] Exception when creating the devices table: {e}", "error")
                raise InternalStorageFailure("create devices table") from e

        if table_was_there:
            log_ws.log_from_thread("[DB] Devices table already exists")
        else:
            log_ws.log_from_thread("[DB] Created the devices table")

        return table_was_there

    # ============================================================
    # Health
    # ============================================================

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Never raises."""
        try:
            with self.read_session("ping database") as db:
                return db.execute(text("SELECT 1")).scalar() == 1
        except InternalStorageFailure:
            return False

    def close(self) -> None:
        """Dispose of the connection pool. Safe to call more than once."""
        self.engine.dispose()
        log_ws.log_from_thread("[DB] Connection pool disposed")
