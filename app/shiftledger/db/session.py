import logging
import time
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.shiftledger.core.config import settings
from app.shiftledger.core.db_timing import add_db_time, get_db_time_ms
from app.shiftledger.core.error_catalog import AppError, StoreError
from app.shiftledger.core.errors import is_lock_timeout
from app.shiftledger.core.logging import log_json
from app.shiftledger.core.metrics import metrics

logger = logging.getLogger(__name__)

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False, "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS}

engine = create_engine(settings.DATABASE_URL, echo=False, future=True, connect_args=connect_args)


@event.listens_for(engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if get_db_time_ms() is None:
        return
    conn.info["query_start_time"] = time.perf_counter()


@event.listens_for(engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if get_db_time_ms() is None:
        return
    start = conn.info.pop("query_start_time", None)
    if start is None:
        return
    add_db_time((time.perf_counter() - start) * 1000)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_operation(db, operation: str):
    """Run a unit of store work, mapping driver failures to StoreError.

    Domain errors roll back and propagate unchanged.
    """
    try:
        yield
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        lock_timeout = is_lock_timeout(exc)
        if lock_timeout:
            metrics.increment_lock_wait_timeout()
        log_json(
            logger,
            {
                "event": "store.failure",
                "operation": operation,
                "error_class": exc.__class__.__name__,
                "lock_timeout": lock_timeout,
            },
            level=logging.ERROR,
        )
        raise StoreError(
            details={"operation": operation, "type": exc.__class__.__name__},
            lock_timeout=lock_timeout,
        ) from exc
