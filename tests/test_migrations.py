import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.shiftledger.db.models import ShiftSession


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def _session(is_active: bool) -> ShiftSession:
    return ShiftSession(
        id=uuid.uuid4(),
        user_id="cashier",
        start_time=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
        end_time=None if is_active else datetime(2026, 3, 1, 17, 0, tzinfo=timezone.utc),
        is_active=is_active,
        cash_total_cents=0,
        upi_total_cents=0,
        bank_total_cents=0,
        total_revenue_cents=0,
        version=1,
    )


def test_migrations_apply(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    _run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    assert {"shift_sessions", "payment_transactions", "idempotency_records"} <= tables
    indexes = {index["name"] for index in inspector.get_indexes("shift_sessions")}
    assert "uq_shift_sessions_single_active" in indexes
    engine.dispose()


def test_single_active_session_enforced_by_schema(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'active.db'}"
    _run_migrations(database_url)
    engine = create_engine(database_url, future=True)
    SessionLocal = sessionmaker(bind=engine, future=True)

    with SessionLocal() as db:
        db.add_all([_session(False), _session(False), _session(True)])
        db.commit()

        db.add(_session(True))
        with pytest.raises(IntegrityError):
            db.commit()
    engine.dispose()
