from __future__ import annotations

import uuid
from datetime import datetime
from typing import assert_never

from sqlalchemy import select, update

from app.shiftledger.db.models import ShiftSession
from app.shiftledger.schemas.shift import PaymentMethod


def _method_column(method: PaymentMethod):
    match method:
        case PaymentMethod.CASH:
            return ShiftSession.cash_total_cents
        case PaymentMethod.UPI:
            return ShiftSession.upi_total_cents
        case PaymentMethod.BANK:
            return ShiftSession.bank_total_cents
        case _:
            assert_never(method)


class ShiftSessionRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, session_id: uuid.UUID) -> ShiftSession | None:
        return self.db.execute(select(ShiftSession).where(ShiftSession.id == session_id)).scalars().first()

    def list_active(self) -> list[ShiftSession]:
        query = (
            select(ShiftSession)
            .where(ShiftSession.is_active.is_(True))
            .order_by(ShiftSession.start_time.desc(), ShiftSession.id)
        )
        return self.db.execute(query).scalars().all()

    def list_all(self) -> list[ShiftSession]:
        return self.db.execute(select(ShiftSession).order_by(ShiftSession.start_time.desc())).scalars().all()

    def create(self, session: ShiftSession) -> ShiftSession:
        self.db.add(session)
        self.db.flush()
        return session

    def close(self, session_id: uuid.UUID, *, end_time: datetime, notes: str | None) -> int:
        stmt = (
            update(ShiftSession)
            .where(ShiftSession.id == session_id, ShiftSession.is_active.is_(True))
            .values(end_time=end_time, is_active=False, notes=notes, version=ShiftSession.version + 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def increment_totals(self, session_id: uuid.UUID, method: PaymentMethod, amount_cents: int) -> int:
        """Add ``amount_cents`` to one method accumulator and the total in a single UPDATE.

        Returns the number of rows touched; 0 means the session is no longer active.
        """
        column = _method_column(method)
        stmt = (
            update(ShiftSession)
            .where(ShiftSession.id == session_id, ShiftSession.is_active.is_(True))
            .values(
                {
                    column: column + amount_cents,
                    ShiftSession.total_revenue_cents: ShiftSession.total_revenue_cents + amount_cents,
                    ShiftSession.version: ShiftSession.version + 1,
                }
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount
