from __future__ import annotations

import uuid

from sqlalchemy import func, select

from app.shiftledger.db.models import PaymentTransaction


class PaymentTransactionRepository:
    def __init__(self, db):
        self.db = db

    def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get_by_id(self, transaction_id: uuid.UUID) -> PaymentTransaction | None:
        return (
            self.db.execute(select(PaymentTransaction).where(PaymentTransaction.id == transaction_id))
            .scalars()
            .first()
        )

    def list_for_session(self, session_id: uuid.UUID) -> list[PaymentTransaction]:
        # Ordering is applied by callers.
        return (
            self.db.execute(select(PaymentTransaction).where(PaymentTransaction.session_id == session_id))
            .scalars()
            .all()
        )

    def count_for_session(self, session_id: uuid.UUID) -> int:
        return self.db.execute(
            select(func.count(PaymentTransaction.id)).where(PaymentTransaction.session_id == session_id)
        ).scalar_one()

    def totals_by_method(self, session_id: uuid.UUID, *, status: str):
        return self.db.execute(
            select(
                PaymentTransaction.payment_method,
                func.coalesce(func.sum(PaymentTransaction.amount_cents), 0).label("total_cents"),
                func.count(PaymentTransaction.id).label("transaction_count"),
            )
            .where(PaymentTransaction.session_id == session_id, PaymentTransaction.status == status)
            .group_by(PaymentTransaction.payment_method)
        ).all()
