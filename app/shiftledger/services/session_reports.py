from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from app.shiftledger.core.clock import Clock, utcnow
from app.shiftledger.core.logging import log_json
from app.shiftledger.core.metrics import metrics
from app.shiftledger.core.money import from_cents
from app.shiftledger.db.session import store_operation
from app.shiftledger.repos.payment_transactions import PaymentTransactionRepository
from app.shiftledger.schemas.shift import (
    PaymentMethod,
    PaymentMethodBreakdownRow,
    SessionSummaryReport,
    TransactionStatus,
)
from app.shiftledger.services.session_ledger import SessionLedger, session_response

logger = logging.getLogger(__name__)


class SessionReportService:
    """Per-method breakdown of a session, recomputed from its completed transactions."""

    def __init__(self, db, *, clock: Clock = utcnow):
        self.db = db
        self.ledger = SessionLedger(db, clock=clock)
        self.transactions = PaymentTransactionRepository(db)
        self._clock = clock

    def build_summary(self, session_id: str | uuid.UUID) -> SessionSummaryReport:
        session = self.ledger.get_session_by_id(session_id)
        parsed = uuid.UUID(session.id)
        with store_operation(self.db, "build_session_summary"):
            grouped = {
                row.payment_method: row
                for row in self.transactions.totals_by_method(parsed, status=TransactionStatus.COMPLETED.value)
            }
            transaction_count = self.transactions.count_for_session(parsed)

        methods = []
        recomputed_total = Decimal("0.00")
        consistent = True
        for method in PaymentMethod:
            row = grouped.get(method.value)
            total_amount = from_cents(row.total_cents) if row else Decimal("0.00")
            stored_total = session.total_for(method)
            recomputed_total += total_amount
            if total_amount != stored_total:
                consistent = False
            methods.append(
                PaymentMethodBreakdownRow(
                    payment_method=method,
                    total_amount=total_amount,
                    stored_total=stored_total,
                    transaction_count=int(row.transaction_count) if row else 0,
                )
            )
        if session.total_revenue != session.cash_total + session.upi_total + session.bank_total:
            consistent = False
        if recomputed_total != session.total_revenue:
            consistent = False

        if not consistent:
            metrics.increment_invariant_violation("session_aggregate_mismatch")
            log_json(
                logger,
                {
                    "event": "shift_session.aggregate_mismatch",
                    "session_id": session.id,
                    "stored_total": session.total_revenue,
                    "recomputed_total": recomputed_total,
                },
                level=logging.WARNING,
            )

        return SessionSummaryReport(
            session=session_response(session, self._clock()),
            transaction_count=transaction_count,
            methods=methods,
            recomputed_total=recomputed_total,
            consistent=consistent,
        )
