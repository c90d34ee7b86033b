"""Payment recording against the active shift session.

The transaction row and the accumulator increment share one database
transaction. The increment is a single ``UPDATE ... SET x = x + :amount``
guarded by ``is_active``, so concurrent payments never read a stale total
and a session closed mid-flight rejects the payment instead of absorbing it.

Inventory deduction runs after commit and is best-effort: its failures are
logged and counted but never undo or fail the payment.
"""

from __future__ import annotations

import logging
import uuid

from app.shiftledger.core.clock import Clock, normalize_timestamp, utcnow
from app.shiftledger.core.error_catalog import ErrorCatalog, NoActiveSessionError, NotFoundError, ValidationError
from app.shiftledger.core.logging import log_json
from app.shiftledger.core.metrics import metrics
from app.shiftledger.core.money import from_cents, parse_amount, to_cents
from app.shiftledger.db.models import PaymentTransaction
from app.shiftledger.db.session import store_operation
from app.shiftledger.repos.payment_transactions import PaymentTransactionRepository
from app.shiftledger.repos.shift_sessions import ShiftSessionRepository
from app.shiftledger.schemas.shift import PaymentMethod, TransactionResponse, TransactionStatus
from app.shiftledger.services.orders import InventoryDeduction, OrderLookup
from app.shiftledger.services.session_ledger import parse_uuid, pick_active_session

logger = logging.getLogger(__name__)


def transaction_response(transaction: PaymentTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=str(transaction.id),
        session_id=str(transaction.session_id),
        order_id=transaction.order_id,
        amount=from_cents(transaction.amount_cents),
        payment_method=PaymentMethod(transaction.payment_method),
        status=TransactionStatus(transaction.status),
        timestamp=normalize_timestamp(transaction.timestamp),
    )


def parse_payment_method(value: object) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value).upper())
    except ValueError:
        raise ValidationError(
            "unsupported payment method",
            field="payment_method",
            allowed=[method.value for method in PaymentMethod],
        ) from None


class TransactionRecorder:
    def __init__(self, db, *, orders: OrderLookup, inventory: InventoryDeduction, clock: Clock = utcnow):
        self.db = db
        self.sessions = ShiftSessionRepository(db)
        self.transactions = PaymentTransactionRepository(db)
        self._orders = orders
        self._inventory = inventory
        self._clock = clock

    def record_payment(
        self,
        order_id: str,
        amount: object,
        payment_method: object,
        *,
        session_id: str | None = None,
    ) -> TransactionResponse:
        if not order_id or not str(order_id).strip():
            raise ValidationError("order_id is required", field="order_id")
        value = parse_amount(amount)
        method = parse_payment_method(payment_method)
        amount_cents = to_cents(value)

        with store_operation(self.db, "record_payment"):
            active = pick_active_session(self.sessions)
            if active is None:
                raise NoActiveSessionError(details={"message": "cannot process payment without an active session"})
            if session_id is not None and parse_uuid(session_id) != active.id:
                raise NoActiveSessionError(
                    details={"message": "session is not active", "session_id": str(session_id)}
                )
            active_id = active.id
            transaction = PaymentTransaction(
                session_id=active_id,
                order_id=str(order_id),
                amount_cents=amount_cents,
                payment_method=method.value,
                status=TransactionStatus.COMPLETED.value,
                timestamp=self._clock(),
            )
            self.transactions.create(transaction)
            if not self.sessions.increment_totals(active_id, method, amount_cents):
                raise NoActiveSessionError(
                    details={"message": "session closed before the payment was recorded", "session_id": str(active_id)}
                )
            self.db.commit()
            response = transaction_response(transaction)

        metrics.increment_payment_recorded(method.value)
        log_json(
            logger,
            {
                "event": "payment.recorded",
                "transaction_id": response.id,
                "session_id": response.session_id,
                "order_id": response.order_id,
                "amount": response.amount,
                "payment_method": method.value,
            },
        )
        self._deduct_inventory(response.order_id)
        return response

    def _deduct_inventory(self, order_id: str) -> None:
        try:
            order = self._orders.get_order_by_id(order_id)
            if order is None:
                return
            if not self._inventory.deduct_inventory_for_order_items(order.items, order_id):
                metrics.increment_inventory_deduction_failure()
                log_json(
                    logger,
                    {"event": "inventory.deduction_failed", "order_id": order_id, "reason": "rejected"},
                    level=logging.WARNING,
                )
        except Exception:
            metrics.increment_inventory_deduction_failure()
            logger.exception(
                "Failed to deduct inventory for paid order",
                extra={"order_id": order_id},
            )

    def list_transactions_for_session(self, session_id: str | uuid.UUID) -> list[TransactionResponse]:
        parsed = parse_uuid(session_id)
        if parsed is None:
            raise NotFoundError(details={"session_id": str(session_id)})
        with store_operation(self.db, "list_transactions_for_session"):
            if self.sessions.get_by_id(parsed) is None:
                raise NotFoundError(details={"session_id": str(session_id)})
            rows = [transaction_response(row) for row in self.transactions.list_for_session(parsed)]
        return sorted(rows, key=lambda row: row.timestamp, reverse=True)

    def get_transaction_by_id(self, transaction_id: str | uuid.UUID) -> TransactionResponse:
        parsed = parse_uuid(transaction_id)
        if parsed is None:
            raise NotFoundError(ErrorCatalog.TRANSACTION_NOT_FOUND, details={"transaction_id": str(transaction_id)})
        with store_operation(self.db, "get_transaction_by_id"):
            transaction = self.transactions.get_by_id(parsed)
            if transaction is None:
                raise NotFoundError(ErrorCatalog.TRANSACTION_NOT_FOUND, details={"transaction_id": str(transaction_id)})
            return transaction_response(transaction)
