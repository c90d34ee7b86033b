"""Terminal-side view of the current shift session.

Wraps the ledger services for a single operator screen: it remembers which
session the terminal is attached to, exposes loading/error state and derived
stats, and reports outcomes through an optional notifier callback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from app.shiftledger.core.clock import Clock, utcnow
from app.shiftledger.core.config import settings
from app.shiftledger.core.error_catalog import AppError, NoActiveSessionError
from app.shiftledger.core.money import CENT
from app.shiftledger.presentation.active_session_cache import ActiveSessionCache
from app.shiftledger.repos.payment_transactions import PaymentTransactionRepository
from app.shiftledger.schemas.shift import ShiftSessionSummary, TransactionResponse
from app.shiftledger.services.orders import OrderGateway
from app.shiftledger.services.session_ledger import SessionLedger, parse_uuid, session_duration
from app.shiftledger.services.transaction_recorder import TransactionRecorder

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def format_currency(amount: Decimal | int | float | str, symbol: str | None = None) -> str:
    value = Decimal(str(amount)).quantize(CENT)
    return f"{symbol if symbol is not None else settings.CURRENCY_SYMBOL}{value:,.2f}"


def _error_message(exc: Exception, fallback: str) -> str:
    if not isinstance(exc, AppError):
        return fallback
    details = exc.details if isinstance(exc.details, dict) else {}
    return details.get("message") or exc.error.message or fallback


@dataclass
class SessionStats:
    total_transactions: int = 0
    duration: str = ""


class SessionPresentationContext:
    def __init__(
        self,
        session_factory,
        cache: ActiveSessionCache,
        gateway: OrderGateway,
        notifier: Notifier | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._gateway = gateway
        self._notifier = notifier
        self._clock = clock
        self.current_session: ShiftSessionSummary | None = None
        self.is_loading = False
        self.error: str | None = None
        self.stats = SessionStats()

    @property
    def is_session_active(self) -> bool:
        return bool(self.current_session and self.current_session.is_active)

    def _notify(self, level: str, message: str) -> None:
        if self._notifier is not None:
            self._notifier(level, message)

    def _set_session(self, session: ShiftSessionSummary | None, db) -> None:
        self.current_session = session
        if session is None:
            self.stats = SessionStats()
            return
        count = PaymentTransactionRepository(db).count_for_session(parse_uuid(session.id))
        duration = session_duration(session.start_time, session.end_time, self._clock())
        self.stats = SessionStats(total_transactions=count, duration=duration.display)

    def load(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            with self._session_factory() as db:
                ledger = SessionLedger(db, clock=self._clock)
                session = None
                cached_id = self._cache.get()
                if cached_id:
                    try:
                        session = ledger.get_session_by_id(cached_id)
                    except AppError:
                        logger.warning("Cached session could not be loaded", extra={"session_id": cached_id})
                        session = None
                    if session is None or not session.is_active:
                        self._cache.clear()
                        session = None
                if session is None:
                    session = ledger.get_active_session()
                    if session is not None:
                        self._cache.set(session.id)
                self._set_session(session, db)
        except (AppError, OSError):
            logger.exception("Failed to load session data")
            self.error = "Failed to load session data"
            self._notify("error", self.error)
        finally:
            self.is_loading = False

    def start_new_session(self, user_id: str) -> None:
        self.is_loading = True
        self.error = None
        try:
            with self._session_factory() as db:
                session = SessionLedger(db, clock=self._clock).start_session(user_id)
                self._cache.set(session.id)
                self._set_session(session, db)
            self._notify("success", "Session started successfully")
        except (AppError, OSError) as exc:
            self.error = _error_message(exc, "Failed to start session")
            self._notify("error", self.error)
        finally:
            self.is_loading = False

    def close_current_session(self, notes: str | None = None) -> None:
        if self.current_session is None:
            self.error = "No active session to close"
            self._notify("error", self.error)
            return
        self.is_loading = True
        self.error = None
        try:
            with self._session_factory() as db:
                session = SessionLedger(db, clock=self._clock).end_session(notes)
                self._cache.clear()
                self._set_session(session, db)
            self._notify("success", "Session closed successfully")
        except (AppError, OSError) as exc:
            self.error = _error_message(exc, "Failed to close session")
            self._notify("error", self.error)
        finally:
            self.is_loading = False

    def process_payment(self, order_id: str, amount, payment_method) -> TransactionResponse:
        if not self.is_session_active:
            raise NoActiveSessionError(
                details={"message": "No active session. Please start a session before processing payments."}
            )
        with self._session_factory() as db:
            recorder = TransactionRecorder(db, orders=self._gateway, inventory=self._gateway, clock=self._clock)
            transaction = recorder.record_payment(order_id, amount, payment_method)
        self.refresh_session()
        return transaction

    def refresh_session(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            with self._session_factory() as db:
                self._set_session(SessionLedger(db, clock=self._clock).get_active_session(), db)
        except AppError:
            logger.exception("Failed to refresh session data")
            self.error = "Failed to refresh session data"
        finally:
            self.is_loading = False
