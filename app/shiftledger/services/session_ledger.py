"""Shift session lifecycle: start, close, lookup and duration.

At most one session may be active across the whole store. The check in
``start_session`` gives callers a clean ``ConflictError``; the partial unique
index ``uq_shift_sessions_single_active`` is what actually guarantees it when
two terminals race.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from app.shiftledger.core.clock import Clock, normalize_timestamp, utcnow
from app.shiftledger.core.error_catalog import ConflictError, NotFoundError, ValidationError
from app.shiftledger.core.logging import log_json
from app.shiftledger.core.metrics import metrics
from app.shiftledger.core.money import from_cents
from app.shiftledger.db.models import ShiftSession
from app.shiftledger.db.session import store_operation
from app.shiftledger.repos.shift_sessions import ShiftSessionRepository
from app.shiftledger.schemas.shift import (
    SessionDuration,
    SessionDurationResponse,
    ShiftSessionResponse,
    ShiftSessionSummary,
)

logger = logging.getLogger(__name__)


def parse_uuid(value: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def session_summary(session: ShiftSession) -> ShiftSessionSummary:
    return ShiftSessionSummary(
        id=str(session.id),
        user_id=session.user_id,
        start_time=normalize_timestamp(session.start_time),
        end_time=normalize_timestamp(session.end_time),
        is_active=session.is_active,
        cash_total=from_cents(session.cash_total_cents),
        upi_total=from_cents(session.upi_total_cents),
        bank_total=from_cents(session.bank_total_cents),
        total_revenue=from_cents(session.total_revenue_cents),
        notes=session.notes,
        version=session.version,
    )


def session_duration(start_time: datetime, end_time: datetime | None, now: datetime) -> SessionDuration:
    end = normalize_timestamp(end_time) or normalize_timestamp(now)
    elapsed = end - normalize_timestamp(start_time)
    total_minutes = max(0, int(elapsed.total_seconds() // 60))
    return SessionDuration(hours=total_minutes // 60, minutes=total_minutes % 60)


def session_response(session: ShiftSessionSummary, now: datetime) -> ShiftSessionResponse:
    duration = session_duration(session.start_time, session.end_time, now)
    return ShiftSessionResponse(
        **session.model_dump(),
        duration=SessionDurationResponse(hours=duration.hours, minutes=duration.minutes, display=duration.display),
    )


def pick_active_session(repo: ShiftSessionRepository) -> ShiftSession | None:
    """Return the active session row, newest first if more than one is active.

    A pick among several active rows is logged and counted as an invariant
    violation.
    """
    rows = repo.list_active()
    if not rows:
        return None
    if len(rows) > 1:
        metrics.increment_invariant_violation("multiple_active_sessions")
        log_json(
            logger,
            {
                "event": "shift_session.multiple_active",
                "session_ids": [str(row.id) for row in rows],
                "chosen_session_id": str(rows[0].id),
            },
            level=logging.WARNING,
        )
    return rows[0]


class SessionLedger:
    def __init__(self, db, *, clock: Clock = utcnow):
        self.db = db
        self.repo = ShiftSessionRepository(db)
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def start_session(self, user_id: str) -> ShiftSessionSummary:
        if not user_id or not str(user_id).strip():
            raise ValidationError("user_id is required", field="user_id")
        with store_operation(self.db, "start_session"):
            if self.repo.list_active():
                raise ConflictError(details={"message": "a session is already active"})
            now = self._clock()
            session = ShiftSession(
                user_id=str(user_id),
                start_time=now,
                end_time=None,
                is_active=True,
                cash_total_cents=0,
                upi_total_cents=0,
                bank_total_cents=0,
                total_revenue_cents=0,
                notes=None,
                version=1,
                created_at=now,
            )
            try:
                self.repo.create(session)
                self.db.commit()
            except IntegrityError as exc:
                raise ConflictError(details={"message": "a session is already active"}) from exc
            summary = session_summary(session)
        log_json(logger, {"event": "shift_session.start", "session_id": summary.id, "user_id": summary.user_id})
        return summary

    def get_active_session(self) -> ShiftSessionSummary | None:
        with store_operation(self.db, "get_active_session"):
            row = pick_active_session(self.repo)
            return session_summary(row) if row else None

    def end_session(self, notes: str | None = None) -> ShiftSessionSummary:
        with store_operation(self.db, "end_session"):
            active = pick_active_session(self.repo)
            if active is None:
                raise NotFoundError(details={"message": "no active session found"})
            session_id = active.id
            if not self.repo.close(session_id, end_time=self._clock(), notes=notes):
                raise NotFoundError(details={"message": "no active session found"})
            self.db.commit()
            summary = session_summary(self.repo.get_by_id(session_id))
        log_json(
            logger,
            {
                "event": "shift_session.end",
                "session_id": summary.id,
                "total_revenue": summary.total_revenue,
                "cash_total": summary.cash_total,
                "upi_total": summary.upi_total,
                "bank_total": summary.bank_total,
            },
        )
        return summary

    def get_session_by_id(self, session_id: str | uuid.UUID) -> ShiftSessionSummary:
        parsed = parse_uuid(session_id)
        if parsed is None:
            raise NotFoundError(details={"session_id": str(session_id)})
        with store_operation(self.db, "get_session_by_id"):
            session = self.repo.get_by_id(parsed)
            if session is None:
                raise NotFoundError(details={"session_id": str(session_id)})
            return session_summary(session)

    def list_all_sessions(self) -> list[ShiftSessionSummary]:
        with store_operation(self.db, "list_all_sessions"):
            return [session_summary(row) for row in self.repo.list_all()]

    def get_session_duration(self, session: ShiftSessionSummary, now: datetime | None = None) -> SessionDuration:
        return session_duration(session.start_time, session.end_time, now or self._clock())
