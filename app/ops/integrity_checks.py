from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select

from app.shiftledger.core.clock import normalize_timestamp
from app.shiftledger.core.metrics import metrics
from app.shiftledger.core.money import from_cents
from app.shiftledger.db.models import PaymentTransaction, ShiftSession
from app.shiftledger.schemas.shift import PaymentMethod, TransactionStatus


SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_WARN = "WARN"

_METHOD_COLUMNS = {
    PaymentMethod.CASH.value: "cash_total_cents",
    PaymentMethod.UPI.value: "upi_total_cents",
    PaymentMethod.BANK.value: "bank_total_cents",
}


@dataclass(frozen=True)
class IntegrityFinding:
    check_id: str
    severity: str
    message: str
    entity: str
    entity_id: str | None
    details: dict


def check_multiple_active_sessions(db) -> list[IntegrityFinding]:
    rows = db.execute(
        select(ShiftSession.id, ShiftSession.user_id, ShiftSession.start_time)
        .where(ShiftSession.is_active.is_(True))
        .order_by(ShiftSession.start_time.desc())
    ).all()
    if len(rows) <= 1:
        return []
    metrics.increment_invariant_violation("multiple_active_sessions")
    return [
        IntegrityFinding(
            check_id="multiple_active_sessions",
            severity=SEVERITY_CRITICAL,
            message="More than one shift session is active.",
            entity="shift_sessions",
            entity_id=None,
            details={
                "active_count": len(rows),
                "session_ids": [str(row.id) for row in rows],
            },
        )
    ]


def check_session_totals(db) -> list[IntegrityFinding]:
    rows = db.execute(
        select(
            ShiftSession.id,
            ShiftSession.cash_total_cents,
            ShiftSession.upi_total_cents,
            ShiftSession.bank_total_cents,
            ShiftSession.total_revenue_cents,
        )
    ).all()
    findings = []
    for row in rows:
        method_sum = row.cash_total_cents + row.upi_total_cents + row.bank_total_cents
        if method_sum != row.total_revenue_cents:
            findings.append(
                IntegrityFinding(
                    check_id="session_total_mismatch",
                    severity=SEVERITY_CRITICAL,
                    message="Session total revenue differs from the sum of its method totals.",
                    entity="shift_sessions",
                    entity_id=str(row.id),
                    details={
                        "total_revenue": str(from_cents(row.total_revenue_cents)),
                        "method_sum": str(from_cents(method_sum)),
                    },
                )
            )
    if findings:
        metrics.increment_invariant_violation("session_total_mismatch", len(findings))
    return findings


def check_session_method_totals(db) -> list[IntegrityFinding]:
    sums = db.execute(
        select(
            PaymentTransaction.session_id,
            PaymentTransaction.payment_method,
            func.coalesce(func.sum(PaymentTransaction.amount_cents), 0).label("total_cents"),
        )
        .where(PaymentTransaction.status == TransactionStatus.COMPLETED.value)
        .group_by(PaymentTransaction.session_id, PaymentTransaction.payment_method)
    ).all()
    recomputed: dict[tuple, int] = {(row.session_id, row.payment_method): int(row.total_cents) for row in sums}
    sessions = db.execute(select(ShiftSession)).scalars().all()
    findings = []
    for session in sessions:
        for method, column in _METHOD_COLUMNS.items():
            stored = getattr(session, column)
            expected = recomputed.get((session.id, method), 0)
            if stored != expected:
                findings.append(
                    IntegrityFinding(
                        check_id="session_method_total_mismatch",
                        severity=SEVERITY_CRITICAL,
                        message="Session method total differs from its completed transactions.",
                        entity="shift_sessions",
                        entity_id=str(session.id),
                        details={
                            "payment_method": method,
                            "stored_total": str(from_cents(stored)),
                            "transactions_total": str(from_cents(expected)),
                        },
                    )
                )
    if findings:
        metrics.increment_invariant_violation("session_method_total_mismatch", len(findings))
    return findings


def check_session_lifecycle(db) -> list[IntegrityFinding]:
    rows = db.execute(
        select(ShiftSession.id, ShiftSession.is_active, ShiftSession.start_time, ShiftSession.end_time)
    ).all()
    findings = []
    for row in rows:
        if not row.is_active and row.end_time is None:
            message = "Closed session has no end time."
        elif row.is_active and row.end_time is not None:
            message = "Active session has an end time."
        elif row.end_time is not None and normalize_timestamp(row.end_time) < normalize_timestamp(row.start_time):
            message = "Session ends before it starts."
        else:
            continue
        findings.append(
            IntegrityFinding(
                check_id="session_lifecycle",
                severity=SEVERITY_WARN,
                message=message,
                entity="shift_sessions",
                entity_id=str(row.id),
                details={
                    "is_active": row.is_active,
                    "start_time": _format_datetime(row.start_time),
                    "end_time": _format_datetime(row.end_time),
                },
            )
        )
    if findings:
        metrics.increment_invariant_violation("session_lifecycle", len(findings))
    return findings


def check_transactions_after_close(db) -> list[IntegrityFinding]:
    rows = db.execute(
        select(PaymentTransaction.id, PaymentTransaction.session_id, PaymentTransaction.timestamp, ShiftSession.end_time)
        .join(ShiftSession, PaymentTransaction.session_id == ShiftSession.id)
        .where(ShiftSession.is_active.is_(False))
        .where(ShiftSession.end_time.is_not(None))
    ).all()
    findings = []
    for row in rows:
        if normalize_timestamp(row.timestamp) <= normalize_timestamp(row.end_time):
            continue
        findings.append(
            IntegrityFinding(
                check_id="transaction_after_session_close",
                severity=SEVERITY_CRITICAL,
                message="Transaction recorded after its session closed.",
                entity="payment_transactions",
                entity_id=str(row.id),
                details={
                    "session_id": str(row.session_id),
                    "timestamp": _format_datetime(row.timestamp),
                    "session_end_time": _format_datetime(row.end_time),
                },
            )
        )
    if findings:
        metrics.increment_invariant_violation("transaction_after_session_close", len(findings))
    return findings


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return normalize_timestamp(value).isoformat()


def run_integrity_checks(db) -> list[IntegrityFinding]:
    findings: list[IntegrityFinding] = []
    findings.extend(check_multiple_active_sessions(db))
    findings.extend(check_session_totals(db))
    findings.extend(check_session_method_totals(db))
    findings.extend(check_session_lifecycle(db))
    findings.extend(check_transactions_after_close(db))
    return findings
