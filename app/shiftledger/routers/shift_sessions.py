from __future__ import annotations

from fastapi import APIRouter, Depends

from app.shiftledger.core.deps import get_session_ledger, get_session_report_service, get_transaction_recorder
from app.shiftledger.schemas.shift import (
    SessionCloseRequest,
    SessionStartRequest,
    SessionSummaryReport,
    ShiftSessionCurrentResponse,
    ShiftSessionListResponse,
    ShiftSessionResponse,
    TransactionListResponse,
)
from app.shiftledger.services.session_ledger import SessionLedger, session_response

router = APIRouter()


@router.post("/shift/sessions", response_model=ShiftSessionResponse)
def start_session(payload: SessionStartRequest, ledger: SessionLedger = Depends(get_session_ledger)):
    session = ledger.start_session(payload.user_id)
    return session_response(session, ledger.now())


@router.get("/shift/sessions", response_model=ShiftSessionListResponse)
def list_sessions(ledger: SessionLedger = Depends(get_session_ledger)):
    now = ledger.now()
    rows = [session_response(session, now) for session in ledger.list_all_sessions()]
    return ShiftSessionListResponse(rows=rows, total=len(rows))


@router.get("/shift/sessions/active", response_model=ShiftSessionCurrentResponse)
def get_active_session(ledger: SessionLedger = Depends(get_session_ledger)):
    session = ledger.get_active_session()
    return ShiftSessionCurrentResponse(session=session_response(session, ledger.now()) if session else None)


@router.post("/shift/sessions/active/close", response_model=ShiftSessionResponse)
def close_active_session(
    payload: SessionCloseRequest | None = None,
    ledger: SessionLedger = Depends(get_session_ledger),
):
    session = ledger.end_session(payload.notes if payload else None)
    return session_response(session, ledger.now())


@router.get("/shift/sessions/{session_id}", response_model=ShiftSessionResponse)
def get_session(session_id: str, ledger: SessionLedger = Depends(get_session_ledger)):
    return session_response(ledger.get_session_by_id(session_id), ledger.now())


@router.get("/shift/sessions/{session_id}/transactions", response_model=TransactionListResponse)
def list_session_transactions(session_id: str, recorder=Depends(get_transaction_recorder)):
    rows = recorder.list_transactions_for_session(session_id)
    return TransactionListResponse(rows=rows, total=len(rows))


@router.get("/shift/sessions/{session_id}/summary", response_model=SessionSummaryReport)
def get_session_summary(session_id: str, reports=Depends(get_session_report_service)):
    return reports.build_summary(session_id)
