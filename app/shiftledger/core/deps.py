from functools import lru_cache

from fastapi import Depends

from app.shiftledger.db.session import get_db
from app.shiftledger.services.orders import OrderGateway, build_order_gateway
from app.shiftledger.services.session_ledger import SessionLedger
from app.shiftledger.services.session_reports import SessionReportService
from app.shiftledger.services.transaction_recorder import TransactionRecorder


@lru_cache
def get_order_gateway() -> OrderGateway:
    return build_order_gateway()


def get_session_ledger(db=Depends(get_db)) -> SessionLedger:
    return SessionLedger(db)


def get_transaction_recorder(
    db=Depends(get_db),
    gateway: OrderGateway = Depends(get_order_gateway),
) -> TransactionRecorder:
    return TransactionRecorder(db, orders=gateway, inventory=gateway)


def get_session_report_service(db=Depends(get_db)) -> SessionReportService:
    return SessionReportService(db)


__all__ = [
    "get_order_gateway",
    "get_session_ledger",
    "get_transaction_recorder",
    "get_session_report_service",
]
