from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.shiftledger.core.deps import get_transaction_recorder
from app.shiftledger.core.error_catalog import ErrorCatalog
from app.shiftledger.core.metrics import metrics
from app.shiftledger.core.money import parse_amount
from app.shiftledger.db.session import get_db
from app.shiftledger.schemas.shift import PaymentCreateRequest, TransactionResponse
from app.shiftledger.services.idempotency import IdempotencyService, extract_idempotency_key
from app.shiftledger.services.transaction_recorder import TransactionRecorder

router = APIRouter()


@router.post("/shift/payments", response_model=TransactionResponse)
def record_payment(
    request: Request,
    payload: PaymentCreateRequest,
    recorder: TransactionRecorder = Depends(get_transaction_recorder),
    db=Depends(get_db),
):
    context = None
    idempotency_key = extract_idempotency_key(request.headers, required=False)
    if idempotency_key:
        request_hash = IdempotencyService.fingerprint(
            {
                **payload.model_dump(mode="json"),
                "amount": format(parse_amount(payload.amount), "f"),
            }
        )
        context, replay = IdempotencyService(db).start(
            endpoint=str(request.url.path),
            method=request.method,
            idempotency_key=idempotency_key,
            request_hash=request_hash,
        )
        if replay:
            metrics.increment_idempotency_replay()
            return JSONResponse(
                status_code=replay.status_code,
                content=replay.response_body,
                headers={"X-Idempotency-Result": ErrorCatalog.IDEMPOTENCY_REPLAY.code},
            )
        request.state.idempotency = context

    transaction = recorder.record_payment(
        payload.order_id,
        payload.amount,
        payload.payment_method,
        session_id=payload.session_id,
    )
    if context is not None:
        context.record_success(status_code=200, response_body=transaction.model_dump(mode="json"))
    return transaction


@router.get("/shift/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, recorder: TransactionRecorder = Depends(get_transaction_recorder)):
    return recorder.get_transaction_by_id(transaction_id)
