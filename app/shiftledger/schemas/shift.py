from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import assert_never

from pydantic import BaseModel, ConfigDict, Field


class PaymentMethod(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    BANK = "BANK"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    # Reserved for refund/reconciliation flows; nothing assigns these yet.
    REFUNDED = "refunded"
    FAILED = "failed"


class SessionDuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    hours: int
    minutes: int

    @property
    def display(self) -> str:
        return f"{self.hours}h {self.minutes}m"

    def __str__(self) -> str:
        return self.display


class SessionDurationResponse(BaseModel):
    hours: int
    minutes: int
    display: str


class ShiftSessionSummary(BaseModel):
    id: str
    user_id: str
    start_time: datetime
    end_time: datetime | None
    is_active: bool
    cash_total: Decimal
    upi_total: Decimal
    bank_total: Decimal
    total_revenue: Decimal
    notes: str | None
    version: int

    def total_for(self, method: PaymentMethod) -> Decimal:
        match method:
            case PaymentMethod.CASH:
                return self.cash_total
            case PaymentMethod.UPI:
                return self.upi_total
            case PaymentMethod.BANK:
                return self.bank_total
            case _:
                assert_never(method)


class ShiftSessionResponse(ShiftSessionSummary):
    duration: SessionDurationResponse


class ShiftSessionCurrentResponse(BaseModel):
    session: ShiftSessionResponse | None


class ShiftSessionListResponse(BaseModel):
    rows: list[ShiftSessionResponse]
    total: int


class SessionStartRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=255)


class SessionCloseRequest(BaseModel):
    notes: str | None = None


class PaymentCreateRequest(BaseModel):
    order_id: str = Field(min_length=1, max_length=255)
    amount: Decimal
    payment_method: PaymentMethod
    session_id: str | None = None


class TransactionResponse(BaseModel):
    id: str
    session_id: str
    order_id: str
    amount: Decimal
    payment_method: PaymentMethod
    status: TransactionStatus
    timestamp: datetime


class TransactionListResponse(BaseModel):
    rows: list[TransactionResponse]
    total: int


class PaymentMethodBreakdownRow(BaseModel):
    payment_method: PaymentMethod
    total_amount: Decimal
    stored_total: Decimal
    transaction_count: int


class SessionSummaryReport(BaseModel):
    session: ShiftSessionResponse
    transaction_count: int
    methods: list[PaymentMethodBreakdownRow]
    recomputed_total: Decimal
    consistent: bool
