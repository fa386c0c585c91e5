"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List

from lending_ledger.domain.models import LoanStatus, PaymentType


class LoanCreateRequest(BaseModel):
    """Request body for POST /loans"""

    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    loan_amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2, description="Principal amount")
    loan_period_years: int = Field(..., gt=0, description="Loan term in whole years")
    interest_rate_yearly: Decimal = Field(..., ge=0, lt=1000, decimal_places=4, description="Flat yearly rate, percent")


class LoanCreateResponse(BaseModel):
    """Response for POST /loans"""

    loan_id: str
    customer_id: str
    total_amount_payable: float
    monthly_emi: float


class PaymentRequest(BaseModel):
    """Request body for POST /loans/{loan_id}/payments"""

    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2, description="Payment amount")
    payment_type: PaymentType


class PaymentResponse(BaseModel):
    """Response for POST /loans/{loan_id}/payments"""

    payment_id: str
    loan_id: str
    message: str = "Payment recorded successfully."
    remaining_balance: float
    emis_left: int
    status: LoanStatus


class TransactionSchema(BaseModel):
    """Single payment in a loan ledger"""

    transaction_id: str
    date: str
    amount: float
    type: PaymentType


class LedgerResponse(BaseModel):
    """Response for GET /loans/{loan_id}/ledger"""

    loan_id: str
    customer_id: str
    principal: float
    total_amount: float
    monthly_emi: float
    amount_paid: float
    balance_amount: float
    emis_left: int
    status: LoanStatus
    transactions: List[TransactionSchema]


class LoanSummarySchema(BaseModel):
    """Single loan in a customer overview"""

    loan_id: str
    principal: float
    total_amount: float
    total_interest: float
    emi_amount: float
    amount_paid: float
    emis_left: int
    status: LoanStatus


class CustomerOverviewResponse(BaseModel):
    """Response for GET /customers/{customer_id}/overview"""

    customer_id: str
    total_loans: int
    loans: List[LoanSummarySchema]
