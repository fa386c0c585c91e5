"""Loan endpoints - origination, repayment, and ledger"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status

from lending_ledger.api.v1.schemas import (
    LedgerResponse,
    LoanCreateRequest,
    LoanCreateResponse,
    PaymentRequest,
    PaymentResponse,
    TransactionSchema,
)
from lending_ledger.api.dependencies import get_ledger_service, get_request_id
from lending_ledger.services.ledger_service import LedgerService
from lending_ledger.domain.amortization import calculate_loan_schedule
from lending_ledger.domain.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    StorageError,
)
from lending_ledger.infrastructure.observability.metrics import record_loan_created, record_payment
from lending_ledger.infrastructure.observability.logging import log_loan_created, log_payment_applied

router = APIRouter()


@router.post("/loans", response_model=LoanCreateResponse, status_code=status.HTTP_201_CREATED)
def create_loan(
    request_body: LoanCreateRequest,
    request: Request,
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Create a flat simple-interest loan for a customer.

    Flow:
    1. Validate the terms (a rejected request writes nothing)
    2. Register the customer if this is their first loan
    3. Compute total payable and monthly EMI
    4. Persist the ACTIVE loan
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        calculate_loan_schedule(
            request_body.loan_amount,
            request_body.loan_period_years,
            request_body.interest_rate_yearly,
        )
        service.ensure_customer(request_body.customer_id)
        loan = service.create_loan(
            customer_id=request_body.customer_id,
            principal=request_body.loan_amount,
            loan_period_years=request_body.loan_period_years,
            interest_rate_yearly=request_body.interest_rate_yearly,
        )

    except InvalidInputError as e:
        logging.warning(f"Invalid loan request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    record_loan_created(request_body.loan_amount)
    log_loan_created(
        request_id, loan.loan_id, loan.customer_id, request_body.loan_amount, loan.monthly_emi, duration_ms
    )

    return LoanCreateResponse(
        loan_id=loan.loan_id,
        customer_id=loan.customer_id,
        total_amount_payable=float(loan.total_amount_payable),
        monthly_emi=float(loan.monthly_emi),
    )


@router.post("/loans/{loan_id}/payments", response_model=PaymentResponse)
def record_payment_endpoint(
    loan_id: str,
    request_body: PaymentRequest,
    request: Request,
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Record an EMI or lump-sum payment against a loan.

    A payment that clears the balance closes the loan (PAID_OFF);
    further payments are rejected.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = service.apply_payment(loan_id, request_body.amount, request_body.payment_type)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except (InvalidInputError, InvalidStateError) as e:
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    record_payment(request_body.payment_type.value, result.status.value)
    log_payment_applied(
        request_id,
        loan_id,
        result.payment_id,
        request_body.payment_type.value,
        result.status.value,
        result.emis_left,
        duration_ms,
    )

    return PaymentResponse(
        payment_id=result.payment_id,
        loan_id=result.loan_id,
        remaining_balance=float(result.remaining_balance),
        emis_left=result.emis_left,
        status=result.status,
    )


@router.get("/loans/{loan_id}/ledger", response_model=LedgerResponse)
def get_ledger(loan_id: str, request: Request, service: LedgerService = Depends(get_ledger_service)):
    """
    Retrieve a loan's current state and full payment history.

    Returns:
        Loan balances plus transactions in chronological order
    """
    try:
        ledger = service.get_ledger(loan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    transactions = [
        TransactionSchema(
            transaction_id=entry.transaction_id,
            date=entry.date.isoformat(),
            amount=float(entry.amount),
            type=entry.type,
        )
        for entry in ledger.transactions
    ]

    return LedgerResponse(
        loan_id=ledger.loan_id,
        customer_id=ledger.customer_id,
        principal=float(ledger.principal),
        total_amount=float(ledger.total_amount),
        monthly_emi=float(ledger.monthly_emi),
        amount_paid=float(ledger.amount_paid),
        balance_amount=float(ledger.balance_amount),
        emis_left=ledger.emis_left,
        status=ledger.status,
        transactions=transactions,
    )
