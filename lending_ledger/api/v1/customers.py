"""GET /customers/{customer_id}/overview - Summary of a customer's loans"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from lending_ledger.api.v1.schemas import CustomerOverviewResponse, LoanSummarySchema
from lending_ledger.api.dependencies import get_ledger_service, get_request_id
from lending_ledger.services.ledger_service import LedgerService
from lending_ledger.domain.exceptions import NotFoundError, StorageError

router = APIRouter()


@router.get("/customers/{customer_id}/overview", response_model=CustomerOverviewResponse)
def get_customer_overview(
    customer_id: str,
    request: Request,
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Retrieve every loan held by a customer.

    Returns:
        Loans with total interest, EMI, amount paid and EMIs left.
        404 when the customer is unknown or holds no loans.
    """
    try:
        overview = service.get_customer_overview(customer_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    loans = [
        LoanSummarySchema(
            loan_id=loan.loan_id,
            principal=float(loan.principal),
            total_amount=float(loan.total_amount),
            total_interest=float(loan.total_interest),
            emi_amount=float(loan.emi_amount),
            amount_paid=float(loan.amount_paid),
            emis_left=loan.emis_left,
            status=loan.status,
        )
        for loan in overview.loans
    ]

    return CustomerOverviewResponse(
        customer_id=overview.customer_id,
        total_loans=overview.total_loans,
        loans=loans,
    )
