"""Loan ledger engine - transactional loan creation, repayment, and read views"""

import logging
from typing import NoReturn, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lending_ledger.domain.amortization import (
    Number,
    apply_payment_rules,
    calculate_loan_schedule,
    round_money,
    to_decimal,
    validate_payment,
)
from lending_ledger.domain.exceptions import (
    CustomerNotFoundError,
    DomainException,
    InvalidInputError,
    LoanAlreadyPaidOffError,
    LoanNotFoundError,
    NoLoansFoundError,
    StorageError,
)
from lending_ledger.domain.models import (
    CreatedLoan,
    CustomerOverview,
    LedgerEntry,
    LoanLedger,
    LoanStatus,
    LoanSummary,
    PaymentResult,
    PaymentType,
)
from lending_ledger.infrastructure.database.models import Customer
from lending_ledger.infrastructure.database.repositories import (
    CustomerRepository,
    LoanRepository,
    PaymentRepository,
)
from lending_ledger.infrastructure.observability.metrics import storage_failures_counter

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Loan ledger operations bound to one database session.

    Each mutating call is a single transaction: it commits on success and
    rolls back on any error, so a loan update and its payment record are
    never observable apart. Storage errors are re-raised as StorageError and
    are not retried here.
    """

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.loans = LoanRepository(db)
        self.payments = PaymentRepository(db)

    def ensure_customer(self, customer_id: str, name: Optional[str] = None) -> Customer:
        """Return the customer, creating it with a placeholder name if absent"""
        if not customer_id or not customer_id.strip():
            raise InvalidInputError("customer_id is required")

        existing = self.customers.get_customer(customer_id)
        if existing is not None:
            return existing

        try:
            customer = self.customers.create_customer(customer_id, name or f"Customer {customer_id}")
            self.db.commit()
            logger.info("Customer created", extra={"customer_id": customer_id})
            return customer
        except IntegrityError as e:
            # Lost a concurrent insert for the same id
            self.db.rollback()
            try:
                existing = self.customers.get_customer(customer_id)
            except SQLAlchemyError as lookup_error:
                self._fail("ensure_customer", lookup_error)
            if existing is None:
                self._fail("ensure_customer", e)
            return existing
        except SQLAlchemyError as e:
            self._fail("ensure_customer", e)

    def create_loan(
        self,
        customer_id: str,
        principal: Number,
        loan_period_years: int,
        interest_rate_yearly: Number,
    ) -> CreatedLoan:
        """
        Create an ACTIVE loan with its flat EMI schedule.

        Raises:
            InvalidInputError: Out-of-range amount, period or rate
            CustomerNotFoundError: Customer was not registered beforehand
            StorageError: Persistence failed, nothing was written
        """
        schedule = calculate_loan_schedule(principal, loan_period_years, interest_rate_yearly)
        rate = to_decimal(interest_rate_yearly, "interest_rate_yearly")

        try:
            if self.customers.get_customer(customer_id) is None:
                raise CustomerNotFoundError(customer_id)

            db_loan = self.loans.create_loan(
                customer_id=customer_id,
                interest_rate=rate,
                loan_period_years=loan_period_years,
                schedule=schedule,
            )
            loan_id = db_loan.loan_id
            self.db.commit()
        except DomainException:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self._fail("create_loan", e)

        return CreatedLoan(
            loan_id=loan_id,
            customer_id=customer_id,
            total_amount_payable=schedule.total_amount,
            monthly_emi=schedule.monthly_emi,
        )

    def apply_payment(self, loan_id: str, amount: Number, payment_type: PaymentType) -> PaymentResult:
        """
        Apply an EMI or lump-sum payment and append it to the loan's history.

        The loan row is locked for the duration of the transaction so that
        concurrent payments on the same loan are serialized.

        Raises:
            InvalidInputError: Non-positive amount or unknown payment type
            LoanNotFoundError: No such loan
            LoanAlreadyPaidOffError: Loan is PAID_OFF
            StorageError: Persistence failed, nothing was written
        """
        amount, payment_type = validate_payment(amount, payment_type)

        try:
            db_loan = self.loans.get_loan_for_update(loan_id)
            if db_loan is None:
                raise LoanNotFoundError(loan_id)
            if db_loan.status == LoanStatus.PAID_OFF.value:
                raise LoanAlreadyPaidOffError(loan_id)

            outcome = apply_payment_rules(
                balance=db_loan.balance_amount,
                amount_paid=db_loan.amount_paid,
                emis_left=db_loan.emis_left,
                monthly_emi=db_loan.monthly_emi,
                amount=amount,
                payment_type=payment_type,
            )

            self.loans.update_repayment_state(db_loan, outcome)
            db_payment = self.payments.create_payment(loan_id, amount, payment_type)
            payment_id = db_payment.payment_id
            self.db.commit()
        except DomainException:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self._fail("apply_payment", e)

        return PaymentResult(
            payment_id=payment_id,
            loan_id=loan_id,
            remaining_balance=outcome.balance_amount,
            emis_left=outcome.emis_left,
            status=outcome.status,
        )

    def get_ledger(self, loan_id: str) -> LoanLedger:
        """Loan snapshot plus payment history, oldest payment first"""
        try:
            db_loan = self.loans.get_loan(loan_id)
            if db_loan is None:
                raise LoanNotFoundError(loan_id)
            db_payments = self.payments.get_payments_by_loan(loan_id)
        except SQLAlchemyError as e:
            self._fail("get_ledger", e)

        return LoanLedger(
            loan_id=db_loan.loan_id,
            customer_id=db_loan.customer_id,
            principal=round_money(db_loan.principal_amount),
            total_amount=round_money(db_loan.total_amount),
            monthly_emi=round_money(db_loan.monthly_emi),
            amount_paid=round_money(db_loan.amount_paid),
            balance_amount=round_money(db_loan.balance_amount),
            emis_left=db_loan.emis_left,
            status=LoanStatus(db_loan.status),
            transactions=[
                LedgerEntry(
                    transaction_id=p.payment_id,
                    date=p.payment_date,
                    amount=round_money(p.amount),
                    type=PaymentType(p.payment_type),
                )
                for p in db_payments
            ],
        )

    def get_customer_overview(self, customer_id: str) -> CustomerOverview:
        """
        Summaries of every loan a customer holds.

        Raises:
            CustomerNotFoundError: Customer was never registered
            NoLoansFoundError: Customer exists but holds no loans
        """
        try:
            if self.customers.get_customer(customer_id) is None:
                raise CustomerNotFoundError(customer_id)
            db_loans = self.loans.get_loans_by_customer(customer_id)
        except SQLAlchemyError as e:
            self._fail("get_customer_overview", e)

        if not db_loans:
            raise NoLoansFoundError(customer_id)

        return CustomerOverview(
            customer_id=customer_id,
            loans=[
                LoanSummary(
                    loan_id=loan.loan_id,
                    principal=round_money(loan.principal_amount),
                    total_amount=round_money(loan.total_amount),
                    total_interest=round_money(loan.total_amount - loan.principal_amount),
                    emi_amount=round_money(loan.monthly_emi),
                    amount_paid=round_money(loan.amount_paid),
                    emis_left=loan.emis_left,
                    status=LoanStatus(loan.status),
                )
                for loan in db_loans
            ],
        )

    def _fail(self, operation: str, error: SQLAlchemyError) -> NoReturn:
        self.db.rollback()
        storage_failures_counter.labels(operation=operation).inc()
        logger.error(f"Storage error during {operation}: {error}")
        raise StorageError(f"{operation} failed") from error
