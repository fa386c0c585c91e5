"""Data access layer for lending entities"""

from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from lending_ledger.infrastructure.database.models import Customer, Loan, Payment
from lending_ledger.domain.models import LoanSchedule, LoanStatus, PaymentOutcome, PaymentType


class CustomerRepository:
    """Repository for customers"""

    def __init__(self, db: Session):
        self.db = db

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def create_customer(self, customer_id: str, name: str) -> Customer:
        """Stage a new customer row"""
        db_customer = Customer(customer_id=customer_id, name=name)
        self.db.add(db_customer)
        self.db.flush()
        return db_customer


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(self, customer_id: str, interest_rate, loan_period_years: int, schedule: LoanSchedule) -> Loan:
        """Persist a new ACTIVE loan from its computed schedule"""
        db_loan = Loan(
            customer_id=customer_id,
            principal_amount=schedule.principal,
            total_amount=schedule.total_amount,
            interest_rate=interest_rate,
            loan_period_years=loan_period_years,
            monthly_emi=schedule.monthly_emi,
            amount_paid=0,
            balance_amount=schedule.total_amount,
            emis_left=schedule.emis_left,
            status=LoanStatus.ACTIVE.value,
        )
        self.db.add(db_loan)
        self.db.flush()  # Get ID without committing
        return db_loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        return self.db.query(Loan).filter(Loan.loan_id == loan_id).first()

    def get_loan_for_update(self, loan_id: str) -> Optional[Loan]:
        """Fetch loan holding a row lock until the transaction ends"""
        return (
            self.db.query(Loan)
            .filter(Loan.loan_id == loan_id)
            .with_for_update()
            .first()
        )

    def get_loans_by_customer(self, customer_id: str) -> List[Loan]:
        """Fetch all loans for a customer, oldest first"""
        return (
            self.db.query(Loan)
            .filter(Loan.customer_id == customer_id)
            .order_by(Loan.created_at.asc(), Loan.loan_id.asc())
            .all()
        )

    def update_repayment_state(self, db_loan: Loan, outcome: PaymentOutcome) -> Loan:
        db_loan.balance_amount = outcome.balance_amount
        db_loan.amount_paid = outcome.amount_paid
        db_loan.emis_left = outcome.emis_left
        db_loan.status = outcome.status.value
        self.db.flush()
        return db_loan


class PaymentRepository:
    """Repository for loan payments"""

    def __init__(self, db: Session):
        self.db = db

    def next_sequence_no(self, loan_id: str) -> int:
        current = (
            self.db.query(func.max(Payment.sequence_no))
            .filter(Payment.loan_id == loan_id)
            .scalar()
        )
        return (current or 0) + 1

    def create_payment(self, loan_id: str, amount, payment_type: PaymentType) -> Payment:
        """Append a payment to the loan's history"""
        db_payment = Payment(
            loan_id=loan_id,
            amount=amount,
            payment_type=payment_type.value,
            sequence_no=self.next_sequence_no(loan_id),
        )
        self.db.add(db_payment)
        self.db.flush()
        return db_payment

    def get_payments_by_loan(self, loan_id: str) -> List[Payment]:
        """Fetch payment history in chronological order"""
        return (
            self.db.query(Payment)
            .filter(Payment.loan_id == loan_id)
            .order_by(Payment.payment_date.asc(), Payment.sequence_no.asc())
            .all()
        )
