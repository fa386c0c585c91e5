"""SQLAlchemy ORM models matching db/schema.sql"""

import uuid
from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from lending_ledger.domain.models import LoanStatus

Base = declarative_base()

# Enough digits for amounts up to 999,999,999,999.99
Money = Numeric(14, 2, asdecimal=True)


def new_id() -> str:
    return str(uuid.uuid4())


class Customer(Base):
    """Borrower owning one or more loans"""

    __tablename__ = "customers"

    customer_id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loans = relationship("Loan", back_populates="customer", order_by="Loan.created_at")


class Loan(Base):
    """Flat-rate loan with its running repayment state"""

    __tablename__ = "loans"

    loan_id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(Text, ForeignKey("customers.customer_id"), nullable=False, index=True)
    principal_amount = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    loan_period_years = Column(Integer, nullable=False)
    monthly_emi = Column(Money, nullable=False)
    amount_paid = Column(Money, nullable=False, default=0)
    balance_amount = Column(Money, nullable=False)
    emis_left = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default=LoanStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("Customer", back_populates="loans")
    payments = relationship("Payment", back_populates="loan", order_by="Payment.sequence_no")


class Payment(Base):
    """Append-only payment record"""

    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("loan_id", "sequence_no", name="uq_payments_loan_sequence"),)

    payment_id = Column(String(36), primary_key=True, default=new_id)
    loan_id = Column(String(36), ForeignKey("loans.loan_id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    payment_type = Column(Text, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    # Insertion order within a loan; tie-break for equal payment_date
    sequence_no = Column(Integer, nullable=False)

    loan = relationship("Loan", back_populates="payments")
