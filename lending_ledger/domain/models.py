"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"


class PaymentType(str, Enum):
    EMI = "EMI"
    LUMP_SUM = "LUMP_SUM"


@dataclass(frozen=True)
class LoanSchedule:
    """Flat simple-interest repayment terms computed at loan creation"""

    principal: Decimal
    total_interest: Decimal
    total_amount: Decimal
    monthly_emi: Decimal
    emis_left: int


@dataclass(frozen=True)
class PaymentOutcome:
    """Loan state after a payment has been applied"""

    balance_amount: Decimal
    amount_paid: Decimal
    emis_left: int
    status: LoanStatus


@dataclass
class CreatedLoan:
    loan_id: str
    customer_id: str
    total_amount_payable: Decimal
    monthly_emi: Decimal


@dataclass
class PaymentResult:
    payment_id: str
    loan_id: str
    remaining_balance: Decimal
    emis_left: int
    status: LoanStatus


@dataclass
class LedgerEntry:
    """Single payment in a loan's history"""

    transaction_id: str
    date: datetime
    amount: Decimal
    type: PaymentType


@dataclass
class LoanLedger:
    """Current loan snapshot with its full payment history"""

    loan_id: str
    customer_id: str
    principal: Decimal
    total_amount: Decimal
    monthly_emi: Decimal
    amount_paid: Decimal
    balance_amount: Decimal
    emis_left: int
    status: LoanStatus
    transactions: List[LedgerEntry] = field(default_factory=list)


@dataclass
class LoanSummary:
    loan_id: str
    principal: Decimal
    total_amount: Decimal
    total_interest: Decimal
    emi_amount: Decimal
    amount_paid: Decimal
    emis_left: int
    status: LoanStatus


@dataclass
class CustomerOverview:
    customer_id: str
    loans: List[LoanSummary]

    @property
    def total_loans(self) -> int:
        return len(self.loans)
