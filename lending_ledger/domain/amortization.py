"""Flat simple-interest amortization and payment application rules"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, InvalidOperation
from typing import Tuple, Union
from lending_ledger.domain.exceptions import InvalidInputError
from lending_ledger.domain.models import LoanSchedule, LoanStatus, PaymentOutcome, PaymentType

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")
MONTHS_PER_YEAR = 12
# Largest value a NUMERIC(14, 2) money column holds
MAX_MONEY = Decimal("999999999999.99")


def to_decimal(value: Number, field_name: str) -> Decimal:
    """Convert a numeric input to Decimal, rejecting bools and non-finite values"""
    if isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be a number")
    try:
        # str() avoids binary float artifacts (0.1 -> 0.1000000000000000055...)
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidInputError(f"{field_name} must be a number") from e
    if not result.is_finite():
        raise InvalidInputError(f"{field_name} must be a finite number")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to 2 decimal places, half away from zero"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_loan_schedule(principal: Number, years: int, rate_percent: Number) -> LoanSchedule:
    """
    Compute the repayment terms of a flat simple-interest loan.

    Formulas:
    - total_interest = principal * years * rate / 100
    - total_amount = principal + total_interest
    - monthly_emi = total_amount / (years * 12)

    The principal is rounded to cents first; interest, total and EMI are each
    rounded once from their full-precision value, so the stored total always
    equals the stored principal plus the stored interest.
    The EMI is derived from the unrounded total.

    Raises:
        InvalidInputError: principal <= 0, years not a positive integer,
            negative rate, a total beyond MAX_MONEY, or an EMI that rounds
            to zero

    Example:
        120000 at 10% for 1 year -> total 132000.00, EMI 11000.00, 12 EMIs
    """
    principal = round_money(to_decimal(principal, "loan_amount"))
    rate = to_decimal(rate_percent, "interest_rate_yearly")

    if principal <= ZERO:
        raise InvalidInputError("loan_amount must be at least 0.01")
    if isinstance(years, bool) or not isinstance(years, int) or years <= 0:
        raise InvalidInputError("loan_period_years must be a positive integer")
    if rate < ZERO:
        raise InvalidInputError("interest_rate_yearly must not be negative")

    total_interest = principal * years * rate / Decimal(100)
    total_amount = principal + total_interest
    if round_money(total_amount) > MAX_MONEY:
        raise InvalidInputError(f"total amount payable must not exceed {MAX_MONEY}")

    num_installments = years * MONTHS_PER_YEAR
    monthly_emi = round_money(total_amount / num_installments)

    if monthly_emi == ZERO:
        raise InvalidInputError("loan_amount is too small to amortize over the requested period")

    return LoanSchedule(
        principal=principal,
        total_interest=round_money(total_interest),
        total_amount=round_money(total_amount),
        monthly_emi=monthly_emi,
        emis_left=num_installments,
    )


def validate_payment(amount: Number, payment_type: Union[PaymentType, str]) -> Tuple[Decimal, PaymentType]:
    """Normalize a payment request to (rounded amount, PaymentType)"""
    amount = round_money(to_decimal(amount, "amount"))
    if amount <= ZERO:
        raise InvalidInputError("amount must be at least 0.01")
    if amount > MAX_MONEY:
        raise InvalidInputError(f"amount must not exceed {MAX_MONEY}")
    try:
        payment_type = PaymentType(payment_type)
    except ValueError as e:
        raise InvalidInputError(f"payment_type must be one of {[t.value for t in PaymentType]}") from e
    return amount, payment_type


def apply_payment_rules(
    balance: Decimal,
    amount_paid: Decimal,
    emis_left: int,
    monthly_emi: Decimal,
    amount: Number,
    payment_type: PaymentType,
) -> PaymentOutcome:
    """
    Apply one payment to a loan's running state.

    Rules, in order:
    1. Payoff: if the payment clears the balance, the loan is PAID_OFF with
       balance 0 and no EMIs left, whatever the payment type.
    2. LUMP_SUM: remaining EMIs are re-derived as ceil(balance / EMI). The
       EMI amount itself never changes, and the count never goes up.
    3. EMI: one installment is consumed only when the payment covers a full
       EMI. A partial EMI lowers the balance but keeps the count.

    Returns:
        PaymentOutcome with the new balance, amount paid, EMIs left and status
    """
    amount, payment_type = validate_payment(amount, payment_type)
    new_balance = balance - amount
    new_amount_paid = amount_paid + amount
    if new_amount_paid > MAX_MONEY:
        raise InvalidInputError(f"total amount paid must not exceed {MAX_MONEY}")

    if new_balance <= ZERO:
        return PaymentOutcome(
            balance_amount=round_money(ZERO),
            amount_paid=round_money(new_amount_paid),
            emis_left=0,
            status=LoanStatus.PAID_OFF,
        )

    if payment_type == PaymentType.LUMP_SUM:
        reamortized = int((new_balance / monthly_emi).to_integral_value(rounding=ROUND_CEILING))
        new_emis_left = min(emis_left, reamortized)
    elif amount >= monthly_emi:
        new_emis_left = max(0, emis_left - 1)
    else:
        new_emis_left = emis_left

    return PaymentOutcome(
        balance_amount=round_money(new_balance),
        amount_paid=round_money(new_amount_paid),
        emis_left=new_emis_left,
        status=LoanStatus.ACTIVE,
    )
