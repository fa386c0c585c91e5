"""Unit tests for the transactional ledger service"""

import threading
import time
import pytest
from decimal import Decimal
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from lending_ledger.domain.exceptions import (
    CustomerNotFoundError,
    InvalidInputError,
    InvalidStateError,
    LoanAlreadyPaidOffError,
    LoanNotFoundError,
    NoLoansFoundError,
    NotFoundError,
    StorageError,
)
from lending_ledger.domain.models import CreatedLoan, LoanStatus, PaymentType
from lending_ledger.infrastructure.database.models import Customer, Loan, Payment
from lending_ledger.infrastructure.database.repositories import LoanRepository
from lending_ledger.services.ledger_service import LedgerService


def _fail_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def _duplicate_customer(*args, **kwargs):
    raise IntegrityError("INSERT INTO customers", {}, Exception("UNIQUE constraint failed: customers.customer_id"))


def test_ensure_customer_creates_placeholder(service: LedgerService, db: Session):
    customer = service.ensure_customer("cust_new")

    assert customer.customer_id == "cust_new"
    assert customer.name == "Customer cust_new"
    assert db.query(Customer).count() == 1


def test_ensure_customer_is_idempotent(service: LedgerService, db: Session):
    service.ensure_customer("cust_1", name="Asha")
    again = service.ensure_customer("cust_1", name="Someone Else")

    assert again.name == "Asha"
    assert db.query(Customer).count() == 1


def test_ensure_customer_recovers_from_concurrent_insert(service: LedgerService, db: Session, monkeypatch):
    """Another request inserted the same customer between our lookup and insert"""
    service.ensure_customer("cust_1", name="Asha")
    real_lookup = service.customers.get_customer
    calls = []

    def stale_first_lookup(customer_id):
        calls.append(customer_id)
        return None if len(calls) == 1 else real_lookup(customer_id)

    monkeypatch.setattr(service.customers, "get_customer", stale_first_lookup)
    monkeypatch.setattr(service.customers, "create_customer", _duplicate_customer)

    customer = service.ensure_customer("cust_1")

    assert customer.name == "Asha"
    assert db.query(Customer).count() == 1


def test_ensure_customer_integrity_error_without_row_is_storage_error(service: LedgerService, monkeypatch):
    monkeypatch.setattr(service.customers, "get_customer", lambda cid: None)
    monkeypatch.setattr(service.customers, "create_customer", _duplicate_customer)

    with pytest.raises(StorageError):
        service.ensure_customer("cust_1")


def test_ensure_customer_requires_id(service: LedgerService):
    with pytest.raises(InvalidInputError):
        service.ensure_customer("  ")


def test_create_loan_persists_schedule(service: LedgerService, standard_loan: CreatedLoan, db: Session):
    assert standard_loan.total_amount_payable == Decimal("132000.00")
    assert standard_loan.monthly_emi == Decimal("11000.00")

    loan = db.get(Loan, standard_loan.loan_id)
    assert loan.customer_id == "cust_1"
    assert loan.principal_amount == Decimal("120000.00")
    assert loan.balance_amount == Decimal("132000.00")
    assert loan.amount_paid == Decimal("0.00")
    assert loan.emis_left == 12
    assert loan.loan_period_years == 1
    assert loan.status == LoanStatus.ACTIVE.value


def test_create_loan_assigns_unique_ids(service: LedgerService, standard_loan: CreatedLoan):
    second = service.create_loan("cust_1", Decimal("1000"), 1, Decimal("5"))
    assert second.loan_id != standard_loan.loan_id


def test_create_loan_requires_registered_customer(service: LedgerService, db: Session):
    with pytest.raises(CustomerNotFoundError):
        service.create_loan("ghost", Decimal("1000"), 1, Decimal("5"))

    assert db.query(Loan).count() == 0


def test_create_loan_rejects_invalid_input_without_writing(service: LedgerService, db: Session):
    service.ensure_customer("cust_1")

    with pytest.raises(InvalidInputError):
        service.create_loan("cust_1", Decimal("-5"), 1, Decimal("5"))
    with pytest.raises(InvalidInputError):
        service.create_loan("cust_1", Decimal("1000"), 0, Decimal("5"))

    assert db.query(Loan).count() == 0


def test_apply_emi_payment(service: LedgerService, standard_loan: CreatedLoan):
    result = service.apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)

    assert result.loan_id == standard_loan.loan_id
    assert result.remaining_balance == Decimal("121000.00")
    assert result.emis_left == 11
    assert result.status == LoanStatus.ACTIVE
    assert result.payment_id


def test_apply_lump_sum_payment(service: LedgerService, standard_loan: CreatedLoan):
    result = service.apply_payment(standard_loan.loan_id, Decimal("66000"), PaymentType.LUMP_SUM)

    assert result.remaining_balance == Decimal("66000.00")
    assert result.emis_left == 6
    assert result.status == LoanStatus.ACTIVE


def test_full_payoff_then_rejects_further_payments(service: LedgerService, standard_loan: CreatedLoan, db: Session):
    result = service.apply_payment(standard_loan.loan_id, Decimal("132000"), PaymentType.LUMP_SUM)

    assert result.remaining_balance == Decimal("0")
    assert result.emis_left == 0
    assert result.status == LoanStatus.PAID_OFF

    with pytest.raises(LoanAlreadyPaidOffError) as exc_info:
        service.apply_payment(standard_loan.loan_id, Decimal("10"), PaymentType.EMI)
    assert isinstance(exc_info.value, InvalidStateError)

    ledger = service.get_ledger(standard_loan.loan_id)
    assert len(ledger.transactions) == 1
    assert ledger.balance_amount == Decimal("0.00")


def test_apply_payment_unknown_loan(service: LedgerService):
    with pytest.raises(LoanNotFoundError):
        service.apply_payment("missing", Decimal("10"), PaymentType.EMI)


def test_apply_payment_validates_before_lookup(service: LedgerService):
    """Invalid input is reported even when the loan does not exist"""
    with pytest.raises(InvalidInputError):
        service.apply_payment("missing", Decimal("0"), PaymentType.EMI)
    with pytest.raises(InvalidInputError):
        service.apply_payment("missing", Decimal("10"), "WEEKLY")


def test_apply_payment_storage_failure_rolls_back(
    service: LedgerService, standard_loan: CreatedLoan, db: Session, monkeypatch
):
    monkeypatch.setattr(db, "commit", _fail_commit)

    with pytest.raises(StorageError):
        service.apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)

    monkeypatch.undo()
    ledger = service.get_ledger(standard_loan.loan_id)
    assert ledger.balance_amount == Decimal("132000.00")
    assert ledger.amount_paid == Decimal("0.00")
    assert ledger.emis_left == 12
    assert ledger.transactions == []
    assert db.query(Payment).count() == 0


def test_create_loan_storage_failure_rolls_back(service: LedgerService, db: Session, monkeypatch):
    service.ensure_customer("cust_1")
    monkeypatch.setattr(db, "commit", _fail_commit)

    with pytest.raises(StorageError):
        service.create_loan("cust_1", Decimal("1000"), 1, Decimal("5"))

    monkeypatch.undo()
    assert db.query(Loan).count() == 0


def test_ledger_lists_payments_in_order(service: LedgerService, standard_loan: CreatedLoan):
    first = service.apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)
    second = service.apply_payment(standard_loan.loan_id, Decimal("500.50"), PaymentType.EMI)
    third = service.apply_payment(standard_loan.loan_id, Decimal("20000"), PaymentType.LUMP_SUM)

    ledger = service.get_ledger(standard_loan.loan_id)

    assert [t.transaction_id for t in ledger.transactions] == [
        first.payment_id,
        second.payment_id,
        third.payment_id,
    ]
    assert [t.amount for t in ledger.transactions] == [Decimal("11000.00"), Decimal("500.50"), Decimal("20000.00")]
    assert [t.type for t in ledger.transactions] == [PaymentType.EMI, PaymentType.EMI, PaymentType.LUMP_SUM]
    assert ledger.amount_paid == Decimal("31500.50")
    assert ledger.balance_amount == ledger.total_amount - ledger.amount_paid
    assert ledger.emis_left == 10


def test_ledger_reads_are_idempotent(service: LedgerService, standard_loan: CreatedLoan):
    service.apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)

    assert service.get_ledger(standard_loan.loan_id) == service.get_ledger(standard_loan.loan_id)


def test_ledger_unknown_loan(service: LedgerService):
    with pytest.raises(LoanNotFoundError):
        service.get_ledger("missing")


def test_customer_overview(service: LedgerService, standard_loan: CreatedLoan):
    second = service.create_loan("cust_1", Decimal("10000"), 2, Decimal("5"))
    service.apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)

    overview = service.get_customer_overview("cust_1")

    assert overview.customer_id == "cust_1"
    assert overview.total_loans == 2
    by_id = {loan.loan_id: loan for loan in overview.loans}
    assert by_id[standard_loan.loan_id].total_interest == Decimal("12000.00")
    assert by_id[standard_loan.loan_id].amount_paid == Decimal("11000.00")
    assert by_id[standard_loan.loan_id].emis_left == 11
    # 10000 * 2 * 0.05 = 1000; 11000 / 24 = 458.33
    assert by_id[second.loan_id].total_interest == Decimal("1000.00")
    assert by_id[second.loan_id].emi_amount == Decimal("458.33")
    assert by_id[second.loan_id].status == LoanStatus.ACTIVE


def test_customer_overview_unknown_customer(service: LedgerService):
    with pytest.raises(CustomerNotFoundError):
        service.get_customer_overview("ghost")


def test_customer_overview_without_loans_is_not_found(service: LedgerService):
    service.ensure_customer("cust_empty")

    with pytest.raises(NoLoansFoundError) as exc_info:
        service.get_customer_overview("cust_empty")
    assert isinstance(exc_info.value, NotFoundError)


def test_concurrent_payments_on_same_loan_are_serialized(
    standard_loan: CreatedLoan, session_factory: sessionmaker, monkeypatch
):
    """Two EMIs paid at once must both land on the balance"""
    real_get_for_update = LoanRepository.get_loan_for_update

    def slow_get_for_update(self, loan_id):
        loan = real_get_for_update(self, loan_id)
        # Widen the read-modify-write window
        time.sleep(0.3)
        return loan

    monkeypatch.setattr(LoanRepository, "get_loan_for_update", slow_get_for_update)

    start = threading.Barrier(2)
    errors = []

    def pay_emi():
        session = session_factory()
        try:
            start.wait()
            LedgerService(session).apply_payment(standard_loan.loan_id, Decimal("11000"), PaymentType.EMI)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=pay_emi) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    check = session_factory()
    try:
        ledger = LedgerService(check).get_ledger(standard_loan.loan_id)
    finally:
        check.close()
    assert len(ledger.transactions) == 2
    assert ledger.amount_paid == Decimal("22000.00")
    assert ledger.balance_amount == Decimal("110000.00")
    assert ledger.emis_left == 10
