"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Request field is missing, malformed or out of range"""

    pass


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    pass


class LoanNotFoundError(NotFoundError):
    """No loan with the given identifier"""

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} not found")
        self.loan_id = loan_id


class CustomerNotFoundError(NotFoundError):
    """No customer with the given identifier"""

    def __init__(self, customer_id: str):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class NoLoansFoundError(NotFoundError):
    """Customer exists but has no loans"""

    def __init__(self, customer_id: str):
        super().__init__(f"No loans found for customer {customer_id}")
        self.customer_id = customer_id


class InvalidStateError(DomainException):
    """Operation is not allowed in the entity's current state"""

    pass


class LoanAlreadyPaidOffError(InvalidStateError):
    """Payment attempted against a PAID_OFF loan"""

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} is already paid off")
        self.loan_id = loan_id


class StorageError(DomainException):
    """Persistence failed and the transaction was rolled back"""

    pass
