"""
Typed exceptions for the ledger.

Every error carries a machine-readable ``code``, the HTTP status the API
answers with, and a ``retryable`` flag so a caller can tell a rejected
request (fix the input) from an infrastructure failure (try again).

    LedgerError
    +-- ValidationError
    |   +-- InvalidAmount
    |   +-- InvalidPrice
    |   +-- ExcessAmount
    |   +-- AlreadySettled
    |   +-- NothingToSettle
    |   +-- InsufficientStock
    |   +-- DuplicateRecord
    |   +-- RecordInUse
    +-- NotFound
    +-- StoreFailure
"""
from decimal import Decimal


class LedgerError(Exception):
    """Base exception for every ledger error."""

    code: str = "LEDGER_ERROR"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


class ValidationError(LedgerError):
    """The request breaks a business rule."""

    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    """Amount or quantity is out of range."""

    code = "INVALID_AMOUNT"


class InvalidPrice(ValidationError):
    """Sale price must exceed cost price."""

    code = "INVALID_PRICE"

    def __init__(self, cost_price: Decimal, sale_price: Decimal):
        self.cost_price = cost_price
        self.sale_price = sale_price
        super().__init__(
            f"Sale price ({sale_price}) must be greater than cost price ({cost_price})"
        )


class ExcessAmount(ValidationError):
    """Payment exceeds the pending balance."""

    code = "EXCESS_AMOUNT"

    def __init__(self, amount: Decimal, pending: Decimal):
        self.amount = amount
        self.pending = pending
        super().__init__(f"Amount ({amount}) exceeds pending balance ({pending})")


class AlreadySettled(ValidationError):
    """The sale has no pending balance."""

    code = "ALREADY_SETTLED"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} is already fully paid")


class NothingToSettle(ValidationError):
    """No newly fully-paid units are waiting for a profit cut."""

    code = "NOTHING_TO_SETTLE"


class InsufficientStock(ValidationError):
    """Requested quantity exceeds current stock."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{product_id}'. Available: {available}, Requested: {requested}"
        )


class DuplicateRecord(ValidationError):
    """A record with the same key already exists."""

    code = "DUPLICATE_RECORD"
    status_code = 409


class RecordInUse(ValidationError):
    """The record is still referenced and cannot be deleted."""

    code = "RECORD_IN_USE"
    status_code = 409


class NotFound(LedgerError):
    """Referenced record does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class StoreFailure(LedgerError):
    """The underlying store failed; the batch was not applied."""

    code = "STORE_FAILURE"
    status_code = 503
    retryable = True
