"""
Typed exception hierarchy for the stock ledger.

Every error carries a class-level ``code`` (machine-readable, stable across
message rewording) and stores its context as attributes, so callers catch by
type and read structured fields instead of parsing messages.  The JSON log
formatter copies those attributes into ``exc_*`` fields.

    StockLedgerError (base)
    |
    +-- UOMError
    |   +-- UnknownUOMError
    |   +-- InvalidConversionRateError
    |   +-- DuplicateUOMError
    |   +-- BaseUOMViolationError
    |   +-- InvalidUOMListError
    |   +-- FractionalBaseQuantityError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   +-- ConcurrentStockChangeError
    |   +-- InvalidMovementError
    |
    +-- ReferentialIntegrityError
    |   +-- UnknownProductError
    |   +-- UnknownBatchError
    |   +-- UnknownMovementError
    |   +-- UnknownVoucherError
    |   +-- UnknownOrderError
    |   +-- UnknownSupplierError
    |   +-- UnknownPayableError
    |
    +-- WorkflowError
    |   +-- InvalidVoucherTransitionError
    |   +-- VoucherNotEditableError
    |   +-- InvalidOrderTransitionError
    |   +-- PartialWorkflowFailureError
    |
    +-- PayableError
    |   +-- OverpaymentError
    |
    +-- ImmutabilityViolationError
    +-- ConfigurationError

Category bases let callers treat whole families alike: a ``StockError`` is
usually recoverable by the operator (adjust the cart), a
``ReferentialIntegrityError`` is fatal to one line only, an
``ImmutabilityViolationError`` is a programming error that should page.
"""

from collections.abc import Sequence
from typing import Any


class StockLedgerError(Exception):
    """Base exception for all stock ledger errors."""

    code: str = "STOCK_LEDGER_ERROR"


# UOM conversion errors


class UOMError(StockLedgerError):
    """Base exception for unit-of-measure errors."""

    code: str = "UOM_ERROR"


class UnknownUOMError(UOMError):
    """Conversion requested for a UOM that is not in the product's list."""

    code: str = "UNKNOWN_UOM"

    def __init__(self, uom_name: str, available: Sequence[str] = ()):
        self.uom_name = uom_name
        self.available = list(available)
        super().__init__(
            f'UOM "{uom_name}" not found in UOM list '
            f"(available: {', '.join(self.available) or 'none'})"
        )


class InvalidConversionRateError(UOMError):
    """Conversion rate is not strictly positive.

    Raised by ``from_base`` instead of dividing by zero, and by UOM list
    mutations that would introduce a non-positive rate.
    """

    code: str = "INVALID_CONVERSION_RATE"

    def __init__(self, uom_name: str, conversion_to_base: Any):
        self.uom_name = uom_name
        self.conversion_to_base = str(conversion_to_base)
        super().__init__(
            f'UOM "{uom_name}" has invalid conversion rate {conversion_to_base}; '
            "rates must be strictly positive"
        )


class DuplicateUOMError(UOMError):
    """UOM name already present in the list."""

    code: str = "DUPLICATE_UOM"

    def __init__(self, uom_name: str):
        self.uom_name = uom_name
        super().__init__(f'UOM "{uom_name}" already exists in the list')


class BaseUOMViolationError(UOMError):
    """Attempt to remove the base UOM or move its rate away from 1."""

    code: str = "BASE_UOM_VIOLATION"

    def __init__(self, uom_name: str, reason: str):
        self.uom_name = uom_name
        self.reason = reason
        super().__init__(f'Base UOM "{uom_name}": {reason}')


class InvalidUOMListError(UOMError):
    """UOM list fails structural validation."""

    code: str = "INVALID_UOM_LIST"

    def __init__(self, reason: str, product_id: str | None = None):
        self.reason = reason
        self.product_id = product_id
        where = f" for product {product_id}" if product_id else ""
        super().__init__(f"Invalid UOM list{where}: {reason}")


class FractionalBaseQuantityError(UOMError):
    """Converted quantity is not a whole number of base units."""

    code: str = "FRACTIONAL_BASE_QUANTITY"

    def __init__(self, quantity: Any, uom_name: str, base_quantity: Any):
        self.quantity = str(quantity)
        self.uom_name = uom_name
        self.base_quantity = str(base_quantity)
        super().__init__(
            f"{quantity} {uom_name} converts to {base_quantity} base units; "
            "stock is tracked in whole base units"
        )


# Stock errors


class StockError(StockLedgerError):
    """Base exception for stock quantity errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Requested quantities exceed on-hand stock.

    ``shortfalls`` holds one entry per product, each exposing
    ``product_id``, ``requested`` and ``available``.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortfalls: Sequence[Any]):
        self.shortfalls = list(shortfalls)
        detail = ", ".join(
            f"{s.product_id} (requested {s.requested}, available {s.available})"
            for s in self.shortfalls
        )
        super().__init__(f"Insufficient stock: {detail}")


class ConcurrentStockChangeError(StockError):
    """A guarded batch update matched no row: the batch changed underneath us."""

    code: str = "CONCURRENT_STOCK_CHANGE"

    def __init__(self, batch_id: str, attempted_quantity: int):
        self.batch_id = batch_id
        self.attempted_quantity = attempted_quantity
        super().__init__(
            f"Batch {batch_id} no longer holds {attempted_quantity} units; "
            "stock changed concurrently"
        )


class InvalidMovementError(StockError):
    """Stock movement fails validation (zero quantity, wrong sign, missing reason)."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, movement_type: str, quantity: int, reason: str):
        self.movement_type = movement_type
        self.quantity = quantity
        self.reason = reason
        super().__init__(
            f"Invalid {movement_type} movement of {quantity}: {reason}"
        )


# Referential integrity errors


class ReferentialIntegrityError(StockLedgerError):
    """Base exception for references to records that do not exist."""

    code: str = "REFERENCE_ERROR"


class UnknownProductError(ReferentialIntegrityError):
    """Product with given ID was not found."""

    code: str = "UNKNOWN_PRODUCT"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class UnknownBatchError(ReferentialIntegrityError):
    """Inventory batch with given ID or number was not found."""

    code: str = "UNKNOWN_BATCH"

    def __init__(self, batch_ref: str):
        self.batch_ref = batch_ref
        super().__init__(f"Inventory batch not found: {batch_ref}")


class UnknownMovementError(ReferentialIntegrityError):
    """Stock movement with given ID was not found."""

    code: str = "UNKNOWN_MOVEMENT"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Stock movement not found: {movement_id}")


class UnknownVoucherError(ReferentialIntegrityError):
    """Voucher with given ID was not found."""

    code: str = "UNKNOWN_VOUCHER"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


class UnknownOrderError(ReferentialIntegrityError):
    """Sale order with given ID was not found."""

    code: str = "UNKNOWN_ORDER"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Sale order not found: {order_id}")


class UnknownSupplierError(ReferentialIntegrityError):
    """Supplier with given ID was not found."""

    code: str = "UNKNOWN_SUPPLIER"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


class UnknownPayableError(ReferentialIntegrityError):
    """Accounts payable entry with given ID was not found."""

    code: str = "UNKNOWN_PAYABLE"

    def __init__(self, payable_id: str):
        self.payable_id = payable_id
        super().__init__(f"Accounts payable entry not found: {payable_id}")


# Workflow errors


class WorkflowError(StockLedgerError):
    """Base exception for workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidVoucherTransitionError(WorkflowError):
    """Voucher status transition is not allowed."""

    code: str = "INVALID_VOUCHER_TRANSITION"

    def __init__(self, voucher_id: str, from_status: str, action: str):
        self.voucher_id = voucher_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} voucher {voucher_id} in status '{from_status}'"
        )


class VoucherNotEditableError(WorkflowError):
    """Voucher lines may only change while the voucher is draft or pending."""

    code: str = "VOUCHER_NOT_EDITABLE"

    def __init__(self, voucher_id: str, status: str):
        self.voucher_id = voucher_id
        self.status = status
        super().__init__(
            f"Voucher {voucher_id} is '{status}' and can no longer be edited"
        )


class InvalidOrderTransitionError(WorkflowError):
    """Sale order status transition is not allowed."""

    code: str = "INVALID_ORDER_TRANSITION"

    def __init__(self, order_id: str, from_status: str, action: str):
        self.order_id = order_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} sale order {order_id} in status '{from_status}'"
        )


class PartialWorkflowFailureError(WorkflowError):
    """Some side-effecting steps of a workflow failed after the primary record committed.

    Raised only on request (``raise_for_partial()``); workflows report the
    condition as a result value by default.
    """

    code: str = "PARTIAL_WORKFLOW_FAILURE"

    def __init__(self, workflow: str, reference_id: str, failures: Sequence[Any]):
        self.workflow = workflow
        self.reference_id = reference_id
        self.failures = list(failures)
        super().__init__(
            f"{workflow} {reference_id} completed with {len(self.failures)} "
            "failed step(s); manual reconciliation required"
        )


# Payables errors


class PayableError(StockLedgerError):
    """Base exception for accounts payable errors."""

    code: str = "PAYABLE_ERROR"


class OverpaymentError(PayableError):
    """Payment exceeds the outstanding balance."""

    code: str = "OVERPAYMENT"

    def __init__(self, payable_id: str, amount: str, outstanding: str):
        self.payable_id = payable_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment {amount} exceeds outstanding balance {outstanding} "
            f"for payable {payable_id}"
        )


# Persistence and configuration


class ImmutabilityViolationError(StockLedgerError):
    """Attempt to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


class ConfigurationError(StockLedgerError):
    """Configuration file or values are invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid configuration{where}: {reason}")
