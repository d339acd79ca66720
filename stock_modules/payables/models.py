"""
Payables Domain Models (``stock_modules.payables.models``).

Frozen value objects for supplier liabilities created by goods receipts.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PaymentTerms(str, Enum):
    """Supplier payment terms."""
    NET_15 = "Net 15"
    NET_30 = "Net 30"
    NET_60 = "Net 60"
    COD = "COD"

    @property
    def days(self) -> int:
        """Days from receipt until payment is due (COD is due on receipt)."""
        if self is PaymentTerms.COD:
            return 0
        return int(self.value.split()[1])


class PayableStatus(str, Enum):
    OUTSTANDING = "outstanding"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class AccountsPayable:
    """
    What is owed to a supplier for one received voucher.

    Exactly one entry exists per voucher.
    """
    id: UUID
    supplier_id: UUID
    voucher_id: UUID
    amount: Decimal
    due_date: date
    status: PayableStatus = PayableStatus.OUTSTANDING
    amount_paid: Decimal = Decimal("0")
    paid_at: datetime | None = None

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("amount cannot be negative")
        if self.amount_paid < 0:
            raise ValueError("amount_paid cannot be negative")

    @property
    def outstanding(self) -> Decimal:
        return self.amount - self.amount_paid

    @property
    def is_settled(self) -> bool:
        return self.status is PayableStatus.PAID
