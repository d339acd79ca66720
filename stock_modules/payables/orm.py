"""
Module: stock_modules.payables.orm
Responsibility: SQLAlchemy ORM persistence for accounts payable entries.
Architecture position: Modules > Payables > ORM.  Inherits from TrackedBase.

Invariants enforced:
    - One entry per voucher (unique ``voucher_id``); receiving retries find
      the existing entry instead of creating a second liability.
    - Amounts use Decimal (Numeric(38,9)); 0 <= amount_paid <= amount.

Failure modes:
    - IntegrityError on a second entry for the same voucher.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc
from stock_modules.payables.models import AccountsPayable, PayableStatus


class AccountsPayableModel(TrackedBase):
    """Maps to: stock_modules.payables.models.AccountsPayable."""

    __tablename__ = "accounts_payable"

    __table_args__ = (
        CheckConstraint("amount_paid >= 0", name="chk_ap_paid_non_negative"),
        CheckConstraint("amount_paid <= amount", name="chk_ap_paid_within_amount"),
        Index("idx_ap_supplier", "supplier_id"),
        Index("idx_ap_status_due", "status", "due_date"),
    )

    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    voucher_id: Mapped[UUID] = mapped_column(nullable=False, unique=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=PayableStatus.OUTSTANDING.value)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> AccountsPayable:
        return AccountsPayable(
            id=self.id,
            supplier_id=self.supplier_id,
            voucher_id=self.voucher_id,
            amount=self.amount,
            due_date=self.due_date,
            status=PayableStatus(self.status),
            amount_paid=self.amount_paid or Decimal("0"),
            paid_at=as_utc(self.paid_at) if self.paid_at else None,
        )

    def __repr__(self) -> str:
        return f"<AccountsPayableModel voucher={self.voucher_id} {self.amount} [{self.status}]>"
