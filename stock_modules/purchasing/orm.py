"""
Module: stock_modules.purchasing.orm
Responsibility: SQLAlchemy ORM persistence for suppliers, purchase vouchers
    and voucher lines.
Architecture position: Modules > Purchasing > ORM.  Inherits from TrackedBase
    (stock_kernel.db.base).

Invariants enforced:
    - Money and quantities in display units use Decimal (Numeric(38,9)).
    - Every line stores its display quantity, UOM name, conversion factor and
      base quantity, so it stays interpretable after the product's UOM list
      changes.
    - ``received_quantity``/``batch_id`` are stamped in the same transaction
      that stocks the line's batch; a stamped line is never applied twice.
    - Status fields are stored as String(50).
    - Products and batches are referenced by id without foreign keys; they
      belong to the kernel and are validated by the service.

Failure modes:
    - IntegrityError on duplicate voucher number or duplicate line number
      within a voucher.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc
from stock_modules.purchasing.models import (
    PaymentTerms,
    Supplier,
    Voucher,
    VoucherLine,
    VoucherStatus,
)


class SupplierModel(TrackedBase):
    """Maps to: stock_modules.purchasing.models.Supplier."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_terms: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentTerms.NET_30.value)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Supplier:
        return Supplier(
            id=self.id,
            name=self.name,
            payment_terms=PaymentTerms(self.payment_terms),
            contact=self.contact,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: Supplier, created_by_id: UUID) -> "SupplierModel":
        return cls(
            id=dto.id,
            name=dto.name,
            payment_terms=dto.payment_terms.value,
            contact=dto.contact,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<SupplierModel {self.id}: {self.name} ({self.payment_terms})>"


class VoucherModel(TrackedBase):
    """
    Purchase voucher header.

    Maps to: stock_modules.purchasing.models.Voucher.
    """

    __tablename__ = "vouchers"

    __table_args__ = (
        Index("idx_voucher_supplier", "supplier_id"),
        Index("idx_voucher_status", "status"),
    )

    voucher_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=VoucherStatus.DRAFT.value)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    received_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["VoucherItemModel"]] = relationship(
        back_populates="voucher",
        order_by="VoucherItemModel.line_number",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> Voucher:
        return Voucher(
            id=self.id,
            voucher_number=self.voucher_number,
            supplier_id=self.supplier_id,
            warehouse_id=self.warehouse_id,
            status=VoucherStatus(self.status),
            total_amount=self.total_amount,
            lines=tuple(line.to_dto() for line in self.lines),
            received_at=as_utc(self.received_at) if self.received_at else None,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<VoucherModel {self.voucher_number} [{self.status}]>"


class VoucherItemModel(TrackedBase):
    """
    One voucher line with its conversion snapshot.

    Maps to: stock_modules.purchasing.models.VoucherLine.
    """

    __tablename__ = "voucher_items"

    __table_args__ = (
        UniqueConstraint("voucher_id", "line_number", name="uq_voucher_item_line"),
        Index("idx_voucher_item_product", "product_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(ForeignKey("vouchers.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    uom: Mapped[str] = mapped_column(String(50), nullable=False)
    conversion_to_base: Mapped[Decimal] = mapped_column(nullable=False)
    base_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    received_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    batch_id: Mapped[UUID | None] = mapped_column(nullable=True)

    voucher: Mapped[VoucherModel] = relationship(back_populates="lines")

    def to_dto(self) -> VoucherLine:
        return VoucherLine(
            id=self.id,
            voucher_id=self.voucher_id,
            line_number=self.line_number,
            product_id=self.product_id,
            quantity=self.quantity,
            uom=self.uom,
            conversion_to_base=self.conversion_to_base,
            base_quantity=self.base_quantity,
            unit_cost=self.unit_cost,
            expiry_date=self.expiry_date,
            received_quantity=self.received_quantity or 0,
            batch_id=self.batch_id,
        )

    def __repr__(self) -> str:
        return (
            f"<VoucherItemModel #{self.line_number} {self.quantity} {self.uom} "
            f"of {self.product_id}>"
        )
