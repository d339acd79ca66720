"""
Module: stock_modules.sales.orm
Responsibility: SQLAlchemy ORM persistence for sale orders and their lines.
Architecture position: Modules > Sales > ORM.  Inherits from TrackedBase.

Invariants enforced:
    - Money uses Decimal (Numeric(38,9)).
    - Every line stores display quantity, UOM, conversion factor and base
      quantity (the same snapshot rule as voucher lines).
    - Products are referenced by id without foreign keys.

Failure modes:
    - IntegrityError on duplicate order number.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc
from stock_modules.sales.models import SaleOrder, SaleOrderLine, SaleStatus


class SalesOrderModel(TrackedBase):
    """Maps to: stock_modules.sales.models.SaleOrder."""

    __tablename__ = "sales_orders"

    __table_args__ = (
        Index("idx_sales_order_status", "status"),
        Index("idx_sales_order_warehouse", "warehouse_id"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    customer_id: Mapped[UUID | None] = mapped_column(nullable=True)
    warehouse_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=SaleStatus.PENDING.value)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    cost_of_goods_sold: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["SalesOrderItemModel"]] = relationship(
        back_populates="order",
        order_by="SalesOrderItemModel.line_number",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> SaleOrder:
        return SaleOrder(
            id=self.id,
            order_number=self.order_number,
            warehouse_id=self.warehouse_id,
            status=SaleStatus(self.status),
            total_amount=self.total_amount,
            cost_of_goods_sold=self.cost_of_goods_sold or Decimal("0"),
            lines=tuple(line.to_dto() for line in self.lines),
            customer_id=self.customer_id,
            completed_at=as_utc(self.completed_at) if self.completed_at else None,
        )

    def __repr__(self) -> str:
        return f"<SalesOrderModel {self.order_number} [{self.status}]>"


class SalesOrderItemModel(TrackedBase):
    """Maps to: stock_modules.sales.models.SaleOrderLine."""

    __tablename__ = "sales_order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_sales_order_item_line"),
        Index("idx_sales_order_item_product", "product_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("sales_orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    uom: Mapped[str] = mapped_column(String(50), nullable=False)
    conversion_to_base: Mapped[Decimal] = mapped_column(nullable=False)
    base_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped[SalesOrderModel] = relationship(back_populates="lines")

    def to_dto(self) -> SaleOrderLine:
        return SaleOrderLine(
            id=self.id,
            order_id=self.order_id,
            line_number=self.line_number,
            product_id=self.product_id,
            quantity=self.quantity,
            uom=self.uom,
            conversion_to_base=self.conversion_to_base,
            base_quantity=self.base_quantity,
            unit_price=self.unit_price,
            subtotal=self.subtotal,
        )

    def __repr__(self) -> str:
        return f"<SalesOrderItemModel #{self.line_number} {self.quantity} {self.uom}>"
