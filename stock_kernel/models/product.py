"""
Module: stock_kernel.models.product
Responsibility: ORM persistence for products and their UOM lists.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - ``uom_list`` is one JSON column holding an ordered array of
      ``{name, conversion_to_base, is_base}`` objects; rates are stored as
      strings so they never pass through float.
    - Rows are parsed into a validated ``Product`` by ``to_dto``; a row whose
      UOM list violates the domain invariants raises InvalidUOMListError
      instead of leaking into the conversion engine.
"""

from uuid import UUID

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.products import Product, UnitOfMeasure, parse_uom_list


class ProductModel(TrackedBase):
    """Persistent product record."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    base_uom: Mapped[str] = mapped_column(String(50), nullable=False)
    uom_list: Mapped[list] = mapped_column(JSON, nullable=False)
    min_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shelf_life_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Product:
        """Parse and validate the row into a frozen Product."""
        return Product(
            id=self.id,
            name=self.name,
            base_uom=self.base_uom,
            uom_list=parse_uom_list(self.uom_list or []),
            min_stock_level=self.min_stock_level or 0,
            shelf_life_days=self.shelf_life_days,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: Product, created_by_id: UUID, sku: str | None = None) -> "ProductModel":
        return cls(
            id=dto.id,
            name=dto.name,
            sku=sku,
            base_uom=dto.base_uom,
            uom_list=serialize_uom_list(dto.uom_list),
            min_stock_level=dto.min_stock_level,
            shelf_life_days=dto.shelf_life_days,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ProductModel {self.id}: {self.name} base={self.base_uom}>"


def serialize_uom_list(uom_list: tuple[UnitOfMeasure, ...]) -> list[dict]:
    return [uom.to_dict() for uom in uom_list]
