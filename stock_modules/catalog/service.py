"""
Product Catalog Service (``stock_modules.catalog.service``).

Responsibility
--------------
Creates products and maintains their UOM lists through the UOM Converter's
list operations (``stock_engines.uom``), persisting the validated result.

Architecture
------------
Layer: **Modules** -- session-bound service.  Each mutating method owns its
transaction: commit on success, rollback on failure.

Historical compatibility
------------------------
Removing or re-rating a unit does not touch existing voucher or sale lines;
they keep their own UOM name and conversion snapshot.  The returned
``UOMChange.referenced_by_history`` tells the caller when such lines exist so
it can warn the operator.  The change is applied either way.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from stock_engines import uom as uom_engine
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.products import Product, UnitOfMeasure
from stock_kernel.exceptions import UnknownProductError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product import ProductModel, serialize_uom_list

logger = get_logger("modules.catalog.service")


@dataclass(frozen=True)
class UOMChange:
    """Result of a UOM list mutation."""
    product: Product
    uom_name: str
    referenced_by_history: bool = False


class ProductCatalog:
    """
    Products and their declared units.

    Usage:
        catalog = ProductCatalog(session)
        rice = catalog.create_product("Rice", "kilo", actor_id)
        catalog.add_uom(rice.id, "sack", 50, actor_id)
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # =========================================================================
    # Products
    # =========================================================================

    def create_product(
        self,
        name: str,
        base_uom: str,
        actor_id: UUID,
        uom_list: Sequence[UnitOfMeasure] | None = None,
        sku: str | None = None,
        min_stock_level: int = 0,
        shelf_life_days: int | None = None,
    ) -> Product:
        """
        Create a product.  Without ``uom_list`` the product has only its base unit.

        Raises:
            InvalidUOMListError: the list breaks a UOM invariant.
            ValueError: negative min_stock_level or non-positive shelf life.
        """
        product = Product(
            id=uuid4(),
            name=name,
            base_uom=base_uom,
            uom_list=tuple(uom_list) if uom_list else uom_engine.create_default_uom_list(base_uom),
            min_stock_level=min_stock_level,
            shelf_life_days=shelf_life_days,
        )
        try:
            self._session.add(ProductModel.from_dto(product, created_by_id=actor_id, sku=sku))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "product_created",
            extra={
                "product_id": str(product.id),
                "product_name": name,
                "base_uom": base_uom,
                "uoms": list(product.uom_names),
            },
        )
        return product

    def get_product(self, product_id: UUID) -> Product:
        """
        Raises:
            UnknownProductError: no product with this id.
            InvalidUOMListError: the stored UOM list is corrupt.
        """
        return self._load(product_id).to_dto()

    def find_products(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """Products by id; unknown ids are simply absent from the result."""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        models = self._session.scalars(select(ProductModel).where(ProductModel.id.in_(ids)))
        return {m.id: m.to_dto() for m in models}

    def list_products(self, active_only: bool = True) -> list[Product]:
        stmt = select(ProductModel).order_by(ProductModel.name)
        if active_only:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def deactivate_product(self, product_id: UUID, actor_id: UUID) -> Product:
        """Products are never deleted; deactivated ones drop out of listings and alerts."""
        try:
            model = self._load(product_id)
            model.is_active = False
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("product_deactivated", extra={"product_id": str(product_id)})
        return model.to_dto()

    # =========================================================================
    # UOM list maintenance
    # =========================================================================

    def add_uom(self, product_id: UUID, name: str, conversion_to_base: Any, actor_id: UUID) -> UOMChange:
        """
        Raises:
            DuplicateUOMError, InvalidConversionRateError
        """
        return self._mutate(
            product_id,
            name,
            actor_id,
            lambda uoms: uom_engine.add_uom(uoms, name, conversion_to_base),
            action="add",
            check_history=False,
        )

    def update_uom(self, product_id: UUID, name: str, conversion_to_base: Any, actor_id: UUID) -> UOMChange:
        """
        Raises:
            UnknownUOMError, BaseUOMViolationError, InvalidConversionRateError
        """
        return self._mutate(
            product_id,
            name,
            actor_id,
            lambda uoms: uom_engine.update_uom(uoms, name, conversion_to_base),
            action="update",
        )

    def remove_uom(self, product_id: UUID, name: str, actor_id: UUID) -> UOMChange:
        """
        Raises:
            UnknownUOMError, BaseUOMViolationError
        """
        return self._mutate(
            product_id,
            name,
            actor_id,
            lambda uoms: uom_engine.remove_uom(uoms, name),
            action="remove",
        )

    def is_uom_referenced(self, product_id: UUID, uom_name: str) -> bool:
        """True when any voucher or sale line recorded a quantity in ``uom_name``."""
        # Imported here: purchasing and sales depend on this module.
        from stock_modules.purchasing.orm import VoucherItemModel
        from stock_modules.sales.orm import SalesOrderItemModel

        for model in (VoucherItemModel, SalesOrderItemModel):
            found = self._session.execute(
                select(exists().where(model.product_id == product_id, model.uom == uom_name))
            ).scalar()
            if found:
                return True
        return False

    # =========================================================================
    # Internal
    # =========================================================================

    def _mutate(
        self,
        product_id: UUID,
        name: str,
        actor_id: UUID,
        change: Callable[[tuple[UnitOfMeasure, ...]], tuple[UnitOfMeasure, ...]],
        action: str,
        check_history: bool = True,
    ) -> UOMChange:
        try:
            model = self._load(product_id)
            current = model.to_dto()
            updated = replace(current, uom_list=change(current.uom_list))
            referenced = check_history and self.is_uom_referenced(product_id, name)

            model.uom_list = serialize_uom_list(updated.uom_list)
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        log_extra = {
            "product_id": str(product_id),
            "uom_name": name,
            "action": action,
            "uoms": list(updated.uom_names),
        }
        if referenced:
            logger.warning("uom_change_affects_history", extra=log_extra)
        else:
            logger.info("uom_list_updated", extra=log_extra)
        return UOMChange(product=updated, uom_name=name, referenced_by_history=referenced)

    def _load(self, product_id: UUID) -> ProductModel:
        model = self._session.get(ProductModel, product_id)
        if model is None:
            raise UnknownProductError(str(product_id))
        return model
