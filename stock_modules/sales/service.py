"""
Sales Module Service (``stock_modules.sales.service``).

Responsibility
--------------
The Sale Completion Workflow, parked orders, cancellations and refunds.

Architecture
------------
Layer: **Modules** -- stateful orchestration over ``stock_services``.

Sale Completion Workflow
------------------------
1. Resolve every cart line's product and UOM conversion, then run the Stock
   Availability Checker on the live store.  Any shortfall raises
   ``InsufficientStockError`` listing every short product; nothing is
   persisted.
2. Persist the order and its lines (committed).
3. Group lines by product and sum their base quantities.
4. Call ``BatchStore.decrement_stock`` exactly once per product with the
   summed quantity, each in its own transaction.
5. A failed decrement is rolled back, logged and reported in
   ``SaleResult.failures``; it never fails the sale.  Cost of goods sold
   is the sum of the successful decrements and is stored on the order.

Concurrency
-----------
The availability check is a point-in-time read, not a reservation.  A
concurrent sale can consume the same stock before step 4; the decrement's
guarded updates keep batches from going negative and the losing decrement
surfaces as a failure.

Failure Modes
-------------
- InsufficientStockError (step 1 only).
- UnknownProductError, UnknownUOMError, FractionalBaseQuantityError for bad
  cart lines.
- UnknownOrderError, InvalidOrderTransitionError.
"""

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_engines.availability import RequestedLine, aggregate_requests
from stock_engines.uom import resolve_line_quantity
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.ledger import MovementType
from stock_kernel.exceptions import (
    InsufficientStockError,
    InvalidOrderTransitionError,
    UnknownOrderError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.utils.idempotency import generate_document_number
from stock_modules._workflow_helpers import StepFailure, require_transition, run_step
from stock_modules.catalog.service import ProductCatalog
from stock_modules.sales.config import SalesConfig
from stock_modules.sales.models import (
    CartLine,
    ProductDecrement,
    RefundResult,
    SaleOrder,
    SaleResult,
    SaleStatus,
)
from stock_modules.sales.orm import SalesOrderItemModel, SalesOrderModel
from stock_modules.sales.workflows import SALE_ORDER_WORKFLOW
from stock_services.availability_checker import StockAvailabilityChecker
from stock_services.batch_store import BatchStore
from stock_services.movement_recorder import MovementRecorder

logger = get_logger("modules.sales.service")


class SaleService:
    """
    Point-of-sale orders.

    Usage:
        service = SaleService(session, clock)
        result = service.complete_sale(
            [CartLine(rice_id, Decimal("2"), "kilo", Decimal("55.00"))],
            warehouse_id="WH-1",
            actor_id=cashier_id,
        )
        if result.partial_failure:
            ...  # queue for stock reconciliation

    Transaction boundary: each public method commits its own work; the
    decrements of a sale commit one product at a time.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: SalesConfig | None = None,
        batch_store: BatchStore | None = None,
        catalog: ProductCatalog | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or SalesConfig()
        self._batch_store = batch_store or BatchStore(
            session, MovementRecorder(session, self._clock), self._clock
        )
        self._catalog = catalog or ProductCatalog(session, self._clock)
        self._checker = StockAvailabilityChecker(self._batch_store)

    # =========================================================================
    # Sale Completion Workflow
    # =========================================================================

    def complete_sale(
        self,
        cart: Sequence[CartLine],
        warehouse_id: str,
        actor_id: UUID,
        customer_id: UUID | None = None,
    ) -> SaleResult:
        """
        Ring up a cart: validate, persist the order, remove the stock.

        Raises:
            ValueError: empty cart or non-positive quantity.
            InsufficientStockError: some product is short; nothing persisted.
            UnknownProductError, UnknownUOMError, FractionalBaseQuantityError
        """
        items = self._build_items(cart, actor_id)
        self._check_stock(items, warehouse_id)

        model = SalesOrderModel(
            id=uuid4(),
            order_number=generate_document_number(self._config.order_number_prefix, self._clock.now()),
            customer_id=customer_id,
            warehouse_id=warehouse_id,
            status=SaleStatus.COMPLETED.value,
            total_amount=_total(items),
            cost_of_goods_sold=Decimal("0"),
            completed_at=self._clock.now(),
            created_by_id=actor_id,
        )
        model.lines.extend(items)
        try:
            self._session.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "sale_order_created",
            extra={
                "order_id": str(model.id),
                "order_number": model.order_number,
                "warehouse_id": warehouse_id,
                "line_count": len(items),
                "total_amount": str(model.total_amount),
            },
        )
        return self._decrement_stock(model, actor_id)

    def park_order(
        self,
        cart: Sequence[CartLine],
        warehouse_id: str,
        actor_id: UUID,
        customer_id: UUID | None = None,
    ) -> SaleOrder:
        """Save a cart as a pending order without touching stock."""
        items = self._build_items(cart, actor_id)
        model = SalesOrderModel(
            id=uuid4(),
            order_number=generate_document_number(self._config.order_number_prefix, self._clock.now()),
            customer_id=customer_id,
            warehouse_id=warehouse_id,
            status=SALE_ORDER_WORKFLOW.initial_state,
            total_amount=_total(items),
            cost_of_goods_sold=Decimal("0"),
            created_by_id=actor_id,
        )
        model.lines.extend(items)
        try:
            self._session.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "sale_order_parked",
            extra={"order_id": str(model.id), "order_number": model.order_number},
        )
        return model.to_dto()

    def complete_order(self, order_id: UUID, actor_id: UUID) -> SaleResult:
        """
        Complete a parked order using the conversions snapshotted on its lines.

        Raises:
            InvalidOrderTransitionError: the order is not pending.
            InsufficientStockError: some product is short; the order stays pending.
        """
        model = self._load(order_id)
        self._require(model, "complete")
        self._check_stock(model.lines, model.warehouse_id)
        try:
            model.status = SaleStatus.COMPLETED.value
            model.completed_at = self._clock.now()
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return self._decrement_stock(model, actor_id)

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> SaleOrder:
        model = self._load(order_id)
        from_status = self._require(model, "cancel")
        try:
            model.status = SaleStatus.CANCELLED.value
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "sale_order_cancelled",
            extra={"order_id": str(order_id), "from_status": from_status},
        )
        return model.to_dto()

    def refund_sale(self, order_id: UUID, reason: str, actor_id: UUID) -> RefundResult:
        """
        Return a completed sale's stock to the batches it came from.

        Each sale movement of the order is compensated by a positive
        adjustment on its batch, in its own transaction.  A batch that is no
        longer active (expired or damaged since the sale) cannot take stock
        back and is reported as a failure.

        Raises:
            ValueError: blank reason.
            InvalidOrderTransitionError: the order is not completed.
        """
        if not reason or not reason.strip():
            raise ValueError("A refund needs a reason")
        model = self._load(order_id)
        self._require(model, "refund")

        reference_id = str(model.id)
        note = f"{self._config.refund_reason_prefix} {model.order_number}: {reason}"
        sold = [
            m for m in self._batch_store.recorder.history(reference_id=reference_id)
            if m.movement_type is MovementType.SALE and m.batch_id is not None
        ]

        with LogContext.bind(workflow="sale_refund", reference_id=reference_id, actor_id=actor_id):
            failures: list[StepFailure] = []
            restocked = []
            for movement in sold:
                applied = run_step(
                    self._session,
                    "restock_batch",
                    lambda m=movement: self._batch_store.adjust_batch(
                        m.batch_id,
                        -m.quantity,
                        MovementType.ADJUSTMENT,
                        actor_id,
                        reason=note,
                        reference_id=reference_id,
                    ),
                    failures,
                    product_id=movement.product_id,
                )
                if applied is not None:
                    restocked.append(applied)

            try:
                model.status = SaleStatus.REFUNDED.value
                model.updated_by_id = actor_id
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "sale_refunded",
                extra={
                    "order_number": model.order_number,
                    "restocked_movements": len(restocked),
                    "failed": len(failures),
                },
            )
        return RefundResult(order=model.to_dto(), restocked=tuple(restocked), failures=tuple(failures))

    def get_order(self, order_id: UUID) -> SaleOrder:
        return self._load(order_id).to_dto()

    # =========================================================================
    # Internal
    # =========================================================================

    def _decrement_stock(self, model: SalesOrderModel, actor_id: UUID) -> SaleResult:
        reference_id = str(model.id)
        warehouse_id = model.warehouse_id
        totals = aggregate_requests(
            RequestedLine(line.product_id, line.base_quantity) for line in model.lines
        )

        with LogContext.bind(
            workflow="sale_completion",
            reference_id=reference_id,
            actor_id=actor_id,
            warehouse_id=warehouse_id,
        ):
            failures: list[StepFailure] = []
            decrements: list[ProductDecrement] = []
            for product_id, quantity in totals.items():
                applied = run_step(
                    self._session,
                    "decrement_stock",
                    lambda pid=product_id, qty=quantity: self._batch_store.decrement_stock(
                        pid,
                        warehouse_id,
                        qty,
                        MovementType.SALE,
                        actor_id,
                        reference_id=reference_id,
                    ),
                    failures,
                    product_id=product_id,
                )
                if applied is not None:
                    decrements.append(
                        ProductDecrement(
                            product_id=product_id,
                            base_quantity=quantity,
                            cost=applied.total_cost,
                            batches_used=len(applied.plan.lines),
                        )
                    )

            try:
                model.cost_of_goods_sold = sum((d.cost for d in decrements), Decimal("0"))
                model.updated_by_id = actor_id
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            result = SaleResult(
                order=model.to_dto(),
                decrements=tuple(decrements),
                failures=tuple(failures),
            )
            summary = {
                "order_number": model.order_number,
                "products": len(totals),
                "decremented": len(decrements),
                "cost_of_goods_sold": str(model.cost_of_goods_sold),
            }
            if failures:
                logger.warning(
                    "sale_completed_with_failures",
                    extra={**summary, "failures": [f.to_dict() for f in failures]},
                )
            else:
                logger.info("sale_completed", extra=summary)
        return result

    def _check_stock(self, items: Sequence[SalesOrderItemModel], warehouse_id: str) -> None:
        availability = self._checker.check_availability(
            (RequestedLine(i.product_id, i.base_quantity) for i in items),
            warehouse_id,
        )
        if not availability.valid:
            raise InsufficientStockError(availability.shortfalls)

    def _build_items(self, cart: Sequence[CartLine], actor_id: UUID) -> list[SalesOrderItemModel]:
        if not cart:
            raise ValueError("Cannot complete a sale with an empty cart")
        items = []
        for number, entry in enumerate(cart, start=1):
            product = self._catalog.get_product(entry.product_id)
            snapshot = resolve_line_quantity(product, entry.quantity, entry.uom)
            items.append(
                SalesOrderItemModel(
                    id=uuid4(),
                    line_number=number,
                    product_id=product.id,
                    quantity=snapshot.quantity,
                    uom=snapshot.uom,
                    conversion_to_base=snapshot.conversion_to_base,
                    base_quantity=snapshot.base_quantity,
                    unit_price=entry.unit_price,
                    subtotal=snapshot.quantity * entry.unit_price,
                    created_by_id=actor_id,
                )
            )
        return items

    def _require(self, model: SalesOrderModel, action: str) -> str:
        from_status = model.status
        require_transition(
            SALE_ORDER_WORKFLOW,
            from_status,
            action,
            lambda: InvalidOrderTransitionError(str(model.id), from_status, action),
        )
        return from_status

    def _load(self, order_id: UUID) -> SalesOrderModel:
        model = self._session.get(SalesOrderModel, order_id)
        if model is None:
            raise UnknownOrderError(str(order_id))
        return model


def _total(items: Sequence[SalesOrderItemModel]) -> Decimal:
    return sum((i.subtotal for i in items), Decimal("0"))
