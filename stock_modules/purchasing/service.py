"""
Purchasing Module Service (``stock_modules.purchasing.service``).

Responsibility
--------------
Supplier records, purchase voucher lifecycle (draft, pending, ordered,
cancelled) and the Receiving Workflow, which turns a voucher into inventory
batches, purchase movements and an accounts payable entry.

Architecture
------------
Layer: **Modules** -- stateful orchestration.

1. Resolves products and UOM conversions through ``ProductCatalog`` and
   ``stock_engines.uom`` when lines are entered (boundary validation).
2. Stocks each line through ``BatchStore.receive_into_batch``.
3. Books the liability through ``PayablesService``.

Receiving Workflow
------------------
``receive`` runs sequentially on the caller's path:

1. For each outstanding line, in its own transaction: check the product,
   create (or find) the batch ``RCV:<voucher>:<line>``, record the purchase
   movement, and stamp the line's ``received_quantity`` and ``batch_id``.
2. Create the payable (once per voucher).
3. Mark the voucher ``received``.

A failed line or payable is rolled back, logged and reported in
``ReceivingResult.failures``; lines that committed stay applied.  Calling
``receive`` again on a received voucher is the retry path: stamped lines and
an existing payable are skipped, so nothing is stocked or booked twice.

Failure Modes
-------------
- UnknownVoucherError / UnknownSupplierError / UnknownProductError.
- InvalidVoucherTransitionError for an action the current status forbids.
- VoucherNotEditableError when lines change after the voucher was ordered.
- UnknownUOMError / FractionalBaseQuantityError for invalid line quantities.
"""

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_engines.uom import resolve_line_quantity
from stock_kernel.domain.clock import Clock, SystemClock, as_utc
from stock_kernel.domain.products import Product
from stock_kernel.exceptions import (
    InvalidVoucherTransitionError,
    UnknownSupplierError,
    UnknownVoucherError,
    VoucherNotEditableError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.utils.idempotency import generate_batch_number, generate_document_number
from stock_modules._workflow_helpers import StepFailure, require_transition, run_step
from stock_modules.catalog.service import ProductCatalog
from stock_modules.payables.service import PayablesService
from stock_modules.purchasing.config import PurchasingConfig
from stock_modules.purchasing.models import (
    LineOutcome,
    LineStatus,
    PaymentTerms,
    ReceivingResult,
    Supplier,
    Voucher,
    VoucherLineInput,
    VoucherStatus,
)
from stock_modules.purchasing.orm import SupplierModel, VoucherItemModel, VoucherModel
from stock_modules.purchasing.workflows import EDITABLE_STATES, VOUCHER_WORKFLOW
from stock_services.batch_store import BatchStore
from stock_services.movement_recorder import MovementRecorder

logger = get_logger("modules.purchasing.service")

COST_QUANTUM = Decimal("0.000000001")


class ReceivingService:
    """
    Vouchers from entry to goods receipt.

    Usage:
        service = ReceivingService(session, clock)
        voucher = service.create_voucher(
            supplier_id, "WH-1",
            [VoucherLineInput(rice_id, Decimal("2"), "sack", Decimal("1000.00"))],
            actor_id,
        )
        service.submit(voucher.id, actor_id)
        result = service.receive(voucher.id, actor_id)
        result.raise_for_partial()

    Transaction boundary: every public method commits its own work; the
    Receiving Workflow commits once per step.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
        batch_store: BatchStore | None = None,
        catalog: ProductCatalog | None = None,
        payables: PayablesService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or PurchasingConfig()
        self._batch_store = batch_store or BatchStore(
            session, MovementRecorder(session, self._clock), self._clock
        )
        self._catalog = catalog or ProductCatalog(session, self._clock)
        self._payables = payables or PayablesService(session, self._clock)

    # =========================================================================
    # Suppliers
    # =========================================================================

    def create_supplier(
        self,
        name: str,
        actor_id: UUID,
        payment_terms: PaymentTerms | str | None = None,
        contact: str | None = None,
    ) -> Supplier:
        supplier = Supplier(
            id=uuid4(),
            name=name,
            payment_terms=PaymentTerms(payment_terms or self._config.default_payment_terms),
            contact=contact,
        )
        try:
            self._session.add(SupplierModel.from_dto(supplier, created_by_id=actor_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "supplier_created",
            extra={
                "supplier_id": str(supplier.id),
                "supplier_name": name,
                "payment_terms": supplier.payment_terms.value,
            },
        )
        return supplier

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        model = self._session.get(SupplierModel, supplier_id)
        if model is None:
            raise UnknownSupplierError(str(supplier_id))
        return model.to_dto()

    # =========================================================================
    # Vouchers
    # =========================================================================

    def create_voucher(
        self,
        supplier_id: UUID,
        warehouse_id: str,
        lines: Sequence[VoucherLineInput],
        actor_id: UUID,
        notes: str | None = None,
    ) -> Voucher:
        """
        Create a draft voucher.

        Every line is validated here: the product must exist and the quantity
        must convert to a whole number of base units.  Conversions are
        snapshotted onto the lines.

        Raises:
            ValueError: no lines.
            UnknownSupplierError, UnknownProductError, UnknownUOMError,
            FractionalBaseQuantityError
        """
        self.get_supplier(supplier_id)
        items = self._build_items(lines, actor_id)
        model = VoucherModel(
            id=uuid4(),
            voucher_number=generate_document_number(
                self._config.voucher_number_prefix, self._clock.now()
            ),
            supplier_id=supplier_id,
            warehouse_id=warehouse_id,
            status=VOUCHER_WORKFLOW.initial_state,
            total_amount=_total(items),
            notes=notes,
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
            "voucher_created",
            extra={
                "voucher_id": str(model.id),
                "voucher_number": model.voucher_number,
                "supplier_id": str(supplier_id),
                "warehouse_id": warehouse_id,
                "line_count": len(items),
                "total_amount": str(model.total_amount),
            },
        )
        return model.to_dto()

    def get_voucher(self, voucher_id: UUID) -> Voucher:
        return self._load_voucher(voucher_id).to_dto()

    def update_voucher_lines(
        self,
        voucher_id: UUID,
        lines: Sequence[VoucherLineInput],
        actor_id: UUID,
    ) -> Voucher:
        """
        Replace all lines of a draft or pending voucher.

        Raises:
            VoucherNotEditableError: the voucher is ordered, received or cancelled.
        """
        model = self._load_voucher(voucher_id)
        if model.status not in EDITABLE_STATES:
            raise VoucherNotEditableError(str(voucher_id), model.status)

        items = self._build_items(lines, actor_id)
        try:
            model.lines.clear()
            self._session.flush()
            model.lines.extend(items)
            model.total_amount = _total(items)
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "voucher_lines_updated",
            extra={
                "voucher_id": str(voucher_id),
                "line_count": len(items),
                "total_amount": str(model.total_amount),
            },
        )
        return model.to_dto()

    def submit(self, voucher_id: UUID, actor_id: UUID) -> Voucher:
        return self._transition(voucher_id, "submit", actor_id)

    def place_order(self, voucher_id: UUID, actor_id: UUID) -> Voucher:
        model = self._load_voucher(voucher_id)
        if not self.get_supplier(model.supplier_id).is_active:
            raise InvalidVoucherTransitionError(str(voucher_id), model.status, "place_order")
        return self._transition(voucher_id, "place_order", actor_id)

    def cancel(self, voucher_id: UUID, actor_id: UUID) -> Voucher:
        return self._transition(voucher_id, "cancel", actor_id)

    # =========================================================================
    # Receiving Workflow
    # =========================================================================

    def receive(self, voucher_id: UUID, actor_id: UUID) -> ReceivingResult:
        """
        Receive a pending or ordered voucher into stock, or retry a received one.

        Postconditions:
            - Every line that did not fail has a batch holding its base
              quantity and a matching purchase movement.
            - At most one payable exists for the voucher.
            - The voucher is ``received`` (set on the first run, even when
              some steps failed).

        Raises:
            UnknownVoucherError, UnknownSupplierError
            InvalidVoucherTransitionError: draft or cancelled voucher.
        """
        model = self._load_voucher(voucher_id)
        status = model.status
        is_retry = status == VoucherStatus.RECEIVED.value
        if not is_retry:
            require_transition(
                VOUCHER_WORKFLOW,
                status,
                "receive",
                lambda: InvalidVoucherTransitionError(str(voucher_id), status, "receive"),
            )
        supplier = self.get_supplier(model.supplier_id)
        received_at = as_utc(model.received_at) if model.received_at else self._clock.now()

        with LogContext.bind(
            workflow="voucher_receiving",
            reference_id=voucher_id,
            actor_id=actor_id,
            warehouse_id=model.warehouse_id,
        ):
            logger.info(
                "voucher_receiving_started",
                extra={
                    "voucher_number": model.voucher_number,
                    "line_count": len(model.lines),
                    "is_retry": is_retry,
                },
            )
            failures: list[StepFailure] = []
            outcomes = [
                self._receive_line(model, line, received_at, actor_id, failures)
                for line in list(model.lines)
            ]

            payable_id, payable_created = None, False
            if self._config.create_payable_on_receipt:
                booked = run_step(
                    self._session,
                    "create_payable",
                    lambda: self._payables.create_for_voucher(
                        model.to_dto(), supplier, received_at.date(), actor_id
                    ),
                    failures,
                )
                if booked is not None:
                    payable_id, payable_created = booked[0].id, booked[1]

            if not is_retry:
                try:
                    model.status = VoucherStatus.RECEIVED.value
                    model.received_at = received_at
                    model.updated_by_id = actor_id
                    self._session.commit()
                except Exception:
                    self._session.rollback()
                    raise

            result = ReceivingResult(
                voucher=model.to_dto(),
                lines=tuple(outcomes),
                failures=tuple(failures),
                payable_id=payable_id,
                payable_created=payable_created,
                is_retry=is_retry,
            )
            summary = {
                "applied": len(result.applied_lines),
                "failed": len(failures),
                "payable_created": payable_created,
                "is_retry": is_retry,
            }
            if failures:
                logger.warning(
                    "voucher_received_with_failures",
                    extra={**summary, "failures": [f.to_dict() for f in failures]},
                )
            else:
                logger.info("voucher_received", extra=summary)
        return result

    # =========================================================================
    # Internal
    # =========================================================================

    def _receive_line(
        self,
        voucher: VoucherModel,
        line: VoucherItemModel,
        received_at: datetime,
        actor_id: UUID,
        failures: list[StepFailure],
    ) -> LineOutcome:
        line_id, product_id = line.id, line.product_id
        if line.received_quantity:
            return LineOutcome(
                line_id, product_id, LineStatus.ALREADY_APPLIED,
                base_quantity=line.received_quantity, batch_id=line.batch_id,
            )

        batch_number = generate_batch_number(voucher.id, line_id)

        def apply() -> LineOutcome:
            product = self._catalog.get_product(product_id)
            existing = self._batch_store.get_batch_by_number(product_id, batch_number)
            if existing is not None:
                self._stamp(line, existing.id, actor_id)
                logger.info(
                    "voucher_line_batch_exists",
                    extra={"line_id": str(line_id), "batch_number": batch_number},
                )
                return LineOutcome(
                    line_id, product_id, LineStatus.ALREADY_APPLIED,
                    base_quantity=line.base_quantity, batch_id=existing.id,
                    batch_number=batch_number,
                )

            receipt = self._batch_store.receive_into_batch(
                product_id=product_id,
                warehouse_id=voucher.warehouse_id,
                batch_number=batch_number,
                quantity=line.base_quantity,
                unit_cost=unit_cost_per_base(line.unit_cost, line.conversion_to_base),
                actor_id=actor_id,
                received_at=received_at,
                expiry_date=self._expiry_for(line.expiry_date, product, received_at.date()),
                reference_id=str(voucher.id),
            )
            self._stamp(line, receipt.batch.id, actor_id)
            return LineOutcome(
                line_id, product_id, LineStatus.APPLIED,
                base_quantity=line.base_quantity, batch_id=receipt.batch.id,
                batch_number=batch_number,
            )

        outcome = run_step(
            self._session, "receive_line", apply, failures,
            line_id=line_id, product_id=product_id,
        )
        return outcome or LineOutcome(line_id, product_id, LineStatus.FAILED)

    def _stamp(self, line: VoucherItemModel, batch_id: UUID, actor_id: UUID) -> None:
        line.received_quantity = line.base_quantity
        line.batch_id = batch_id
        line.updated_by_id = actor_id
        self._session.flush()

    def _expiry_for(self, line_expiry: date | None, product: Product, received_on: date) -> date | None:
        if line_expiry is not None:
            return line_expiry
        if self._config.apply_shelf_life and product.shelf_life_days:
            return received_on + timedelta(days=product.shelf_life_days)
        return None

    def _build_items(self, lines: Sequence[VoucherLineInput], actor_id: UUID) -> list[VoucherItemModel]:
        if not lines:
            raise ValueError("A voucher needs at least one line")
        items = []
        for number, entry in enumerate(lines, start=1):
            product = self._catalog.get_product(entry.product_id)
            snapshot = resolve_line_quantity(product, entry.quantity, entry.uom)
            items.append(
                VoucherItemModel(
                    id=uuid4(),
                    line_number=number,
                    product_id=product.id,
                    quantity=snapshot.quantity,
                    uom=snapshot.uom,
                    conversion_to_base=snapshot.conversion_to_base,
                    base_quantity=snapshot.base_quantity,
                    unit_cost=entry.unit_cost,
                    expiry_date=entry.expiry_date,
                    received_quantity=0,
                    created_by_id=actor_id,
                )
            )
        return items

    def _transition(self, voucher_id: UUID, action: str, actor_id: UUID) -> Voucher:
        model = self._load_voucher(voucher_id)
        from_status = model.status
        to_status = require_transition(
            VOUCHER_WORKFLOW,
            from_status,
            action,
            lambda: InvalidVoucherTransitionError(str(voucher_id), from_status, action),
        )
        try:
            model.status = to_status
            model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "voucher_status_changed",
            extra={
                "voucher_id": str(voucher_id),
                "from_status": from_status,
                "to_status": to_status,
                "action": action,
            },
        )
        return model.to_dto()

    def _load_voucher(self, voucher_id: UUID) -> VoucherModel:
        model = self._session.get(VoucherModel, voucher_id)
        if model is None:
            raise UnknownVoucherError(str(voucher_id))
        return model


def unit_cost_per_base(unit_cost: Decimal, conversion_to_base: Decimal) -> Decimal:
    """Cost of one base unit when ``unit_cost`` is the price of one line UOM."""
    return (unit_cost / conversion_to_base).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def _total(items: Sequence[VoucherItemModel]) -> Decimal:
    return sum((i.quantity * i.unit_cost for i in items), Decimal("0"))
