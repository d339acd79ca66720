"""
Payables Module Service (``stock_modules.payables.service``).

Responsibility
--------------
Creates the accounts payable entry for a received voucher, records supplier
payments, and moves unpaid entries past their due date to ``overdue``.

Architecture
------------
Layer: **Modules** -- session-bound service.

Transaction boundary
--------------------
``create_for_voucher`` flushes only: it is one step of the Receiving
Workflow, which commits it.  ``record_payment`` and ``refresh_overdue``
are standalone operations and commit on success, roll back on failure.

Failure Modes
-------------
- UnknownPayableError for an unknown id.
- OverpaymentError when a payment exceeds the outstanding balance.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import OverpaymentError, UnknownPayableError
from stock_kernel.logging_config import get_logger
from stock_modules.payables.helpers import due_date_for_terms, status_as_of
from stock_modules.payables.models import AccountsPayable, PayableStatus
from stock_modules.payables.orm import AccountsPayableModel

if TYPE_CHECKING:
    from stock_modules.purchasing.models import Supplier, Voucher

logger = get_logger("modules.payables.service")


class PayablesService:
    """
    Supplier liabilities arising from goods receipts.

    Usage:
        service = PayablesService(session, clock)
        payable, created = service.create_for_voucher(voucher, supplier, today, actor_id)
        service.record_payment(payable.id, Decimal("50.00"), actor_id)
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def create_for_voucher(
        self,
        voucher: Voucher,
        supplier: Supplier,
        received_on: date,
        actor_id: UUID,
    ) -> tuple[AccountsPayable, bool]:
        """
        Create the payable for ``voucher`` unless it already exists.

        Returns (payable, created).  Idempotent by voucher id, so a retried
        receipt never books the liability twice.
        """
        existing = self._find_for_voucher(voucher.id)
        if existing is not None:
            logger.info(
                "payable_already_exists",
                extra={"payable_id": str(existing.id), "voucher_id": str(voucher.id)},
            )
            return existing.to_dto(), False

        model = AccountsPayableModel(
            supplier_id=supplier.id,
            voucher_id=voucher.id,
            amount=voucher.total_amount,
            amount_paid=Decimal("0"),
            due_date=due_date_for_terms(supplier.payment_terms, received_on),
            status=PayableStatus.OUTSTANDING.value,
            created_by_id=actor_id,
        )
        self._session.add(model)
        self._session.flush()

        logger.info(
            "payable_created",
            extra={
                "payable_id": str(model.id),
                "voucher_id": str(voucher.id),
                "supplier_id": str(supplier.id),
                "amount": str(voucher.total_amount),
                "payment_terms": supplier.payment_terms.value,
                "due_date": model.due_date,
            },
        )
        return model.to_dto(), True

    def get(self, payable_id: UUID) -> AccountsPayable:
        return self._load(payable_id).to_dto()

    def get_for_voucher(self, voucher_id: UUID) -> AccountsPayable | None:
        model = self._find_for_voucher(voucher_id)
        return model.to_dto() if model is not None else None

    def list_unpaid(self, supplier_id: UUID | None = None) -> list[AccountsPayable]:
        stmt = select(AccountsPayableModel).where(
            AccountsPayableModel.status != PayableStatus.PAID.value,
        )
        if supplier_id is not None:
            stmt = stmt.where(AccountsPayableModel.supplier_id == supplier_id)
        stmt = stmt.order_by(AccountsPayableModel.due_date)
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def record_payment(self, payable_id: UUID, amount: Decimal, actor_id: UUID) -> AccountsPayable:
        """
        Apply a (possibly partial) payment.

        Raises:
            ValueError: amount is not positive.
            UnknownPayableError: no such payable.
            OverpaymentError: amount exceeds the outstanding balance.
        """
        if amount <= 0:
            raise ValueError(f"Payment amount must be positive, got {amount}")
        try:
            model = self._load(payable_id)
            outstanding = model.amount - model.amount_paid
            if amount > outstanding:
                raise OverpaymentError(str(payable_id), str(amount), str(outstanding))

            model.amount_paid = model.amount_paid + amount
            model.updated_by_id = actor_id
            if model.amount_paid == model.amount:
                model.status = PayableStatus.PAID.value
                model.paid_at = self._clock.now()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "payable_payment_recorded",
            extra={
                "payable_id": str(payable_id),
                "amount": str(amount),
                "amount_paid": str(model.amount_paid),
                "status": model.status,
            },
        )
        return model.to_dto()

    def refresh_overdue(self, actor_id: UUID, as_of: date | None = None) -> list[AccountsPayable]:
        """Mark outstanding payables due before ``as_of`` (default today) overdue."""
        as_of = as_of or self._clock.today()
        try:
            models = self._session.scalars(
                select(AccountsPayableModel).where(
                    AccountsPayableModel.status == PayableStatus.OUTSTANDING.value,
                    AccountsPayableModel.due_date < as_of,
                )
            ).all()
            for model in models:
                model.status = status_as_of(PayableStatus(model.status), model.due_date, as_of).value
                model.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        if models:
            logger.info(
                "payables_marked_overdue",
                extra={"count": len(models), "as_of": as_of},
            )
        return [m.to_dto() for m in models]

    def _find_for_voucher(self, voucher_id: UUID) -> AccountsPayableModel | None:
        return self._session.scalars(
            select(AccountsPayableModel).where(AccountsPayableModel.voucher_id == voucher_id)
        ).one_or_none()

    def _load(self, payable_id: UUID) -> AccountsPayableModel:
        model = self._session.get(AccountsPayableModel, payable_id)
        if model is None:
            raise UnknownPayableError(str(payable_id))
        return model
