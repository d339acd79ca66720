"""
Shared helpers for module workflows.

Used by stock_modules/*/service.py to run side-effecting steps under the
partial-failure policy and to check document state transitions.

Architecture: Modules layer. Imports only from stock_kernel.

Partial-failure policy:
    A workflow commits its primary record first, then runs each side effect
    (a voucher line, a product decrement, a payable) in its own transaction
    through ``run_step``.  A failed step is rolled back, logged with the
    exception and collected as a ``StepFailure``; steps that already
    committed stay applied.  Only domain errors (``StockLedgerError``) and
    database errors (``SQLAlchemyError``) are collected; anything else is a
    programming error and propagates.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_kernel.domain.workflow import Workflow
from stock_kernel.exceptions import PartialWorkflowFailureError, StockLedgerError
from stock_kernel.logging_config import get_logger

logger = get_logger("modules.workflow")

T = TypeVar("T")

STEP_ERRORS: tuple[type[Exception], ...] = (StockLedgerError, SQLAlchemyError)


@dataclass(frozen=True)
class StepFailure:
    """One failed side-effecting step of a workflow."""
    step: str
    error_code: str
    message: str
    line_id: UUID | None = None
    product_id: UUID | None = None

    @classmethod
    def from_exception(
        cls,
        step: str,
        exc: Exception,
        line_id: UUID | None = None,
        product_id: UUID | None = None,
    ) -> StepFailure:
        return cls(
            step=step,
            error_code=getattr(exc, "code", type(exc).__name__),
            message=str(exc),
            line_id=line_id,
            product_id=product_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "error_code": self.error_code,
            "error_message": self.message,
            "line_id": str(self.line_id) if self.line_id else None,
            "product_id": str(self.product_id) if self.product_id else None,
        }


@dataclass(frozen=True)
class PartialWorkflowFailure:
    """
    A workflow whose primary record committed but some side effects did not.

    Applied steps are NOT rolled back; the listed failures need a retry or
    manual reconciliation.
    """
    workflow: str
    reference_id: str
    failures: tuple[StepFailure, ...]

    def to_error(self) -> PartialWorkflowFailureError:
        return PartialWorkflowFailureError(self.workflow, self.reference_id, self.failures)


def run_step(
    session: Session,
    step: str,
    fn: Callable[[], T],
    failures: list[StepFailure],
    *,
    line_id: UUID | None = None,
    product_id: UUID | None = None,
) -> T | None:
    """
    Run ``fn`` and commit, or roll back and record a StepFailure.

    Returns ``fn``'s result on success and None on a collected failure.
    """
    try:
        result = fn()
        session.commit()
        return result
    except STEP_ERRORS as exc:
        session.rollback()
        failure = StepFailure.from_exception(step, exc, line_id=line_id, product_id=product_id)
        logger.error("workflow_step_failed", exc_info=True, extra=failure.to_dict())
        failures.append(failure)
        return None


def require_transition(
    workflow: Workflow,
    current_state: str,
    action: str,
    error_factory: Callable[[], StockLedgerError],
) -> str:
    """
    Return the target state of ``action`` from ``current_state``.

    Raises:
        The error built by ``error_factory`` when the workflow has no such
        transition.
    """
    transition = workflow.find_transition(current_state, action)
    if transition is None:
        logger.warning(
            "workflow_transition_rejected",
            extra={
                "workflow_name": workflow.name,
                "from_state": current_state,
                "action": action,
            },
        )
        raise error_factory()
    return transition.to_state
