"""
Sales Workflows.

State machine for sale orders.  A sale rung up at the till goes straight to
``completed``; a parked order waits in ``pending`` until it is completed or
cancelled.  Completed sales may be refunded.
"""

from stock_kernel.domain.workflow import Guard, Transition, Workflow
from stock_kernel.logging_config import get_logger
from stock_modules.sales.models import SaleStatus

logger = get_logger("modules.sales.workflows")


STOCK_AVAILABLE = Guard(
    name="stock_available",
    description="Every product's total base quantity is on hand",
)

SALE_ORDER_WORKFLOW = Workflow(
    name="sale_order",
    description="Point-of-sale order lifecycle",
    initial_state=SaleStatus.PENDING.value,
    states=tuple(s.value for s in SaleStatus),
    transitions=(
        Transition("pending", "completed", action="complete", guard=STOCK_AVAILABLE, moves_stock=True),
        Transition("pending", "cancelled", action="cancel"),
        Transition("completed", "refunded", action="refund", moves_stock=True),
    ),
    terminal_states=(SaleStatus.REFUNDED.value, SaleStatus.CANCELLED.value),
)

logger.info(
    "sales_workflow_registered",
    extra={
        "workflow_name": SALE_ORDER_WORKFLOW.name,
        "state_count": len(SALE_ORDER_WORKFLOW.states),
        "transition_count": len(SALE_ORDER_WORKFLOW.transitions),
        "initial_state": SALE_ORDER_WORKFLOW.initial_state,
    },
)
