"""
Purchasing Workflows.

State machine for purchase vouchers:

    draft --submit--> pending --place_order--> ordered
    pending|ordered --receive--> received
    pending|ordered --cancel--> cancelled

``received`` and ``cancelled`` are terminal.  Lines are editable only while
the voucher is draft or pending.
"""

from stock_kernel.domain.workflow import Guard, Transition, Workflow
from stock_kernel.logging_config import get_logger
from stock_modules.purchasing.models import VoucherStatus

logger = get_logger("modules.purchasing.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

HAS_LINES = Guard(
    name="has_lines",
    description="Voucher has at least one line",
)

SUPPLIER_ACTIVE = Guard(
    name="supplier_active",
    description="Supplier is active",
)


# -----------------------------------------------------------------------------
# Voucher Workflow
# -----------------------------------------------------------------------------

VOUCHER_WORKFLOW = Workflow(
    name="purchase_voucher",
    description="Purchase voucher lifecycle from draft to goods receipt",
    initial_state=VoucherStatus.DRAFT.value,
    states=tuple(s.value for s in VoucherStatus),
    transitions=(
        Transition("draft", "pending", action="submit", guard=HAS_LINES),
        Transition("pending", "ordered", action="place_order", guard=SUPPLIER_ACTIVE),
        Transition("pending", "received", action="receive", moves_stock=True),
        Transition("ordered", "received", action="receive", moves_stock=True),
        Transition("pending", "cancelled", action="cancel"),
        Transition("ordered", "cancelled", action="cancel"),
    ),
    terminal_states=(VoucherStatus.RECEIVED.value, VoucherStatus.CANCELLED.value),
)

EDITABLE_STATES: frozenset[str] = frozenset({VoucherStatus.DRAFT.value, VoucherStatus.PENDING.value})

logger.info(
    "purchasing_workflow_registered",
    extra={
        "workflow_name": VOUCHER_WORKFLOW.name,
        "state_count": len(VOUCHER_WORKFLOW.states),
        "transition_count": len(VOUCHER_WORKFLOW.transitions),
        "initial_state": VOUCHER_WORKFLOW.initial_state,
    },
)
