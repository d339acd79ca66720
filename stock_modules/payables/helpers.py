"""
Payables helpers -- pure functions, no I/O.
"""

from datetime import date, timedelta

from stock_modules.payables.models import PayableStatus, PaymentTerms


def due_date_for_terms(terms: PaymentTerms | str, received_on: date) -> date:
    """
    Payment due date for goods received on ``received_on``.

    Net N terms are due N days later; COD is due the same day.

    Raises:
        ValueError: ``terms`` is not a known payment term.
    """
    return received_on + timedelta(days=PaymentTerms(terms).days)


def status_as_of(status: PayableStatus, due_date: date, as_of: date) -> PayableStatus:
    """Outstanding payables past their due date are overdue; others keep their status."""
    if status is PayableStatus.OUTSTANDING and due_date < as_of:
        return PayableStatus.OVERDUE
    return status
