"""
Payables Module (``stock_modules.payables``).

Accounts payable entries created when a voucher is received, partial and
full supplier payments, and overdue tracking by payment terms.
"""

from stock_modules.payables.helpers import due_date_for_terms
from stock_modules.payables.models import AccountsPayable, PayableStatus, PaymentTerms
from stock_modules.payables.service import PayablesService

__all__ = [
    "AccountsPayable",
    "PayableStatus",
    "PaymentTerms",
    "PayablesService",
    "due_date_for_terms",
]
