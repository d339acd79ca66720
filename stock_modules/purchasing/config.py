"""
Purchasing Configuration Schema.

Defines the structure and sensible defaults for purchasing settings.
"""

from dataclasses import dataclass
from typing import Self

from stock_kernel.logging_config import get_logger
from stock_modules.purchasing.models import PaymentTerms

logger = get_logger("modules.purchasing.config")


VALID_PAYMENT_TERMS = {t.value for t in PaymentTerms}


@dataclass
class PurchasingConfig:
    """
    Configuration schema for the purchasing module.

        config = PurchasingConfig(voucher_number_prefix="PO")
    """

    voucher_number_prefix: str = "VCH"
    default_payment_terms: str = PaymentTerms.NET_30.value

    # Expiry for lines that don't state one: received date + shelf life
    apply_shelf_life: bool = True

    # Create the accounts payable entry as part of receiving
    create_payable_on_receipt: bool = True

    def __post_init__(self):
        if not self.voucher_number_prefix or not self.voucher_number_prefix.isalnum():
            raise ValueError(
                f"voucher_number_prefix must be alphanumeric, got '{self.voucher_number_prefix}'"
            )
        if self.default_payment_terms not in VALID_PAYMENT_TERMS:
            raise ValueError(
                f"default_payment_terms must be one of {sorted(VALID_PAYMENT_TERMS)}, "
                f"got '{self.default_payment_terms}'"
            )

        logger.info(
            "purchasing_config_initialized",
            extra={
                "voucher_number_prefix": self.voucher_number_prefix,
                "default_payment_terms": self.default_payment_terms,
                "apply_shelf_life": self.apply_shelf_life,
                "create_payable_on_receipt": self.create_payable_on_receipt,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("purchasing_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g. a YAML section)."""
        logger.info(
            "purchasing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
