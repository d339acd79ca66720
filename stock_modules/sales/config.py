"""
Sales Configuration Schema.
"""

from dataclasses import dataclass
from typing import Self

from stock_kernel.logging_config import get_logger

logger = get_logger("modules.sales.config")


@dataclass
class SalesConfig:
    """
    Configuration schema for the sales module.

        config = SalesConfig(order_number_prefix="POS")
    """

    order_number_prefix: str = "SO"

    # Reason recorded on refund restock movements ahead of the operator's text
    refund_reason_prefix: str = "refund"

    def __post_init__(self):
        if not self.order_number_prefix or not self.order_number_prefix.isalnum():
            raise ValueError(
                f"order_number_prefix must be alphanumeric, got '{self.order_number_prefix}'"
            )
        if not self.refund_reason_prefix.strip():
            raise ValueError("refund_reason_prefix must not be blank")

        logger.info(
            "sales_config_initialized",
            extra={"order_number_prefix": self.order_number_prefix},
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("sales_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "sales_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
