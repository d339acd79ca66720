"""
Inventory Configuration Schema.

Defines the structure and sensible defaults for inventory settings.
Actual values are loaded from the ``inventory`` section of the ledger
configuration at runtime.
"""

from dataclasses import dataclass
from typing import Self

from stock_kernel.logging_config import get_logger

logger = get_logger("modules.inventory.config")


@dataclass
class InventoryConfig:
    """
    Configuration schema for inventory operations.

        config = InventoryConfig(expiring_within_days=14)
    """

    # Horizon for "expiring soon" counts in batch summaries
    expiring_within_days: int = 30

    # Low-stock threshold for products without their own min_stock_level
    default_low_stock_minimum: int = 10

    # Reason written on movements created by the expiry sweep
    expired_reason: str = "past expiry date"

    def __post_init__(self):
        if self.expiring_within_days <= 0:
            raise ValueError("expiring_within_days must be positive")
        if self.default_low_stock_minimum < 0:
            raise ValueError("default_low_stock_minimum cannot be negative")
        if not self.expired_reason.strip():
            raise ValueError("expired_reason must not be blank")

        logger.info(
            "inventory_config_initialized",
            extra={
                "expiring_within_days": self.expiring_within_days,
                "default_low_stock_minimum": self.default_low_stock_minimum,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the default thresholds."""
        logger.info("inventory_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., a YAML section)."""
        logger.info(
            "inventory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
