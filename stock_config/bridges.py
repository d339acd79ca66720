"""
Config -> Kernel Bridges.

Functions that turn a ``StockLedgerConfig`` into kernel calls.  They live
here because the kernel must never import ``stock_config``.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import init_engine_from_config

    config = get_active_config()
    engine = init_engine_from_config(config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from stock_config.schema import StockLedgerConfig
from stock_kernel.db.engine import init_engine_from_url


def init_engine_from_config(config: StockLedgerConfig) -> Engine:
    """Initialize the kernel engine with the configured database settings."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        statement_timeout_ms=db.statement_timeout_ms,
    )
