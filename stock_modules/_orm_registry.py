"""
Module ORM Registry (``stock_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds its table definition before tables are created.
``create_all_tables()`` is the one entry point scripts and tests use to
get the complete schema.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``stock_modules``
packages and from ``stock_kernel.db`` (allowed: modules -> kernel).
MUST NOT be imported by ``stock_kernel`` or ``stock_services``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``stock_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    # Kernel tables first (products, inventory_batches, stock_movements)
    import stock_kernel.models  # noqa: F401
    # fmt: off
    import stock_modules.payables.orm  # noqa: F401
    import stock_modules.purchasing.orm  # noqa: F401
    import stock_modules.sales.orm  # noqa: F401
    # fmt: on


def create_all_tables(install_listeners: bool = True) -> None:
    """Create kernel + module tables, then optionally register the
    movement immutability listeners.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    Postconditions:
        All kernel and module tables exist.
    """
    from stock_kernel.db.engine import create_tables
    from stock_kernel.db.immutability import register_immutability_listeners

    import_all_orm_models()
    create_tables()
    if install_listeners:
        register_immutability_listeners()
