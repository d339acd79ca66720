"""
stock_engines.uom -- Unit-of-measure conversion engine.

Responsibility:
    Convert quantities between a product's declared units and its base unit,
    and maintain UOM lists (add / remove / update) without breaking their
    invariants.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Imports kernel domain values
    and exceptions only.

Invariants enforced:
    - Single source of truth for rates: ``between`` always goes through the
      base unit (``from_base(to_base(q))``), never a direct cross-rate.
    - Unknown UOM names fail with UnknownUOMError; there is no silent 1:1
      fallback.
    - ``from_base`` never divides by a non-positive rate
      (InvalidConversionRateError).
    - The base entry cannot be removed and its rate cannot leave 1.
    - Mutations return new tuples; input lists are never modified.

Non-responsibility:
    Removing or re-rating a UOM that historical voucher/sale lines used is
    allowed here.  Those lines carry their own ``uom`` and
    ``conversion_to_base`` snapshot, so history stays interpretable; whether
    to warn the operator about such a change is the caller's decision.  This
    engine does not look at history.

Failure modes:
    - UnknownUOMError, InvalidConversionRateError, DuplicateUOMError,
      BaseUOMViolationError, FractionalBaseQuantityError.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from stock_kernel.domain.products import (
    ONE,
    Product,
    UnitOfMeasure,
    UOMList,
    to_decimal,
)
from stock_kernel.exceptions import (
    BaseUOMViolationError,
    DuplicateUOMError,
    FractionalBaseQuantityError,
    InvalidConversionRateError,
    InvalidUOMListError,
    UnknownUOMError,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.uom")


# =============================================================================
# Lookup
# =============================================================================


def find_uom(uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> UnitOfMeasure:
    """Return the entry named ``uom_name`` or raise UnknownUOMError."""
    for uom in uom_list:
        if uom.name == uom_name:
            return uom
    raise UnknownUOMError(uom_name, [u.name for u in uom_list])


def get_conversion_rate(uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> Decimal:
    return find_uom(uom_name, uom_list).conversion_to_base


def base_uom(uom_list: Sequence[UnitOfMeasure]) -> UnitOfMeasure:
    """Return the base entry of a list."""
    for uom in uom_list:
        if uom.is_base:
            return uom
    raise InvalidUOMListError("no base UOM found in UOM list")


def is_valid_uom(uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> bool:
    return any(u.name == uom_name for u in uom_list)


# =============================================================================
# Conversion
# =============================================================================


def to_base(quantity: Any, uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> Decimal:
    """
    Convert ``quantity`` expressed in ``uom_name`` to base units.

    Preconditions: quantity is int, str or Decimal.
    Postconditions: returns ``quantity * conversion_to_base`` as Decimal.

    Raises:
        UnknownUOMError: ``uom_name`` is not in ``uom_list``.
    """
    uom = find_uom(uom_name, uom_list)
    return to_decimal(quantity) * uom.conversion_to_base


def from_base(base_quantity: Any, uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> Decimal:
    """
    Convert a base-unit quantity into ``uom_name``.

    Raises:
        UnknownUOMError: ``uom_name`` is not in ``uom_list``.
        InvalidConversionRateError: the entry's rate is not strictly
            positive.  Validated lists never contain one; this guards against
            lists assembled outside the domain constructors.
    """
    uom = find_uom(uom_name, uom_list)
    rate = uom.conversion_to_base
    if rate <= 0:
        logger.error(
            "uom_invalid_conversion_rate",
            extra={"uom": uom_name, "conversion_to_base": str(rate)},
        )
        raise InvalidConversionRateError(uom_name, rate)
    return to_decimal(base_quantity) / rate


def between(
    quantity: Any,
    from_uom: str,
    to_uom: str,
    uom_list: Sequence[UnitOfMeasure],
) -> Decimal:
    """Convert between two declared units, always via the base unit."""
    return from_base(to_base(quantity, from_uom, uom_list), to_uom, uom_list)


def total_base_quantity(
    items: Iterable[tuple[Any, str]],
    uom_list: Sequence[UnitOfMeasure],
) -> Decimal:
    """Sum ``(quantity, uom_name)`` pairs in base units."""
    return sum((to_base(qty, uom, uom_list) for qty, uom in items), Decimal("0"))


def format_uom_display(uom_name: str, uom_list: Sequence[UnitOfMeasure]) -> str:
    """
    Label a unit with its size, e.g. ``"sack (50 kilo)"``.

    The base unit and names not in the list are returned unchanged.
    """
    for uom in uom_list:
        if uom.name == uom_name:
            if uom.is_base:
                return uom_name
            rate = uom.conversion_to_base.normalize()
            return f"{uom_name} ({rate:f} {base_uom(uom_list).name})"
    return uom_name


# =============================================================================
# Line snapshots
# =============================================================================


@dataclass(frozen=True, slots=True)
class LineQuantity:
    """
    Quantity of one order line, in the unit the operator used and in base units.

    Persisted on every voucher and sale line so the record stays
    interpretable after the product's UOM list changes.
    """

    quantity: Decimal
    uom: str
    conversion_to_base: Decimal
    base_quantity: int


def resolve_line_quantity(product: Product, quantity: Any, uom_name: str) -> LineQuantity:
    """
    Snapshot the conversion of ``quantity uom_name`` for ``product``.

    Raises:
        ValueError: quantity is not strictly positive.
        UnknownUOMError: the unit is not declared for the product.
        FractionalBaseQuantityError: the base quantity is not a whole number.
    """
    qty = to_decimal(quantity)
    if qty <= 0:
        raise ValueError(f"Line quantity must be positive, got {qty}")
    rate = get_conversion_rate(uom_name, product.uom_list)
    base = qty * rate
    if base != base.to_integral_value():
        raise FractionalBaseQuantityError(qty, uom_name, base)
    return LineQuantity(
        quantity=qty,
        uom=uom_name,
        conversion_to_base=rate,
        base_quantity=int(base),
    )


# =============================================================================
# List maintenance
# =============================================================================


def create_default_uom_list(base_uom_name: str) -> UOMList:
    """A list holding only the base unit."""
    return (UnitOfMeasure.base(base_uom_name),)


def add_uom(
    uom_list: Sequence[UnitOfMeasure],
    name: str,
    conversion_to_base: Any,
) -> UOMList:
    """
    Append a non-base unit.

    Raises:
        DuplicateUOMError: ``name`` already exists.
        InvalidConversionRateError: the rate is not strictly positive.
    """
    if is_valid_uom(name, uom_list):
        raise DuplicateUOMError(name)
    new_uom = UnitOfMeasure(name=name, conversion_to_base=to_decimal(conversion_to_base))
    return (*uom_list, new_uom)


def remove_uom(uom_list: Sequence[UnitOfMeasure], name: str) -> UOMList:
    """
    Remove a non-base unit.

    Historical lines that used ``name`` are unaffected (they keep their own
    snapshot); the caller decides whether to warn about them.

    Raises:
        UnknownUOMError: ``name`` is not in the list.
        BaseUOMViolationError: ``name`` is the base unit.
    """
    target = find_uom(name, uom_list)
    if target.is_base:
        raise BaseUOMViolationError(name, "the base UOM cannot be removed")
    return tuple(u for u in uom_list if u.name != name)


def update_uom(
    uom_list: Sequence[UnitOfMeasure],
    name: str,
    conversion_to_base: Any,
) -> UOMList:
    """
    Change the rate of an existing unit.

    Raises:
        UnknownUOMError: ``name`` is not in the list.
        BaseUOMViolationError: the base unit's rate would move away from 1.
        InvalidConversionRateError: the new rate is not strictly positive.
    """
    target = find_uom(name, uom_list)
    rate = to_decimal(conversion_to_base)
    if target.is_base and rate != ONE:
        raise BaseUOMViolationError(name, "base UOM must have conversion rate of 1")
    replacement = UnitOfMeasure(name=name, conversion_to_base=rate, is_base=target.is_base)
    return tuple(replacement if u.name == name else u for u in uom_list)
