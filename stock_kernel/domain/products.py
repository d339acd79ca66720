"""
Product and unit-of-measure value objects.

Responsibility:
    Validated, immutable representations of a product and its declared units.
    Rows read from the store are parsed into these types once, at the ORM
    boundary (``ProductModel.to_dto``); the conversion engine and workflows
    only ever see already-validated values.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Exactly one UOM has ``is_base=True`` and its rate is exactly 1.
    - The base UOM's name equals ``Product.base_uom``.
    - UOM names are unique within a list.
    - Every conversion rate is strictly positive.

Failure modes:
    - InvalidUOMListError on any invariant violation.
    - InvalidConversionRateError for a non-positive rate on a single entry.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from stock_kernel.exceptions import InvalidConversionRateError, InvalidUOMListError

ONE = Decimal("1")


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/Decimal to Decimal.  Floats go through ``str`` to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a decimal quantity: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class UnitOfMeasure:
    """One declared unit: ``1 <name> == conversion_to_base`` base units."""

    name: str
    conversion_to_base: Decimal
    is_base: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidUOMListError("UOM name must not be blank")
        rate = to_decimal(self.conversion_to_base)
        object.__setattr__(self, "conversion_to_base", rate)
        if not rate.is_finite() or rate <= 0:
            raise InvalidConversionRateError(self.name, rate)

    @classmethod
    def base(cls, name: str) -> "UnitOfMeasure":
        return cls(name=name, conversion_to_base=ONE, is_base=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UnitOfMeasure":
        """Parse the stored ``{name, conversion_to_base, is_base}`` shape."""
        try:
            return cls(
                name=str(data["name"]),
                conversion_to_base=to_decimal(data["conversion_to_base"]),
                is_base=bool(data.get("is_base", False)),
            )
        except KeyError as exc:
            raise InvalidUOMListError(f"UOM entry missing field {exc.args[0]!r}") from exc
        except ValueError as exc:
            raise InvalidUOMListError(str(exc)) from exc

    def to_dict(self) -> dict[str, Any]:
        # Rates are stored as strings so JSON never round-trips them through float.
        return {
            "name": self.name,
            "conversion_to_base": str(self.conversion_to_base),
            "is_base": self.is_base,
        }


UOMList = tuple[UnitOfMeasure, ...]


def validate_uom_list(
    uom_list: Sequence[UnitOfMeasure],
    base_uom: str | None = None,
    product_id: str | None = None,
) -> UOMList:
    """
    Check the structural invariants of a UOM list and return it as a tuple.

    Preconditions: each entry is an already-constructed UnitOfMeasure.
    Postconditions: the returned tuple preserves the input order.

    Raises:
        InvalidUOMListError: empty list, duplicate names, zero or several
            base entries, base rate other than 1, or base name mismatch.
    """
    entries = tuple(uom_list)
    if not entries:
        raise InvalidUOMListError("UOM list is empty", product_id)

    seen: set[str] = set()
    for uom in entries:
        if uom.name in seen:
            raise InvalidUOMListError(f'duplicate UOM name "{uom.name}"', product_id)
        seen.add(uom.name)

    bases = [u for u in entries if u.is_base]
    if len(bases) != 1:
        raise InvalidUOMListError(
            f"expected exactly one base UOM, found {len(bases)}", product_id
        )
    base = bases[0]
    if base.conversion_to_base != ONE:
        raise InvalidUOMListError(
            f'base UOM "{base.name}" must have conversion rate 1, '
            f"got {base.conversion_to_base}",
            product_id,
        )
    if base_uom is not None and base.name != base_uom:
        raise InvalidUOMListError(
            f'base UOM entry "{base.name}" does not match product base unit "{base_uom}"',
            product_id,
        )
    return entries


def parse_uom_list(raw: Iterable[Mapping[str, Any]]) -> UOMList:
    """Parse the stored JSON array shape without cross-entry validation."""
    return tuple(UnitOfMeasure.from_dict(item) for item in raw)


@dataclass(frozen=True)
class Product:
    """
    A sellable product with its declared units.

    Contract: Immutable; construction validates the UOM list against
    ``base_uom``.  All stock quantities for the product are integers in
    ``base_uom``.
    """

    id: UUID
    name: str
    base_uom: str
    uom_list: UOMList
    min_stock_level: int = 0
    shelf_life_days: int | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "uom_list",
            validate_uom_list(self.uom_list, self.base_uom, str(self.id)),
        )
        if self.min_stock_level < 0:
            raise ValueError("min_stock_level cannot be negative")
        if self.shelf_life_days is not None and self.shelf_life_days <= 0:
            raise ValueError("shelf_life_days must be positive when set")

    @property
    def uom_names(self) -> tuple[str, ...]:
        return tuple(u.name for u in self.uom_list)
