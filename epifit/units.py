"""Unit management system for epifit using pint and Penzai.

This module provides the foundation for unit-aware epidemic models with:
- UnitManager: Singleton registry management and unit conversions
- UnitSpec: Metadata for units that survives JAX transformations
- Conversion utilities between pint quantities and canonical floats

Epidemic data is recorded in days, so the canonical time unit is the day
and the canonical rate unit is 1/day.
"""

from __future__ import annotations

import pint
from dataclasses import dataclass
from typing import Union, Optional, ClassVar

# Type alias for inputs that can be converted to quantities
QuantityInput = Union[str, float, int, pint.Quantity]


@dataclass(frozen=True)
class UnitSpec:
    """Immutable metadata for units that can be attached to JAX arrays.

    Attributes:
        dimension: Dimension name (e.g., "time", "1/time", "population")
        symbol: Unit symbol string (e.g., "day", "1 / week", "person")
        to_canonical: Factor to convert from this unit to canonical
    """
    dimension: str
    symbol: str
    to_canonical: float = 1.0

    def __hash__(self):
        return hash((self.dimension, self.symbol, self.to_canonical))


class UnitManager:
    """Manages unit registry and conversions for epidemic models.

    Provides:
    - Singleton pint.UnitRegistry access
    - Canonical unit definitions per dimension
    - Conversion utilities to/from canonical floats
    """

    _instance: ClassVar[Optional[UnitManager]] = None

    def __init__(self, registry: Optional[pint.UnitRegistry] = None):
        """Initialize with optional custom registry.

        Args:
            registry: Custom pint registry. If None, creates default.
        """
        self.registry = registry or pint.UnitRegistry()

        # Aliases must exist before canonical units reference them
        self._setup_aliases()

        self.canonical_units = {
            "time": self.registry.day,
            "1/time": self.registry.day ** -1,
            "frequency": self.registry.day ** -1,
            "population": self.registry.person,
            "dimensionless": self.registry.dimensionless,
            "population/time": self.registry.person / self.registry.day,
        }

    @classmethod
    def instance(cls) -> UnitManager:
        """Get or create the singleton instance.

        Returns:
            The global UnitManager instance
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _setup_aliases(self) -> None:
        """Set up epidemiological unit aliases."""
        # Head counts get their own base dimension so that a population
        # cannot be confused with a dimensionless fraction.
        try:
            _ = self.registry.person
        except (AttributeError, pint.UndefinedUnitError):
            self.registry.define('person = [population] = _ = people')

        if not hasattr(self.registry, 'week'):
            self.registry.define('week = 7 * day')

        try:
            if not hasattr(self.registry, 'thousand'):
                self.registry.define('thousand = 1e3')
            if not hasattr(self.registry, 'million'):
                self.registry.define('million = 1e6')
        except (pint.DefinitionSyntaxError, pint.RedefinitionError):
            # May already be defined
            pass

    def ensure_quantity(
        self,
        value: QuantityInput,
        default_unit: Optional[str] = None
    ) -> pint.Quantity:
        """Convert input to a pint Quantity.

        Args:
            value: String, number, or Quantity to convert
            default_unit: Unit to use if value is a bare number

        Returns:
            pint.Quantity object

        Raises:
            ValueError: If string cannot be parsed as quantity
        """
        if isinstance(value, pint.Quantity):
            return value
        elif isinstance(value, str):
            # A bare number string takes the default unit, like a bare number
            try:
                return self.registry.Quantity(float(value), default_unit or 'dimensionless')
            except ValueError:
                pass
            try:
                q = self.registry(value)
            except Exception as e:
                raise ValueError(f"Cannot parse '{value}' as quantity: {e}")
            if not isinstance(q, pint.Quantity):
                q = self.registry.Quantity(q, default_unit or 'dimensionless')
            return q
        elif isinstance(value, bool):
            raise ValueError(f"Cannot interpret boolean {value!r} as a quantity")
        else:
            return self.registry.Quantity(float(value), default_unit or 'dimensionless')

    def to_canonical(
        self,
        quantity: pint.Quantity,
        dimension: str
    ) -> tuple[float, UnitSpec]:
        """Convert quantity to canonical units for dimension.

        Args:
            quantity: pint Quantity to convert
            dimension: Target dimension name

        Returns:
            Tuple of (canonical_value, unit_spec)

        Raises:
            ValueError: If quantity dimension doesn't match target
        """
        if dimension not in self.canonical_units:
            return (
                float(quantity.magnitude),
                UnitSpec(dimension=dimension, symbol=str(quantity.units), to_canonical=1.0)
            )

        canonical_unit = self.canonical_units[dimension]

        try:
            canonical_quantity = quantity.to(canonical_unit)
        except pint.DimensionalityError as e:
            raise ValueError(
                f"Cannot convert {quantity} to dimension '{dimension}': {e}"
            )

        # Factor from the units alone, so a zero magnitude still converts
        one_in_canonical = self.registry.Quantity(1.0, quantity.units).to(canonical_unit)

        return (
            float(canonical_quantity.magnitude),
            UnitSpec(
                dimension=dimension,
                symbol=str(quantity.units),
                to_canonical=float(one_in_canonical.magnitude)
            )
        )

    def from_canonical(
        self,
        value: float,
        spec: UnitSpec
    ) -> pint.Quantity:
        """Reconstruct pint Quantity from canonical value and spec.

        Args:
            value: Canonical float value
            spec: UnitSpec with dimension and symbol info

        Returns:
            pint.Quantity in original units
        """
        # original * to_canonical = canonical
        original_value = value / spec.to_canonical if spec.to_canonical != 0 else value
        return self.registry.Quantity(original_value, spec.symbol)

    def canonical_spec(self, dimension: str) -> UnitSpec:
        """UnitSpec for a value already expressed in canonical units.

        Args:
            dimension: Dimension name

        Returns:
            UnitSpec whose symbol is the canonical unit
        """
        unit = self.get_canonical_unit(dimension)
        return UnitSpec(dimension=dimension, symbol=str(unit), to_canonical=1.0)

    def get_canonical_unit(self, dimension: str) -> pint.Unit:
        """Get the canonical unit for a dimension.

        Args:
            dimension: Dimension name

        Returns:
            Canonical pint.Unit for dimension
        """
        if dimension not in self.canonical_units:
            return self.registry.dimensionless
        return self.canonical_units[dimension]
