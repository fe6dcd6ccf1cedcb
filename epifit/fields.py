"""Pydantic field validators for unit-aware configurations.

Provides field validators that parse user-friendly unit inputs
("0.4 / day", "2 weeks", "763 person") and convert them to canonical
floats with metadata.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .units import UnitManager, UnitSpec


def quantity_field(
    dimension: str,
    default_unit: Optional[str] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> Callable:
    """Create a Pydantic field validator for quantity inputs.

    This validator accepts strings, numbers, or pint Quantities and
    converts them to canonical floats with metadata.

    Args:
        dimension: Expected dimension (e.g., "time", "1/time", "population")
        default_unit: Unit to apply to bare numbers
        min_value: Optional minimum value in canonical units
        max_value: Optional maximum value in canonical units

    Returns:
        Field validator function for Pydantic models

    Example:
        class MyConfig(BaseModel):
            recovery_rate: Tuple[float, UnitSpec]

            _validate_recovery = field_validator("recovery_rate", mode="before")(
                quantity_field("1/time", "1/day")
            )
    """
    def validator(value: Any, info: Optional[Any] = None) -> tuple[float, UnitSpec]:
        """Validate and convert quantity input.

        Args:
            value: Input value to validate
            info: Pydantic validation info (unused but required by signature)

        Returns:
            Tuple of (canonical_float, unit_spec)

        Raises:
            ValueError: If validation fails
        """
        manager = UnitManager.instance()

        # Already validated: a config field, or its model_dump() form with the
        # UnitSpec flattened to a dict
        if isinstance(value, (tuple, list)) and len(value) == 2 and isinstance(value[1], (UnitSpec, dict)):
            spec = value[1] if isinstance(value[1], UnitSpec) else UnitSpec(**value[1])
            if spec.dimension != dimension:
                raise ValueError(
                    f"Dimension mismatch: value carries '{spec.dimension}' units, "
                    f"expected '{dimension}'"
                )
            return float(value[0]), spec

        try:
            quantity = manager.ensure_quantity(value, default_unit)
        except Exception as e:
            raise ValueError(f"Cannot parse quantity: {e}")

        try:
            canonical_value, spec = manager.to_canonical(quantity, dimension)
        except ValueError as e:
            raise ValueError(f"Dimension mismatch: {e}")

        if min_value is not None and canonical_value < min_value:
            raise ValueError(
                f"Value {canonical_value} below minimum {min_value} "
                f"(in canonical {dimension} units)"
            )
        if max_value is not None and canonical_value > max_value:
            raise ValueError(
                f"Value {canonical_value} above maximum {max_value} "
                f"(in canonical {dimension} units)"
            )

        return canonical_value, spec

    return validator
