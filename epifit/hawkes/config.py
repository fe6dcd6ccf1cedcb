"""Hawkes process configuration with unit-aware Pydantic models.

This module provides configuration for self-exciting Hawkes processes,
which model clustered infections where each case raises the short-term
rate of further cases.
"""

from __future__ import annotations
from typing import Tuple, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
import pint

from ..units import UnitManager, UnitSpec
from ..fields import quantity_field
from ..runtime import QuantityNode
from .runtime import HawkesRuntime


class HawkesConfig(BaseModel):
    """Configuration for a Hawkes process with exponential kernel.

    The conditional intensity is:
        λ(t) = mu + Σ alpha * exp(-delta * (t - tᵢ))

    Where:
        - mu is the background rate (background_rate)
        - alpha is the jump in intensity caused by one event (excitation)
        - delta is the rate at which that jump decays (decay_rate)
        - tᵢ are past event times

    Example:
        >>> config = HawkesConfig(
        ...     background_rate="0.5 / day",
        ...     excitation="0.4 / day",
        ...     decay_rate="0.5 / day",
        ... )
    """

    background_rate: Tuple[float, UnitSpec] = Field(
        description="Background (immigration) rate mu, events/time"
    )

    excitation: Tuple[float, UnitSpec] = Field(
        description="Intensity jump alpha caused by each event, events/time"
    )

    decay_rate: Tuple[float, UnitSpec] = Field(
        description="Exponential decay rate delta of the excitation, 1/time"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    _validate_background = field_validator("background_rate", mode="before")(
        quantity_field("1/time", "1/day")
    )

    _validate_excitation = field_validator("excitation", mode="before")(
        quantity_field("1/time", "1/day")
    )

    _validate_decay = field_validator("decay_rate", mode="before")(
        quantity_field("1/time", "1/day")
    )

    @field_validator("excitation", mode="after")
    def _validate_non_negative(cls, value: Tuple[float, UnitSpec]) -> Tuple[float, UnitSpec]:
        """Excitation must not reduce the intensity."""
        if value[0] < 0:
            raise ValueError(f"Excitation must be >= 0, got {value[0]}")
        return value

    @field_validator("decay_rate", mode="after")
    def _validate_positive(cls, value: Tuple[float, UnitSpec]) -> Tuple[float, UnitSpec]:
        """Ensure the decay rate is strictly positive."""
        if value[0] <= 0:
            raise ValueError(f"Decay rate must be positive, got {value[0]}")
        return value

    @property
    def branching_ratio(self) -> float:
        """alpha / delta, the mean number of offspring per event."""
        return self.excitation[0] / self.decay_rate[0]

    def validate_units(self, verbose: bool = False) -> "ValidationReport":
        """Validate unit consistency of the likelihood terms using pint.

        Args:
            verbose: If True, print validation details

        Returns:
            ValidationReport with results
        """
        from ..validation import validate_config_units
        return validate_config_units(self, verbose=verbose)

    def to_runtime(self, check_units: bool = False) -> HawkesRuntime:
        """Convert to runtime structure for JAX.

        Args:
            check_units: If True, validate units before building the runtime

        Returns:
            HawkesRuntime structure with QuantityNodes

        Raises:
            ValueError: If check_units=True and validation fails
        """
        if check_units:
            report = self.validate_units()
            if not report.success:
                raise ValueError(f"Unit validation failed:\n{report}")

        def to_node(value_spec: Tuple[float, UnitSpec]) -> QuantityNode:
            return QuantityNode.from_float(value_spec[0], value_spec[1])

        return HawkesRuntime(
            background_rate=to_node(self.background_rate),
            excitation=to_node(self.excitation),
            decay_rate=to_node(self.decay_rate),
        )

    @staticmethod
    def from_runtime(runtime: HawkesRuntime, manager: Optional[UnitManager] = None) -> HawkesConfigOutput:
        """Create output config from runtime structure.

        Args:
            runtime: HawkesRuntime to convert
            manager: Optional UnitManager instance

        Returns:
            HawkesConfigOutput with pint quantities
        """
        manager = manager or UnitManager.instance()
        return HawkesConfigOutput(
            background_rate=runtime.background_rate.to_quantity(manager),
            excitation=runtime.excitation.to_quantity(manager),
            decay_rate=runtime.decay_rate.to_quantity(manager),
        )

    def summary(self, format: str = "markdown") -> str:
        """Generate summary of Hawkes configuration.

        Args:
            format: Output format ('markdown', 'text', or 'dict')

        Returns:
            Formatted summary string
        """
        if format == "dict":
            return str(self.model_dump())

        manager = UnitManager.instance()
        lines = []

        if format == "markdown":
            lines.append("# Hawkes Process Configuration\n")
            lines.append("| Parameter | Value | Units |")
            lines.append("|-----------|--------|-------|")

            def format_row(name: str, value: Tuple[float, UnitSpec]) -> str:
                qty = manager.from_canonical(value[0], value[1])
                return f"| {name} | {qty.magnitude:.4g} | {qty.units} |"

        else:  # text format
            lines.append("Hawkes Process Configuration")
            lines.append("-" * 40)

            def format_row(name: str, value: Tuple[float, UnitSpec]) -> str:
                qty = manager.from_canonical(value[0], value[1])
                return f"  {name}: {qty.magnitude:.4g} {qty.units}"

        lines.append(format_row("Background rate (mu)", self.background_rate))
        lines.append(format_row("Excitation (alpha)", self.excitation))
        lines.append(format_row("Decay rate (delta)", self.decay_rate))

        lines.append("")
        ratio = self.branching_ratio
        regime = "SUBCRITICAL" if ratio < 1 else "SUPERCRITICAL"
        lines.append(f"Branching ratio: {ratio:.3f} ({regime})")

        return "\n".join(lines)


class HawkesConfigOutput(BaseModel):
    """Output format for Hawkes configuration with pint quantities."""

    background_rate: pint.Quantity
    excitation: pint.Quantity
    decay_rate: pint.Quantity

    model_config = ConfigDict(arbitrary_types_allowed=True)
