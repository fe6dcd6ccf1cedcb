"""Unit validation for epidemic model configurations.

Pint dry-runs mirror the likelihood and right-hand-side arithmetic on
quantities, so a rate given in the wrong dimension is caught before any
JAX tracing happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pint

from .units import UnitManager
from .hawkes.runtime import HawkesRuntime
from .compartmental.runtime import SIRRuntime, SEIRRuntime


def validate_hawkes_dimensions(
    runtime: HawkesRuntime,
    manager: Optional[UnitManager] = None,
) -> Dict[str, str]:
    """Check that the Hawkes log-likelihood is dimensionally consistent.

    Every term entering exp() or combined with log(λ) must be
    dimensionless: delta * (t - t_i), mu * max_T and alpha / delta.

    Args:
        runtime: Hawkes runtime to validate
        manager: UnitManager instance (uses singleton if None)

    Returns:
        Dict of dimensionality strings for each checked term

    Raises:
        ValueError: If any term carries a dimension
    """
    manager = manager or UnitManager.instance()
    mu = runtime.background_rate.to_quantity(manager)
    alpha = runtime.excitation.to_quantity(manager)
    delta = runtime.decay_rate.to_quantity(manager)
    horizon = manager.registry.Quantity(1.0, "day")

    terms = {
        "mu * max_T": mu * horizon,
        "alpha / delta": alpha / delta,
        "delta * dt": delta * horizon,
    }

    dimensions = {}
    for name, term in terms.items():
        try:
            term.to("dimensionless")
        except pint.DimensionalityError as e:
            raise ValueError(f"Hawkes term '{name}' is not dimensionless: {e}")
        dimensions[name] = str(term.dimensionality)

    dimensions["intensity"] = str((mu + alpha).dimensionality)
    return dimensions


def validate_compartmental_dimensions(
    runtime: SIRRuntime | SEIRRuntime,
    manager: Optional[UnitManager] = None,
) -> Dict[str, str]:
    """Check the SIR/SEIR right-hand side for dimensional consistency.

    beta * S * I / N and gamma * I must both be persons per time, and
    R0 = beta / gamma must be dimensionless.

    Raises:
        ValueError: If the flows or R0 have the wrong dimension
    """
    manager = manager or UnitManager.instance()
    beta = runtime.transmission_rate.to_quantity(manager)
    gamma = runtime.recovery_rate.to_quantity(manager)
    population = runtime.population.to_quantity(manager)
    persons = manager.registry.Quantity(1.0, "person")

    flows = {
        "infection": beta * persons * persons / population,
        "recovery": gamma * persons,
    }
    if isinstance(runtime, SEIRRuntime):
        flows["onset"] = runtime.incubation_rate.to_quantity(manager) * persons

    dimensions = {}
    target = manager.get_canonical_unit("population/time")
    for name, flow in flows.items():
        try:
            flow.to(target)
        except pint.DimensionalityError as e:
            raise ValueError(f"Compartment flow '{name}' is not persons/time: {e}")
        dimensions[name] = str(flow.dimensionality)

    r0 = beta / gamma
    try:
        r0.to("dimensionless")
    except pint.DimensionalityError as e:
        raise ValueError(f"R0 = beta/gamma is not dimensionless: {e}")
    dimensions["R0"] = str(r0.dimensionality)
    return dimensions


@dataclass
class ValidationReport:
    """Report from unit validation."""
    success: bool
    dimensions: Dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Format as readable report."""
        lines = ["=== Unit Validation Report ==="]
        lines.append(f"Status: {'PASS' if self.success else 'FAIL'}")

        if self.dimensions:
            lines.append("\nDimensions:")
            for key, dim in self.dimensions.items():
                lines.append(f"  {key}: {dim}")

        if self.warnings:
            lines.append("\nWarnings:")
            for w in self.warnings:
                lines.append(f"  ⚠️  {w}")

        if self.errors:
            lines.append("\nErrors:")
            for e in self.errors:
                lines.append(f"  ❌ {e}")

        return "\n".join(lines)


def validate_config_units(config: Any, verbose: bool = False) -> ValidationReport:
    """Validate units in a config object.

    Args:
        config: HawkesConfig, SIRConfig or SEIRConfig
        verbose: If True, print validation details

    Returns:
        ValidationReport with results
    """
    report = ValidationReport(success=True)

    try:
        runtime = config.to_runtime(check_units=False)
    except Exception as e:
        report.success = False
        report.errors.append(f"Failed to build runtime: {type(e).__name__}: {e}")
        if verbose:
            print(report)
        return report

    try:
        if isinstance(runtime, HawkesRuntime):
            report.dimensions = validate_hawkes_dimensions(runtime)
            ratio = float(runtime.excitation.value) / float(runtime.decay_rate.value)
            if ratio >= 1.0:
                report.warnings.append(
                    f"Branching ratio alpha/delta = {ratio:.3f} >= 1: the process is explosive"
                )
        elif isinstance(runtime, (SIRRuntime, SEIRRuntime)):
            report.dimensions = validate_compartmental_dimensions(runtime)
            if float(runtime.basic_reproduction_number()) <= 1.0:
                report.warnings.append("R0 <= 1: no outbreak will take off from the initial state")
        else:
            report.warnings.append(f"No unit checks defined for {type(runtime).__name__}")
    except ValueError as e:
        report.success = False
        report.errors.append(str(e))

    if verbose:
        print(report)

    return report
