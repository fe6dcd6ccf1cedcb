"""Compartmental model configuration with unit-aware Pydantic models.

Rates accept any 1/time quantity ("0.5 / day", "3.5 / week") and counts
accept persons ("763 person" or a bare number).
"""

from __future__ import annotations
from typing import ClassVar, Literal, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
import jax
import jax.numpy as jnp

from ..units import UnitManager, UnitSpec
from ..fields import quantity_field
from ..runtime import QuantityNode, default_float_dtype
from .kernel import sir_rhs, seir_rhs
from .runtime import SIRRuntime, SEIRRuntime, SIR_COMPARTMENTS, SEIR_COMPARTMENTS


def _to_node(value_spec: Tuple[float, UnitSpec]) -> QuantityNode:
    return QuantityNode.from_float(value_spec[0], value_spec[1])


class SIRConfig(BaseModel):
    """Configuration for a frequency-dependent SIR model.

    Example:
        >>> config = SIRConfig(
        ...     population="763 person",
        ...     transmission_rate="1.7 / day",
        ...     recovery_rate="0.5 / day",
        ...     initial_infected=1,
        ... )
        >>> config.basic_reproduction_number
        3.4
    """

    population: Tuple[float, UnitSpec] = Field(
        description="Total population N (persons)"
    )

    transmission_rate: Tuple[float, UnitSpec] = Field(
        description="Transmission rate beta, contacts leading to infection per time"
    )

    recovery_rate: Tuple[float, UnitSpec] = Field(
        description="Recovery rate gamma, 1 / mean infectious period"
    )

    initial_infected: Tuple[float, UnitSpec] = Field(
        description="Infectious persons at t0"
    )

    initial_recovered: Tuple[float, UnitSpec] = Field(
        default=(0.0, UnitSpec("population", "person")),
        description="Recovered (removed) persons at t0"
    )

    # ODE solver configuration
    solver: Literal['euler', 'tsit5', 'dopri5', 'dopri8'] = Field(
        default='tsit5',
        description="ODE integration method"
    )

    rtol: float = Field(default=1e-6, gt=0, description="Relative tolerance for adaptive solvers")
    atol: float = Field(default=1e-6, gt=0, description="Absolute tolerance for adaptive solvers")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    compartments: ClassVar[Tuple[str, ...]] = SIR_COMPARTMENTS

    _validate_population = field_validator("population", mode="before")(
        quantity_field("population", "person")
    )

    _validate_rates = field_validator("transmission_rate", "recovery_rate", mode="before")(
        quantity_field("1/time", "1/day")
    )

    _validate_counts = field_validator("initial_infected", "initial_recovered", mode="before")(
        quantity_field("population", "person", min_value=0.0)
    )

    @field_validator("population", "transmission_rate", "recovery_rate", mode="after")
    def _validate_positive(cls, value: Tuple[float, UnitSpec]) -> Tuple[float, UnitSpec]:
        """Ensure population and rates are positive."""
        if value[0] <= 0:
            raise ValueError(f"Value must be positive, got {value[0]}")
        return value

    @model_validator(mode="after")
    def _validate_initial_counts(self):
        """Initial compartments must fit inside the population."""
        occupied = sum(count for count, _ in self._seeded_counts())
        if occupied > self.population[0]:
            raise ValueError(
                f"Initial compartments hold {occupied} persons but the population "
                f"is only {self.population[0]}"
            )
        return self

    def _seeded_counts(self) -> list[Tuple[float, UnitSpec]]:
        return [self.initial_infected, self.initial_recovered]

    @property
    def basic_reproduction_number(self) -> float:
        """R0 = beta / gamma."""
        return self.transmission_rate[0] / self.recovery_rate[0]

    @property
    def rhs(self):
        """Right-hand side function matching this model."""
        return sir_rhs

    def initial_state(self) -> jax.Array:
        """Initial state vector [S, I, R] in persons."""
        n = self.population[0]
        infected = self.initial_infected[0]
        recovered = self.initial_recovered[0]
        return jnp.array([n - infected - recovered, infected, recovered], dtype=default_float_dtype())

    def validate_units(self, verbose: bool = False) -> "ValidationReport":
        """Validate unit consistency of the compartment flows using pint."""
        from ..validation import validate_config_units
        return validate_config_units(self, verbose=verbose)

    def to_runtime(self, check_units: bool = False) -> SIRRuntime:
        """Convert to runtime structure for JAX.

        Args:
            check_units: If True, validate units before building the runtime

        Returns:
            SIRRuntime (or SEIRRuntime) structure with QuantityNodes

        Raises:
            ValueError: If check_units=True and validation fails
        """
        if check_units:
            report = self.validate_units()
            if not report.success:
                raise ValueError(f"Unit validation failed:\n{report}")
        return self._build_runtime()

    def _build_runtime(self) -> SIRRuntime:
        return SIRRuntime(
            transmission_rate=_to_node(self.transmission_rate),
            recovery_rate=_to_node(self.recovery_rate),
            population=_to_node(self.population),
        )

    def summary(self, format: str = "text") -> str:
        """Short text or markdown summary of the configuration."""
        manager = UnitManager.instance()
        rows = [
            ("Population", self.population),
            ("Transmission rate (beta)", self.transmission_rate),
            ("Recovery rate (gamma)", self.recovery_rate),
        ] + self._extra_rows()

        if format == "markdown":
            lines = [f"# {type(self).__name__.replace('Config', '')} Model Configuration\n",
                     "| Parameter | Value | Units |",
                     "|-----------|--------|-------|"]
            for name, value in rows:
                qty = manager.from_canonical(value[0], value[1])
                lines.append(f"| {name} | {qty.magnitude:.4g} | {qty.units} |")
        else:
            lines = [f"{type(self).__name__.replace('Config', '')} Model Configuration", "-" * 40]
            for name, value in rows:
                qty = manager.from_canonical(value[0], value[1])
                lines.append(f"  {name}: {qty.magnitude:.4g} {qty.units}")

        lines.append("")
        lines.append(f"R0: {self.basic_reproduction_number:.3f}")
        return "\n".join(lines)

    def _extra_rows(self) -> list:
        return []


class SEIRConfig(SIRConfig):
    """Configuration for a frequency-dependent SEIR model.

    Adds a latent (exposed, not yet infectious) compartment drained at the
    incubation rate sigma.
    """

    incubation_rate: Tuple[float, UnitSpec] = Field(
        description="Incubation rate sigma, 1 / mean latent period"
    )

    initial_exposed: Tuple[float, UnitSpec] = Field(
        default=(0.0, UnitSpec("population", "person")),
        description="Exposed persons at t0"
    )

    compartments: ClassVar[Tuple[str, ...]] = SEIR_COMPARTMENTS

    _validate_incubation = field_validator("incubation_rate", mode="before")(
        quantity_field("1/time", "1/day")
    )

    _validate_exposed = field_validator("initial_exposed", mode="before")(
        quantity_field("population", "person", min_value=0.0)
    )

    @field_validator("incubation_rate", mode="after")
    def _validate_incubation_positive(cls, value: Tuple[float, UnitSpec]) -> Tuple[float, UnitSpec]:
        """Ensure the incubation rate is positive."""
        if value[0] <= 0:
            raise ValueError(f"Incubation rate must be positive, got {value[0]}")
        return value

    def _seeded_counts(self) -> list[Tuple[float, UnitSpec]]:
        return [self.initial_exposed, self.initial_infected, self.initial_recovered]

    @property
    def rhs(self):
        """Right-hand side function matching this model."""
        return seir_rhs

    def initial_state(self) -> jax.Array:
        """Initial state vector [S, E, I, R] in persons."""
        n = self.population[0]
        exposed = self.initial_exposed[0]
        infected = self.initial_infected[0]
        recovered = self.initial_recovered[0]
        return jnp.array(
            [n - exposed - infected - recovered, exposed, infected, recovered],
            dtype=default_float_dtype()
        )

    def _build_runtime(self) -> SEIRRuntime:
        return SEIRRuntime(
            transmission_rate=_to_node(self.transmission_rate),
            incubation_rate=_to_node(self.incubation_rate),
            recovery_rate=_to_node(self.recovery_rate),
            population=_to_node(self.population),
        )

    def _extra_rows(self) -> list:
        return [("Incubation rate (sigma)", self.incubation_rate)]
