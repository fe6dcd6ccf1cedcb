"""Runtime structures for compartmental epidemic models with Penzai/JAX."""

from __future__ import annotations

import jax
from penzai.core import struct

from ..runtime import QuantityNode

SIR_COMPARTMENTS = ("S", "I", "R")
SEIR_COMPARTMENTS = ("S", "E", "I", "R")


@struct.pytree_dataclass
class SIRRuntime(struct.Struct):
    """Runtime SIR parameters for JAX computation.

    Rates are in canonical 1/day units, population in persons.
    """

    transmission_rate: QuantityNode  # beta
    recovery_rate: QuantityNode      # gamma
    population: QuantityNode         # N

    @classmethod
    def from_values(cls, beta, gamma, population) -> SIRRuntime:
        """Build a runtime from raw canonical values (floats or tracers)."""
        return cls(
            transmission_rate=QuantityNode.canonical(beta, "1/time"),
            recovery_rate=QuantityNode.canonical(gamma, "1/time"),
            population=QuantityNode.canonical(population, "population"),
        )

    def basic_reproduction_number(self) -> jax.Array:
        """R0 = beta / gamma."""
        return self.transmission_rate.value / self.recovery_rate.value


@struct.pytree_dataclass
class SEIRRuntime(struct.Struct):
    """Runtime SEIR parameters for JAX computation.

    Adds the incubation rate sigma (1/latent period) to the SIR parameters.
    """

    transmission_rate: QuantityNode  # beta
    incubation_rate: QuantityNode    # sigma
    recovery_rate: QuantityNode      # gamma
    population: QuantityNode         # N

    @classmethod
    def from_values(cls, beta, sigma, gamma, population) -> SEIRRuntime:
        """Build a runtime from raw canonical values (floats or tracers)."""
        return cls(
            transmission_rate=QuantityNode.canonical(beta, "1/time"),
            incubation_rate=QuantityNode.canonical(sigma, "1/time"),
            recovery_rate=QuantityNode.canonical(gamma, "1/time"),
            population=QuantityNode.canonical(population, "population"),
        )

    def basic_reproduction_number(self) -> jax.Array:
        """R0 = beta / gamma (every exposed case eventually turns infectious)."""
        return self.transmission_rate.value / self.recovery_rate.value
