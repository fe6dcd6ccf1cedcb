"""Runtime structures using Penzai for JAX-compatible unit-aware computations.

This module provides Penzai structs that maintain unit metadata while being
compatible with JAX transformations like jit, grad, and vmap. Model-specific
runtimes (Hawkes, SIR, SEIR) are built from QuantityNode fields.
"""

from __future__ import annotations

import dataclasses
import jax
import jax.numpy as jnp
import pint
from typing import Optional
from penzai.core import struct

from .units import UnitManager, UnitSpec


# Register UnitSpec as static so it can be used as pytree metadata
jax.tree_util.register_static(UnitSpec)


def default_float_dtype() -> jnp.dtype:
    """Widest float dtype JAX will currently honour (float64 under x64)."""
    return jax.dtypes.canonicalize_dtype(jnp.float64)


@struct.pytree_dataclass
class QuantityNode(struct.Struct):
    """A Penzai struct that holds a value with unit metadata.

    The value field is a pytree leaf (participates in transformations, so
    gradients flow through it), while the units field is static metadata.

    Attributes:
        value: JAX array containing the numerical value in canonical units
        units: UnitSpec metadata describing the units
    """
    value: jax.Array
    units: UnitSpec = dataclasses.field(metadata={'pytree_node': False})

    @classmethod
    def from_float(
        cls,
        value: float,
        units: UnitSpec,
        dtype: Optional[jnp.dtype] = None
    ) -> QuantityNode:
        """Create a QuantityNode from a float (or traced) value.

        Args:
            value: Numerical value in canonical units
            units: Unit specification
            dtype: JAX array dtype (defaults to the widest enabled float)

        Returns:
            QuantityNode instance
        """
        return cls(
            value=jnp.asarray(value, dtype=dtype or default_float_dtype()),
            units=units
        )

    @classmethod
    def canonical(cls, value, dimension: str) -> QuantityNode:
        """Create a node for a value already in canonical units.

        Used when values come straight from a sampler rather than a config.
        """
        return cls.from_float(value, UnitManager.instance().canonical_spec(dimension))

    def to_float(self) -> float:
        """Extract the float value from the node.

        Returns:
            Float value (assumes scalar array)
        """
        return float(self.value)

    def to_quantity(self, manager: Optional[UnitManager] = None) -> pint.Quantity:
        """Convert back to a pint Quantity in the original units."""
        manager = manager or UnitManager.instance()
        return manager.from_canonical(float(self.value), self.units)

    def __repr__(self) -> str:
        """Pretty representation showing value and units."""
        return f"QuantityNode({self.value}, {self.units.symbol})"
