"""Runtime structures for Hawkes processes with Penzai/JAX.

This module provides JAX-compatible runtime structures for the
univariate Hawkes process with exponential excitation kernel, plus the
observed event sequence the likelihood is evaluated on.
"""

from __future__ import annotations

import dataclasses
import warnings
from typing import Optional, Sequence, Union

import jax
import jax.numpy as jnp
import numpy as np
from penzai.core import struct

from ..runtime import QuantityNode, default_float_dtype
from ..units import UnitManager


@struct.pytree_dataclass
class HawkesRuntime(struct.Struct):
    """Runtime Hawkes process parameters for JAX computation.

    Conditional intensity:
        λ(t) = mu + Σ_{t_i < t} alpha * exp(-delta * (t - t_i))

    All fields are QuantityNodes in canonical 1/day units. Penzai's
    @struct.pytree_dataclass registers this as a JAX pytree, so
    jax.grad with respect to a HawkesRuntime returns a HawkesRuntime of
    partial derivatives.
    """

    background_rate: QuantityNode  # mu
    excitation: QuantityNode       # alpha
    decay_rate: QuantityNode       # delta

    @classmethod
    def from_values(cls, mu, alpha, delta) -> HawkesRuntime:
        """Build a runtime from raw canonical values (floats or tracers).

        Args:
            mu: Background rate (1/day)
            alpha: Excitation magnitude (1/day)
            delta: Decay rate (1/day)

        Returns:
            HawkesRuntime with canonical unit metadata
        """
        return cls(
            background_rate=QuantityNode.canonical(mu, "1/time"),
            excitation=QuantityNode.canonical(alpha, "1/time"),
            decay_rate=QuantityNode.canonical(delta, "1/time"),
        )

    def params(self) -> tuple[jax.Array, jax.Array, jax.Array]:
        """Return (mu, alpha, delta) as arrays."""
        return self.background_rate.value, self.excitation.value, self.decay_rate.value


@struct.pytree_dataclass
class EventSequence(struct.Struct):
    """Observed event times and the observation horizon.

    Times are in canonical days. The likelihood trusts the stored order:
    events are processed by index, never re-sorted.

    Attributes:
        times: Event timestamps, shape (N,), N may be 0
        horizon: Observation cutoff max_T
    """

    times: jax.Array
    horizon: jax.Array

    @classmethod
    def from_times(
        cls,
        times: Union[Sequence[float], np.ndarray, jax.Array],
        horizon: Union[str, float, int],
        unit: str = "day",
        manager: Optional[UnitManager] = None,
    ) -> EventSequence:
        """Build an EventSequence from timestamps in any time unit.

        Args:
            times: Event timestamps expressed in ``unit``
            horizon: Observation cutoff; a bare number is read in ``unit``,
                a string such as "6 weeks" carries its own unit
            unit: Unit of ``times`` (default: day)
            manager: Optional UnitManager instance

        Returns:
            EventSequence in canonical days

        Warns:
            UserWarning: On out-of-order or late timestamps, and when JAX
                runs without 64-bit floats
        """
        manager = manager or UnitManager.instance()
        scale, _ = manager.to_canonical(manager.ensure_quantity(1.0, unit), "time")
        horizon_days, _ = manager.to_canonical(manager.ensure_quantity(horizon, unit), "time")

        raw = np.asarray(times, dtype=float).reshape(-1) * scale

        if raw.size > 1 and np.any(np.diff(raw) < 0):
            warnings.warn(
                "Event times are not in non-decreasing order. The likelihood "
                "processes events by index; sort them first if they are chronological.",
                UserWarning
            )
        if raw.size and raw.max() > horizon_days:
            warnings.warn(
                f"{int(np.sum(raw > horizon_days))} event(s) lie beyond the horizon "
                f"{horizon_days} days; they are excluded from the compensator only.",
                UserWarning
            )

        dtype = default_float_dtype()
        if dtype != jnp.float64:
            warnings.warn(
                "JAX 64-bit mode is disabled; likelihood sums over long sequences "
                "lose precision in float32. Enable it with "
                "jax.config.update('jax_enable_x64', True).",
                UserWarning
            )
        return cls(
            times=jnp.asarray(raw, dtype=dtype),
            horizon=jnp.asarray(horizon_days, dtype=dtype),
        )

    @property
    def num_events(self) -> int:
        """Number of events N."""
        return int(self.times.shape[0])

    def with_times(self, times: jax.Array) -> EventSequence:
        """Copy with replaced timestamps (same horizon)."""
        return dataclasses.replace(self, times=jnp.asarray(times, dtype=self.times.dtype))
