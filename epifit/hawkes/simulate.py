"""Synthetic outbreak generation for Hawkes processes."""

from typing import Optional, Union

import jax
import jax.numpy as jnp
import numpy as np

from ..units import UnitManager
from .runtime import HawkesRuntime, EventSequence


def simulate_events(
    runtime: HawkesRuntime,
    horizon: Union[str, float],
    seed: int = 0,
    max_events: int = 10000,
) -> EventSequence:
    """Draw an event sequence on [0, horizon] by Ogata thinning.

    With an exponential kernel the intensity only decays between events,
    so the intensity just after the current time is a valid upper bound
    until the next accepted event. Runs inside jax.lax.while_loop with a
    fixed-size buffer padded with inf.

    Args:
        runtime: Hawkes parameters; background rate must be > 0
        horizon: Observation cutoff (bare numbers are days)
        seed: Random seed
        max_events: Buffer size / safety cap on the number of events

    Returns:
        EventSequence with the accepted event times, in chronological order

    Raises:
        ValueError: If the background rate or decay rate is not positive
        RuntimeError: If the buffer fills before the horizon is reached
    """
    mu, alpha, delta = runtime.params()
    if not float(mu) > 0:
        raise ValueError(f"Simulation requires a positive background rate, got {float(mu)}")
    if not float(delta) > 0:
        raise ValueError(f"Simulation requires a positive decay rate, got {float(delta)}")

    manager = UnitManager.instance()
    t_end, _ = manager.to_canonical(manager.ensure_quantity(horizon, "day"), "time")

    dtype = runtime.background_rate.value.dtype
    buffer = jnp.full(max_events, jnp.inf, dtype=dtype)
    key = jax.random.PRNGKey(seed)

    def cond_fn(carry):
        _, t, _, _, count = carry
        return jnp.logical_and(t < t_end, count < max_events)

    def body_fn(carry):
        """Propose the next candidate and accept it with probability λ(t)/λ̄."""
        key, t, excitation, buffer, count = carry
        key, wait_key, accept_key = jax.random.split(key, 3)

        upper = mu + excitation
        candidate = t + jax.random.exponential(wait_key, dtype=dtype) / upper
        decayed = excitation * jnp.exp(-delta * (candidate - t))

        accepted = jnp.logical_and(
            jax.random.uniform(accept_key, dtype=dtype) * upper <= mu + decayed,
            candidate <= t_end,
        )

        buffer = jnp.where(accepted, buffer.at[count].set(candidate), buffer)
        excitation = jnp.where(accepted, decayed + alpha, decayed)
        count = count + accepted.astype(jnp.int32)
        return key, candidate, excitation, buffer, count

    init = (key, jnp.zeros((), dtype), jnp.zeros((), dtype), buffer, jnp.array(0, jnp.int32))
    _, t_final, _, buffer, count = jax.lax.while_loop(cond_fn, body_fn, init)

    count = int(count)
    if count >= max_events and float(t_final) < t_end:
        raise RuntimeError(
            f"Event buffer overflow: {max_events} events generated before reaching "
            f"t={t_end} days (stopped at t={float(t_final):.4g}). The process may be "
            "supercritical (alpha/delta >= 1); increase max_events or shorten the horizon."
        )

    times = np.asarray(buffer[:count])
    return EventSequence(
        times=jnp.asarray(times, dtype=dtype),
        horizon=jnp.asarray(t_end, dtype=dtype),
    )
