"""Hawkes process likelihood kernels for JAX.

Exact log-likelihood of a univariate Hawkes process with exponential
excitation kernel observed on [0, max_T]:

    log L = Σ_i log λ(t_i) - ∫_0^max_T λ(s) ds

with λ(t) = mu + Σ_{t_j < t} alpha * exp(-delta * (t - t_j)).

Two interchangeable evaluations of the per-event excitation are provided:
the O(N) recursive scan (default) and the O(N²) pairwise-difference matrix,
kept as a verification oracle. Every function here is pure; nothing is
cached between calls, so independent chains may evaluate concurrently.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Literal, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from ..errors import DecayRateError, NonPositiveIntensityError
from .runtime import HawkesRuntime, EventSequence

Method = Literal["recursive", "matrix"]


def excitation_sums(runtime: HawkesRuntime, events: EventSequence) -> jax.Array:
    """Per-event excitation from strictly earlier events, in one sweep.

    Uses the recurrence
        running_1 = 0
        running_i = exp(-delta * (t_i - t_{i-1})) * (running_{i-1} + alpha)

    which processes events left to right in the supplied index order.

    Args:
        runtime: Hawkes parameters
        events: Observed events (assumed chronological)

    Returns:
        Array of shape (N,) with Σ_{j<i} alpha * exp(-delta * (t_i - t_j))
    """
    _, alpha, delta = runtime.params()
    times = events.times

    # Gap to the previous event; the first event has no predecessor
    previous = jnp.concatenate([times[:1], times[:-1]])
    gaps = times - previous

    def scan_fn(carry, gap):
        """Decay the excitation carried over from the previous event."""
        running = jnp.exp(-delta * gap) * carry
        return running + alpha, running

    init = jnp.zeros((), dtype=times.dtype)
    _, running = jax.lax.scan(scan_fn, init, gaps)
    return running


def pairwise_excitation_sums(runtime: HawkesRuntime, events: EventSequence) -> jax.Array:
    """Per-event excitation from the full pairwise-difference matrix.

    O(N²) time and memory. Entry (i, j) of the matrix is t_i - t_j; only
    the strictly lower triangle (j < i by index) contributes.

    Args:
        runtime: Hawkes parameters
        events: Observed events

    Returns:
        Array of shape (N,), identical in meaning to excitation_sums
    """
    _, alpha, delta = runtime.params()
    times = events.times
    n = times.shape[0]

    differences = times[:, None] - times[None, :]
    earlier = jnp.tril(jnp.ones((n, n), dtype=bool), k=-1)

    # Inner select keeps exp() finite above the diagonal so gradients stay clean
    lags = jnp.where(earlier, differences, 0.0)
    contributions = jnp.where(earlier, alpha * jnp.exp(-delta * lags), 0.0)
    return contributions.sum(axis=1)


def event_intensities(
    runtime: HawkesRuntime,
    events: EventSequence,
    method: Method = "recursive",
) -> jax.Array:
    """Conditional intensity λ(t_i) at each observed event.

    Args:
        runtime: Hawkes parameters
        events: Observed events
        method: "recursive" (O(N)) or "matrix" (O(N²))

    Returns:
        Array of shape (N,) with mu + excitation at each event

    Raises:
        ValueError: If method is unknown
    """
    if method == "recursive":
        excitation = excitation_sums(runtime, events)
    elif method == "matrix":
        excitation = pairwise_excitation_sums(runtime, events)
    else:
        raise ValueError(f"Unknown method '{method}'; expected 'recursive' or 'matrix'")
    return runtime.background_rate.value + excitation


def compensator(runtime: HawkesRuntime, events: EventSequence) -> jax.Array:
    """Integral of the intensity over [0, max_T] in closed form.

        mu * max_T - (alpha / delta) * Σ_{t_i <= max_T} (exp(-delta * (max_T - t_i)) - 1)

    Events past the horizon are filtered out of the sum.

    Args:
        runtime: Hawkes parameters
        events: Observed events

    Returns:
        Scalar compensator
    """
    mu, alpha, delta = runtime.params()
    remaining = events.horizon - events.times
    observed = remaining >= 0

    decayed = jnp.where(observed, jnp.expm1(-delta * jnp.where(observed, remaining, 0.0)), 0.0)
    return mu * events.horizon - (alpha / delta) * decayed.sum()


def log_likelihood(
    runtime: HawkesRuntime,
    events: EventSequence,
    method: Method = "recursive",
) -> jax.Array:
    """Exact Hawkes log-likelihood with explicit domain checks.

    Eager evaluation: parameter values must be concrete. Use log_density
    inside jit/grad/vmap or a sampler.

    Args:
        runtime: Hawkes parameters
        events: Observed events
        method: "recursive" (O(N)) or "matrix" (O(N²))

    Returns:
        Scalar log-likelihood; -mu * max_T when there are no events

    Raises:
        DecayRateError: If delta <= 0
        NonPositiveIntensityError: If λ(t_i) <= 0 for some event

    Example:
        >>> runtime = HawkesRuntime.from_values(0.5, 0.4, 0.5)
        >>> events = EventSequence.from_times([1.0, 2.0, 5.0], horizon=6.0)
        >>> float(log_likelihood(runtime, events))
        -6.17257779...
    """
    delta = float(runtime.decay_rate.value)
    if not delta > 0:
        raise DecayRateError(delta)

    intensities = event_intensities(runtime, events, method)
    invalid = np.flatnonzero(~(np.asarray(intensities) > 0))
    if invalid.size:
        index = int(invalid[0])
        raise NonPositiveIntensityError(index, float(intensities[index]))

    return jnp.sum(jnp.log(intensities)) - compensator(runtime, events)


def log_density(
    runtime: HawkesRuntime,
    events: EventSequence,
    method: Method = "recursive",
) -> jax.Array:
    """Traceable log-likelihood for samplers and autodiff.

    Matches log_likelihood wherever it is defined and returns -inf where
    log_likelihood would raise, so a sampler rejects the proposal. Invalid
    inputs are swapped for harmless placeholders before exp/log so the
    gradient is finite everywhere.

    Args:
        runtime: Hawkes parameters (may hold tracers)
        events: Observed events
        method: "recursive" (O(N)) or "matrix" (O(N²))

    Returns:
        Scalar log-likelihood or -inf
    """
    delta = runtime.decay_rate.value
    delta_ok = delta > 0
    safe_runtime = dataclasses.replace(
        runtime,
        decay_rate=dataclasses.replace(runtime.decay_rate, value=jnp.where(delta_ok, delta, 1.0)),
    )

    intensities = event_intensities(safe_runtime, events, method)
    positive = intensities > 0
    log_terms = jnp.log(jnp.where(positive, intensities, 1.0))

    value = jnp.sum(log_terms) - compensator(safe_runtime, events)
    return jnp.where(delta_ok & jnp.all(positive), value, -jnp.inf)


def log_likelihood_and_grad(
    runtime: HawkesRuntime,
    events: EventSequence,
    method: Method = "recursive",
) -> Tuple[jax.Array, Dict[str, jax.Array]]:
    """Checked log-likelihood together with its gradient.

    Args:
        runtime: Hawkes parameters
        events: Observed events
        method: "recursive" (O(N)) or "matrix" (O(N²))

    Returns:
        Tuple of (log_likelihood, {"mu": ∂/∂mu, "alpha": ∂/∂alpha, "delta": ∂/∂delta})

    Raises:
        DecayRateError: If delta <= 0
        NonPositiveIntensityError: If λ(t_i) <= 0 for some event
    """
    value = log_likelihood(runtime, events, method)
    grads = jax.grad(log_density)(runtime, events, method)
    return value, {
        "mu": grads.background_rate.value,
        "alpha": grads.excitation.value,
        "delta": grads.decay_rate.value,
    }


def conditional_intensity(
    runtime: HawkesRuntime,
    events: EventSequence,
    t: jax.Array,
) -> jax.Array:
    """Conditional intensity λ(t) at arbitrary query times.

    Only events strictly before each query time contribute, so λ is
    left-continuous and λ(t_i) matches the value used in the likelihood
    for distinct event times.

    Args:
        runtime: Hawkes parameters
        events: Observed events
        t: Scalar or array of query times (canonical days)

    Returns:
        Array of intensities with the shape of ``jnp.atleast_1d(t)``
    """
    mu, alpha, delta = runtime.params()
    query = jnp.atleast_1d(jnp.asarray(t, dtype=events.times.dtype))

    lags = query[:, None] - events.times[None, :]
    past = lags > 0
    contributions = jnp.where(past, alpha * jnp.exp(-delta * jnp.where(past, lags, 0.0)), 0.0)
    return mu + contributions.sum(axis=1)


def get_branching_ratio(runtime: HawkesRuntime) -> float:
    """Expected number of direct offspring per event, alpha / delta.

    The process is subcritical (dies out) when the ratio is < 1 and
    explosive when it is > 1.

    Raises:
        DecayRateError: If delta <= 0
    """
    delta = float(runtime.decay_rate.value)
    if not delta > 0:
        raise DecayRateError(delta)
    return float(runtime.excitation.value) / delta


def get_stationary_intensity(runtime: HawkesRuntime) -> float:
    """Long-run average intensity mu / (1 - alpha / delta).

    Raises:
        ValueError: If the process is not subcritical
    """
    ratio = get_branching_ratio(runtime)
    if ratio >= 1.0:
        raise ValueError(
            f"Process is not subcritical (alpha/delta={ratio} >= 1). "
            "Stationary intensity is undefined."
        )
    return float(runtime.background_rate.value) / (1.0 - ratio)
