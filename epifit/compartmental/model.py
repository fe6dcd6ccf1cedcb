"""Probabilistic SIR/SEIR models for NUTS sampling with numpyro.

Both models link a deterministic ODE trajectory to noisy counts through a
negative-binomial observation model parameterised by mean and
concentration phi (NegativeBinomial2). Priors are weakly informative on the
scale of a short school outbreak measured in days.
"""

from typing import Optional

import jax.numpy as jnp
import numpyro
import numpyro.distributions as dist

from .kernel import SolverName, incidence, seir_rhs, sir_rhs, solve
from .runtime import SIRRuntime, SEIRRuntime

# Smallest admissible negative-binomial mean
_MIN_MEAN = 1e-8


def sir_model(
    ts: jnp.ndarray,
    y0: jnp.ndarray,
    observed: Optional[jnp.ndarray] = None,
    t0: float = 0.0,
    solver: SolverName = "tsit5",
):
    """SIR model observed through infectious prevalence I(t).

    Args:
        ts: Observation times (days), all > t0
        y0: Initial state [S, I, R] at t0, in persons
        observed: Observed prevalence counts at ts (None to sample the prior
            predictive)
        t0: Time of the initial state
        solver: diffrax solver name
    """
    beta = numpyro.sample("beta", dist.TruncatedNormal(2.0, 1.0, low=0.0))
    gamma = numpyro.sample("gamma", dist.TruncatedNormal(0.4, 0.5, low=0.0))
    phi_inv = numpyro.sample("phi_inv", dist.Exponential(5.0))

    runtime = SIRRuntime.from_values(beta, gamma, jnp.sum(y0))
    trajectory = solve(sir_rhs, y0, ts, runtime, t0=t0, solver=solver, throw=False)

    numpyro.deterministic("trajectory", trajectory)
    numpyro.deterministic("R0", runtime.basic_reproduction_number())
    numpyro.deterministic("recovery_time", 1.0 / runtime.recovery_rate.value)

    mean = jnp.clip(trajectory[:, 1], _MIN_MEAN)
    numpyro.sample("cases", dist.NegativeBinomial2(mean, 1.0 / phi_inv), obs=observed)


def seir_model(
    ts: jnp.ndarray,
    y0: jnp.ndarray,
    observed: Optional[jnp.ndarray] = None,
    t0: float = 0.0,
    solver: SolverName = "tsit5",
):
    """SEIR model observed through under-reported incidence.

    Reported cases in each interval are p_reported times the new infections
    S(t_{k-1}) - S(t_k).

    Args:
        ts: Observation times (days), all > t0
        y0: Initial state [S, E, I, R] at t0, in persons
        observed: Reported incidence counts at ts (None for prior predictive)
        t0: Time of the initial state
        solver: diffrax solver name
    """
    beta = numpyro.sample("beta", dist.TruncatedNormal(2.0, 1.0, low=0.0))
    gamma = numpyro.sample("gamma", dist.TruncatedNormal(0.4, 0.5, low=0.0))
    sigma = numpyro.sample("sigma", dist.TruncatedNormal(0.4, 0.5, low=0.0))
    p_reported = numpyro.sample("p_reported", dist.Beta(1.0, 2.0))
    phi_inv = numpyro.sample("phi_inv", dist.Exponential(5.0))

    runtime = SEIRRuntime.from_values(beta, sigma, gamma, jnp.sum(y0))
    trajectory = solve(seir_rhs, y0, ts, runtime, t0=t0, solver=solver, throw=False)

    numpyro.deterministic("trajectory", trajectory)
    numpyro.deterministic("R0", runtime.basic_reproduction_number())
    numpyro.deterministic("recovery_time", 1.0 / runtime.recovery_rate.value)
    numpyro.deterministic("incubation_time", 1.0 / runtime.incubation_rate.value)

    new_infections = incidence(trajectory, jnp.asarray(y0)[0])
    mean = jnp.clip(p_reported * new_infections, _MIN_MEAN)
    numpyro.sample("cases", dist.NegativeBinomial2(mean, 1.0 / phi_inv), obs=observed)
