"""Probabilistic Hawkes model for NUTS sampling with numpyro."""

from typing import Optional

import numpyro
import numpyro.distributions as dist

from .kernel import Method, log_density
from .runtime import HawkesRuntime, EventSequence


def hawkes_model(
    events: EventSequence,
    mu_prior: Optional[dist.Distribution] = None,
    alpha_prior: Optional[dist.Distribution] = None,
    delta_prior: Optional[dist.Distribution] = None,
    method: Method = "recursive",
):
    """numpyro model: priors on (mu, alpha, delta) plus the Hawkes likelihood.

    The likelihood enters through numpyro.factor; proposals outside the
    domain receive -inf and are rejected by the sampler.

    Args:
        events: Observed event sequence (held fixed across iterations)
        mu_prior: Prior on the background rate (default HalfNormal(1))
        alpha_prior: Prior on the excitation (default HalfNormal(1))
        delta_prior: Prior on the decay rate (default HalfNormal(1))
        method: Likelihood evaluation, "recursive" or "matrix"
    """
    mu = numpyro.sample("mu", mu_prior or dist.HalfNormal(1.0))
    alpha = numpyro.sample("alpha", alpha_prior or dist.HalfNormal(1.0))
    delta = numpyro.sample("delta", delta_prior or dist.HalfNormal(1.0))

    runtime = HawkesRuntime.from_values(mu, alpha, delta)
    numpyro.deterministic(
        "branching_ratio", runtime.excitation.value / runtime.decay_rate.value
    )
    numpyro.factor("hawkes_log_likelihood", log_density(runtime, events, method))
