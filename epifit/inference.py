"""NUTS sampling configuration and posterior summaries.

Chain count, iteration counts and the random seed live here and only here;
the likelihood kernels and models hold no sampler state.
"""

from __future__ import annotations

import warnings
from typing import Any, Callable, Dict, Literal

import jax
import numpy as np
from numpyro.diagnostics import summary
from numpyro.infer import MCMC, NUTS
from pydantic import BaseModel, Field


class SamplerConfig(BaseModel):
    """Configuration for a NUTS run.

    Example:
        >>> config = SamplerConfig(num_warmup=500, num_samples=1000, num_chains=4, seed=0)
        >>> mcmc = run_nuts(hawkes_model, config, events)
    """

    num_warmup: int = Field(default=1000, ge=0, description="Adaptation iterations per chain")
    num_samples: int = Field(default=1000, gt=0, description="Retained draws per chain")
    num_chains: int = Field(default=4, gt=0, description="Independent chains")
    seed: int = Field(default=0, description="PRNG seed for the whole run")
    target_accept_prob: float = Field(
        default=0.8, gt=0.0, lt=1.0,
        description="Step-size adaptation target"
    )
    max_tree_depth: int = Field(default=10, gt=0, description="NUTS tree depth cap")
    chain_method: Literal["parallel", "sequential", "vectorized"] = Field(
        default="sequential",
        description="How chains are run; 'parallel' needs one device per chain"
    )
    progress_bar: bool = Field(default=False, description="Show a progress bar")


def run_nuts(model: Callable, config: SamplerConfig, *args: Any, **kwargs: Any) -> MCMC:
    """Run NUTS on a numpyro model.

    Args:
        model: numpyro model function
        config: Sampler configuration
        *args: Positional model arguments (data)
        **kwargs: Keyword model arguments (data)

    Returns:
        Fitted numpyro MCMC object
    """
    if config.chain_method == "parallel" and jax.local_device_count() < config.num_chains:
        warnings.warn(
            f"chain_method='parallel' with {config.num_chains} chains but only "
            f"{jax.local_device_count()} device(s); chains will run sequentially. "
            "Call numpyro.set_host_device_count() before JAX starts to parallelise on CPU.",
            UserWarning
        )

    kernel = NUTS(
        model,
        target_accept_prob=config.target_accept_prob,
        max_tree_depth=config.max_tree_depth,
    )
    mcmc = MCMC(
        kernel,
        num_warmup=config.num_warmup,
        num_samples=config.num_samples,
        num_chains=config.num_chains,
        chain_method=config.chain_method,
        progress_bar=config.progress_bar,
    )
    mcmc.run(jax.random.PRNGKey(config.seed), *args, **kwargs)
    return mcmc


def posterior_summary(mcmc: MCMC, prob: float = 0.9) -> Dict[str, Dict[str, np.ndarray]]:
    """Mean, sd, credible interval, n_eff and r_hat for every sampled site.

    Args:
        mcmc: Fitted MCMC object
        prob: Credible interval mass

    Returns:
        Dict mapping site name to its statistics
    """
    samples = mcmc.get_samples(group_by_chain=True)
    return summary(samples, prob=prob, group_by_chain=True)
