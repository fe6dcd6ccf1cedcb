"""Hawkes process module with unit-aware configuration.

This module provides configuration, runtime structures, likelihood kernels
and a numpyro model for self-exciting Hawkes processes used to model
clustered infections.
"""

from .config import HawkesConfig, HawkesConfigOutput
from .runtime import HawkesRuntime, EventSequence
from .kernel import (
    excitation_sums,
    pairwise_excitation_sums,
    event_intensities,
    compensator,
    log_likelihood,
    log_density,
    log_likelihood_and_grad,
    conditional_intensity,
    get_branching_ratio,
    get_stationary_intensity,
)
from .simulate import simulate_events
from .model import hawkes_model

__all__ = [
    'HawkesConfig',
    'HawkesConfigOutput',
    'HawkesRuntime',
    'EventSequence',
    'excitation_sums',
    'pairwise_excitation_sums',
    'event_intensities',
    'compensator',
    'log_likelihood',
    'log_density',
    'log_likelihood_and_grad',
    'conditional_intensity',
    'get_branching_ratio',
    'get_stationary_intensity',
    'simulate_events',
    'hawkes_model',
]
