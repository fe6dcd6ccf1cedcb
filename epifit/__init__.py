"""epifit: Unit-aware epidemic model fitting with JAX and numpyro."""

from .units import UnitManager, UnitSpec, QuantityInput
from .fields import quantity_field
from .runtime import QuantityNode
from .errors import DomainError, DecayRateError, NonPositiveIntensityError
from .hawkes import (
    HawkesConfig,
    HawkesConfigOutput,
    HawkesRuntime,
    EventSequence,
    log_likelihood,
    log_density,
    log_likelihood_and_grad,
    conditional_intensity,
    simulate_events,
    hawkes_model,
)
from .compartmental import (
    SIRConfig,
    SEIRConfig,
    SIRRuntime,
    SEIRRuntime,
    sir_rhs,
    seir_rhs,
    solve,
    incidence,
    sir_model,
    seir_model,
)
from .inference import SamplerConfig, run_nuts, posterior_summary
from .validation import ValidationReport, validate_config_units
from .adapters import HawkesAdapter, CompartmentalAdapter

__version__ = "0.1.0"

__all__ = [
    # Units
    'UnitManager',
    'UnitSpec',
    'QuantityInput',
    'quantity_field',
    'QuantityNode',
    # Errors
    'DomainError',
    'DecayRateError',
    'NonPositiveIntensityError',
    # Hawkes (core tier)
    'HawkesConfig',
    'HawkesConfigOutput',
    'HawkesRuntime',
    'EventSequence',
    'log_likelihood',
    'log_density',
    'log_likelihood_and_grad',
    'conditional_intensity',
    'simulate_events',
    'hawkes_model',
    # Compartmental (core tier)
    'SIRConfig',
    'SEIRConfig',
    'SIRRuntime',
    'SEIRRuntime',
    'sir_rhs',
    'seir_rhs',
    'solve',
    'incidence',
    'sir_model',
    'seir_model',
    # Inference
    'SamplerConfig',
    'run_nuts',
    'posterior_summary',
    # Validation
    'ValidationReport',
    'validate_config_units',
    # Adapters (high-level tier)
    'HawkesAdapter',
    'CompartmentalAdapter',
]
