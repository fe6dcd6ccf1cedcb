"""Compartmental (SIR/SEIR) epidemic models with unit-aware configuration."""

from .config import SIRConfig, SEIRConfig
from .runtime import SIRRuntime, SEIRRuntime, SIR_COMPARTMENTS, SEIR_COMPARTMENTS
from .kernel import (
    sir_rhs,
    seir_rhs,
    solve,
    incidence,
    basic_reproduction_number,
    recovery_time,
)
from .model import sir_model, seir_model

__all__ = [
    'SIRConfig',
    'SEIRConfig',
    'SIRRuntime',
    'SEIRRuntime',
    'SIR_COMPARTMENTS',
    'SEIR_COMPARTMENTS',
    'sir_rhs',
    'seir_rhs',
    'solve',
    'incidence',
    'basic_reproduction_number',
    'recovery_time',
    'sir_model',
    'seir_model',
]
