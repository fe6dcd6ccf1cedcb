"""Numerical domain errors raised by the checked likelihood evaluators.

A sampler probing the edge of the parameter space should treat any
DomainError as a rejected proposal. The traceable ``log_density`` functions
never raise; they return ``-inf`` for the same inputs instead.
"""

from __future__ import annotations


class DomainError(ValueError):
    """Parameters lie outside the domain where the likelihood is defined."""


class DecayRateError(DomainError):
    """Excitation decay rate is not strictly positive."""

    def __init__(self, decay_rate: float):
        self.decay_rate = decay_rate
        super().__init__(
            f"Decay rate must be > 0, got {decay_rate}. "
            "The compensator divides by the decay rate."
        )


class NonPositiveIntensityError(DomainError):
    """Conditional intensity at an event time is zero or negative."""

    def __init__(self, index: int, intensity: float):
        self.index = index
        self.intensity = intensity
        super().__init__(
            f"Conditional intensity at event {index} is {intensity} (must be > 0); "
            "its logarithm is undefined. A negative background rate is the usual cause."
        )
