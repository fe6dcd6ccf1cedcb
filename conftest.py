"""Pytest configuration and shared test utilities."""

import jax

# Likelihood cross-checks compare against 1e-9 relative tolerances,
# which needs float64 before any array is created.
jax.config.update("jax_enable_x64", True)

import pytest
import numpy as np
import jax.numpy as jnp
from typing import Union


# Default tolerances for float comparisons under float64
RTOL_DEFAULT = 1e-9  # Relative tolerance
ATOL_DEFAULT = 1e-12  # Absolute tolerance


def assert_close(
    actual: Union[float, jnp.ndarray, np.ndarray],
    expected: Union[float, jnp.ndarray, np.ndarray],
    rtol: float = RTOL_DEFAULT,
    atol: float = ATOL_DEFAULT,
    msg: str = ""
):
    """Assert that two scalars are close within tolerance.

    Handles JAX arrays, NumPy arrays, and Python floats uniformly.

    Args:
        actual: Actual value
        expected: Expected value
        rtol: Relative tolerance (default: 1e-9)
        atol: Absolute tolerance (default: 1e-12)
        msg: Optional message for assertion failure

    Example:
        >>> assert_close(log_likelihood(runtime, events), -6.1725777980)
    """
    actual_val = float(actual) if hasattr(actual, '__float__') else actual
    expected_val = float(expected) if hasattr(expected, '__float__') else expected

    assert actual_val == pytest.approx(expected_val, rel=rtol, abs=atol), (
        f"{msg}\nExpected: {expected_val}\nActual: {actual_val}\n"
        f"Diff: {abs(actual_val - expected_val)}"
    )


def assert_array_close(
    actual: Union[jnp.ndarray, np.ndarray],
    expected: Union[jnp.ndarray, np.ndarray],
    rtol: float = RTOL_DEFAULT,
    atol: float = ATOL_DEFAULT,
    msg: str = ""
):
    """Assert that two arrays are close within tolerance.

    Uses numpy.testing.assert_allclose for detailed error messages.
    """
    np.testing.assert_allclose(
        np.asarray(actual), np.asarray(expected),
        rtol=rtol, atol=atol,
        err_msg=msg
    )


@pytest.fixture
def close():
    """Fixture providing assert_close function.

    Usage:
        def test_something(close):
            close(actual, expected)
    """
    return assert_close


@pytest.fixture
def array_close():
    """Fixture providing assert_array_close function.

    Usage:
        def test_something(array_close):
            array_close(actual_array, expected_array)
    """
    return assert_array_close
