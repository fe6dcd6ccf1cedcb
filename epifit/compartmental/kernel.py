"""Compartmental ODE kernels for JAX.

Right-hand sides for frequency-dependent SIR and SEIR models, and a thin
wrapper around diffrax for integrating them. All right-hand sides share the
diffrax vector-field signature (t, y, args) with the runtime passed as args,
so they can be differentiated with respect to the runtime by jax.grad.
"""

from typing import Callable, Literal, Optional, Union

import diffrax
import jax
import jax.numpy as jnp

from ..runtime import default_float_dtype
from .runtime import SIRRuntime, SEIRRuntime

SolverName = Literal["euler", "tsit5", "dopri5", "dopri8"]

_SOLVERS = {
    "euler": diffrax.Euler,
    "tsit5": diffrax.Tsit5,
    "dopri5": diffrax.Dopri5,
    "dopri8": diffrax.Dopri8,
}


def sir_rhs(t: jax.Array, y: jax.Array, runtime: SIRRuntime) -> jax.Array:
    """SIR right-hand side.

        dS/dt = -beta * S * I / N
        dI/dt =  beta * S * I / N - gamma * I
        dR/dt =  gamma * I

    Args:
        t: Time (unused, the model is autonomous)
        y: State [S, I, R]
        runtime: SIR parameters

    Returns:
        Derivative [dS, dI, dR]
    """
    s, i, _ = y
    beta = runtime.transmission_rate.value
    gamma = runtime.recovery_rate.value
    n = runtime.population.value

    infection = beta * s * i / n
    recovery = gamma * i
    return jnp.stack([-infection, infection - recovery, recovery])


def seir_rhs(t: jax.Array, y: jax.Array, runtime: SEIRRuntime) -> jax.Array:
    """SEIR right-hand side.

        dS/dt = -beta * S * I / N
        dE/dt =  beta * S * I / N - sigma * E
        dI/dt =  sigma * E - gamma * I
        dR/dt =  gamma * I

    Args:
        t: Time (unused, the model is autonomous)
        y: State [S, E, I, R]
        runtime: SEIR parameters

    Returns:
        Derivative [dS, dE, dI, dR]
    """
    s, e, i, _ = y
    beta = runtime.transmission_rate.value
    sigma = runtime.incubation_rate.value
    gamma = runtime.recovery_rate.value
    n = runtime.population.value

    infection = beta * s * i / n
    onset = sigma * e
    recovery = gamma * i
    return jnp.stack([-infection, infection - onset, onset - recovery, recovery])


def solve(
    rhs: Callable,
    y0: jax.Array,
    ts: jax.Array,
    runtime: Union[SIRRuntime, SEIRRuntime],
    t0: Optional[float] = None,
    solver: SolverName = "tsit5",
    rtol: float = 1e-6,
    atol: float = 1e-6,
    dt0: Optional[float] = None,
    max_steps: int = 4096,
    throw: bool = True,
) -> jax.Array:
    """Integrate a compartmental model and save the state at ``ts``.

    Args:
        rhs: Right-hand side (t, y, runtime) -> dy/dt
        y0: Initial state at t0
        ts: Increasing save times (canonical days)
        runtime: Model parameters, passed to rhs as diffrax args
        t0: Start time (default: ts[0])
        solver: 'euler' (constant step), or adaptive 'tsit5', 'dopri5', 'dopri8'
        rtol: Relative tolerance for adaptive solvers
        atol: Absolute tolerance for adaptive solvers
        dt0: Initial (euler: fixed) step size; adaptive solvers pick one if None
        max_steps: Step budget before the solve is declared failed
        throw: Raise on solver failure. Samplers should pass False, which
            yields non-finite states that reject the proposal instead.

    Returns:
        Array of shape (len(ts), n_compartments)

    Raises:
        ValueError: If solver is unknown
    """
    if solver not in _SOLVERS:
        raise ValueError(f"Unknown solver '{solver}'; expected one of {sorted(_SOLVERS)}")

    dtype = default_float_dtype()
    y0 = jnp.asarray(y0, dtype=dtype)
    ts = jnp.asarray(ts, dtype=dtype)
    start = ts[0] if t0 is None else t0

    # Euler has no error estimate, so it runs on a constant step
    if solver == "euler":
        stepsize_controller = diffrax.ConstantStepSize()
        dt0 = 0.1 if dt0 is None else dt0
    else:
        stepsize_controller = diffrax.PIDController(rtol=rtol, atol=atol)

    solution = diffrax.diffeqsolve(
        diffrax.ODETerm(rhs),
        _SOLVERS[solver](),
        t0=start,
        t1=ts[-1],
        dt0=dt0,
        y0=y0,
        args=runtime,
        saveat=diffrax.SaveAt(ts=ts),
        stepsize_controller=stepsize_controller,
        max_steps=max_steps,
        throw=throw,
    )
    return solution.ys


def incidence(trajectory: jax.Array, initial_susceptible: Optional[jax.Array] = None) -> jax.Array:
    """New infections per save interval, S[k-1] - S[k].

    Args:
        trajectory: Solver output, susceptible counts in column 0
        initial_susceptible: Susceptible count before the first save time.
            Defaults to the first saved value (zero first-interval incidence).

    Returns:
        Array of shape (len(trajectory),), clipped at 0 against solver noise
    """
    susceptible = trajectory[:, 0]
    first = susceptible[:1] if initial_susceptible is None else jnp.reshape(initial_susceptible, (1,))
    previous = jnp.concatenate([first.astype(susceptible.dtype), susceptible[:-1]])
    return jnp.clip(previous - susceptible, 0.0)


def basic_reproduction_number(runtime: Union[SIRRuntime, SEIRRuntime]) -> float:
    """R0 = beta / gamma."""
    return float(runtime.basic_reproduction_number())


def recovery_time(runtime: Union[SIRRuntime, SEIRRuntime]) -> float:
    """Mean infectious period 1 / gamma, in days."""
    return 1.0 / float(runtime.recovery_rate.value)
