"""Tests for SIR/SEIR configuration, right-hand sides and ODE solving."""

import pytest
import numpy as np
import jax
import jax.numpy as jnp
from pydantic import ValidationError

from epifit import SIRConfig, SEIRConfig, CompartmentalAdapter
from epifit.units import UnitSpec
from epifit.compartmental import (
    SIRRuntime,
    SEIRRuntime,
    sir_rhs,
    seir_rhs,
    solve,
    incidence,
    basic_reproduction_number,
    recovery_time,
)


@pytest.fixture
def sir_config():
    # Boarding school influenza outbreak
    return SIRConfig(
        population="763 person",
        transmission_rate="1.7 / day",
        recovery_rate="0.5 / day",
        initial_infected=1,
    )


@pytest.fixture
def seir_config():
    return SEIRConfig(
        population=1000,
        transmission_rate="0.9 / day",
        incubation_rate="0.25 / day",
        recovery_rate="0.2 / day",
        initial_infected=5,
        initial_exposed=10,
    )


class TestRightHandSides:
    """Tests for the ODE vector fields."""

    def test_sir_flows(self, array_close):
        runtime = SIRRuntime.from_values(2.0, 0.5, 100.0)
        dy = sir_rhs(0.0, jnp.array([90.0, 10.0, 0.0]), runtime)
        # infection = 2 * 90 * 10 / 100 = 18, recovery = 5
        array_close(dy, [-18.0, 13.0, 5.0])

    def test_seir_flows(self, array_close):
        runtime = SEIRRuntime.from_values(1.0, 0.5, 0.25, 100.0)
        dy = seir_rhs(0.0, jnp.array([80.0, 10.0, 10.0, 0.0]), runtime)
        # infection 8, onset 5, recovery 2.5
        array_close(dy, [-8.0, 3.0, 2.5, 2.5])

    @pytest.mark.parametrize("rhs,runtime,state", [
        (sir_rhs, SIRRuntime.from_values(1.3, 0.4, 50.0), [40.0, 7.0, 3.0]),
        (seir_rhs, SEIRRuntime.from_values(1.3, 0.3, 0.4, 50.0), [30.0, 5.0, 7.0, 8.0]),
    ])
    def test_flows_sum_to_zero(self, rhs, runtime, state, close):
        close(jnp.sum(rhs(0.0, jnp.array(state), runtime)), 0.0)

    def test_rhs_differentiable(self):
        """Gradient of the infection flow w.r.t. beta is S * I / N."""
        state = jnp.array([90.0, 10.0, 0.0])

        def infectious_flow(beta):
            return sir_rhs(0.0, state, SIRRuntime.from_values(beta, 0.5, 100.0))[1]

        assert float(jax.grad(infectious_flow)(2.0)) == pytest.approx(9.0)


class TestSolve:
    """Tests for the diffrax wrapper."""

    @pytest.mark.parametrize("solver", ["tsit5", "dopri5", "dopri8"])
    def test_sir_conserves_population(self, sir_config, solver):
        ts = jnp.linspace(0.0, 14.0, 15)
        trajectory = solve(sir_rhs, sir_config.initial_state(), ts, sir_config.to_runtime(), solver=solver)

        assert trajectory.shape == (15, 3)
        np.testing.assert_allclose(np.asarray(trajectory).sum(axis=1), 763.0, rtol=1e-8)

    def test_seir_conserves_population(self, seir_config):
        ts = jnp.linspace(0.0, 60.0, 31)
        trajectory = solve(seir_rhs, seir_config.initial_state(), ts, seir_config.to_runtime())

        assert trajectory.shape == (31, 4)
        np.testing.assert_allclose(np.asarray(trajectory).sum(axis=1), 1000.0, rtol=1e-8)

    def test_no_transmission_is_exponential_decay(self, array_close):
        """beta = 0 leaves I(t) = I0 * exp(-gamma t)."""
        runtime = SIRRuntime.from_values(0.0, 0.5, 100.0)
        ts = jnp.linspace(0.0, 10.0, 11)

        trajectory = solve(sir_rhs, jnp.array([90.0, 10.0, 0.0]), ts, runtime, rtol=1e-10, atol=1e-10)
        array_close(trajectory[:, 1], 10.0 * np.exp(-0.5 * np.asarray(ts)), rtol=1e-7, atol=1e-8)
        array_close(trajectory[:, 0], 90.0, rtol=1e-10)

    def test_starts_from_t0(self, array_close):
        """State at t0 is y0; saves begin later."""
        runtime = SIRRuntime.from_values(0.0, 0.5, 100.0)
        trajectory = solve(sir_rhs, jnp.array([90.0, 10.0, 0.0]), jnp.array([2.0, 4.0]), runtime,
                           t0=0.0, rtol=1e-10, atol=1e-10)
        array_close(trajectory[:, 1], 10.0 * np.exp(-0.5 * np.array([2.0, 4.0])), rtol=1e-7)

    def test_euler_close_to_adaptive(self, sir_config):
        ts = jnp.linspace(0.0, 10.0, 11)
        y0 = sir_config.initial_state()
        runtime = sir_config.to_runtime()

        adaptive = np.asarray(solve(sir_rhs, y0, ts, runtime))
        euler = np.asarray(solve(sir_rhs, y0, ts, runtime, solver="euler", dt0=0.01))
        np.testing.assert_allclose(euler, adaptive, rtol=0.05, atol=1.0)

    def test_integer_initial_state(self):
        """Integer head counts are promoted to floats."""
        runtime = SIRRuntime.from_values(1.0, 0.5, 100.0)
        trajectory = solve(sir_rhs, jnp.array([99, 1, 0]), jnp.array([0.0, 1.0]), runtime)
        assert jnp.issubdtype(trajectory.dtype, jnp.floating)

    def test_unknown_solver(self, sir_config):
        with pytest.raises(ValueError, match="Unknown solver"):
            solve(sir_rhs, sir_config.initial_state(), jnp.array([0.0, 1.0]),
                  sir_config.to_runtime(), solver="rk4")

    def test_jit(self, sir_config, array_close):
        ts = jnp.linspace(0.0, 5.0, 6)
        y0 = sir_config.initial_state()
        runtime = sir_config.to_runtime()

        compiled = jax.jit(lambda r: solve(sir_rhs, y0, ts, r))
        array_close(compiled(runtime), solve(sir_rhs, y0, ts, runtime), rtol=1e-9)


class TestIncidence:
    """Tests for new-infection counts."""

    def test_incidence_matches_drop_in_susceptible(self):
        trajectory = jnp.array([[100.0, 0.0, 0.0], [95.0, 4.0, 1.0], [85.0, 10.0, 5.0]])
        new_cases = incidence(trajectory, 100.0)
        np.testing.assert_allclose(np.asarray(new_cases), [0.0, 5.0, 10.0])

    def test_default_first_interval_is_zero(self):
        trajectory = jnp.array([[95.0, 4.0, 1.0], [85.0, 10.0, 5.0]])
        np.testing.assert_allclose(np.asarray(incidence(trajectory)), [0.0, 10.0])

    def test_negative_noise_clipped(self):
        trajectory = jnp.array([[50.0, 1.0, 0.0], [50.0 + 1e-9, 1.0, 0.0]])
        assert float(incidence(trajectory, 50.0)[1]) == 0.0

    def test_total_incidence(self, sir_config, close):
        """Summed incidence equals the total drop in S."""
        ts = jnp.linspace(1.0, 30.0, 30)
        y0 = sir_config.initial_state()
        trajectory = solve(sir_rhs, y0, ts, sir_config.to_runtime(), t0=0.0)

        close(jnp.sum(incidence(trajectory, y0[0])), y0[0] - trajectory[-1, 0], rtol=1e-8)


class TestConfig:
    """Tests for SIRConfig and SEIRConfig."""

    def test_r0(self, sir_config):
        assert sir_config.basic_reproduction_number == pytest.approx(3.4)
        assert basic_reproduction_number(sir_config.to_runtime()) == pytest.approx(3.4)
        assert recovery_time(sir_config.to_runtime()) == pytest.approx(2.0)

    def test_initial_state(self, sir_config, seir_config):
        np.testing.assert_allclose(np.asarray(sir_config.initial_state()), [762.0, 1.0, 0.0])
        np.testing.assert_allclose(np.asarray(seir_config.initial_state()), [985.0, 10.0, 5.0, 0.0])

    def test_weekly_rates(self):
        config = SIRConfig(population=100, transmission_rate="7 / week",
                           recovery_rate="3.5 / week", initial_infected=1)
        assert config.transmission_rate[0] == pytest.approx(1.0)
        assert config.recovery_rate[0] == pytest.approx(0.5)

    def test_bare_number_strings(self):
        """Unitless strings take the field's default unit."""
        config = SIRConfig(population="763", transmission_rate="1.7",
                           recovery_rate="0.5", initial_infected="1")
        assert config.population[0] == pytest.approx(763.0)
        assert config.transmission_rate[1].dimension == "1/time"

    def test_model_dump_round_trip(self, seir_config):
        rebuilt = SEIRConfig(**seir_config.model_dump())
        assert rebuilt.incubation_rate == seir_config.incubation_rate
        np.testing.assert_allclose(np.asarray(rebuilt.initial_state()),
                                   np.asarray(seir_config.initial_state()))

    def test_to_runtime_checks_units(self, sir_config, seir_config):
        assert isinstance(seir_config.to_runtime(check_units=True), SEIRRuntime)

        broken = SIRConfig.model_construct(
            **{**dict(sir_config), "population": (763.0, UnitSpec("dimensionless", "dimensionless"))}
        )
        with pytest.raises(ValueError, match="Unit validation failed"):
            broken.to_runtime(check_units=True)
        assert not broken.validate_units().success

    def test_population_in_thousands(self):
        config = SIRConfig(population="2 thousand * person", transmission_rate=1.0,
                           recovery_rate=0.5, initial_infected=1)
        assert config.population[0] == pytest.approx(2000.0)

    def test_population_must_be_persons(self):
        with pytest.raises(ValidationError, match="Dimension mismatch"):
            SIRConfig(population="5 days", transmission_rate=1.0,
                      recovery_rate=0.5, initial_infected=1)

    @pytest.mark.parametrize("field", ["transmission_rate", "recovery_rate", "population"])
    def test_non_positive_rejected(self, field):
        values = dict(population=100, transmission_rate=1.0, recovery_rate=0.5, initial_infected=1)
        values[field] = 0.0
        with pytest.raises(ValidationError, match="must be positive"):
            SIRConfig(**values)

    def test_negative_seed_rejected(self):
        with pytest.raises(ValidationError, match="below minimum"):
            SIRConfig(population=100, transmission_rate=1.0, recovery_rate=0.5, initial_infected=-1)

    def test_seed_exceeds_population(self):
        with pytest.raises(ValidationError, match="population"):
            SEIRConfig(population=10, transmission_rate=1.0, recovery_rate=0.5,
                       incubation_rate=0.2, initial_infected=6, initial_exposed=6)

    def test_seir_incubation_positive(self):
        with pytest.raises(ValidationError, match="Incubation rate must be positive"):
            SEIRConfig(population=10, transmission_rate=1.0, recovery_rate=0.5,
                       incubation_rate=0.0, initial_infected=1)

    def test_unknown_solver_rejected(self):
        with pytest.raises(ValidationError):
            SIRConfig(population=100, transmission_rate=1.0, recovery_rate=0.5,
                      initial_infected=1, solver="rk4")

    def test_rhs_and_compartments(self, sir_config, seir_config):
        assert sir_config.rhs is sir_rhs
        assert seir_config.rhs is seir_rhs
        assert sir_config.compartments == ("S", "I", "R")
        assert seir_config.compartments == ("S", "E", "I", "R")

    def test_summary(self, sir_config, seir_config):
        assert "R0: 3.400" in sir_config.summary()
        assert "Incubation rate (sigma)" in seir_config.summary(format="markdown")


class TestCompartmentalAdapter:
    """Tests for the high-level compartmental adapter."""

    def test_simulate(self, sir_config):
        adapter = CompartmentalAdapter(sir_config)
        trajectory = adapter.simulate(np.arange(1.0, 15.0))

        assert isinstance(trajectory, np.ndarray)
        assert trajectory.shape == (14, 3)
        # R0 = 3.4: the outbreak takes off
        assert trajectory[:, 1].max() > 100.0

    def test_seir_runtime(self, seir_config):
        adapter = CompartmentalAdapter(seir_config)
        assert isinstance(adapter.runtime, SEIRRuntime)
        assert adapter.compartments == ("S", "E", "I", "R")
        assert adapter.simulate([10.0, 20.0]).shape == (2, 4)

    def test_incidence_counts_first_interval(self, sir_config):
        adapter = CompartmentalAdapter(sir_config)
        new_cases = adapter.incidence([1.0, 2.0, 3.0])
        assert new_cases.shape == (3,)
        assert new_cases[0] > 0.0

    def test_get_r0(self, sir_config):
        assert CompartmentalAdapter(sir_config).get_r0() == pytest.approx(3.4)

    def test_subcritical_warns(self):
        config = SIRConfig(population=100, transmission_rate=0.2, recovery_rate=0.5, initial_infected=1)
        with pytest.warns(UserWarning, match="R0 <= 1"):
            CompartmentalAdapter(config)
