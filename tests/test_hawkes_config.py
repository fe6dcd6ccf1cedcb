"""Tests for HawkesConfig, EventSequence construction and the Hawkes adapter."""

import warnings

import pytest
import numpy as np
import jax.numpy as jnp
from pydantic import ValidationError

from epifit import HawkesConfig, HawkesAdapter, EventSequence, UnitManager
from epifit.hawkes.runtime import HawkesRuntime
from epifit.units import UnitSpec


@pytest.fixture
def config():
    return HawkesConfig(
        background_rate="0.5 / day",
        excitation="0.4 / day",
        decay_rate="0.5 / day",
    )


@pytest.fixture
def events():
    return EventSequence.from_times([1.0, 2.0, 5.0], horizon=6.0)


class TestHawkesConfig:
    """Tests for HawkesConfig validation and conversion."""

    def test_string_rates(self, config):
        """Rates given as strings are stored per day."""
        assert config.background_rate[0] == pytest.approx(0.5)
        assert config.background_rate[1].dimension == "1/time"

    def test_weekly_rates_converted(self):
        """3.5 per week is 0.5 per day."""
        config = HawkesConfig(
            background_rate="3.5 / week",
            excitation="0.1 / hour",
            decay_rate=2.0,
        )
        assert config.background_rate[0] == pytest.approx(0.5)
        assert config.excitation[0] == pytest.approx(2.4)
        assert config.decay_rate[0] == pytest.approx(2.0)

    def test_wrong_dimension_rejected(self):
        """A duration is not a rate."""
        with pytest.raises(ValidationError, match="Dimension mismatch"):
            HawkesConfig(background_rate="2 days", excitation=0.1, decay_rate=1.0)

    def test_negative_excitation_rejected(self):
        """Excitation must be non-negative."""
        with pytest.raises(ValidationError, match="Excitation must be >= 0"):
            HawkesConfig(background_rate=0.5, excitation=-0.1, decay_rate=1.0)

    @pytest.mark.parametrize("delta", [0.0, -1.0])
    def test_non_positive_decay_rejected(self, delta):
        """Decay rate must be strictly positive."""
        with pytest.raises(ValidationError, match="Decay rate must be positive"):
            HawkesConfig(background_rate=0.5, excitation=0.1, decay_rate=delta)

    def test_branching_ratio(self, config):
        assert config.branching_ratio == pytest.approx(0.8)

    def test_to_runtime(self, config):
        """Runtime holds canonical values in QuantityNodes."""
        runtime = config.to_runtime()
        assert isinstance(runtime, HawkesRuntime)
        assert float(runtime.excitation.value) == pytest.approx(0.4)
        assert runtime.decay_rate.units.dimension == "1/time"

    def test_from_runtime_restores_units(self):
        """Runtime values convert back to the user's units."""
        config = HawkesConfig(background_rate="7 / week", excitation=0.1, decay_rate=1.0)
        output = HawkesConfig.from_runtime(config.to_runtime())

        manager = UnitManager.instance()
        assert output.background_rate.to(manager.registry.week ** -1).magnitude == pytest.approx(7.0)

    def test_model_copy_keeps_values(self, config):
        """Already-validated tuples pass through the validator unchanged."""
        updated = HawkesConfig(
            background_rate=config.background_rate,
            excitation="0.2 / day",
            decay_rate=config.decay_rate,
        )
        assert updated.background_rate == config.background_rate
        assert updated.excitation[0] == pytest.approx(0.2)

    def test_model_dump_round_trip(self, config):
        """A dumped config rebuilds with the original units."""
        rebuilt = HawkesConfig(**config.model_dump())
        assert rebuilt.background_rate == config.background_rate
        assert rebuilt.decay_rate == config.decay_rate

    def test_validate_units(self, config):
        assert config.validate_units().success

    def test_to_runtime_checks_units(self, config):
        """check_units=True runs the dimension dry-run first."""
        assert isinstance(config.to_runtime(check_units=True), HawkesRuntime)

        broken = HawkesConfig.model_construct(
            background_rate=config.background_rate,
            excitation=config.excitation,
            decay_rate=(2.0, UnitSpec("time", "day")),
        )
        with pytest.raises(ValueError, match="Unit validation failed"):
            broken.to_runtime(check_units=True)
        # Unchecked conversion still builds
        assert isinstance(broken.to_runtime(), HawkesRuntime)

    def test_summary_markdown(self, config):
        summary = config.summary()
        assert "# Hawkes Process Configuration" in summary
        assert "SUBCRITICAL" in summary

    def test_summary_supercritical(self):
        config = HawkesConfig(background_rate=0.5, excitation=2.0, decay_rate=1.0)
        assert "SUPERCRITICAL" in config.summary(format="text")


class TestEventSequence:
    """Tests for building event sequences."""

    def test_times_in_weeks(self, array_close):
        """Times and horizon are converted to days."""
        events = EventSequence.from_times([1.0, 2.0], horizon=3.0, unit="week")
        array_close(events.times, [7.0, 14.0])
        assert float(events.horizon) == pytest.approx(21.0)

    def test_horizon_with_own_unit(self):
        events = EventSequence.from_times([1.0], horizon="2 weeks")
        assert float(events.horizon) == pytest.approx(14.0)

    def test_bare_number_horizon_string(self):
        """A unitless horizon string is read in the times' unit."""
        assert float(EventSequence.from_times([1.0, 2.0], horizon="6").horizon) == pytest.approx(6.0)
        weekly = EventSequence.from_times([1.0], horizon="2", unit="week")
        assert float(weekly.horizon) == pytest.approx(14.0)

    def test_empty(self):
        events = EventSequence.from_times([], horizon=5.0)
        assert events.num_events == 0

    def test_unsorted_warns(self):
        """Unsorted input is kept as given, with a warning."""
        with pytest.warns(UserWarning, match="non-decreasing"):
            events = EventSequence.from_times([3.0, 1.0], horizon=5.0)
        assert float(events.times[0]) == 3.0

    def test_sorted_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            EventSequence.from_times([1.0, 1.0, 2.0], horizon=5.0)

    def test_beyond_horizon_warns(self):
        with pytest.warns(UserWarning, match="beyond the horizon"):
            EventSequence.from_times([1.0, 9.0], horizon=5.0)

    def test_with_times(self, events):
        replaced = events.with_times(jnp.array([0.5]))
        assert replaced.num_events == 1
        assert float(replaced.horizon) == float(events.horizon)


class TestHawkesAdapter:
    """Tests for the high-level Hawkes adapter."""

    def test_log_likelihood(self, config, events):
        adapter = HawkesAdapter(config, events)
        assert adapter.log_likelihood() == pytest.approx(-6.1725777980414, rel=1e-9)

    def test_matrix_method(self, config, events):
        adapter = HawkesAdapter(config, events, method="matrix")
        assert adapter.log_likelihood() == pytest.approx(-6.1725777980414, rel=1e-9)

    def test_gradient_returns_floats(self, config, events):
        value, grads = HawkesAdapter(config, events).log_likelihood_and_grad()
        assert isinstance(value, float)
        assert set(grads) == {"mu", "alpha", "delta"}
        assert all(isinstance(g, float) for g in grads.values())

    def test_update_parameters(self, config, events):
        """Updating alpha to 0 gives the Poisson likelihood."""
        adapter = HawkesAdapter(config, events)
        adapter.update_parameters(excitation=0.0)

        expected = 3 * np.log(0.5) - 0.5 * 6.0
        assert adapter.log_likelihood() == pytest.approx(expected, rel=1e-9)
        assert adapter.config.decay_rate[0] == pytest.approx(0.5)

    def test_intensity(self, config, events):
        adapter = HawkesAdapter(config, events)
        intensity = adapter.intensity([0.5, 1.5])

        assert isinstance(intensity, np.ndarray)
        assert intensity[0] == pytest.approx(0.5)
        assert intensity[1] == pytest.approx(0.5 + 0.4 * np.exp(-0.25))

    def test_stability_queries(self, config, events):
        adapter = HawkesAdapter(config, events)
        assert adapter.get_branching_ratio() == pytest.approx(0.8)
        assert adapter.get_stationary_intensity() == pytest.approx(2.5)

    def test_supercritical_warns(self, events):
        config = HawkesConfig(background_rate=0.5, excitation=2.0, decay_rate=1.0)
        with pytest.warns(UserWarning, match="explosive"):
            HawkesAdapter(config, events)

    def test_skip_unit_check(self, events):
        """check_units=False skips the explosive-process warning."""
        config = HawkesConfig(background_rate=0.5, excitation=2.0, decay_rate=1.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            HawkesAdapter(config, events, check_units=False)
