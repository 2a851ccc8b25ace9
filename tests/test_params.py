"""
Unit tests for ParameterSet (Greenwood map, derived quantities, validation).
"""

import dataclasses
import math

import numpy as np
import pytest

from lin_cochlea import ParameterSet, ConfigurationError, PHYSICS_PARAMS
from lin_cochlea.params import db_to_pascal, greenwood_position


@pytest.fixture
def params():
    return ParameterSet.from_config(N=100, f0=500, adB=80, tEnd=0.02)


class TestConversions:
    def test_db_to_pascal(self):
        assert db_to_pascal(0) == pytest.approx(2e-5)
        assert db_to_pascal(80) == pytest.approx(0.2)

    def test_minus_inf_db_is_silence(self):
        p = ParameterSet.from_config(adB=-np.inf)
        assert p.amplitude == 0.0

    def test_greenwood_position_in_cochlea(self):
        x = greenwood_position(500, PHYSICS_PARAMS['omega0'], PHYSICS_PARAMS['k_w'])
        assert 0 < x < PHYSICS_PARAMS['L']


class TestDerivedQuantities:
    def test_delta(self, params):
        assert params.delta == pytest.approx(3.5e-2 / 98)

    def test_omega_ow(self, params):
        assert params.omega_ow == pytest.approx(1e4)

    def test_array_lengths(self, params):
        assert params.omega_bm.shape == (98,)
        assert params.gamma_bm.shape == (98,)

    def test_place_frequency_map(self, params):
        expected = params.omega0 * np.exp(-params.k_w * params.delta)
        assert params.omega_bm[0] == pytest.approx(expected)

    def test_strictly_decreasing(self, params):
        assert np.all(np.diff(params.omega_bm) < 0)
        assert np.all(np.diff(params.gamma_bm) < 0)

    def test_damping_from_tuning(self, params):
        np.testing.assert_allclose(params.gamma_bm, params.omega_bm / 8)

    def test_position_default(self, params):
        assert params.position == 75

    def test_position_formula(self, params):
        raw = -math.log(2 * math.pi * 500 / params.omega0) / params.k_w * 98 / params.L
        assert abs(params.position - raw) <= 0.5

    def test_spatial_axis(self, params):
        assert params.x[0] == 0
        assert params.x[-1] == pytest.approx(params.L)
        assert params.x.size == 98


class TestRefinement:
    def test_position_scales_with_partitions(self):
        coarse = ParameterSet.from_config(N=100, f0=500)
        fine = ParameterSet.from_config(N=198, f0=500)
        assert abs(fine.position - 2 * coarse.position) <= 1

    def test_physical_place_converges(self):
        coarse = ParameterSet.from_config(N=100, f0=500)
        fine = ParameterSet.from_config(N=198, f0=500)
        place_coarse = coarse.position * coarse.L / (coarse.N - 2)
        place_fine = fine.position * fine.L / (fine.N - 2)
        assert abs(place_coarse - place_fine) <= coarse.delta


class TestImmutability:
    def test_frozen(self, params):
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.N = 10

    def test_arrays_read_only(self, params):
        with pytest.raises(ValueError):
            params.omega_bm[0] = 1.0


class TestValidation:
    @pytest.mark.parametrize("N", [0, 1, 2])
    def test_too_few_partitions(self, N):
        with pytest.raises(ConfigurationError) as excinfo:
            ParameterSet.from_config(N=N)
        assert excinfo.value.key == 'N'

    def test_non_integer_partitions(self):
        with pytest.raises(ConfigurationError):
            ParameterSet.from_config(N=100.5)

    def test_minimum_partitions(self):
        # 只有一个基底膜分区时，共振位置必须落在分区 1
        p = ParameterSet.from_config(N=3, f0=500)
        assert p.position == 1

    @pytest.mark.parametrize("f0", [1.0, 30000.0])
    def test_frequency_outside_cochlea(self, f0):
        with pytest.raises(ConfigurationError) as excinfo:
            ParameterSet.from_config(f0=f0)
        assert excinfo.value.key == 'f0'
        assert excinfo.value.value == f0

    @pytest.mark.parametrize("key, value", [('f0', 0), ('f0', -10), ('tEnd', 0), ('adB', np.nan)])
    def test_invalid_stimulus(self, key, value):
        with pytest.raises(ConfigurationError):
            ParameterSet.from_config(**{key: value})

    def test_invalid_physics(self):
        with pytest.raises(ConfigurationError) as excinfo:
            ParameterSet.from_config({'rho': -1.0})
        assert excinfo.value.key == 'rho'

    def test_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            ParameterSet.from_config({'lambda': 1.2e-7})
        with pytest.raises(ConfigurationError):
            ParameterSet.from_config(frequency=500)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ParameterSet.from_config(N=2)
