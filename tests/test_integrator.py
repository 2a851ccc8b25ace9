"""
Unit tests for the mass-matrix ODE integrator.
"""

import numpy as np
import pytest

from lin_cochlea import IntegrationFailure, ParameterSet
from lin_cochlea.core import ForcingFunction, MassMatrix, StateDerivative, assemble_system
from lin_cochlea.integrator import Trajectory, integrate


def build(N=20, f0=500, adB=80, tEnd=0.005):
    params = ParameterSet.from_config(N=N, f0=f0, adB=adB, tEnd=tEnd)
    system = assemble_system(params)
    mass = MassMatrix(system)
    derivative = StateDerivative(system, ForcingFunction.from_params(params))
    return params, mass, derivative


class TestIntegrate:
    def test_time_samples(self):
        params, mass, derivative = build()
        traj = integrate(mass, derivative, params.tEnd)
        assert traj.T[0] == 0.0
        assert traj.T[-1] == pytest.approx(params.tEnd)
        assert np.all(np.diff(traj.T) > 0)
        assert traj.Y.shape == (len(traj), 2 * params.N)
        assert traj.n_evaluations > 0

    def test_zero_amplitude_stays_at_rest(self):
        params, mass, derivative = build(adB=-np.inf)
        traj = integrate(mass, derivative, params.tEnd)
        assert np.all(traj.Y == 0)

    def test_last_partition_stays_at_rest(self):
        params, mass, derivative = build()
        traj = integrate(mass, derivative, params.tEnd)
        assert np.max(np.abs(traj.Y[:, -2:])) <= 1e-12 * np.max(np.abs(traj.Y))
        assert np.max(np.abs(traj.Y[:, 3:-2:2])) > 0

    def test_deterministic(self):
        params, mass, derivative = build()
        first = integrate(mass, derivative, params.tEnd)
        second = integrate(mass, derivative, params.tEnd)
        np.testing.assert_array_equal(first.T, second.T)
        np.testing.assert_array_equal(first.Y, second.Y)

    def test_short_horizon(self):
        # 不足一个刺激周期
        params, mass, derivative = build(tEnd=1e-4)
        traj = integrate(mass, derivative, params.tEnd)
        assert len(traj) >= 2
        assert traj.T[-1] == pytest.approx(1e-4)

    def test_initial_state(self):
        params, mass, derivative = build(adB=-np.inf)
        Z0 = np.zeros(2 * params.N)
        Z0[1] = 1e-9
        traj = integrate(mass, derivative, params.tEnd, Z0=Z0)
        np.testing.assert_array_equal(traj.Y[0], Z0)
        assert np.any(traj.Y[-1] != Z0)

    def test_tolerance_override(self):
        params, mass, derivative = build()
        loose = integrate(mass, derivative, params.tEnd)
        tight = integrate(mass, derivative, params.tEnd, {'rtol': 1e-6, 'atol': 1e-10})
        assert tight.n_evaluations > loose.n_evaluations


class TestIntegrationFailure:
    def test_evaluation_ceiling(self):
        params, mass, derivative = build()
        with pytest.raises(IntegrationFailure) as excinfo:
            integrate(mass, derivative, params.tEnd, {'max_evaluations': 10})
        assert excinfo.value.t_last is not None
        assert 0 <= excinfo.value.t_last < params.tEnd
        assert "right-hand-side evaluations" in excinfo.value.message

    def test_ceiling_reports_accepted_time(self):
        params, mass, derivative = build()
        full = integrate(mass, derivative, params.tEnd)
        with pytest.raises(IntegrationFailure) as excinfo:
            integrate(mass, derivative, params.tEnd, {'max_evaluations': 40})
        # 必须是完整积分中某个接受步的时刻，而不是被拒绝步的试探时刻
        assert excinfo.value.t_last in set(full.T.tolist())
        assert excinfo.value.t_last > 0

    def test_non_finite_state(self):
        params, mass, _ = build()

        def blow_up(t, Z):
            return np.full_like(Z, np.inf) if t > 1e-4 else np.ones_like(Z)

        with pytest.raises(IntegrationFailure) as excinfo:
            integrate(mass, blow_up, params.tEnd)
        assert excinfo.value.message
        assert excinfo.value.t_last <= 1e-4


class TestTrajectory:
    def test_read_only(self):
        traj = Trajectory(T=np.array([0.0, 1.0]), Y=np.zeros((2, 4)))
        with pytest.raises(ValueError):
            traj.Y[0, 0] = 1.0
        with pytest.raises(ValueError):
            traj.T[0] = 1.0
