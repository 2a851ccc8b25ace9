import logging
import time
from dataclasses import dataclass

import numpy as np
from scipy import integrate as sp_integrate

from .defaults import SOLVER_CONFIG
from .errors import IntegrationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Trajectory:
    """
    T: (n_samples,) 采样时刻，严格递增，从 0 到 tEnd
    Y: (n_samples, 2N) 每行一个时刻的状态，列按分区交错排列 (速度, 位移)
    """
    T: np.ndarray
    Y: np.ndarray
    n_evaluations: int = 0

    def __post_init__(self):
        self.T.setflags(write=False)
        self.Y.setflags(write=False)

    def __len__(self):
        return self.T.size


def integrate(mass, derivative, t_end, solver_config=None, Z0=None):
    """
    在 [0, t_end] 上积分 M dZ/dt = f(t, Z)。

    M 为常数矩阵，已在 MassMatrix 中 LU 分解，这里把系统转为 dZ/dt = M^{-1} f(t, Z)
    后交给 scipy 的自适应显式求解器 (默认 RK45, 对应 MATLAB ode45)，逐步推进并记录
    每个接受的步。

    Args:
        mass (MassMatrix): 已分解的质量矩阵
        derivative (callable): f(t, Z)
        t_end (float): 仿真时长 (s)
        solver_config (dict): 覆盖 SOLVER_CONFIG
        Z0 (np.ndarray): 初始状态，默认全零

    Returns:
        Trajectory

    Raises:
        IntegrationFailure: 求解器失败、右端项调用次数超过 max_evaluations 或状态出现非有限值，
            t_last 为最后一个接受步的时刻
    """
    config = SOLVER_CONFIG.copy()
    if solver_config:
        config.update(solver_config)

    n_state = mass.shape[0]
    if Z0 is None:
        Z0 = np.zeros(n_state)
    max_evaluations = int(config['max_evaluations'])

    def rhs(t, Z):
        return mass.solve(derivative(t, Z))

    # 'RK45' / 'RK23' / 'DOP853' 对应 scipy.integrate 中的同名求解器类
    solver_cls = getattr(sp_integrate, config['method'])
    solver = solver_cls(rhs, 0.0, np.asarray(Z0, dtype=float), t_end,
                        rtol=config['rtol'], atol=config['atol'], max_step=config['max_step'])

    ts = [solver.t]
    ys = [solver.y.copy()]

    tstart = time.time()
    while solver.status == 'running':
        t_last = ts[-1]
        message = solver.step()
        if solver.status == 'failed':
            raise IntegrationFailure(f"Solver failed: {message}", t_last=t_last)
        if not np.all(np.isfinite(solver.y)):
            raise IntegrationFailure("State became non-finite", t_last=t_last)
        ts.append(solver.t)
        ys.append(solver.y.copy())
        if solver.nfev > max_evaluations and solver.status == 'running':
            raise IntegrationFailure(
                f"Exceeded {max_evaluations} right-hand-side evaluations", t_last=solver.t)
    elapsed = time.time() - tstart

    logger.info("Integrated %d states over [0, %g] s: %d samples, %d evaluations, %.2f s",
                n_state, t_end, len(ts), solver.nfev, elapsed)
    return Trajectory(T=np.array(ts), Y=np.array(ys), n_evaluations=solver.nfev)
