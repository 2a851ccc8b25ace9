# lin_cochlea/simulation.py
import logging
import time
from dataclasses import dataclass

import numpy as np

from .core import ForcingFunction, MassMatrix, StateDerivative, assemble_system
from .defaults import PHYSICS_PARAMS, SOLVER_CONFIG, STIMULUS_CONFIG
from .errors import ConfigurationError
from .integrator import integrate
from .params import ParameterSet
from .response import extract_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SimulationResult:
    T: np.ndarray
    Y: np.ndarray
    index: int
    max_value: float
    position: int
    f0: float
    N: int
    tEnd: float
    adB: float

    displacement: np.ndarray
    velocity: np.ndarray
    snapshot: np.ndarray
    snapshot_row: int
    x: np.ndarray
    L: float
    elapsed_s: float = 0.0
    n_evaluations: int = 0

    @property
    def resonant_place_m(self):
        """观测到的共振位置距基底端的距离 (m)"""
        return self.index * self.L / (self.N - 2)

    @property
    def theoretical_place_m(self):
        return self.position * self.L / (self.N - 2)

    def to_record(self):
        """保存到 .mat 的字段 (与 MATLAB 版本同名)"""
        return {
            'Y': self.Y,
            'T': self.T,
            'Index': self.index,
            'Maxvalue': self.max_value,
            'position': self.position,
            'f0': self.f0,
            'N': self.N,
            'tEnd': self.tEnd,
            'adB': self.adB,
        }


class CochleaSimulator:
    """
    高层封装接口：根据刺激参数组装模型、积分并提取共振位置。
    """

    def __init__(self, physics_config=None, solver_config=None, snapshot_offset=1):
        if physics_config:
            unknown = set(physics_config) - set(PHYSICS_PARAMS)
            if unknown:
                key = sorted(unknown)[0]
                raise ConfigurationError(f"Unknown physics parameter: {key}",
                                         key=key, value=physics_config[key])
        self.physics_config = PHYSICS_PARAMS.copy()
        if physics_config:
            self.physics_config.update(physics_config)

        self.solver_config = SOLVER_CONFIG.copy()
        if solver_config:
            self.solver_config.update(solver_config)

        self.snapshot_offset = snapshot_offset
        # 系统矩阵与质量矩阵只依赖 N 和物理常数，按 N 缓存 (扫频时复用)
        self._model_cache = {}

    def make_params(self, **stimulus):
        return ParameterSet.from_config(self.physics_config, **stimulus)

    def _model(self, params):
        if params.N not in self._model_cache:
            system = assemble_system(params)
            self._model_cache[params.N] = (system, MassMatrix(system))
        return self._model_cache[params.N]

    def run(self, f0=None, N=None, adB=None, tEnd=None):
        """
        标准接口：单一纯音刺激下的基底膜响应

        Args:
            f0 (float): 输入频率 (Hz)
            N (int): 分区数 (含 2 个边界单元)
            adB (float): 刺激声压级 (dB SPL)
            tEnd (float): 仿真时长 (s)
            缺省值取 STIMULUS_CONFIG

        Returns:
            SimulationResult
        """
        stimulus = {k: v for k, v in
                    (('f0', f0), ('N', N), ('adB', adB), ('tEnd', tEnd)) if v is not None}
        stim = STIMULUS_CONFIG.copy()
        stim.update(stimulus)
        params = self.make_params(**stim)

        tstart = time.time()

        # 1. 组装矩阵 + 质量矩阵 (优先从缓存)
        system, mass = self._model(params)

        # 2. 右端项
        forcing = ForcingFunction.from_params(params)
        derivative = StateDerivative(system, forcing)

        # 3. 积分
        trajectory = integrate(mass, derivative, params.tEnd, self.solver_config)

        # 4. 提取共振位置
        response = extract_response(trajectory, params.N, self.snapshot_offset)

        elapsed = time.time() - tstart
        logger.info("f0=%g Hz, N=%d: Y %s, Index=%d (expected %d), Maxvalue=%.3e, %.2f s",
                    params.f0, params.N, trajectory.Y.shape, response.index,
                    params.position, response.max_value, elapsed)

        return SimulationResult(
            T=trajectory.T,
            Y=trajectory.Y,
            index=response.index,
            max_value=response.max_value,
            position=params.position,
            f0=params.f0,
            N=params.N,
            tEnd=params.tEnd,
            adB=params.adB,
            displacement=response.displacement,
            velocity=response.velocity,
            snapshot=response.snapshot,
            snapshot_row=response.snapshot_row,
            x=params.x,
            L=params.L,
            elapsed_s=elapsed,
            n_evaluations=trajectory.n_evaluations,
        )
