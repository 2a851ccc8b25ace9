import logging
import math
from dataclasses import dataclass, field

import numpy as np

from .defaults import PHYSICS_PARAMS, STIMULUS_CONFIG
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def db_to_pascal(adB, p_ref=PHYSICS_PARAMS['p_ref']):
    """dB SPL -> Pa: a = p_ref * 10^(adB/20)"""
    return p_ref * 10 ** (adB / 20.0)


def greenwood_position(f0, omega0, k_w):
    """Greenwood 映射的反函数：频率 f0 (Hz) 对应的距基底端距离 (m)"""
    return -math.log(2 * np.pi * f0 / omega0) / k_w


def _round_half_up(x):
    # MATLAB round: 0.5 远离零取整 (Python round 是银行家舍入)
    return int(math.floor(x + 0.5)) if x >= 0 else -int(math.floor(-x + 0.5))


def _frozen(arr):
    arr = np.asarray(arr, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class ParameterSet:
    """
    线性耳蜗模型的全部物理/几何参数，构造后不可修改。

    分区编号沿用模型约定：分区 1 为卵圆窗 (中耳) 单元，分区 2..N-1 为基底膜单元，
    分区 N 为边界零单元。omega_bm / gamma_bm 长度为 N-2，下标 i 对应第 i+2 个分区。
    """
    N: int
    f0: float
    adB: float
    tEnd: float

    L: float
    rho: float
    H: float
    omega0: float
    k_w: float
    Q: float
    gamma_ow: float
    sigma_ow: float
    K_ow: float
    sigma_bm: float
    G_me: float
    p_ref: float

    # 导出量
    delta: float = field(init=False)
    amplitude: float = field(init=False)
    omega_ow: float = field(init=False)
    omega_bm: np.ndarray = field(init=False, repr=False)
    gamma_bm: np.ndarray = field(init=False, repr=False)
    position: int = field(init=False)

    def __post_init__(self):
        self._validate()
        # frozen dataclass 只能通过 object.__setattr__ 写入导出量
        set_ = lambda name, value: object.__setattr__(self, name, value)

        delta = self.L / (self.N - 2)
        set_('delta', delta)
        set_('amplitude', db_to_pascal(self.adB, self.p_ref))
        set_('omega_ow', math.sqrt(self.K_ow / self.sigma_ow))

        # 1) Place-frequency map
        omega_bm = self.omega0 * np.exp(-self.k_w * (np.arange(1, self.N - 1) * delta))
        set_('omega_bm', _frozen(omega_bm))
        # 2) Passive linear damping
        set_('gamma_bm', _frozen(omega_bm / self.Q))

        # 理论共振位置 (分区下标, 1..N-2)
        position = _round_half_up(
            greenwood_position(self.f0, self.omega0, self.k_w) * (self.N - 2) / self.L)
        if position < 1 or position > self.N - 2:
            raise ConfigurationError(
                f"f0={self.f0} Hz maps to partition {position}, outside [1, {self.N - 2}]",
                key='f0', value=self.f0)
        set_('position', position)

        logger.debug("ParameterSet: N=%d, delta=%.3e m, amplitude=%.3e Pa, position=%d",
                     self.N, delta, self.amplitude, position)

    def _validate(self):
        if isinstance(self.N, bool) or not isinstance(self.N, (int, np.integer)):
            raise ConfigurationError(f"N must be an integer, got {self.N!r}", key='N', value=self.N)
        if self.N < 3:
            raise ConfigurationError(f"N must be >= 3, got {self.N}", key='N', value=self.N)
        if not (np.isfinite(self.f0) and self.f0 > 0):
            raise ConfigurationError(f"f0 must be > 0, got {self.f0}", key='f0', value=self.f0)
        if not (np.isfinite(self.tEnd) and self.tEnd > 0):
            raise ConfigurationError(f"tEnd must be > 0, got {self.tEnd}", key='tEnd', value=self.tEnd)
        # adB = -inf 表示无声 (幅值为 0)
        if np.isnan(self.adB) or self.adB == np.inf:
            raise ConfigurationError(f"adB must be a number or -inf, got {self.adB}",
                                     key='adB', value=self.adB)
        for key in PHYSICS_PARAMS:
            value = getattr(self, key)
            if not (np.isfinite(value) and value > 0):
                raise ConfigurationError(f"{key} must be finite and > 0, got {value}",
                                         key=key, value=value)

    @property
    def x(self):
        """基底膜分区的空间坐标 (m)，用于绘图"""
        return np.linspace(0, self.L, self.N - 2)

    @property
    def stimulus(self):
        return {'N': self.N, 'f0': self.f0, 'adB': self.adB, 'tEnd': self.tEnd}

    @classmethod
    def from_config(cls, physics_config=None, **stimulus):
        """
        由配置字典构造：默认值 + 覆盖项。

        Args:
            physics_config (dict): 覆盖 PHYSICS_PARAMS 中的物理常数
            **stimulus: N, f0, adB, tEnd 中的任意项，缺省取 STIMULUS_CONFIG

        Returns:
            ParameterSet
        """
        params = PHYSICS_PARAMS.copy()
        if physics_config:
            unknown = set(physics_config) - set(PHYSICS_PARAMS)
            if unknown:
                key = sorted(unknown)[0]
                raise ConfigurationError(f"Unknown physics parameter: {key}",
                                         key=key, value=physics_config[key])
            params.update(physics_config)

        stim = STIMULUS_CONFIG.copy()
        unknown = set(stimulus) - set(STIMULUS_CONFIG)
        if unknown:
            key = sorted(unknown)[0]
            raise ConfigurationError(f"Unknown stimulus parameter: {key}",
                                     key=key, value=stimulus[key])
        stim.update(stimulus)
        return cls(**stim, **params)
