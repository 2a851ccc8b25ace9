import logging
import warnings
from dataclasses import dataclass

import numpy as np
from scipy import linalg, sparse
from scipy.sparse.linalg import splu

from .errors import SingularMatrixError

logger = logging.getLogger(__name__)

# 质量矩阵倒条件数下限，低于此值视为数值奇异
RCOND_MIN = 1e-12


def _freeze_sparse(mat):
    """CSR 矩阵数值只读化，后续运算只会生成新矩阵"""
    mat = mat.tocsr()
    mat.eliminate_zeros()
    mat.data.setflags(write=False)
    return mat


@dataclass(frozen=True, eq=False)
class SystemMatrices:
    """
    组装完成的状态空间矩阵 (只读)。

    F: (N, N)   流体耦合矩阵
    A: (2N, 2N) 分块对角状态矩阵
    B: (2N, N)  分块对角输入矩阵
    C: (N, 2N)  分块对角输出矩阵 (取每个分区的速度分量)
    S: (N, 1)   激励分布向量，只在卵圆窗处非零
    """
    F: sparse.csr_matrix
    A: sparse.csr_matrix
    B: sparse.csr_matrix
    C: sparse.csr_matrix
    S: sparse.csr_matrix

    @property
    def n_partitions(self):
        return self.F.shape[0]


class MatrixAssembler:
    # 类级缓存，存储只与分区数 N 相关的分块索引
    # Key: N
    # Value: (iIdxA, jIdxA, iIdxB, jIdxB, iIdxC, jIdxC, iIdxF, jIdxF)
    _BLOCK_CACHE = {}

    def __init__(self, params):
        self.params = params

    @staticmethod
    def init_blocks(N):
        """
        生成分块对角矩阵的 COO 索引。第 n 个分区 (0-based) 的状态占 2n, 2n+1 两个自由度。
        """
        if N in MatrixAssembler._BLOCK_CACHE:
            return MatrixAssembler._BLOCK_CACHE[N]

        base = 2 * np.arange(N)

        # A: 2x2 块, 元素顺序 (0,0), (0,1), (1,0), (1,1)
        iIdxA = (base[:, None] + np.array([0, 0, 1, 1])).flatten()
        jIdxA = (base[:, None] + np.array([0, 1, 0, 1])).flatten()

        # B: 2x1 块, 第 n 块位于第 n 列
        iIdxB = (base[:, None] + np.array([0, 1])).flatten()
        jIdxB = np.repeat(np.arange(N), 2)

        # C: 1x2 块, 第 n 块位于第 n 行
        iIdxC = np.repeat(np.arange(N), 2)
        jIdxC = (base[:, None] + np.array([0, 1])).flatten()

        # F: 第 1 行 (卵圆窗) 两项, 第 2..N-1 行三点格式, 第 N 行一项
        interior = np.arange(1, N - 1)
        iIdxF = np.concatenate([[0, 0], np.repeat(interior, 3), [N - 1]])
        jIdxF = np.concatenate([[0, 1], (interior[:, None] + np.array([-1, 0, 1])).flatten(), [N - 1]])

        result = (iIdxA, jIdxA, iIdxB, jIdxB, iIdxC, jIdxC, iIdxF, jIdxF)
        MatrixAssembler._BLOCK_CACHE[N] = result
        return result

    def fluid_coupling_values(self):
        p = self.params
        N, delta, H, rho = p.N, p.delta, p.H, p.rho

        vals = np.concatenate([
            [-delta / H, delta / H],
            np.tile([1.0, -2.0, 1.0], N - 2),
            [-2 * rho * delta ** 2 / H],
        ])
        return H / (2 * rho * delta ** 2) * vals

    def block_values(self):
        """每个分区的局部块 (A: 2x2, B: 2x1, C: 1x2)，按分区顺序排成定长数组"""
        p = self.params
        N = p.N

        sA = np.zeros((N, 4))
        # 分区 1: 卵圆窗振子
        sA[0] = [-p.gamma_ow, -p.omega_ow ** 2, 1.0, 0.0]
        # 分区 2..N-1: 基底膜振子
        sA[1:N - 1, 0] = -p.gamma_bm
        sA[1:N - 1, 1] = -p.omega_bm ** 2
        sA[1:N - 1, 2] = 1.0
        # 分区 N: 零块

        sB = np.zeros((N, 2))
        sB[0, 0] = 1.0 / p.sigma_ow
        sB[1:N - 1, 0] = 1.0 / p.sigma_bm

        sC = np.zeros((N, 2))
        sC[:, 0] = 1.0

        return sA.flatten(), sB.flatten(), sC.flatten()

    def assemble(self):
        N = self.params.N
        iIdxA, jIdxA, iIdxB, jIdxB, iIdxC, jIdxC, iIdxF, jIdxF = self.init_blocks(N)
        sA, sB, sC = self.block_values()

        # Sparse Matrix Assembly
        F = sparse.coo_matrix((self.fluid_coupling_values(), (iIdxF, jIdxF)), shape=(N, N))
        A = sparse.coo_matrix((sA, (iIdxA, jIdxA)), shape=(2 * N, 2 * N))
        B = sparse.coo_matrix((sB, (iIdxB, jIdxB)), shape=(2 * N, N))
        C = sparse.coo_matrix((sC, (iIdxC, jIdxC)), shape=(N, 2 * N))
        S = sparse.coo_matrix(([self.params.G_me], ([0], [0])), shape=(N, 1))

        logger.debug("Assembled system matrices: F %s, A %s (nnz=%d)", F.shape, A.shape, A.nnz)
        return SystemMatrices(*(_freeze_sparse(m) for m in (F, A, B, C, S)))


def assemble_system(params):
    return MatrixAssembler(params).assemble()


def invert_fluid_matrix(F):
    """
    F^{-1} (稠密)。F 奇异时抛出 SingularMatrixError，附带条件数估计。
    """
    N = F.shape[0]
    try:
        lu = splu(sparse.csc_matrix(F))
        F_inv = lu.solve(np.eye(N))
    except RuntimeError as e:
        raise SingularMatrixError(f"Fluid coupling matrix is not invertible: {e}",
                                  matrix='F', condition=np.linalg.cond(F.toarray())) from e

    if not np.all(np.isfinite(F_inv)):
        raise SingularMatrixError("Fluid coupling matrix inverse is not finite",
                                  matrix='F', condition=np.linalg.cond(F.toarray()))
    return F_inv


def compute_mass_matrix(system):
    """M = I - B F^{-1} C"""
    N = system.n_partitions
    F_inv = invert_fluid_matrix(system.F)
    BFC = system.B @ (F_inv @ system.C.toarray())
    return np.eye(2 * N) - BFC


class MassMatrix:
    """
    隐式质量矩阵 M = I - B F^{-1} C。

    M 与 t 和 Z 无关，构造时计算并 LU 分解一次，积分过程中只做回代。
    """

    def __init__(self, system):
        self.M = compute_mass_matrix(system)
        self.M.setflags(write=False)

        with warnings.catch_warnings():
            # 奇异性由下面的检查判定并抛出异常，不以警告形式放过
            warnings.simplefilter("ignore", linalg.LinAlgWarning)
            lu, piv = linalg.lu_factor(self.M, check_finite=False)
        if np.any(np.diag(lu) == 0):
            raise SingularMatrixError("Mass matrix is singular", matrix='M', condition=np.inf)

        # 由 LU 因子估计 1-范数倒条件数 (LAPACK gecon)
        gecon, = linalg.get_lapack_funcs(('gecon',), (lu,))
        rcond, _ = gecon(lu, np.linalg.norm(self.M, 1), norm='1')
        if not rcond >= RCOND_MIN:
            condition = 1.0 / rcond if rcond > 0 else np.inf
            raise SingularMatrixError("Mass matrix is numerically singular", matrix='M',
                                      condition=condition)
        self.condition = 1.0 / rcond
        self._lu_piv = (lu, piv)
        logger.debug("Mass matrix %s factorised, cond≈%.3e", self.M.shape, self.condition)

    @property
    def shape(self):
        return self.M.shape

    def solve(self, rhs):
        """解 M x = rhs"""
        return linalg.lu_solve(self._lu_piv, rhs, check_finite=False)


class ForcingFunction:
    """卵圆窗处的纯音声压 p(t) = a cos(2 pi f0 t)"""

    def __init__(self, amplitude, f0):
        self.amplitude = amplitude
        self.f0 = f0

    @classmethod
    def from_params(cls, params):
        return cls(params.amplitude, params.f0)

    def __call__(self, t):
        return self.amplitude * np.cos(2 * np.pi * self.f0 * t)


class StateDerivative:
    """
    质量矩阵形式 ODE  M dZ/dt = A Z + B S p(t)  的右端项。
    """

    def __init__(self, system, forcing):
        self.A = system.A
        # B*S 与时间无关，预先合成为一列
        self.BS = np.asarray((system.B @ system.S).toarray()).ravel()
        self.BS.setflags(write=False)
        self.forcing = forcing

    def __call__(self, t, Z):
        return self.A @ Z + self.BS * self.forcing(t)
