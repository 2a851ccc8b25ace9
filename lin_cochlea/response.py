from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class Response:
    displacement: np.ndarray   # (n_samples, N-2) 基底膜位移
    velocity: np.ndarray       # (n_samples, N-2) 基底膜速度
    index: int                 # 观测到的共振分区 (1..N-2)
    max_value: float           # 最大位移
    snapshot: np.ndarray       # (N-2,) 接近结束时刻的位移，用于绘图
    snapshot_row: int


def snapshot_row_index(n_samples, offset=1):
    """
    代表性时刻的行号：倒数第 (offset+1) 行，默认倒数第二行。轨迹过短时取第 0 行。
    """
    return max(n_samples - 1 - offset, 0)


def extract_response(trajectory, N, snapshot_offset=1):
    """
    从轨迹中取出分区 2..N-1 的位移与速度，定位最大位移及其所在分区。

    状态列按分区交错排列：第 n 个分区 (1-based) 的速度在第 2n-2 列，位移在第 2n-1 列。

    Args:
        trajectory (Trajectory): 积分结果
        N (int): 分区数
        snapshot_offset (int): 代表性时刻距最后一行的偏移

    Returns:
        Response
    """
    Y = trajectory.Y

    # 位移: 偶数分量 (MATLAB 4:2:2N-2)，速度: 奇数分量 (MATLAB 3:2:2N-3)
    y_displacement = Y[:, 3:2 * N - 2:2]
    y_velocity = Y[:, 2:2 * N - 3:2]

    col_max = y_displacement.max(axis=0)
    col = int(np.argmax(col_max))

    row = snapshot_row_index(Y.shape[0], snapshot_offset)

    return Response(
        displacement=y_displacement,
        velocity=y_velocity,
        index=col + 1,
        max_value=float(col_max[col]),
        snapshot=y_displacement[row],
        snapshot_row=row,
    )
