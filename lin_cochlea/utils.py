import logging
import os

import h5py
import numpy as np
import scipy.io as sio

logger = logging.getLogger(__name__)

RECORD_SCALARS = ('Index', 'Maxvalue', 'position', 'f0', 'N', 'tEnd', 'adB')


def result_filename(N, f0, adB):
    return f"lin_cochlea_N{int(N)}_f0{f0:g}_a{adB:g}.mat"


def save_result_to_mat(result, output_dir):
    """保存 Y, T, Index, Maxvalue, position, f0, N, tEnd, adB 为 .mat"""
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)
    path = os.path.join(output_dir, result_filename(result.N, result.f0, result.adB))
    sio.savemat(path, result.to_record())
    logger.info("Result saved to %s", path)
    return path


def _unpack_record(raw):
    record = {'Y': np.asarray(raw['Y'], dtype=float),
              'T': np.asarray(raw['T'], dtype=float).ravel()}
    for key in RECORD_SCALARS:
        record[key] = np.asarray(raw[key]).ravel()[0].item()
    for key in ('Index', 'position', 'N'):
        record[key] = int(record[key])
    return record


def load_result_from_mat(file_path):
    """
    读取 .mat 结果文件 (自动识别 v7.3 或旧版本)
    """
    try:
        # v7.3 (HDF5): 矩阵需要转置 (MATLAB 列优先)
        with h5py.File(file_path, 'r') as f:
            raw = {key: np.array(f[key]).T for key in ('Y', 'T') + RECORD_SCALARS}
    except OSError:
        # 不是 v7.3，回退到 scipy 读取
        raw = sio.loadmat(file_path)
    return _unpack_record(raw)


def plot_displacement(result, ax=None, save_path=None):
    """
    绘制接近结束时刻的基底膜位移，并标出观测到的共振位置。
    """
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots()

    d = result.displacement
    y_min, y_max = float(d.min()), float(d.max())
    place = result.resonant_place_m

    ax.plot(result.x, result.snapshot, 'r', label='BM displacement')
    ax.plot(place * np.ones(100), np.linspace(y_min, y_max, 100), 'c', label='Resonant place')
    if y_max > y_min:
        ax.axis([0, result.L, y_min, y_max])
    else:
        ax.set_xlim(0, result.L)
    ax.set_xlabel('BM length (m)')
    ax.set_ylabel('Amplitude (m)')
    ax.set_title('BM DISPLACEMENT')
    ax.legend(loc='upper left')

    if save_path is not None:
        ax.figure.savefig(save_path)
        logger.info("Figure saved to %s", save_path)
    return ax


SUMMARY_COLUMNS = ('f0', 'position', 'Index', 'Maxvalue')


def save_sweep_summary(rows, output_dir, N, adB):
    """
    扫频汇总保存为 .npy，每行 (f0, position, Index, Maxvalue)，失败的频率为 NaN。
    """
    n_cols = len(SUMMARY_COLUMNS)
    summary = np.array([row[:n_cols] for row in rows], dtype=float).reshape(-1, n_cols)
    path = os.path.join(output_dir, f'summary_N{int(N)}_a{adB:g}.npy')
    np.save(path, summary)
    logger.info("Summary saved to %s", path)
    return path
