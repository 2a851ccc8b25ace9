import argparse
import logging
import os
import time
from concurrent.futures import ProcessPoolExecutor

import numpy as np
from tqdm import tqdm

from lin_cochlea import CochleaSimulator, CochleaModelError, STIMULUS_CONFIG
from lin_cochlea.utils import save_result_to_mat, save_sweep_summary, plot_displacement

# --- 全局变量 (仅在 Worker 进程中有效) ---
_SIMULATOR_INSTANCE = None


def init_worker(solver_config, verbose):
    """
    Worker 进程初始化函数。
    每个进程只运行一次，创建一个持久的仿真器 (内部按 N 缓存质量矩阵)。
    """
    global _SIMULATOR_INSTANCE
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    _SIMULATOR_INSTANCE = CochleaSimulator(solver_config=solver_config)


def process_single_frequency(args):
    """
    处理单个频率 (运行在 Worker 进程中)
    """
    f0, N, adB, tEnd, output_dir, plot = args

    global _SIMULATOR_INSTANCE
    try:
        result = _SIMULATOR_INSTANCE.run(f0=f0, N=N, adB=adB, tEnd=tEnd)
    except CochleaModelError as e:
        return f0, np.nan, np.nan, np.nan, str(e)

    save_result_to_mat(result, output_dir)
    if plot:
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots()
        plot_displacement(result, ax=ax,
                          save_path=os.path.join(output_dir, f"bm_displacement_N{N}_f0{f0:g}.png"))
        plt.close(fig)

    return f0, result.position, result.index, result.max_value, None


def main():
    parser = argparse.ArgumentParser(description="Linear Cochlear Model Batch Runner")
    parser.add_argument('--freqs', type=float, nargs='+', default=[STIMULUS_CONFIG['f0']],
                        help='Input frequencies (Hz)')
    parser.add_argument('--N', type=int, default=STIMULUS_CONFIG['N'],
                        help='Number of partitions (including 2 boundary elements)')
    parser.add_argument('--adB', type=float, default=STIMULUS_CONFIG['adB'], help='Amplitude (dB SPL)')
    parser.add_argument('--tEnd', type=float, default=STIMULUS_CONFIG['tEnd'], help='Duration (s)')
    parser.add_argument('--rtol', type=float, default=None)
    parser.add_argument('--atol', type=float, default=None)
    parser.add_argument('--workers', type=int, default=1, help='Number of parallel processes')
    parser.add_argument('--output', type=str, default='results', help='Output directory')
    parser.add_argument('--plot', action='store_true', help='Save BM displacement figures')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    solver_config = {}
    if args.rtol is not None:
        solver_config['rtol'] = args.rtol
    if args.atol is not None:
        solver_config['atol'] = args.atol

    if not os.path.exists(args.output):
        os.makedirs(args.output)

    tasks = [(f0, args.N, args.adB, args.tEnd, args.output, args.plot) for f0 in args.freqs]

    print(f"Simulating {len(tasks)} frequencies, N={args.N}, adB={args.adB}, tEnd={args.tEnd} s")
    print(f"Starting Process Pool with {args.workers} workers...")
    start_time = time.time()

    with ProcessPoolExecutor(max_workers=args.workers, initializer=init_worker,
                             initargs=(solver_config, args.verbose)) as executor:
        # executor.map 会保持提交顺序
        results = list(tqdm(executor.map(process_single_frequency, tasks),
                            total=len(tasks), desc="Frequencies"))

    save_sweep_summary(results, args.output, args.N, args.adB)

    print(f"\n{'f0 (Hz)':<10} | {'position':<10} | {'Index':<10} | {'Maxvalue':<12}")
    print("-" * 50)
    for f0, position, index, max_value, error in results:
        if error is not None:
            print(f"{f0:<10g} | FAILED: {error}")
        else:
            print(f"{f0:<10g} | {position:<10d} | {index:<10d} | {max_value:<12.4e}")

    elapsed = time.time() - start_time
    print(f"\n✅ Saved results to {args.output} (Time: {elapsed:.2f}s)")


if __name__ == '__main__':
    main()
