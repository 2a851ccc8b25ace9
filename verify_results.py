import argparse
import os

from lin_cochlea import load_result_from_mat


def check_accuracy(py_path, mat_path, rtol=0.05):
    print("--- 开始精度对比 ---")

    # 1. 加载 Python 计算结果
    if not os.path.exists(py_path):
        print("❌ 找不到 Python 结果，请先运行 batch_runner.py")
        return False

    # 2. 加载 MATLAB 真值
    if not os.path.exists(mat_path):
        print("❌ 找不到验证数据 file")
        return False

    py = load_result_from_mat(py_path)
    ref = load_result_from_mat(mat_path)

    for key in ('f0', 'N', 'tEnd', 'adB'):
        if py[key] != ref[key]:
            print(f"❌ 参数不一致: {key} = {py[key]} (Python) vs {ref[key]} (MATLAB)")
            return False

    # 3. 比较共振位置与最大位移 (两边的自适应步长不同，不逐点比较 Y)
    rel_err = abs(py['Maxvalue'] - ref['Maxvalue']) / abs(ref['Maxvalue'])

    print(f"{'':<10} | {'MATLAB':<15} | {'Python':<15}")
    print("-" * 45)
    print(f"{'position':<10} | {ref['position']:<15d} | {py['position']:<15d}")
    print(f"{'Index':<10} | {ref['Index']:<15d} | {py['Index']:<15d}")
    print(f"{'Maxvalue':<10} | {ref['Maxvalue']:<15.6e} | {py['Maxvalue']:<15.6e}")
    print(f"{'samples':<10} | {ref['T'].size:<15d} | {py['T'].size:<15d}")
    print("-" * 45)
    print(f"最大位移相对误差: {rel_err:.4e}")

    if py['position'] == ref['position'] and py['Index'] == ref['Index'] and rel_err < rtol:
        print("\n✅ 共振位置一致，最大位移误差在容差内。")
        return True
    elif abs(py['Index'] - ref['Index']) <= 1:
        print("\n⚠️ 共振位置相差一个分区 (可接受)。通常由积分步长差异引起。")
        return True
    else:
        print("\n❌ 误差较大，请检查物理参数是否与 MATLAB 完全一致。")
        return False


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Compare a Python result with a MATLAB reference")
    parser.add_argument('--python', type=str, default='results/lin_cochlea_N100_f0500_a80.mat')
    parser.add_argument('--matlab', type=str, default='data/Casarini_C_lin_cochlear_model_N100_f0500_a80.mat')
    parser.add_argument('--rtol', type=float, default=0.05)
    args = parser.parse_args()
    check_accuracy(args.python, args.matlab, args.rtol)
