import numpy as np

# 物理常数配置 (与 MATLAB lin_cochlear_model 保持一致)
PHYSICS_PARAMS = {
    'L': 3.5e-2,                 # 基底膜长度 (m)
    'rho': 1e3,                  # 流体密度 (kg/m^3)
    'H': 1e-3,                   # 耳蜗管高度 (m)
    'omega0': 2.0655e4 * 2 * np.pi,  # Greenwood 频率系数 (1/s)
    'k_w': 1.382e2,              # Greenwood 长度尺度倒数 (1/m)
    'Q': 8,                      # 调谐参数, gamma_bm = omega_bm / Q
    'gamma_ow': 5e3,             # 中耳-卵圆窗 等效阻尼 (1/s)
    'sigma_ow': 2,               # 中耳-卵圆窗 等效面密度 (kg/m^2)
    'K_ow': 2e8,                 # 中耳-卵圆窗 等效刚度 (N/m^3)
    'sigma_bm': 5.5e-2,          # 基底膜面密度 (kg/m^2)
    'G_me': 21.4,                # 听小骨机械增益
    'p_ref': 2e-5                # 0 dB SPL 参考声压 (Pa)
}

# 刺激配置
STIMULUS_CONFIG = {
    'N': 100,       # 微机械单元数 (含 2 个边界单元)
    'f0': 500,      # 输入频率 (Hz)
    'adB': 80,      # 幅值 (dB SPL)
    'tEnd': 0.02    # 仿真时长 (s)
}

# 积分器配置 (rtol/atol 取 ode45 默认值)
SOLVER_CONFIG = {
    'method': 'RK45',
    'rtol': 1e-3,
    'atol': 1e-6,
    'max_step': np.inf,
    'max_evaluations': 5_000_000
}
