"""异常类型。三种错误对当前仿真都不可恢复，必须抛给调用方。"""


class CochleaModelError(Exception):
    """lin_cochlea 所有异常的基类"""


class ConfigurationError(CochleaModelError, ValueError):
    """参数非法 (N 太小, f0 映射到分区范围之外等)"""

    def __init__(self, message, key=None, value=None):
        super().__init__(message)
        self.key = key
        self.value = value


class SingularMatrixError(CochleaModelError):
    """流体耦合矩阵 F (或质量矩阵 M) 不可逆"""

    def __init__(self, message, matrix='F', condition=float('inf')):
        super().__init__(f"{message} (matrix={matrix}, cond≈{condition:.3e})")
        self.matrix = matrix
        self.condition = condition


class IntegrationFailure(CochleaModelError):
    """自适应积分器无法在给定容差/步数内收敛"""

    def __init__(self, message, t_last=None):
        self.message = message
        self.t_last = t_last
        if t_last is not None:
            message = f"{message} (last successful t={t_last:.6g} s)"
        super().__init__(message)
