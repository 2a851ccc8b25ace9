import os
if os.environ.get("LIN_COCHLEA_FORCE_SINGLE_THREAD", "True") == "True":
    os.environ["OMP_NUM_THREADS"] = "1"
    os.environ["MKL_NUM_THREADS"] = "1"
    os.environ["OPENBLAS_NUM_THREADS"] = "1"
    os.environ["VECLIB_MAXIMUM_THREADS"] = "1"
    os.environ["NUMEXPR_NUM_THREADS"] = "1"

# lin_cochlea/__init__.py
from .simulation import CochleaSimulator, SimulationResult
from .params import ParameterSet

# 也可以直接暴露常用的配置，方便外部修改
from .defaults import PHYSICS_PARAMS, STIMULUS_CONFIG, SOLVER_CONFIG
from .errors import CochleaModelError, ConfigurationError, SingularMatrixError, IntegrationFailure

from .utils import save_result_to_mat, load_result_from_mat, plot_displacement

__all__ = ['CochleaSimulator', 'SimulationResult', 'ParameterSet',
           'PHYSICS_PARAMS', 'STIMULUS_CONFIG', 'SOLVER_CONFIG',
           'CochleaModelError', 'ConfigurationError', 'SingularMatrixError', 'IntegrationFailure',
           'save_result_to_mat', 'load_result_from_mat', 'plot_displacement']
