"""
@module: stepreg
@depends:
@exports: StepwiseRegression, TrainingConfig, BackwardElimination, Dataset, OLSRegressor, RidgeRegressor
@data_flow: public API imports
"""

from stepreg.base import BaseRegressor, SignificanceReporting, ValidationMetrics
from stepreg.config import (
    RegressorConfig,
    TrainingConfig,
    build_store_config,
    build_training_config,
    load_config,
)
from stepreg.dataset import CONSTANT_COLUMN, Dataset
from stepreg.elimination import (
    BackwardElimination,
    EliminationResult,
    EliminationStep,
    TerminationState,
)
from stepreg.exceptions import ConfigurationError, StepwiseError, UnsupportedOperationError
from stepreg.linear import OLSConfig, OLSRegressor, RidgeConfig, RidgeRegressor
from stepreg.registry import (
    create_regressor,
    get_regressor,
    is_stepwise_compatible,
    list_regressors,
    register_regressor,
)
from stepreg.stepwise import StepwiseRegression
from stepreg.storage import FileStoreConfig, MemoryStoreConfig, StoreConfig

__version__ = "0.1.0"
__all__ = [
    # Core
    "StepwiseRegression",
    "BackwardElimination",
    "EliminationResult",
    "EliminationStep",
    "TerminationState",
    # Configuration
    "TrainingConfig",
    "RegressorConfig",
    "load_config",
    "build_training_config",
    "build_store_config",
    # Regressors
    "BaseRegressor",
    "SignificanceReporting",
    "ValidationMetrics",
    "OLSRegressor",
    "OLSConfig",
    "RidgeRegressor",
    "RidgeConfig",
    "register_regressor",
    "get_regressor",
    "create_regressor",
    "is_stepwise_compatible",
    "list_regressors",
    # Data + storage
    "Dataset",
    "CONSTANT_COLUMN",
    "StoreConfig",
    "MemoryStoreConfig",
    "FileStoreConfig",
    # Errors
    "StepwiseError",
    "ConfigurationError",
    "UnsupportedOperationError",
]
