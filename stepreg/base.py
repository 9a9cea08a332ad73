"""
@module: stepreg.base
@depends: stepreg.config, stepreg.dataset, stepreg.storage, stepreg.exceptions
@exports: BaseRegressor, SignificanceReporting, ValidationMetrics
@data_flow: dataset + config -> _fit -> persisted params -> predict/validate
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, List, Optional, Type

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import KFold

from stepreg.config import RegressorConfig
from stepreg.dataset import Dataset
from stepreg.exceptions import ConfigurationError
from stepreg.storage import ModelStore, StoreConfig

logger = logging.getLogger(__name__)

_CONFIG_KEY = "training_config"
_PARAMS_KEY = "model_params"


@dataclass
class ValidationMetrics:
    """Goodness-of-fit metrics computed on a dataset with known targets."""

    r2: float
    rmse: float
    mae: float
    sse: float
    n_samples: int

    @classmethod
    def from_predictions(cls, y_true: np.ndarray, y_pred: np.ndarray) -> "ValidationMetrics":
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)
        if len(y_true) == 0:
            raise ValueError("Cannot compute metrics on an empty dataset")

        residuals = y_true - y_pred
        return cls(
            r2=float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float("nan"),
            rmse=float(np.sqrt(mean_squared_error(y_true, y_pred))),
            mae=float(mean_absolute_error(y_true, y_pred)),
            sse=float(np.sum(residuals**2)),
            n_samples=len(y_true),
        )

    @classmethod
    def mean(cls, metrics: List["ValidationMetrics"]) -> "ValidationMetrics":
        """Average a list of metrics (e.g. across folds)."""
        if not metrics:
            raise ValueError("No metrics to average")
        averaged = {
            f.name: float(np.mean([getattr(m, f.name) for m in metrics]))
            for f in fields(cls)
            if f.name != "n_samples"
        }
        return cls(n_samples=sum(m.n_samples for m in metrics), **averaged)


class SignificanceReporting(ABC):
    """
    Capability of regressors that report per-feature p-values after fitting.

    Only regressors implementing it can be wrapped by StepwiseRegression.
    """

    @abstractmethod
    def feature_pvalues(self) -> Dict[str, float]:
        """Map every fitted feature (constant included) to its p-value."""


class BaseRegressor(ABC):
    """
    Base class for regressors with named, persisted model state.

    Subclasses implement `_fit` (which must set `self._params`) and
    `_predict`. The training config and params are saved to the store after
    fitting and reloaded lazily, so a new instance opened with the same name
    and store config can predict without re-fitting.
    """

    config_class: ClassVar[Type[RegressorConfig]] = RegressorConfig
    registry_name: ClassVar[Optional[str]] = None

    def __init__(self, name: str, store_config: StoreConfig):
        self.name = name
        self.store_config = store_config
        self._store: ModelStore = store_config.open(name)
        self._config: Optional[RegressorConfig] = None
        self._params: Any = None

    @property
    def config(self) -> Optional[RegressorConfig]:
        self._load_state()
        return self._config

    @property
    def params(self) -> Any:
        self._load_state()
        return self._params

    @property
    def is_fitted(self) -> bool:
        return self._params is not None or _PARAMS_KEY in self._store

    def fit(self, dataset: Dataset, config: Optional[RegressorConfig] = None) -> "BaseRegressor":
        """
        Fit the model and persist its state.

        Args:
            dataset: Training data (must have a target)
            config: Training configuration (default: `config_class()`)

        Returns:
            self
        """
        if config is None:
            config = self.config_class()
        if not isinstance(config, self.config_class):
            raise ConfigurationError(
                f"{type(self).__name__} expects a {self.config_class.__name__}, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Fitting {type(self).__name__} '{self.name}' on {dataset!r}")
        self._clear_state()
        self._config = copy.deepcopy(config)
        self._fit(dataset)

        self._store.save(_CONFIG_KEY, self._config)
        self._store.save(_PARAMS_KEY, self._params)
        return self

    def predict(self, dataset: Dataset) -> Dataset:
        """Predict and attach the predictions to `dataset` in place."""
        self._check_fitted("predict")
        self._predict(dataset)
        return dataset

    def validate(self, dataset: Dataset) -> ValidationMetrics:
        """Score the model on a dataset with known targets."""
        self._check_fitted("validate")
        return self._validate(dataset)

    def k_fold_cross_validation(
        self,
        dataset: Dataset,
        config: Optional[RegressorConfig],
        k: int,
    ) -> ValidationMetrics:
        """
        Estimate out-of-sample metrics with k-fold cross-validation.

        Each fold trains a temporary model that is erased afterwards; the
        state of this model is not touched.
        """
        if k < 2:
            raise ValueError("k must be at least 2")

        kf = KFold(n_splits=k, shuffle=True, random_state=42)
        fold_metrics: List[ValidationMetrics] = []
        for fold, (train_idx, test_idx) in enumerate(kf.split(np.arange(len(dataset)))):
            model = type(self)(f"{self.name}.fold{fold}", self.store_config)
            try:
                model.fit(dataset.subset(train_idx), config)
                metrics = model.validate(dataset.subset(test_idx))
            finally:
                model.erase()
            logger.debug(f"Fold {fold}: rmse={metrics.rmse:.4f} r2={metrics.r2:.4f}")
            fold_metrics.append(metrics)

        return ValidationMetrics.mean(fold_metrics)

    def erase(self) -> None:
        """Delete the persisted state of the model. The model can be re-fitted."""
        if self._store.closed:
            self._store = self.store_config.open(self.name)
        self._store.erase()
        self._store = self.store_config.open(self.name)
        self._config = None
        self._params = None

    def close(self) -> None:
        """Release the model's resources, keeping its persisted state."""
        self._store.close()
        self._config = None
        self._params = None

    def _validate(self, dataset: Dataset) -> ValidationMetrics:
        y = dataset.y
        self._predict(dataset)
        return ValidationMetrics.from_predictions(y.values, dataset.predictions.values)

    def _check_fitted(self, operation: str) -> None:
        if not self.is_fitted:
            raise RuntimeError(f"Must call fit() before {operation}()")
        self._load_state()

    def _load_state(self) -> None:
        if self._params is None and _PARAMS_KEY in self._store:
            self._config = self._store.load(_CONFIG_KEY)
            self._params = self._store.load(_PARAMS_KEY)
            logger.debug(f"Loaded persisted state of '{self.name}'")

    def _clear_state(self) -> None:
        if not self._store.is_empty():
            self.erase()
        self._config = None
        self._params = None

    @abstractmethod
    def _fit(self, dataset: Dataset) -> None:
        """Fit on `dataset` using `self._config`; must set `self._params`."""

    @abstractmethod
    def _predict(self, dataset: Dataset) -> None:
        """Attach predictions to `dataset`."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
