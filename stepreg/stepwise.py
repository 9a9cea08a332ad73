"""
@module: stepreg.stepwise
@depends: stepreg.base, stepreg.config, stepreg.elimination, stepreg.registry, stepreg.meta
@exports: StepwiseRegression, StepwiseParams
@data_flow: dataset -> backward elimination -> final delegate fit -> predictions
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from stepreg.base import BaseRegressor, ValidationMetrics
from stepreg.config import RegressorConfig, TrainingConfig
from stepreg.dataset import Dataset
from stepreg.elimination import BackwardElimination, EliminationResult
from stepreg.exceptions import UnsupportedOperationError
from stepreg.meta import component
from stepreg.registry import create_regressor, register_regressor
from stepreg.storage import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class StepwiseParams:
    """Bookkeeping of a stepwise fit. The learned coefficients live in the delegate."""

    selected_features: List[str]
    removed_features: List[str]
    termination: str
    iterations: int


@component(
    name="StepwiseRegression",
    responsibility="Backward-elimination wrapper owning the lifecycle of its delegate regressor",
    depends_on=["BackwardElimination", "TrainingConfig", "BaseRegressor"],
)
@register_regressor("stepwise")
class StepwiseRegression(BaseRegressor):
    """
    Stepwise regression with backward elimination.

    Wraps a stepwise-compatible regressor (see `SignificanceReporting`):
    features are removed one at a time, highest p-value first, until every
    remaining feature has a p-value <= `a_out`. A final delegate is then
    fitted on the retained features and serves predict/validate.

    The delegate is persisted under `<name>.delegate` and reconstructed
    lazily, so a new StepwiseRegression opened with the same name and store
    config can predict without re-fitting.

    Example:
        >>> config = TrainingConfig(regressor_type="ols", a_out=0.05)
        >>> model = StepwiseRegression("price_model", MemoryStoreConfig())
        >>> model.fit(Dataset(train_df, target_col="price"), config)
        >>> model.selected_features
        ['sqft', 'rooms']
        >>> metrics = model.validate(Dataset(test_df, target_col="price"))
    """

    config_class = TrainingConfig

    def __init__(self, name: str, store_config: StoreConfig):
        super().__init__(name, store_config)
        self._delegate: Optional[BaseRegressor] = None
        self._elimination_result: Optional[EliminationResult] = None

    @property
    def delegate_name(self) -> str:
        return f"{self.name}.delegate"

    @property
    def delegate(self) -> BaseRegressor:
        """The live delegate regressor, reconstructed from storage if needed."""
        return self._ensure_delegate()

    @property
    def elimination_result(self) -> Optional[EliminationResult]:
        """Outcome of the last elimination run in this process; not persisted."""
        return self._elimination_result

    @property
    def selected_features(self) -> List[str]:
        self._check_fitted("selected_features")
        return list(self._params.selected_features)

    def k_fold_cross_validation(
        self,
        dataset: Dataset,
        config: Optional[RegressorConfig],
        k: int,
    ) -> ValidationMetrics:
        raise UnsupportedOperationError(
            "K-fold cross validation is not supported. "
            "Run it directly on the wrapped regressor."
        )

    def erase(self) -> None:
        if self._store.closed:
            self._store = self.store_config.open(self.name)
        delegate = self._persisted_delegate()
        if delegate is not None:
            delegate.erase()
        self._delegate = None
        self._elimination_result = None
        super().erase()

    def close(self) -> None:
        if self._store.closed:
            return
        delegate = self._persisted_delegate()
        if delegate is not None:
            delegate.close()
        self._delegate = None
        super().close()

    def _fit(self, dataset: Dataset) -> None:
        config: TrainingConfig = self._config

        engine = BackwardElimination(config, self.store_config, self.name)
        result = engine.run(dataset)

        logger.info(f"Fitting final delegate on {result.selected_features}")
        delegate = create_regressor(config.regressor_type, self.delegate_name, self.store_config)
        try:
            delegate.fit(result.dataset, config.regressor_config)
        finally:
            result.dataset.erase()

        self._delegate = delegate
        self._elimination_result = result
        self._params = StepwiseParams(
            selected_features=result.selected_features,
            removed_features=result.removed_features,
            termination=result.state.value,
            iterations=result.iterations,
        )

    def _predict(self, dataset: Dataset) -> None:
        self._ensure_delegate().predict(dataset)

    def _validate(self, dataset: Dataset) -> ValidationMetrics:
        return self._ensure_delegate().validate(dataset)

    def _ensure_delegate(self) -> BaseRegressor:
        if self._delegate is None:
            config = self.config
            if config is None:
                raise RuntimeError("Must call fit() before using the delegate regressor")
            self._delegate = create_regressor(
                config.regressor_type, self.delegate_name, self.store_config
            )
            logger.debug(f"Reconstructed delegate '{self.delegate_name}' from storage")
        return self._delegate

    def _persisted_delegate(self) -> Optional[BaseRegressor]:
        """The delegate if one is loaded or persisted, else None."""
        if self._delegate is not None:
            return self._delegate
        if not self.is_fitted:
            return None
        return self._ensure_delegate()
