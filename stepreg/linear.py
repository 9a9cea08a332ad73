"""
@module: stepreg.linear
@depends: stepreg.base, stepreg.config, stepreg.dataset, stepreg.registry, scipy, sklearn
@exports: OLSRegressor, OLSConfig, OLSParams, RidgeRegressor, RidgeConfig, RidgeParams
@data_flow: dataset -> design matrix -> coefficients (+ p-values) -> predictions

Linear regressors usable as delegates of StepwiseRegression.

OLSRegressor reports per-feature p-values (t-test on each coefficient) and is
therefore stepwise compatible. RidgeRegressor does not.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LinearRegression, Ridge

from stepreg.base import BaseRegressor, SignificanceReporting
from stepreg.config import RegressorConfig
from stepreg.dataset import CONSTANT_COLUMN, Dataset
from stepreg.meta import component
from stepreg.registry import register_regressor

logger = logging.getLogger(__name__)


def _clean_design(
    dataset: Dataset, features: List[str], drop_missing: bool
) -> Tuple[pd.DataFrame, pd.Series]:
    """Return the design matrix and target restricted to finite rows."""
    X = dataset.design_matrix(features)
    y = dataset.y.astype(float)

    finite = np.isfinite(X.values).all(axis=1) & np.isfinite(y.values)
    n_bad = int((~finite).sum())
    if n_bad:
        if not drop_missing:
            raise ValueError(f"Training data contains {n_bad} rows with missing or infinite values")
        logger.warning(f"Dropping {n_bad} rows with missing or infinite values")
        X = X.loc[finite]
        y = y.loc[finite]

    if len(y) == 0:
        raise ValueError("No rows left after dropping missing values")
    return X, y


@dataclass
class OLSConfig(RegressorConfig):
    """Training configuration of OLSRegressor."""

    drop_missing: bool = True


@dataclass
class OLSParams:
    """Learned OLS state. All dicts are keyed by feature, constant included."""

    features: List[str]
    coefficients: Dict[str, float]
    std_errors: Dict[str, float]
    pvalues: Dict[str, float]
    r2: float
    n_samples: int
    dof: int


@component(
    name="OLSRegressor",
    responsibility="Ordinary least squares with per-coefficient t-test p-values",
    depends_on=["BaseRegressor", "SignificanceReporting"],
)
@register_regressor("ols")
class OLSRegressor(SignificanceReporting, BaseRegressor):
    """
    Ordinary least squares regression.

    Coefficients are fitted with sklearn's LinearRegression. Standard errors
    come from mse * pinv(X'X) on the design matrix with the constant column,
    and p-values from a two-sided t-test with n - k - 1 degrees of freedom.
    """

    config_class = OLSConfig

    def _fit(self, dataset: Dataset) -> None:
        features = dataset.features
        X, y = _clean_design(dataset, features, self._config.drop_missing)

        n = len(y)
        k = len(features)

        if k > 0:
            model = LinearRegression()
            model.fit(X[features].values, y.values)
            intercept = float(model.intercept_)
            coef = np.asarray(model.coef_, dtype=float)
            y_pred = model.predict(X[features].values)
        else:
            intercept = float(y.mean())
            coef = np.zeros(0)
            y_pred = np.full(n, intercept)

        residuals = y.values - y_pred
        ss_res = float(np.sum(residuals**2))
        ss_tot = float(np.sum((y.values - y.values.mean()) ** 2))
        r2 = 1 - (ss_res / ss_tot) if ss_tot > 0 else 0.0
        dof = max(n - k - 1, 1)
        mse = ss_res / dof

        # Variance-covariance matrix using pseudo-inverse for robustness
        Xc = X.values
        XtX_inv = np.linalg.pinv(Xc.T @ Xc)
        var_coef = mse * XtX_inv.diagonal()
        se = np.sqrt(np.maximum(var_coef, 1e-10))

        params = np.concatenate([[intercept], coef])
        t_stats = params / se
        p_values = 2 * stats.t.sf(np.abs(t_stats), dof)

        names = [CONSTANT_COLUMN] + list(features)
        self._params = OLSParams(
            features=list(features),
            coefficients=dict(zip(names, params.tolist())),
            std_errors=dict(zip(names, se.tolist())),
            pvalues=dict(zip(names, p_values.tolist())),
            r2=r2,
            n_samples=n,
            dof=dof,
        )
        logger.debug(f"OLS fit on {n} rows, {k} features: r2={r2:.4f}")

    def _predict(self, dataset: Dataset) -> None:
        params: OLSParams = self._params
        X = dataset.design_matrix(params.features)
        beta = np.array([params.coefficients[c] for c in X.columns])
        dataset.attach_predictions(X.values @ beta)

    def feature_pvalues(self) -> Dict[str, float]:
        self._check_fitted("feature_pvalues")
        return dict(self._params.pvalues)

    def summary(self) -> pd.DataFrame:
        """Per-feature coefficient table sorted by p-value."""
        self._check_fitted("summary")
        params: OLSParams = self._params
        names = list(params.coefficients)
        table = pd.DataFrame(
            {
                "feature": names,
                "coefficient": [params.coefficients[f] for f in names],
                "std_error": [params.std_errors[f] for f in names],
                "p_value": [params.pvalues[f] for f in names],
            }
        )
        table["t_statistic"] = table["coefficient"] / table["std_error"]
        table["significant_005"] = table["p_value"] < 0.05
        return table.sort_values("p_value").reset_index(drop=True)


@dataclass
class RidgeConfig(RegressorConfig):
    """Training configuration of RidgeRegressor."""

    alpha: float = 1.0
    drop_missing: bool = True

    def __post_init__(self) -> None:
        if self.alpha < 0:
            raise ValueError("alpha must be non-negative")


@dataclass
class RidgeParams:
    features: List[str]
    coefficients: Dict[str, float]
    intercept: float


@register_regressor("ridge")
class RidgeRegressor(BaseRegressor):
    """L2-penalised linear regression. Reports no p-values."""

    config_class = RidgeConfig

    def _fit(self, dataset: Dataset) -> None:
        features = dataset.features
        X, y = _clean_design(dataset, features, self._config.drop_missing)

        if features:
            model = Ridge(alpha=self._config.alpha)
            model.fit(X[features].values, y.values)
            intercept = float(model.intercept_)
            coefficients = dict(zip(features, np.asarray(model.coef_, dtype=float).tolist()))
        else:
            intercept = float(y.mean())
            coefficients = {}

        self._params = RidgeParams(
            features=list(features), coefficients=coefficients, intercept=intercept
        )

    def _predict(self, dataset: Dataset) -> None:
        params: RidgeParams = self._params
        X = dataset.design_matrix(params.features)
        beta = np.array([params.coefficients[f] for f in params.features])
        dataset.attach_predictions(params.intercept + X[params.features].values @ beta)
