"""Tests for the OLS and Ridge regressors."""

import numpy as np
import pandas as pd
import pytest

from stepreg.base import ValidationMetrics
from stepreg.config import TrainingConfig
from stepreg.dataset import CONSTANT_COLUMN, Dataset
from stepreg.exceptions import ConfigurationError
from stepreg.linear import OLSConfig, OLSRegressor, RidgeConfig, RidgeRegressor


def test_ols_recovers_coefficients(regression_data, memory_store):
    model = OLSRegressor("ols", memory_store).fit(regression_data)
    coef = model.params.coefficients

    assert coef[CONSTANT_COLUMN] == pytest.approx(2.0, abs=0.2)
    assert coef["a"] == pytest.approx(3.0, abs=0.2)
    assert coef["b"] == pytest.approx(-2.0, abs=0.2)


def test_ols_pvalues(regression_data, memory_store):
    pvalues = OLSRegressor("ols", memory_store).fit(regression_data).feature_pvalues()

    assert set(pvalues) == {CONSTANT_COLUMN, "a", "b", "noise_1", "noise_2"}
    assert pvalues["a"] < 1e-6
    assert pvalues["b"] < 1e-6
    # Orthogonal noise has a zero coefficient
    assert pvalues["noise_1"] > 0.99
    assert pvalues["noise_2"] > 0.99


def test_ols_feature_pvalues_requires_fit(memory_store):
    with pytest.raises(RuntimeError, match="Must call fit"):
        OLSRegressor("ols", memory_store).feature_pvalues()


def test_ols_summary_sorted_by_pvalue(regression_data, memory_store):
    summary = OLSRegressor("ols", memory_store).fit(regression_data).summary()

    assert list(summary.columns) == [
        "feature", "coefficient", "std_error", "p_value", "t_statistic", "significant_005"
    ]
    assert summary["p_value"].is_monotonic_increasing
    assert set(summary.loc[summary["significant_005"], "feature"]) >= {"a", "b"}


def test_ols_intercept_only(memory_store):
    df = pd.DataFrame({"y": [1.0, 2.0, 3.0, 4.0]})
    model = OLSRegressor("ols", memory_store).fit(Dataset(df, target_col="y"))

    assert model.params.coefficients == pytest.approx({CONSTANT_COLUMN: 2.5})
    assert set(model.feature_pvalues()) == {CONSTANT_COLUMN}


def test_ols_drops_missing_rows(regression_df, memory_store):
    df = regression_df.copy()
    df.loc[0, "a"] = np.nan
    df.loc[1, "y"] = np.inf

    model = OLSRegressor("ols", memory_store).fit(Dataset(df, target_col="y"))
    assert model.params.n_samples == len(df) - 2

    strict = OLSRegressor("strict", memory_store)
    with pytest.raises(ValueError, match="missing or infinite"):
        strict.fit(Dataset(df, target_col="y"), OLSConfig(drop_missing=False))


def test_ols_no_rows_left(memory_store):
    df = pd.DataFrame({"a": [np.nan, np.nan], "y": [1.0, 2.0]})
    with pytest.raises(ValueError, match="No rows left"):
        OLSRegressor("ols", memory_store).fit(Dataset(df, target_col="y"))


def test_predict_uses_fitted_features(regression_df, memory_store):
    model = OLSRegressor("ols", memory_store).fit(
        Dataset(regression_df[["a", "b", "y"]], target_col="y")
    )

    # Extra columns and a missing target are fine for prediction
    new_data = Dataset(regression_df.drop(columns=["y"]))
    model.predict(new_data)

    coef = model.params.coefficients
    expected = coef[CONSTANT_COLUMN] + coef["a"] * regression_df["a"] + coef["b"] * regression_df["b"]
    np.testing.assert_allclose(new_data.predictions.values, expected.values)


def test_wrong_config_type_rejected(regression_data, memory_store):
    with pytest.raises(ConfigurationError, match="OLSConfig"):
        OLSRegressor("ols", memory_store).fit(regression_data, RidgeConfig())

    with pytest.raises(ConfigurationError, match="OLSConfig"):
        OLSRegressor("ols", memory_store).fit(
            regression_data, TrainingConfig(regressor_type="ols")
        )


def test_validate_metrics(regression_data, memory_store):
    model = OLSRegressor("ols", memory_store).fit(regression_data)
    metrics = model.validate(regression_data.copy())

    assert isinstance(metrics, ValidationMetrics)
    assert metrics.n_samples == len(regression_data)
    assert metrics.r2 > 0.95
    assert metrics.sse == pytest.approx(metrics.rmse**2 * metrics.n_samples)


def test_k_fold_cross_validation(regression_data, memory_store):
    model = OLSRegressor("ols", memory_store)
    metrics = model.k_fold_cross_validation(regression_data, None, k=5)

    assert metrics.n_samples == len(regression_data)
    assert metrics.r2 > 0.9
    # Fold models are erased and this model stays unfitted
    assert memory_store.names() == []
    assert not model.is_fitted

    with pytest.raises(ValueError, match="k must be"):
        model.k_fold_cross_validation(regression_data, None, k=1)


def test_model_reloads_from_store(regression_data, memory_store):
    OLSRegressor("ols", memory_store).fit(regression_data)

    reloaded = OLSRegressor("ols", memory_store)
    assert reloaded.is_fitted
    assert reloaded.feature_pvalues()["a"] < 1e-6


def test_ridge_fit_predict(regression_data, memory_store):
    model = RidgeRegressor("ridge", memory_store).fit(regression_data, RidgeConfig(alpha=0.1))
    metrics = model.validate(regression_data.copy())

    assert metrics.r2 > 0.95
    assert not hasattr(model, "feature_pvalues")


def test_ridge_intercept_only(memory_store):
    df = pd.DataFrame({"y": [1.0, 3.0]})
    model = RidgeRegressor("ridge", memory_store).fit(Dataset(df, target_col="y"))

    data = Dataset(pd.DataFrame(index=range(3)))
    model.predict(data)
    assert data.predictions.tolist() == [2.0, 2.0, 2.0]


def test_erase_after_close(regression_data, memory_store):
    model = OLSRegressor("ols", memory_store).fit(regression_data)

    model.close()
    model.close()
    model.erase()

    assert memory_store.names() == []
    assert not model.is_fitted
