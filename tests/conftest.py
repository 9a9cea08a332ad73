# Test configuration
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Dict, FrozenSet, List, Optional

import numpy as np
import pandas as pd
import pytest

# Add stepreg to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepreg.base import BaseRegressor, SignificanceReporting
from stepreg.config import RegressorConfig
from stepreg.dataset import CONSTANT_COLUMN, Dataset
from stepreg.registry import register_regressor
from stepreg.storage import MemoryStoreConfig


@dataclass
class ScriptedConfig(RegressorConfig):
    """P-values to report, keyed by the feature set the model was fitted on."""

    pvalues: Dict[FrozenSet[str], Dict[str, float]] = field(default_factory=dict)
    fail_on: Optional[FrozenSet[str]] = None
    fail_for_name: Optional[str] = None


@register_regressor("scripted")
class ScriptedRegressor(SignificanceReporting, BaseRegressor):
    """Delegate double reporting pre-scripted p-values and recording its lifecycle."""

    config_class = ScriptedConfig
    instances: ClassVar[List["ScriptedRegressor"]] = []

    def __init__(self, name, store_config):
        super().__init__(name, store_config)
        self.erased = False
        self.closed = False
        self.fit_features: Optional[List[str]] = None
        ScriptedRegressor.instances.append(self)

    def _fit(self, dataset):
        features = frozenset(dataset.features)
        if self._config.fail_on is not None and features == self._config.fail_on:
            raise RuntimeError("delegate failure")
        if self._config.fail_for_name == self.name:
            raise RuntimeError("delegate failure")
        self.fit_features = sorted(features)
        self._params = {
            "features": sorted(features),
            "pvalues": dict(self._config.pvalues.get(features, {})),
            "mean": float(dataset.y.mean()),
        }

    def _predict(self, dataset):
        dataset.attach_predictions(np.full(len(dataset), self._params["mean"]))

    def feature_pvalues(self):
        self._check_fitted("feature_pvalues")
        return dict(self._params["pvalues"])

    def erase(self):
        self.erased = True
        super().erase()

    def close(self):
        self.closed = True
        super().close()


@pytest.fixture(autouse=True)
def reset_scripted_instances():
    ScriptedRegressor.instances.clear()
    yield
    ScriptedRegressor.instances.clear()


@pytest.fixture
def memory_store():
    return MemoryStoreConfig()


@pytest.fixture
def abc_data():
    """Three features A, B, C plus target y."""
    rng = np.random.default_rng(0)
    n = 30
    df = pd.DataFrame(
        {
            "A": rng.normal(size=n),
            "B": rng.normal(size=n),
            "C": rng.normal(size=n),
            "y": rng.normal(size=n),
        }
    )
    return Dataset(df, target_col="y")


@pytest.fixture
def abc_script():
    """Round 1 removes A; round 2 converges with B and C."""
    return ScriptedConfig(
        pvalues={
            frozenset({"A", "B", "C"}): {CONSTANT_COLUMN: 0.99, "A": 0.6, "B": 0.02, "C": 0.3},
            frozenset({"B", "C"}): {CONSTANT_COLUMN: 0.99, "B": 0.02, "C": 0.04},
        }
    )


@pytest.fixture
def regression_df():
    """
    y depends on a and b; noise_1 and noise_2 are exactly orthogonal to the
    constant, a, b and y, so their OLS coefficients are zero.
    """
    rng = np.random.default_rng(42)
    n = 200
    a = rng.normal(size=n)
    b = rng.normal(size=n)
    y = 2.0 + 3.0 * a - 2.0 * b + rng.normal(scale=0.5, size=n)

    basis, _ = np.linalg.qr(np.column_stack([np.ones(n), a, b, y]))
    raw = rng.normal(size=(n, 2))
    noise = raw - basis @ (basis.T @ raw)

    return pd.DataFrame(
        {"a": a, "noise_1": noise[:, 0], "b": b, "noise_2": noise[:, 1], "y": y}
    )


@pytest.fixture
def regression_data(regression_df):
    return Dataset(regression_df, target_col="y")
