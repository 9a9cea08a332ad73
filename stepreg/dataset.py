"""
@module: stepreg.dataset
@depends:
@exports: Dataset, CONSTANT_COLUMN
@data_flow: raw_df -> Dataset -> design matrix / target
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

# Reserved name of the intercept column. It is never stored in the frame.
CONSTANT_COLUMN = "__constant__"


class Dataset:
    """
    Tabular container used for fitting, prediction and validation.

    Holds a DataFrame of feature columns plus an optional target column. The
    constant/intercept column is virtual: it is added by `design_matrix()` and
    can never be removed.

    Example:
        >>> data = Dataset(df, target_col="price")
        >>> data.features
        ['sqft', 'rooms']
        >>> data.remove_columns(["rooms"])
        >>> data.variable_count
        1
    """

    def __init__(self, frame: pd.DataFrame, target_col: Optional[str] = None):
        if CONSTANT_COLUMN in frame.columns:
            raise ValueError(f"Column name {CONSTANT_COLUMN!r} is reserved for the constant")
        if target_col is not None and target_col not in frame.columns:
            raise ValueError(f"Missing target column: {target_col}")

        self.target_col = target_col
        self._frame: Optional[pd.DataFrame] = frame
        self.predictions: Optional[pd.Series] = None

    @property
    def frame(self) -> pd.DataFrame:
        if self._frame is None:
            raise RuntimeError("Dataset has been erased")
        return self._frame

    @property
    def features(self) -> List[str]:
        return [c for c in self.frame.columns if c != self.target_col]

    @property
    def variable_count(self) -> int:
        """Number of feature columns, constant excluded."""
        return len(self.features)

    @property
    def has_target(self) -> bool:
        return self.target_col is not None

    @property
    def y(self) -> pd.Series:
        if self.target_col is None:
            raise ValueError("Dataset has no target column")
        return self.frame[self.target_col]

    def __len__(self) -> int:
        return len(self.frame)

    def design_matrix(self, features: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """
        Build the float design matrix with the constant column first.

        Args:
            features: Feature subset (default: all features)

        Returns:
            DataFrame with columns [CONSTANT_COLUMN, *features]
        """
        if features is None:
            features = self.features

        missing = [f for f in features if f not in self.frame.columns]
        if missing:
            raise KeyError(f"Missing feature columns: {missing}")

        X = self.frame[list(features)].astype(float)
        X.insert(0, CONSTANT_COLUMN, 1.0)
        return X

    def copy(self) -> "Dataset":
        """Return an independent deep copy (predictions are not carried over)."""
        return Dataset(self.frame.copy(deep=True), target_col=self.target_col)

    def subset(self, rows: Sequence[int]) -> "Dataset":
        """Return a copy holding the given positional rows."""
        return Dataset(self.frame.iloc[list(rows)].copy(), target_col=self.target_col)

    def remove_columns(self, columns: Iterable[str]) -> None:
        """Remove feature columns in place."""
        columns = list(columns)
        if CONSTANT_COLUMN in columns:
            raise ValueError("The constant column cannot be removed")
        if self.target_col is not None and self.target_col in columns:
            raise ValueError(f"The target column {self.target_col!r} cannot be removed")

        missing = [c for c in columns if c not in self.frame.columns]
        if missing:
            raise KeyError(f"Unknown feature columns: {missing}")

        self._frame = self.frame.drop(columns=columns)

    def attach_predictions(self, values: np.ndarray) -> None:
        """Attach predicted values, aligned with the frame index."""
        values = np.asarray(values, dtype=float)
        if len(values) != len(self.frame):
            raise ValueError(
                f"Got {len(values)} predictions for a dataset of {len(self.frame)} rows"
            )
        self.predictions = pd.Series(values, index=self.frame.index, name="prediction")

    def erase(self) -> None:
        """Release the underlying frame."""
        self._frame = None
        self.predictions = None

    def __repr__(self) -> str:
        if self._frame is None:
            return "Dataset(<erased>)"
        return (
            f"Dataset(rows={len(self._frame)}, features={self.variable_count}, "
            f"target={self.target_col!r})"
        )
