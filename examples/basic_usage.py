"""
Basic usage example for stepwise regression.

This example demonstrates:
1. Building a synthetic dataset with signal and noise features
2. Configuring backward elimination around an OLS delegate
3. Fitting, inspecting the elimination history and validating
4. Reloading the fitted model from storage
"""

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from stepreg import Dataset, FileStoreConfig, StepwiseRegression, TrainingConfig


def make_data(n: int = 500, seed: int = 42) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        {
            "sqft": rng.normal(80, 20, n),
            "rooms": rng.integers(1, 6, n).astype(float),
            "noise_1": rng.normal(0, 1, n),
            "noise_2": rng.normal(0, 1, n),
            "noise_3": rng.uniform(0, 1, n),
        }
    )
    df["price"] = 1500 + 30 * df["sqft"] + 250 * df["rooms"] + rng.normal(0, 200, n)
    return df


def main():
    df = make_data()
    train_df, test_df = train_test_split(df, test_size=0.2, random_state=42)

    # Configure backward elimination
    config = TrainingConfig(regressor_type="ols", a_out=0.05)
    store = FileStoreConfig("models")

    print("\nFitting stepwise regression...")
    model = StepwiseRegression("price_model", store)
    model.fit(Dataset(train_df, target_col="price"), config)

    print(f"Termination: {model.elimination_result.state.value}")
    print(f"Selected features: {model.selected_features}")
    print(model.elimination_result.history_frame())
    print(model.delegate.summary())

    metrics = model.validate(Dataset(test_df, target_col="price"))
    print(f"\nTest RMSE: {metrics.rmse:.2f}")
    print(f"Test R2:   {metrics.r2:.4f}")
    model.close()

    # A new wrapper reconstructs the fitted delegate from storage
    reloaded = StepwiseRegression("price_model", store)
    new_data = Dataset(test_df.drop(columns=["price"]))
    reloaded.predict(new_data)
    print(f"\nFirst predictions: {new_data.predictions.head(3).round(1).tolist()}")

    reloaded.erase()


if __name__ == "__main__":
    main()
