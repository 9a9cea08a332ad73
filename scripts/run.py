"""
@module: scripts.run
@depends: stepreg, tomllib
@exports: run_stepwise, main
@data_flow: config + csv -> train/test split -> stepwise fit -> metrics -> results.json

Command line runner for stepwise regression.

Usage:
    python scripts/run.py --config configs/stepwise.toml --data data.csv --target price
    python scripts/run.py --config configs/stepwise.toml --data data.csv --target price --a-out 0.01
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from sklearn.model_selection import train_test_split

# Add parent to path for stepreg imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepreg import (
    Dataset,
    StepwiseRegression,
    build_store_config,
    build_training_config,
    load_config,
)

PROJECT_ROOT = Path(__file__).parent.parent
RESULTS_DIR = PROJECT_ROOT / "results"

logger = logging.getLogger(__name__)


def _configure_logging(output_dir: Path, verbose: bool) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(output_dir / "stepwise_debug.log", mode="w"),
        ],
    )


def run_stepwise(
    config: dict[str, Any],
    df: pd.DataFrame,
    target_col: str,
    test_size: float = 0.2,
    a_out: Optional[float] = None,
    max_iterations: Optional[int] = None,
    model_name: str = "stepwise",
) -> dict[str, Any]:
    """
    Fit stepwise regression on a train split and validate on the test split.

    Args:
        config: Parsed TOML configuration
        df: Input data (numeric features + target)
        target_col: Target column name
        test_size: Fraction of rows held out for validation
        a_out: Optional override of [stepwise].a_out
        max_iterations: Optional override of [stepwise].max_iterations
        model_name: Store name of the fitted model

    Returns:
        Dict with selected features, elimination history and test metrics
    """
    training_config = build_training_config(config)
    if a_out is not None:
        training_config.a_out = a_out
    if max_iterations is not None:
        training_config.max_iterations = max_iterations
    store_config = build_store_config(config)

    if target_col not in df.columns:
        raise ValueError(f"Missing target column: {target_col}")

    train_df, test_df = train_test_split(df, test_size=test_size, random_state=42)
    logger.info(f"Train rows: {len(train_df)}, test rows: {len(test_df)}")

    model = StepwiseRegression(model_name, store_config)
    model.fit(Dataset(train_df, target_col=target_col), training_config)

    result = model.elimination_result
    history = result.history_frame()
    if not history.empty:
        logger.info("Elimination history:\n%s", history.to_string(index=False))

    metrics = model.validate(Dataset(test_df, target_col=target_col))
    logger.info(f"Test metrics: rmse={metrics.rmse:.4f} r2={metrics.r2:.4f} mae={metrics.mae:.4f}")

    return {
        "target": target_col,
        "regressor": str(training_config.regressor_class.registry_name),
        "a_out": training_config.a_out,
        "max_iterations": training_config.max_iterations,
        "termination": result.state.value,
        "iterations": result.iterations,
        "selected_features": model.selected_features,
        "removed_features": result.removed_features,
        "history": history.to_dict(orient="records"),
        "test_metrics": asdict(metrics),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Run stepwise regression (backward elimination)")
    parser.add_argument("--config", "-c", type=Path, required=True, help="TOML configuration file")
    parser.add_argument("--data", "-d", type=Path, required=True, help="CSV file with features + target")
    parser.add_argument("--target", "-t", required=True, help="Target column name")
    parser.add_argument("--a-out", type=float, default=None,
                        help="Override p-value threshold (default: config)")
    parser.add_argument("--max-iterations", type=int, default=None,
                        help="Override maximum elimination rounds (default: config)")
    parser.add_argument("--test-size", type=float, default=0.2,
                        help="Fraction of rows held out for validation")
    parser.add_argument("--output", "-o", type=Path, default=RESULTS_DIR,
                        help="Output directory for results.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every elimination round")

    args = parser.parse_args()
    _configure_logging(args.output, args.verbose)

    config = load_config(args.config)
    logger.info(f"Loading data from: {args.data}")
    df = pd.read_csv(args.data)

    results = run_stepwise(
        config,
        df,
        target_col=args.target,
        test_size=args.test_size,
        a_out=args.a_out,
        max_iterations=args.max_iterations,
    )

    output_path = args.output / "results.json"
    with output_path.open("w") as f:
        json.dump(results, f, indent=2, default=str)
    logger.info(f"Results saved to {output_path}")

    print(f"Selected features ({len(results['selected_features'])}): {results['selected_features']}")
    print(f"Test RMSE: {results['test_metrics']['rmse']:.4f}  R2: {results['test_metrics']['r2']:.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
