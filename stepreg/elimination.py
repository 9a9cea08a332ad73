"""
@module: stepreg.elimination
@depends: stepreg.config, stepreg.dataset, stepreg.registry, stepreg.storage, stepreg.meta
@exports: BackwardElimination, EliminationResult, EliminationStep, TerminationState
@data_flow: dataset -> delegate fit -> p-values -> drop worst feature -> reduced dataset
"""

import itertools
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pandas as pd

from stepreg.config import TrainingConfig
from stepreg.dataset import CONSTANT_COLUMN, Dataset
from stepreg.meta import component
from stepreg.registry import create_regressor
from stepreg.storage import StoreConfig

logger = logging.getLogger(__name__)


class TerminationState(Enum):
    """State of the elimination loop. Everything except RUNNING is terminal."""

    RUNNING = "running"
    CONVERGED = "converged"  # every remaining feature has p <= a_out
    NO_FEATURES = "no_features"  # delegate reported no feature p-values
    EXHAUSTED = "exhausted"  # last feature removed
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass
class EliminationStep:
    """One removal performed by the engine."""

    iteration: int
    feature: str
    p_value: float
    remaining: int


@dataclass
class EliminationResult:
    """
    Outcome of a backward elimination run.

    `dataset` is the reduced working copy; StepwiseRegression erases it once
    the final delegate is fitted.
    """

    dataset: Dataset
    state: TerminationState
    iterations: int
    selected_features: List[str]
    steps: List[EliminationStep] = field(default_factory=list)

    @property
    def removed_features(self) -> List[str]:
        return [s.feature for s in self.steps]

    def history_frame(self) -> pd.DataFrame:
        """Elimination history as a DataFrame (empty if nothing was removed)."""
        if not self.steps:
            return pd.DataFrame()
        return pd.DataFrame(
            [
                {
                    "step": s.iteration + 1,
                    "removed": s.feature,
                    "p_value": s.p_value,
                    "remaining": s.remaining,
                }
                for s in self.steps
            ]
        )


def select_least_significant(pvalues: Dict[str, float]) -> Tuple[str, float]:
    """
    Return the feature with the highest p-value.

    Ties are broken by the lexicographically smallest feature name. NaN
    p-values count as 1.0.
    """
    cleaned = {}
    for feature, p in pvalues.items():
        if p is None or math.isnan(p):
            logger.warning(f"Feature '{feature}' has an undefined p-value; treating it as 1.0")
            p = 1.0
        cleaned[feature] = float(p)

    return min(cleaned.items(), key=lambda item: (-item[1], str(item[0])))


@component(
    name="BackwardElimination",
    responsibility="Refits the delegate and drops the least significant feature each round",
    depends_on=["TrainingConfig", "SignificanceReporting", "StoreConfig"],
)
class BackwardElimination:
    """
    Backward elimination driven by the p-values of a delegate regressor.

    Each round fits a fresh delegate on a private copy of the data, reads
    its p-values, erases the delegate and removes the feature with the
    highest p-value if it exceeds `a_out`. The caller's dataset is never
    modified.

    Example:
        >>> engine = BackwardElimination(config, MemoryStoreConfig(), name="price_model")
        >>> result = engine.run(train_data)
        >>> result.state, result.selected_features
        (<TerminationState.CONVERGED: 'converged'>, ['sqft', 'rooms'])
    """

    def __init__(self, config: TrainingConfig, store_config: StoreConfig, name: str):
        self.config = config
        self.store_config = store_config
        self.name = name

    @property
    def delegate_name(self) -> str:
        return f"{self.name}.elimination"

    def run(self, dataset: Dataset) -> EliminationResult:
        """
        Run backward elimination.

        Args:
            dataset: Training data (left untouched)

        Returns:
            EliminationResult holding the reduced copy of the data
        """
        max_iterations: Optional[int] = self.config.max_iterations
        a_out = self.config.a_out

        working = dataset.copy()
        steps: List[EliminationStep] = []
        state = TerminationState.RUNNING
        iterations = 0

        logger.info(
            f"Backward elimination on {working.variable_count} features "
            f"(a_out={a_out}, max_iterations={max_iterations})"
        )

        rounds = itertools.count() if max_iterations is None else range(max_iterations)
        for iteration in rounds:
            iterations = iteration + 1
            pvalues = self._run_round(working)
            pvalues.pop(CONSTANT_COLUMN, None)

            if not pvalues:
                state = TerminationState.NO_FEATURES
                break

            feature, p_value = select_least_significant(pvalues)
            logger.debug(f"Round {iteration + 1}: max p-value {p_value:.4g} for '{feature}'")

            if p_value <= a_out:
                state = TerminationState.CONVERGED
                break

            working.remove_columns([feature])
            steps.append(
                EliminationStep(
                    iteration=iteration,
                    feature=feature,
                    p_value=p_value,
                    remaining=working.variable_count,
                )
            )
            logger.info(
                f"Removed '{feature}' (p={p_value:.4g}), {working.variable_count} features left"
            )

            if working.variable_count == 0:
                state = TerminationState.EXHAUSTED
                break
        else:
            state = TerminationState.MAX_ITERATIONS_REACHED

        logger.info(
            f"Elimination finished: {state.value} after {iterations} rounds, "
            f"kept {working.features}"
        )
        return EliminationResult(
            dataset=working,
            state=state,
            iterations=iterations,
            selected_features=working.features,
            steps=steps,
        )

    def _run_round(self, working: Dataset) -> Dict[str, float]:
        """Fit a fresh delegate and return its p-values; the delegate is always erased."""
        delegate = create_regressor(self.config.regressor_type, self.delegate_name, self.store_config)
        try:
            delegate.fit(working, self.config.regressor_config)
            return dict(delegate.feature_pvalues())
        finally:
            delegate.erase()
