"""
Tests for the backward elimination engine.
"""

import math

import pytest

from conftest import ScriptedConfig, ScriptedRegressor
from stepreg.config import TrainingConfig
from stepreg.dataset import CONSTANT_COLUMN
from stepreg.elimination import BackwardElimination, TerminationState, select_least_significant


def _engine(memory_store, script, **kwargs):
    config = TrainingConfig(regressor_type="scripted", regressor_config=script, **kwargs)
    return BackwardElimination(config, memory_store, name="model")


def test_removes_worst_feature_then_converges(abc_data, abc_script, memory_store):
    """A (0.6) is removed, then max p-value C=0.04 <= 0.05 stops the loop."""
    result = _engine(memory_store, abc_script, a_out=0.05).run(abc_data)

    assert result.state == TerminationState.CONVERGED
    assert result.selected_features == ["B", "C"]
    assert result.removed_features == ["A"]
    assert result.iterations == 2
    assert result.steps[0].p_value == pytest.approx(0.6)
    assert result.dataset.features == ["B", "C"]


def test_constant_is_never_removed(abc_data, abc_script, memory_store):
    """The constant reports p=0.99 in every round but is never a candidate."""
    result = _engine(memory_store, abc_script).run(abc_data)

    assert CONSTANT_COLUMN not in result.removed_features
    assert all(step.feature != CONSTANT_COLUMN for step in result.steps)


def test_caller_dataset_is_not_mutated(abc_data, abc_script, memory_store):
    before = abc_data.frame.copy()

    result = _engine(memory_store, abc_script).run(abc_data)

    assert result.dataset is not abc_data
    assert abc_data.features == ["A", "B", "C"]
    assert abc_data.frame.equals(before)


def test_zero_max_iterations_skips_elimination(abc_data, abc_script, memory_store):
    result = _engine(memory_store, abc_script, max_iterations=0).run(abc_data)

    assert result.state == TerminationState.MAX_ITERATIONS_REACHED
    assert result.iterations == 0
    assert result.selected_features == ["A", "B", "C"]
    assert ScriptedRegressor.instances == []


def test_max_iterations_reached(abc_data, abc_script, memory_store):
    result = _engine(memory_store, abc_script, max_iterations=1).run(abc_data)

    assert result.state == TerminationState.MAX_ITERATIONS_REACHED
    assert result.iterations == 1
    assert result.selected_features == ["B", "C"]


def test_empty_pvalues_stop_with_no_features(abc_data, memory_store):
    script = ScriptedConfig(pvalues={frozenset({"A", "B", "C"}): {}})

    result = _engine(memory_store, script).run(abc_data)

    assert result.state == TerminationState.NO_FEATURES
    assert result.iterations == 1
    assert result.selected_features == ["A", "B", "C"]


def test_only_constant_pvalue_counts_as_no_features(abc_data, memory_store):
    script = ScriptedConfig(pvalues={frozenset({"A", "B", "C"}): {CONSTANT_COLUMN: 0.5}})

    result = _engine(memory_store, script).run(abc_data)

    assert result.state == TerminationState.NO_FEATURES


def test_exhausted_when_last_feature_removed(abc_data, memory_store):
    script = ScriptedConfig(
        pvalues={
            frozenset({"A", "B", "C"}): {"A": 0.9, "B": 0.8, "C": 0.7},
            frozenset({"B", "C"}): {"B": 0.9, "C": 0.8},
            frozenset({"C"}): {"C": 0.9},
        }
    )

    result = _engine(memory_store, script).run(abc_data)

    assert result.state == TerminationState.EXHAUSTED
    assert result.selected_features == []
    assert result.removed_features == ["A", "B", "C"]
    # Feature count strictly shrinks on every non-terminal round
    assert [s.remaining for s in result.steps] == [2, 1, 0]


def test_intermediate_delegates_are_erased(abc_data, abc_script, memory_store):
    _engine(memory_store, abc_script).run(abc_data)

    assert len(ScriptedRegressor.instances) == 2
    assert all(d.erased for d in ScriptedRegressor.instances)
    assert memory_store.names() == []


def test_delegate_failure_propagates_and_releases_storage(abc_data, memory_store):
    script = ScriptedConfig(
        pvalues={frozenset({"A", "B", "C"}): {"A": 0.9, "B": 0.01, "C": 0.01}},
        fail_on=frozenset({"B", "C"}),
    )

    with pytest.raises(RuntimeError, match="delegate failure"):
        _engine(memory_store, script).run(abc_data)

    assert all(d.erased for d in ScriptedRegressor.instances)
    assert memory_store.names() == []


def test_history_frame(abc_data, abc_script, memory_store):
    result = _engine(memory_store, abc_script).run(abc_data)

    history = result.history_frame()
    assert list(history.columns) == ["step", "removed", "p_value", "remaining"]
    assert history["removed"].tolist() == ["A"]


def test_history_frame_empty_without_removals(abc_data, abc_script, memory_store):
    result = _engine(memory_store, abc_script, max_iterations=0).run(abc_data)
    assert result.history_frame().empty


def test_select_least_significant_tie_break():
    """Equal maxima resolve to the lexicographically smallest name."""
    assert select_least_significant({"b": 0.5, "a": 0.5, "c": 0.1}) == ("a", 0.5)
    assert select_least_significant({"z": 0.7, "a": 0.5}) == ("z", 0.7)


def test_select_least_significant_treats_nan_as_one():
    feature, p_value = select_least_significant({"a": 0.9, "b": math.nan})
    assert feature == "b"
    assert p_value == 1.0


def test_ols_elimination_drops_orthogonal_noise(regression_data, memory_store):
    config = TrainingConfig(regressor_type="ols", a_out=0.05)
    result = BackwardElimination(config, memory_store, name="ols_model").run(regression_data)

    assert result.state == TerminationState.CONVERGED
    assert sorted(result.removed_features) == ["noise_1", "noise_2"]
    assert result.selected_features == ["a", "b"]
