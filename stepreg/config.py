"""
@module: stepreg.config
@depends: stepreg.exceptions, stepreg.storage, tomllib
@exports: RegressorConfig, TrainingConfig, load_config, build_training_config, build_store_config
@data_flow: user config / toml -> validated parameters
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, Union

try:
    import tomllib  # Python 3.11+
except ImportError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore

from stepreg.exceptions import ConfigurationError
from stepreg.storage import FileStoreConfig, MemoryStoreConfig, StoreConfig

if TYPE_CHECKING:
    from stepreg.base import BaseRegressor


@dataclass
class RegressorConfig:
    """Base class for the training configuration of a regressor."""


@dataclass
class TrainingConfig(RegressorConfig):
    """
    Configuration for stepwise regression.

    Attributes:
        regressor_type: Registry name (e.g. "ols") or class of the delegate
            regressor. It must report per-feature p-values; anything else is
            rejected as soon as it is assigned.
        max_iterations: Maximum number of elimination rounds. None = until
            convergence. 0 skips elimination entirely.
        a_out: Maximum p-value a feature may have to be retained. Features
            with a strictly higher p-value are removal candidates.
        regressor_config: Training configuration passed unchanged to the
            delegate. None = the delegate's defaults.

    Example:
        config = TrainingConfig(regressor_type="ols", a_out=0.05)
    """

    regressor_type: Union[str, Type["BaseRegressor"]]
    max_iterations: Optional[int] = None
    a_out: float = 0.05
    regressor_config: Optional[RegressorConfig] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "regressor_type":
            _validate_regressor_type(value)
        elif name == "max_iterations":
            _validate_max_iterations(value)
        elif name == "a_out":
            value = _validate_a_out(value)
        elif name == "regressor_config":
            if value is not None and not isinstance(value, RegressorConfig):
                raise ConfigurationError(
                    f"regressor_config must be a RegressorConfig, got {type(value).__name__}"
                )
        super().__setattr__(name, value)

    @property
    def regressor_class(self) -> Type["BaseRegressor"]:
        from stepreg.registry import resolve_regressor

        return resolve_regressor(self.regressor_type)


def _validate_regressor_type(regressor_type: Any) -> None:
    from stepreg.registry import is_stepwise_compatible, resolve_regressor

    cls = resolve_regressor(regressor_type)
    if not is_stepwise_compatible(cls):
        raise ConfigurationError(
            f"Regressor {cls.__name__} is not stepwise compatible: "
            "it does not report feature p-values"
        )


def _validate_max_iterations(max_iterations: Any) -> None:
    if max_iterations is None:
        return
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, numbers.Integral):
        raise ConfigurationError(f"max_iterations must be an integer or None, got {max_iterations!r}")
    if max_iterations < 0:
        raise ConfigurationError("max_iterations must be at least 0")


def _validate_a_out(a_out: Any) -> float:
    try:
        a_out = float(a_out)
    except (TypeError, ValueError):
        raise ConfigurationError(f"a_out must be a number, got {a_out!r}") from None
    if not 0.0 <= a_out <= 1.0:
        raise ConfigurationError("a_out must be within [0, 1]")
    return a_out


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load TOML configuration file."""
    with Path(config_path).open("rb") as f:
        return tomllib.load(f)


def build_training_config(cfg: Dict[str, Any]) -> TrainingConfig:
    """
    Build a TrainingConfig from a parsed TOML document.

    Reads the `[stepwise]` table and, if present, the `[regressor]` table
    whose keys are passed to the delegate's `config_class`.

    Args:
        cfg: Parsed configuration (see `load_config`)

    Returns:
        Validated TrainingConfig

    Raises:
        ConfigurationError: If a table is missing or holds invalid values
    """
    from stepreg.registry import resolve_regressor

    stepwise_cfg = cfg.get("stepwise")
    if not isinstance(stepwise_cfg, dict):
        raise ConfigurationError("Missing [stepwise] table")
    if "regressor" not in stepwise_cfg:
        raise ConfigurationError("[stepwise] table must name a regressor")

    regressor_type = stepwise_cfg["regressor"]
    regressor_config = None
    regressor_params = cfg.get("regressor")
    if regressor_params:
        config_class = resolve_regressor(regressor_type).config_class
        try:
            regressor_config = config_class(**regressor_params)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid [regressor] table: {exc}") from exc

    return TrainingConfig(
        regressor_type=regressor_type,
        max_iterations=stepwise_cfg.get("max_iterations"),
        a_out=stepwise_cfg.get("a_out", 0.05),
        regressor_config=regressor_config,
    )


def build_store_config(cfg: Dict[str, Any]) -> StoreConfig:
    """Build a StoreConfig from the optional `[store]` table."""
    store_cfg = cfg.get("store", {})
    kind = store_cfg.get("kind", "memory")

    if kind == "memory":
        return MemoryStoreConfig()
    if kind == "file":
        return FileStoreConfig(store_cfg.get("root", "models"))
    raise ConfigurationError(f"Unknown store kind: {kind!r}")
