"""
@module: stepreg.registry
@depends: stepreg.base, stepreg.exceptions, stepreg.storage
@exports: register_regressor, get_regressor, resolve_regressor, is_stepwise_compatible, create_regressor, list_regressors
@data_flow: regressor type identifier -> regressor class -> instance
"""

from __future__ import annotations

import logging
from typing import Dict, List, Type, Union

from stepreg.base import BaseRegressor, SignificanceReporting
from stepreg.exceptions import ConfigurationError
from stepreg.storage import StoreConfig

logger = logging.getLogger(__name__)

RegressorType = Union[str, Type[BaseRegressor]]

_REGRESSOR_REGISTRY: Dict[str, Type[BaseRegressor]] = {}


def register_regressor(name: str):
    """Class decorator registering a regressor under `name`."""

    def _wrap(cls: Type[BaseRegressor]) -> Type[BaseRegressor]:
        if not (isinstance(cls, type) and issubclass(cls, BaseRegressor)):
            raise TypeError(f"{cls!r} is not a BaseRegressor subclass")
        existing = _REGRESSOR_REGISTRY.get(name)
        if existing is not None and existing is not cls:
            logger.warning(f"Regressor '{name}' re-registered: {existing.__name__} -> {cls.__name__}")
        cls.registry_name = name
        _REGRESSOR_REGISTRY[name] = cls
        return cls

    return _wrap


def get_regressor(name: str) -> Type[BaseRegressor]:
    if name not in _REGRESSOR_REGISTRY:
        raise ConfigurationError(
            f"Unknown regressor type: {name!r} (registered: {list_regressors()})"
        )
    return _REGRESSOR_REGISTRY[name]


def resolve_regressor(regressor_type: RegressorType) -> Type[BaseRegressor]:
    """Resolve a registry name or a regressor class to the class."""
    if isinstance(regressor_type, str):
        return get_regressor(regressor_type)
    if isinstance(regressor_type, type) and issubclass(regressor_type, BaseRegressor):
        return regressor_type
    raise ConfigurationError(f"Not a regressor type: {regressor_type!r}")


def is_stepwise_compatible(regressor_type: RegressorType) -> bool:
    """True if the regressor reports per-feature p-values."""
    return issubclass(resolve_regressor(regressor_type), SignificanceReporting)


def create_regressor(
    regressor_type: RegressorType,
    name: str,
    store_config: StoreConfig,
) -> BaseRegressor:
    """Instantiate a regressor bound to the store `name`."""
    return resolve_regressor(regressor_type)(name, store_config)


def list_regressors() -> List[str]:
    return sorted(_REGRESSOR_REGISTRY)
