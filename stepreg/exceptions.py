"""
@module: stepreg.exceptions
@depends:
@exports: StepwiseError, ConfigurationError, UnsupportedOperationError
@data_flow: raised by config/registry/stepwise -> caller
"""


class StepwiseError(Exception):
    """Base exception for all stepreg errors."""


class ConfigurationError(StepwiseError, ValueError):
    """A training or store configuration was rejected."""


class UnsupportedOperationError(StepwiseError, NotImplementedError):
    """The model does not support the requested operation."""
