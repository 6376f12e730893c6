"""portalstack.config — Configuration sources and typed settings."""

from portalstack.config.settings import (
    ConfigError,
    DeploymentTarget,
    LocalTarget,
    ManagedTarget,
    StackConfig,
    load_stack_config,
    masked,
    resolve_values,
)
from portalstack.config.values import deep_merge, merge_all_values, parse_set_values

__all__ = [
    "ConfigError",
    "DeploymentTarget",
    "LocalTarget",
    "ManagedTarget",
    "StackConfig",
    "load_stack_config",
    "masked",
    "resolve_values",
    "deep_merge",
    "merge_all_values",
    "parse_set_values",
]
