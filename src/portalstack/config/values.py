"""
portalstack.config.values — Configuration sources and merge logic.

Precedence (low to high):
  defaults.yaml (package) → -f stack.yaml → -f stack.prod.yaml → --set key=val
  → PORTALSTACK_* environment variables

Deep merge: nested dicts are merged, scalars are overridden.
"""

from __future__ import annotations

import copy
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"
ENV_PREFIX = "PORTALSTACK_"


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Override wins.

    >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 99}})
    {'a': {'b': 99, 'c': 2}}
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_values_file(path: str | Path) -> dict:
    """Read a YAML config file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    with open(p) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def default_values() -> dict:
    return load_values_file(DEFAULTS_FILE)


def parse_set_values(
    set_args: list[str],
    types: Mapping[str, type] | None = None,
) -> dict:
    """Convert --set key=value arguments to a nested dict.

    Only keys listed in `types` as bool or int are converted; every
    other value stays the string that was given.

    >>> parse_set_values(["useLocalCluster=true", "imageTag=007"], {"useLocalCluster": bool})
    {'useLocalCluster': True, 'imageTag': '007'}
    """
    types = types or {}
    result: dict = {}
    for arg in set_args:
        if "=" not in arg:
            raise ValueError(f"Invalid --set format: '{arg}' (expected key=value)")
        key, value = arg.split("=", 1)
        parts = key.split(".")
        current = result
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[parts[-1]] = _coerce_value(value, types.get(key, str))
    return result


def _coerce_value(value: str, kind: type = str) -> Any:
    """Convert a string value to the option's declared type.

    Values that do not parse are returned unchanged so that validation
    can report them.

    >>> _coerce_value("3", int)
    3
    >>> _coerce_value("true", bool)
    True
    >>> _coerce_value("123456")
    '123456'
    """
    if kind is bool:
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return value
    if kind is int:
        try:
            return int(value)
        except ValueError:
            return value
    return value


def _env_key(option: str) -> str:
    """registryPassword → PORTALSTACK_REGISTRY_PASSWORD"""
    return ENV_PREFIX + re.sub(r"(?<!^)(?=[A-Z])", "_", option).upper()


def env_values(
    options: Mapping[str, type],
    environ: Mapping[str, str] | None = None,
) -> dict:
    """Pick PORTALSTACK_* variables for the given camelCase options."""
    env = os.environ if environ is None else environ
    result: dict = {}
    for option, kind in options.items():
        raw = env.get(_env_key(option))
        if raw is not None:
            result[option] = _coerce_value(raw, kind)
    return result


def merge_all_values(
    defaults: dict,
    value_files: list[str | Path],
    set_args: list[str],
    env: dict | None = None,
    types: Mapping[str, type] | None = None,
) -> dict:
    """Merge all configuration sources.

    Precedence (low to high):
      defaults → value_files (in order) → set_args → env

    `types` maps option names to bool/int for --set conversion.
    """
    result = copy.deepcopy(defaults)
    for vf in value_files:
        file_values = load_values_file(vf)
        result = deep_merge(result, file_values)
    if set_args:
        set_values = parse_set_values(set_args, types)
        result = deep_merge(result, set_values)
    if env:
        result = deep_merge(result, env)
    return result
