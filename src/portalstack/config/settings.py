"""
portalstack.config.settings — Typed stack configuration.

The merged values dict is validated once into a frozen StackConfig.
The deployment target is a tagged variant: a LocalTarget carries only
local-cluster fields, a ManagedTarget only managed-cluster fields, so
no code path can read a field that belongs to the other branch.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Union

from portalstack.config.values import (
    default_values,
    env_values,
    merge_all_values,
)

# Options recognized in config files, --set and PORTALSTACK_* variables,
# with the type a command-line or environment string is converted to
OPTIONS: dict[str, type] = {
    "stackName": str,
    "useLocalCluster": bool,
    "namespace": str,
    "localClusterCredentials": str,
    "registryServer": str,
    "registryUsername": str,
    "registryPassword": str,
    "imageName": str,
    "imageTag": str,
    "buildContext": str,
    "dockerfile": str,
    "oauthClientId": str,
    "oauthClientSecret": str,
    "managedNodeInstanceType": str,
    "managedNodeDesiredCount": int,
    "managedStorageClass": str,
    "awsRegion": str,
    "localServiceEndpoint": str,
}

SECRET_OPTIONS = ("registryPassword", "oauthClientSecret", "localClusterCredentials")

# Always required, regardless of target
REQUIRED_STRINGS = (
    "registryUsername",
    "registryPassword",
    "imageName",
    "oauthClientId",
    "oauthClientSecret",
)

_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class ConfigError(Exception):
    """Invalid or incomplete configuration. Lists every problem found."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__(
            "Invalid configuration:\n" + "\n".join(f"  - {p}" for p in self.problems)
        )


@dataclass(frozen=True)
class LocalTarget:
    """Existing single-node cluster (minikube)."""
    kind: ClassVar[str] = "local"
    credentials: str = field(repr=False)


@dataclass(frozen=True)
class ManagedTarget:
    """New managed cluster (EKS) in a new two-zone VPC."""
    kind: ClassVar[str] = "managed"
    instance_type: str
    desired_count: int
    storage_class: str = "gp2"
    region: str = "us-east-1"


DeploymentTarget = Union[LocalTarget, ManagedTarget]


@dataclass(frozen=True)
class RegistrySettings:
    server: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ImageSettings:
    name: str
    tag: str
    context: str
    dockerfile: str


@dataclass(frozen=True)
class OAuthSettings:
    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class StackConfig:
    """Validated configuration for one composition."""
    target: DeploymentTarget
    registry: RegistrySettings
    image: ImageSettings
    oauth: OAuthSettings
    namespace: str = "backstage"
    stack_name: str = "backstage"
    local_endpoint: str = "http://127.0.0.1:55206"

    @property
    def is_local(self) -> bool:
        return isinstance(self.target, LocalTarget)


def _require_str(values: dict, key: str, problems: list[str]) -> str:
    value = values.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        problems.append(f"{key} is required")
        return ""
    if not isinstance(value, str):
        problems.append(f"{key} must be a string, got {type(value).__name__}")
        return ""
    return value


def _optional_str(values: dict, key: str, default: str) -> str:
    value = values.get(key)
    if value is None or value == "":
        return default
    return str(value)


def _parse_target(values: dict, problems: list[str]) -> DeploymentTarget | None:
    use_local = values.get("useLocalCluster")
    if use_local is None:
        problems.append("useLocalCluster is required")
        return None
    if not isinstance(use_local, bool):
        problems.append(
            f"useLocalCluster must be true or false, got {use_local!r}"
        )
        return None

    if use_local:
        credentials = _require_str(values, "localClusterCredentials", problems)
        return LocalTarget(credentials=credentials)

    instance_type = _require_str(values, "managedNodeInstanceType", problems)
    count = values.get("managedNodeDesiredCount")
    if count is None:
        problems.append("managedNodeDesiredCount is required")
        count = 0
    elif isinstance(count, bool) or not isinstance(count, int) or count < 1:
        problems.append(
            f"managedNodeDesiredCount must be a positive integer, got {count!r}"
        )
        count = 0
    return ManagedTarget(
        instance_type=instance_type,
        desired_count=count,
        storage_class=_optional_str(values, "managedStorageClass", "gp2"),
        region=_optional_str(values, "awsRegion", "us-east-1"),
    )


def load_stack_config(values: dict[str, Any]) -> StackConfig:
    """Validate merged values into a StackConfig.

    Raises:
        ConfigError: one or more options are missing or invalid.
    """
    problems: list[str] = []

    target = _parse_target(values, problems)
    required = {key: _require_str(values, key, problems) for key in REQUIRED_STRINGS}

    namespace = _optional_str(values, "namespace", "backstage")
    if not _DNS_LABEL.match(namespace) or len(namespace) > 63:
        problems.append(f"namespace '{namespace}' is not a valid DNS label")

    if problems:
        raise ConfigError(problems)

    return StackConfig(
        target=target,
        registry=RegistrySettings(
            server=_optional_str(values, "registryServer", "docker.io"),
            username=required["registryUsername"],
            password=required["registryPassword"],
        ),
        image=ImageSettings(
            name=required["imageName"],
            tag=_optional_str(values, "imageTag", "latest"),
            context=_optional_str(values, "buildContext", "."),
            dockerfile=_optional_str(values, "dockerfile", "Dockerfile"),
        ),
        oauth=OAuthSettings(
            client_id=required["oauthClientId"],
            client_secret=required["oauthClientSecret"],
        ),
        namespace=namespace,
        stack_name=_optional_str(values, "stackName", "backstage"),
        local_endpoint=_optional_str(
            values, "localServiceEndpoint", "http://127.0.0.1:55206"
        ),
    )


def resolve_values(
    value_files: list[str | Path] | None = None,
    set_args: list[str] | None = None,
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Merge defaults, files, --set and environment into one values dict."""
    return merge_all_values(
        default_values(),
        value_files or [],
        set_args or [],
        env=env_values(OPTIONS, environ),
        types=OPTIONS,
    )


def masked(values: dict[str, Any]) -> dict[str, Any]:
    """Copy of values with secrets hidden, for display."""
    shown = dict(values)
    for key in SECRET_OPTIONS:
        if shown.get(key):
            shown[key] = "********"
    return shown
