"""
portalstack.core.cloud — Graph nodes that are not Kubernetes objects.

RegistryImage    container image built from a local context and pushed
LocalCluster     binding to an existing cluster through kubeconfig
Vpc              virtual network for a managed cluster
ManagedCluster   managed Kubernetes cluster (EKS) and its node group

LocalCluster and ManagedCluster are cluster bindings: Kubernetes
resources reference one of them as their `provider`.
"""

from __future__ import annotations

from typing import Any

from portalstack.core.resource import Resource

API_VERSION = "portalstack.io/v1"
MASK = "********"


def is_inline_kubeconfig(value: str) -> bool:
    """Kubeconfig content (as opposed to a path to a kubeconfig file)."""
    return "\n" in value or value.lstrip().startswith(("apiVersion", "{"))


class RegistryImage(Resource):
    """Image build + push.

    Nothing here talks to Docker; the engine builds and pushes the image
    when it reaches this node, before any workload that runs it.
    """

    _kind = "RegistryImage"
    _api_version = API_VERSION
    _kubernetes = False

    def __init__(
        self,
        name: str,
        image_name: str,
        *,
        tag: str = "latest",
        context: str = ".",
        dockerfile: str | None = None,
        registry_server: str = "docker.io",
        username: str = "",
        password: str = "",
        **kwargs: Any,
    ):
        self.image_name = image_name
        self.tag = tag
        self.context = context
        self.dockerfile = dockerfile
        self.registry_server = registry_server
        self.username = username
        self.password = password
        super().__init__(name, **kwargs)

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.tag}"

    def render(self) -> dict[str, Any]:
        build: dict[str, Any] = {"context": self.context}
        if self.dockerfile:
            build["dockerfile"] = self.dockerfile
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": {"name": self.name},
            "spec": {
                "imageName": self.image_ref,
                "build": build,
                "registry": {
                    "server": self.registry_server,
                    "username": self.username,
                    "password": MASK,
                },
                "push": True,
            },
        }


class LocalCluster(Resource):
    """Existing cluster reached through externally supplied credentials."""

    _kind = "LocalCluster"
    _api_version = API_VERSION
    _kubernetes = False

    def __init__(self, name: str, kubeconfig: str, **kwargs: Any):
        self.kubeconfig = kubeconfig
        super().__init__(name, **kwargs)

    def render(self) -> dict[str, Any]:
        shown = "<inline>" if is_inline_kubeconfig(self.kubeconfig) else self.kubeconfig
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": {"name": self.name},
            "spec": {"kubeconfig": shown},
        }


class Vpc(Resource):
    _kind = "Vpc"
    _api_version = API_VERSION
    _kubernetes = False

    def __init__(self, name: str, availability_zones: int = 2, **kwargs: Any):
        self.availability_zones = availability_zones
        super().__init__(name, **kwargs)

    def render(self) -> dict[str, Any]:
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": {"name": self.name},
            "spec": {"numberOfAvailabilityZones": self.availability_zones},
        }


class ManagedCluster(Resource):
    """Managed cluster inside `vpc`'s public subnets.

    Its `kubeconfig` output carries the generated cluster credentials.
    """

    _kind = "ManagedCluster"
    _api_version = API_VERSION
    _kubernetes = False

    def __init__(
        self,
        name: str,
        vpc: Vpc,
        instance_type: str,
        desired_capacity: int,
        region: str | None = None,
        **kwargs: Any,
    ):
        self.vpc = vpc
        self.instance_type = instance_type
        self.desired_capacity = desired_capacity
        self.region = region
        super().__init__(name, **kwargs)
        self.depend_on(vpc)

    def render(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "vpc": self.vpc.name,
            "subnets": "public",
            "instanceType": self.instance_type,
            "desiredCapacity": self.desired_capacity,
        }
        if self.region:
            spec["region"] = self.region
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": {"name": self.name},
            "spec": spec,
        }
