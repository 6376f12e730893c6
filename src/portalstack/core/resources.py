"""
portalstack.core.resources — Kubernetes resources.

Rule: If it can have children, use `with`; if it's a leaf, use a plain function call.

with: Namespace, Deployment, Container
leaf: Port, EnvVar, VolumeMount, ServiceAccount, PersistentVolumeClaim, Service

Every resource declared inside a `with Namespace(...)` block is placed
in that namespace, bound to the namespace's cluster and depends on it.
"""

from __future__ import annotations

from typing import Any

from portalstack.core.resource import Resource, Scope
from portalstack.core.stack import _current, _push, _pop


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# NAMESPACE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Namespace(Scope):
    _kind = "Namespace"
    _api_version = "v1"

    def render(self) -> dict[str, Any]:
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": self.metadata,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SERVICE ACCOUNT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class ServiceAccount(Resource):
    _kind = "ServiceAccount"
    _api_version = "v1"
    _namespaced = True

    def render(self) -> dict[str, Any]:
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": self.metadata,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CONTAINER — Not a graph node, but a pod spec child
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Container:
    """Pod spec container. Used with the `with` block.

    `image` is either a literal reference ("postgres:13") or a
    RegistryImage node, in which case the enclosing workload depends
    on the image being built and pushed first.
    """

    def __init__(self, name: str, image: Any):
        self.name = name
        self.source: Resource | None = image if isinstance(image, Resource) else None
        self.image: str = image.image_ref if self.source is not None else image
        self.ports: list[dict] = []
        self.env: list[dict] = []
        self.volume_mounts: list[dict] = []

        parent = _current()
        if parent is None or not hasattr(parent, "containers"):
            raise TypeError("Container() must be inside a Deployment context")
        parent._adopt(self)

    def __enter__(self):
        _push(self)
        return self

    def __exit__(self, *exc: Any) -> bool:
        _pop()
        return False

    def _adopt(self, child: Any) -> None:
        """Container has no children; leaves manipulate it directly."""
        pass

    def render(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "name": self.name,
            "image": self.image,
        }
        if self.ports:
            spec["ports"] = self.ports
        if self.env:
            spec["env"] = self.env
        if self.volume_mounts:
            spec["volumeMounts"] = self.volume_mounts
        return spec


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CONTAINER LEAF NODES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def _container() -> Container:
    parent = _current()
    if not isinstance(parent, Container):
        raise TypeError("must be inside a Container context")
    return parent


def Port(container_port: int) -> None:
    """Container port definition."""
    _container().ports.append({"containerPort": container_port})


def EnvVar(name: str, value: Any) -> None:
    """Container environment variable. Values are always rendered as strings."""
    _container().env.append({
        "name": name,
        "value": str(value) if value is not None else "",
    })


def VolumeMount(mount_path: str, name: str) -> None:
    """Container volume mount. `name` is a pod volume, e.g. a claim's volume_name."""
    _container().volume_mounts.append({"mountPath": mount_path, "name": name})


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PVC
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class PersistentVolumeClaim(Resource):
    """Storage request.

    Declared inside a Deployment block, the claim is mounted into the
    pod as `volume_name` and the Deployment depends on it.
    """

    _kind = "PersistentVolumeClaim"
    _api_version = "v1"
    _namespaced = True

    def __init__(
        self,
        name: str,
        size: str = "10Gi",
        access_modes: list[str] | None = None,
        storage_class: str | None = None,
        volume_name: str | None = None,
        **kwargs: Any,
    ):
        self.size = size
        self.access_modes = access_modes or ["ReadWriteOnce"]
        self.storage_class = storage_class
        self.volume_name = volume_name or name
        super().__init__(name, **kwargs)

    def render(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "accessModes": self.access_modes,
            "resources": {"requests": {"storage": self.size}},
        }
        if self.storage_class:
            spec["storageClassName"] = self.storage_class
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": self.metadata,
            "spec": spec,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DEPLOYMENT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Deployment(Resource):
    _kind = "Deployment"
    _api_version = "apps/v1"
    _namespaced = True

    def __init__(
        self,
        name: str,
        replicas: int = 1,
        labels: dict | None = None,
        service_account: ServiceAccount | None = None,
        **kwargs: Any,
    ):
        self.replicas = replicas
        self.labels = dict(labels or {"app": name})
        self.containers: list[Container] = []
        self.volumes: list[dict] = []
        super().__init__(name, labels=self.labels, **kwargs)

        self.service_account_name: str | None = None
        if service_account is not None:
            self.service_account_name = service_account.name
            self.depend_on(service_account)

    def _adopt(self, child: Any) -> None:
        if isinstance(child, Container):
            self.containers.append(child)
            if child.source is not None:
                self.depend_on(child.source)
        elif isinstance(child, Service):
            child.selector = dict(self.labels)
            child.depend_on(self)
        elif isinstance(child, PersistentVolumeClaim):
            self.volumes.append({
                "name": child.volume_name,
                "persistentVolumeClaim": {"claimName": child.name},
            })
            self.depend_on(child)

    def render(self) -> dict[str, Any]:
        pod_spec: dict[str, Any] = {}
        if self.service_account_name:
            pod_spec["serviceAccountName"] = self.service_account_name
        pod_spec["containers"] = [c.render() for c in self.containers]
        if self.volumes:
            pod_spec["volumes"] = self.volumes

        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": self.metadata,
            "spec": {
                "replicas": self.replicas,
                "selector": {"matchLabels": self.labels},
                "template": {
                    "metadata": {"labels": self.labels},
                    "spec": pod_spec,
                },
            },
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SERVICE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Service(Resource):
    """Kubernetes Service exposing one port.

        Service("web", port=80, target_port=8080)

    Declared inside a Deployment block, the selector is the Deployment's
    labels and the Service depends on the Deployment.
    """

    _kind = "Service"
    _api_version = "v1"
    _namespaced = True

    def __init__(
        self,
        name: str,
        port: int,
        target_port: int | None = None,
        type: str = "ClusterIP",
        **kwargs: Any,
    ):
        self.type = type
        self.selector: dict = {}
        self.ports: list[dict] = [{
            "port": port,
            "targetPort": target_port or port,
        }]
        super().__init__(name, **kwargs)

    def cluster_dns(self) -> str:
        """In-cluster DNS name: <service>.<namespace>.svc.cluster.local"""
        return f"{self.name}.{self.namespace}.svc.cluster.local"

    def render(self) -> dict[str, Any]:
        return {
            "apiVersion": self._api_version,
            "kind": self._kind,
            "metadata": self.metadata,
            "spec": {
                "selector": self.selector,
                "ports": self.ports,
                "type": self.type,
            },
        }
