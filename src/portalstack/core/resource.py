"""
portalstack.core.resource — Base Resource class.

Common behaviors for every node of the resource graph:
- Context manager (with block)
- Scoping: resources declared inside a Namespace block inherit its
  name, its cluster binding and a dependency on it
- Explicit dependencies (depends_on) and cluster binding (provider)
- Tracking labels (portalstack.io/*)
- Deferred outputs
"""

from __future__ import annotations

from typing import Any

from portalstack.core.output import Output
from portalstack.core.stack import _current, _find, _push, _pop, _collected


# Tracking labels stamped on every Kubernetes object
_TRACKING_LABELS: dict[str, str] = {}


def set_tracking(stack: str | None = None, target: str | None = None) -> None:
    """Set global tracking labels. Called by the composer."""
    _TRACKING_LABELS.clear()
    _TRACKING_LABELS["portalstack.io/managed-by"] = "portalstack"
    if stack:
        _TRACKING_LABELS["portalstack.io/stack"] = stack
    if target:
        _TRACKING_LABELS["portalstack.io/target"] = target


class Resource:
    """Base class for all graph nodes.

    Used with the `with` block or as a plain call. Every instance is
    registered in the active graph() collection; the innermost open
    context is told about it through _adopt().
    """

    _kind: str = ""
    _api_version: str = "v1"
    # Placed inside the enclosing Namespace
    _namespaced: bool = False
    # Applied through a cluster binding (provider)
    _kubernetes: bool = True

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        # Engine-side identity; stays fixed when the object name is configurable
        self.logical_name: str = kwargs.pop("logical_name", None) or name
        self.metadata: dict[str, Any] = {"name": name}

        labels = dict(kwargs.pop("labels", {}) or {})
        if self._kubernetes:
            labels.update(_TRACKING_LABELS)
        if labels:
            self.metadata["labels"] = labels

        namespace = kwargs.pop("namespace", None)
        if namespace:
            self.metadata["namespace"] = namespace

        self.depends_on: list[Resource] = list(kwargs.pop("depends_on", None) or [])
        self.provider: Resource | None = kwargs.pop("provider", None)
        if kwargs:
            raise TypeError(
                f"{self.__class__.__name__}() got unexpected arguments: {', '.join(kwargs)}"
            )

        scope = _find(Scope)
        if scope is not None:
            scope._scope(self)

        parent = _current()
        if parent is not None and parent is not scope:
            parent._adopt(self)

        _collected().append(self)

    @property
    def key(self) -> str:
        """Graph-unique identifier."""
        return f"{self._kind}/{self.name}"

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace")

    def depend_on(self, *resources: Resource) -> None:
        for r in resources:
            if r is not self and r not in self.depends_on:
                self.depends_on.append(r)

    def dependencies(self) -> list[Resource]:
        """Explicit dependencies plus the cluster binding, in declaration order."""
        deps = list(self.depends_on)
        if self.provider is not None and self.provider not in deps:
            deps.append(self.provider)
        return deps

    def output(self, path: str) -> Output:
        """Deferred value of this resource at a dotted attribute path."""
        return Output(self, path)

    def _adopt(self, child: Any) -> None:
        """Accept a nested resource. Subclasses may override."""
        pass

    def __enter__(self):
        _push(self)
        return self

    def __exit__(self, *exc: Any) -> bool:
        _pop()
        return False

    def render(self) -> dict[str, Any]:
        """Produce the declarative description handed to the engine."""
        raise NotImplementedError(f"{self.__class__.__name__}.render()")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class Scope(Resource):
    """A resource whose `with` block scopes the resources declared in it."""

    def _scope(self, child: Resource) -> None:
        child.depend_on(self)
        if child._namespaced and "namespace" not in child.metadata:
            child.metadata["namespace"] = self.name
        if child._kubernetes and child.provider is None:
            child.provider = self.provider
