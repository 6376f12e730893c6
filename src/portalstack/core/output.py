"""
portalstack.core.output — Deferred values.

An Output names an attribute of a resource that only exists after the
provisioning engine has created it (a load balancer address, generated
cluster credentials). Composition builds Outputs; engines resolve them.

    endpoint = service.output("status.loadBalancer.ingress").apply(first_address)
    ...
    engine.resolve(endpoint)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from portalstack.core.resource import Resource


# fetch(resource, path) -> observed raw value
Fetcher = Callable[["Resource", list[str]], Any]


class Output:
    """A value bound to `resource` at a dotted attribute `path`.

    `apply()` chains transformations without resolving anything; the
    chain runs once, when an engine calls `resolve()` with a fetcher that
    knows how to read the live resource.
    """

    def __init__(
        self,
        resource: Resource,
        path: str,
        transforms: tuple[Callable[[Any], Any], ...] = (),
    ):
        self.resource = resource
        self.path = path
        self._transforms = transforms

    @property
    def segments(self) -> list[str]:
        return self.path.split(".") if self.path else []

    def apply(self, fn: Callable[[Any], Any]) -> Output:
        """Return a new Output that passes the resolved value through fn."""
        return Output(self.resource, self.path, self._transforms + (fn,))

    def transform(self, raw: Any) -> Any:
        """Run the apply() chain over an already-fetched raw value."""
        value = raw
        for fn in self._transforms:
            value = fn(value)
        return value

    def resolve(self, fetch: Fetcher) -> Any:
        return self.transform(fetch(self.resource, self.segments))

    def describe(self) -> str:
        return f"<output {self.resource.key}:{self.path}>"

    def __repr__(self) -> str:
        return f"Output({self.resource.key!r}, {self.path!r})"


def dig(data: Any, segments: list[str]) -> Any:
    """Walk nested dicts/lists along segments. Missing keys yield None.

    >>> dig({"status": {"loadBalancer": {"ingress": [{"ip": "1.2.3.4"}]}}},
    ...     ["status", "loadBalancer", "ingress"])
    [{'ip': '1.2.3.4'}]
    """
    current = data
    for seg in segments:
        if isinstance(current, dict):
            current = current.get(seg)
        elif isinstance(current, list) and seg.isdigit():
            idx = int(seg)
            current = current[idx] if idx < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def first_ingress_address(ingress: list[dict[str, Any]] | None) -> str | None:
    """Load balancer ingress → address. IP preferred, hostname fallback."""
    if not ingress:
        return None
    entry = ingress[0] or {}
    return entry.get("ip") or entry.get("hostname")
