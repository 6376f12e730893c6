"""
portalstack.core.graph — Resource graph collector.

`with graph() as g:` collects every resource declared inside the block.
The collected ResourceGraph checks that declared dependencies form a
DAG over its own nodes and renders them in dependency order.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import yaml

from portalstack.core.resource import Resource
from portalstack.core.stack import _collected, _set_collected


class GraphError(Exception):
    """Structural error in a resource graph."""
    pass


class ResourceGraph:
    """Nodes in declaration order plus their dependency edges."""

    def __init__(self, resources: list[Resource]):
        self._resources = resources

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources)

    def get(self, key: str) -> Resource | None:
        for r in self._resources:
            if r.key == key:
                return r
        return None

    def of_kind(self, kind: str) -> list[Resource]:
        return [r for r in self._resources if r._kind == kind]

    def edges(self) -> list[tuple[str, str]]:
        """(dependent, dependency) key pairs."""
        return [
            (r.key, dep.key)
            for r in self._resources
            for dep in r.dependencies()
        ]

    def validate(self) -> None:
        """Raise GraphError on duplicate keys, dangling edges or cycles."""
        seen: set[str] = set()
        for r in self._resources:
            if r.key in seen:
                raise GraphError(f"Duplicate resource: '{r.key}'")
            seen.add(r.key)

        members = {id(r) for r in self._resources}
        for r in self._resources:
            for dep in r.dependencies():
                if id(dep) not in members:
                    raise GraphError(
                        f"'{r.key}' depends on '{dep.key}', "
                        f"which is not part of the graph"
                    )
        self.ordered()

    def ordered(self) -> list[Resource]:
        """Topological order; ties keep declaration order."""
        index = {id(r): i for i, r in enumerate(self._resources)}
        remaining = {
            id(r): {id(d) for d in r.dependencies() if id(d) in index}
            for r in self._resources
        }
        order: list[Resource] = []
        while remaining:
            ready = [rid for rid, deps in remaining.items() if not deps]
            if not ready:
                stuck = sorted(
                    self._resources[index[rid]].key for rid in remaining
                )
                raise GraphError(f"Dependency cycle between: {', '.join(stuck)}")
            ready.sort(key=lambda rid: index[rid])
            rid = ready[0]
            order.append(self._resources[index[rid]])
            del remaining[rid]
            for deps in remaining.values():
                deps.discard(rid)
        return order

    def to_dicts(self) -> list[dict[str, Any]]:
        """All resources as dicts, in dependency order."""
        return [r.render() for r in self.ordered()]

    def to_yaml(self) -> str:
        """Produce a multi-document YAML string."""
        docs = self.to_dicts()
        if not docs:
            return ""
        parts: list[str] = []
        for doc in docs:
            parts.append(yaml.dump(
                doc,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            ))
        return "---\n".join(parts)


@contextmanager
def graph():
    """Resource collector context manager::

        with graph() as g:
            with Namespace("backstage", provider=cluster):
                ServiceAccount("backstage-sa")

        print(g.to_yaml())
    """
    old = _collected()
    resources: list[Resource] = []
    _set_collected(resources)

    g = ResourceGraph(resources)
    try:
        yield g
    finally:
        _set_collected(old)
