"""
portalstack.engine.base — Provisioning engine interface.

An engine receives a composed Stack, realizes its graph in dependency
order and resolves the Stack's deferred outputs. Engines do not retry:
any failure ends the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from portalstack.composer import Stack


Echo = Callable[[str], None]


class EngineError(Exception):
    """Provisioning failed or the engine cannot handle a resource."""
    pass


@dataclass
class SubmitResult:
    """What one submission applied and the outputs it resolved."""
    applied: list[str] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False


def _silent(message: str) -> None:
    pass


class Engine:
    """Base class for engines. Subclasses implement submit()."""

    name: str = ""

    def __init__(self, echo: Echo | None = None):
        self.echo = echo or _silent

    def submit(self, stack: Stack, dry_run: bool = False) -> SubmitResult:
        raise NotImplementedError(f"{self.__class__.__name__}.submit()")


def get_engine(name: str, echo: Echo | None = None) -> Engine:
    """Engine by name: 'kubectl' or 'pulumi'."""
    if name == "kubectl":
        from portalstack.engine.kubectl import KubectlEngine
        return KubectlEngine(echo=echo)
    if name == "pulumi":
        from portalstack.engine.pulumi_engine import PulumiEngine
        return PulumiEngine(echo=echo)
    raise EngineError(f"Unknown engine '{name}'. Available: kubectl, pulumi")
