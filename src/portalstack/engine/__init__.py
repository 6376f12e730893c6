"""portalstack.engine — Provisioning engine adapters."""

from portalstack.engine.base import Engine, EngineError, SubmitResult, get_engine
from portalstack.engine.docker import BuildError, DockerCli
from portalstack.engine.kubectl import KubectlEngine

__all__ = [
    "Engine",
    "EngineError",
    "SubmitResult",
    "get_engine",
    "BuildError",
    "DockerCli",
    "KubectlEngine",
]
