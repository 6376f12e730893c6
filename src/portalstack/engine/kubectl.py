"""
portalstack.engine.kubectl — Apply a stack with kubectl and docker.

Walks the graph in dependency order:
  LocalCluster    → kubeconfig used for every kubectl call
  RegistryImage   → docker login/build/push
  Kubernetes      → kubectl apply -f -
Vpc and ManagedCluster need a cloud-capable engine (pulumi); a stack
containing them is rejected before anything is applied.
"""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
from typing import Any, Callable

import yaml

from portalstack.core.cloud import LocalCluster, RegistryImage, is_inline_kubeconfig
from portalstack.core.output import dig
from portalstack.core.resource import Resource
from portalstack.engine.base import Echo, Engine, EngineError, SubmitResult
from portalstack.engine.docker import DockerCli


class KubectlEngine(Engine):
    name = "kubectl"

    def __init__(
        self,
        echo: Echo | None = None,
        kubectl: str = "kubectl",
        docker: DockerCli | None = None,
        runner: Callable | None = None,
    ):
        super().__init__(echo)
        self.kubectl = kubectl
        self.docker = docker or DockerCli(runner=runner)
        self._run = runner or subprocess.run
        self._kubeconfig: str | None = None

    def submit(self, stack, dry_run: bool = False) -> SubmitResult:
        stack.graph.validate()
        ordered = stack.graph.ordered()

        unsupported = [
            r.key for r in ordered
            if not r._kubernetes and not isinstance(r, (LocalCluster, RegistryImage))
        ]
        if unsupported:
            raise EngineError(
                f"kubectl engine cannot provision {', '.join(unsupported)}. "
                f"Use --engine pulumi for managed clusters."
            )

        result = SubmitResult(dry_run=dry_run)
        cleanup: str | None = None
        try:
            for r in ordered:
                if isinstance(r, LocalCluster):
                    self._kubeconfig, cleanup = _kubeconfig_file(r.kubeconfig)
                    self.echo(f"Using cluster {r.name}")
                elif isinstance(r, RegistryImage):
                    if dry_run:
                        self.echo(f"Skipping image build for {r.image_ref} (dry run)")
                    else:
                        self.echo(f"Building and pushing {r.image_ref}...")
                        self.docker.publish(r)
                else:
                    self._apply(r, dry_run)
                result.applied.append(r.key)

            if not dry_run:
                for name, out in stack.outputs.items():
                    result.outputs[name] = out.resolve(self._fetch)
        finally:
            if cleanup:
                os.unlink(cleanup)
            self._kubeconfig = None

        return result

    def _base_cmd(self) -> list[str]:
        cmd = [self.kubectl]
        if self._kubeconfig:
            cmd.extend(["--kubeconfig", self._kubeconfig])
        return cmd

    def _kubectl(self, args: list[str], stdin: str | None = None) -> str:
        cmd = self._base_cmd() + args
        try:
            result = self._run(cmd, input=stdin, text=True, capture_output=True)
        except FileNotFoundError:
            raise EngineError("kubectl not found.")
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise EngineError(f"kubectl {args[0]} failed: {detail}")
        return result.stdout

    def _apply(self, resource: Resource, dry_run: bool) -> None:
        """Run kubectl apply -f - for one resource."""
        doc = yaml.dump(resource.render(), default_flow_style=False, sort_keys=False)
        args = ["apply", "-f", "-"]
        if dry_run:
            args.append("--dry-run=client")
        self.echo(f"Applying {resource.key}...")
        out = self._kubectl(args, stdin=doc)
        if out:
            self.echo(out.rstrip())

    def _fetch(self, resource: Resource, segments: list[str]) -> Any:
        """kubectl get <kind> <name> -o json, then walk to the attribute."""
        args = ["get", resource._kind.lower(), resource.name, "-o", "json"]
        if resource.namespace:
            args.extend(["-n", resource.namespace])
        observed = json.loads(self._kubectl(args))
        return dig(observed, segments)


def _kubeconfig_file(kubeconfig: str) -> tuple[str, str | None]:
    """Path usable with --kubeconfig, plus a temp file to delete (if any)."""
    if not is_inline_kubeconfig(kubeconfig):
        return os.path.expanduser(kubeconfig), None
    fd, path = tempfile.mkstemp(prefix="portalstack-", suffix=".kubeconfig")
    with os.fdopen(fd, "w") as f:
        f.write(kubeconfig)
    return path, path
