"""
portalstack.engine.pulumi_engine — Apply a stack with Pulumi.

Each graph node becomes one Pulumi resource; dependencies and cluster
bindings become ResourceOptions(depends_on=..., provider=...). The
program runs through the Automation API, so no Pulumi project files are
needed:

    RegistryImage   → pulumi_docker.Image
    LocalCluster    → pulumi_kubernetes.Provider(kubeconfig=...)
    Vpc             → pulumi_awsx.ec2.Vpc
    ManagedCluster  → pulumi_eks.Cluster (+ a Kubernetes provider for it)
    Kubernetes      → pulumi_kubernetes typed resources

Requires the `pulumi` extra: pip install portalstack[pulumi]
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

from portalstack.core.cloud import LocalCluster, ManagedCluster, RegistryImage, Vpc
from portalstack.core.output import Output
from portalstack.core.resource import Resource
from portalstack.engine.base import Echo, Engine, EngineError, SubmitResult


def _snake(name: str) -> str:
    """loadBalancer → load_balancer, clusterIP → cluster_ip"""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).lower()


def _as_text(kubeconfig: Any) -> str:
    return kubeconfig if isinstance(kubeconfig, str) else json.dumps(kubeconfig)


def walk(value: Any, segments: list[str]) -> Any:
    """Walk a resolved Pulumi value: dict keys, output-type attributes, list indexes."""
    current = value
    for seg in segments:
        if current is None:
            return None
        if isinstance(current, list):
            idx = int(seg) if seg.isdigit() else -1
            current = current[idx] if 0 <= idx < len(current) else None
        elif isinstance(current, dict) and (seg in current or _snake(seg) in current):
            current = current.get(seg, current.get(_snake(seg)))
        else:
            current = getattr(current, _snake(seg), None)
    return current


class PulumiEngine(Engine):
    name = "pulumi"

    def __init__(
        self,
        echo: Echo | None = None,
        project: str = "portalstack",
        work_dir: str | None = None,
    ):
        super().__init__(echo)
        self.project = project
        self.work_dir = work_dir

    # ── program ────────────────────────────────────────────
    def program(self, stack) -> Callable[[], None]:
        """Pulumi program declaring every node of the stack's graph."""

        def run() -> None:
            import pulumi

            handles: dict[str, Any] = {}
            for resource in stack.graph.ordered():
                self._declare(resource, handles)
            for name, value in self.exports(stack, handles).items():
                pulumi.export(name, value)

        return run

    def exports(self, stack, handles: dict[str, Any]) -> dict[str, Any]:
        """Stack outputs as Pulumi outputs. Cluster credentials are secret."""
        import pulumi

        result = {}
        for name, out in stack.outputs.items():
            value = self._export(out, handles)
            if name == "kubeconfig":
                value = pulumi.Output.secret(value)
            result[name] = value
        return result

    def _options(self, resource: Resource, handles: dict[str, Any]):
        import pulumi

        depends_on = [
            handles[d.key] for d in resource.depends_on if d.key in handles
        ]
        provider = None
        if resource.provider is not None:
            provider = handles.get(f"{resource.provider.key}#provider")
        return pulumi.ResourceOptions(depends_on=depends_on, provider=provider)

    def _declare(self, resource: Resource, handles: dict[str, Any]) -> None:
        import pulumi
        import pulumi_kubernetes as k8s

        opts = self._options(resource, handles)

        if isinstance(resource, LocalCluster):
            provider = k8s.Provider(resource.name, kubeconfig=resource.kubeconfig)
            handles[resource.key] = provider
            handles[f"{resource.key}#provider"] = provider

        elif isinstance(resource, Vpc):
            import pulumi_awsx as awsx
            handles[resource.key] = awsx.ec2.Vpc(
                resource.name,
                number_of_availability_zones=resource.availability_zones,
                opts=opts,
            )

        elif isinstance(resource, ManagedCluster):
            import pulumi_eks as eks
            vpc = handles[resource.vpc.key]
            cluster = eks.Cluster(
                resource.name,
                vpc_id=vpc.vpc_id,
                public_subnet_ids=vpc.public_subnet_ids,
                instance_type=resource.instance_type,
                desired_capacity=resource.desired_capacity,
                opts=opts,
            )
            handles[resource.key] = cluster
            handles[f"{resource.key}#provider"] = k8s.Provider(
                f"{resource.name}-k8s",
                kubeconfig=cluster.kubeconfig.apply(_as_text),
                opts=pulumi.ResourceOptions(depends_on=[cluster]),
            )

        elif isinstance(resource, RegistryImage):
            import pulumi_docker as docker
            build = docker.DockerBuildArgs(
                context=resource.context,
                dockerfile=resource.dockerfile,
            )
            handles[resource.key] = docker.Image(
                resource.name,
                build=build,
                image_name=resource.image_ref,
                skip_push=False,
                registry=docker.RegistryArgs(
                    server=resource.registry_server,
                    username=resource.username,
                    password=pulumi.Output.secret(resource.password),
                ),
                opts=opts,
            )

        else:
            handles[resource.key] = self._declare_kubernetes(resource, opts)

    def _declare_kubernetes(self, resource: Resource, opts) -> Any:
        import pulumi_kubernetes as k8s

        kinds = {
            "Namespace": k8s.core.v1.Namespace,
            "ServiceAccount": k8s.core.v1.ServiceAccount,
            "PersistentVolumeClaim": k8s.core.v1.PersistentVolumeClaim,
            "Deployment": k8s.apps.v1.Deployment,
            "Service": k8s.core.v1.Service,
        }
        cls = kinds.get(resource._kind)
        if cls is None:
            raise EngineError(f"pulumi engine has no mapping for {resource.key}")

        doc = resource.render()
        args: dict[str, Any] = {"metadata": doc["metadata"]}
        if "spec" in doc:
            args["spec"] = doc["spec"]
        return cls(resource.logical_name, opts=opts, **args)

    def _export(self, out: Output, handles: dict[str, Any]) -> Any:
        handle = handles[out.resource.key]
        head, *rest = out.segments
        attr = getattr(handle, _snake(head))
        return attr.apply(lambda value: out.transform(walk(value, rest)))

    # ── automation ─────────────────────────────────────────
    def submit(self, stack, dry_run: bool = False) -> SubmitResult:
        from pulumi import automation as auto

        stack.graph.validate()
        opts = None
        if self.work_dir:
            opts = auto.LocalWorkspaceOptions(work_dir=self.work_dir)
        try:
            ws = auto.create_or_select_stack(
                stack_name=stack.name,
                project_name=self.project,
                program=self.program(stack),
                opts=opts,
            )
            region = getattr(stack.target, "region", None)
            if region:
                ws.set_config("aws:region", auto.ConfigValue(value=region))

            if dry_run:
                self.echo("Previewing changes...")
                ws.preview(on_output=self.echo)
                return SubmitResult(dry_run=True)

            self.echo("Applying changes...")
            up = ws.up(on_output=self.echo)
        except auto.CommandError as e:
            raise EngineError(f"pulumi failed: {e}") from e

        return SubmitResult(
            applied=[r.key for r in stack.graph.ordered()],
            outputs={name: ov.value for name, ov in up.outputs.items()},
        )
