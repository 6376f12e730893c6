"""
portalstack.composer — The Backstage stack.

Composes the full resource graph for one StackConfig:

    cluster binding (minikube | VPC + EKS)
      └── Namespace
            ├── RegistryImage          backstage-image
            ├── ServiceAccount         backstage-sa[-minikube]
            ├── postgres-deployment    + postgres-pvc, postgres-service
            └── backstage-deployment   + backstage-pvc, backstage-service

Composition is pure: no Docker, no cluster access. Engines realize the
graph (see portalstack.engine).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from portalstack.config.settings import (
    DeploymentTarget,
    LocalTarget,
    StackConfig,
    load_stack_config,
)
from portalstack.core.cloud import LocalCluster, ManagedCluster, RegistryImage, Vpc
from portalstack.core.graph import ResourceGraph, graph
from portalstack.core.output import Output, first_ingress_address
from portalstack.core.resource import Resource, set_tracking
from portalstack.core.resources import (
    Container,
    Deployment,
    EnvVar,
    Namespace,
    PersistentVolumeClaim,
    Port,
    Service,
    ServiceAccount,
    VolumeMount,
)

# Database connection, shared by both workloads
DB_IMAGE = "postgres:13"
DB_USER = "backstage"
DB_PASSWORD = "backstage"
DB_PORT = 5432

PORTAL_PORT = 7007
PORTAL_SERVICE_PORT = 80


@dataclass(frozen=True)
class TargetProfile:
    """Everything that differs between the two deployment targets."""
    service_account: str
    storage_size: str
    storage_class: str | None
    service_type: str


def profile_for(target: DeploymentTarget) -> TargetProfile:
    if isinstance(target, LocalTarget):
        return TargetProfile(
            service_account="backstage-sa-minikube",
            storage_size="10Gi",
            storage_class=None,
            service_type="ClusterIP",
        )
    return TargetProfile(
        service_account="backstage-sa",
        storage_size="20Gi",
        storage_class=target.storage_class,
        service_type="LoadBalancer",
    )


@dataclass
class Stack:
    """One composed stack: its resource graph and named deferred outputs."""
    name: str
    target: DeploymentTarget
    graph: ResourceGraph
    outputs: dict[str, Output] = field(default_factory=dict)

    def describe_outputs(self) -> dict[str, str]:
        return {name: out.describe() for name, out in self.outputs.items()}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REUSABLE COMPONENTS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def cluster_binding(target: DeploymentTarget) -> Resource:
    """Existing minikube cluster, or a new EKS cluster in a new two-zone VPC."""
    if isinstance(target, LocalTarget):
        return LocalCluster("minikube", kubeconfig=target.credentials)

    vpc = Vpc("vpc", availability_zones=2)
    return ManagedCluster(
        "backstage-cluster",
        vpc=vpc,
        instance_type=target.instance_type,
        desired_capacity=target.desired_count,
        region=target.region,
    )


def database_env() -> None:
    """Connection credentials, identical on the database and its clients."""
    EnvVar("POSTGRES_USER", DB_USER)
    EnvVar("POSTGRES_PASSWORD", DB_PASSWORD)


def postgres_workload(storage: str = "10Gi") -> Service:
    """PostgreSQL deployment with its claim and ClusterIP service.

    Returns the Service; clients reach it through service.cluster_dns().
    """
    with Deployment("postgres-deployment", labels={"app": "postgres"}):
        with Container("postgres", image=DB_IMAGE):
            Port(DB_PORT)
            database_env()
            VolumeMount("/var/lib/postgresql/data", "postgres-data")

        PersistentVolumeClaim(
            "postgres-pvc",
            size=storage,
            volume_name="postgres-data",
        )
        svc = Service("postgres-service", port=DB_PORT, target_port=DB_PORT)
    return svc


def portal_workload(
    image: RegistryImage,
    service_account: ServiceAccount,
    database: Service,
    config: StackConfig,
    profile: TargetProfile,
) -> Service:
    """Backstage deployment with its claim and service. Returns the Service."""
    with Deployment(
        "backstage-deployment",
        labels={"app": "backstage"},
        service_account=service_account,
    ) as dep:
        # POSTGRES_HOST is derived from the database service's name
        dep.depend_on(database)

        with Container("backstage", image=image):
            Port(PORTAL_PORT)
            VolumeMount("/data", "backstage-data")
            EnvVar("DATABASE_CLIENT", "pg")
            EnvVar("POSTGRES_HOST", database.cluster_dns())
            EnvVar("POSTGRES_PORT", DB_PORT)
            database_env()
            EnvVar("AUTH_GITHUB_CLIENT_ID", config.oauth.client_id)
            EnvVar("AUTH_GITHUB_CLIENT_SECRET", config.oauth.client_secret)

        PersistentVolumeClaim(
            "backstage-pvc",
            size=profile.storage_size,
            storage_class=profile.storage_class,
            volume_name="backstage-data",
        )
        svc = Service(
            "backstage-service",
            port=PORTAL_SERVICE_PORT,
            target_port=PORTAL_PORT,
            type=profile.service_type,
        )
    return svc


def endpoint_output(config: StackConfig, service: Service) -> Output:
    """Reachable address of the portal, known only after apply."""
    if isinstance(config.target, LocalTarget):
        # TODO: derive from the minikube service tunnel instead of a fixed address
        endpoint = config.local_endpoint
        return service.output("spec.clusterIP").apply(lambda _ip: endpoint)
    return service.output("status.loadBalancer.ingress").apply(first_ingress_address)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# COMPOSER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def compose(config: StackConfig) -> Stack:
    """Build the resource graph and outputs for a validated configuration."""
    profile = profile_for(config.target)
    set_tracking(stack=config.stack_name, target=config.target.kind)

    with graph() as g:
        cluster = cluster_binding(config.target)

        with Namespace(
            config.namespace,
            provider=cluster,
            logical_name="backstage-namespace",
        ):
            image = RegistryImage(
                "backstage-image",
                config.image.name,
                tag=config.image.tag,
                context=config.image.context,
                dockerfile=config.image.dockerfile,
                registry_server=config.registry.server,
                username=config.registry.username,
                password=config.registry.password,
            )
            sa = ServiceAccount(profile.service_account)

            db_service = postgres_workload()
            portal_service = portal_workload(image, sa, db_service, config, profile)

    g.validate()

    outputs: dict[str, Output] = {
        "serviceEndpoint": endpoint_output(config, portal_service),
    }
    if isinstance(cluster, ManagedCluster):
        outputs["kubeconfig"] = cluster.output("kubeconfig")

    return Stack(
        name=config.stack_name,
        target=config.target,
        graph=g,
        outputs=outputs,
    )


def compose_values(values: dict[str, Any]) -> Stack:
    """Validate raw values, then compose. Nothing is composed on ConfigError."""
    return compose(load_stack_config(values))
