"""
portalstack — Backstage and PostgreSQL on minikube or EKS.

Composes the stack as a resource graph in plain Python and hands it
to a provisioning engine (kubectl or Pulumi).
"""

from portalstack.composer import Stack, compose, compose_values
from portalstack.config.settings import (
    ConfigError,
    LocalTarget,
    ManagedTarget,
    StackConfig,
    load_stack_config,
)
from portalstack.core.graph import graph, GraphError, ResourceGraph
from portalstack.core.output import Output
from portalstack.core.resource import Resource, set_tracking
from portalstack.core.cloud import RegistryImage, LocalCluster, Vpc, ManagedCluster
from portalstack.core.resources import (
    # with resources
    Namespace,
    Deployment,
    Container,
    # leaf nodes
    Service,
    ServiceAccount,
    PersistentVolumeClaim,
    Port,
    EnvVar,
    VolumeMount,
)

__version__ = "0.1.0"

__all__ = [
    # composer
    "Stack",
    "compose",
    "compose_values",
    # config
    "ConfigError",
    "LocalTarget",
    "ManagedTarget",
    "StackConfig",
    "load_stack_config",
    # core
    "graph",
    "GraphError",
    "ResourceGraph",
    "Output",
    "Resource",
    "set_tracking",
    # cloud nodes
    "RegistryImage",
    "LocalCluster",
    "Vpc",
    "ManagedCluster",
    # with resources
    "Namespace",
    "Deployment",
    "Container",
    "Service",
    # leaf nodes
    "ServiceAccount",
    "PersistentVolumeClaim",
    "Port",
    "EnvVar",
    "VolumeMount",
]
