"""
tests/test_core.py — Core DSL tests.

Resources, namespace scoping, the graph collector and deferred outputs.
"""

import yaml
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from portalstack.core.stack import _reset, _collected
from portalstack.core.resource import _TRACKING_LABELS, set_tracking
from portalstack.core.graph import graph, GraphError
from portalstack.core.output import Output, dig, first_ingress_address
from portalstack.core.cloud import LocalCluster, ManagedCluster, RegistryImage, Vpc
from portalstack.core.resources import (
    Namespace, Deployment, Container, Service,
    ServiceAccount, PersistentVolumeClaim,
    Port, EnvVar, VolumeMount,
)


@pytest.fixture(autouse=True)
def clean_stack():
    """Clean the stack and tracking labels before each test."""
    _reset()
    _TRACKING_LABELS.clear()
    yield
    _reset()
    _TRACKING_LABELS.clear()


def _cluster():
    return LocalCluster("minikube", kubeconfig="~/.kube/config")


# ─────────────────────────────────────────────
# NAMESPACE SCOPING
# ─────────────────────────────────────────────
class TestNamespaceScope:
    def test_namespaced_resource_inherits_scope(self):
        with graph():
            cluster = _cluster()
            with Namespace("backstage", provider=cluster) as ns:
                sa = ServiceAccount("backstage-sa")

        assert sa.namespace == "backstage"
        assert sa.provider is cluster
        assert ns in sa.depends_on

    def test_namespace_renders_plain(self):
        with graph() as g:
            with Namespace("backstage", provider=_cluster()):
                pass

        doc = g.get("Namespace/backstage").render()
        assert doc == {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": "backstage"},
        }

    def test_explicit_namespace_wins(self):
        with graph():
            with Namespace("backstage", provider=_cluster()):
                sa = ServiceAccount("other-sa", namespace="other")

        assert sa.namespace == "other"

    def test_non_kubernetes_node_gets_no_provider(self):
        with graph():
            with Namespace("backstage", provider=_cluster()) as ns:
                image = RegistryImage("img", "dev/app")

        assert image.provider is None
        assert image.depends_on == [ns]
        assert "namespace" not in image.render()["metadata"]

    def test_tracking_labels(self):
        set_tracking(stack="backstage", target="local")
        with graph():
            with Namespace("backstage", provider=_cluster()) as ns:
                pass

        labels = ns.render()["metadata"]["labels"]
        assert labels["portalstack.io/managed-by"] == "portalstack"
        assert labels["portalstack.io/stack"] == "backstage"
        assert labels["portalstack.io/target"] == "local"


# ─────────────────────────────────────────────
# DEPLOYMENT
# ─────────────────────────────────────────────
class TestDeployment:
    def test_simple_deployment(self):
        with graph() as g:
            with Namespace("ns", provider=_cluster()):
                with Deployment("nginx"):
                    with Container("nginx", image="nginx:latest"):
                        Port(80)

        dep = g.get("Deployment/nginx").render()
        assert dep["kind"] == "Deployment"
        assert dep["metadata"]["namespace"] == "ns"
        assert dep["spec"]["replicas"] == 1
        assert dep["spec"]["selector"]["matchLabels"] == {"app": "nginx"}
        containers = dep["spec"]["template"]["spec"]["containers"]
        assert containers == [{
            "name": "nginx",
            "image": "nginx:latest",
            "ports": [{"containerPort": 80}],
        }]

    def test_claim_declared_in_deployment_is_mounted(self):
        with graph() as g:
            with Namespace("ns", provider=_cluster()):
                with Deployment("db", labels={"app": "postgres"}) as dep:
                    with Container("db", image="postgres:13"):
                        VolumeMount("/var/lib/postgresql/data", "db-data")
                    pvc = PersistentVolumeClaim("db-pvc", size="10Gi", volume_name="db-data")

        assert pvc in dep.depends_on
        pod = g.get("Deployment/db").render()["spec"]["template"]["spec"]
        assert pod["volumes"] == [
            {"name": "db-data", "persistentVolumeClaim": {"claimName": "db-pvc"}},
        ]
        claim = g.get("PersistentVolumeClaim/db-pvc").render()
        assert claim["metadata"]["namespace"] == "ns"
        assert claim["spec"] == {
            "accessModes": ["ReadWriteOnce"],
            "resources": {"requests": {"storage": "10Gi"}},
        }

    def test_storage_class(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                pvc = PersistentVolumeClaim("data", size="20Gi", storage_class="gp2")

        assert pvc.render()["spec"]["storageClassName"] == "gp2"

    def test_service_in_deployment_selects_its_pods(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                with Deployment("web", labels={"app": "web"}) as dep:
                    with Container("web", image="nginx"):
                        Port(8080)
                    svc = Service("web-svc", port=80, target_port=8080, type="LoadBalancer")

        doc = svc.render()
        assert doc["spec"]["selector"] == {"app": "web"}
        assert doc["spec"]["ports"] == [{"port": 80, "targetPort": 8080}]
        assert doc["spec"]["type"] == "LoadBalancer"
        assert dep in svc.depends_on

    def test_service_requires_name_and_port(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                with Deployment("api"):
                    with pytest.raises(TypeError):
                        Service(port=80)

    def test_service_account_in_pod_spec(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                sa = ServiceAccount("app-sa")
                with Deployment("app", service_account=sa) as dep:
                    with Container("app", image="app:v1"):
                        pass

        assert sa in dep.depends_on
        assert dep.render()["spec"]["template"]["spec"]["serviceAccountName"] == "app-sa"

    def test_container_from_registry_image(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                image = RegistryImage("img", "dev/backstage", tag="v2")
                with Deployment("app") as dep:
                    with Container("app", image=image):
                        pass

        assert image in dep.depends_on
        assert dep.containers[0].image == "dev/backstage:v2"

    def test_envvar_values_are_strings(self):
        with graph():
            with Namespace("ns", provider=_cluster()):
                with Deployment("app") as dep:
                    with Container("app", image="app:v1"):
                        EnvVar("PORT", 5432)
                        EnvVar("EMPTY", None)

        assert dep.containers[0].env == [
            {"name": "PORT", "value": "5432"},
            {"name": "EMPTY", "value": ""},
        ]

    def test_cluster_dns(self):
        with graph():
            with Namespace("portal", provider=_cluster()):
                svc = Service("postgres-service", port=5432)

        assert svc.cluster_dns() == "postgres-service.portal.svc.cluster.local"


class TestResourceArguments:
    def test_unknown_argument_rejected(self):
        with graph():
            with pytest.raises(TypeError, match="unexpected arguments: annotations"):
                Namespace("ns", provider=_cluster(), annotations={"a": "b"})

    def test_logical_name_defaults_to_name(self):
        with graph():
            ns = Namespace("portal", provider=_cluster())
        assert ns.logical_name == "portal"

    def test_logical_name_independent_of_object_name(self):
        with graph() as g:
            with Namespace("portal", provider=_cluster(), logical_name="app-namespace"):
                sa = ServiceAccount("sa")

        assert g.get("Namespace/portal").logical_name == "app-namespace"
        assert g.get("Namespace/portal").render()["metadata"]["name"] == "portal"
        assert sa.namespace == "portal"


class TestLeafErrors:
    def test_port_outside_container(self):
        with pytest.raises(TypeError):
            Port(80)

    def test_envvar_outside_container(self):
        with pytest.raises(TypeError):
            EnvVar("A", "b")

    def test_container_outside_deployment(self):
        with pytest.raises(TypeError):
            Container("c", image="x")

    def test_volume_mount_outside_container(self):
        with pytest.raises(TypeError):
            VolumeMount("/data", "data")


# ─────────────────────────────────────────────
# CLOUD NODES
# ─────────────────────────────────────────────
class TestCloud:
    def test_registry_image_masks_password(self):
        with graph():
            image = RegistryImage(
                "img", "dev/backstage",
                context="../app", dockerfile="../app/Dockerfile",
                username="dev", password="s3cret",
            )

        doc = image.render()
        assert doc["spec"]["imageName"] == "dev/backstage:latest"
        assert doc["spec"]["registry"] == {
            "server": "docker.io", "username": "dev", "password": "********",
        }
        assert "s3cret" not in yaml.dump(doc)

    def test_inline_kubeconfig_hidden(self):
        with graph():
            cluster = LocalCluster("minikube", kubeconfig="apiVersion: v1\nclusters: []\n")

        assert cluster.render()["spec"]["kubeconfig"] == "<inline>"

    def test_managed_cluster_depends_on_vpc(self):
        with graph() as g:
            vpc = Vpc("vpc")
            cluster = ManagedCluster("c", vpc=vpc, instance_type="t3.medium",
                                     desired_capacity=2)

        assert vpc in cluster.depends_on
        assert g.get("Vpc/vpc").render()["spec"] == {"numberOfAvailabilityZones": 2}
        assert cluster.render()["spec"]["desiredCapacity"] == 2


# ─────────────────────────────────────────────
# GRAPH
# ─────────────────────────────────────────────
class TestGraph:
    def test_collects_only_inside_block(self):
        with graph() as g:
            ServiceAccount("inside")
        ServiceAccount("outside")

        assert [r.name for r in g] == ["inside"]

    def test_nested_graphs_are_isolated(self):
        with graph() as outer:
            ServiceAccount("a")
            with graph() as inner:
                ServiceAccount("b")
            ServiceAccount("c")

        assert [r.name for r in outer] == ["a", "c"]
        assert [r.name for r in inner] == ["b"]

    def test_ordered_puts_dependencies_first(self):
        with graph() as g:
            cluster = _cluster()
            with Namespace("ns", provider=cluster):
                with Deployment("db"):
                    with Container("db", image="postgres:13"):
                        pass
                    PersistentVolumeClaim("db-pvc")

        keys = [r.key for r in g.ordered()]
        assert keys == [
            "LocalCluster/minikube",
            "Namespace/ns",
            "PersistentVolumeClaim/db-pvc",
            "Deployment/db",
        ]

    def test_edges(self):
        with graph() as g:
            cluster = _cluster()
            with Namespace("ns", provider=cluster):
                ServiceAccount("sa")

        assert ("Namespace/ns", "LocalCluster/minikube") in g.edges()
        assert ("ServiceAccount/sa", "Namespace/ns") in g.edges()
        assert ("ServiceAccount/sa", "LocalCluster/minikube") in g.edges()

    def test_duplicate_resource(self):
        with graph() as g:
            ServiceAccount("sa")
            ServiceAccount("sa")

        with pytest.raises(GraphError, match="Duplicate"):
            g.validate()

    def test_dependency_outside_graph(self):
        stray = ServiceAccount("stray")
        with graph() as g:
            ServiceAccount("sa", depends_on=[stray])

        with pytest.raises(GraphError, match="not part of the graph"):
            g.validate()

    def test_cycle(self):
        with graph() as g:
            a = ServiceAccount("a")
            b = ServiceAccount("b", depends_on=[a])
            a.depend_on(b)

        with pytest.raises(GraphError, match="cycle"):
            g.validate()

    def test_to_yaml_multi_document(self):
        with graph() as g:
            with Namespace("ns", provider=_cluster()):
                ServiceAccount("sa")

        docs = list(yaml.safe_load_all(g.to_yaml()))
        assert [d["kind"] for d in docs] == ["LocalCluster", "Namespace", "ServiceAccount"]

    def test_empty_graph(self):
        with graph() as g:
            pass
        assert g.to_yaml() == ""
        assert _collected() == []


# ─────────────────────────────────────────────
# OUTPUTS
# ─────────────────────────────────────────────
class TestOutput:
    def test_resolve_with_fetcher(self):
        with graph():
            sa = ServiceAccount("sa")

        seen = []

        def fetch(resource, segments):
            seen.append((resource, segments))
            return "raw"

        out = sa.output("metadata.uid").apply(str.upper).apply(lambda v: v + "!")
        assert isinstance(out, Output)
        assert out.resolve(fetch) == "RAW!"
        assert seen == [(sa, ["metadata", "uid"])]

    def test_apply_does_not_mutate(self):
        with graph():
            sa = ServiceAccount("sa")
        base = sa.output("metadata.name")
        base.apply(str.upper)
        assert base.transform("x") == "x"

    def test_describe(self):
        with graph():
            sa = ServiceAccount("sa")
        assert sa.output("metadata.name").describe() == "<output ServiceAccount/sa:metadata.name>"

    def test_dig(self):
        data = {"status": {"loadBalancer": {"ingress": [{"ip": "1.2.3.4"}]}}}
        assert dig(data, ["status", "loadBalancer", "ingress", "0", "ip"]) == "1.2.3.4"
        assert dig(data, ["status", "missing", "x"]) is None
        assert dig(data, ["status", "loadBalancer", "ingress", "5"]) is None

    def test_first_ingress_prefers_ip(self):
        assert first_ingress_address([{"ip": "1.2.3.4", "hostname": "lb"}]) == "1.2.3.4"
        assert first_ingress_address([{"hostname": "lb.example.com"}]) == "lb.example.com"
        assert first_ingress_address([]) is None
        assert first_ingress_address(None) is None
