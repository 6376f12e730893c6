"""
tests/test_pulumi_engine.py — Pulumi engine helpers.

These need no Pulumi installation; program declaration is covered by
test_pulumi_program.py.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from portalstack.engine.base import get_engine
from portalstack.engine.pulumi_engine import PulumiEngine, _as_text, _snake, walk


class _Ingress:
    def __init__(self, ip=None, hostname=None):
        self.ip = ip
        self.hostname = hostname


class _Status:
    def __init__(self, ingress):
        self.load_balancer = {"ingress": ingress}


class TestHelpers:
    def test_snake(self):
        assert _snake("loadBalancer") == "load_balancer"
        assert _snake("clusterIP") == "cluster_ip"
        assert _snake("kubeconfig") == "kubeconfig"

    def test_walk_dicts_and_lists(self):
        value = {"ingress": [{"hostname": "a.elb.amazonaws.com"}]}
        assert walk(value, ["ingress", "0", "hostname"]) == "a.elb.amazonaws.com"
        assert walk(value, ["ingress", "3"]) is None
        assert walk(value, ["missing", "deeper"]) is None

    def test_walk_snake_case_keys(self):
        assert walk({"load_balancer": {"ingress": []}}, ["loadBalancer", "ingress"]) == []

    def test_walk_attributes(self):
        status = _Status([_Ingress(ip="203.0.113.7")])
        assert walk(status, ["loadBalancer", "ingress", "0", "ip"]) == "203.0.113.7"

    def test_as_text(self):
        assert _as_text("apiVersion: v1\n") == "apiVersion: v1\n"
        assert _as_text({"apiVersion": "v1"}) == '{"apiVersion": "v1"}'


class TestEngine:
    def test_get_engine_pulumi(self):
        engine = get_engine("pulumi")
        assert isinstance(engine, PulumiEngine)
        assert engine.project == "portalstack"
        assert engine.work_dir is None
