"""Shared test fixtures for kube-graph tests."""

import asyncio
from typing import Any

import pytest

from kube_graph.graph import Graph
from kube_graph.handlers.core_v1 import CoreV1Handler
from kube_graph.models import APIResourceType


class MockClusterClient:
    """In-memory listing client with API call tracking for testing."""

    def __init__(self):
        self.resource_types: dict[str, APIResourceType] = {}
        self.objects: dict[str, list[dict[str, Any]]] = {}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.list_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._api_call_stats = {"list_api_resources": 0, "list_objects": 0, "total": 0}

    def add_resource_type(self, resource_type: APIResourceType) -> None:
        self.resource_types[resource_type.key] = resource_type
        self.objects.setdefault(resource_type.key, [])

    def add_resource(self, resource: dict[str, Any], group_version: str | None = None) -> None:
        """Add an object, registering its resource type on first use."""
        kind = resource["kind"]
        resource_type = APIResourceType(
            group_version=group_version or resource["apiVersion"],
            kind=kind,
            name=kind.lower() + "s",
            namespaced=kind not in ("Node", "Namespace", "PersistentVolume"),
            verbs=("get", "list", "watch"),
        )
        if resource_type.key not in self.resource_types:
            self.add_resource_type(resource_type)
        self.objects[resource_type.key].append(resource)

    def fail(self, key: str, error: Exception) -> None:
        self.failures[key] = error

    def delay(self, key: str, seconds: float) -> None:
        self.delays[key] = seconds

    async def list_api_resources(self) -> list[APIResourceType]:
        self._api_call_stats["list_api_resources"] += 1
        self._api_call_stats["total"] += 1
        return list(self.resource_types.values())

    async def list_objects(
        self,
        resource_type: APIResourceType,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        self._api_call_stats["list_objects"] += 1
        self._api_call_stats["total"] += 1
        self.list_calls.append(resource_type.key)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(resource_type.key, 0.001))
            if resource_type.key in self.failures:
                raise self.failures[resource_type.key]
        finally:
            self.in_flight -= 1

        return [
            obj
            for obj in self.objects.get(resource_type.key, [])
            if namespace is None or obj.get("metadata", {}).get("namespace") == namespace
        ]

    def get_api_call_stats(self) -> dict[str, int]:
        """Get API call statistics."""
        return self._api_call_stats.copy()


def relationship_set(graph: Graph) -> set[tuple[str, str, str]]:
    """All relationships as (from_uid, label, to_uid) tuples."""
    return {(r.from_uid, r.label, r.to_uid) for r in graph.relationships()}


@pytest.fixture
def graph() -> Graph:
    return Graph()


@pytest.fixture
def core_v1(graph) -> CoreV1Handler:
    return CoreV1Handler(graph)


@pytest.fixture
def mock_cluster_client() -> MockClusterClient:
    return MockClusterClient()


@pytest.fixture
def sample_deployment() -> dict[str, Any]:
    """Sample Deployment resource."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": "nginx-deployment",
            "namespace": "default",
            "uid": "deployment-123",
            "labels": {"app": "nginx"},
        },
        "spec": {
            "replicas": 3,
            "selector": {"matchLabels": {"app": "nginx"}},
        },
    }


@pytest.fixture
def sample_replicaset() -> dict[str, Any]:
    """Sample ReplicaSet resource owned by the sample Deployment."""
    return {
        "apiVersion": "apps/v1",
        "kind": "ReplicaSet",
        "metadata": {
            "name": "nginx-deployment-abc123",
            "namespace": "default",
            "uid": "rs-123",
            "labels": {"app": "nginx", "pod-template-hash": "abc123"},
            "ownerReferences": [
                {
                    "apiVersion": "apps/v1",
                    "kind": "Deployment",
                    "name": "nginx-deployment",
                    "uid": "deployment-123",
                }
            ],
        },
        "spec": {"replicas": 3},
    }


@pytest.fixture
def sample_pod() -> dict[str, Any]:
    """Sample Pod resource owned by the sample ReplicaSet."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": "nginx-deployment-abc123-xyz",
            "namespace": "default",
            "uid": "pod-123",
            "labels": {"app": "nginx", "pod-template-hash": "abc123"},
            "ownerReferences": [
                {
                    "apiVersion": "apps/v1",
                    "kind": "ReplicaSet",
                    "name": "nginx-deployment-abc123",
                    "uid": "rs-123",
                }
            ],
        },
        "spec": {"containers": [{"name": "nginx", "image": "nginx:1.14.2"}]},
        "status": {"phase": "Running"},
    }


@pytest.fixture
def sample_namespace() -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": "default", "uid": "ns-default"},
    }


@pytest.fixture
def sample_node() -> dict[str, Any]:
    """Cluster-scoped Node resource."""
    return {
        "apiVersion": "v1",
        "kind": "Node",
        "metadata": {"name": "worker-1", "uid": "node-1", "labels": {"role": "worker"}},
    }


@pytest.fixture
def sample_application() -> dict[str, Any]:
    """ArgoCD Application in project team-a."""
    return {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "Application",
        "metadata": {"name": "myapp", "namespace": "argocd", "uid": "app-1"},
        "spec": {
            "project": "team-a",
            "destination": {"namespace": "default"},
        },
    }


@pytest.fixture
def argocd_cluster(
    mock_cluster_client, sample_application, sample_deployment, sample_replicaset, sample_pod
) -> MockClusterClient:
    """
    Cluster with one application managing a Deployment (tracking annotation)
    and a Service (tracking label). The Deployment's ReplicaSet and Pod are
    only linked through owner references.
    """
    sample_deployment["metadata"]["annotations"] = {
        "argocd.argoproj.io/tracking-id": "myapp:apps/Deployment:default/nginx-deployment"
    }
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": "nginx",
            "namespace": "default",
            "uid": "svc-1",
            "labels": {"app.kubernetes.io/instance": "myapp"},
        },
    }
    unrelated = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": "unrelated", "namespace": "default", "uid": "cm-1"},
    }
    other_app_config = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": "other",
            "namespace": "default",
            "uid": "cm-2",
            "annotations": {
                "argocd.argoproj.io/tracking-id": "myapp-other:/ConfigMap:default/other"
            },
        },
    }

    for resource in (
        sample_application,
        sample_deployment,
        sample_replicaset,
        sample_pod,
        service,
        unrelated,
        other_app_config,
    ):
        mock_cluster_client.add_resource(resource)

    return mock_cluster_client
