"""Tests for kube_graph.builder."""

from unittest.mock import AsyncMock

import pytest

from kube_graph.builder import GraphBuilder
from kube_graph.exceptions import (
    DiscoveryError,
    IngestionError,
    MalformedObjectError,
    RootResolutionError,
)
from kube_graph.handlers.base import BaseGroupHandler
from kube_graph.handlers.core_v1 import CoreV1Handler
from kube_graph.models import GraphOptions
from kube_graph.node_identity import to_uid
from tests.conftest import relationship_set


@pytest.fixture
def malformed_pod():
    return {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "no-uid", "namespace": "default"}}


@pytest.fixture
def widget():
    return {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {"name": "w", "namespace": "tools", "uid": "w-1"},
    }


def test_builder_initialization():
    """Test GraphBuilder initialization."""
    builder = GraphBuilder()

    assert builder.client is None
    assert builder.options == GraphOptions()
    assert builder.get_ingestion_errors() == []
    assert builder.get_discovery_failures() == {}


@pytest.mark.asyncio
async def test_build_graph(sample_deployment, sample_replicaset, sample_pod, sample_node):
    """Test building and finalizing a graph from a snapshot."""
    graph, error = await GraphBuilder().build(
        [sample_deployment, sample_replicaset, sample_pod, sample_node]
    )

    assert error is None
    assert relationship_set(graph) == {
        ("deployment-123", "ReplicaSet", "rs-123"),
        ("rs-123", "Pod", "pod-123"),
        (to_uid("kubernetes"), "Namespace", to_uid("kubernetes", "default")),
        (to_uid("kubernetes", "default"), "Deployment", "deployment-123"),
        (to_uid("kubernetes"), "Node", "node-1"),
    }


@pytest.mark.asyncio
async def test_build_collects_errors(sample_deployment, malformed_pod, widget):
    """Test that malformed objects are reported and the rest of the batch is ingested."""
    processed = []
    builder = GraphBuilder()

    graph, error = await builder.build(
        [sample_deployment, malformed_pod, widget], progress=lambda: processed.append(1)
    )

    assert len(processed) == 3
    assert isinstance(error, IngestionError)
    assert len(error) == 1
    assert isinstance(error.errors[0].error, MalformedObjectError)
    assert error.errors[0].name == "no-uid"
    assert "default/Pod/no-uid" in str(error)
    assert builder.get_ingestion_errors() == error.errors

    assert graph.get_node("deployment-123") is not None
    assert graph.get_node("w-1").kind == "Widget"
    for node in graph.nodes():
        if node.kind != "Cluster":
            assert graph.incoming(node.uid)


@pytest.mark.asyncio
async def test_build_collects_empty_owner_uid(sample_pod, sample_deployment):
    """Test that an owner reference without a uid fails only its own object."""
    sample_pod["metadata"]["ownerReferences"][0]["uid"] = ""

    graph, error = await GraphBuilder().build([sample_pod, sample_deployment])

    assert isinstance(error, IngestionError)
    assert len(error) == 1
    assert isinstance(error.errors[0].error, MalformedObjectError)
    assert error.errors[0].name == "nginx-deployment-abc123-xyz"
    assert "pod-123" not in graph
    assert graph.get_node("deployment-123") is not None


@pytest.mark.asyncio
async def test_build_is_idempotent_for_repeated_objects(sample_deployment, sample_pod):
    """Test that ingesting the same object twice changes nothing."""
    once, _ = await GraphBuilder().build([sample_deployment, sample_pod])
    twice, _ = await GraphBuilder().build([sample_deployment, sample_pod, sample_deployment])

    assert len(once) == len(twice)
    assert relationship_set(once) == relationship_set(twice)


@pytest.mark.asyncio
async def test_build_with_cluster_name(sample_node):
    """Test that the configured cluster name names the cluster root."""
    graph, _ = await GraphBuilder(options=GraphOptions(cluster_name="prod")).build([sample_node])

    cluster = graph.get_node(to_uid("prod"))
    assert cluster.kind == "Cluster"
    assert graph.get_node("node-1").cluster_name == "prod"


@pytest.mark.asyncio
async def test_build_with_argocd(argocd_cluster, sample_application):
    """Test that applications are resolved through the builder's client."""
    graph, error = await GraphBuilder(argocd_cluster).build([sample_application])

    assert error is None
    edges = relationship_set(graph)
    assert ("app-1", "Deployment", "deployment-123") in edges
    assert ("app-1", "Service", "svc-1") in edges
    assert ("rs-123", "Pod", "pod-123") in edges
    assert (to_uid("kubernetes", "argocd"), "Application", "app-1") in edges


@pytest.mark.asyncio
async def test_build_reports_discovery_failures(argocd_cluster, sample_application):
    """Test that unlistable resource types are exposed after the build."""
    argocd_cluster.fail("v1/pods", PermissionError("pods is forbidden"))
    builder = GraphBuilder(argocd_cluster)

    graph, error = await builder.build([sample_application])

    assert error is None
    assert list(builder.get_discovery_failures()) == ["v1/pods"]
    assert "pod-123" not in graph


@pytest.mark.asyncio
async def test_build_survives_failed_enumeration(
    argocd_cluster, sample_application, sample_node
):
    """Test that an unreachable API server fails only the ArgoCD objects."""
    argocd_cluster.list_api_resources = AsyncMock(side_effect=ConnectionError("apiserver down"))
    second_app = {
        **sample_application,
        "metadata": {"name": "other", "namespace": "argocd", "uid": "app-2"},
    }
    builder = GraphBuilder(argocd_cluster)

    graph, error = await builder.build([sample_application, second_app, sample_node])

    assert isinstance(error, IngestionError)
    assert len(error) == 2
    assert all(isinstance(e.error, DiscoveryError) for e in error.errors)
    assert argocd_cluster.list_api_resources.await_count == 1
    assert "apiserver down" in builder.get_discovery_failures()["*"]

    assert graph.get_node("app-2").kind == "Application"
    assert (to_uid("kubernetes"), "Node", "node-1") in relationship_set(graph)


@pytest.mark.asyncio
async def test_build_without_client_skips_argocd(sample_application):
    """Test that applications are kept as plain nodes without a client."""
    graph, error = await GraphBuilder().build([sample_application])

    assert error is None
    assert graph.get_node("app-1").kind == "Application"
    assert relationship_set(graph) == {
        (to_uid("kubernetes"), "Namespace", to_uid("kubernetes", "argocd")),
        (to_uid("kubernetes", "argocd"), "Application", "app-1"),
    }


@pytest.mark.asyncio
async def test_build_extra_handlers(widget):
    """Test that extra handler factories are registered for the build."""
    handled = []

    class WidgetHandler(BaseGroupHandler):
        api_groups = ("example.com",)

        async def handle(self, resource, node):
            handled.append(node.uid)

    graph, error = await GraphBuilder(extra_handlers=[WidgetHandler]).build([widget])

    assert error is None
    assert handled == ["w-1"]


@pytest.mark.asyncio
async def test_build_finalize_failure_propagates(sample_deployment, monkeypatch):
    """Test that a root resolution failure is fatal to the build."""

    def fail(self, cluster_name, namespace):
        raise RootResolutionError("namespace lookup failed")

    monkeypatch.setattr(CoreV1Handler, "resolve_namespace_root", fail)

    with pytest.raises(RootResolutionError):
        await GraphBuilder().build([sample_deployment])


@pytest.mark.asyncio
async def test_build_parallel_relationships_option(sample_pod):
    """Test that the parallel relationship option reaches the graph."""
    graph, _ = await GraphBuilder(
        options=GraphOptions(allow_parallel_relationships=True)
    ).build([sample_pod])

    assert graph.allow_parallel_relationships is True
