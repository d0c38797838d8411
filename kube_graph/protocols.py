from typing import Any, Protocol, runtime_checkable

from kube_graph.models import APIResourceType, Node


@runtime_checkable
class ClusterClientProtocol(Protocol):
    """
    Listing client used for full-cluster discovery.

    Any object with these two coroutines can be passed to GraphBuilder,
    e.g. KubernetesAdapter or a test double serving fixtures.
    """

    async def list_api_resources(self) -> list[APIResourceType]:
        """Return every resource type known to the API server."""
        ...

    async def list_objects(
        self,
        resource_type: APIResourceType,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List all objects of a resource type.

        Args:
            resource_type: Type to list
            namespace: Restrict to one namespace (None = all namespaces)

        Returns:
            Raw object dicts, each with apiVersion and kind set
        """
        ...


@runtime_checkable
class RootResolverProtocol(Protocol):
    """Resolves (creating on first use) the synthetic roots used by Graph.finalize."""

    def resolve_cluster_root(self, cluster_name: str) -> Node: ...

    def resolve_namespace_root(self, cluster_name: str, namespace: str) -> Node: ...


@runtime_checkable
class GroupHandlerProtocol(Protocol):
    """Adds group-specific relationships for objects of the API versions it supports."""

    def supports(self, api_version: str) -> bool: ...

    async def handle(self, resource: dict[str, Any], node: Node) -> None: ...
