import logging
from typing import Any

from kube_graph.graph import Graph
from kube_graph.models import Node
from kube_graph.protocols import ClusterClientProtocol

logger = logging.getLogger(__name__)


class BaseGroupHandler:
    """
    Base class for API group handlers.

    A handler declares the API versions (exact match, e.g. "v1") or API groups
    (any version, e.g. "argoproj.io") it supports. The dispatcher registers the
    object as a node first, then calls ``handle`` with that node so the handler
    can add group-specific relationships.
    """

    api_versions: tuple[str, ...] = ()
    api_groups: tuple[str, ...] = ()

    def __init__(self, graph: Graph, client: ClusterClientProtocol | None = None) -> None:
        self.graph = graph
        self.client = client

    def supports(self, api_version: str) -> bool:
        if api_version in self.api_versions:
            return True
        group = api_version.split("/", 1)[0] if "/" in api_version else ""
        return bool(group) and group in self.api_groups

    async def handle(self, resource: dict[str, Any], node: Node) -> None:
        """
        Add group-specific relationships for an ingested object.

        Args:
            resource: Raw object dict
            node: Node already registered for the object
        """
        return None

    def _upsert(self, resource: dict[str, Any]) -> Node:
        identity = self.graph.node_identity
        return self.graph.upsert_node(
            identity.get_group_version_kind(resource),
            identity.get_descriptor(resource),
        )
