import logging
from typing import Any

from kube_graph.exceptions import RootResolutionError
from kube_graph.graph import Graph
from kube_graph.handlers.base import BaseGroupHandler
from kube_graph.models import GroupVersionKind, Node, ObjectDescriptor
from kube_graph.node_identity import to_uid

logger = logging.getLogger(__name__)

CLUSTER_GVK = GroupVersionKind(version="v1", kind="Cluster")
NAMESPACE_GVK = GroupVersionKind(version="v1", kind="Namespace")


class CoreV1Handler(BaseGroupHandler):
    """
    Handler for the core ("v1") API group.

    Owns the synthetic roots of the graph: one Cluster node per cluster name
    and one Namespace node per (cluster, namespace) pair. Ingested Namespace
    objects become the root for their pair, so a namespace is never
    represented twice.
    """

    api_versions = ("v1",)

    def __init__(self, graph: Graph, cluster_name: str = "kubernetes") -> None:
        super().__init__(graph)
        self.cluster_name = cluster_name
        self._namespaces: dict[tuple[str, str], str] = {}

    async def handle(self, resource: dict[str, Any], node: Node) -> None:
        if node.kind != "Namespace":
            return

        cluster = self.resolve_cluster_root(node.cluster_name)
        node.cluster_name = cluster.name
        self._namespaces[(cluster.name, node.name)] = node.uid
        self.graph.relate(cluster, "Namespace", node)

    def resolve_cluster_root(self, cluster_name: str) -> Node:
        """
        Return the Cluster node for a name, creating it on first use.

        An empty name resolves to the default cluster. The uid is derived
        from the name, so repeated calls converge on the same node.
        """
        name = cluster_name or self.cluster_name
        uid = to_uid(name)

        node = self.graph.get_node(uid)
        if node is not None:
            return node

        logger.debug(f"Creating cluster root {name}")
        return self.graph.upsert_node(
            CLUSTER_GVK, ObjectDescriptor(uid=uid, cluster_name=name, name=name)
        )

    def resolve_namespace_root(self, cluster_name: str, namespace: str) -> Node:
        """
        Return the Namespace node for a (cluster, namespace) pair, creating it on first use.

        The namespace is always connected from its cluster root.

        Raises:
            RootResolutionError: If namespace is empty
        """
        if not namespace:
            raise RootResolutionError(f"cannot resolve empty namespace in cluster {cluster_name!r}")

        cluster = self.resolve_cluster_root(cluster_name)
        key = (cluster.name, namespace)

        node = self.graph.get_node(self._namespaces[key]) if key in self._namespaces else None
        if node is None:
            logger.debug(f"Creating namespace root {cluster.name}/{namespace}")
            node = self.graph.upsert_node(
                NAMESPACE_GVK,
                ObjectDescriptor(
                    uid=to_uid(cluster.name, namespace), cluster_name=cluster.name, name=namespace
                ),
            )
            self._namespaces[key] = node.uid

        self.graph.relate(cluster, "Namespace", node)
        return node
