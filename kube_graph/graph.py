import logging
from typing import TYPE_CHECKING, TextIO

import networkx as nx

from kube_graph.exceptions import OwnershipCycleError, UnknownNodeError
from kube_graph.models import GroupVersionKind, Node, ObjectDescriptor, Relationship
from kube_graph.node_identity import NodeIdentity
from kube_graph.protocols import RootResolverProtocol

if TYPE_CHECKING:
    from kube_graph.rendering import Renderer

logger = logging.getLogger(__name__)

ROOT_KINDS = frozenset({"Cluster", "Namespace"})


class Graph:
    """
    In-memory graph of Kubernetes objects and the relationships between them.

    Nodes are keyed by uid. Relationships are directed edges of a networkx
    graph; by default at most one relationship exists per ordered
    (from, to) pair and the first label requested for that pair wins.
    With ``allow_parallel_relationships`` one relationship is kept per
    (from, label, to) instead.

    The graph is only mutated from the ingesting coroutine and is not
    thread-safe.

    Example:
        >>> graph = Graph()
        >>> owner = OwnerReference(api_version="apps/v1", kind="ReplicaSet", name="web", uid="rs-1")
        >>> pod = graph.upsert_node(
        ...     GroupVersionKind(version="v1", kind="Pod"),
        ...     ObjectDescriptor(uid="pod-1", name="web-abc", owner_references=[owner]),
        ... )
        >>> [(r.from_uid, r.label, r.to_uid) for r in graph.relationships()]
        [('rs-1', 'Pod', 'pod-1')]
    """

    def __init__(self, allow_parallel_relationships: bool = False) -> None:
        self.allow_parallel_relationships = allow_parallel_relationships
        self._graph: nx.DiGraph = (
            nx.MultiDiGraph() if allow_parallel_relationships else nx.DiGraph()
        )
        self.node_identity = NodeIdentity()
        self._renderer: "Renderer | None" = None

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, uid: object) -> bool:
        return uid in self._graph

    def get_node(self, uid: str) -> Node | None:
        if uid not in self._graph:
            return None
        return self._graph.nodes[uid]["node"]

    def upsert_node(self, gvk: GroupVersionKind, descriptor: ObjectDescriptor) -> Node:
        """
        Add or update a node, then expand its owner references.

        Type and descriptor fields always take the incoming values. Labels and
        annotations are only replaced when the incoming set is non-empty, so
        an owner stub never erases metadata of a previously ingested object.

        Each owner reference becomes a node of its own (created as a stub if
        needed) and a relationship owner -> node labeled with the node's kind.

        Args:
            gvk: Group, version and kind of the object
            descriptor: Identity and metadata of the object

        Returns:
            The stored node

        Raises:
            OwnershipCycleError: If an owner reference points back into the chain
        """
        return self._upsert_node(gvk, descriptor, [])

    def _upsert_node(
        self, gvk: GroupVersionKind, descriptor: ObjectDescriptor, path: list[str]
    ) -> Node:
        if descriptor.uid in path:
            raise OwnershipCycleError(path + [descriptor.uid])

        node = self.get_node(descriptor.uid)
        if node is None:
            node = Node(uid=descriptor.uid, kind=gvk.kind)
            self._graph.add_node(descriptor.uid, node=node)
            logger.debug(f"Added node: {gvk.kind}/{descriptor.name} ({descriptor.uid})")

        node.api_version = gvk.api_version
        node.kind = gvk.kind
        node.cluster_name = descriptor.cluster_name
        node.namespace = descriptor.namespace
        node.name = descriptor.name
        if descriptor.labels:
            node.labels = dict(descriptor.labels)
        if descriptor.annotations:
            node.annotations = dict(descriptor.annotations)

        for owner_ref in descriptor.owner_references:
            owner = self._upsert_node(
                GroupVersionKind.from_api_version_and_kind(owner_ref.api_version, owner_ref.kind),
                self.node_identity.get_owner_descriptor(owner_ref, descriptor),
                path + [descriptor.uid],
            )
            self.relate(owner, gvk.kind, node)

        return node

    def relate(self, from_node: Node, label: str, to_node: Node) -> Relationship:
        """
        Return the relationship from_node -> to_node, creating it if needed.

        A later request for an existing pair returns the original relationship
        unchanged, whatever label it asks for.
        """
        for node in (from_node, to_node):
            if node.uid not in self._graph:
                raise UnknownNodeError(f"{node} ({node.uid}) is not in the graph")

        if self.allow_parallel_relationships:
            if self._graph.has_edge(from_node.uid, to_node.uid, key=label):
                return self._graph.edges[from_node.uid, to_node.uid, label]["relationship"]
        elif self._graph.has_edge(from_node.uid, to_node.uid):
            return self._graph.edges[from_node.uid, to_node.uid]["relationship"]

        relationship = Relationship(from_uid=from_node.uid, label=label, to_uid=to_node.uid)
        if self.allow_parallel_relationships:
            self._graph.add_edge(from_node.uid, to_node.uid, key=label, relationship=relationship)
        else:
            self._graph.add_edge(from_node.uid, to_node.uid, relationship=relationship)

        logger.debug(f"Added relationship: {from_node.uid} --[{label}]--> {to_node.uid}")
        return relationship

    def nodes(self) -> list[Node]:
        return [node for _, node in self._graph.nodes(data="node")]

    def relationships(self) -> list[Relationship]:
        return [relationship for *_, relationship in self._graph.edges(data="relationship")]

    def incoming(self, uid: str) -> list[Relationship]:
        """Relationships pointing at the given node."""
        if uid not in self._graph:
            return []
        return [relationship for *_, relationship in self._graph.in_edges(uid, data="relationship")]

    def finalize(self, resolver: RootResolverProtocol) -> None:
        """
        Attach every disconnected node to its cluster or namespace root.

        For each non-root node the cluster root is resolved and the node's
        cluster name normalized to it. Nodes that already have an incoming
        relationship are left alone; the others are connected from their
        namespace root, or from the cluster root when cluster-scoped.

        Any resolution error aborts the pass. Relationships added before the
        error stay in the graph.
        """
        for node in self.nodes():
            if node.kind in ROOT_KINDS:
                continue

            cluster = resolver.resolve_cluster_root(node.cluster_name)
            node.cluster_name = cluster.name

            if self._graph.in_degree(node.uid) > 0:
                continue

            if not node.namespace:
                self.relate(cluster, node.kind, node)
                continue

            namespace = resolver.resolve_namespace_root(node.cluster_name, node.namespace)
            self.relate(namespace, node.kind, node)

        logger.info(
            f"Finalized graph with {self._graph.number_of_nodes()} nodes "
            f"and {self._graph.number_of_edges()} relationships"
        )

    def to_networkx(self) -> nx.DiGraph:
        """
        Export as a plain networkx DiGraph.

        Node attributes: kind, name, namespace, cluster_name, labels.
        Edge attributes: label and any relationship attributes. Parallel
        relationships collapse to the first one per pair.
        """
        graph = nx.DiGraph()
        for node in self.nodes():
            graph.add_node(
                node.uid,
                kind=node.kind,
                name=node.name,
                namespace=node.namespace,
                cluster_name=node.cluster_name,
                labels=dict(node.labels),
            )
        for relationship in self.relationships():
            if not graph.has_edge(relationship.from_uid, relationship.to_uid):
                attrs = {**relationship.attr, "label": relationship.label}
                graph.add_edge(relationship.from_uid, relationship.to_uid, **attrs)
        return graph

    @property
    def renderer(self) -> "Renderer":
        if self._renderer is None:
            from kube_graph.rendering import Renderer

            self._renderer = Renderer()
        return self._renderer

    def to_string(self, format: str) -> str:
        return self.renderer.render(self, format)

    def write(self, stream: TextIO, format: str) -> None:
        self.renderer.write(self, stream, format)
