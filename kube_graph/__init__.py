"""
kube-graph: build dependency graphs from snapshots of Kubernetes objects.

Objects become nodes keyed by uid, owner references and API group specific
relationships (including ArgoCD application ownership) become edges, and
the finished graph renders to Cypher or Graphviz DOT.
"""

from kube_graph.adapters import KubernetesAdapter
from kube_graph.builder import GraphBuilder
from kube_graph.discovery import ClusterDiscoverer
from kube_graph.dispatcher import ResourceGroupDispatcher
from kube_graph.exceptions import (
    DiscoveryError,
    IngestionError,
    KubeGraphError,
    MalformedObjectError,
    ObjectError,
    OwnershipCycleError,
    RenderError,
    RootResolutionError,
    UnknownFormatError,
    UnknownNodeError,
)
from kube_graph.graph import Graph
from kube_graph.handlers import ArgoCDHandler, BaseGroupHandler, CoreV1Handler
from kube_graph.models import (
    APIResourceType,
    DiscoveryResult,
    GraphOptions,
    GroupVersionKind,
    Node,
    ObjectDescriptor,
    OwnerReference,
    Relationship,
)
from kube_graph.node_identity import NodeIdentity, to_uid
from kube_graph.protocols import ClusterClientProtocol, GroupHandlerProtocol, RootResolverProtocol
from kube_graph.rendering import Renderer

__version__ = "0.1.0"

__all__ = [
    "APIResourceType",
    "ArgoCDHandler",
    "BaseGroupHandler",
    "ClusterClientProtocol",
    "ClusterDiscoverer",
    "CoreV1Handler",
    "DiscoveryError",
    "DiscoveryResult",
    "Graph",
    "GraphBuilder",
    "GraphOptions",
    "GroupHandlerProtocol",
    "GroupVersionKind",
    "IngestionError",
    "KubeGraphError",
    "KubernetesAdapter",
    "MalformedObjectError",
    "Node",
    "NodeIdentity",
    "ObjectDescriptor",
    "ObjectError",
    "OwnerReference",
    "OwnershipCycleError",
    "Relationship",
    "RenderError",
    "Renderer",
    "ResourceGroupDispatcher",
    "RootResolutionError",
    "RootResolverProtocol",
    "UnknownFormatError",
    "UnknownNodeError",
    "to_uid",
]
