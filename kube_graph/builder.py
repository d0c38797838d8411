import logging
from collections.abc import Callable, Iterable
from typing import Any

from kube_graph.discovery import ClusterDiscoverer
from kube_graph.dispatcher import ResourceGroupDispatcher
from kube_graph.exceptions import IngestionError, KubeGraphError, ObjectError
from kube_graph.graph import Graph
from kube_graph.handlers import ArgoCDHandler, CoreV1Handler
from kube_graph.models import GraphOptions
from kube_graph.protocols import ClusterClientProtocol, GroupHandlerProtocol

logger = logging.getLogger(__name__)


class GraphBuilder:
    """
    Builds a Graph from a snapshot of Kubernetes objects.

    The GraphBuilder orchestrates one build:
    - Registering every object as a node with its owner-reference edges
    - Routing objects to API group handlers (core/v1, argoproj.io, extras)
    - Collecting per-object errors without stopping the batch
    - Running the finalize pass that attaches every node to a root

    Each call to ``build`` starts from an empty graph and fresh handlers,
    so discovery results are never reused across builds.

    Example:
        >>> from kube_graph import GraphBuilder, KubernetesAdapter
        >>> client = KubernetesAdapter()
        >>> builder = GraphBuilder(client)
        >>> graph, error = await builder.build(objects)
        >>> print(graph.to_string("graphviz"))
    """

    def __init__(
        self,
        client: ClusterClientProtocol | None = None,
        options: GraphOptions | None = None,
        extra_handlers: list[Callable[[Graph], GroupHandlerProtocol]] | None = None,
    ):
        """
        Initialize the graph builder.

        Args:
            client: Listing client for ArgoCD discovery (ArgoCD resolution is skipped if None)
            options: Build configuration (defaults if None)
            extra_handlers: Factories for additional group handlers, called with the new graph
        """
        self.client = client
        self.options = options or GraphOptions()
        self.extra_handlers = list(extra_handlers or [])

        self._errors: list[ObjectError] = []
        self._discovery_failures: dict[str, str] = {}

    async def build(
        self,
        objects: Iterable[dict[str, Any]],
        progress: Callable[[], None] | None = None,
    ) -> tuple[Graph, IngestionError | None]:
        """
        Build a graph from raw objects.

        Args:
            objects: Raw object dicts (apiVersion, kind, metadata, ...)
            progress: Called once after each object, whether it succeeded or not

        Returns:
            The graph and an aggregate of per-object errors (None if all succeeded).
            The graph is usable either way.

        Raises:
            KubeGraphError: If the finalize pass cannot resolve a root
        """
        graph = Graph(allow_parallel_relationships=self.options.allow_parallel_relationships)
        core_v1 = CoreV1Handler(graph, cluster_name=self.options.cluster_name)
        argocd = ArgoCDHandler(
            graph,
            client=self.client,
            discoverer=self._create_discoverer(),
            tracking_annotation=self.options.tracking_annotation,
            tracking_label=self.options.tracking_label,
        )

        dispatcher = ResourceGroupDispatcher(graph, [core_v1, argocd])
        for factory in self.extra_handlers:
            dispatcher.register(factory(graph))

        self._errors = []
        self._discovery_failures = {}

        for resource in objects:
            try:
                await dispatcher.dispatch(resource)
            except KubeGraphError as e:
                logger.debug(f"Failed to ingest object: {e}")
                self._errors.append(ObjectError(resource, e))
            if progress is not None:
                progress()

        self._discovery_failures = argocd.discovery_failures

        graph.finalize(core_v1)

        logger.info(
            f"Built graph with {len(graph)} nodes and {len(graph.relationships())} "
            f"relationships ({len(self._errors)} objects failed)"
        )

        if self._errors:
            return graph, IngestionError(self._errors)
        return graph, None

    def _create_discoverer(self) -> ClusterDiscoverer | None:
        if self.client is None:
            return None
        return ClusterDiscoverer(
            self.client,
            workers=self.options.discovery_workers,
            timeout=self.options.discovery_timeout,
        )

    def get_ingestion_errors(self) -> list[ObjectError]:
        """
        Get per-object errors of the last build.

        Returns:
            List of ObjectError, in ingestion order
        """
        return self._errors.copy()

    def get_discovery_failures(self) -> dict[str, str]:
        """
        Get resource types that could not be listed during the last build's discovery.

        Returns:
            Dictionary mapping resource type key (e.g. "apps/v1/deployments") to error message
        """
        return self._discovery_failures.copy()
