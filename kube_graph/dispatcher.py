import logging
from typing import Any

from kube_graph.graph import Graph
from kube_graph.models import Node
from kube_graph.protocols import GroupHandlerProtocol

logger = logging.getLogger(__name__)


class ResourceGroupDispatcher:
    """
    Routes ingested objects to the handler of their API group.

    Every object is registered as a node (with its owner-reference edges)
    before routing. Objects of an API version no handler supports keep
    just that generic treatment. The first registered handler that
    supports an API version wins.

    Example:
        >>> dispatcher = ResourceGroupDispatcher(graph)
        >>> dispatcher.register(CoreV1Handler(graph))
        >>> node = await dispatcher.dispatch(pod)
    """

    def __init__(self, graph: Graph, handlers: list[GroupHandlerProtocol] | None = None) -> None:
        self.graph = graph
        self._handlers: list[GroupHandlerProtocol] = list(handlers or [])

    def register(self, handler: GroupHandlerProtocol) -> None:
        self._handlers.append(handler)
        logger.debug(f"Registered handler {handler.__class__.__name__}")

    def get_handler(self, api_version: str) -> GroupHandlerProtocol | None:
        for handler in self._handlers:
            if handler.supports(api_version):
                return handler
        return None

    async def dispatch(self, resource: dict[str, Any]) -> Node:
        """
        Register an object as a node, then let its group handler extend the graph.

        Raises:
            KubeGraphError: If the object is malformed or its handler fails
        """
        identity = self.graph.node_identity
        gvk = identity.get_group_version_kind(resource)
        node = self.graph.upsert_node(gvk, identity.get_descriptor(resource))

        handler = self.get_handler(gvk.api_version)
        if handler is None:
            logger.debug(f"No handler for {gvk.api_version}, keeping generic node {node}")
            return node

        await handler.handle(resource, node)
        return node
