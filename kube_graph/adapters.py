import asyncio
import logging
from typing import Any

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient

from kube_graph.models import APIResourceType

logger = logging.getLogger(__name__)


class KubernetesAdapter:
    """
    Listing client backed by the official kubernetes Python client.

    Resource types are discovered through the dynamic client; blocking API
    calls run in a worker thread so the adapter can be used from asyncio code.

    Example:
        >>> client = KubernetesAdapter(context="kind-dev")
        >>> types = await client.list_api_resources()
        >>> pods = await client.list_objects(
        ...     next(t for t in types if t.group_version == "v1" and t.kind == "Pod")
        ... )
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        api_client: Any = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            kubeconfig: Path to kubeconfig (default location if None)
            context: Kubeconfig context (current context if None)
            api_client: Preconfigured kubernetes.client.ApiClient; skips config loading
        """
        if api_client is None:
            try:
                config.load_kube_config(config_file=kubeconfig, context=context)
            except ConfigException:
                logger.debug("No kubeconfig found, falling back to in-cluster config")
                config.load_incluster_config()
            api_client = client.ApiClient()

        self.dynamic = DynamicClient(api_client)

    async def list_api_resources(self) -> list[APIResourceType]:
        return await asyncio.to_thread(self._list_api_resources)

    def _list_api_resources(self) -> list[APIResourceType]:
        resource_types = []
        for resource in self.dynamic.resources.search():
            verbs = getattr(resource, "verbs", None) or []
            if not getattr(resource, "name", None) or not getattr(resource, "kind", None):
                continue
            resource_types.append(
                APIResourceType(
                    group_version=resource.group_version,
                    kind=resource.kind,
                    name=resource.name,
                    namespaced=bool(resource.namespaced),
                    verbs=tuple(verbs),
                )
            )

        logger.debug(f"API server advertises {len(resource_types)} resource types")
        return resource_types

    async def list_objects(
        self,
        resource_type: APIResourceType,
        namespace: str | None = None,
    ) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._list_objects, resource_type, namespace)

    def _list_objects(
        self, resource_type: APIResourceType, namespace: str | None
    ) -> list[dict[str, Any]]:
        resource = self.dynamic.resources.get(
            api_version=resource_type.group_version,
            kind=resource_type.kind,
            name=resource_type.name,
        )
        if resource_type.namespaced and namespace:
            response = resource.get(namespace=namespace)
        else:
            response = resource.get()

        items = []
        for item in response.to_dict().get("items") or []:
            # List responses omit apiVersion and kind on items.
            item.setdefault("apiVersion", resource_type.group_version)
            item.setdefault("kind", resource_type.kind)
            items.append(item)
        return items
