import asyncio
import logging
from typing import Any

from kube_graph.exceptions import DiscoveryError
from kube_graph.models import APIResourceType, DiscoveryResult
from kube_graph.protocols import ClusterClientProtocol

logger = logging.getLogger(__name__)


class ClusterDiscoverer:
    """
    Lists every object in the cluster, one task per listable resource type.

    Concurrency is bounded by a semaphore of ``workers`` slots and every list
    call is limited to ``timeout`` seconds. A resource type that fails to list
    (error or timeout) contributes no objects and is reported in
    ``DiscoveryResult.failures`` instead of failing the whole discovery.
    Cancelling the awaiting task cancels all in-flight list calls.

    Example:
        >>> discoverer = ClusterDiscoverer(KubernetesAdapter(), workers=4, timeout=10)
        >>> result = await discoverer.discover_all()
        >>> len(result.objects), result.failures
        (1423, {'metrics.k8s.io/v1beta1/pods': 'TimeoutError: ...'})
    """

    def __init__(
        self,
        client: ClusterClientProtocol,
        workers: int = 8,
        timeout: float | None = 30.0,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.client = client
        self.workers = workers
        self.timeout = timeout

    async def discover_all(self) -> DiscoveryResult:
        """
        Enumerate all resource types and list their objects across all namespaces.

        Objects returned by more than one resource type (same uid) appear once.

        Returns:
            Merged objects and a resource type -> error report

        Raises:
            DiscoveryError: If the resource types cannot be enumerated
        """
        try:
            advertised = await self.client.list_api_resources()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Failed to enumerate API resources: {e!r}") from e

        resource_types = [rt for rt in advertised if rt.listable]
        logger.debug(f"Discovering objects for {len(resource_types)} resource types")

        semaphore = asyncio.Semaphore(self.workers)
        lock = asyncio.Lock()
        objects: dict[str, dict[str, Any]] = {}
        anonymous: list[dict[str, Any]] = []
        failures: dict[str, str] = {}

        async def list_type(resource_type: APIResourceType) -> None:
            async with semaphore:
                try:
                    items = await asyncio.wait_for(
                        self.client.list_objects(resource_type), timeout=self.timeout
                    )
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"Failed to list {resource_type.key}: {e!r}")
                    async with lock:
                        failures[resource_type.key] = f"{type(e).__name__}: {e}"
                    return

            async with lock:
                for item in items:
                    uid = (item.get("metadata") or {}).get("uid")
                    if not uid:
                        anonymous.append(item)
                    elif uid not in objects:
                        objects[uid] = item

        await asyncio.gather(*(list_type(rt) for rt in resource_types))

        result = DiscoveryResult(objects=list(objects.values()) + anonymous, failures=failures)
        logger.info(
            f"Discovered {len(result.objects)} objects from {len(resource_types)} resource types "
            f"({len(failures)} failed)"
        )
        return result
