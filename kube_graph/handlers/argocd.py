import logging
from collections import defaultdict
from typing import Any

from kube_graph.discovery import ClusterDiscoverer
from kube_graph.exceptions import DiscoveryError, MalformedObjectError, OwnershipCycleError
from kube_graph.graph import Graph
from kube_graph.handlers.base import BaseGroupHandler
from kube_graph.models import DiscoveryResult, Node
from kube_graph.protocols import ClusterClientProtocol

logger = logging.getLogger(__name__)

ARGOCD_GROUP = "argoproj.io"
DEFAULT_TRACKING_ANNOTATION = "argocd.argoproj.io/tracking-id"
DEFAULT_TRACKING_LABEL = "app.kubernetes.io/instance"


class ArgoCDHandler(BaseGroupHandler):
    """
    Reconstructs ArgoCD ownership: ApplicationSet -> Application,
    AppProject -> Application and Application -> managed resources.

    Managed resources rarely carry an owner reference to their Application,
    so the handler lists every object in the cluster and attaches:

    - direct children: objects whose tracking annotation value starts with
      "<app>:" or whose tracking label equals the application name
    - transitive children: everything reachable from a direct child through
      owner references (Deployment -> ReplicaSet -> Pod), regardless of
      tracking metadata

    Discovery runs at most once per handler; its partial-failure report is
    available as ``discovery_failures``. Without a discoverer the handler
    logs a warning and only the generic node and owner edges are kept.
    """

    api_groups = (ARGOCD_GROUP,)

    def __init__(
        self,
        graph: Graph,
        client: ClusterClientProtocol | None = None,
        discoverer: ClusterDiscoverer | None = None,
        tracking_annotation: str = DEFAULT_TRACKING_ANNOTATION,
        tracking_label: str = DEFAULT_TRACKING_LABEL,
    ) -> None:
        super().__init__(graph, client)
        if discoverer is None and client is not None:
            discoverer = ClusterDiscoverer(client)
        self.discoverer = discoverer
        self.tracking_annotation = tracking_annotation
        self.tracking_label = tracking_label

        self._discovery: DiscoveryResult | None = None
        self._discovery_error: DiscoveryError | None = None
        self._children: dict[str, list[dict[str, Any]]] = {}

    @property
    def discovery_failures(self) -> dict[str, str]:
        if self._discovery_error is not None:
            return {"*": str(self._discovery_error)}
        if self._discovery is None:
            return {}
        return dict(self._discovery.failures)

    async def handle(self, resource: dict[str, Any], node: Node) -> None:
        if node.kind not in ("Application", "ApplicationSet", "AppProject"):
            return

        if self.discoverer is None:
            logger.warning(f"No cluster client configured, skipping ArgoCD resolution for {node}")
            return

        if node.kind == "Application":
            await self.resolve_application(node)
        elif node.kind == "ApplicationSet":
            await self.resolve_application_set(node)
        else:
            await self.resolve_project(node)

    async def discover(self) -> DiscoveryResult:
        """
        Run full-cluster discovery once and index the result by owner uid.

        A failed enumeration is remembered and raised again on later calls
        instead of being retried.

        Raises:
            DiscoveryError: If no discoverer is configured or enumeration failed
        """
        if self._discovery_error is not None:
            raise self._discovery_error

        if self._discovery is None:
            if self.discoverer is None:
                raise DiscoveryError("No cluster client configured for ArgoCD discovery")
            try:
                self._discovery = await self.discoverer.discover_all()
            except DiscoveryError as e:
                logger.warning(f"ArgoCD discovery failed: {e}")
                self._discovery_error = e
                raise

            self._children = self._build_child_map(self._discovery.objects)

            if self._discovery.failures:
                logger.warning(
                    f"ArgoCD discovery is incomplete, {len(self._discovery.failures)} resource "
                    f"types could not be listed: {', '.join(sorted(self._discovery.failures))}"
                )
        return self._discovery

    def is_direct_child(self, resource: dict[str, Any], app_name: str) -> bool:
        """
        Check whether tracking metadata marks the object as managed by an application.

        Example:
            >>> handler.is_direct_child(
            ...     {"metadata": {"annotations": {
            ...         "argocd.argoproj.io/tracking-id": "myapp:apps/Deployment:default/web"}}},
            ...     "myapp",
            ... )
            True
        """
        metadata = resource.get("metadata") or {}
        annotations = metadata.get("annotations") or {}
        labels = metadata.get("labels") or {}

        tracking_id = annotations.get(self.tracking_annotation)
        if isinstance(tracking_id, str) and tracking_id.startswith(f"{app_name}:"):
            return True

        return labels.get(self.tracking_label) == app_name

    async def resolve_application(self, app: Node) -> None:
        """
        Attach every object managed by an application, directly or through owner references.

        Raises:
            OwnershipCycleError: If owner references below a direct child form a cycle
        """
        discovery = await self.discover()
        expanded: set[str] = set()
        count = 0

        for resource in discovery.objects:
            if not self.is_direct_child(resource, app.name):
                continue

            child = self._upsert_discovered(resource)
            if child is None or child.uid == app.uid:
                continue

            self.graph.relate(app, child.kind, child)
            count += 1
            self._attach_descendants(child, [app.uid, child.uid], expanded)

        logger.debug(f"Application {app.name} manages {count} direct children")

    async def resolve_application_set(self, application_set: Node) -> None:
        """Attach the applications an ApplicationSet owns and resolve each of them."""
        discovery = await self.discover()

        for resource in self._applications(discovery.objects):
            if application_set.uid not in self.graph.node_identity.get_owner_uids(resource):
                continue

            app = self._upsert(resource)
            self.graph.relate(application_set, app.kind, app)
            await self.resolve_application(app)

    async def resolve_project(self, project: Node) -> None:
        """
        Attach the applications that belong to an AppProject and resolve each of them.

        Raises:
            MalformedObjectError: If an application has no string spec.project
        """
        discovery = await self.discover()

        for resource in self._applications(discovery.objects):
            if self._get_project(resource) != project.name:
                continue

            app = self._upsert(resource)
            self.graph.relate(project, app.kind, app)
            await self.resolve_application(app)

    def _attach_descendants(self, parent: Node, path: list[str], expanded: set[str]) -> None:
        if parent.uid in expanded:
            return

        for resource in self._children.get(parent.uid, []):
            child = self._upsert_discovered(resource)
            if child is None:
                continue
            if child.uid in path:
                raise OwnershipCycleError(path + [child.uid])

            self.graph.relate(parent, child.kind, child)
            self._attach_descendants(child, path + [child.uid], expanded)

        expanded.add(parent.uid)

    def _upsert_discovered(self, resource: dict[str, Any]) -> Node | None:
        try:
            return self._upsert(resource)
        except MalformedObjectError as e:
            logger.warning(f"Skipping discovered object: {e}")
            return None

    def _build_child_map(self, objects: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
        children: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for resource in objects:
            for owner_uid in self.graph.node_identity.get_owner_uids(resource):
                children[owner_uid].append(resource)
        return dict(children)

    def _applications(self, objects: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            resource
            for resource in objects
            if resource.get("kind") == "Application"
            and str(resource.get("apiVersion", "")).startswith(f"{ARGOCD_GROUP}/")
        ]

    def _get_project(self, resource: dict[str, Any]) -> str:
        name = (resource.get("metadata") or {}).get("name", "unknown")
        spec = resource.get("spec")
        if not isinstance(spec, dict):
            raise MalformedObjectError(f"Application {name} has no spec")

        project = spec.get("project")
        if not isinstance(project, str):
            raise MalformedObjectError(
                f"Application {name} has invalid spec.project: {project!r}"
            )
        return project
