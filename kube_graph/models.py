from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GroupVersionKind(BaseModel):
    """
    API group, version and kind of a Kubernetes object.

    Example:
        >>> gvk = GroupVersionKind.from_api_version_and_kind("apps/v1", "Deployment")
        >>> gvk.group, gvk.version, gvk.api_version
        ('apps', 'v1', 'apps/v1')
    """

    model_config = ConfigDict(frozen=True)

    group: str = ""
    version: str = ""
    kind: str

    @classmethod
    def from_api_version_and_kind(cls, api_version: str | None, kind: str) -> "GroupVersionKind":
        api_version = api_version or ""
        if "/" in api_version:
            group, version = api_version.split("/", 1)
        else:
            group, version = "", api_version
        return cls(group=group, version=version, kind=kind)

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


class OwnerReference(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    kind: str
    uid: str = Field(min_length=1)
    name: str = ""


class ObjectDescriptor(BaseModel):
    """Identity and metadata of an object, as far as the graph needs it."""

    uid: str
    cluster_name: str = ""
    namespace: str | None = None
    name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)

    @field_validator("uid")
    @classmethod
    def validate_uid(cls, v: str) -> str:
        if not v:
            raise ValueError("uid cannot be empty")
        return v


class Node(BaseModel):
    """
    A resource instance in the graph.

    Nodes are mutated in place when the same uid is upserted again;
    see ``Graph.upsert_node`` for the merge rules.
    """

    uid: str
    api_version: str = ""
    kind: str
    cluster_name: str = ""
    namespace: str | None = None
    name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (ns: {self.namespace})"
        return f"{self.kind}/{self.name}"


class Relationship(BaseModel):
    """A labeled edge from one node uid to another."""

    from_uid: str
    label: str
    to_uid: str
    attr: dict[str, str] = Field(default_factory=dict)

    def attribute(self, key: str, value: str) -> "Relationship":
        """Set an attribute on the relationship and return it for chaining."""
        self.attr[key] = value
        return self


class APIResourceType(BaseModel):
    """
    A listable resource type advertised by the API server.

    Example:
        >>> APIResourceType(group_version="apps/v1", kind="Deployment", name="deployments")
    """

    model_config = ConfigDict(frozen=True)

    group_version: str
    kind: str
    name: str
    namespaced: bool = True
    verbs: tuple[str, ...] = ("list",)

    @property
    def key(self) -> str:
        return f"{self.group_version}/{self.name}"

    @property
    def listable(self) -> bool:
        return "list" in self.verbs and "/" not in self.name


class DiscoveryResult(BaseModel):
    """Merged objects of a full-cluster discovery plus the types that failed to list."""

    objects: list[dict[str, Any]] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures


class GraphOptions(BaseModel):
    """Options that control graph construction and deployment-tool discovery."""

    cluster_name: str = Field(default="kubernetes", min_length=1)
    allow_parallel_relationships: bool = False
    discovery_workers: int = Field(default=8, ge=1, le=64)
    discovery_timeout: float | None = Field(default=30.0, gt=0)
    tracking_annotation: str = "argocd.argoproj.io/tracking-id"
    tracking_label: str = "app.kubernetes.io/instance"
