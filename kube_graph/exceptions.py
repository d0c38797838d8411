"""Exception hierarchy for kube-graph."""

from typing import Any


class KubeGraphError(Exception):
    """Base class for all kube-graph errors."""


class MalformedObjectError(KubeGraphError):
    """An object is missing fields required to extract identity or ownership."""


class OwnershipCycleError(KubeGraphError):
    """An ownership walk reached an identifier that is already on its own path."""

    def __init__(self, path: list[str]) -> None:
        self.path = list(path)
        super().__init__(f"Ownership cycle detected: {' -> '.join(self.path)}")


class UnknownNodeError(KubeGraphError):
    """A relationship was requested for a node that is not in the graph."""


class RootResolutionError(KubeGraphError):
    """A cluster or namespace root could not be resolved."""


class DiscoveryError(KubeGraphError):
    """The cluster's resource types could not be enumerated."""


class ObjectError:
    """An ingestion failure tied to the object that caused it."""

    def __init__(self, obj: dict[str, Any], error: Exception) -> None:
        metadata = obj.get("metadata") or {}
        self.kind = obj.get("kind", "")
        self.namespace = metadata.get("namespace")
        self.name = metadata.get("name", "")
        self.error = error

    def __str__(self) -> str:
        ref = f"{self.kind}/{self.name}"
        if self.namespace:
            ref = f"{self.namespace}/{ref}"
        return f"{ref}: {self.error}"

    def __repr__(self) -> str:
        return f"ObjectError({self})"


class IngestionError(KubeGraphError):
    """Aggregate of every per-object error collected during one build."""

    def __init__(self, errors: list[ObjectError]) -> None:
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = f"[{', '.join(str(e) for e in self.errors)}]"
        super().__init__(message)

    def __len__(self) -> int:
        return len(self.errors)


class RenderError(KubeGraphError):
    """A template failed to render."""


class UnknownFormatError(RenderError):
    """The requested output format has no registered template."""
