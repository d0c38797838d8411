import hashlib
from typing import Any

from pydantic import ValidationError

from kube_graph.exceptions import MalformedObjectError
from kube_graph.models import GroupVersionKind, ObjectDescriptor, OwnerReference


CLUSTER_SCOPED_KINDS = frozenset(
    {
        "APIService",
        "ClusterIssuer",
        "ClusterRole",
        "ClusterRoleBinding",
        "CustomResourceDefinition",
        "IngressClass",
        "MutatingWebhookConfiguration",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass",
        "StorageClass",
        "ValidatingWebhookConfiguration",
    }
)


def to_uid(*params: Any) -> str:
    """
    Derive a stable uid from arbitrary values.

    The string forms of the values are joined with "-", hashed with MD5 and
    laid out as 8-4-4-4-12 hex groups. Only used for entities that have no
    uid of their own, such as the cluster root.

    Example:
        >>> to_uid("kubernetes")
        'b76e98af-9aaa-6809-79bf-5a65b2d5a105'
    """
    joined = "-".join(str(param) for param in params)
    digest = hashlib.md5(joined.encode("utf-8")).hexdigest()
    return "-".join([digest[:8], digest[8:12], digest[12:16], digest[16:20], digest[20:]])


class NodeIdentity:
    """
    Extracts graph identity from raw Kubernetes objects.

    Raw objects are plain dicts as returned by the API server
    (apiVersion, kind, metadata, ...).
    """

    def get_group_version_kind(self, resource: dict[str, Any]) -> GroupVersionKind:
        kind = resource.get("kind")
        if not kind or not isinstance(kind, str):
            raise MalformedObjectError("object has no kind")
        return GroupVersionKind.from_api_version_and_kind(resource.get("apiVersion"), kind)

    def get_descriptor(self, resource: dict[str, Any]) -> ObjectDescriptor:
        """
        Build the descriptor of a raw object.

        Args:
            resource: Raw object dict

        Returns:
            ObjectDescriptor with identity, labels, annotations and owner references

        Raises:
            MalformedObjectError: If uid is missing or metadata is ill-typed
        """
        metadata = resource.get("metadata")
        if not isinstance(metadata, dict):
            raise MalformedObjectError(f"{resource.get('kind', 'object')} has no metadata")

        try:
            return ObjectDescriptor(
                uid=metadata.get("uid") or "",
                cluster_name=metadata.get("clusterName") or "",
                namespace=metadata.get("namespace") or None,
                name=metadata.get("name") or "",
                labels=metadata.get("labels") or {},
                annotations=metadata.get("annotations") or {},
                owner_references=[
                    OwnerReference.model_validate(ref)
                    for ref in metadata.get("ownerReferences") or []
                ],
            )
        except ValidationError as e:
            name = metadata.get("name", "unknown")
            raise MalformedObjectError(
                f"{resource.get('kind', 'object')}/{name} has invalid metadata: {e}"
            ) from e

    def get_owner_descriptor(
        self, owner_ref: OwnerReference, child: ObjectDescriptor
    ) -> ObjectDescriptor:
        """Describe an owner from a child's reference; owners share the child's namespace."""
        namespace = None if owner_ref.kind in CLUSTER_SCOPED_KINDS else child.namespace
        return ObjectDescriptor(uid=owner_ref.uid, name=owner_ref.name, namespace=namespace)

    def get_owner_uids(self, resource: dict[str, Any]) -> list[str]:
        metadata = resource.get("metadata") or {}
        return [ref["uid"] for ref in metadata.get("ownerReferences") or [] if ref.get("uid")]
