from kube_graph.handlers.argocd import ArgoCDHandler
from kube_graph.handlers.base import BaseGroupHandler
from kube_graph.handlers.core_v1 import CoreV1Handler

__all__ = [
    "ArgoCDHandler",
    "BaseGroupHandler",
    "CoreV1Handler",
]
