"""Example: ArgoCD application ownership exported as Cypher."""

import asyncio
import sys

from kube_graph import GraphBuilder, GraphOptions, KubernetesAdapter


async def main():
    """Resolve every ArgoCD Application, ApplicationSet and AppProject in the cluster."""
    client = KubernetesAdapter()
    argocd_types = [
        rt
        for rt in await client.list_api_resources()
        if rt.group_version.startswith("argoproj.io/")
        and rt.kind in ("Application", "ApplicationSet", "AppProject")
    ]

    objects = []
    for resource_type in argocd_types:
        objects.extend(await client.list_objects(resource_type))

    builder = GraphBuilder(client, options=GraphOptions(discovery_workers=16))
    graph, error = await builder.build(objects, progress=lambda: print(".", end="", file=sys.stderr))
    print(file=sys.stderr)

    for resource_type, message in builder.get_discovery_failures().items():
        print(f"warning: could not list {resource_type}: {message}", file=sys.stderr)
    if error:
        print(f"warning: {error}", file=sys.stderr)

    graph.write(sys.stdout, "cypher")


if __name__ == "__main__":
    asyncio.run(main())
