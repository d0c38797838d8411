"""Basic usage example for kube-graph."""

import asyncio

from kube_graph import ClusterDiscoverer, GraphBuilder, KubernetesAdapter


async def main():
    """Snapshot a cluster, build its graph and print it as Graphviz DOT."""
    client = KubernetesAdapter()

    print("Listing cluster objects...")
    snapshot = await ClusterDiscoverer(client, workers=8, timeout=30).discover_all()
    for resource_type, error in snapshot.failures.items():
        print(f"  skipped {resource_type}: {error}")

    builder = GraphBuilder(client)
    graph, error = await builder.build(snapshot.objects)

    print("\nGraph Statistics:")
    print(f"  Nodes: {len(graph)}")
    print(f"  Relationships: {len(graph.relationships())}")

    if error:
        print(f"\n{len(error)} objects could not be ingested:")
        for object_error in error.errors:
            print(f"  {object_error}")

    print("\nRelationships:")
    for relationship in graph.relationships():
        source = graph.get_node(relationship.from_uid)
        target = graph.get_node(relationship.to_uid)
        print(f"  {source} --[{relationship.label}]--> {target}")

    with open("cluster.dot", "w") as f:
        graph.write(f, "graphviz")
    print("\nWrote cluster.dot (render with: dot -Tsvg cluster.dot -o cluster.svg)")


if __name__ == "__main__":
    asyncio.run(main())
