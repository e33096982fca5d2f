"""NetworkX graph building over resolved nodes."""

from collections.abc import Mapping

import networkx as nx

from models import PARENT_OF, ResolvedNode, SPOUSE_OF


def build_graph(nodes: Mapping[str, ResolvedNode]) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from resolved nodes.

    PARENT_OF edges go parent -> child. Each spouse pair gets one SPOUSE_OF
    edge, directed from the lower id to the higher id.
    """
    G = nx.DiGraph()

    # Note: use 'person_name' instead of 'name' to avoid conflict with pydot
    for node_id, node in nodes.items():
        G.add_node(
            node_id,
            person_name=node.record.full_name,
            sex=node.record.normalized_gender,
            birth_date=node.record.birth_date,
            role=node.derived.role,
            lineage_tag=node.derived.lineage_tag,
        )

    for node_id, node in nodes.items():
        rel = node.relationships
        for parent_id in (rel.father_id, rel.mother_id):
            if parent_id is not None and parent_id in nodes:
                G.add_edge(parent_id, node_id, relationship_type=PARENT_OF)
        for spouse_id in rel.spouse_ids:
            if spouse_id in nodes and node_id < spouse_id:
                G.add_edge(node_id, spouse_id, relationship_type=SPOUSE_OF)

    return G


def parent_subgraph(G: nx.DiGraph) -> nx.DiGraph:
    """Only the PARENT_OF edges, for cycle and generation checks."""
    parent_edges = [
        (u, v) for u, v, d in G.edges(data=True) if d.get("relationship_type") == PARENT_OF
    ]
    return nx.DiGraph(parent_edges)
