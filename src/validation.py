"""Validation of resolved family data."""

from collections.abc import Mapping

import networkx as nx

from graph import build_graph, parent_subgraph
from models import PARENT_OF, ResolvedNode, ROLE_SPOUSE, TAG_FIRST_GENERATION


def validate_graph(G: nx.DiGraph) -> list[str]:
    """
    Validate the family tree graph for:
    - Cycles in parent-child relationships
    - Impossible ages (child born before parent)
    - Parents younger than 12 at a child's birth

    Returns a list of warning messages.
    """
    warnings: list[str] = []

    # Check for cycles
    try:
        cycle = nx.find_cycle(parent_subgraph(G), orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass  # No cycle found, which is good

    # birth_date is ISO format (YYYY-MM-DD) which can be compared as strings
    for parent, child, data in G.edges(data=True):
        if data.get("relationship_type") != PARENT_OF:
            continue

        parent_data = G.nodes[parent]
        child_data = G.nodes[child]

        parent_birth = parent_data.get("birth_date")
        child_birth = child_data.get("birth_date")

        if parent_birth and child_birth:
            if child_birth < parent_birth:
                warnings.append(
                    f"Impossible: {child_data.get('person_name')} born before parent "
                    f"{parent_data.get('person_name')}"
                )
            else:
                try:
                    parent_year = int(parent_birth[:4])
                    child_year = int(child_birth[:4])
                    if child_year - parent_year < 12:
                        warnings.append(
                            f"Suspicious: {parent_data.get('person_name')} was less than 12 years "
                            f"old when {child_data.get('person_name')} was born"
                        )
                except (ValueError, IndexError):
                    pass

    return warnings


def check_symmetry(nodes: Mapping[str, ResolvedNode]) -> list[str]:
    """Parent/child and spouse edges that are only visible from one side."""
    warnings: list[str] = []
    for node_id, node in nodes.items():
        rel = node.relationships
        for child_id in sorted(rel.children_ids):
            child = nodes.get(child_id)
            if child is None or node_id not in (
                child.relationships.father_id,
                child.relationships.mother_id,
            ):
                warnings.append(f"{node_id} lists child {child_id} who does not point back")
        for parent_id in (rel.father_id, rel.mother_id):
            if parent_id is None:
                continue
            parent = nodes.get(parent_id)
            if parent is None or node_id not in parent.relationships.children_ids:
                warnings.append(f"{node_id} names parent {parent_id} who does not list them")
        for spouse_id in sorted(rel.spouse_ids):
            spouse = nodes.get(spouse_id)
            if spouse is None or node_id not in spouse.relationships.spouse_ids:
                warnings.append(f"{node_id} lists spouse {spouse_id} who does not list them back")
    return warnings


def check_originators(nodes: Mapping[str, ResolvedNode]) -> list[str]:
    originators = [node_id for node_id, node in nodes.items() if node.derived.is_originator]
    if not originators:
        return ["No originator found"]
    if len(originators) > 1:
        return [f"Multiple originators found: {originators}"]
    return []


def check_lineage_inheritance(nodes: Mapping[str, ResolvedNode]) -> list[str]:
    """
    Sons (not spouses) whose tag differs from their father's.

    Sons of the originator and of the first-generation ancestor start their
    own branches and are skipped.
    """
    warnings: list[str] = []
    for node_id, node in nodes.items():
        d = node.derived
        father_id = node.relationships.father_id
        if d.is_originator or d.role == ROLE_SPOUSE or father_id not in nodes:
            continue
        if node.record.normalized_gender != "male":
            continue
        father = nodes[father_id]
        if father.derived.is_originator or father.derived.lineage_tag == TAG_FIRST_GENERATION:
            continue
        if d.lineage_tag != father.derived.lineage_tag:
            warnings.append(
                f"{node_id} ({node.record.full_name}) has lineage {d.lineage_tag} but father "
                f"{father_id} ({father.record.full_name}) has {father.derived.lineage_tag}"
            )
    return warnings


def validate_resolution(nodes: Mapping[str, ResolvedNode], G: nx.DiGraph | None = None) -> list[str]:
    """All structural checks over one resolution pass."""
    if G is None:
        G = build_graph(nodes)
    warnings = check_originators(nodes)
    warnings.extend(check_symmetry(nodes))
    warnings.extend(validate_graph(G))
    warnings.extend(check_lineage_inheritance(nodes))
    return warnings
