"""Force parent/child and spouse edges to agree in both directions."""

import logging

from config import TreeConfig
from identity import IdentityIndex
from models import Relationships
from resolver import LinkSet, apply_parent_overrides

logger = logging.getLogger(__name__)


def _backfill_parents(
    links: dict[str, LinkSet], index: IdentityIndex, warnings: list[str]
) -> None:
    """Pass 1: a listed child gets this node as father or mother if unset."""
    for parent_id, parent_links in links.items():
        gender = index.by_id[parent_id].normalized_gender
        for child_id in sorted(parent_links.children_ids):
            child_links = links.get(child_id)
            if child_links is None:
                warnings.append(f"{parent_id} lists unknown child {child_id}")
                continue
            if parent_id in (child_links.father_id, child_links.mother_id):
                continue

            if gender == "male" and child_links.father_id is None:
                child_links.father_id = parent_id
            elif gender == "female" and child_links.mother_id is None:
                child_links.mother_id = parent_id
            else:
                warnings.append(
                    f"One-directional edge: {parent_id} lists child {child_id}, "
                    f"but {child_id} does not point back"
                )


def _backfill_children(links: dict[str, LinkSet], warnings: list[str]) -> None:
    """Pass 2: every resolved parent lists the child."""
    for child_id, child_links in links.items():
        for attr in ("father_id", "mother_id"):
            parent_id = getattr(child_links, attr)
            if parent_id is None:
                continue
            if parent_id not in links:
                warnings.append(f"{child_id} points to unknown parent {parent_id}")
                setattr(child_links, attr, None)
                continue
            links[parent_id].children_ids.add(child_id)


def _symmetrize_spouses(links: dict[str, LinkSet], warnings: list[str]) -> None:
    for member_id, member_links in links.items():
        for spouse_id in sorted(member_links.spouse_ids):
            if spouse_id not in links or spouse_id == member_id:
                warnings.append(f"{member_id} lists unusable spouse {spouse_id}")
                member_links.spouse_ids.discard(spouse_id)
                continue
            links[spouse_id].spouse_ids.add(member_id)


def repair_consistency(
    links: dict[str, LinkSet], index: IdentityIndex, config: TreeConfig
) -> tuple[dict[str, Relationships], list[str]]:
    """
    Run the symmetry passes over the full resolved set and freeze the result.

    Order: parents from children, children from parents, spouse symmetry,
    then the configured parent overrides as a final deterministic patch.
    Irreparable edges stay one-directional and are reported, never raised.

    Returns:
        (id -> frozen Relationships, list of warning messages)
    """
    warnings: list[str] = []

    _backfill_parents(links, index, warnings)
    _backfill_children(links, warnings)
    _symmetrize_spouses(links, warnings)

    patched = apply_parent_overrides(links, index, config)
    if patched:
        logger.info("Applied %d parent override(s) after repair", patched)

    for w in warnings:
        logger.warning(w)

    frozen = {
        member_id: Relationships(
            father_id=link.father_id,
            mother_id=link.mother_id,
            spouse_ids=frozenset(link.spouse_ids),
            children_ids=frozenset(link.children_ids),
        )
        for member_id, link in links.items()
    }
    return frozen, warnings
