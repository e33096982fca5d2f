"""Resolve free-text father/mother/spouse names into member ids."""

from dataclasses import dataclass, field
import logging

from config import TreeConfig
from identity import IdentityIndex, normalize_name

logger = logging.getLogger(__name__)


@dataclass
class LinkSet:
    """Mutable relationship edges for one record while a pass is running."""

    father_id: str | None = None
    mother_id: str | None = None
    spouse_ids: set[str] = field(default_factory=set)
    children_ids: set[str] = field(default_factory=set)


def _has_name(first: str | None, last: str | None) -> bool:
    return bool((first or "").strip()) and bool((last or "").strip())


def resolve_name(
    index: IdentityIndex, first: str | None, last: str | None, self_id: str
) -> str | None:
    """
    Resolve a name reference to a member id.

    Tries the exact normalized-name index first, then a linear scan. A record
    is never resolved as a reference to itself (e.g. a son sharing his
    father's name falls through to the scan, which skips him).
    """
    if not _has_name(first, last):
        return None

    match = index.lookup_by_name(first, last)
    if match is None or match.id == self_id:
        match = index.scan_by_name(first, last, exclude_id=self_id)

    if match is None:
        logger.debug("Unresolved reference from %s to '%s %s'", self_id, first, last)
        return None
    return match.id


def apply_parent_overrides(
    links: dict[str, LinkSet], index: IdentityIndex, config: TreeConfig
) -> int:
    """
    Fill known missing parent edges from the configured override table.

    Only unset parents are filled, and the parent's children set is updated
    to match. Returns the number of edges added.
    """
    added = 0
    for override in config.parent_overrides:
        child = index.lookup_ref(override.child)
        if child is None or child.id not in links:
            continue
        child_links = links[child.id]

        for attr, ref in (("father_id", override.father), ("mother_id", override.mother)):
            parent = index.lookup_ref(ref)
            if parent is None or parent.id == child.id:
                continue
            if getattr(child_links, attr) is None:
                setattr(child_links, attr, parent.id)
                added += 1
                logger.debug("Override: %s %s set to %s", child.id, attr, parent.id)
            if getattr(child_links, attr) == parent.id:
                links[parent.id].children_ids.add(child.id)
    return added


def resolve_relationships(index: IdentityIndex, config: TreeConfig) -> dict[str, LinkSet]:
    """
    Resolve father, mother and spouse references for every indexed record.

    Spouses are the union of the forward reference (the spouse this record
    names) and back-references (records naming this one as their spouse).
    Unmatched names leave the edge absent; nothing here raises for bad data.

    Returns:
        Mapping of member id -> LinkSet, in input order
    """
    links: dict[str, LinkSet] = {}

    # Reverse index for back-reference spouses: named spouse key -> record ids
    named_as_spouse: dict[str, list[str]] = {}
    for record in index.records:
        if _has_name(record.spouse_first_name, record.spouse_last_name):
            key = normalize_name(record.spouse_first_name, record.spouse_last_name)
            named_as_spouse.setdefault(key, []).append(record.id)

    for record in index.records:
        father_id = resolve_name(index, record.father_first_name, record.father_last_name, record.id)
        mother_id = resolve_name(index, record.mother_first_name, record.mother_last_name, record.id)

        spouse_ids: set[str] = set()
        spouse_id = resolve_name(index, record.spouse_first_name, record.spouse_last_name, record.id)
        if spouse_id is not None:
            spouse_ids.add(spouse_id)

        own_key = normalize_name(record.first_name, record.last_name)
        for other_id in named_as_spouse.get(own_key, []):
            if other_id != record.id:
                spouse_ids.add(other_id)

        links[record.id] = LinkSet(father_id=father_id, mother_id=mother_id, spouse_ids=spouse_ids)

    apply_parent_overrides(links, index, config)
    return links


def aggregate_children(links: dict[str, LinkSet]) -> None:
    """
    Derive each record's children from the resolved parent edges.

    Runs once over the whole set, after every record has been resolved.
    """
    for child_id, child_links in links.items():
        for parent_id in (child_links.father_id, child_links.mother_id):
            if parent_id is not None and parent_id != child_id and parent_id in links:
                links[parent_id].children_ids.add(child_id)
