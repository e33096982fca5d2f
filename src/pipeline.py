"""One resolution pass: member records in, resolved nodes out."""

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from classify import classify_attributes, find_originators
from config import TreeConfig
from identity import IdentityIndex
from lineage import assign_lineage_tags, build_context
from models import DerivedAttributes, MemberRecord, ResolvedNode
from repair import repair_consistency
from resolver import aggregate_children, resolve_relationships

logger = logging.getLogger(__name__)


@dataclass
class FamilyResolution:
    nodes: dict[str, ResolvedNode]
    originator_ids: list[str]
    warnings: list[str] = field(default_factory=list)

    @property
    def root_id(self) -> str | None:
        """The designated originator, or None when there is none."""
        return self.originator_ids[0] if self.originator_ids else None


def resolve_family(
    records: Iterable[MemberRecord], config: TreeConfig | None = None
) -> FamilyResolution:
    """
    Run a full resolution pass over a materialized record collection.

    Every intermediate structure (index, links, lineage memo) is created here
    and discarded on return, so calling this again with fresh records is the
    refresh operation.

    Args:
        records: The member records from the data store
        config: Founder identity, overrides and naming conventions

    Returns:
        A FamilyResolution with one ResolvedNode per distinct record id
    """
    config = config or TreeConfig()
    warnings: list[str] = []

    index = IdentityIndex.build(records, config.aliases)
    for member_id in index.duplicate_ids:
        warnings.append(f"Duplicate member id {member_id}; later record ignored")
    for name in index.duplicate_names():
        warnings.append(f"Ambiguous name '{name}' is shared by several members; first match wins")

    links = resolve_relationships(index, config)
    aggregate_children(links)
    relationships, repair_warnings = repair_consistency(links, index, config)
    warnings.extend(repair_warnings)

    flags = classify_attributes(index.by_id, relationships, config)
    originator_ids = find_originators(flags)
    if not originator_ids:
        warnings.append("No originator found")
    elif len(originator_ids) > 1:
        warnings.append(f"Multiple originators found: {originator_ids}")
        # Prefer the configured founder id as root
        founder_id = config.founder.id
        if founder_id in originator_ids:
            originator_ids.remove(founder_id)
            originator_ids.insert(0, founder_id)

    ctx = build_context(index, relationships, flags, config)
    tags = assign_lineage_tags(ctx, memo={}, warnings=warnings)

    nodes: dict[str, ResolvedNode] = {}
    for member_id, record in index.by_id.items():
        f = flags[member_id]
        nodes[member_id] = ResolvedNode(
            id=member_id,
            record=record,
            relationships=relationships[member_id],
            derived=DerivedAttributes(
                is_originator=f.is_originator,
                is_twin=f.is_twin,
                is_polygamous=f.is_polygamous,
                is_out_of_wedlock=f.is_out_of_wedlock,
                role=f.role,
                lineage_tag=tags[member_id],
                multiple_birth_label=f.multiple_birth_label,
            ),
        )

    logger.info("Resolved %d members with %d warnings", len(nodes), len(warnings))
    return FamilyResolution(nodes=nodes, originator_ids=originator_ids, warnings=warnings)
