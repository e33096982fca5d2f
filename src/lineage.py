"""
Lineage tag (branch colour) assignment.

Decision list, first match wins:

1. the originator gets the founder tag
2. the configured first-generation ancestor gets its own tag
3. children of the branch root: sons by rank among his sons (1st/2nd/3rd/
   overflow), daughters share one tag
4. other sons who are not spouses inherit their father's tag
5. everyone else gets the default tag

The branch root is the first-generation ancestor when present in the data,
otherwise the originator.
"""

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import math

from classify import AttributeFlags
from config import TreeConfig
from identity import IdentityIndex
from models import (
    MemberRecord,
    Relationships,
    ROLE_SPOUSE,
    TAG_DEFAULT,
    TAG_FEMALE_BRANCH,
    TAG_FIRST_GENERATION,
    TAG_FOUNDER,
    TAG_MALE_BRANCH_1,
    TAG_MALE_BRANCH_2,
    TAG_MALE_BRANCH_3,
    TAG_MALE_BRANCH_OVERFLOW,
)

logger = logging.getLogger(__name__)

MALE_BRANCH_TAGS = (TAG_MALE_BRANCH_1, TAG_MALE_BRANCH_2, TAG_MALE_BRANCH_3)


def birth_order_key(record: MemberRecord) -> tuple:
    """Sort key: birth order ascending, missing/zero last, then id."""
    order = record.birth_order if record.birth_order else math.inf
    return (order, record.id)


@dataclass(frozen=True)
class LineageContext:
    records: Mapping[str, MemberRecord]
    relationships: Mapping[str, Relationships]
    flags: Mapping[str, AttributeFlags]
    first_generation_id: str | None
    branch_root_id: str | None
    # son id -> 1-based rank among the branch root's sons
    son_ranks: Mapping[str, int]


def build_context(
    index: IdentityIndex,
    relationships: Mapping[str, Relationships],
    flags: Mapping[str, AttributeFlags],
    config: TreeConfig,
) -> LineageContext:
    first_gen = index.lookup_ref(config.first_generation)
    first_generation_id = first_gen.id if first_gen is not None else None

    branch_root_id = first_generation_id
    if branch_root_id is None:
        originators = [member_id for member_id, f in flags.items() if f.is_originator]
        branch_root_id = originators[0] if originators else None

    son_ranks: dict[str, int] = {}
    if branch_root_id is not None:
        sons = [
            index.by_id[child_id]
            for child_id in relationships[branch_root_id].children_ids
            if relationships[child_id].father_id == branch_root_id
            and index.by_id[child_id].normalized_gender == "male"
        ]
        for rank, son in enumerate(sorted(sons, key=birth_order_key), start=1):
            son_ranks[son.id] = rank

    return LineageContext(
        records=index.by_id,
        relationships=relationships,
        flags=flags,
        first_generation_id=first_generation_id,
        branch_root_id=branch_root_id,
        son_ranks=son_ranks,
    )


def _direct_tag(member_id: str, ctx: LineageContext) -> str | None:
    """Tag from rules 1, 2, 3 or 5; None when rule 4 (inherit) applies."""
    if ctx.flags[member_id].is_originator:
        return TAG_FOUNDER
    if member_id == ctx.first_generation_id:
        return TAG_FIRST_GENERATION

    record = ctx.records[member_id]
    gender = record.normalized_gender
    father_id = ctx.relationships[member_id].father_id

    if father_id is not None and father_id == ctx.branch_root_id:
        if gender == "male":
            rank = ctx.son_ranks.get(member_id, math.inf)
            if rank <= len(MALE_BRANCH_TAGS):
                return MALE_BRANCH_TAGS[rank - 1]
            return TAG_MALE_BRANCH_OVERFLOW
        if gender == "female":
            return TAG_FEMALE_BRANCH
        return TAG_DEFAULT

    if father_id is not None and gender == "male" and ctx.flags[member_id].role != ROLE_SPOUSE:
        return None
    return TAG_DEFAULT


def classify_lineage(
    member_id: str,
    ctx: LineageContext,
    memo: dict[str, str],
    warnings: list[str] | None = None,
) -> str:
    """
    Lineage tag for one node.

    Walks up the father chain while rule 4 applies, stopping at the first
    memoized ancestor or the first ancestor a direct rule decides. Every node
    on the walked chain is memoized with the result. A father chain that
    revisits a node is corrupt: the walk stops, the chain gets the default
    tag and a warning is recorded.
    """
    chain: list[str] = []
    visited: set[str] = set()
    current = member_id

    while True:
        if current in memo:
            tag = memo[current]
            break
        if current in visited:
            message = f"Cyclic father chain at {current} while tagging {member_id}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            tag = TAG_DEFAULT
            break
        visited.add(current)
        chain.append(current)

        tag = _direct_tag(current, ctx)
        if tag is not None:
            break
        current = ctx.relationships[current].father_id

    for node_id in chain:
        memo[node_id] = tag
    return tag


def assign_lineage_tags(
    ctx: LineageContext,
    memo: dict[str, str] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, str]:
    """
    Tag every node in the context.

    `memo` belongs to one resolution pass; pass a fresh dict (or None) for
    every pass so tags never leak between datasets.
    """
    if memo is None:
        memo = {}
    return {member_id: classify_lineage(member_id, ctx, memo, warnings) for member_id in ctx.records}
