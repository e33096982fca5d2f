"""Per-node flags that do not depend on tree position."""

from collections.abc import Mapping
from dataclasses import dataclass

from config import TreeConfig
from models import (
    MemberRecord,
    Relationships,
    ROLE_DESCENDANT,
    ROLE_ORIGINATOR,
    ROLE_SPOUSE,
)

MULTIPLE_BIRTH_LABELS = {2: "Twins", 3: "Triplets"}


@dataclass(frozen=True)
class AttributeFlags:
    is_originator: bool
    is_twin: bool
    is_polygamous: bool
    is_out_of_wedlock: bool
    role: str
    multiple_birth_label: str | None = None


def _has_prefix(member_id: str, prefix: str | None) -> bool:
    return bool(prefix) and member_id.upper().startswith(prefix.upper())


def is_polygamous(record: MemberRecord) -> bool:
    order = record.marriage_order
    return (
        record.normalized_gender == "male"
        and isinstance(order, int)
        and not isinstance(order, bool)
        and order > 1
        and (record.marital_status or "").strip().lower() == "married"
    )


def classify_role(
    record: MemberRecord, rel: Relationships, originator: bool, config: TreeConfig
) -> str:
    """
    Originator > spouse id convention > descendant id convention > rules.

    By rule a non-originator is a Spouse when either parent is unresolved or
    the birth order is missing/zero; everyone else is a Descendant.
    """
    if originator:
        return ROLE_ORIGINATOR
    if _has_prefix(record.id, config.spouse_id_prefix):
        return ROLE_SPOUSE
    if _has_prefix(record.id, config.descendant_id_prefix):
        return ROLE_DESCENDANT
    if rel.father_id is None or rel.mother_id is None or not record.birth_order:
        return ROLE_SPOUSE
    return ROLE_DESCENDANT


def _sibling_key(record: MemberRecord, rel: Relationships) -> tuple | None:
    # Unresolved parents compare equal, so two parentless records can be twins
    if not record.birth_order:
        return None
    return (rel.father_id, rel.mother_id, record.birth_order)


def classify_attributes(
    records: Mapping[str, MemberRecord],
    relationships: Mapping[str, Relationships],
    config: TreeConfig,
) -> dict[str, AttributeFlags]:
    """
    Compute originator/twin/polygamous/out-of-wedlock flags and role per node.

    Works purely on resolved ids; names are only consulted for the founder
    identity match.
    """
    births: dict[tuple, list[str]] = {}
    for member_id, rel in relationships.items():
        key = _sibling_key(records[member_id], rel)
        if key is not None:
            births.setdefault(key, []).append(member_id)

    flags: dict[str, AttributeFlags] = {}
    for member_id, rel in relationships.items():
        record = records[member_id]
        originator = config.founder.matches(record)

        key = _sibling_key(record, rel)
        count = len(births[key]) if key is not None else 1
        label = MULTIPLE_BIRTH_LABELS.get(count, "Multiples") if count >= 2 else None

        flags[member_id] = AttributeFlags(
            is_originator=originator,
            is_twin=count >= 2,
            is_polygamous=is_polygamous(record),
            is_out_of_wedlock=rel.father_id is None and rel.mother_id is None,
            role=classify_role(record, rel, originator, config),
            multiple_birth_label=label,
        )
    return flags


def find_originators(flags: Mapping[str, AttributeFlags]) -> list[str]:
    return [member_id for member_id, f in flags.items() if f.is_originator]
