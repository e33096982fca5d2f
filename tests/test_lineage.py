from classify import classify_attributes
from config import NamedMember, TreeConfig
from identity import IdentityIndex
from lineage import assign_lineage_tags, build_context, classify_lineage
from models import (
    ROLE_DESCENDANT,
    TAG_DEFAULT,
    TAG_FEMALE_BRANCH,
    TAG_FIRST_GENERATION,
    TAG_FOUNDER,
    TAG_MALE_BRANCH_1,
    TAG_MALE_BRANCH_2,
    TAG_MALE_BRANCH_3,
    TAG_MALE_BRANCH_OVERFLOW,
)
from pipeline import resolve_family
from repair import repair_consistency
from resolver import aggregate_children, resolve_relationships


def _context(records, config):
    index = IdentityIndex.build(records)
    links = resolve_relationships(index, config)
    aggregate_children(links)
    rels, _ = repair_consistency(links, index, config)
    flags = classify_attributes(index.by_id, rels, config)
    return build_context(index, rels, flags, config)


def test_founder_children_take_branch_tags_when_no_first_generation(make_member):
    records = [
        make_member("D00Z00001", "Laketu Mosuro"),
        make_member("D01", "Child A", father="Laketu Mosuro", birth_order=1),
        make_member("D02", "Child B", gender="female", father="Laketu Mosuro", birth_order=2),
    ]
    resolution = resolve_family(records, TreeConfig())
    nodes = resolution.nodes

    assert nodes["D00Z00001"].relationships.children_ids == frozenset({"D01", "D02"})
    assert nodes["D00Z00001"].derived.lineage_tag == TAG_FOUNDER
    assert nodes["D01"].derived.lineage_tag == TAG_MALE_BRANCH_1
    assert nodes["D02"].derived.lineage_tag == TAG_FEMALE_BRANCH
    assert nodes["D01"].derived.role == ROLE_DESCENDANT
    assert nodes["D02"].derived.role == ROLE_DESCENDANT


def test_branch_tags_follow_rank_among_sons(family):
    tags = {node_id: node.derived.lineage_tag for node_id, node in family.nodes.items()}

    assert tags["D00Z00001"] == TAG_FOUNDER
    assert tags["D01Z00002"] == TAG_FIRST_GENERATION
    assert tags["D02Z00001"] == TAG_MALE_BRANCH_1
    # Bisi (birth order 2) is a daughter, so Kunle is the second son
    assert tags["D02Z00002"] == TAG_FEMALE_BRANCH
    assert tags["D02Z00003"] == TAG_MALE_BRANCH_2
    assert tags["D02Z00004"] == TAG_MALE_BRANCH_3
    assert tags["D02Z00005"] == TAG_MALE_BRANCH_OVERFLOW


def test_sons_inherit_fathers_tag_and_others_get_default(family):
    tags = {node_id: node.derived.lineage_tag for node_id, node in family.nodes.items()}

    assert tags["D03Z00001"] == TAG_MALE_BRANCH_1
    assert tags["D03Z00002"] == TAG_DEFAULT
    assert tags["S00Z00001"] == TAG_DEFAULT
    assert tags["S01Z00001"] == TAG_DEFAULT


def test_spouse_role_does_not_inherit(make_member):
    config = TreeConfig(founder=NamedMember(id="F"), first_generation=None, parent_overrides=())
    records = [
        make_member("F", "Founder Root"),
        make_member("X1", "Son One", father="Founder Root", mother="Mum Root", birth_order=1),
        make_member("M", "Mum Root", gender="female"),
        # Known father, but no mother and no birth order: classified as a spouse
        make_member("X2", "Grand Son", father="Son One"),
    ]
    tags = assign_lineage_tags(_context(records, config))

    assert tags["X1"] == TAG_MALE_BRANCH_1
    assert tags["X2"] == TAG_DEFAULT


def test_cyclic_father_chain_terminates_with_warning(make_member):
    config = TreeConfig(founder=NamedMember(id="none"), first_generation=None, parent_overrides=())
    records = [
        make_member("A", "Aa Zz", father="Bb Zz", mother="Mm Zz", birth_order=1),
        make_member("B", "Bb Zz", father="Aa Zz", mother="Mm Zz", birth_order=2),
        make_member("M", "Mm Zz", gender="female"),
    ]
    warnings: list[str] = []
    tags = assign_lineage_tags(_context(records, config), memo={}, warnings=warnings)

    assert tags["A"] == TAG_DEFAULT
    assert tags["B"] == TAG_DEFAULT
    assert any("Cyclic father chain" in w for w in warnings)


def test_memo_is_consulted_before_walking(family_records):
    ctx = _context(family_records, TreeConfig())
    memo = {"D02Z00001": "custom"}

    assert classify_lineage("D03Z00001", ctx, memo) == "custom"
    assert memo["D03Z00001"] == "custom"


def test_memoized_and_fresh_runs_agree(family_records):
    ctx = _context(family_records, TreeConfig())
    memoized = assign_lineage_tags(ctx, memo={})

    for member_id, tag in memoized.items():
        assert classify_lineage(member_id, ctx, {}) == tag
