from collections import defaultdict

import pytest

from config import NamedMember, TreeConfig
from layout import (
    ExpansionState,
    LayoutError,
    NoOriginatorError,
    TreeView,
    compute_layout,
    fit_transform,
)
from pipeline import resolve_family

CHAIN_CONFIG = TreeConfig(founder=NamedMember(id="F"), first_generation=None, parent_overrides=())


@pytest.fixture
def sample_layout(family):
    return compute_layout(family.nodes, family.root_id, TreeConfig())


def test_tree_without_originator_cannot_be_laid_out(make_member):
    records = [
        make_member("A1", "Ade Ola", birth_order=1),
        make_member("A2", "Bola Ola", gender="female", birth_order=2),
    ]
    resolution = resolve_family(records, TreeConfig())

    assert resolution.root_id is None
    with pytest.raises(NoOriginatorError):
        compute_layout(resolution.nodes, resolution.root_id)
    with pytest.raises(NoOriginatorError):
        compute_layout(resolution.nodes, "A1")


def test_levels_and_partner_offsets(family, sample_layout):
    glyphs = sample_layout.glyphs

    assert set(glyphs) == set(family.nodes)
    assert glyphs["D00Z00001"].y == 0
    assert glyphs["D01Z00002"].y == 350
    assert glyphs["D03Z00001"].y == 3 * 350

    founder, wife = glyphs["D00Z00001"], glyphs["S00Z00001"]
    assert wife.is_partner
    assert wife.y == founder.y
    assert wife.x - founder.x == 500


def test_glyph_styling_follows_attributes(sample_layout):
    founder = sample_layout.glyphs["D00Z00001"]
    wife = sample_layout.glyphs["S00Z00001"]

    assert founder.shape == "rect"
    assert wife.shape == "circle"
    assert founder.fill == "#8B4513"
    assert founder.badges == ("originator",)
    assert founder.stroke_width == 3
    assert wife.stroke_width == 1
    assert founder.label[:2] == ("Laketu Mosuro", "D00Z00001")


def test_glyphs_on_a_level_never_overlap(sample_layout):
    levels = defaultdict(list)
    for glyph in sample_layout.glyphs.values():
        levels[glyph.y].append(glyph.x)

    for xs in levels.values():
        xs.sort()
        assert all(b - a >= 500 for a, b in zip(xs, xs[1:]))


def test_edges_connect_parents_children_and_partners(sample_layout):
    kinds = {(e.source, e.target): e.kind for e in sample_layout.edges}

    assert kinds[("D00Z00001", "S00Z00001")] == "spouse"
    assert kinds[("D00Z00001", "D01Z00002")] == "child"
    assert kinds[("D02Z00001", "D03Z00002")] == "child"


def test_depth_is_bounded(make_member):
    records = [
        make_member("F", "Founder Root"),
        make_member("C1", "One Root", father="Founder Root", birth_order=1),
        make_member("C2", "Two Root", father="One Root", birth_order=1),
        make_member("C3", "Three Root", father="Two Root", birth_order=1),
        make_member("C4", "Four Root", father="Three Root", birth_order=1),
    ]
    config = TreeConfig(
        founder=NamedMember(id="F"), first_generation=None, parent_overrides=(), max_depth=3
    )
    resolution = resolve_family(records, config)
    layout = compute_layout(resolution.nodes, resolution.root_id, config)

    assert set(layout.glyphs) == {"F", "C1", "C2"}
    assert layout.warnings == ["Hierarchy truncated at depth 3: 1 member(s) not shown"]


def test_cycle_in_children_is_not_expanded(make_member):
    records = [
        make_member("F", "Founder Root"),
        make_member("A", "Aa Root", father="Founder Root", mother="Bb Root", birth_order=1),
        make_member("B", "Bb Root", gender="female", father="Aa Root", birth_order=1),
    ]
    resolution = resolve_family(records, CHAIN_CONFIG)
    layout = compute_layout(resolution.nodes, resolution.root_id, CHAIN_CONFIG)

    assert set(layout.glyphs) == {"F", "A", "B"}
    assert any(w.startswith("Cycle: A is an ancestor of B") for w in layout.warnings)


def test_fit_transform_centres_and_scales_down():
    t = fit_transform((0, 0, 1000, 500), 800, 600)

    assert t.scale == pytest.approx(0.64)
    assert t.translate_x == pytest.approx(80)
    assert t.translate_y == pytest.approx(140)


def test_fit_transform_never_scales_up():
    t = fit_transform((0, 0, 100, 100), 800, 600)

    assert t.scale == 1.0
    assert (t.translate_x, t.translate_y) == (350, 250)


def test_zoom_is_clamped_to_scale_extent(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)

    assert view.zoom(1000).scale == 4.0
    assert view.zoom(1e-6).scale == pytest.approx(0.1)


def test_zoom_keeps_anchor_fixed(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)
    anchor = (120, 450)
    content = view.transform.invert(*anchor)

    view.zoom(2, anchor)

    assert view.transform.apply(*content) == pytest.approx(anchor)


def test_pan_and_reset(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)
    fitted = view.transform

    panned = view.pan(15, -40)
    assert panned.translate_x == pytest.approx(fitted.translate_x + 15)
    assert panned.translate_y == pytest.approx(fitted.translate_y - 40)
    assert view.reset() == fitted


def test_click_passes_attributes_to_callbacks(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)
    seen = []
    view.on_node_click(seen.append)

    attributes = view.click("D01Z00002")

    assert seen == [attributes]
    assert attributes["lineage_tag"] == "first_generation"
    assert attributes["first_name"] == "Egundebi"
    with pytest.raises(LayoutError):
        view.click("nobody")


def test_node_at_hits_glyph_under_point(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)
    glyph = sample_layout.glyphs["S01Z00001"]

    assert view.node_at(*view.transform.apply(glyph.x, glyph.y)) == "S01Z00001"
    assert view.node_at(*view.transform.apply(glyph.x, glyph.y + 200)) is None


def test_zoom_from_tiny_fit_does_not_snap_to_minimum(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 100, 100)
    fitted = view.transform.scale
    assert fitted < 0.1

    assert view.zoom(0.5).scale == pytest.approx(fitted)
    assert view.zoom(2).scale == pytest.approx(2 * fitted)
    assert view.zoom(1000).scale == 4.0


def test_resize_refits_the_tree(family, sample_layout):
    view = TreeView(sample_layout, family.nodes, 800, 600)
    view.pan(50, 50)

    refitted = view.resize(1600, 1200)

    assert refitted == fit_transform(sample_layout.bounding_box(), 1600, 1200)
    assert view.transform == refitted


@pytest.fixture
def polygamous_family(make_member):
    husband = "Laketu Mosuro"
    return resolve_family(
        [
            make_member("D00Z00001", husband, marriage_order=2, marital_status="Married"),
            make_member("S1", "Wura Ade", gender="female", spouse=husband, marriage_order=1),
            make_member("S2", "Sade Ojo", gender="female", spouse=husband, marriage_order=2),
            make_member("D1", "Kola Mosuro", father=husband, mother="Sade Ojo", birth_order=1),
            make_member("D2", "Bimpe Mosuro", father=husband, mother="Wura Ade", birth_order=2),
            make_member("D3", "Yemi Mosuro", father=husband, mother="Wura Ade", birth_order=3),
            make_member("D4", "Jide Mosuro", father=husband, birth_order=4),
        ],
        TreeConfig(),
    )


def test_children_of_several_wives_hang_under_their_mother(polygamous_family):
    layout = compute_layout(polygamous_family.nodes, polygamous_family.root_id)
    child_edges = {(e.source, e.target) for e in layout.edges if e.kind == "child"}
    glyphs = layout.glyphs

    assert child_edges == {
        ("D00Z00001", "D4"),
        ("S1", "D2"),
        ("S1", "D3"),
        ("S2", "D1"),
    }
    # Partners in marriage order, children grouped by mother
    assert glyphs["D00Z00001"].x < glyphs["S1"].x < glyphs["S2"].x
    assert glyphs["D4"].x < glyphs["D2"].x < glyphs["D3"].x < glyphs["D1"].x


def test_single_wife_children_hang_under_the_member(sample_layout):
    kinds = {(e.source, e.target): e.kind for e in sample_layout.edges}

    assert kinds[("D01Z00002", "D02Z00003")] == "child"
    assert ("S01Z00001", "D02Z00003") not in kinds


def test_expansion_starts_from_the_root(family):
    state = ExpansionState(root_id=family.root_id)
    layout = compute_layout(family.nodes, family.root_id, state=state)

    assert set(layout.glyphs) == {"D00Z00001"}
    assert layout.edges == []


def test_clicks_expand_and_collapse_members(family):
    nodes = family.nodes
    state = ExpansionState(root_id=family.root_id)
    view = TreeView(compute_layout(nodes, family.root_id, state=state), nodes, 800, 600, state=state)

    view.click("D00Z00001")
    assert set(view.layout.glyphs) == {"D00Z00001", "S00Z00001", "D01Z00002"}

    view.click("D01Z00002")
    assert set(view.layout.glyphs) == {
        "D00Z00001",
        "S00Z00001",
        "D01Z00002",
        "S01Z00001",
        "D02Z00001",
        "D02Z00002",
        "D02Z00003",
        "D02Z00004",
        "D02Z00005",
    }
    with pytest.raises(LayoutError):
        view.click("D03Z00001")

    view.click("D00Z00001")
    assert set(view.layout.glyphs) == {"D00Z00001"}
    assert state.visible == {"D00Z00001"}
    assert not state.is_expanded("D01Z00002")
