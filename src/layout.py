"""Hierarchical tree layout, render primitives and viewport transforms."""

from collections.abc import Callable, Mapping, Set
from dataclasses import dataclass, field
import logging
import math

from config import TreeConfig
from lineage import birth_order_key
from models import ResolvedNode

logger = logging.getLogger(__name__)

NODE_SEPARATION = 500
LEVEL_SEPARATION = 350
SCALE_EXTENT = (0.1, 4.0)
FIT_PADDING = 0.8

CIRCLE_RADIUS = 100
RECT_WIDTH = 200
RECT_HEIGHT = 150

BADGE_COLORS = {
    "originator": "#fbbf24",
    "twin": "#60a5fa",
    "polygamous": "#f87171",
}


class LayoutError(RuntimeError):
    """The tree cannot be laid out."""


class NoOriginatorError(LayoutError):
    """No node is flagged as the originator, so there is no root."""


@dataclass
class HierarchyNode:
    id: str
    depth: int
    partners: list[str] = field(default_factory=list)
    children: list["HierarchyNode"] = field(default_factory=list)
    x: float = 0.0  # in slot units, left edge of the member's own slot
    via: str | None = None  # partner of the parent this child descends through

    @property
    def center(self) -> float:
        """Middle of the member plus partners unit."""
        return self.x + len(self.partners) / 2

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class NodeGlyph:
    id: str
    x: float
    y: float
    shape: str  # "circle" or "rect"
    fill: str
    stroke_width: int
    badges: tuple[str, ...]
    label: tuple[str, ...]
    lineage_tag: str
    is_partner: bool = False

    def bounds(self) -> tuple[float, float, float, float]:
        if self.shape == "circle":
            r = CIRCLE_RADIUS
            return (self.x - r, self.y - r, self.x + r, self.y + r)
        hw, hh = RECT_WIDTH / 2, RECT_HEIGHT / 2
        return (self.x - hw, self.y - hh, self.x + hw, self.y + hh)

    def contains(self, x: float, y: float) -> bool:
        if self.shape == "circle":
            return math.hypot(x - self.x, y - self.y) <= CIRCLE_RADIUS
        x0, y0, x1, y1 = self.bounds()
        return x0 <= x <= x1 and y0 <= y <= y1


@dataclass(frozen=True)
class EdgeGlyph:
    source: str
    target: str
    kind: str  # "child" or "spouse"


@dataclass
class TreeLayout:
    root_id: str
    glyphs: dict[str, NodeGlyph]
    edges: list[EdgeGlyph]
    warnings: list[str] = field(default_factory=list)

    def bounding_box(self) -> tuple[float, float, float, float]:
        """(x, y, width, height) covering every glyph."""
        boxes = [g.bounds() for g in self.glyphs.values()]
        x0 = min(b[0] for b in boxes)
        y0 = min(b[1] for b in boxes)
        x1 = max(b[2] for b in boxes)
        y1 = max(b[3] for b in boxes)
        return (x0, y0, x1 - x0, y1 - y0)


@dataclass(frozen=True)
class Transform:
    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.translate_x, y * self.scale + self.translate_y)

    def invert(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.translate_x) / self.scale, (y - self.translate_y) / self.scale)


def _spouse_key(nodes: Mapping[str, ResolvedNode], member_id: str) -> tuple:
    order = nodes[member_id].record.marriage_order
    return (order if order else math.inf, member_id)


def _other_parent(nodes: Mapping[str, ResolvedNode], child_id: str, parent_id: str) -> str | None:
    rel = nodes[child_id].relationships
    return rel.mother_id if rel.father_id == parent_id else rel.father_id


def build_hierarchy(
    nodes: Mapping[str, ResolvedNode],
    root_id: str,
    max_depth: int = 6,
    warnings: list[str] | None = None,
    visible: Set[str] | None = None,
) -> HierarchyNode:
    """
    Expand children from the root into a rooted hierarchy.

    Every node is placed at most once. Expansion stops after `max_depth`
    levels, so corrupt data cannot make it run forever. A child that is
    already an ancestor on the current path is a cycle: it is not expanded
    and a warning is recorded. Spouses of a placed member are attached as
    partners on the same level and are not expanded themselves.

    A member with several partners has each child routed through the
    partner who is its other parent (`HierarchyNode.via`); children are
    grouped by partner in marriage order, then by birth order. When
    `visible` is given, members outside it are left out.
    """
    if warnings is None:
        warnings = []
    placed: set[str] = set()
    truncated: list[str] = []

    def shown(member_id: str) -> bool:
        return member_id in nodes and (visible is None or member_id in visible)

    def expand(member_id: str, depth: int, path: frozenset[str], via: str | None) -> HierarchyNode:
        placed.add(member_id)
        rel = nodes[member_id].relationships

        partners = [
            s
            for s in sorted(rel.spouse_ids, key=lambda s: _spouse_key(nodes, s))
            if shown(s) and s not in placed
        ]
        placed.update(partners)
        h = HierarchyNode(id=member_id, depth=depth, partners=partners, via=via)

        routes: dict[str, str | None] = {}
        for c in rel.children_ids:
            if not shown(c):
                continue
            other = _other_parent(nodes, c, member_id)
            routes[c] = other if len(partners) > 1 and other in partners else None

        def child_key(record):
            route = routes[record.id]
            group = partners.index(route) + 1 if route is not None else 0
            return (group, *birth_order_key(record))

        children = sorted((nodes[c].record for c in routes), key=child_key)
        if depth + 1 >= max_depth:
            truncated.extend(c.id for c in children if c.id not in placed)
            return h

        child_path = path | {member_id}
        for child in children:
            if child.id in child_path:
                message = f"Cycle: {child.id} is an ancestor of {member_id}; not expanded"
                logger.warning(message)
                warnings.append(message)
                continue
            if child.id in placed:
                logger.debug("%s already placed; skipping second occurrence", child.id)
                continue
            h.children.append(expand(child.id, depth + 1, child_path, routes[child.id]))
        return h

    root = expand(root_id, 0, frozenset(), None)
    if truncated:
        warnings.append(
            f"Hierarchy truncated at depth {max_depth}: {len(set(truncated))} member(s) not shown"
        )
    return root


def _shift(h: HierarchyNode, dx: float) -> None:
    for n in h.walk():
        n.x += dx


def assign_slots(h: HierarchyNode, cursor: float = 0.0) -> float:
    """
    Give every hierarchy node a horizontal slot; returns the next free slot.

    Each subtree owns a contiguous slot range, parents sit centred over their
    first and last child, and a member's partners take the slots to its right.
    """
    start = cursor
    width = 1 + len(h.partners)

    if not h.children:
        h.x = start
        return start + width

    for child in h.children:
        cursor = assign_slots(child, cursor)

    h.x = (h.children[0].center + h.children[-1].center) / 2 - len(h.partners) / 2
    if h.x < start:
        dx = start - h.x
        for child in h.children:
            _shift(child, dx)
        cursor += dx
        h.x = start
    return max(cursor, h.x + width)


def make_glyph(
    node: ResolvedNode, x: float, y: float, config: TreeConfig, is_partner: bool = False
) -> NodeGlyph:
    """Render primitive for one node: shape by gender, fill by lineage tag, badges by flags."""
    d = node.derived
    badges = []
    if d.is_originator:
        badges.append("originator")
    if d.is_twin:
        badges.append("twin")
    if d.is_polygamous:
        badges.append("polygamous")

    label = [node.record.full_name or node.id, node.id]
    if node.record.birth_date:
        label.append(node.record.birth_date[:4])

    return NodeGlyph(
        id=node.id,
        x=x,
        y=y,
        shape="circle" if node.record.normalized_gender == "female" else "rect",
        fill=config.color_for(d.lineage_tag),
        stroke_width=3 if d.is_originator else 1,
        badges=tuple(badges),
        label=tuple(label),
        lineage_tag=d.lineage_tag,
        is_partner=is_partner,
    )


@dataclass
class ExpansionState:
    """
    Progressive disclosure: which members are shown.

    A view starts with the root alone. Expanding a member reveals its spouses
    and children; collapsing it hides them again, together with everything
    they had revealed. The root is never hidden.
    """

    root_id: str
    visible: set[str] = field(default_factory=set)
    expanded_spouses: set[str] = field(default_factory=set)
    expanded_children: set[str] = field(default_factory=set)

    def __post_init__(self):
        self.visible.add(self.root_id)

    def is_expanded(self, member_id: str) -> bool:
        return member_id in self.expanded_spouses or member_id in self.expanded_children

    def expand(self, member_id: str, nodes: Mapping[str, ResolvedNode]) -> None:
        rel = nodes[member_id].relationships
        self.visible.update(s for s in rel.spouse_ids if s in nodes)
        self.visible.update(c for c in rel.children_ids if c in nodes)
        self.expanded_spouses.add(member_id)
        self.expanded_children.add(member_id)

    def collapse(self, member_id: str, nodes: Mapping[str, ResolvedNode]) -> None:
        stack = [member_id]
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            if not self.is_expanded(current):
                continue
            self.expanded_spouses.discard(current)
            self.expanded_children.discard(current)

            rel = nodes[current].relationships
            for other in sorted(rel.spouse_ids | rel.children_ids):
                if other == self.root_id or other not in self.visible:
                    continue
                self.visible.discard(other)
                stack.append(other)

    def toggle(self, member_id: str, nodes: Mapping[str, ResolvedNode]) -> bool:
        """Expand or collapse a member; returns True when it is now expanded."""
        if self.is_expanded(member_id):
            self.collapse(member_id, nodes)
            return False
        self.expand(member_id, nodes)
        return True


def compute_layout(
    nodes: Mapping[str, ResolvedNode],
    root_id: str | None,
    config: TreeConfig | None = None,
    node_separation: float = NODE_SEPARATION,
    level_separation: float = LEVEL_SEPARATION,
    state: ExpansionState | None = None,
) -> TreeLayout:
    """
    Lay out the tree rooted at the originator.

    With an ExpansionState only its visible members are laid out. A child of
    a member with several partners is linked from its own parent among the
    partners rather than from the member.

    Raises:
        NoOriginatorError: if root_id is missing or not flagged as originator
    """
    config = config or TreeConfig()
    if root_id is None or root_id not in nodes or not nodes[root_id].derived.is_originator:
        raise NoOriginatorError("No originator found; cannot lay out the family tree")

    visible = None if state is None else state.visible | {root_id}
    warnings: list[str] = []
    root = build_hierarchy(nodes, root_id, config.max_depth, warnings, visible)
    assign_slots(root)

    glyphs: dict[str, NodeGlyph] = {}
    edges: list[EdgeGlyph] = []
    for h in root.walk():
        y = h.depth * level_separation
        glyphs[h.id] = make_glyph(nodes[h.id], h.x * node_separation, y, config)
        for i, partner_id in enumerate(h.partners, start=1):
            glyphs[partner_id] = make_glyph(
                nodes[partner_id], (h.x + i) * node_separation, y, config, is_partner=True
            )
            edges.append(EdgeGlyph(h.id, partner_id, "spouse"))
        for child in h.children:
            edges.append(EdgeGlyph(child.via or h.id, child.id, "child"))

    logger.info("Laid out %d of %d members from %s", len(glyphs), len(nodes), root_id)
    return TreeLayout(root_id=root_id, glyphs=glyphs, edges=edges, warnings=warnings)


def fit_transform(
    bbox: tuple[float, float, float, float],
    width: float,
    height: float,
    padding: float = FIT_PADDING,
) -> Transform:
    """
    Scale and translate so the bounding box is centred in the viewport.

    The scale never exceeds 1, so small trees are not blown up.
    """
    bx, by, bw, bh = bbox
    if bw <= 0 or bh <= 0:
        return Transform(1.0, width / 2 - bx, height / 2 - by)

    scale = min(width * padding / bw, height * padding / bh, 1.0)
    tx = width / 2 - (bx + bw / 2) * scale
    ty = height / 2 - (by + bh / 2) * scale
    return Transform(scale, tx, ty)


class TreeView:
    """
    Interactive state over a computed layout: pan, bounded zoom and clicks.

    Click callbacks receive the clicked node's `attributes` dict. With an
    ExpansionState a click also expands or collapses the clicked member and
    the layout is recomputed; the current pan and zoom are kept.
    """

    def __init__(
        self,
        layout: TreeLayout,
        nodes: Mapping[str, ResolvedNode],
        width: float,
        height: float,
        scale_extent: tuple[float, float] = SCALE_EXTENT,
        state: ExpansionState | None = None,
        config: TreeConfig | None = None,
    ):
        self.layout = layout
        self.nodes = nodes
        self.width = width
        self.height = height
        self.scale_extent = scale_extent
        self.state = state
        self.config = config
        self._click_handlers: list[Callable[[dict], None]] = []
        self.transform = self.fit()

    def fit(self) -> Transform:
        return fit_transform(self.layout.bounding_box(), self.width, self.height)

    def reset(self) -> Transform:
        self.transform = self.fit()
        return self.transform

    def resize(self, width: float, height: float) -> Transform:
        """New viewport size; the tree is fitted to it again."""
        self.width = width
        self.height = height
        return self.reset()

    def pan(self, dx: float, dy: float) -> Transform:
        t = self.transform
        self.transform = Transform(t.scale, t.translate_x + dx, t.translate_y + dy)
        return self.transform

    def zoom(self, factor: float, anchor: tuple[float, float] | None = None) -> Transform:
        """
        Zoom by `factor` around a screen point, clamped to the scale extent.

        A scale already outside the extent (a fit of a very large tree) is
        never pushed further out, and is not snapped back by a zoom in the
        other direction.
        """
        lo, hi = self.scale_extent
        t = self.transform
        new_scale = min(max(t.scale * factor, min(lo, t.scale)), max(hi, t.scale))
        ax, ay = anchor if anchor is not None else (self.width / 2, self.height / 2)
        # Keep the content under the anchor fixed
        cx, cy = t.invert(ax, ay)
        self.transform = Transform(new_scale, ax - cx * new_scale, ay - cy * new_scale)
        return self.transform

    def on_node_click(self, callback: Callable[[dict], None]) -> Callable[[dict], None]:
        self._click_handlers.append(callback)
        return callback

    def node_at(self, x: float, y: float) -> str | None:
        """Id of the glyph under a screen point, if any."""
        lx, ly = self.transform.invert(x, y)
        for glyph in self.layout.glyphs.values():
            if glyph.contains(lx, ly):
                return glyph.id
        return None

    def click(self, node_id: str) -> dict:
        if node_id not in self.layout.glyphs:
            raise LayoutError(f"Node {node_id} is not in the laid-out tree")
        if self.state is not None:
            self.state.toggle(node_id, self.nodes)
            self.layout = compute_layout(
                self.nodes, self.layout.root_id, self.config, state=self.state
            )
        attributes = self.nodes[node_id].attributes
        for handler in self._click_handlers:
            handler(attributes)
        return attributes
