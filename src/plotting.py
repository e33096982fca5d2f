"""Visualization of laid-out family trees."""

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from pathlib import Path

import networkx as nx
import pydot

from config import TreeConfig
from graph import build_graph
from layout import (
    BADGE_COLORS,
    CIRCLE_RADIUS,
    RECT_HEIGHT,
    RECT_WIDTH,
    NoOriginatorError,
    TreeLayout,
    compute_layout,
)
from models import ResolvedNode
from pipeline import FamilyResolution

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72

STATUS_RENDERED = "rendered"
STATUS_FALLBACK = "fallback"
STATUS_NO_ORIGINATOR = "no_originator"


class RenderError(RuntimeError):
    """Both the Graphviz render and the fallback render failed."""


@dataclass(frozen=True)
class RenderOutcome:
    status: str
    node_count: int
    output_path: Path | None = None
    message: str = ""


def to_dot(layout: TreeLayout) -> pydot.Dot:
    """
    Convert a computed layout into a pydot graph with pinned positions.

    Positions are in points with y pointing down in the layout and up in
    Graphviz, so y is negated. Render with `neato -n` to keep them.
    """
    P = pydot.Dot(graph_type="graph")
    P.set("splines", "line")
    P.set("outputorder", "edgesfirst")

    for glyph in layout.glyphs.values():
        if glyph.shape == "circle":
            shape = dict(
                shape="circle",
                width=f"{2 * CIRCLE_RADIUS / POINTS_PER_INCH:.3f}",
                style="filled",
            )
        else:
            shape = dict(
                shape="box",
                width=f"{RECT_WIDTH / POINTS_PER_INCH:.3f}",
                height=f"{RECT_HEIGHT / POINTS_PER_INCH:.3f}",
                style="rounded,filled",
            )
        attrs = dict(
            label="\n".join(glyph.label),
            fillcolor=glyph.fill,
            penwidth=str(glyph.stroke_width),
            fixedsize="true",
            fontsize="14",
            pos=f"{glyph.x:.1f},{-glyph.y:.1f}!",
            **shape,
        )
        if glyph.badges:
            # HTML-like label so each badge keeps its own colour
            badges = " ".join(
                f'<font color="{BADGE_COLORS[b]}">{b}</font>' for b in glyph.badges
            )
            attrs["xlabel"] = f"<{badges}>"
        P.add_node(pydot.Node(str(glyph.id), **attrs))

    for edge in layout.edges:
        # Spouse links dashed, parent -> child links solid
        style = "dashed" if edge.kind == "spouse" else "solid"
        P.add_edge(pydot.Edge(str(edge.source), str(edge.target), style=style, color="darkgray"))

    return P


def plot_fallback(
    nodes: Mapping[str, ResolvedNode], output_path: Path, config: TreeConfig | None = None
):
    """Non-hierarchical matplotlib render of every node, used when Graphviz fails."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    config = config or TreeConfig()
    G = build_graph(nodes)

    # For large graphs, use a simple layout; for smaller ones, try kamada_kawai
    if G.number_of_nodes() > 500:
        pos = nx.random_layout(G, seed=42)
    else:
        try:
            pos = nx.kamada_kawai_layout(G)
        except Exception:
            pos = nx.random_layout(G, seed=42)

    fig = plt.figure(figsize=(20, 16))
    try:
        for node_shape, wanted in (("o", True), ("s", False)):
            group = [n for n in G.nodes() if (G.nodes[n].get("sex") == "female") == wanted]
            nx.draw_networkx_nodes(
                G,
                pos,
                nodelist=group,
                node_shape=node_shape,
                node_color=[config.color_for(G.nodes[n].get("lineage_tag")) for n in group],
                node_size=80,
            )
        nx.draw_networkx_edges(G, pos, edge_color="gray", alpha=0.7, width=0.3, arrows=False)
        plt.title(
            f"Family Tree Graph ({G.number_of_nodes()} people, {G.number_of_edges()} relationships)"
        )
        plt.axis("off")
        plt.tight_layout()
        plt.savefig(output_path, dpi=150, bbox_inches="tight")
    finally:
        plt.close(fig)


def render_tree(
    resolution: FamilyResolution, output_path: Path, config: TreeConfig | None = None
) -> RenderOutcome:
    """
    Lay out and render the tree rooted at the originator.

    Output format follows the file extension (png, svg, pdf; dot writes the
    Graphviz source without running Graphviz). If Graphviz is not available
    the matplotlib fallback is tried before giving up.

    Returns:
        RenderOutcome with status "rendered", "fallback" or "no_originator"

    Raises:
        RenderError: if both renderers fail
    """
    output_path = Path(output_path)
    try:
        layout = compute_layout(resolution.nodes, resolution.root_id, config)
    except NoOriginatorError as e:
        logger.error("Cannot render tree: %s", e)
        return RenderOutcome(STATUS_NO_ORIGINATOR, 0, None, str(e))

    for w in layout.warnings:
        logger.warning(w)

    P = to_dot(layout)
    ext = output_path.suffix.lower().lstrip(".")
    if ext not in ("png", "svg", "pdf", "dot"):
        ext = "png"

    try:
        if ext == "dot":
            P.write(str(output_path), format="raw")
        else:
            P.write(str(output_path), prog=["neato", "-n"], format=ext)
        logger.info("Tree with %d nodes saved to %s", len(layout.glyphs), output_path)
        return RenderOutcome(STATUS_RENDERED, len(layout.glyphs), output_path)
    except Exception as e:
        graphviz_error = e
        logger.warning("Graphviz render failed (%s); falling back to matplotlib", e)

    try:
        plot_fallback(resolution.nodes, output_path, config)
    except Exception as e:
        raise RenderError(
            f"Could not render tree: Graphviz failed ({graphviz_error}), fallback failed ({e})"
        ) from e
    return RenderOutcome(STATUS_FALLBACK, len(resolution.nodes), output_path, str(graphviz_error))
