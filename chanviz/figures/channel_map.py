"""Ion-channel topology cartoon with mutation markers.

The diagram is built in two steps:

  1. ``DiagramRenderer.render`` reads one snapshot of the diagram state and
     rebuilds a :class:`Scene` from scratch: a set of DataFrames holding
     every drawable item in figure pixel coordinates (y grows downward).
  2. ``make_chart`` turns a Scene into a layered Altair chart.  All layers
     share one x and one y scale so pixel coordinates line up.

Scene layers, back to front: membrane band, transmembrane segments, loop
curves, domain labels, mutation markers, marker labels (``labels``
toggle), legend and color wheel (``legend`` toggle).

Per-item failures never blank the figure: a loop with an unusable range is
drawn flat and a marker whose label cannot be placed is skipped, both with
a warning.  A segment table that cannot describe the variant raises
DataIntegrityError from ``render``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import altair as alt
import numpy as np
import pandas as pd

from ..errors import InvalidRangeError, PositionParseError
from ..markers import SHAPE_SYMBOLS, SHAPE_TABLE, project
from ..paths import curve_for, flat_curve_for
from ..scales import PiecewiseScale, ScaleSet, build_scales
from ..segments import SegmentRecord, SegmentTable
from ..state import DiagramState, StateSnapshot
from ..topology import Topology, segment_color_key, segment_x_stops
from .base import (
    CHAR_W,
    DIAGRAM_ID,
    EXTRA_WIDTH,
    LABEL_FONT,
    LEGEND_FONT,
    LOOP_STROKE,
    MEMBRANE_COLOR,
    SEGMENT_LEGEND,
    SWATCH_SIZE,
    Dimensions,
)

logger = logging.getLogger(__name__)

_ROMAN = {"Domain I": "I", "Domain II": "II", "Domain III": "III", "Domain IV": "IV"}
_SAMPLES_PER_PIECE = 24


@dataclass
class Scene:
    node_id: str
    variant: str
    title: str
    subtitle: list
    width: int
    height: int
    membrane: pd.DataFrame
    segments: pd.DataFrame
    loops: pd.DataFrame
    domain_labels: pd.DataFrame
    markers: pd.DataFrame
    labels: pd.DataFrame
    legend_swatches: pd.DataFrame
    legend_text: pd.DataFrame
    legend_symbols: pd.DataFrame
    wheel: pd.DataFrame
    skipped: list = field(default_factory=list)


# ── Text helpers ──────────────────────────────────────────────────────────────

def wrap_text(text: str, width: float, char_w: float = CHAR_W) -> list[str]:
    """Greedy word wrap to lines no wider than *width* pixels (estimated)."""
    lines: list[str] = []
    line: list[str] = []
    for word in text.split():
        candidate = " ".join(line + [word])
        if line and len(candidate) * char_w > width:
            lines.append(" ".join(line))
            line = [word]
        else:
            line.append(word)
    if line:
        lines.append(" ".join(line))
    return lines


def _ordered_unique(values) -> list:
    seen: dict = {}
    for v in values:
        seen.setdefault(v, None)
    return list(seen)


# ── Layer builders ────────────────────────────────────────────────────────────

def loop_rows(
    loops: list[SegmentRecord],
    topology: Topology,
    band: Callable[[str], float],
    origin: tuple[float, float],
) -> pd.DataFrame:
    """Sampled loop curves as rows ``(loop_id, order, x, y, ...)``.

    A loop whose range runs backwards is drawn as a straight line.
    """
    ox, oy = origin
    rows: list[dict] = []
    for record in loops:
        try:
            curve = curve_for(record.slot, (record.range_start, record.range_end), topology)
        except InvalidRangeError as err:
            logger.warning("Drawing %s loop %s flat: %s", record.domain, record.slot, err)
            curve = flat_curve_for(record.slot, topology)
        curve = curve.shifted(band(record.domain) + ox, oy)
        for p, points in enumerate(curve.sample(_SAMPLES_PER_PIECE)):
            loop_id = f"{record.domain}-{record.slot}-{p}"
            for k, (x, y) in enumerate(points):
                rows.append({
                    "loop_id": loop_id,
                    "order": k,
                    "x": float(x),
                    "y": float(y),
                    "region": record.region,
                    "residues": f"{record.range_start}-{record.range_end}",
                })
    return pd.DataFrame(rows, columns=["loop_id", "order", "x", "y", "region", "residues"])


def segment_rows(
    table: SegmentTable,
    snap: StateSnapshot,
    band: Callable[[str], float],
    origin: tuple[float, float],
    bounded_width: float,
) -> pd.DataFrame:
    topology = snap.variant.topology
    ox, oy = origin
    stops = PiecewiseScale(topology.segment_x_domain, segment_x_stops(topology, bounded_width))
    rows = []
    by_domain: dict[str, list[SegmentRecord]] = {}
    for record in table.segments(snap.variant):
        by_domain.setdefault(record.domain, []).append(record)
    for domain, records in by_domain.items():
        for i, record in enumerate(records):
            x = band(domain) + stops(i) + ox
            key = segment_color_key(i)
            rows.append({
                "domain": domain,
                "segment": record.kind,
                "residues": f"{record.range_start}-{record.range_end}",
                "x": x,
                "x2": x + topology.segment_width,
                "y": topology.segment_y + oy,
                "y2": topology.segment_y + topology.segment_height + oy,
                "key": key,
                "fill": snap.colors[key],
            })
    return pd.DataFrame(rows)


def _apply_drag(rows: list[dict], snap: StateSnapshot) -> pd.DataFrame:
    """Move dragged elements to their dropped position and raise them last."""
    for row in rows:
        element_id = row["element_id"]
        if element_id in snap.positions:
            x, y = snap.positions[element_id]
            dx, dy = x - row["x"], y - row["y"]
            for col in ("x", "x2", "text_x"):
                if col in row:
                    row[col] += dx
            for col in ("y", "y2", "text_y"):
                if col in row:
                    row[col] += dy
        row["stroke_width"] = snap.stroke_widths.get(element_id, 1)
    order = {element_id: i for i, element_id in enumerate(snap.z_order)}
    rows.sort(key=lambda r: order.get(r["element_id"], -1))
    return pd.DataFrame(rows)


def marker_rows(scales: ScaleSet, snap: StateSnapshot, origin: tuple[float, float]) -> tuple[pd.DataFrame, list]:
    """Project every visible mutation; failures are skipped and reported."""
    ox, oy = origin
    rows, skipped = [], []
    for mutation in snap.visible_mutations:
        try:
            marker = project(mutation, scales, snap.colors, snap.mutation_size, SHAPE_TABLE)
        except (PositionParseError, KeyError) as err:
            logger.warning("Skipping marker %r: %s", mutation.sequence_label, err)
            skipped.append(mutation.sequence_label)
            continue
        rows.append({
            "position": marker.position,
            "x": marker.x + ox,
            "y": marker.y + oy,
            "shape_id": marker.shape_id,
            "shape": marker.shape,
            "size": marker.size,
            "fill": marker.fill,
            "label": marker.label,
            "type": marker.mutation_type.label,
            "phenotype": marker.phenotype,
        })
    columns = ["position", "x", "y", "shape_id", "shape", "size", "fill", "label", "type", "phenotype"]
    return pd.DataFrame(rows, columns=columns), skipped


def label_rows(markers: pd.DataFrame, snap: StateSnapshot) -> pd.DataFrame:
    if "labels" not in snap.toggles or markers.empty:
        return pd.DataFrame()
    rows = []
    for _, m in markers.iterrows():
        x, y = m["x"] + 8, m["y"] - 8
        rows.append({
            "element_id": f"label-{m['position']}",
            "x": x,
            "x2": x + (len(m["label"]) + 1) * 8,
            "y": y,
            "y2": y + 17,
            "text_x": x + 7,
            "text_y": y + 12,
            "text": m["label"],
        })
    return _apply_drag(rows, snap)


def domain_label_rows(snap: StateSnapshot, band, origin) -> pd.DataFrame:
    ox, oy = origin
    rows = [
        {
            "element_id": f"domain-label-{domain}",
            "x": band(domain) + 50 + ox,
            "y": 200 + oy,
            "text": _ROMAN[domain],
        }
        for domain in snap.variant.topology.domains
    ]
    return _apply_drag(rows, snap)


def legend_rows(snap: StateSnapshot):
    """Legend swatches, text, type symbols and the color wheel, in figure pixels."""
    if "legend" not in snap.toggles:
        empty = pd.DataFrame()
        return empty, empty, empty, empty

    lx, ly = snap.legend_x, snap.legend_y
    swatches, text, symbols = [], [], []

    for i, (key, name) in enumerate(SEGMENT_LEGEND):
        swatches.append({"index": i, "key": key, "kind": "segment",
                         "x": lx + 20, "y": ly + 30 + i * 40, "fill": snap.colors[key]})
        for k, line in enumerate(wrap_text(name, 110)):
            text.append({"x": lx + 35, "y": ly + 30 + i * 40 + k * LEGEND_FONT * 1.1,
                         "text": line, "action": "", "value": "", "weight": "normal"})

    text.append({"x": lx + 165, "y": ly + 10, "text": "Types",
                 "action": "", "value": "", "weight": "bold"})
    types = _ordered_unique(m.mutation_type for m in snap.mutations)
    for i, mutation_type in enumerate(types):
        shape_id = SHAPE_TABLE[mutation_type]
        symbols.append({"x": lx + 170, "y": ly + 30 + i * 22, "shape": SHAPE_SYMBOLS[shape_id],
                        "shape_id": shape_id, "size": snap.mutation_size})
        text.append({"x": lx + 185, "y": ly + 35 + i * 22, "text": mutation_type.label,
                     "action": "filter-type", "value": mutation_type.value, "weight": "normal"})

    text.append({"x": lx + 270, "y": ly + 10, "text": "Phenotypes",
                 "action": "", "value": "", "weight": "bold"})
    phenotypes = _ordered_unique(m.phenotype for m in snap.mutations)
    for i, phenotype in enumerate(phenotypes):
        key = f"{phenotype}Colour"
        swatches.append({"index": i + 3, "key": key, "kind": "phenotype",
                         "x": lx + 280, "y": ly + 30 + i * 20, "fill": snap.colors.get(key, "#CCCCCC")})
        text.append({"x": lx + 295, "y": ly + 32 + i * 20, "text": phenotype,
                     "action": "filter-phenotype", "value": phenotype, "weight": "normal"})

    text.append({"x": lx + 220, "y": ly - 10, "text": "Show All",
                 "action": "show-all", "value": "", "weight": "normal"})

    wheel = []
    if snap.wheel_open and snap.wheel_anchor is not None:
        ax, ay = snap.wheel_anchor
        for s in snap.wheel_slices:
            wheel.append({"index": s.index, "color": s.color, "x": lx + ax, "y": ly + ay,
                          "start_angle": s.start_angle, "end_angle": s.end_angle,
                          "inner_radius": s.inner_radius, "outer_radius": s.outer_radius})

    return pd.DataFrame(swatches), pd.DataFrame(text), pd.DataFrame(symbols), pd.DataFrame(wheel)


# ── Renderer ──────────────────────────────────────────────────────────────────

class DiagramRenderer:
    """Owns the diagram state and rebuilds the scene on every change."""

    def __init__(self, table: SegmentTable, dimensions: Dimensions | None = None,
                 state: DiagramState | None = None):
        self.table = table
        self.dimensions = dimensions or Dimensions.wide()
        self.state = state or DiagramState()
        self.state.legend.legend_x_max = self.dimensions.legend_x_max
        self._scales: ScaleSet | None = None
        self._listeners: list[Callable[[Scene], None]] = []
        self.scene: Scene | None = None

    def dispatch(self, event) -> Scene:
        """Apply one event and re-render."""
        self.state.dispatch(event)
        return self.render()

    def on_render_complete(self, callback: Callable[[Scene], None]) -> None:
        self._listeners.append(callback)

    def scales(self, variant) -> ScaleSet:
        if self._scales is None or self._scales.variant != variant:
            self._scales = build_scales(self.table, variant, self.dimensions.bounded_width)
        return self._scales

    def origin(self, topology: Topology) -> tuple[float, float]:
        margin = self.dimensions.margin
        return margin["left"] + topology.origin_dx, margin["top"] + topology.origin_dy

    def render(self) -> Scene:
        snap = self.state.snapshot()
        scales = self.scales(snap.variant)
        topology = snap.variant.topology
        origin = self.origin(topology)
        band = scales.domain_band

        loops = loop_rows(scales.loops, topology, band, origin)
        markers, skipped = marker_rows(scales, snap, origin)
        swatches, legend_text, symbols, wheel = legend_rows(snap)

        x_lo = loops["x"].min() if not loops.empty else origin[0]
        x_hi = loops["x"].max() if not loops.empty else origin[0]
        membrane = pd.DataFrame([{
            "x": x_lo - 10,
            "x2": x_hi + 10,
            "y": topology.membrane_top + origin[1],
            "y2": topology.membrane_bottom + origin[1],
        }])

        variant = snap.variant
        scene = Scene(
            node_id=DIAGRAM_ID,
            variant=variant.value,
            title=variant.value.upper(),
            subtitle=[variant.title, variant.alias],
            width=self.dimensions.width + EXTRA_WIDTH,
            height=self.dimensions.height,
            membrane=membrane,
            segments=segment_rows(self.table, snap, band, origin, self.dimensions.bounded_width),
            loops=loops,
            domain_labels=domain_label_rows(snap, band, origin),
            markers=markers,
            labels=label_rows(markers, snap),
            legend_swatches=swatches,
            legend_text=legend_text,
            legend_symbols=symbols,
            wheel=wheel,
            skipped=skipped,
        )
        self.scene = scene
        for callback in self._listeners:
            callback(scene)
        return scene

    def chart(self) -> alt.LayerChart:
        return make_chart(self.scene if self.scene is not None else self.render())


# ── Altair ────────────────────────────────────────────────────────────────────

def make_chart(scene: Scene) -> alt.LayerChart:
    """Layered Altair chart for *scene* (pixel coordinates, y downward)."""
    x_scale = alt.Scale(domain=[0, scene.width], nice=False, zero=False)
    y_scale = alt.Scale(domain=[0, scene.height], nice=False, zero=False, reverse=True)

    def X(field):
        return alt.X(field, scale=x_scale, axis=None)

    def Y(field):
        return alt.Y(field, scale=y_scale, axis=None)

    layers: list[alt.Chart] = []

    layers.append(
        alt.Chart(scene.membrane)
        .mark_rect(fill=MEMBRANE_COLOR, opacity=0.8)
        .encode(x=X("x:Q"), x2="x2:Q", y=Y("y:Q"), y2="y2:Q")
    )

    if not scene.segments.empty:
        layers.append(
            alt.Chart(scene.segments)
            .mark_rect(stroke="black", strokeWidth=1, cornerRadius=2)
            .encode(
                x=X("x:Q"), x2="x2:Q", y=Y("y:Q"), y2="y2:Q",
                color=alt.Color("fill:N", scale=None, legend=None),
                tooltip=[
                    alt.Tooltip("domain:N", title="Domain"),
                    alt.Tooltip("segment:N", title="Segment"),
                    alt.Tooltip("residues:N", title="Residues"),
                ],
            )
        )

    if not scene.loops.empty:
        layers.append(
            alt.Chart(scene.loops)
            .mark_line(color="black", strokeWidth=LOOP_STROKE, interpolate="linear")
            .encode(
                x=X("x:Q"), y=Y("y:Q"),
                detail="loop_id:N",
                order="order:Q",
                tooltip=[alt.Tooltip("region:N", title="Region"),
                         alt.Tooltip("residues:N", title="Residues")],
            )
        )

    layers.append(
        alt.Chart(scene.domain_labels)
        .mark_text(fontSize=16, fontWeight="bold", align="left")
        .encode(x=X("x:Q"), y=Y("y:Q"), text="text:N")
    )

    if not scene.markers.empty:
        layers.append(
            alt.Chart(scene.markers)
            .mark_point(filled=True, stroke="black", strokeWidth=1, opacity=1)
            .encode(
                x=X("x:Q"), y=Y("y:Q"),
                shape=alt.Shape("shape:N", scale=None, legend=None),
                size=alt.Size("size:Q", scale=None, legend=None),
                fill=alt.Fill("fill:N", scale=None, legend=None),
                tooltip=[
                    alt.Tooltip("label:N", title="Mutation"),
                    alt.Tooltip("type:N", title="Type"),
                    alt.Tooltip("phenotype:N", title="Phenotype"),
                ],
            )
        )

    if not scene.labels.empty:
        layers.append(
            alt.Chart(scene.labels)
            .mark_rect(fill="white", opacity=0.75, stroke="black", cornerRadius=4)
            .encode(x=X("x:Q"), x2="x2:Q", y=Y("y:Q"), y2="y2:Q",
                    strokeWidth=alt.StrokeWidth("stroke_width:Q", scale=None, legend=None))
        )
        layers.append(
            alt.Chart(scene.labels)
            .mark_text(fontSize=LABEL_FONT, align="left", baseline="alphabetic")
            .encode(x=X("text_x:Q"), y=Y("text_y:Q"), text="text:N")
        )

    if not scene.legend_swatches.empty:
        layers.append(
            alt.Chart(scene.legend_swatches)
            .mark_point(shape="circle", filled=True, size=SWATCH_SIZE, opacity=1)
            .encode(
                x=X("x:Q"), y=Y("y:Q"),
                fill=alt.Fill("fill:N", scale=None, legend=None),
                tooltip=[alt.Tooltip("key:N", title="Colour key")],
            )
        )
        for weight, font_size in (("normal", LEGEND_FONT), ("bold", LABEL_FONT)):
            rows = scene.legend_text.loc[scene.legend_text["weight"] == weight]
            layers.append(
                alt.Chart(rows)
                .mark_text(fontSize=font_size, fontWeight=weight, align="left", baseline="middle")
                .encode(x=X("x:Q"), y=Y("y:Q"), text="text:N")
            )
    if not scene.legend_symbols.empty:
        layers.append(
            alt.Chart(scene.legend_symbols)
            .mark_point(filled=True, color="black", opacity=1)
            .encode(
                x=X("x:Q"), y=Y("y:Q"),
                shape=alt.Shape("shape:N", scale=None, legend=None),
                size=alt.Size("size:Q", scale=None, legend=None),
            )
        )
    if not scene.wheel.empty:
        wheel = scene.wheel.iloc[0]
        layers.append(
            alt.Chart(scene.wheel)
            .mark_arc(innerRadius=float(wheel["inner_radius"]), outerRadius=float(wheel["outer_radius"]))
            .encode(
                x=X("x:Q"), y=Y("y:Q"),
                theta=alt.Theta("start_angle:Q", scale=None),
                theta2="end_angle:Q",
                color=alt.Color("color:N", scale=None, legend=None),
                tooltip=[alt.Tooltip("color:N", title="Colour")],
            )
        )

    return (
        alt.layer(*layers)
        .properties(
            width=scene.width,
            height=scene.height,
            title=alt.TitleParams(text=scene.title, subtitle=scene.subtitle, fontSize=22, anchor="start"),
            usermeta={"diagram_id": scene.node_id},
        )
        .configure_axis(grid=False)
        .configure_view(stroke=None)
    )


def make_plot(table: SegmentTable, state: DiagramState, dimensions: Dimensions | None = None) -> alt.LayerChart:
    """Render *state* against *table* in one call."""
    return DiagramRenderer(table, dimensions, state).chart()


def sample_positions(scales: ScaleSet, step: int = 1) -> pd.DataFrame:
    """Every residue (or every *step*-th) projected through *scales*."""
    positions = np.arange(scales.first_residue, scales.last_residue + 1, step)
    return pd.DataFrame({
        "position": positions,
        "x": scales.position_to_x.many(positions),
        "y": scales.position_to_y.many(positions),
    })
