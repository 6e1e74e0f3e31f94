"""Residue position → screen coordinate scales.

``build_scales`` turns the loop ranges of one variant into a
:class:`ScaleSet`:

  - ``position_to_x`` is piecewise linear over five breaks per loop
    (start, quarter, midpoint, three-quarter, end).  Anchor values come
    from the topology's x tables plus the domain band offset.
  - ``position_to_y`` is piecewise logarithmic over the same breaks, with
    hand-authored anchor values that give each loop its bulge.
  - ``domain_band`` positions each domain along the figure (sodium only).

Both position scales clamp: residues before the first loop or after the
last saturate at the boundary value.  Residues that fall on a
transmembrane segment (between two loops) are interpolated between the
neighbouring loop anchors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .errors import DataIntegrityError
from .segments import SegmentRecord, SegmentTable, check_topology
from .topology import LengthAnchor, Variant

logger = logging.getLogger(__name__)

DOMAIN_PADDING = 0.2


def loop_breaks(start: float, end: float) -> list[float]:
    """Five residue breaks for a loop: start, quarter, midpoint, three-quarter, end."""
    quarter = (end - start) / 4
    return [start, start + quarter, (start + end) / 2, end - quarter, end]


class PiecewiseScale:
    """Clamped piecewise interpolation through ``(break, value)`` anchors.

    Breaks must be non-decreasing.  Repeated breaks are allowed; a position
    that lands on a repeated break takes the value of the later segment,
    and a zero-width segment yields its left value.  With ``log=True`` the
    interpolation parameter is computed on log(position), so breaks must
    be positive.
    """

    def __init__(self, breaks, values, log: bool = False):
        self.breaks = np.asarray(breaks, dtype=float)
        self.values = np.asarray(values, dtype=float)
        self.log = log
        if len(self.breaks) != len(self.values) or len(self.breaks) < 2:
            raise DataIntegrityError("A piecewise scale needs matching breaks and values (at least two)")
        if np.any(np.diff(self.breaks) < 0):
            raise DataIntegrityError("Piecewise scale breaks must be non-decreasing")
        if log and self.breaks[0] <= 0:
            raise DataIntegrityError("Logarithmic scale breaks must be positive")

    @property
    def anchors(self) -> list[tuple[float, float]]:
        return list(zip(self.breaks.tolist(), self.values.tolist()))

    def many(self, positions) -> np.ndarray:
        x = np.clip(np.asarray(positions, dtype=float), self.breaks[0], self.breaks[-1])
        i = np.searchsorted(self.breaks, x, side="right") - 1
        i = np.clip(i, 0, len(self.breaks) - 2)
        lo, hi = self.breaks[i], self.breaks[i + 1]
        if self.log:
            x, lo, hi = np.log(x), np.log(lo), np.log(hi)
        span = hi - lo
        with np.errstate(invalid="ignore", divide="ignore"):
            t = np.where(span > 0, (x - lo) / np.where(span > 0, span, 1), 0.0)
        return self.values[i] + t * (self.values[i + 1] - self.values[i])

    def __call__(self, position) -> float:
        return float(self.many([position])[0])


class BandScale:
    """Categorical band scale with equal inner and outer padding, centred."""

    def __init__(self, labels, start: float, stop: float, padding: float = DOMAIN_PADDING):
        self.labels = list(labels)
        n = len(self.labels)
        self.step = (stop - start) / max(1, n - padding + padding * 2)
        self.bandwidth = self.step * (1 - padding)
        offset = start + (stop - start - self.step * (n - padding)) * 0.5
        self._offsets = {label: offset + i * self.step for i, label in enumerate(self.labels)}

    def __call__(self, label: str) -> float:
        return self._offsets[label]


@dataclass
class ScaleSet:
    variant: Variant
    position_to_x: PiecewiseScale
    position_to_y: PiecewiseScale
    domain_band: object   # callable: domain label -> x offset
    loops: list[SegmentRecord]

    @property
    def first_residue(self) -> int:
        return self.loops[0].range_start

    @property
    def last_residue(self) -> int:
        return self.loops[-1].range_end

    def project(self, position) -> tuple[float, float]:
        return self.position_to_x(position), self.position_to_y(position)


def _constant_band(_label: str) -> float:
    return 0.0


def build_scales(table: SegmentTable, variant: Variant, bounded_width: float) -> ScaleSet:
    """Build the ScaleSet for *variant* from scratch.

    Pure function of its inputs; raises DataIntegrityError if the table
    does not describe a complete topology for the variant.
    """
    topology = variant.topology
    records = table.records(variant)
    check_topology(topology, records)
    loops = [r for r in records if r.is_loop]

    if len(topology.domains) > 1:
        domain_band = BandScale(topology.domains, 30, bounded_width - 60)
    else:
        domain_band = _constant_band

    breaks: list[float] = []
    xs: list[float] = []
    ys: list[float] = []
    for record, y_row in zip(loops, topology.y_anchors):
        loop = loop_breaks(record.range_start, record.range_end)
        offset = domain_band(record.domain)
        breaks.extend(loop)
        xs.extend(offset + v for v in topology.x_anchors[record.slot])
        ys.extend(a.resolve(loop) if isinstance(a, LengthAnchor) else float(a) for a in y_row)

    logger.debug("Built scales for %s over %d loops", variant.value, len(loops))
    return ScaleSet(
        variant=variant,
        position_to_x=PiecewiseScale(breaks, xs),
        position_to_y=PiecewiseScale(breaks, ys, log=True),
        domain_band=domain_band,
        loops=loops,
    )
