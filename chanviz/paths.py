"""Loop curve synthesis.

Every loop is drawn as a Bézier curve in domain-local coordinates (the
renderer shifts it by the domain band offset).  The curve's control point
is pushed away from the membrane by ``baseline + length`` where
``length = range_end - range_start``, so longer loops bow further and a
zero-length loop still gets a well-formed (shallow) curve.

Special cases kept as they are tuned by eye:

  - sodium C-terminal tail: a fixed two-piece cubic that ignores length.
  - trailing extracellular loop: a cubic leaning towards S6.
  - potassium C-terminal tail: a long quadratic whose apex grows with
    length but starts from a small fixed lift.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import InvalidRangeError
from .topology import (
    SLOT_C_TERMINAL,
    SLOT_LEADING_CYTOPLASMIC,
    SLOT_PORE,
    SLOT_TRAILING_EXTRACELLULAR,
    SLOTS_CYTOPLASMIC,
    SLOTS_EXTRACELLULAR,
    Topology,
)

Point = tuple[float, float]

# Baselines added to the loop length to get the control-point offset.
SODIUM_CYTOPLASMIC_BASELINE = 142
SODIUM_EXTRACELLULAR_BASELINE = 0
SODIUM_PORE_BASELINE = 50
SODIUM_TRAILING_BASELINE = 2
POTASSIUM_LEADING_BASELINE = 253
POTASSIUM_CYTOPLASMIC_BASELINE = 200
POTASSIUM_EXTRACELLULAR_BASELINE = 50
POTASSIUM_PORE_BASELINE = 120
POTASSIUM_TRAILING_BASELINE = 20
POTASSIUM_TAIL_LIFT = 8 * 1.2

SODIUM_C_TERMINAL_TAIL = (
    ((137, 117.5), (157, 118), (140, 280), (200, 122)),
    ((200, 122.7), (200, 122.7), (205, 110), (225, 150)),
)


@dataclass(frozen=True)
class Curve:
    """Ordered curve pieces; each piece is 2 (line), 3 (quadratic) or 4 (cubic) control points."""

    pieces: tuple[tuple[Point, ...], ...]

    @property
    def start(self) -> Point:
        return self.pieces[0][0]

    @property
    def end(self) -> Point:
        return self.pieces[-1][-1]

    def shifted(self, dx: float, dy: float = 0.0) -> "Curve":
        return Curve(tuple(
            tuple((x + dx, y + dy) for x, y in piece) for piece in self.pieces
        ))

    def to_svg(self) -> str:
        commands = {2: "L", 3: "Q", 4: "C"}
        parts = []
        for piece in self.pieces:
            (x0, y0), rest = piece[0], piece[1:]
            coords = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in rest)
            parts.append(f"M{_fmt(x0)},{_fmt(y0)} {commands[len(piece)]}{coords}")
        return " ".join(parts)

    def sample(self, n: int = 24) -> list[np.ndarray]:
        """Evaluate each piece at *n* evenly spaced parameters, as (n, 2) arrays."""
        t = np.linspace(0.0, 1.0, n)
        return [bezier(piece, t) for piece in self.pieces]


def _fmt(v: float) -> str:
    return f"{v:g}"


def bezier(control: tuple[Point, ...], t) -> np.ndarray:
    """Evaluate a Bézier curve of any degree (de Casteljau) at parameters *t*."""
    t = np.asarray(t, dtype=float)[:, None]
    points = [np.asarray(p, dtype=float)[None, :] for p in control]
    while len(points) > 1:
        points = [(1 - t) * a + t * b for a, b in zip(points, points[1:])]
    return np.broadcast_to(points[0], (len(t), 2)).copy()


def _sodium_curve(slot: int, length: float) -> Curve:
    if slot == SLOT_LEADING_CYTOPLASMIC:
        bow = SODIUM_CYTOPLASMIC_BASELINE + length
        return Curve((((-54, 116.5), (-25, bow), (9, 116.5)),))
    if slot in SLOTS_EXTRACELLULAR:
        bow = SODIUM_EXTRACELLULAR_BASELINE + length
        return Curve(((((slot - 1) * 21 + 8, 22), (slot * 21 - 5, -bow), (slot * 21 + 8, 22)),))
    if slot in SLOTS_CYTOPLASMIC:
        bow = SODIUM_CYTOPLASMIC_BASELINE + length
        return Curve(((((slot - 1) * 21 + 8, 116.5), (slot * 21 - 2, bow), (slot * 21 + 9, 116.5)),))
    if slot == SLOT_PORE:
        bow = SODIUM_PORE_BASELINE + length
        return Curve((((112.85, 22), (119, bow), (125, 10)),))
    if slot == SLOT_TRAILING_EXTRACELLULAR:
        bow = SODIUM_TRAILING_BASELINE + length
        return Curve((((124.8, 11), (125, 0), (137, -bow), (140, 22)),))
    return Curve(SODIUM_C_TERMINAL_TAIL)


def _potassium_curve(slot: int, length: float) -> Curve:
    if slot == SLOT_LEADING_CYTOPLASMIC:
        bow = POTASSIUM_LEADING_BASELINE + length
        return Curve((((-57, 145), (-30, bow), (12, 146)),))
    if slot in SLOTS_EXTRACELLULAR:
        bow = POTASSIUM_EXTRACELLULAR_BASELINE + length
        return Curve(((((slot - 1) * 50 + 15, 22), (slot * 50 - 10, -bow), (slot * 50 + 10, 22)),))
    if slot in SLOTS_CYTOPLASMIC:
        bow = POTASSIUM_CYTOPLASMIC_BASELINE + length
        return Curve(((((slot - 1) * 50 + 10, 147), (slot * 50 - 10, bow), (slot * 50 + 12, 147)),))
    if slot == SLOT_PORE:
        bow = POTASSIUM_PORE_BASELINE + length
        return Curve((((260, 22), (275, bow), (290, 22)),))
    if slot == SLOT_TRAILING_EXTRACELLULAR:
        bow = POTASSIUM_TRAILING_BASELINE + length
        return Curve((((290, 22), (295, 0), (315, -bow), (337, 22)),))
    return Curve((((337, 147), (SLOT_C_TERMINAL * 55, length + POTASSIUM_TAIL_LIFT), (SLOT_C_TERMINAL * 70, 110)),))


def curve_for(loop_index: int, range_: tuple[int, int], topology: Topology) -> Curve:
    """Curve for loop slot *loop_index* spanning residues ``range_``.

    Raises InvalidRangeError if the range ends before it starts, or
    ValueError for a slot outside 0-8.
    """
    start, end = range_
    if end < start:
        raise InvalidRangeError(f"Loop range {start}-{end} ends before it starts")
    if not 0 <= loop_index <= SLOT_C_TERMINAL:
        raise ValueError(f"Loop slot must be in 0-{SLOT_C_TERMINAL}, got {loop_index}")
    length = end - start
    if topology.kind == "sodium":
        return _sodium_curve(loop_index, length)
    return _potassium_curve(loop_index, length)


def flat_curve_for(loop_index: int, topology: Topology) -> Curve:
    """Straight line between the slot's endpoints, drawn when a range is unusable."""
    template = curve_for(loop_index, (0, 0), topology)
    return Curve(((template.start, template.end),))
