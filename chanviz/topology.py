"""Channel topologies and the hand-tuned anchor tables behind the cartoon.

Each topology is a fixed sequence of rows in the segment table.  A domain
is laid out as

    Cytoplasmic, S1, Extracellular, S2, Cytoplasmic, S3, Extracellular, S4,
    Cytoplasmic, S5, Extracellular, Pore-forming, Extracellular, S6

so every domain owns eight loop *slots* (0–7).  The protein ends with a
C-terminal cytoplasmic tail, which is slot 8 of the last domain.

Anchor tables are keyed by slot.  Every loop contributes five residue
breaks (start, quarter, midpoint, three-quarter, end); the tables give the
screen value at each break.

* X anchors are domain-local and trace the loop's drawn curve, so a marker
  sits on the loop line.
* Y anchors are either a plain number or a :class:`LengthAnchor`, whose
  value grows with the spacing of two of the loop's breaks (longer loops
  bulge further).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Union

LOOP_REGIONS = ("Cytoplasmic", "Extracellular", "Pore-forming")
SEGMENT_NAMES = ("S1", "S2", "S3", "S4", "S5", "S6")
DOMAIN_LABELS = ("Domain I", "Domain II", "Domain III", "Domain IV")

# Row order inside one domain: loops are named by region, segments by index.
DOMAIN_ROW_PATTERN = (
    "Cytoplasmic", "S1", "Extracellular", "S2", "Cytoplasmic", "S3",
    "Extracellular", "S4", "Cytoplasmic", "S5", "Extracellular",
    "Pore-forming", "Extracellular", "S6",
)

SLOT_LEADING_CYTOPLASMIC = 0
SLOTS_EXTRACELLULAR = (1, 3, 5)
SLOTS_CYTOPLASMIC = (2, 4)
SLOT_PORE = 6
SLOT_TRAILING_EXTRACELLULAR = 7
SLOT_C_TERMINAL = 8


class Variant(str, Enum):
    SCN1A = "scn1a"
    SCN2A = "scn2a"
    SCN3A = "scn3a"
    SCN4A = "scn4a"
    SCN5A = "scn5a"
    SCN8A = "scn8a"
    SCN9A = "scn9a"
    SCN10A = "scn10a"
    SCN11A = "scn11a"
    KCNQ1 = "kcnq1"
    KCNQ2 = "kcnq2"
    KCNQ3 = "kcnq3"
    KCNQ4 = "kcnq4"
    KCNQ5 = "kcnq5"

    @property
    def is_sodium(self) -> bool:
        return self.value.startswith("scn")

    @property
    def number(self) -> int:
        return int(re.search(r"\d+", self.value).group())

    @property
    def title(self) -> str:
        if self.is_sodium:
            return f"Sodium Voltage-Gated Channel Alpha Subunit {self.number}"
        return f"Potassium Voltage-Gated Channel Subfamily Q Member {self.number}"

    @property
    def alias(self) -> str:
        # SCN8A-SCN11A are Nav1.6-Nav1.9
        minor = self.number if self.number < 6 else self.number - 2
        return f"Nav 1.{minor}" if self.is_sodium else f"Kv 7.{minor}"

    @property
    def topology(self) -> "Topology":
        return SODIUM if self.is_sodium else POTASSIUM

    @classmethod
    def parse(cls, name: str) -> "Variant":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(v.value for v in cls)
            raise ValueError(f"Unknown variant '{name}'. Expected one of: {valid}") from None


class LengthAnchor(NamedTuple):
    """``base + gain * (breaks[b] - breaks[a])`` for one loop's five breaks."""

    base: float
    gain: float
    a: int
    b: int

    def resolve(self, breaks: list[float]) -> float:
        return self.base + self.gain * (breaks[self.b] - breaks[self.a])


YAnchor = Union[float, LengthAnchor]


@dataclass(frozen=True)
class Topology:
    kind: str
    domains: tuple[str, ...]
    n_rows: int
    membrane_top: float
    membrane_bottom: float
    # Segment rectangles: x positions come from a clamped piecewise-linear
    # map of segment index (0-5) through these stops.
    segment_x_domain: tuple[float, ...]
    segment_x_range: tuple[float, ...]
    segment_width: float
    segment_height: float
    segment_y: float
    # Offset of the drawing area ("bounds") from the figure margin corner.
    origin_dx: float
    origin_dy: float
    x_anchors: dict[int, tuple[float, ...]]
    y_anchors: tuple[tuple[YAnchor, ...], ...]
    # Non-zero segment stops are offsets from the bounded width.
    segment_x_from_width: bool = False

    @property
    def n_loops(self) -> int:
        return len(self.y_anchors)

    def loop_slots(self) -> list[tuple[str, int]]:
        """(domain label, slot) for every loop in table order."""
        slots = [(domain, slot) for domain in self.domains for slot in range(8)]
        slots.append((self.domains[-1], SLOT_C_TERMINAL))
        return slots

    def row_pattern(self) -> list[tuple[str, str]]:
        """Expected (region kind, domain label) for every table row."""
        rows = [
            (name, domain)
            for domain in self.domains
            for name in DOMAIN_ROW_PATTERN
        ]
        rows.append(("Cytoplasmic", self.domains[-1]))
        return rows


# ── Sodium (4 domains) ───────────────────────────────────────────────────────
#
# Domain-local x.  Interior anchors are the loop curve evaluated at
# t = .25 / .5 / .75 (see chanviz.paths for the control points).

_SODIUM_X = {
    0: (-54.0, -39.19, -23.75, -7.69, 9.0),
    1: (8.0, 12.31, 17.25, 22.81, 29.0),
    2: (29.0, 34.5, 40.0, 45.5, 51.0),
    3: (50.0, 54.31, 59.25, 64.81, 71.0),
    4: (71.0, 76.5, 82.0, 87.5, 93.0),
    5: (92.0, 96.31, 101.25, 106.81, 113.0),
    6: (112.85, 115.92, 118.96, 121.99, 125.0),
    7: (124.8, 126.84, 131.35, 136.39, 140.0),
    # C-terminal tail: end of each cubic piece and their midpoints
    8: (137.0, 153.5, 200.0, 205.0, 225.0),
}

_L = LengthAnchor

_SODIUM_Y = (
    # Domain I
    (117, _L(127, 1.5, 0, 1), _L(130, 1, 0, 2), _L(127, 1.5, 2, 3), 118),
    (19, 12, 9, 12, 19),
    (120, 130, 135, 130, 120),
    (19, 12, 7, 13, 19),
    (119, 132, 137, 130, 119),
    (19, _L(7, -1, 0, 1), _L(18, -1.1, 2, 4), _L(7, -1, 3, 4), 19),
    (25, 30, 45, 30, 22),
    (12, 6, 0, 6, 18),
    # Domain II
    (118, _L(128, 1.6, 0, 1), _L(129, 1, 2, 4), _L(130, 1.6, 3, 4), 119),
    (20, 12, 7, 12, 21),
    (119, 128, 136, 128, 119),
    (19, 12, 7, 12, 19),
    (119, 130, 135, 130, 119),
    (18, 0, -2, 0, 18),
    (25, 38, 55, 38, 12),
    (8, 4, 0, 5, 18),
    # Domain III
    (120, _L(122, 1.79, 0, 1), _L(129, 1, 2, 4), _L(122, 1.79, 0, 1), 119),
    (18, 12, 7, 12, 19),
    (119, 130, 135, 130, 119),
    (18, 12, 7, 12, 19),
    (119, 130, 135, 130, 119),
    (18, -3, _L(12, -1, 2, 4), -3, 18),
    (27, 40, 57, 38, 12),
    (8, 4, 0, 5, 18),
    # Domain IV
    (119, _L(125, 1.6, 0, 1), _L(129, 1, 2, 4), _L(125, 1.6, 3, 4), 119),
    (18, 12, 7, 12, 19),
    (119, 130, 135, 130, 119),
    (18, 12, 7, 12, 19),
    (119, 130, 135, 130, 119),
    (18, 5, 2, 5, 18),
    (20, 40, 57, 38, 12),
    (8, 0, -6, -3, 18),
    # C-terminal tail
    (120, 190, 170, 122, 150),
)

SODIUM = Topology(
    kind="sodium",
    domains=DOMAIN_LABELS,
    n_rows=57,
    membrane_top=22.0,
    membrane_bottom=117.0,
    segment_x_domain=(0, 4, 5),
    segment_x_range=(0, 85, 130),
    segment_width=17.0,
    segment_height=95.0,
    segment_y=22.0,
    origin_dx=0.0,
    origin_dy=0.0,
    x_anchors=_SODIUM_X,
    y_anchors=_SODIUM_Y,
)


# ── Potassium (single domain) ────────────────────────────────────────────────

_POTASSIUM_X = {
    0: (-57.0, -42.56, -26.25, -8.06, 12.0),
    1: (15.0, 27.19, 38.75, 49.69, 60.0),
    2: (60.0, 74.5, 88.0, 100.5, 112.0),
    3: (115.0, 127.19, 138.75, 149.69, 160.0),
    4: (160.0, 174.5, 188.0, 200.5, 212.0),
    5: (215.0, 227.19, 238.75, 249.69, 260.0),
    6: (260.0, 267.5, 275.0, 282.5, 290.0),
    7: (290.0, 296.36, 307.13, 321.07, 337.0),
    8: (337.0, 389.56, 444.25, 501.06, 560.0),
}

_POTASSIUM_Y = (
    (150, _L(170, 2.5, 0, 1), _L(200, 1, 0, 2), _L(165, 2, 2, 3), 150),
    (19, _L(-5, -1.2, 0, 1), _L(-15, -0.75, 0, 2), _L(-7, -1.2, 2, 3), 19),
    (150, _L(165, 1.5, 0, 1), 185, _L(165, 1.5, 2, 3), 150),
    (19, _L(-7, 1, 0, 1), _L(-15, -0.75, 0, 2), _L(-12, 1, 2, 3), 19),
    (150, _L(165, 1.5, 0, 1), _L(170, 1.5, 0, 2), _L(165, 1.5, 2, 3), 150),
    (20, _L(-3, -1, 0, 1), _L(-15, -0.75, 0, 2), _L(-7, -1.2, 2, 3), 20),
    (25, 60, 80, 60, 25),
    (20, _L(0, 1, 0, 1), _L(-1, -1, 0, 2), _L(0, 1, 2, 3), 20),
    (150, _L(80, 1.68, 0, 1), _L(61, 2.1, 1, 2), _L(63, 1.63, 2, 3), 110),
)

POTASSIUM = Topology(
    kind="potassium",
    domains=("Domain I",),
    n_rows=15,
    membrane_top=22.0,
    membrane_bottom=147.0,
    segment_x_domain=(0, 4, 5),
    segment_x_range=(0, -700, -575),
    segment_width=25.0,
    segment_height=125.0,
    segment_y=22.0,
    origin_dx=250.0,
    origin_dy=-10.0,
    x_anchors=_POTASSIUM_X,
    y_anchors=_POTASSIUM_Y,
    segment_x_from_width=True,
)


def segment_x_stops(topology: Topology, bounded_width: float) -> tuple[float, ...]:
    """Resolve the segment x-range, offsetting width-relative stops."""
    if topology.segment_x_from_width:
        return tuple(0 if v == 0 else bounded_width + v for v in topology.segment_x_range)
    return topology.segment_x_range


def segment_color_key(index: int) -> str:
    """Palette key for transmembrane segment S(index+1)."""
    if index == 3:
        return "S4Colour"
    if index in (4, 5):
        return "S5S6Colour"
    return "S1S3Colour"
