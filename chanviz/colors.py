"""Color assignment and the legend color wheel.

Palette keys are the three segment keys (``S1S3Colour``, ``S4Colour``,
``S5S6Colour``) plus one ``<phenotype>Colour`` key per phenotype seen this
session.  Phenotype colors are handed out lazily from the 11-step
Spectral scheme and never reassigned automatically.

The wheel is a 12-slice ring anchored beside whichever legend swatch was
clicked.  Clicking a slice writes that slice's color to the bound key.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .markers import phenotype_key

SEGMENT_COLOURS = {
    "S1S3Colour": "#85C88A",
    "S4Colour": "#EBD671",
    "S5S6Colour": "#39AEA9",
}
SEGMENT_KEYS = tuple(SEGMENT_COLOURS)

# ColorBrewer Spectral, 11 classes
SPECTRAL_11 = [
    "#9e0142", "#d53e4f", "#f46d43", "#fdae61", "#fee08b", "#ffffbf",
    "#e6f598", "#abdda4", "#66c2a5", "#3288bd", "#5e4fa2",
]

WHEEL_COLOURS = [
    "#001A8F", "#400D6E", "#8D1291", "#1569B7", "#3CB9B3", "#33FF96",
    "#8DFF5C", "#FF8585", "#DF7861", "#FFB370", "#85C88A", "#EBD671",
]

WHEEL_INNER_RADIUS = 7
WHEEL_OUTER_RADIUS = 12
OPEN_DURATION_MS = 800
PICK_DURATION_MS = 200


class ColorAssignment:
    """Palette key → hex color, in insertion order."""

    def __init__(self, colors: dict | None = None):
        self._colors = dict(SEGMENT_COLOURS if colors is None else colors)
        self._next_slot = sum(1 for k in self._colors if k not in SEGMENT_KEYS)

    def __getitem__(self, key: str) -> str:
        return self._colors[key]

    def __contains__(self, key: str) -> bool:
        return key in self._colors

    def __len__(self) -> int:
        return len(self._colors)

    def get(self, key: str, default=None):
        return self._colors.get(key, default)

    def items(self):
        return self._colors.items()

    def set(self, key: str, color: str) -> None:
        self._colors[key] = color

    def phenotype_keys(self) -> list[str]:
        return [k for k in self._colors if k not in SEGMENT_KEYS]

    def assign_phenotype(self, phenotype: str) -> str:
        """Give *phenotype* a color if it has none; return its key either way."""
        key = phenotype_key(phenotype)
        if key not in self._colors:
            self._colors[key] = SPECTRAL_11[self._next_slot % len(SPECTRAL_11)]
            self._next_slot += 1
        return key

    def to_dict(self) -> dict:
        return dict(self._colors)


def swatch_anchor(index: int) -> tuple[float, float]:
    """Wheel position (legend-relative) for swatch *index*.

    Segment swatches (0-2) sit in the first column 40px apart; phenotype
    swatches (3+) sit in the phenotype column 20px apart.
    """
    if index < 3:
        return 20.0, 30.0 + index * 40
    return 280.0, 30.0 + (index - 3) * 20


@dataclass(frozen=True)
class ArcSlice:
    index: int
    color: str
    start_angle: float
    end_angle: float
    inner_radius: float
    outer_radius: float


def wheel_slices(outer_radius: float = WHEEL_OUTER_RADIUS) -> list[ArcSlice]:
    """Twelve equal slices clockwise from 12 o'clock."""
    step = 2 * math.pi / len(WHEEL_COLOURS)
    return [
        ArcSlice(i, color, i * step, (i + 1) * step, WHEEL_INNER_RADIUS, outer_radius)
        for i, color in enumerate(WHEEL_COLOURS)
    ]


@dataclass(frozen=True)
class WheelTransition:
    """Cosmetic interpolation between two sets of slice geometry."""

    start: tuple[ArcSlice, ...]
    end: tuple[ArcSlice, ...]
    duration_ms: int

    def frame(self, t: float) -> list[ArcSlice]:
        t = min(1.0, max(0.0, t))
        return [
            ArcSlice(
                a.index,
                b.color,
                a.start_angle + (b.start_angle - a.start_angle) * t,
                a.end_angle + (b.end_angle - a.end_angle) * t,
                a.inner_radius + (b.inner_radius - a.inner_radius) * t,
                a.outer_radius + (b.outer_radius - a.outer_radius) * t,
            )
            for a, b in zip(self.start, self.end)
        ]

    @property
    def final(self) -> list[ArcSlice]:
        return list(self.end)


@dataclass
class ColorWheelController:
    """Open/closed wheel state and the key it is currently recoloring."""

    is_open: bool = False
    target_key: str | None = None
    anchor: tuple[float, float] | None = None
    transition: WheelTransition | None = None
    _current: tuple[ArcSlice, ...] = field(
        default_factory=lambda: tuple(wheel_slices(WHEEL_INNER_RADIUS))
    )

    def _animate(self, duration_ms: int) -> None:
        target = tuple(wheel_slices())
        self.transition = WheelTransition(self._current, target, duration_ms)
        self._current = target

    def click_swatch(self, index: int, key: str) -> None:
        """Open (or re-anchor) the wheel next to swatch *index*, bound to *key*."""
        self.is_open = True
        self.target_key = key
        self.anchor = swatch_anchor(index)
        self._animate(OPEN_DURATION_MS)

    def click_slice(self, index: int, colors: ColorAssignment) -> str:
        """Write slice *index*'s color to the bound key; the wheel stays open."""
        if not self.is_open or self.target_key is None:
            raise RuntimeError("Color wheel is closed; click a legend swatch first")
        if not 0 <= index < len(WHEEL_COLOURS):
            raise ValueError(f"Wheel slice must be in 0-{len(WHEEL_COLOURS) - 1}, got {index}")
        color = WHEEL_COLOURS[index]
        colors.set(self.target_key, color)
        self._animate(PICK_DURATION_MS)
        return color

    def close(self) -> None:
        self.is_open = False
        self.target_key = None
        self.anchor = None
        self.transition = None
        self._current = tuple(wheel_slices(WHEEL_INNER_RADIUS))

    def slices(self) -> list[ArcSlice]:
        """Finished-frame geometry for rendering."""
        return list(self._current)
