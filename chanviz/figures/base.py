# Shared layout constants and the figure dimensions used by the channel map.
# Order of SEGMENT_LEGEND controls legend order and swatch index.

from __future__ import annotations

from dataclasses import dataclass, field

SEGMENT_LEGEND = [
    ("S1S3Colour", "Voltage-Sensing Segment (S1-S3)"),
    ("S4Colour", "Positively Charged Voltage-Sensing (S4)"),
    ("S5S6Colour", "Pore-Forming Region (S5 and S6)"),
]

DIAGRAM_ID = "variant-mapping"

MEMBRANE_COLOR = "#F3E6CF"   # phospholipid bilayer band
LOOP_STROKE = 2.2
LABEL_FONT = 13
LEGEND_FONT = 12
CHAR_W = 6.5                 # approximate px per character at 12px
SWATCH_SIZE = 113            # point area for a 6px-radius circle
EXTRA_WIDTH = 50             # the figure is a little wider than its layout width


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int
    margin: dict = field(default_factory=dict)

    @property
    def bounded_width(self) -> float:
        return self.width - self.margin["left"] - self.margin["right"]

    @property
    def legend_x_max(self) -> int:
        return 900 if self.width >= 1290 else 600

    @classmethod
    def wide(cls) -> "Dimensions":
        return cls(1290, 455, {"top": 70, "right": 196, "bottom": 10, "left": 196})

    @classmethod
    def compact(cls) -> "Dimensions":
        return cls(920, 455, {"top": 70, "right": 10, "bottom": 10, "left": 10})
