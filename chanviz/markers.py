"""Mutation records and their projection onto the diagram."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from .errors import PositionParseError
from .scales import ScaleSet

MIN_MUTATION_SIZE = 70
MAX_MUTATION_SIZE = 200
DEFAULT_MUTATION_SIZE = 70


class MutationType(str, Enum):
    MISSENSE = "missense"
    SILENT = "silent"
    FRAMESHIFT = "frameshift"
    SPLICE_SITE = "splice-site"
    NONSENSE = "nonsense"
    INSERTION = "insertion"
    DELETION = "deletion"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, text: str) -> "MutationType":
        key = str(text).strip().lower().replace("_", "-").replace(" ", "-")
        if key == "splicesite":
            key = "splice-site"
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(t.label for t in cls)
            raise ValueError(f"Unknown mutation type '{text}'. Expected one of: {valid}") from None


def parse_position(sequence_label: str) -> int:
    """Residue position from a label such as ``"L1092P"`` (all digits, in order)."""
    digits = re.sub(r"\D", "", str(sequence_label))
    if not digits:
        raise PositionParseError(f"No residue number in mutation label '{sequence_label}'")
    return int(digits)


@dataclass(frozen=True)
class Mutation:
    sequence_label: str
    mutation_type: MutationType
    phenotype: str

    @property
    def position(self) -> int:
        return parse_position(self.sequence_label)

    @property
    def colour_key(self) -> str:
        return phenotype_key(self.phenotype)

    @classmethod
    def create(cls, sequence_label: str, mutation_type, phenotype: str) -> "Mutation":
        """Build a validated mutation; the label must carry a residue number."""
        label = str(sequence_label).strip()
        parse_position(label)
        if not isinstance(mutation_type, MutationType):
            mutation_type = MutationType.parse(mutation_type)
        return cls(label, mutation_type, str(phenotype).strip())


def phenotype_key(phenotype: str) -> str:
    return f"{phenotype}Colour"


# ── Marker shapes ─────────────────────────────────────────────────────────────
# Vega point marks accept named shapes or an SVG path inside the [-1, 1] box.

def _star_path() -> str:
    outer = 1.0
    inner = outer * math.sin(math.pi / 10) / math.sin(7 * math.pi / 10)
    points = []
    for i in range(10):
        r = outer if i % 2 == 0 else inner
        a = math.pi * i / 5
        points.append((r * math.sin(a), -r * math.cos(a)))
    return "M" + "L".join(f"{x:.4f},{y:.4f}" for x, y in points) + "Z"


def _wye_path() -> str:
    c, s, k = -0.5, math.sqrt(3) / 2, 0.35
    arm = [(k, k / math.sqrt(3)), (k, 1.0), (-k, 1.0), (-k, k / math.sqrt(3))]
    points = []
    for cos_a, sin_a in ((1.0, 0.0), (c, s), (c, -s)):
        for x, y in arm:
            # rotate each arm; y grows downward so the first arm points down
            points.append((x * cos_a - y * sin_a, x * sin_a + y * cos_a))
    scale = max(max(abs(x), abs(y)) for x, y in points)
    return "M" + "L".join(f"{x / scale:.4f},{y / scale:.4f}" for x, y in points) + "Z"


SHAPE_SYMBOLS = {
    "circle": "circle",
    "cross": "cross",
    "diamond": "diamond",
    "square": "square",
    "star": _star_path(),
    "triangle": "triangle-up",
    "wye": _wye_path(),
}

# One symbol per mutation type, in the same ordinal order as the type list.
SHAPE_TABLE = dict(zip(MutationType, SHAPE_SYMBOLS))


def clamp_mutation_size(size) -> int:
    return int(min(MAX_MUTATION_SIZE, max(MIN_MUTATION_SIZE, int(size))))


@dataclass(frozen=True)
class ProjectedMarker:
    position: int
    x: float
    y: float
    shape_id: str
    shape: str
    size: int
    fill: str
    label: str
    mutation_type: MutationType
    phenotype: str


def project(
    mutation: Mutation,
    scale_set: ScaleSet,
    colors,
    mutation_size: int = DEFAULT_MUTATION_SIZE,
    shape_table: dict | None = None,
) -> ProjectedMarker:
    """Place *mutation* on the diagram.

    Raises PositionParseError for a label without digits and KeyError if the
    phenotype has no color yet; *colors* is only read.
    """
    shape_table = SHAPE_TABLE if shape_table is None else shape_table
    position = parse_position(mutation.sequence_label)
    shape_id = shape_table[mutation.mutation_type]
    x, y = scale_set.project(position)
    return ProjectedMarker(
        position=position,
        x=x,
        y=y,
        shape_id=shape_id,
        shape=SHAPE_SYMBOLS[shape_id],
        size=clamp_mutation_size(mutation_size),
        fill=colors[mutation.colour_key],
        label=mutation.sequence_label,
        mutation_type=mutation.mutation_type,
        phenotype=mutation.phenotype,
    )
