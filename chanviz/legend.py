from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .markers import Mutation, MutationType

TOGGLES = ("legend", "labels")

LEGEND_X_MIN = 10
LEGEND_X_MAX_WIDE = 900
LEGEND_X_MAX_COMPACT = 600
LEGEND_Y_MIN = 10
LEGEND_Y_MAX = 320
DEFAULT_LEGEND_X = 530
DEFAULT_LEGEND_Y = 300


def _show_all(_mutation: Mutation) -> bool:
    return True


@dataclass(frozen=True)
class MutationFilter:
    """A named predicate; ``kind`` is 'all', 'type' or 'phenotype'."""

    kind: str = "all"
    value: str | None = None
    predicate: Callable[[Mutation], bool] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.kind == "type":
            wanted = MutationType.parse(self.value)
            predicate = lambda m: m.mutation_type == wanted
        elif self.kind == "phenotype":
            wanted = self.value
            predicate = lambda m: m.phenotype == wanted
        elif self.kind == "all":
            predicate = _show_all
        else:
            raise ValueError(f"Unknown filter kind '{self.kind}'")
        object.__setattr__(self, "predicate", predicate)

    def __call__(self, mutation: Mutation) -> bool:
        return self.predicate(mutation)


SHOW_ALL = MutationFilter()


def clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class LegendFilterController:
    """Toggle set, legend position and the single active mutation filter."""

    selected: set = field(default_factory=set)
    active_filter: MutationFilter = SHOW_ALL
    legend_x: float = DEFAULT_LEGEND_X
    legend_y: float = DEFAULT_LEGEND_Y
    legend_x_max: float = LEGEND_X_MAX_WIDE

    def toggle(self, name: str) -> None:
        if name not in TOGGLES:
            raise ValueError(f"Unknown toggle '{name}'. Expected one of: {', '.join(TOGGLES)}")
        self.selected ^= {name}

    def shows(self, name: str) -> bool:
        return name in self.selected

    def filter_by_type(self, mutation_type) -> None:
        self.active_filter = MutationFilter("type", MutationType.parse(mutation_type).value)

    def filter_by_phenotype(self, phenotype: str) -> None:
        self.active_filter = MutationFilter("phenotype", phenotype)

    def show_all(self) -> None:
        self.active_filter = SHOW_ALL

    def move_legend(self, x=None, y=None) -> None:
        if x is not None:
            self.legend_x = clamp(x, LEGEND_X_MIN, self.legend_x_max)
        if y is not None:
            self.legend_y = clamp(y, LEGEND_Y_MIN, LEGEND_Y_MAX)

    def visible(self, mutations) -> list[Mutation]:
        return [m for m in mutations if self.active_filter(m)]
