"""Diagram state holder and the typed events that change it.

Every user interaction (form submit, file import, legend click, wheel click,
slider, checkbox, drag) arrives as one event object passed to
:meth:`DiagramState.dispatch`.  Events are handled one at a time; the
renderer reads an immutable :class:`StateSnapshot`, never the live state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from .colors import ArcSlice, ColorAssignment, ColorWheelController
from .errors import MutationEntryError
from .legend import LegendFilterController, MutationFilter
from .markers import DEFAULT_MUTATION_SIZE, Mutation, clamp_mutation_size, parse_position
from .topology import Variant

logger = logging.getLogger(__name__)

DRAG_STROKE_WIDTH = 2
REST_STROKE_WIDTH = 1


# ── Events ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SelectVariant:
    variant: Variant


@dataclass(frozen=True)
class AddMutation:
    sequence_label: str
    mutation_type: str
    phenotype: str


@dataclass(frozen=True)
class ImportMutations:
    """Bulk import; each record has ``mutationSeq``, ``type`` and ``phenotype``."""

    records: tuple


@dataclass(frozen=True)
class DeleteMutations:
    positions: tuple


@dataclass(frozen=True)
class SetMutationSize:
    size: int


@dataclass(frozen=True)
class MoveLegend:
    x: float | None = None
    y: float | None = None


@dataclass(frozen=True)
class ToggleView:
    name: str


@dataclass(frozen=True)
class FilterByType:
    mutation_type: str


@dataclass(frozen=True)
class FilterByPhenotype:
    phenotype: str


@dataclass(frozen=True)
class ShowAll:
    pass


@dataclass(frozen=True)
class ClickSwatch:
    index: int
    key: str


@dataclass(frozen=True)
class ClickWheelSlice:
    index: int


@dataclass(frozen=True)
class CloseWheel:
    pass


@dataclass(frozen=True)
class DragStart:
    element_id: str


@dataclass(frozen=True)
class DragMove:
    element_id: str
    x: float
    y: float


@dataclass(frozen=True)
class DragEnd:
    element_id: str


# ── Validation helpers ────────────────────────────────────────────────────────

def validate_entry(sequence_label: str, mutations, last_residue: int) -> int:
    """Entry-form checks: the position must be in range and not yet used.

    Returns the parsed position; raises PositionParseError or
    MutationEntryError.
    """
    position = parse_position(sequence_label)
    if position > last_residue:
        raise MutationEntryError(
            "Mutation sequence out of range. Please enter a different sequence."
        )
    if any(m.position == position for m in mutations):
        raise MutationEntryError(
            "Mutation sequence with that location has already been entered. "
            "Please delete it from the table or enter a different sequence."
        )
    return position


def _record_field(record: Mapping, name: str):
    if name in record:
        return record[name]
    lowered = {str(k).strip().lower(): v for k, v in record.items()}
    try:
        return lowered[name.lower()]
    except KeyError:
        raise MutationEntryError(f"Imported row is missing the '{name}' column: {dict(record)}") from None


# ── State ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StateSnapshot:
    variant: Variant
    mutations: tuple
    visible_mutations: tuple
    colors: dict
    toggles: frozenset
    active_filter: MutationFilter
    mutation_size: int
    legend_x: float
    legend_y: float
    wheel_open: bool
    wheel_target: str | None
    wheel_anchor: tuple | None
    wheel_slices: tuple[ArcSlice, ...]
    positions: dict
    stroke_widths: dict
    z_order: tuple


@dataclass
class DiagramState:
    variant: Variant = Variant.SCN1A
    mutations: list = field(default_factory=list)
    colors: ColorAssignment = field(default_factory=ColorAssignment)
    legend: LegendFilterController = field(default_factory=LegendFilterController)
    wheel: ColorWheelController = field(default_factory=ColorWheelController)
    mutation_size: int = DEFAULT_MUTATION_SIZE
    # Drag overrides: element id -> absolute position / stroke width; z_order
    # lists raised elements, last drawn on top.
    positions: dict = field(default_factory=dict)
    stroke_widths: dict = field(default_factory=dict)
    z_order: list = field(default_factory=list)
    version: int = 0
    handlers: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.handlers = {
            SelectVariant: self._select_variant,
            AddMutation: self._add_mutation,
            ImportMutations: self._import_mutations,
            DeleteMutations: self._delete_mutations,
            SetMutationSize: self._set_mutation_size,
            MoveLegend: self._move_legend,
            ToggleView: self._toggle_view,
            FilterByType: self._filter_by_type,
            FilterByPhenotype: self._filter_by_phenotype,
            ShowAll: self._show_all,
            ClickSwatch: self._click_swatch,
            ClickWheelSlice: self._click_wheel_slice,
            CloseWheel: self._close_wheel,
            DragStart: self._drag_start,
            DragMove: self._drag_move,
            DragEnd: self._drag_end,
        }

    def dispatch(self, event) -> None:
        handler = self.handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unhandled diagram event: {type(event).__name__}")
        handler(event)
        self.version += 1

    def _set_mutation_size(self, event: SetMutationSize) -> None:
        self.mutation_size = clamp_mutation_size(event.size)

    def _move_legend(self, event: MoveLegend) -> None:
        self.legend.move_legend(event.x, event.y)

    def _toggle_view(self, event: ToggleView) -> None:
        self.legend.toggle(event.name)

    def _filter_by_type(self, event: FilterByType) -> None:
        self.legend.filter_by_type(event.mutation_type)

    def _filter_by_phenotype(self, event: FilterByPhenotype) -> None:
        self.legend.filter_by_phenotype(event.phenotype)

    def _show_all(self, event: ShowAll) -> None:
        self.legend.show_all()

    def _click_swatch(self, event: ClickSwatch) -> None:
        self.wheel.click_swatch(event.index, event.key)

    def _click_wheel_slice(self, event: ClickWheelSlice) -> None:
        self.wheel.click_slice(event.index, self.colors)

    def _close_wheel(self, event: CloseWheel) -> None:
        self.wheel.close()

    def _select_variant(self, event: SelectVariant) -> None:
        variant = Variant.parse(event.variant) if isinstance(event.variant, str) else event.variant
        if variant != self.variant:
            logger.info("Switching variant %s -> %s; clearing %d mutations",
                        self.variant.value, variant.value, len(self.mutations))
        self.variant = variant
        self.mutations = []
        self.legend.show_all()
        self.positions.clear()
        self.stroke_widths.clear()
        self.z_order.clear()

    def _add_mutation(self, event: AddMutation) -> None:
        mutation = Mutation.create(event.sequence_label, event.mutation_type, event.phenotype)
        if any(m.position == mutation.position for m in self.mutations):
            raise MutationEntryError(f"Position {mutation.position} already has a mutation")
        self.mutations.append(mutation)
        self.colors.assign_phenotype(mutation.phenotype)

    def _import_mutations(self, event: ImportMutations) -> None:
        # Parse the whole batch before touching state so a bad row changes nothing.
        batch = [
            Mutation.create(
                _record_field(r, "mutationSeq"),
                _record_field(r, "type"),
                _record_field(r, "phenotype"),
            )
            for r in event.records
        ]
        seen = {m.position for m in self.mutations}
        added = 0
        for mutation in batch:
            if mutation.position in seen:
                continue
            seen.add(mutation.position)
            self.mutations.append(mutation)
            self.colors.assign_phenotype(mutation.phenotype)
            added += 1
        logger.info("Imported %d of %d mutations (%d duplicate positions skipped)",
                    added, len(batch), len(batch) - added)

    def _delete_mutations(self, event: DeleteMutations) -> None:
        doomed = set(event.positions)
        self.mutations = [m for m in self.mutations if m.position not in doomed]

    def _drag_start(self, event: DragStart) -> None:
        if event.element_id in self.z_order:
            self.z_order.remove(event.element_id)
        self.z_order.append(event.element_id)
        self.stroke_widths[event.element_id] = DRAG_STROKE_WIDTH

    def _drag_move(self, event: DragMove) -> None:
        self.positions[event.element_id] = (event.x, event.y)

    def _drag_end(self, event: DragEnd) -> None:
        self.stroke_widths[event.element_id] = REST_STROKE_WIDTH

    def visible_mutations(self) -> list[Mutation]:
        return self.legend.visible(self.mutations)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            variant=self.variant,
            mutations=tuple(self.mutations),
            visible_mutations=tuple(self.visible_mutations()),
            colors=self.colors.to_dict(),
            toggles=frozenset(self.legend.selected),
            active_filter=self.legend.active_filter,
            mutation_size=self.mutation_size,
            legend_x=self.legend.legend_x,
            legend_y=self.legend.legend_y,
            wheel_open=self.wheel.is_open,
            wheel_target=self.wheel.target_key,
            wheel_anchor=self.wheel.anchor,
            wheel_slices=tuple(self.wheel.slices()),
            positions=dict(self.positions),
            stroke_widths=dict(self.stroke_widths),
            z_order=tuple(self.z_order),
        )
