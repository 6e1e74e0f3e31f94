import dataclasses
import logging

import pytest

from chanviz.colors import WHEEL_COLOURS
from chanviz.errors import MutationEntryError, PositionParseError
from chanviz.legend import SHOW_ALL
from chanviz.markers import MAX_MUTATION_SIZE
from chanviz.state import (
    AddMutation,
    ClickSwatch,
    ClickWheelSlice,
    CloseWheel,
    DeleteMutations,
    DragEnd,
    DragMove,
    DragStart,
    FilterByPhenotype,
    FilterByType,
    ImportMutations,
    MoveLegend,
    SelectVariant,
    SetMutationSize,
    ShowAll,
    ToggleView,
    validate_entry,
)
from chanviz.topology import Variant


def positions(state):
    return [m.position for m in state.mutations]


def test_import_assigns_phenotype_color(state, ds_record):
    state.dispatch(ImportMutations((ds_record,)))
    assert positions(state) == [1092]
    color = state.colors["DSColour"]
    assert color
    state.dispatch(ToggleView("legend"))
    state.dispatch(ImportMutations((ds_record,)))
    assert state.colors["DSColour"] == color


def test_import_skips_existing_positions(state, ds_record):
    state.dispatch(AddMutation("L1092R", "Missense", "GEFS+"))
    state.dispatch(ImportMutations((ds_record, {"mutationSeq": "R1648H", "type": "Missense", "phenotype": "DS"})))
    assert positions(state) == [1092, 1648]
    assert state.mutations[0].sequence_label == "L1092R"


def test_import_is_idempotent(state, ds_record):
    batch = (ds_record, {"mutationSeq": "R1648H", "type": "Nonsense", "phenotype": "BFNIS"})
    state.dispatch(ImportMutations(batch))
    colors = state.colors.to_dict()
    state.dispatch(ImportMutations(batch))
    assert positions(state) == [1092, 1648]
    assert state.colors.to_dict() == colors


def test_import_skips_duplicates_within_batch(state, ds_record):
    dup = {"mutationSeq": "L1092V", "type": "Silent", "phenotype": "Other"}
    state.dispatch(ImportMutations((ds_record, dup)))
    assert positions(state) == [1092]
    assert "OtherColour" not in state.colors


def test_import_batch_is_atomic(state, ds_record):
    bad = {"mutationSeq": "no digits", "type": "Missense", "phenotype": "DS"}
    with pytest.raises(PositionParseError):
        state.dispatch(ImportMutations((ds_record, bad)))
    assert state.mutations == []
    assert "DSColour" not in state.colors


def test_import_accepts_loose_header_case(state):
    state.dispatch(ImportMutations(({"MutationSeq": "A10V", "Type": "missense", "Phenotype": "DS"},)))
    assert positions(state) == [10]


def test_import_names_missing_column(state, ds_record):
    with pytest.raises(MutationEntryError, match="phenotype"):
        state.dispatch(ImportMutations((ds_record, {"mutationSeq": "A10V", "type": "Missense"})))
    assert state.mutations == []
    assert state.version == 0


def test_import_logs_summary(state, ds_record, caplog):
    with caplog.at_level(logging.INFO, logger="chanviz.state"):
        state.dispatch(ImportMutations((ds_record, ds_record)))
    assert "Imported 1 of 2 mutations" in caplog.text


def test_add_rejects_duplicate_position(state):
    state.dispatch(AddMutation("L1092P", "Missense", "DS"))
    with pytest.raises(MutationEntryError):
        state.dispatch(AddMutation("L1092R", "Missense", "DS"))


def test_delete_keeps_colors(state, ds_record):
    state.dispatch(ImportMutations((ds_record,)))
    state.dispatch(DeleteMutations((1092,)))
    assert state.mutations == []
    assert "DSColour" in state.colors


def test_select_variant_clears_mutations_and_filter(state, ds_record):
    state.dispatch(ImportMutations((ds_record,)))
    state.dispatch(FilterByPhenotype("DS"))
    state.dispatch(DragStart("label-1092"))
    state.dispatch(SelectVariant(Variant.KCNQ2))
    assert state.variant == Variant.KCNQ2
    assert state.mutations == []
    assert state.legend.active_filter == SHOW_ALL
    assert state.z_order == []


def test_select_variant_by_name(state):
    state.dispatch(SelectVariant("SCN8A"))
    assert state.variant == Variant.SCN8A


def test_filters_are_exclusive(state):
    state.dispatch(ImportMutations((
        {"mutationSeq": "L1092P", "type": "Missense", "phenotype": "DS"},
        {"mutationSeq": "R1648H", "type": "Nonsense", "phenotype": "DS"},
        {"mutationSeq": "A10V", "type": "Missense", "phenotype": "GEFS+"},
    )))
    state.dispatch(FilterByPhenotype("DS"))
    state.dispatch(FilterByType("Missense"))
    assert [m.position for m in state.visible_mutations()] == [1092, 10]
    state.dispatch(ShowAll())
    assert len(state.visible_mutations()) == 3


def test_wheel_events_recolor(state):
    state.dispatch(ClickSwatch(1, "S4Colour"))
    state.dispatch(ClickWheelSlice(0))
    assert state.colors["S4Colour"] == WHEEL_COLOURS[0]
    state.dispatch(CloseWheel())
    assert not state.wheel.is_open


def test_wheel_slice_out_of_range_changes_nothing(state):
    state.dispatch(ClickSwatch(1, "S4Colour"))
    before = state.colors.to_dict()
    with pytest.raises(ValueError):
        state.dispatch(ClickWheelSlice(-1))
    assert state.colors.to_dict() == before
    assert state.version == 1


def test_slider_events_clamp(state):
    state.dispatch(SetMutationSize(999))
    state.dispatch(MoveLegend(x=2000, y=5))
    assert state.mutation_size == MAX_MUTATION_SIZE
    assert (state.legend.legend_x, state.legend.legend_y) == (900, 10)


def test_drag_phases(state):
    state.dispatch(DragStart("domain-label-Domain I"))
    state.dispatch(DragStart("label-10"))
    assert state.z_order == ["domain-label-Domain I", "label-10"]
    assert state.stroke_widths["label-10"] == 2
    state.dispatch(DragMove("label-10", 120, 40))
    state.dispatch(DragMove("label-10", 130, 45))
    assert state.positions["label-10"] == (130, 45)
    state.dispatch(DragEnd("label-10"))
    assert state.stroke_widths["label-10"] == 1
    state.dispatch(DragStart("domain-label-Domain I"))
    assert state.z_order[-1] == "domain-label-Domain I"


def test_unknown_event(state):
    with pytest.raises(TypeError):
        state.dispatch(object())


def test_version_counts_events(state):
    state.dispatch(ToggleView("labels"))
    state.dispatch(ToggleView("labels"))
    assert state.version == 2


def test_snapshot_is_isolated(state, ds_record):
    state.dispatch(ImportMutations((ds_record,)))
    state.dispatch(ToggleView("legend"))
    snap = state.snapshot()
    state.dispatch(AddMutation("A10V", "Missense", "GEFS+"))
    state.dispatch(ToggleView("legend"))
    state.colors.set("DSColour", "#000000")
    assert [m.position for m in snap.mutations] == [1092]
    assert snap.toggles == frozenset({"legend"})
    assert snap.colors["DSColour"] != "#000000"
    with pytest.raises(dataclasses.FrozenInstanceError):
        snap.mutation_size = 100


class TestValidateEntry:
    def test_accepts_new_position(self, state):
        assert validate_entry("L1092P", state.mutations, 2000) == 1092

    def test_out_of_range(self, state):
        with pytest.raises(MutationEntryError, match="out of range"):
            validate_entry("L2092P", state.mutations, 2000)

    def test_duplicate(self, state):
        state.dispatch(AddMutation("L1092P", "Missense", "DS"))
        with pytest.raises(MutationEntryError, match="already been entered"):
            validate_entry("L1092R", state.mutations, 2000)

    def test_unparseable(self, state):
        with pytest.raises(PositionParseError):
            validate_entry("Leu-Pro", state.mutations, 2000)


def test_phenotype_key_count_never_shrinks(state, ds_record):
    counts = []
    for event in (
        ImportMutations((ds_record,)),
        AddMutation("A10V", "Silent", "GEFS+"),
        DeleteMutations((10, 1092)),
        SelectVariant(Variant.KCNQ1),
        ImportMutations(({"mutationSeq": "G5S", "type": "Frameshift", "phenotype": "BFNIS"},)),
    ):
        state.dispatch(event)
        counts.append(len(state.colors.phenotype_keys()))
    assert counts == [1, 2, 2, 2, 3]


def test_handler_table_is_built_once(state):
    handlers = state.handlers
    state.dispatch(ToggleView("legend"))
    state.dispatch(SetMutationSize(100))
    assert state.handlers is handlers
    assert state.mutation_size == 100
    assert "handlers" not in repr(state)
