import pytest

from chanviz.colors import ColorAssignment
from chanviz.errors import PositionParseError
from chanviz.markers import (
    MAX_MUTATION_SIZE,
    MIN_MUTATION_SIZE,
    SHAPE_SYMBOLS,
    SHAPE_TABLE,
    Mutation,
    MutationType,
    clamp_mutation_size,
    parse_position,
    project,
)
from chanviz.scales import build_scales
from chanviz.topology import Variant


@pytest.fixture
def scales(segment_table):
    return build_scales(segment_table, Variant.SCN1A, 898)


@pytest.mark.parametrize("label, position", [
    ("L1092P", 1092),
    ("p.Arg1648His", 1648),
    ("R 16 X", 16),
    ("c.1A>G", 1),
])
def test_parse_position(label, position):
    assert parse_position(label) == position


@pytest.mark.parametrize("label", ["", "LP", "del", "p.?"])
def test_parse_position_without_digits(label):
    with pytest.raises(PositionParseError):
        parse_position(label)


@pytest.mark.parametrize("text, expected", [
    ("Missense", MutationType.MISSENSE),
    ("splice site", MutationType.SPLICE_SITE),
    ("Splice-Site", MutationType.SPLICE_SITE),
    ("DELETION", MutationType.DELETION),
])
def test_mutation_type_parse(text, expected):
    assert MutationType.parse(text) == expected


def test_mutation_type_parse_rejects_unknown():
    with pytest.raises(ValueError, match="Expected one of"):
        MutationType.parse("Duplication")


def test_every_type_has_a_distinct_shape():
    assert set(SHAPE_TABLE) == set(MutationType)
    assert len(set(SHAPE_TABLE.values())) == len(MutationType)
    assert SHAPE_TABLE[MutationType.MISSENSE] == "circle"
    assert SHAPE_SYMBOLS["triangle"] == "triangle-up"
    assert SHAPE_SYMBOLS["star"].startswith("M") and SHAPE_SYMBOLS["star"].endswith("Z")


@pytest.mark.parametrize("size, expected", [
    (10, MIN_MUTATION_SIZE),
    (120, 120),
    (500, MAX_MUTATION_SIZE),
])
def test_clamp_mutation_size(size, expected):
    assert clamp_mutation_size(size) == expected


def test_create_validates_label():
    with pytest.raises(PositionParseError):
        Mutation.create("Leu-Pro", "Missense", "DS")
    mutation = Mutation.create(" L1092P ", "missense", " DS ")
    assert mutation == Mutation("L1092P", MutationType.MISSENSE, "DS")
    assert mutation.colour_key == "DSColour"


def test_project_uses_scales_and_colors(scales):
    colors = ColorAssignment()
    colors.assign_phenotype("DS")
    mutation = Mutation.create("L1092P", "Missense", "DS")
    marker = project(mutation, scales, colors, 150)
    assert marker.position == 1092
    assert (marker.x, marker.y) == pytest.approx(scales.project(1092))
    assert marker.shape_id == "circle"
    assert marker.fill == colors["DSColour"]
    assert marker.size == 150


def test_project_with_custom_shape_table(scales):
    colors = ColorAssignment()
    colors.assign_phenotype("GEFS+")
    mutation = Mutation.create("R1648H", "Nonsense", "GEFS+")
    marker = project(mutation, scales, colors, shape_table={MutationType.NONSENSE: "wye"})
    assert marker.shape == SHAPE_SYMBOLS["wye"]
    assert marker.size == MIN_MUTATION_SIZE


def test_project_without_phenotype_color_raises(scales):
    mutation = Mutation.create("L1092P", "Missense", "DS")
    with pytest.raises(KeyError):
        project(mutation, scales, ColorAssignment())


def test_project_does_not_assign_colors(scales):
    colors = ColorAssignment()
    colors.assign_phenotype("DS")
    before = colors.to_dict()
    project(Mutation.create("L1092P", "Missense", "DS"), scales, colors)
    assert colors.to_dict() == before
