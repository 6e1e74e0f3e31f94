import pandas as pd
import pytest

from chanviz.segments import SegmentTable
from chanviz.state import DiagramState
from chanviz.topology import DOMAIN_LABELS, DOMAIN_ROW_PATTERN

SEGMENT_LEN = 20
LOOP_LENS = {1: 10, 2: 9, 3: 10, 4: 9, 5: 10, 6: 30, 7: 15}

# Leading cytoplasmic loop (N-terminus, then the linkers) per domain.  Domain
# III's leading length puts its second cytoplasmic loop at 1092-1100.
SODIUM_LEADING = (100, 200, 256, 150)
SODIUM_TAIL = 442
POTASSIUM_LEADING = 100
POTASSIUM_TAIL = 300


def domain_lengths(leading: int) -> list[int]:
    lengths, slot = [], 0
    for name in DOMAIN_ROW_PATTERN:
        if name.startswith("S"):
            lengths.append(SEGMENT_LEN)
        else:
            lengths.append(leading if slot == 0 else LOOP_LENS[slot])
            slot += 1
    return lengths


def region_names(domain: str) -> list[str]:
    roman = domain.split()[-1]
    return [f"{name} Domain {roman}" if name.startswith("S") else name for name in DOMAIN_ROW_PATTERN]


def to_ranges(lengths: list[int], start: int = 1) -> list[str]:
    ranges = []
    for n in lengths:
        ranges.append(f"{start}-{start + n - 1}")
        start += n
    return ranges


def sodium_columns():
    regions, domains, lengths = [], [], []
    for domain, leading in zip(DOMAIN_LABELS, SODIUM_LEADING):
        regions += region_names(domain)
        domains += [domain] * len(DOMAIN_ROW_PATTERN)
        lengths += domain_lengths(leading)
    regions.append("Cytoplasmic C-terminus")
    domains.append("C-term")
    lengths.append(SODIUM_TAIL)
    return regions, domains, to_ranges(lengths)


def potassium_ranges() -> list[str]:
    return to_ranges(domain_lengths(POTASSIUM_LEADING) + [POTASSIUM_TAIL])


def make_segment_frame() -> pd.DataFrame:
    """57-row sodium layout with scn1a/scn2a; kcnq1 fills the first 15 rows."""
    regions, domains, ranges = sodium_columns()
    kcnq1 = potassium_ranges() + [""] * (len(regions) - 15)
    return pd.DataFrame({
        "Region": regions,
        "Domain": domains,
        "scn1a": ranges,
        "scn2a": ranges,
        "kcnq1": kcnq1,
    })


@pytest.fixture
def segment_frame():
    return make_segment_frame()


@pytest.fixture
def segment_table(segment_frame):
    return SegmentTable(segment_frame)


@pytest.fixture
def state():
    return DiagramState()


@pytest.fixture
def ds_record():
    return {"mutationSeq": "L1092P", "type": "Missense", "phenotype": "DS"}
