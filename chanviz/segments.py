"""Segment table: per-variant residue ranges for every structural region.

The table is one row per region in topology order with columns
``Region``, ``Domain`` (optional) and one residue-range column per gene,
e.g.::

    Region          Domain    scn1a     scn2a    kcnq1
    Cytoplasmic     N-term    1-128     1-127    1-121
    S1 Domain I     VSD       129-149   128-148  122-142
    ...

Ranges use ``"<start>-<end>"``; spreadsheets exported with a different
encoding sometimes carry an en dash, a minus sign or the mojibake
``"�-�"`` instead, so all of those are accepted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import pandas as pd
from natsort import natsorted

from .errors import DataIntegrityError
from .topology import LOOP_REGIONS, SLOT_C_TERMINAL, Topology, Variant

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:�-�|[-‐‑‒–—−])\s*(\d+)\s*$")
_ROMAN = {"Domain I": "I", "Domain II": "II", "Domain III": "III", "Domain IV": "IV"}


@dataclass(frozen=True)
class SegmentRecord:
    region: str
    domain: str
    range_start: int
    range_end: int
    kind: str          # 'S1'..'S6' or one of LOOP_REGIONS
    slot: int | None   # loop slot within the domain; None for segments

    @property
    def is_loop(self) -> bool:
        return self.slot is not None

    @property
    def length(self) -> int:
        return self.range_end - self.range_start

    def contains(self, position: int) -> bool:
        return self.range_start <= position <= self.range_end


def parse_range(text) -> tuple[int, int]:
    """Parse ``"120-250"`` (or a dash variant) into ``(120, 250)``."""
    match = _RANGE_RE.match(str(text))
    if match is None:
        raise DataIntegrityError(f"Malformed residue range: {text!r}")
    return int(match.group(1)), int(match.group(2))


def _region_kind(region: str) -> str | None:
    seg = re.match(r"^\s*(S[1-6])\b", region)
    if seg:
        return seg.group(1)
    for name in LOOP_REGIONS:
        if name.lower() in region.lower():
            return name
    return None


class SegmentTable:
    """Read-only view over the segment table DataFrame."""

    def __init__(self, df: pd.DataFrame):
        if "Region" not in df.columns:
            raise DataIntegrityError("Segment table has no 'Region' column")
        self.df = df.reset_index(drop=True)
        self._cache: dict[Variant, list[SegmentRecord]] = {}

    def variants(self) -> list[Variant]:
        """Known gene columns present in the table, in natural order."""
        names = {c.strip().lower() for c in self.df.columns if isinstance(c, str)}
        known = [v.value for v in Variant if v.value in names]
        return [Variant(v) for v in natsorted(known)]

    def _column(self, variant: Variant) -> str:
        for col in self.df.columns:
            if isinstance(col, str) and col.strip().lower() == variant.value:
                return col
        raise DataIntegrityError(f"Segment table has no column for {variant.value}")

    def records(self, variant: Variant) -> list[SegmentRecord]:
        """Validated records for *variant*, in topology order.

        Raises DataIntegrityError when the column is missing, a range is
        malformed, the row layout does not match the variant's topology,
        or ranges overlap / run backwards.
        """
        if variant in self._cache:
            return self._cache[variant]

        topology = variant.topology
        col = self._column(variant)
        rows = self.df.loc[self.df[col].notna() & (self.df[col].astype(str).str.strip() != "")]
        pattern = topology.row_pattern()
        if len(rows) != topology.n_rows:
            raise DataIntegrityError(
                f"{variant.value}: expected {topology.n_rows} ranges for a "
                f"{topology.kind} channel, found {len(rows)}"
            )

        slots = iter(topology.loop_slots())
        records: list[SegmentRecord] = []
        prev_end = 0
        for (expected_kind, domain), (_, row) in zip(pattern, rows.iterrows()):
            region = str(row["Region"]).strip()
            kind = _region_kind(region)
            if kind != expected_kind:
                raise DataIntegrityError(
                    f"{variant.value}: row '{region}' found where {expected_kind} ({domain}) was expected"
                )
            start, end = parse_range(row[col])
            if end < start:
                raise DataIntegrityError(f"{variant.value}: range {start}-{end} for '{region}' runs backwards")
            if start <= prev_end:
                raise DataIntegrityError(
                    f"{variant.value}: range {start}-{end} for '{region}' overlaps the previous region"
                )
            prev_end = end
            slot = None
            if kind in LOOP_REGIONS:
                slot_domain, slot = next(slots)
                domain = slot_domain
            records.append(SegmentRecord(region, domain, start, end, kind, slot))

        logger.debug("Parsed %d segment records for %s", len(records), variant.value)
        self._cache[variant] = records
        return records

    def loops(self, variant: Variant) -> list[SegmentRecord]:
        return [r for r in self.records(variant) if r.is_loop]

    def segments(self, variant: Variant) -> list[SegmentRecord]:
        return [r for r in self.records(variant) if not r.is_loop]

    def last_residue(self, variant: Variant) -> int:
        return self.records(variant)[-1].range_end

    def locate(self, variant: Variant, position: int) -> tuple[str, str]:
        """Return ``(domain, region)`` labels for a residue position.

        Domain is a roman numeral, or ``"N/A"`` for the N-terminal tail, the
        inter-domain linkers, the C-terminal tail and unmapped positions.
        Region is ``"S1"``..``"S6"`` for segments, otherwise the loop region.
        """
        for record in self.records(variant):
            if record.contains(position):
                if record.slot in (0, SLOT_C_TERMINAL):
                    return "N/A", record.kind
                return _ROMAN.get(record.domain, "N/A"), record.kind
        return "N/A", ""


def check_topology(topology: Topology, records: list[SegmentRecord]) -> None:
    """Assert that *records* carry one loop per slot of *topology*."""
    n_loops = sum(1 for r in records if r.is_loop)
    if n_loops != topology.n_loops:
        raise DataIntegrityError(
            f"Expected {topology.n_loops} loops for a {topology.kind} channel, found {n_loops}"
        )
