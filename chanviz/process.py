import pandas as pd

from .figures.channel_map import sample_positions
from .scales import ScaleSet
from .segments import SegmentTable
from .topology import Variant


def mutation_records(df: pd.DataFrame) -> tuple:
    """Rows of a loaded mutation sheet as import records.

    Rows with an empty ``mutationSeq`` are dropped; everything else is
    passed through unchanged so ImportMutations can reject the batch.
    """
    df = df.loc[df["mutationSeq"].astype(str).str.strip() != ""]
    return tuple(df[["mutationSeq", "type", "phenotype"]].to_dict("records"))


def mutation_table(mutations, table: SegmentTable, variant: Variant) -> pd.DataFrame:
    """Tabulate entered mutations with the domain and region each falls in.

    Returns columns Sequence, Type, Phenotype, Domain, Region.  Domain is a
    roman numeral, or "N/A" for the tails, the inter-domain linkers and
    positions outside the table.
    """
    rows = []
    for mutation in mutations:
        domain, region = table.locate(variant, mutation.position)
        rows.append({
            "Sequence": mutation.sequence_label,
            "Type": mutation.mutation_type.label,
            "Phenotype": mutation.phenotype,
            "Domain": domain,
            "Region": region,
        })
    return pd.DataFrame(rows, columns=["Sequence", "Type", "Phenotype", "Domain", "Region"])


def coordinate_table(scales: ScaleSet, step: int = 1) -> pd.DataFrame:
    """Every *step*-th residue projected through *scales*, with its loop region."""
    df = sample_positions(scales, step)
    df["region"] = "transmembrane"
    for record in scales.loops:
        inside = (df["position"] >= record.range_start) & (df["position"] <= record.range_end)
        df.loc[inside, "region"] = record.region
    return df
