from pathlib import Path

import altair as alt
import pandas as pd

from .errors import DataIntegrityError
from .segments import SegmentTable

_EXCEL_SUFFIXES = (".xlsx", ".xls", ".xlsb")


def _read_table(path: Path, sheet_name=None) -> pd.DataFrame:
    suffix = Path(path).suffix.lower()
    if suffix in _EXCEL_SUFFIXES:
        xl = pd.ExcelFile(path)
        sheet = sheet_name if sheet_name in xl.sheet_names else xl.sheet_names[0]
        return xl.parse(sheet, dtype=str)
    sep = "\t" if suffix in (".tsv", ".txt") else ","
    return pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False, encoding_errors="replace")


def load_segment_table(path: Path) -> SegmentTable:
    """Load the segment table (CSV, TSV or Excel).

    Expected columns: ``Region``, optional ``Domain``, and one residue-range
    column per gene (``scn1a`` ... ``kcnq5``).  Cells are kept as text so
    ranges such as ``"1-128"`` are not coerced.
    """
    df = _read_table(path)
    df.columns = [str(c).strip() for c in df.columns]
    if "Region" not in df.columns:
        raise DataIntegrityError(f"{Path(path).name}: no 'Region' column")
    return SegmentTable(df)


def load_mutations(path: Path) -> pd.DataFrame:
    """Load a mutation spreadsheet with columns mutationSeq, type, phenotype.

    Excel workbooks are read from ``Sheet1`` when present, otherwise the
    first sheet.  Header case and surrounding whitespace are ignored.
    """
    df = _read_table(path, sheet_name="Sheet1")
    rename = {}
    for col in df.columns:
        key = str(col).strip().lower()
        if key in ("mutationseq", "sequence", "mutation"):
            rename[col] = "mutationSeq"
        elif key in ("type", "mutation type"):
            rename[col] = "type"
        elif key == "phenotype":
            rename[col] = "phenotype"
    df = df.rename(columns=rename)
    missing = [c for c in ("mutationSeq", "type", "phenotype") if c not in df.columns]
    if missing:
        raise ValueError(f"{Path(path).name}: missing column(s) {', '.join(missing)}")
    df = df[["mutationSeq", "type", "phenotype"]].dropna(how="all")
    return df.fillna("").astype(str)


def save_figure(chart: alt.Chart, path: Path):
    """Save an Altair chart. Format is inferred from the file extension.

    HTML is fully self-contained and interactive.
    PNG and SVG require vl-convert-python to be installed.
    """
    chart.save(str(path))
    print(f"  Saved: {path.name}")


def save_excel(sheets: dict, path: Path):
    """Write a multi-sheet Excel workbook. Requires openpyxl.

    Args:
        sheets: Dict mapping sheet name -> DataFrame (insertion order preserved).
        path: Output path (.xlsx).
    """
    with pd.ExcelWriter(str(path), engine="openpyxl") as writer:
        for sheet_name, df in sheets.items():
            df.to_excel(writer, sheet_name=sheet_name, index=False)
    print(f"  Saved: {path.name}")
