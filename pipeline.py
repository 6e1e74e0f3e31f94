"""Ion-Channel Variant Map Pipeline

Usage:
    python pipeline.py <segment_table> <output_dir> [--mutations FILE]
                       [--variant NAME ...] [--format html|png|svg] [--excel]

The segment table (CSV, TSV or Excel) has one row per structural region
(Region column) and one residue-range column per gene, e.g. scn1a, kcnq1.
Sodium channels need 57 rows, potassium channels 15.

Optional:
    --mutations FILE    Mutation spreadsheet (CSV or Excel, Sheet1) with
                        columns mutationSeq, type, phenotype

Outputs (saved to output_dir):
    {variant}_channel_map         Topology cartoon with mutation markers
    {variant}_coordinates.csv     Residue -> figure coordinates (if --dump-coordinates)
    {variant}_mutations.xlsx      Mutation table with domain/region (if --excel)

PNG and SVG output require vl-convert-python (pip install vl-convert-python).
Excel output requires openpyxl (pip install openpyxl).
"""

import argparse
import logging
import sys
from pathlib import Path

from chanviz import io, process
from chanviz.errors import DataIntegrityError
from chanviz.figures.base import Dimensions
from chanviz.figures.channel_map import DiagramRenderer
from chanviz.markers import DEFAULT_MUTATION_SIZE
from chanviz.state import (
    FilterByPhenotype,
    FilterByType,
    ImportMutations,
    MoveLegend,
    SelectVariant,
    SetMutationSize,
    ToggleView,
)
from chanviz.topology import Variant


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Draw ion-channel topology diagrams with mapped mutations."
    )
    parser.add_argument(
        "segment_table",
        type=Path,
        help="Segment table with per-gene residue ranges (CSV, TSV or Excel)",
    )
    parser.add_argument(
        "output_dir",
        type=Path,
        help="Directory to write output figures",
    )
    parser.add_argument(
        "--mutations",
        type=Path,
        default=None,
        metavar="FILE",
        help="Mutation spreadsheet with mutationSeq, type and phenotype columns.",
    )
    parser.add_argument(
        "--variant",
        nargs="+",
        default=None,
        metavar="NAME",
        help="Variant(s) to draw, e.g. scn1a kcnq2 (default: every gene column in the table).",
    )
    parser.add_argument(
        "--format",
        choices=["html", "png", "svg"],
        default="html",
        help="Output format for figures (default: html). "
             "PNG/SVG require vl-convert-python.",
    )
    parser.add_argument(
        "--legend",
        action="store_true",
        default=False,
        help="Draw the legend (segment colours, mutation types, phenotypes).",
    )
    parser.add_argument(
        "--labels",
        action="store_true",
        default=False,
        help="Draw a label box next to every mutation marker.",
    )
    parser.add_argument(
        "--mutation-size",
        type=int,
        default=DEFAULT_MUTATION_SIZE,
        metavar="N",
        help=f"Marker area, clamped to 70-200 (default: {DEFAULT_MUTATION_SIZE}).",
    )
    parser.add_argument(
        "--legend-x",
        type=float,
        default=None,
        metavar="N",
        help="Legend x position in pixels (clamped to the figure).",
    )
    parser.add_argument(
        "--legend-y",
        type=float,
        default=None,
        metavar="N",
        help="Legend y position in pixels (10-320).",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        default=False,
        help="Use the narrow 920px layout instead of the wide 1290px one.",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--filter-type",
        default=None,
        metavar="TYPE",
        help="Only show mutations of this type, e.g. Missense.",
    )
    group.add_argument(
        "--filter-phenotype",
        default=None,
        metavar="PHENOTYPE",
        help="Only show mutations with this phenotype.",
    )
    parser.add_argument(
        "--excel",
        action="store_true",
        default=False,
        help="Also write the mutation table ({variant}_mutations.xlsx). Requires openpyxl.",
    )
    parser.add_argument(
        "--dump-coordinates",
        action="store_true",
        default=False,
        help="Also write every residue's figure coordinates ({variant}_coordinates.csv).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log scale rebuilds, skipped markers and flattened loops.",
    )
    return parser.parse_args(argv)


def render_variant(renderer: DiagramRenderer, variant: Variant, records, args):
    """Replay the command-line choices as diagram events for *variant*."""
    events = [SelectVariant(variant)]
    if records:
        events.append(ImportMutations(records))
    events.append(SetMutationSize(args.mutation_size))
    for name, wanted in (("legend", args.legend), ("labels", args.labels)):
        if wanted and not renderer.state.legend.shows(name):
            events.append(ToggleView(name))
    if args.legend_x is not None or args.legend_y is not None:
        events.append(MoveLegend(args.legend_x, args.legend_y))
    if args.filter_type:
        events.append(FilterByType(args.filter_type))
    elif args.filter_phenotype:
        events.append(FilterByPhenotype(args.filter_phenotype))

    for event in events:
        renderer.state.dispatch(event)
    return renderer.render()


def main(argv=None):
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.segment_table.is_file():
        sys.exit(f"Error: segment table not found: {args.segment_table}")
    if args.mutations is not None and not args.mutations.is_file():
        sys.exit(f"Error: mutation file not found: {args.mutations}")

    args.output_dir.mkdir(parents=True, exist_ok=True)
    fmt = args.format

    # --- Load inputs ---
    print(f"Loading segment table: {args.segment_table}")
    table = io.load_segment_table(args.segment_table)
    available = table.variants()
    print(f"  Found {len(available)} variant(s): {', '.join(v.value for v in available)}")

    if args.variant:
        try:
            variants = [Variant.parse(name) for name in args.variant]
        except ValueError as err:
            sys.exit(f"Error: {err}")
    else:
        variants = available
    if not variants:
        sys.exit("Error: no known gene columns in the segment table.")

    records = ()
    if args.mutations is not None:
        print(f"Loading mutations: {args.mutations}")
        records = process.mutation_records(io.load_mutations(args.mutations))
        print(f"  {len(records)} mutation(s) loaded")

    dimensions = Dimensions.compact() if args.compact else Dimensions.wide()
    renderer = DiagramRenderer(table, dimensions)

    # --- Draw each variant ---
    for variant in variants:
        print(f"\n[{variant.value}] Generating diagram (format: {fmt})")
        try:
            scene = render_variant(renderer, variant, records, args)
        except DataIntegrityError as err:
            print(f"[{variant.value}] Diagram unavailable: {err}")
            continue
        except ValueError as err:
            sys.exit(f"Error: {err}")

        if scene.skipped:
            print(f"[{variant.value}] Skipped {len(scene.skipped)} marker(s): {', '.join(scene.skipped)}")

        io.save_figure(renderer.chart(), args.output_dir / f"{variant.value}_channel_map.{fmt}")

        if args.dump_coordinates:
            coords = process.coordinate_table(renderer.scales(variant))
            path = args.output_dir / f"{variant.value}_coordinates.csv"
            coords.to_csv(path, index=False)
            print(f"  Saved: {path.name}")

        if args.excel:
            print(f"[{variant.value}] Writing Excel workbook...")
            mutations_df = process.mutation_table(renderer.state.mutations, table, variant)
            io.save_excel({"mutations": mutations_df}, args.output_dir / f"{variant.value}_mutations.xlsx")

    print(f"\nDone. Figures saved to: {args.output_dir}")


if __name__ == "__main__":
    main()
