#!/usr/bin/env python3
##############################################################################################
# Copyright (C) 2021 Manuel Rueda (manuel.rueda@crg.eu)
#
# Declared reference genome extraction for EGAZ analysis XML records, ported from
# parse_egaz_xml.pl and ega_declared_genome_ref.sh.
#
# This program is free software; you can redistribute it and/or modify it under the
# terms of the GNU General Public License as published by the Free Software Foundation;
# either version 3 of the License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but WITHOUT ANY
# WARRANTY; without even the implied warranty of MERCHANTABILITY or FITNESS FOR A
# PARTICULAR PURPOSE. See the GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with this
# program; if not, see <https://www.gnu.org/licenses/>.
##############################################################################################

"""Report the declared reference genome of every EGAZ XML record in a set of paths."""

import argparse
import logging
import sys
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path

import pandas as pd

from parse_analysis_xml import resolve_file

logger = logging.getLogger()

SUFFIXES = (".xml.gz", ".xml")
RESULT_COLUMNS = ["record", "genome", "field", "line_number"]


def record_name(path):
    name = Path(path).name
    for suffix in SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def collect_records(inputs):
    """
    Expand files and directories into the list of records to parse.

    Directories contribute their ``*.xml`` and ``*.xml.gz`` entries in sorted
    order, files are taken as given. Missing paths are returned separately.
    """
    records = []
    missing = []
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            found = sorted(
                p for p in path.iterdir()
                if p.is_file() and p.name.endswith(SUFFIXES)
            )
            if not found:
                logger.warning(f"No XML records found in {path}")
            records.extend(found)
        elif path.is_file():
            records.append(path)
        else:
            missing.append(path)
    return records, missing


def resolve_records(records, threads=1):
    """
    Yield the resolution of every record, keeping the input order.

    Results are produced one record at a time, so a record that cannot be read
    raises only after the records before it were handed out.
    """
    if threads > 1 and len(records) > 1:
        with ProcessPoolExecutor(max_workers=threads) as executor:
            # chunksize 1: an unreadable record fails alone
            yield from executor.map(resolve_file, records)
    else:
        for record in records:
            yield resolve_file(record)


def results_table(records, resolutions):
    rows = []
    for record, resolution in zip(records, resolutions):
        rows.append(dict(
            record=record_name(record),
            genome=resolution.genome,
            field=resolution.field,
            line_number=resolution.line_number,
        ))
    df = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    df['line_number'] = df['line_number'].astype('Int64')
    return df


def summarize(df):
    """
    Tally the genomes of a results table.

    Returns:
        pandas.DataFrame: columns genome, count and percent (one decimal), most
        frequent genome first.
    """
    counts = df['genome'].value_counts()
    summary = counts.rename_axis('genome').reset_index(name='count')
    total = summary['count'].sum()
    summary['percent'] = (summary['count'] / total * 100).round(1) if total else 0.0
    return summary


def format_summary(summary):
    width = len(str(summary['count'].max())) if len(summary) else 1
    lines = []
    for _, row in summary.iterrows():
        lines.append(f"{row['count']:>{width}} ({row['percent']:>4.1f} %) {row['genome']}")
    lines.append(f"Total {summary['count'].sum()}")
    return lines


def parse_args(argv=None):
    """Define and immediately parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Print the declared reference genome of each EGAZ analysis XML record.",
        epilog="Example: python declared_genome_ref.py EGAZ/ -s genome_summary.tsv",
    )
    parser.add_argument(
        "inputs",
        metavar="INPUT",
        nargs="+",
        help="EGAZ XML records (plain or .gz) or directories holding them.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Optional TSV with one row per record (record, genome, field, line_number).",
    )
    parser.add_argument(
        "-s",
        "--summary",
        type=Path,
        help="Optional TSV with the count and percentage of every genome.",
    )
    parser.add_argument(
        "-t",
        "--threads",
        type=int,
        default=1,
        help="Number of worker processes (default 1).",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        help="The desired log level (default WARNING).",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"),
        default="WARNING",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Coordinate argument parsing and program execution."""
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level,
                        format="[%(levelname)s] %(message)s")
    records, missing = collect_records(args.inputs)
    if missing:
        for path in missing:
            logger.error(f"The given input file {path} was not found!")
        sys.exit(2)
    if args.threads < 1:
        logger.error(f"--threads must be at least 1, got {args.threads}")
        sys.exit(2)

    resolutions = []
    for record, resolution in zip(records, resolve_records(records, args.threads)):
        print(f"{record_name(record)} {resolution.genome}", flush=True)
        resolutions.append(resolution)

    if args.output or args.summary:
        df = results_table(records, resolutions)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(args.output, sep="\t", index=False)
        if args.summary:
            summary = summarize(df)
            args.summary.parent.mkdir(parents=True, exist_ok=True)
            summary.to_csv(args.summary, sep="\t", index=False)
            for line in format_summary(summary):
                logger.info(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
