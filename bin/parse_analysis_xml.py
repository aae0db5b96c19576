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

"""
Fetch the declared reference genome from an EGAZ analysis XML record.

Submitters are not forced to use a nomenclature when declaring the reference, and
the information can sit in two elements::

    <STANDARD refname="GRCh37"/>
    <SEQUENCE accession="accession="GL000207.1" label="GL000207.1"/>

Most DDD records only carry a path inside the label::

    <SEQUENCE accession="" label="2,URL=/lustre/scratch113/projects/ddd/ref_genome/hs37d5/2,assembly=hs37d5,length=243199373"/>

Lines are matched with regular expressions instead of an XML parser so broken
records are still read. The first line that yields a known genome wins.
"""

import argparse
import gzip
import logging
import re
import sys
from functools import partial
from mimetypes import guess_type
from pathlib import Path

from genome_synonyms import DEFAULT, SYNONYMS, lookup_genome

logger = logging.getLogger()

STANDARD = "STANDARD"
SEQUENCE = "SEQUENCE"
# trailing space matters
MARKERS = {STANDARD: "STANDARD ", SEQUENCE: "SEQUENCE "}

RESOLVED = "RESOLVED"
UNRESOLVED = "UNRESOLVED"

STANDARD_FIELD = "refname"
SEQUENCE_FIELDS = ("ref_genome", "label", "accession")  # order matters
PATH_FIELDS = ("ref_genome",)

# some records write the organism as 'HOMO SAPIENS' in the STANDARD element
ORGANISM = re.compile("HOMO", re.IGNORECASE)

_patterns = {}


class GenomeResolution:
    """
    Outcome of scanning one record.

    Attributes:
        genome (str): canonical genome name, or ``NA``.
        state (str): ``RESOLVED`` or ``UNRESOLVED``.
        field (str): field that produced the match, None when unresolved.
        line_number (int): 1-based line of the match, None when unresolved.
    """

    def __init__(self, genome=DEFAULT, state=UNRESOLVED, field=None, line_number=None):
        self.genome = genome
        self.state = state
        self.field = field
        self.line_number = line_number

    @property
    def resolved(self):
        return self.state == RESOLVED

    def __eq__(self, other):
        if not isinstance(other, GenomeResolution):
            return NotImplemented
        return (self.genome, self.state, self.field, self.line_number) == (
            other.genome, other.state, other.field, other.line_number)

    def __repr__(self):
        return (f"GenomeResolution(genome={self.genome!r}, state={self.state!r}, "
                f"field={self.field!r}, line_number={self.line_number!r})")


def field_pattern(field):
    if field not in _patterns:
        if field in PATH_FIELDS:
            regex = rf"/{re.escape(field)}/(\w+)/"
        else:
            regex = rf'{re.escape(field)}="(\S+)"'
        _patterns[field] = re.compile(regex)
    return _patterns[field]


def classify_line(line):
    """Return STANDARD, SEQUENCE or None for a line of the record."""
    if MARKERS[STANDARD] in line:
        if ORGANISM.search(line):
            return None
        return STANDARD
    if MARKERS[SEQUENCE] in line:
        return SEQUENCE
    return None


def extract_field(line, field):
    """
    Capture the raw token of ``field`` from a single line.

    ``ref_genome`` is read as a path segment (``/ref_genome/<token>/``), every
    other field as an attribute (``<field>="<token>"``).

    Returns:
        str: the first captured token, or ``NA`` if the pattern is absent.
    """
    match = field_pattern(field).search(line)
    if match:
        return match.group(1)
    return DEFAULT


def fields_for(kind):
    if kind == STANDARD:
        return (STANDARD_FIELD,)
    return SEQUENCE_FIELDS


def resolve_declared_genome(lines, synonyms=SYNONYMS):
    """
    Scan the lines of one record and return the first genome found in ``synonyms``.

    Lines are consumed lazily; once a token resolves nothing else is read.

    Args:
        lines (iterable): lines of the record, e.g. an open text file.
        synonyms (Mapping): raw token -> canonical genome name.

    Returns:
        GenomeResolution: RESOLVED with the canonical name, or UNRESOLVED with ``NA``.
    """
    for line_number, line in enumerate(lines, start=1):
        kind = classify_line(line)
        if kind is None:
            continue
        for field in fields_for(kind):
            token = extract_field(line, field)
            genome = lookup_genome(token, synonyms)
            logger.debug(f"line {line_number} {kind} {field}={token} -> {genome}")
            if genome is not None:
                return GenomeResolution(genome, RESOLVED, field, line_number)
    return GenomeResolution(DEFAULT, UNRESOLVED)


def open_record(path):
    encoding = guess_type(str(path))[1]   # uses file extension
    _open = partial(gzip.open, mode='rt') if encoding == 'gzip' else partial(open, mode='r')
    return _open(path, encoding='utf-8', errors='replace')


def resolve_file(path, synonyms=SYNONYMS):
    """Resolve a record stored on disk, plain or gzip compressed."""
    with open_record(path) as handle:
        return resolve_declared_genome(handle, synonyms)


def parse_args(argv=None):
    """Define and immediately parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Print the declared reference genome of an EGAZ analysis XML record.",
        epilog="Example: python parse_analysis_xml.py EGAZ00001234567.xml",
    )
    parser.add_argument(
        "file_in",
        metavar="FILE_IN",
        nargs="?",
        default="-",
        help="EGAZ XML record (plain or .gz). Reads standard input when omitted or '-'.",
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
    if args.file_in == "-":
        result = resolve_declared_genome(sys.stdin)
    else:
        file_in = Path(args.file_in)
        if not file_in.is_file():
            logger.error(f"The given input file {file_in} was not found!")
            sys.exit(2)
        result = resolve_file(file_in)
    print(result.genome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
