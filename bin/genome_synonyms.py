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

"""Synonym table used to collapse declared genome names onto a canonical assembly."""

import re
from types import MappingProxyType

DEFAULT = "NA"

GRCH37 = "GRCh37"
GRCH38 = "GRCh38"

CANONICAL = {
    "GRCh37": GRCH37,
    "GRCh38": GRCH38,
    "hg19": GRCH37,
    "hs37d5": "hs37d5",
    "hg17": "hg17",
}

# patch releases, decoy builds and accessions seen in EGAZ submissions
GRCH37_FLAVOURS = tuple("GRCh37.p%d" % patch for patch in range(1, 14)) + (
    "GRCh37.decoy",
    "GCA_000001405.1",
    "GCA_000001405.5",
    "GL000207.1",
    "CM000683.11",
)

# RefSeq chromosome accessions, chr1..chr22, chrX (23), chrY (24)
GRCH37_REFSEQ = (
    "NC_000001.10",
    "NC_000002.11",
    "NC_000003.11",
    "NC_000004.11",
    "NC_000005.9",
    "NC_000006.11",
    "NC_000007.13",
    "NC_000008.10",
    "NC_000009.11",
    "NC_000010.10",
    "NC_000011.9",
    "NC_000012.11",
    "NC_000013.10",
    "NC_000014.8",
    "NC_000015.9",
    "NC_000016.9",
    "NC_000017.10",
    "NC_000018.9",
    "NC_000019.9",
    "NC_000020.10",
    "NC_000021.8",
    "NC_000022.10",
    "NC_000023.10",
    "NC_000024.9",
)

GRCH38_FLAVOURS = (
    "CM000663.2",
    "CM000666.2",
    "CM000682.2",
    "CM000684.2",
)

GRCH38_REFSEQ = (
    "NC_000001.11",
    "NC_000002.12",
    "NC_000003.12",
    "NC_000004.12",
    "NC_000005.10",
    "NC_000006.12",
    "NC_000007.14",
    "NC_000008.11",
    "NC_000009.12",
    "NC_000010.11",
    "NC_000011.10",
    "NC_000012.12",
    "NC_000013.11",
    "NC_000014.9",
    "NC_000015.10",
    "NC_000016.10",
    "NC_000017.11",
    "NC_000018.10",
    "NC_000019.10",
    "NC_000020.11",
    "NC_000021.9",
    "NC_000022.11",
    "NC_000023.11",
    "NC_000024.10",
)

# GenBank chromosome accessions are too many to list, the version tells the build
GENBANK_GRCH37 = re.compile(r"^CM000\d{3}\.1$")
GENBANK_GRCH38 = re.compile(r"^CM000\d{3}\.2$")


def build_synonym_table():
    """
    Build the read-only mapping of raw token -> canonical genome name.

    Returns:
        types.MappingProxyType: a fresh view over a new dict; every call yields
        the same content.
    """
    table = dict(CANONICAL)
    for token in GRCH37_FLAVOURS + GRCH37_REFSEQ:
        table[token] = GRCH37
    for token in GRCH38_FLAVOURS + GRCH38_REFSEQ:
        table[token] = GRCH38
    return MappingProxyType(table)


SYNONYMS = build_synonym_table()


def normalize_accession(token):
    """Rewrite whole-token CM000NNN.1 / CM000NNN.2 GenBank accessions to their build."""
    if GENBANK_GRCH37.match(token):
        return GRCH37
    if GENBANK_GRCH38.match(token):
        return GRCH38
    return token


def lookup_genome(token, synonyms=SYNONYMS):
    # None when the token is unknown, including the DEFAULT sentinel
    return synonyms.get(normalize_accession(token))
