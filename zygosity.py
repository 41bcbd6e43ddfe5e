from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from snp_reference import ReferenceEntry, ReferenceTable, as_reference_table

MISSING_ALLELE = "-"
MISSING_GENOTYPE = "--"
NO_CALLS = {MISSING_ALLELE, MISSING_GENOTYPE, "0"}
RSID_PATTERN = re.compile(r"\bRS\d+\b", re.IGNORECASE)

GeneticData = Mapping[str, tuple[str, str]]


class Zygosity(Enum):
    HOMOZYGOUS = "Homozygous"
    HETEROZYGOUS = "Heterozygous"
    WILD = "Wild"
    DATA_MISSING = "Data Missing"
    REFERENCE_MISSING = "Reference Missing"

    def __str__(self) -> str:
        return self.value


STATE_STYLES: dict[Zygosity, str] = {
    Zygosity.HOMOZYGOUS: "color: red; font-weight: bold;",
    Zygosity.HETEROZYGOUS: "color: #b8860b; font-weight: normal;",
    Zygosity.WILD: "color: black; font-weight: normal;",
    Zygosity.DATA_MISSING: "color: grey;",
    Zygosity.REFERENCE_MISSING: "color: grey;",
}
STATE_LABELS: dict[Zygosity, str] = {
    Zygosity.HOMOZYGOUS: "☁️ Homozygous",
    Zygosity.HETEROZYGOUS: "☁ Heterozygous",
    Zygosity.WILD: "Wild",
    Zygosity.DATA_MISSING: "Data Missing",
    Zygosity.REFERENCE_MISSING: "Reference Missing",
}


@dataclass(frozen=True)
class SnpResult:
    rsid: str
    zygosity: Zygosity
    alleles: str
    effect_allele: str | None = None
    gene: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "rsid": self.rsid,
            "zygosity": self.zygosity.value,
            "alleles": self.alleles,
            "effect_allele": self.effect_allele,
            "gene": self.gene,
        }


def extract_rsids(content: str) -> list[str]:
    """Return the unique rsIDs in ``content``, uppercased, in first-seen order."""
    return list(dict.fromkeys(match.upper() for match in RSID_PATTERN.findall(content or "")))


def _is_missing(allele: str | None) -> bool:
    if allele is None:
        return True
    value = allele.strip()
    return not value or value in NO_CALLS


def determine_zygosity(
    allele1: str | None,
    allele2: str | None,
    rsid: str,
    reference: ReferenceTable | Iterable[ReferenceEntry | Mapping[str, Any]] | None,
) -> Zygosity:
    # A missing call wins over anything the reference table says.
    if _is_missing(allele1) or _is_missing(allele2):
        return Zygosity.DATA_MISSING

    a1 = allele1.strip().upper()
    a2 = allele2.strip().upper()

    entry = as_reference_table(reference).lookup(rsid)
    if entry is None or not entry.has_effect_allele:
        return Zygosity.REFERENCE_MISSING

    effect_allele = entry.effect_allele.strip().upper()
    matches = (a1 == effect_allele) + (a2 == effect_allele)
    if matches == 2:
        return Zygosity.HOMOZYGOUS
    if matches == 1:
        return Zygosity.HETEROZYGOUS
    return Zygosity.WILD


def get_snp_results(
    rsids: Iterable[str],
    genetic_data: GeneticData,
    reference: ReferenceTable | Iterable[ReferenceEntry | Mapping[str, Any]] | None,
) -> dict[str, SnpResult]:
    table = as_reference_table(reference)
    results: dict[str, SnpResult] = {}
    for raw_rsid in rsids:
        rsid = raw_rsid.strip().upper()
        if rsid in results:
            continue
        entry = table.lookup(rsid)
        effect_allele = entry.effect_allele if entry else None
        gene = entry.gene if entry else None

        call = genetic_data.get(rsid)
        if call is None:
            results[rsid] = SnpResult(rsid, Zygosity.DATA_MISSING, MISSING_GENOTYPE, effect_allele, gene)
            continue

        allele1, allele2 = call
        zygosity = determine_zygosity(allele1, allele2, rsid, table)
        results[rsid] = SnpResult(
            rsid,
            zygosity,
            f"{allele1 or ''}{allele2 or ''}",
            effect_allele,
            gene,
        )
    return results
