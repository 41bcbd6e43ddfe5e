# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "polars",
# ]
# ///

from __future__ import annotations

import argparse
import io
import re
from dataclasses import dataclass
from pathlib import Path

import polars as pl

from run_utils import resolve_base_name, run_root, update_summary
from zygosity import MISSING_ALLELE, GeneticData

FORMAT_PREVIEW_LINES = 30

_RSID_HEADERS = {"rsid", "rs id", "snp"}
_GENOTYPE_HEADERS = {"genotype", "alleles"}
_ALLELE1_HEADERS = {"allele1", "allele 1"}
_ALLELE2_HEADERS = {"allele2", "allele 2"}
_MISSING_CODES = ["0", "-", "--", ""]
_DATA_ID = re.compile(r"^(rs|i)\d+$", re.IGNORECASE)

_GENERATED_AT = re.compile(r"generated by .+? at:?\s*(.+)$", re.IGNORECASE)
_DATE_TOKEN = re.compile(r"\b(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})\b")


@dataclass(frozen=True)
class FileFormatInfo:
    rsid_column: int
    allele1_column: int
    delimiter: str
    skip_lines: int
    allele2_column: int | None = None

    @property
    def combined_genotype(self) -> bool:
        return self.allele2_column is None


@dataclass(frozen=True)
class GeneticDataFile:
    data: dict[str, tuple[str, str]]
    date: str | None
    file_name: str


def _header_cells(line: str, delimiter: str) -> list[str]:
    return [cell.strip().strip('"').lower() for cell in line.split(delimiter)]


def _find_column(cells: list[str], names: set[str]) -> int | None:
    return next((index for index, cell in enumerate(cells) if cell in names), None)


def detect_file_format(preview: str) -> FileFormatInfo | None:
    """Work out delimiter and column layout from the first lines of a raw genome file.

    Handles 23andMe (``# rsid`` comment header, combined genotype), AncestryDNA
    (``allele1``/``allele2`` columns) and SelfDecode (CSV, combined genotype).
    Returns None when no rsID column can be found.
    """
    lines = preview.splitlines()[:FORMAT_PREVIEW_LINES]
    header_index = None
    comment_header = False
    for index, raw in enumerate(lines):
        line = raw.strip()
        if line.startswith("#"):
            check = line[1:].strip().lower()
            if check.startswith("rsid") or "\trsid" in check or ",rsid" in check:
                header_index = index
                comment_header = True
                break
            continue
        if line:
            header_index = index
            break

    if header_index is None:
        return None

    header = lines[header_index].strip()
    if comment_header:
        header = header[1:].strip()
    delimiter = "," if "," in header and "\t" not in header else "\t"
    cells = _header_cells(header, delimiter)

    rsid_column = _find_column(cells, _RSID_HEADERS)
    if rsid_column is None:
        return None
    skip_lines = header_index + 1

    genotype_column = _find_column(cells, _GENOTYPE_HEADERS)
    if genotype_column is not None:
        return FileFormatInfo(rsid_column, genotype_column, delimiter, skip_lines)

    allele1_column = _find_column(cells, _ALLELE1_HEADERS)
    allele2_column = _find_column(cells, _ALLELE2_HEADERS)
    if allele1_column is not None and allele2_column is not None:
        return FileFormatInfo(rsid_column, allele1_column, delimiter, skip_lines, allele2_column)

    # No genotype header: fall back to the first data row.
    if skip_lines < len(lines):
        data_line = lines[skip_lines].strip()
        if data_line and not data_line.startswith("#"):
            parts = data_line.split(delimiter)
            if rsid_column < len(parts) and _DATA_ID.match(parts[rsid_column].strip()):
                genotype_column = 3 if len(parts) > 3 else len(parts) - 1
                return FileFormatInfo(rsid_column, genotype_column, delimiter, skip_lines)
    return None


def _clean(expr: pl.Expr) -> pl.Expr:
    return expr.fill_null("").str.strip_chars(' "').str.to_uppercase()


def _canonical_allele(column: str) -> pl.Expr:
    value = pl.col(column)
    return pl.when(value.is_in(_MISSING_CODES)).then(pl.lit(MISSING_ALLELE)).otherwise(value).alias(column)


def _read_rows(data_lines: list[str], fmt: FileFormatInfo) -> pl.DataFrame:
    frame = pl.read_csv(
        io.StringIO("\n".join(data_lines)),
        separator=fmt.delimiter,
        has_header=False,
        infer_schema_length=0,
        quote_char=None,
        truncate_ragged_lines=True,
        ignore_errors=True,
    )
    columns = frame.columns
    needed = max(fmt.rsid_column, fmt.allele1_column, fmt.allele2_column or 0)
    if needed >= len(columns):
        return pl.DataFrame(schema={"rsid": pl.String, "allele1": pl.String, "allele2": pl.String})

    selected = [
        pl.col(columns[fmt.rsid_column]).alias("rsid"),
        pl.col(columns[fmt.allele1_column]).alias("allele1"),
    ]
    if fmt.allele2_column is not None:
        selected.append(pl.col(columns[fmt.allele2_column]).alias("allele2"))
    return frame.select(selected).filter(
        pl.col("rsid").is_not_null() & pl.col("allele1").is_not_null()
    )


def _split_genotypes(frame: pl.DataFrame) -> pl.DataFrame:
    genotype = _clean(pl.col("allele1"))
    size = genotype.str.len_chars()
    return (
        frame.with_columns(genotype.alias("genotype"))
        .filter(pl.col("genotype").str.len_chars() <= 2)
        .with_columns(
            pl.when(size == 0)
            .then(pl.lit(MISSING_ALLELE))
            .otherwise(genotype.str.slice(0, 1))
            .alias("allele1"),
            pl.when(size == 2)
            .then(genotype.str.slice(1, 1))
            .when(size == 1)
            .then(genotype)
            .otherwise(pl.lit(MISSING_ALLELE))
            .alias("allele2"),
        )
        .drop("genotype")
    )


def parse_genetic_data(content: str) -> GeneticData:
    """Parse raw genome file text into ``{RSID: (allele1, allele2)}``.

    Rows whose id is not an rsID are dropped; no-calls (``0``, ``-``, ``--``, blank)
    become ``"-"``. Later duplicates overwrite earlier ones.
    """
    lines = content.splitlines()
    fmt = detect_file_format("\n".join(lines[:FORMAT_PREVIEW_LINES]))
    if fmt is None:
        raise ValueError(
            "Unable to determine file format. "
            "Please ensure your file is from 23andMe, Ancestry.com, or SelfDecode."
        )

    data_lines = [
        line.strip()
        for line in lines[fmt.skip_lines:]
        if line.strip() and not line.strip().startswith("#")
    ]
    if not data_lines:
        return {}

    frame = _read_rows(data_lines, fmt)
    if fmt.combined_genotype:
        frame = _split_genotypes(frame)
    else:
        frame = frame.with_columns(_clean(pl.col("allele1")), _clean(pl.col("allele2")))

    frame = (
        frame.with_columns(_clean(pl.col("rsid")))
        .filter(pl.col("rsid").str.contains(r"^RS\d+$"))
        .with_columns(_canonical_allele("allele1"), _canonical_allele("allele2"))
    )
    return {
        rsid: (allele1, allele2)
        for rsid, allele1, allele2 in frame.select("rsid", "allele1", "allele2").iter_rows()
    }


def detect_genome_date(content: str) -> str | None:
    for index, line in enumerate(content.splitlines()):
        if index >= 200:
            break
        if not line.startswith("#"):
            continue
        text = line.lstrip("#").strip()
        match = _GENERATED_AT.search(text)
        if match:
            return match.group(1).strip()
        match = _DATE_TOKEN.search(text)
        if match:
            return match.group(1)
    return None


def load_genetic_data(path: Path | str) -> GeneticDataFile:
    genome_path = Path(path)
    if not genome_path.exists():
        raise FileNotFoundError(f"Genome file not found: {genome_path}")
    content = genome_path.read_text(encoding="utf-8", errors="ignore")
    data = parse_genetic_data(content)
    genome_date = detect_genome_date(content)
    print(f"Loaded {len(data)} genetic markers from {genome_path.name}")
    if genome_date:
        print(f"Genome dated: {genome_date}")
    return GeneticDataFile(data=data, date=genome_date, file_name=genome_path.name)


def main() -> int:
    parser = argparse.ArgumentParser(description="Parse a raw genome file and record its stats.")
    parser.add_argument("genome_file", help="23andMe, AncestryDNA or SelfDecode raw data file.")
    parser.add_argument("--run-date", default=None, help="Run folder date (YYYYMMDD).")
    args = parser.parse_args()

    try:
        genome = load_genetic_data(args.genome_file)
    except (FileNotFoundError, ValueError) as exc:
        print(exc)
        return 1

    missing = sum(1 for allele1, allele2 in genome.data.values() if MISSING_ALLELE in (allele1, allele2))
    print(f"No-calls: {missing}")
    base_name = resolve_base_name(args.genome_file)
    update_summary(
        run_root(base_name, args.run_date),
        {
            "genome_file": genome.file_name,
            "genome_date": genome.date,
            "genetic_markers": len(genome.data),
            "no_calls": missing,
        },
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
