from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import polars as pl

REFERENCE_PATH = Path(__file__).resolve().parent / "data" / "genes_rs_effect.csv"

_COLUMN_ALIASES: dict[str, str] = {
    "rsid": "rsid",
    "rs_id": "rsid",
    "snp": "rsid",
    "effect_allele": "effect_allele",
    "problem_allele": "effect_allele",
    "risk_allele": "effect_allele",
    "common_allele": "common_allele",
    "wild_allele": "common_allele",
    "gene": "gene",
    "verification_url": "verification_url",
    "confirmation_url": "verification_url",
    "url": "verification_url",
}


def _normalize_key(name: str) -> str:
    key = name.strip().lower().replace(" ", "_").replace("-", "_")
    return _COLUMN_ALIASES.get(key, key)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


@dataclass(frozen=True)
class ReferenceEntry:
    rsid: str
    effect_allele: str | None = None
    common_allele: str | None = None
    gene: str | None = None
    verification_url: str | None = None

    @property
    def has_effect_allele(self) -> bool:
        return bool(self.effect_allele and self.effect_allele.strip())

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ReferenceEntry:
        fields = {_normalize_key(str(key)): value for key, value in record.items()}
        return cls(
            rsid=(_clean(fields.get("rsid")) or "").upper(),
            effect_allele=_clean(fields.get("effect_allele")),
            common_allele=_clean(fields.get("common_allele")),
            gene=_clean(fields.get("gene")) or None,
            verification_url=_clean(fields.get("verification_url")) or None,
        )


class ReferenceTable:
    """Ordered reference entries with case-insensitive rsID lookup (first match wins)."""

    def __init__(self, entries: Iterable[ReferenceEntry] = ()) -> None:
        self._entries: tuple[ReferenceEntry, ...] = tuple(entries)
        self._index: dict[str, ReferenceEntry] = {}
        for entry in self._entries:
            self._index.setdefault(entry.rsid.upper(), entry)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> ReferenceTable:
        return cls(ReferenceEntry.from_record(record) for record in records)

    def lookup(self, rsid: str) -> ReferenceEntry | None:
        return self._index.get(rsid.strip().upper())

    def __iter__(self) -> Iterator[ReferenceEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, rsid: object) -> bool:
        return isinstance(rsid, str) and self.lookup(rsid) is not None


def as_reference_table(
    reference: ReferenceTable | Iterable[ReferenceEntry | Mapping[str, Any]] | None,
) -> ReferenceTable:
    if isinstance(reference, ReferenceTable):
        return reference
    if reference is None:
        return ReferenceTable()
    entries = [
        item if isinstance(item, ReferenceEntry) else ReferenceEntry.from_record(item)
        for item in reference
    ]
    return ReferenceTable(entries)


def _read_frame(path: Path) -> pl.DataFrame:
    if path.suffix.lower() == ".json":
        return pl.read_json(path).select(pl.all().cast(pl.String))
    return pl.read_csv(path, infer_schema_length=0)


def load_reference(path: Path | str | None = None) -> ReferenceTable:
    reference_path = Path(path) if path else REFERENCE_PATH
    if not reference_path.exists():
        raise FileNotFoundError(f"Missing SNP reference file: {reference_path}")
    frame = _read_frame(reference_path)
    frame = frame.rename({col: _normalize_key(col) for col in frame.columns})
    if "rsid" not in frame.columns:
        raise ValueError(f"Reference file has no rsid column: {reference_path}")
    frame = frame.with_columns(
        pl.col("rsid").str.strip_chars().str.to_uppercase()
    ).filter(pl.col("rsid").is_not_null() & (pl.col("rsid") != ""))
    return ReferenceTable.from_records(frame.to_dicts())
