from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from typing import Any, Iterable, Mapping

from html_tree import (
    GRAND_SUMMARY_ID,
    SECTION_TAG,
    fragment_nodes,
    heading_text,
    inner_html,
    insert_after_all,
    parse_html,
    section_headings,
    section_id,
    section_span,
)
from zygosity import STATE_LABELS, STATE_STYLES, SnpResult, Zygosity, extract_rsids

SUMMARY_MARKERS = ("Summary Placeholder", "Summary Block")

_LEGEND_MEANINGS: dict[Zygosity, str] = {
    Zygosity.HOMOZYGOUS: "both copies carry the effect allele",
    Zygosity.HETEROZYGOUS: "one copy carries the effect allele",
    Zygosity.WILD: "neither copy carries the effect allele",
    Zygosity.DATA_MISSING: "no genotype call in the genome file",
    Zygosity.REFERENCE_MISSING: "no effect allele on record",
}
_HEADER_ROW_STYLE = "background-color: #f3f4f6; text-align: left;"
_CELL_STYLE = "padding: 6px 10px; border: 1px solid #d1d5db;"


def _empty_counts() -> dict[Zygosity, int]:
    return {state: 0 for state in Zygosity}


def _pct(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def _count_text(count: int, total: int) -> str:
    return f"{count} ({_pct(count, total):.1f}%)"


@dataclass(frozen=True)
class SectionSummary:
    section_name: str
    counts: Mapping[Zygosity, int] = field(default_factory=_empty_counts)
    total_count: int = 0

    def count(self, state: Zygosity) -> int:
        return self.counts.get(state, 0)

    def percent(self, state: Zygosity) -> float:
        return _pct(self.count(state), self.total_count)

    @property
    def homozygous_count(self) -> int:
        return self.count(Zygosity.HOMOZYGOUS)

    @property
    def heterozygous_count(self) -> int:
        return self.count(Zygosity.HETEROZYGOUS)

    @property
    def wild_count(self) -> int:
        return self.count(Zygosity.WILD)

    @property
    def missing_count(self) -> int:
        return self.count(Zygosity.DATA_MISSING)

    @property
    def reference_missing_count(self) -> int:
        return self.count(Zygosity.REFERENCE_MISSING)

    @property
    def homozygous_percent(self) -> float:
        return self.percent(Zygosity.HOMOZYGOUS)

    @property
    def heterozygous_percent(self) -> float:
        return self.percent(Zygosity.HETEROZYGOUS)

    @property
    def wild_percent(self) -> float:
        return self.percent(Zygosity.WILD)

    @property
    def missing_percent(self) -> float:
        return self.percent(Zygosity.DATA_MISSING)

    @property
    def reference_missing_percent(self) -> float:
        return self.percent(Zygosity.REFERENCE_MISSING)

    @property
    def anchor(self) -> str:
        return section_id(self.section_name)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "section_name": self.section_name,
            "section_id": self.anchor,
            "total_count": self.total_count,
        }
        for state in Zygosity:
            key = state.name.lower()
            payload[f"{key}_count"] = self.count(state)
            payload[f"{key}_percent"] = round(self.percent(state), 1)
        return payload


@dataclass(frozen=True)
class GrandTotals:
    total: int
    homozygous: int
    heterozygous: int
    wild: int
    data_missing: int
    reference_missing: int

    @property
    def snps_with_data(self) -> int:
        return self.total - self.data_missing

    def percent(self, count: int) -> float:
        return _pct(count, self.total)

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "snps_with_data": self.snps_with_data,
            "homozygous": self.homozygous,
            "heterozygous": self.heterozygous,
            "wild": self.wild,
            "data_missing": self.data_missing,
            "reference_missing": self.reference_missing,
        }


def calculate_section_summaries(
    html_content: str,
    snp_results: Mapping[str, SnpResult],
) -> list[SectionSummary]:
    """Tally zygosity states per ``<h3>`` section.

    A section spans the sibling elements after its heading up to the next ``<h3>``.
    Intro sections and sections without any rsID are left out. An rsID with no
    entry in ``snp_results`` still counts toward the section total.
    """
    soup = parse_html(html_content)
    summaries: list[SectionSummary] = []
    for heading in section_headings(soup):
        text = " ".join(element.get_text(" ") for element in section_span(heading))
        rsids = extract_rsids(text)
        if not rsids:
            continue
        counts = _empty_counts()
        for rsid in rsids:
            result = snp_results.get(rsid)
            if result is not None:
                counts[result.zygosity] += 1
        summaries.append(SectionSummary(heading_text(heading), counts, len(rsids)))
    return summaries


def grand_totals(summaries: Iterable[SectionSummary]) -> GrandTotals:
    # Sums per section; an rsID discussed in two sections is counted twice.
    totals = _empty_counts()
    total = 0
    for summary in summaries:
        total += summary.total_count
        for state in Zygosity:
            totals[state] += summary.count(state)
    return GrandTotals(
        total=total,
        homozygous=totals[Zygosity.HOMOZYGOUS],
        heterozygous=totals[Zygosity.HETEROZYGOUS],
        wild=totals[Zygosity.WILD],
        data_missing=totals[Zygosity.DATA_MISSING],
        reference_missing=totals[Zygosity.REFERENCE_MISSING],
    )


def _totals_line(totals: GrandTotals) -> str:
    return (
        '<p class="summary-totals">'
        f"<strong>Total SNPs in template:</strong> {totals.total} | "
        f"<strong>SNPs with data:</strong> {totals.snps_with_data} | "
        f'<span style="{STATE_STYLES[Zygosity.HOMOZYGOUS]}">Homozygous: '
        f"{_count_text(totals.homozygous, totals.total)}</span> | "
        f'<span style="{STATE_STYLES[Zygosity.HETEROZYGOUS]}">Heterozygous: '
        f"{_count_text(totals.heterozygous, totals.total)}</span>"
        "</p>"
    )


def _summary_row(summary: SectionSummary) -> str:
    name = escape(summary.section_name)
    cells = [f'<td style="{_CELL_STYLE}"><a href="#{summary.anchor}">{name}</a></td>']
    for state in Zygosity:
        cells.append(
            f'<td style="{_CELL_STYLE} {STATE_STYLES[state]}">'
            f"{_count_text(summary.count(state), summary.total_count)}</td>"
        )
    cells.append(f'<td style="{_CELL_STYLE}">{summary.total_count}</td>')
    return "<tr>" + "".join(cells) + "</tr>"


def _legend_html() -> str:
    items = "".join(
        f'<li><span style="{STATE_STYLES[state]}">[{STATE_LABELS[state]}]</span> {meaning}</li>'
        for state, meaning in _LEGEND_MEANINGS.items()
    )
    return (
        '<div class="annotation-legend" style="margin-top: 12px; font-size: 0.9em;">'
        "<strong>Annotation legend</strong>"
        f'<ul style="list-style: none; padding-left: 0;">{items}</ul>'
        "<p>Detail in parentheses: observed alleles, effect allele, gene.</p>"
        "</div>"
    )


def generate_grand_summary_html(
    summaries: Iterable[SectionSummary],
    show_detailed_annotations: bool = False,
) -> str:
    summaries = list(summaries)
    totals = grand_totals(summaries)
    ordered = sorted(summaries, key=lambda summary: summary.homozygous_percent, reverse=True)

    header_cells = ["Section", *(state.value for state in Zygosity), "Total"]
    header = "".join(f'<th style="{_CELL_STYLE}">{label}</th>' for label in header_cells)
    rows = "".join(_summary_row(summary) for summary in ordered)

    parts = [
        f'<div id="{GRAND_SUMMARY_ID}" class="grand-summary" '
        'style="margin: 20px 0; padding: 15px; border: 1px solid #d1d5db; border-radius: 5px;">',
        '<h2 style="margin-top: 0;">Grand Summary</h2>',
        _totals_line(totals),
        '<table class="summary-table" style="border-collapse: collapse; width: 100%;">',
        f'<thead><tr style="{_HEADER_ROW_STYLE}">{header}</tr></thead>',
        f"<tbody>{rows}</tbody>",
        "</table>",
    ]
    if show_detailed_annotations:
        parts.append(_legend_html())
    parts.append("</div>")
    return "".join(parts)


def _section_block_html(summary: SectionSummary) -> str:
    lines = [
        (Zygosity.HOMOZYGOUS, "Homozygous"),
        (Zygosity.HETEROZYGOUS, "Heterozygous"),
        (Zygosity.WILD, "Wild Type"),
    ]
    if summary.missing_count:
        lines.append((Zygosity.DATA_MISSING, "Data Missing"))
    if summary.reference_missing_count:
        lines.append((Zygosity.REFERENCE_MISSING, "Reference Missing"))
    items = "".join(
        f'<li><span style="{STATE_STYLES[state]}">{label}: '
        f"{_count_text(summary.count(state), summary.total_count)}</span></li>"
        for state, label in lines
    )
    return (
        '<div class="section-summary" '
        'style="background-color: #f0f0f0; padding: 15px; margin: 10px 0; border-radius: 5px;">'
        f'<h4 style="margin-top: 0;">Summary for {escape(summary.section_name)}</h4>'
        f"<p><strong>Total SNPs analyzed:</strong> {summary.total_count}</p>"
        f'<ul style="list-style: none; padding-left: 0;">{items}</ul>'
        "</div>"
    )


def insert_summaries(html_content: str, summaries: Iterable[SectionSummary]) -> str:
    """Place each section's summary block after its "Summary Placeholder"/"Summary Block" element."""
    soup = parse_html(html_content)
    headings = soup.find_all(SECTION_TAG)
    for summary in summaries:
        heading = next((h for h in headings if h.get("id") == summary.anchor), None)
        if heading is None:
            heading = next((h for h in headings if heading_text(h) == summary.section_name), None)
        if heading is None:
            continue
        for element in section_span(heading):
            text = element.get_text()
            if not any(marker in text for marker in SUMMARY_MARKERS):
                continue
            insert_after_all(element, fragment_nodes(_section_block_html(summary)))
            break
    return inner_html(soup)
