# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "beautifulsoup4",
#     "html5lib",
#     "polars",
#     "requests",
# ]
# ///

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

from genome_parser import load_genetic_data
from run_utils import resolve_base_name, run_root, update_summary, write_json
from section_summary import (
    GrandTotals,
    SectionSummary,
    calculate_section_summaries,
    generate_grand_summary_html,
    grand_totals,
    insert_summaries,
)
from snp_reference import REFERENCE_PATH, ReferenceEntry, ReferenceTable, load_reference
from template_loader import load_template
from template_processor import (
    count_snp_subsections,
    extract_template_title,
    transform_template,
    wrap_report_document,
)
from zygosity import GeneticData, SnpResult, Zygosity, extract_rsids, get_snp_results


@dataclass(frozen=True)
class GeneratedReport:
    html: str
    summaries: list[SectionSummary]
    totals: GrandTotals
    results: dict[str, SnpResult]

    @property
    def rsids(self) -> list[str]:
        return list(self.results)

    def state_counts(self) -> dict[str, int]:
        counts = {state.value: 0 for state in Zygosity}
        for result in self.results.values():
            counts[result.zygosity.value] += 1
        return counts


def generate_report(
    template_text: str,
    genetic_data: GeneticData,
    reference: ReferenceTable | Iterable[ReferenceEntry | Mapping[str, Any]] | None,
    *,
    genome_file_name: str | None = None,
    genome_date: str | None = None,
    show_detailed_annotations: bool = False,
    show_all_subsections: bool = False,
    generated_on: date | None = None,
) -> GeneratedReport:
    """Run the full personalization flow over an already-loaded template.

    Returns the report body (unsanitized, not yet wrapped in a document) together
    with the section summaries, grand totals and per-rsID results it was built from.
    """
    rsids = extract_rsids(template_text)
    results = get_snp_results(rsids, genetic_data, reference)
    summaries = calculate_section_summaries(template_text, results)
    grand_summary_html = generate_grand_summary_html(summaries, show_detailed_annotations)
    body = transform_template(
        template_text,
        results,
        genome_file_name,
        genome_date,
        grand_summary_html,
        show_detailed_annotations,
        show_all_subsections,
        generated_on=generated_on,
    )
    body = insert_summaries(body, summaries)
    return GeneratedReport(
        html=body,
        summaries=summaries,
        totals=grand_totals(summaries),
        results=results,
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Personalize an rsID template with raw genome data.")
    parser.add_argument("template", help="HTML template file or http(s) URL")
    parser.add_argument("genome_file", help="Raw genome file (23andMe, AncestryDNA or SelfDecode)")
    parser.add_argument("--reference", help=f"SNP reference CSV/JSON (default: {REFERENCE_PATH.name})")
    parser.add_argument(
        "--detailed",
        action="store_true",
        help="Show alleles, effect allele and gene next to each rsID",
    )
    parser.add_argument(
        "--show-all-subsections",
        action="store_true",
        help="Keep subsections whose rsIDs are all Wild or Data Missing",
    )
    parser.add_argument("--title", help="Report title (default: taken from the template)")
    parser.add_argument("--run-date", help="Run date in YYYYMMDD (optional)")
    args = parser.parse_args(argv)

    try:
        template_text = load_template(args.template)
        reference = load_reference(args.reference)
        genome = load_genetic_data(args.genome_file)
    except (FileNotFoundError, ValueError) as exc:
        print(exc)
        return 1

    title = args.title or extract_template_title(template_text)
    print(f"Template: {title} ({count_snp_subsections(template_text)} SNP subsections)")

    report = generate_report(
        template_text,
        genome.data,
        reference,
        genome_file_name=genome.file_name,
        genome_date=genome.date,
        show_detailed_annotations=args.detailed,
        show_all_subsections=args.show_all_subsections,
    )
    print(f"Found {len(report.rsids)} unique RS IDs in template")
    print(
        f"Sections summarized: {len(report.summaries)} | "
        f"Homozygous: {report.totals.homozygous} | Heterozygous: {report.totals.heterozygous}"
    )

    base_name = resolve_base_name(args.genome_file)
    run_dir = run_root(base_name, args.run_date)
    report_path = run_dir / f"{base_name}_Report.html"
    report_path.write_text(wrap_report_document(report.html, title), encoding="utf-8")
    summaries_path = run_dir / "section_summaries.json"
    write_json(
        summaries_path,
        {
            "sections": [summary.to_dict() for summary in report.summaries],
            "grand_totals": report.totals.to_dict(),
        },
    )
    update_summary(
        run_dir,
        {
            "base_name": base_name,
            "template": str(args.template),
            "report_title": title,
            "genome_file": genome.file_name,
            "genome_date": genome.date,
            "genetic_markers": len(genome.data),
            "template_rsids": len(report.rsids),
            "zygosity_counts": report.state_counts(),
            "report_html": str(report_path),
            "section_summaries": str(summaries_path),
        },
    )

    print(f"Generated report in {run_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
