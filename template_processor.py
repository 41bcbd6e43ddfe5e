from __future__ import annotations

import re
from datetime import date
from html import escape
from typing import Mapping

from bs4 import BeautifulSoup, Tag

from html_tree import (
    GRAND_SUMMARY_ID,
    HEADING_TAGS,
    content_root,
    fragment_nodes,
    has_class,
    heading_text,
    inner_html,
    insert_after_all,
    insert_before_all,
    normalized_text,
    parse_html,
    replace_text,
    section_headings,
    section_id,
)
from zygosity import RSID_PATTERN, STATE_LABELS, STATE_STYLES, SnpResult, Zygosity, extract_rsids

DEFAULT_TITLE = "Genetic Report"
DATE_FORMAT = "%B %d, %Y"
SUBSECTION_SELECTOR = 'li[class*="li-bullet"]'
GENERATED_CLASSES = ("grand-summary", "report-metadata", "return-to-summary", "section-summary")

_CALLED_STATES = {Zygosity.HOMOZYGOUS, Zygosity.HETEROZYGOUS, Zygosity.WILD}
_HIDDEN_STATES = {Zygosity.WILD, Zygosity.DATA_MISSING}

_PHRASE_PATTERN = re.compile(
    r"(SNPs:)|(Follow-up Labs:|Recommended Labs:|Recommended Actions:)",
    re.IGNORECASE,
)

REPORT_STYLESHEET = """\
body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, Cantarell, sans-serif;
  line-height: 1.6;
  max-width: 1200px;
  margin: 0 auto;
  padding: 20px;
  color: #333;
}
h1, h2, h3, h4 {
  color: #1f2937;
}
li {
  margin-bottom: 15px;
}
b, strong, .bold {
  font-weight: bold !important;
}
table {
  border-collapse: collapse;
  margin: 10px 0;
}
th, td {
  padding: 10px;
  text-align: left;
  border-bottom: 1px solid #e5e7eb;
}
th {
  background-color: #f3f4f6;
  font-weight: 600;
}
tr:hover {
  background-color: #f9fafb;
}
a {
  color: #667eea;
  text-decoration: none;
}
a:hover {
  text-decoration: underline;
}
"""


def _report_date(generated_on: date | None) -> str:
    return (generated_on or date.today()).strftime(DATE_FORMAT)


def _is_generated(tag: Tag) -> bool:
    return has_class(tag, GENERATED_CLASSES)


def _metadata_html(
    genome_file_name: str | None,
    genome_date: str | None,
    generated_on: date | None,
) -> str:
    lines = []
    if genome_file_name:
        lines.append(f"<p><strong>Genome file:</strong> {escape(genome_file_name)}</p>")
    if genome_date:
        lines.append(f"<p><strong>Genome date:</strong> {escape(genome_date)}</p>")
    lines.append(f"<p><strong>Report generated:</strong> {_report_date(generated_on)}</p>")
    return (
        '<div class="report-metadata" style="margin: 10px 0 20px; padding: 10px 15px; '
        'background-color: #f9fafb; border-left: 4px solid #667eea;">'
        + "".join(lines)
        + "</div>"
    )


def _insert_metadata(
    root: Tag,
    genome_file_name: str | None,
    genome_date: str | None,
    generated_on: date | None,
) -> Tag | None:
    heading = root.find(HEADING_TAGS)
    if heading is None:
        return None
    return insert_after_all(heading, fragment_nodes(_metadata_html(genome_file_name, genome_date, generated_on)))


def _place_grand_summary(root: Tag, markup: str, metadata: Tag | None) -> None:
    nodes = fragment_nodes(markup)
    headings = root.find_all(HEADING_TAGS)

    toc = next((h for h in headings if "table of contents" in normalized_text(h)), None)
    if toc is not None:
        insert_before_all(toc, nodes)
        toc.decompose()
        return

    intro = next((h for h in headings if "intro" in normalized_text(h)), None)
    if intro is not None:
        insert_before_all(intro, nodes)
        return

    if metadata is not None:
        insert_after_all(metadata, nodes)
        return

    for position, node in enumerate(nodes):
        root.insert(position, node)


def _anchor_sections(root: Tag) -> list[Tag]:
    headings = section_headings(root)
    for heading in headings:
        heading["id"] = section_id(heading_text(heading))
    return headings


def _insert_return_links(headings: list[Tag]) -> None:
    for heading in headings[1:]:
        insert_before_all(
            heading,
            fragment_nodes(
                '<p class="return-to-summary" style="text-align: center; margin: 20px 0;">'
                f'<a href="#{GRAND_SUMMARY_ID}">↑ Return to Grand Summary</a></p>'
            ),
        )


def _annotation_detail(result: SnpResult) -> str:
    if result.zygosity in _CALLED_STATES:
        parts = [result.alleles]
        if result.effect_allele:
            parts.append(f"effect: {result.effect_allele}")
        if result.gene:
            parts.append(f"gene: {result.gene}")
    elif result.zygosity is Zygosity.REFERENCE_MISSING:
        parts = [result.alleles]
    else:
        parts = []
        if result.effect_allele:
            parts.append(f"effect: {result.effect_allele}")
        if result.gene:
            parts.append(f"gene: {result.gene}")
    return ", ".join(parts)


def _annotate(match: re.Match[str], snp_results: Mapping[str, SnpResult], detailed: bool) -> str:
    text = escape(match.group(0))
    result = snp_results.get(match.group(0).upper())
    if result is None:
        return f'<span style="color: grey;">{text} [Data Missing]</span>'
    style = STATE_STYLES[result.zygosity]
    label = STATE_LABELS[result.zygosity]
    if detailed:
        detail = _annotation_detail(result)
        if detail:
            label = f"{label} ({escape(detail)})"
    return f'{text} <span style="{style}">[{label}]</span>'


def _subsection_state(rsid: str, snp_results: Mapping[str, SnpResult]) -> Zygosity:
    result = snp_results.get(rsid)
    return result.zygosity if result else Zygosity.DATA_MISSING


def _hide(tag: Tag) -> None:
    style = (tag.get("style") or "").strip()
    if style and not style.endswith(";"):
        style += ";"
    tag["style"] = f"{style} display: none;".strip()


def _suppress_subsections(subsections: list[Tag], snp_results: Mapping[str, SnpResult]) -> list[Tag]:
    visible = []
    for item in subsections:
        rsids = extract_rsids(item.get_text(" "))
        if rsids and all(_subsection_state(rsid, snp_results) in _HIDDEN_STATES for rsid in rsids):
            _hide(item)
            continue
        visible.append(item)
    return visible


def _has_text(node) -> bool:
    if isinstance(node, Tag):
        return bool(node.get_text().strip())
    return bool(str(node).strip())


def _emphasize_lead_lines(soup: BeautifulSoup, subsections: list[Tag]) -> None:
    for item in subsections:
        if not RSID_PATTERN.search(item.get_text(" ")):
            continue
        br = item.find("br")
        if br is None:
            continue
        # Only the siblings that precede the first <br> inside its own parent.
        lead = list(br.previous_siblings)[::-1]
        if not any(_has_text(node) for node in lead):
            continue
        strong = soup.new_tag("strong")
        br.insert_before(strong)
        for node in lead:
            strong.append(node.extract())


def _emphasize_phrase(match: re.Match[str]) -> str:
    tag = "strong" if match.group(1) else "em"
    return f"<{tag}>{escape(match.group(0))}</{tag}>"


def transform_template(
    html_content: str,
    snp_results: Mapping[str, SnpResult],
    genome_file_name: str | None = None,
    genome_date: str | None = None,
    grand_summary_html: str | None = None,
    show_detailed_annotations: bool = False,
    show_all_subsections: bool = False,
    *,
    generated_on: date | None = None,
) -> str:
    """Annotate every rsID in the template with its zygosity and build the report body.

    Passes run in order: metadata, grand-summary placement, section anchors,
    return links, rsID substitution, subsection suppression, lead-line emphasis,
    phrase emphasis. Returns the inner markup of ``<body>`` (or of the whole
    fragment). The markup is not sanitized.
    """
    for name, flag in (
        ("show_detailed_annotations", show_detailed_annotations),
        ("show_all_subsections", show_all_subsections),
    ):
        if not isinstance(flag, bool):
            raise TypeError(f"{name} must be a bool, got {type(flag).__name__}")

    soup = parse_html(html_content)
    root = content_root(soup)

    metadata = _insert_metadata(root, genome_file_name, genome_date, generated_on)
    if grand_summary_html:
        _place_grand_summary(root, grand_summary_html, metadata)

    headings = _anchor_sections(root)
    if grand_summary_html:
        _insert_return_links(headings)

    replace_text(
        root,
        RSID_PATTERN,
        lambda match: _annotate(match, snp_results, show_detailed_annotations),
        skip=_is_generated,
    )

    subsections = root.select(SUBSECTION_SELECTOR)
    if not show_all_subsections:
        subsections = _suppress_subsections(subsections, snp_results)
    _emphasize_lead_lines(soup, subsections)

    replace_text(root, _PHRASE_PATTERN, _emphasize_phrase)
    return inner_html(soup)


def extract_template_title(content: str) -> str:
    soup = parse_html(content)
    if soup.title and soup.title.get_text().strip():
        return soup.title.get_text().strip()
    heading = soup.find(["h1", "h2"])
    if heading is not None and heading_text(heading):
        return heading_text(heading)
    return DEFAULT_TITLE


def count_snp_subsections(content: str) -> int:
    soup = parse_html(content)
    return sum(1 for item in soup.find_all("li") if RSID_PATTERN.search(item.get_text(" ")))


def wrap_report_document(body_html: str, title: str, *, generated_on: date | None = None) -> str:
    """Standalone HTML document for download, titled "<title> - <date>"."""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"  <title>{escape(title)} - {_report_date(generated_on)}</title>\n"
        f"  <style>\n{REPORT_STYLESHEET}  </style>\n"
        "</head>\n"
        "<body>\n"
        f"{body_html}\n"
        "</body>\n"
        "</html>\n"
    )
