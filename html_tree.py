from __future__ import annotations

import re
from html import escape
from typing import Callable, Iterable

from bs4 import BeautifulSoup, NavigableString, Tag

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SECTION_TAG = "h3"
GRAND_SUMMARY_ID = "grand-summary"

_SKIPPED_PARENTS = {"script", "style", "template", "textarea", "title", "head"}
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def parse_html(content: str) -> BeautifulSoup:
    """Parse with html5lib so implied end tags (an open <p> before <h3>, sibling <li>s) close as in a browser."""
    return BeautifulSoup(content or "", "html5lib")


def content_root(soup: BeautifulSoup) -> Tag:
    return soup.body or soup


def inner_html(soup: BeautifulSoup) -> str:
    return content_root(soup).decode_contents()


def fragment_nodes(markup: str) -> list:
    # Leading whitespace is only kept once the parser is inside <body>.
    return list(content_root(parse_html("<body>" + markup)).contents)


def insert_before_all(target: Tag, nodes: Iterable) -> None:
    for node in nodes:
        target.insert_before(node)


def insert_after_all(target: Tag, nodes: Iterable) -> Tag:
    anchor = target
    for node in nodes:
        anchor.insert_after(node)
        anchor = node
    return anchor


def heading_text(tag: Tag) -> str:
    return tag.get_text().strip()


def normalized_text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ").split()).lower()


def is_intro(name: str) -> bool:
    return "intro" in name.lower()


def section_id(section_name: str) -> str:
    """Anchor id shared by section headings and grand-summary links."""
    return "section-" + _NON_SLUG.sub("-", section_name.lower())


def section_headings(root: Tag) -> list[Tag]:
    headings = []
    for heading in root.find_all(SECTION_TAG):
        name = heading_text(heading)
        if name and not is_intro(name):
            headings.append(heading)
    return headings


def section_span(heading: Tag) -> list[Tag]:
    span: list[Tag] = []
    for sibling in heading.find_next_siblings():
        if sibling.name == SECTION_TAG:
            break
        span.append(sibling)
    return span


def has_class(tag: Tag, names: Iterable[str]) -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(name in classes for name in names)


def iter_text_nodes(
    root: Tag,
    skip: Callable[[Tag], bool] | None = None,
) -> list[NavigableString]:
    nodes: list[NavigableString] = []
    pending = list(reversed(root.contents))
    while pending:
        node = pending.pop()
        if isinstance(node, Tag):
            if node.name in _SKIPPED_PARENTS or (skip and skip(node)):
                continue
            pending.extend(reversed(node.contents))
        elif type(node) is NavigableString:
            nodes.append(node)
    return nodes


def replace_text(
    root: Tag,
    pattern: re.Pattern[str],
    render: Callable[[re.Match[str]], str],
    skip: Callable[[Tag], bool] | None = None,
) -> int:
    """Rewrite every matching text node as markup; returns the number of nodes replaced.

    Text outside the matches is escaped, ``render`` returns markup for each match.
    """
    replaced = 0
    for node in iter_text_nodes(root, skip):
        text = str(node)
        if not pattern.search(text):
            continue
        pieces: list[str] = []
        last = 0
        for match in pattern.finditer(text):
            pieces.append(escape(text[last:match.start()], quote=False))
            pieces.append(render(match))
            last = match.end()
        pieces.append(escape(text[last:], quote=False))
        insert_before_all(node, fragment_nodes("".join(pieces)))
        node.extract()
        replaced += 1
    return replaced
