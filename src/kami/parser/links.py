"""Wiki-link extraction from article bodies.

Supported forms::

    [[slug]]
    [[slug|display text]]
    [[scope:slug]]
    [[scope:slug|display text]]

``scope`` is a short lowercase scope name. Slugs may contain any character
except ``]`` and ``|`` (so CJK slugs work), and a match never crosses a
``]]`` boundary.
"""

import re
from dataclasses import dataclass

WIKI_LINK_PATTERN = re.compile(r"\[\[(?:([a-z]+):)?([^\]|]+)(?:\|([^\]]+))?\]\]")


@dataclass(frozen=True)
class ParsedWikiLink:
    raw: str  # full match including [[ ]]
    scope: str | None  # explicit scope prefix
    slug: str
    display_text: str | None


def parse_wiki_links(body: str) -> list[ParsedWikiLink]:
    """Parse all wiki-links from a Markdown body, in document order.

    Duplicates are kept; each occurrence is one entry.
    """
    links: list[ParsedWikiLink] = []
    for match in WIKI_LINK_PATTERN.finditer(body):
        scope, slug, display = match.groups()
        links.append(
            ParsedWikiLink(
                raw=match.group(0),
                scope=scope,
                slug=slug.strip(),
                display_text=display.strip() if display is not None else None,
            )
        )
    return links


def extract_link_slugs(body: str) -> list[str]:
    """Unique target slugs in first-seen order."""
    seen: set[str] = set()
    slugs: list[str] = []
    for link in parse_wiki_links(body):
        if link.slug not in seen:
            seen.add(link.slug)
            slugs.append(link.slug)
    return slugs
