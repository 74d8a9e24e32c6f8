"""Markdown body parsing: wiki-link extraction."""

from .links import WIKI_LINK_PATTERN, ParsedWikiLink, extract_link_slugs, parse_wiki_links

__all__ = [
    "WIKI_LINK_PATTERN",
    "ParsedWikiLink",
    "parse_wiki_links",
    "extract_link_slugs",
]
