"""Whoosh-based in-memory keyword index over one scope's articles."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from whoosh.fields import ID, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.query import FuzzyTerm, Or, Prefix, Query, Term

from ..config import (
    ALIASES_BOOST,
    BODY_BOOST,
    FUZZY_RATIO,
    FUZZY_WEIGHT,
    PREFIX_WEIGHT,
    TAGS_BOOST,
    TITLE_BOOST,
)
from ..metadata_index import load_index, parse_or_skip
from ..models import MetadataIndex
from ..scope import ScopePaths
from ..storage import StorageAdapter, default_storage
from .tokenizer import tokenize, vault_analyzer

log = logging.getLogger(__name__)

# RamStorage stages compound segments in a shared temp directory named after
# the index, so writers from different indexes must not commit concurrently.
_WRITE_LOCK = threading.Lock()

FIELD_BOOSTS: dict[str, float] = {
    "title": TITLE_BOOST,
    "body": BODY_BOOST,
    "tags": TAGS_BOOST,
    "aliases": ALIASES_BOOST,
}


@dataclass
class IndexHit:
    """A raw hit: slug, relevance score and the terms matched per field."""

    slug: str
    score: float
    matches: dict[str, list[str]] = field(default_factory=dict)


def _fuzzy_distance(term: str) -> int:
    return round(len(term) * FUZZY_RATIO)


class WhooshIndex:
    """Keyword search with exact, prefix and fuzzy term matching."""

    def __init__(self) -> None:
        analyzer = vault_analyzer()
        self._schema = Schema(
            slug=ID(stored=True, unique=True),
            title=TEXT(analyzer=analyzer, phrase=False),
            body=TEXT(analyzer=analyzer, phrase=False),
            tags=TEXT(analyzer=analyzer, phrase=False),
            aliases=TEXT(analyzer=analyzer, phrase=False),
        )
        self._index = RamStorage().create_index(self._schema)

    def build(
        self,
        paths: ScopePaths,
        index: MetadataIndex | None = None,
        storage: StorageAdapter = default_storage,
    ) -> int:
        """Index every article in a scope, reading bodies fresh from disk.

        Articles whose files are unreadable or have invalid frontmatter are
        skipped. Returns the number of documents indexed.
        """
        index = index if index is not None else load_index(paths, storage)
        documents = []
        for slug, meta in index.articles.items():
            parsed = parse_or_skip(meta.file_path, storage)
            if parsed is None:
                continue
            _, body = parsed
            documents.append(
                {
                    "slug": slug,
                    "title": meta.title,
                    "body": body,
                    "tags": " ".join(meta.tags),
                    "aliases": " ".join(meta.aliases or []),
                }
            )

        with _WRITE_LOCK:
            writer = self._index.writer()
            for document in documents:
                writer.update_document(**document)
            writer.commit()
        count = len(documents)
        log.debug("Indexed %d articles from %s", count, paths.root)
        return count

    def add_article(
        self,
        slug: str,
        title: str,
        body: str,
        tags: list[str],
        aliases: list[str] | None = None,
    ) -> None:
        """Add or replace a single article."""
        with _WRITE_LOCK:
            writer = self._index.writer()
            writer.update_document(
                slug=slug,
                title=title,
                body=body,
                tags=" ".join(tags),
                aliases=" ".join(aliases or []),
            )
            writer.commit()

    def remove_article(self, slug: str) -> None:
        """Remove an article. Unknown slugs are ignored."""
        with _WRITE_LOCK:
            writer = self._index.writer()
            writer.delete_by_term("slug", slug)
            writer.commit()

    def doc_count(self) -> int:
        return self._index.doc_count()

    def build_query(self, query: str) -> Query | None:
        """OR of exact, prefix and fuzzy clauses for every query term and field.

        Returns None when the query has no tokens.
        """
        terms = tokenize(query)
        if not terms:
            return None

        clauses: list[Query] = []
        for text in terms:
            maxdist = _fuzzy_distance(text)
            for fieldname, boost in FIELD_BOOSTS.items():
                clauses.append(Term(fieldname, text, boost=boost))
                clauses.append(
                    Prefix(fieldname, text, boost=boost * PREFIX_WEIGHT, constantscore=False)
                )
                if maxdist > 0:
                    clauses.append(
                        FuzzyTerm(
                            fieldname,
                            text,
                            boost=boost * FUZZY_WEIGHT,
                            maxdist=maxdist,
                            prefixlength=1,
                            constantscore=False,
                        )
                    )
        return Or(clauses)

    def search(self, query: str) -> list[IndexHit]:
        """Search the index. Hits come back in descending score order."""
        parsed_query = self.build_query(query)
        if parsed_query is None:
            return []

        hits: list[IndexHit] = []
        with self._index.searcher() as searcher:
            results = searcher.search(parsed_query, limit=None, terms=True)
            for hit in results:
                matches: dict[str, list[str]] = {}
                if results.has_matched_terms():
                    for fieldname, text in sorted(hit.matched_terms()):
                        if isinstance(text, bytes):
                            text = text.decode("utf-8")
                        field_terms = matches.setdefault(fieldname, [])
                        if text not in field_terms:
                            field_terms.append(text)
                hits.append(IndexHit(slug=hit["slug"], score=hit.score, matches=matches))
        return hits
