"""Search across scopes.

The keyword index is rebuilt from disk for every query, so results always
reflect the current files. Hits are post-filtered against the metadata
index (tags AND, folder exact) and merged across scopes by score.
"""

from __future__ import annotations

from ..config import DEFAULT_SEARCH_LIMIT, SCORE_PRECISION
from ..metadata_index import load_index
from ..models import SearchHit, SearchResponse
from ..scope import ScopePaths
from ..storage import StorageAdapter, default_storage
from .whoosh_index import WhooshIndex


def search_scope(
    query: str,
    paths: ScopePaths,
    *,
    tags: list[str] | None = None,
    folder: str | None = None,
    storage: StorageAdapter = default_storage,
) -> list[SearchHit]:
    """Search one scope with a freshly built index."""
    index = load_index(paths, storage)
    whoosh_index = WhooshIndex()
    whoosh_index.build(paths, index, storage)

    results: list[SearchHit] = []
    for hit in whoosh_index.search(query):
        meta = index.articles.get(hit.slug)
        if meta is None:
            continue
        if tags and not all(tag in meta.tags for tag in tags):
            continue
        if folder and meta.folder != folder:
            continue

        results.append(
            SearchHit(
                slug=hit.slug,
                title=meta.title,
                scope=paths.scope,
                folder=meta.folder,
                score=round(hit.score, SCORE_PRECISION),
                tags=meta.tags,
                matches=hit.matches,
            )
        )
    return results


def merge_results(
    query: str,
    hits: list[SearchHit],
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> SearchResponse:
    """Sort merged hits by score and paginate. ``total`` counts all hits."""
    ordered = sorted(hits, key=lambda hit: hit.score, reverse=True)
    return SearchResponse(results=ordered[:limit], total=len(ordered), query=query)


def search(
    query: str,
    scopes: list[ScopePaths],
    tags: list[str] | None = None,
    folder: str | None = None,
    limit: int = DEFAULT_SEARCH_LIMIT,
    storage: StorageAdapter = default_storage,
) -> SearchResponse:
    """Search every given scope in order and merge the results."""
    hits: list[SearchHit] = []
    for paths in scopes:
        hits.extend(search_scope(query, paths, tags=tags, folder=folder, storage=storage))
    return merge_results(query, hits, limit)
