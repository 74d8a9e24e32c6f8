"""Link graph: forward wiki-links and derived backlinks, persisted as links.json.

``forward[slug]`` is the ordered list of links written in an article body.
``backlinks[target]`` lists the ``{slug, scope}`` sources that link to
``target``; it is always the transpose of ``forward`` and can be re-derived
at any time with ``rebuild_link_graph``.

Each update replaces an article's outgoing links wholesale: its old
footprint is purged from every backlink list before the new one is added.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from .metadata_index import parse_or_skip
from .models import BacklinkEntry, LinkEntry, LinkGraph, MetadataIndex, Scope
from .parser.links import ParsedWikiLink, parse_wiki_links
from .scope import ScopePaths
from .storage import StorageAdapter, default_storage

log = logging.getLogger(__name__)


def load_link_graph(paths: ScopePaths, storage: StorageAdapter = default_storage) -> LinkGraph:
    """Load the link graph for a scope. Missing or corrupt files give an empty graph."""
    try:
        payload: dict[str, Any] = json.loads(storage.read_file(paths.links_file))
        return LinkGraph.model_validate(payload)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        log.debug("Using empty link graph for %s: %s", paths.links_file, e)
        return LinkGraph()


def save_link_graph(
    paths: ScopePaths,
    graph: LinkGraph,
    storage: StorageAdapter = default_storage,
) -> None:
    storage.write_file(
        paths.links_file, json.dumps(graph.to_json_dict(), indent=2, ensure_ascii=False)
    )


# ─────────────────────────────────────────────────────────────────────────────
# In-memory graph operations
# ─────────────────────────────────────────────────────────────────────────────


def _remove_backlinks_from(graph: LinkGraph, from_slug: str, from_scope: Scope) -> None:
    """Drop every backlink entry pointing FROM the given article."""
    for target in list(graph.backlinks):
        remaining = [
            b
            for b in graph.backlinks[target]
            if not (b.slug == from_slug and b.scope == from_scope.value)
        ]
        if remaining:
            graph.backlinks[target] = remaining
        else:
            del graph.backlinks[target]


def _add_backlink(graph: LinkGraph, target: str, source: BacklinkEntry) -> None:
    existing = graph.backlinks.setdefault(target, [])
    if source not in existing:
        existing.append(source)


def apply_links(
    graph: LinkGraph,
    slug: str,
    parsed_links: list[ParsedWikiLink],
    from_scope: Scope,
) -> None:
    """Replace an article's forward links and re-derive its backlinks."""
    _remove_backlinks_from(graph, slug, from_scope)

    entries = [
        LinkEntry(slug=link.slug, scope=link.scope, display_text=link.display_text)
        for link in parsed_links
    ]
    if entries:
        graph.forward[slug] = entries
    else:
        graph.forward.pop(slug, None)

    source = BacklinkEntry(slug=slug, scope=from_scope.value)
    for entry in entries:
        _add_backlink(graph, entry.slug, source)

    # Incoming links that were left dangling by an earlier removal.
    for source_slug, source_entries in graph.forward.items():
        if any(e.slug == slug for e in source_entries):
            _add_backlink(graph, slug, BacklinkEntry(slug=source_slug, scope=from_scope.value))


def apply_removal(graph: LinkGraph, slug: str, from_scope: Scope) -> None:
    """Remove a deleted article's forward links and footprint.

    Incoming links to the article are left in their sources' forward lists
    and become dangling. Writing the article again restores their backlinks.
    """
    graph.forward.pop(slug, None)
    _remove_backlinks_from(graph, slug, from_scope)
    graph.backlinks.pop(slug, None)


def transpose(forward: dict[str, list[LinkEntry]], scope: Scope) -> dict[str, list[BacklinkEntry]]:
    """Backlinks implied by a forward map, one entry per (source, target) pair."""
    backlinks: dict[str, list[BacklinkEntry]] = {}
    for source, entries in forward.items():
        backlink = BacklinkEntry(slug=source, scope=scope.value)
        for entry in entries:
            sources = backlinks.setdefault(entry.slug, [])
            if backlink not in sources:
                sources.append(backlink)
    return backlinks


def count_links(graph: LinkGraph) -> int:
    return sum(len(entries) for entries in graph.forward.values())


# ─────────────────────────────────────────────────────────────────────────────
# Persistent operations
# ─────────────────────────────────────────────────────────────────────────────


def update_links(
    paths: ScopePaths,
    slug: str,
    parsed_links: list[ParsedWikiLink],
    from_scope: Scope,
    storage: StorageAdapter = default_storage,
) -> None:
    """Update forward links for an article and recompute its backlinks.

    Idempotent: repeating the call with the same links changes nothing.
    """
    graph = load_link_graph(paths, storage)
    apply_links(graph, slug, parsed_links, from_scope)
    save_link_graph(paths, graph, storage)


def remove_links(
    paths: ScopePaths,
    slug: str,
    from_scope: Scope,
    storage: StorageAdapter = default_storage,
) -> None:
    """Remove all forward links and backlinks for a deleted article."""
    graph = load_link_graph(paths, storage)
    apply_removal(graph, slug, from_scope)
    save_link_graph(paths, graph, storage)


def get_forward_links(
    paths: ScopePaths,
    slug: str,
    storage: StorageAdapter = default_storage,
) -> list[LinkEntry]:
    return load_link_graph(paths, storage).forward.get(slug, [])


def get_backlinks(
    paths: ScopePaths,
    slug: str,
    storage: StorageAdapter = default_storage,
) -> list[BacklinkEntry]:
    return load_link_graph(paths, storage).backlinks.get(slug, [])


def rebuild_link_graph(
    paths: ScopePaths,
    scope: Scope,
    index: MetadataIndex,
    storage: StorageAdapter = default_storage,
) -> int:
    """Re-derive the whole graph from the bodies of every indexed article.

    Applies the same update step as ``update_links`` per article, in slug
    order, then saves once. Returns the number of forward link entries.
    """
    graph = LinkGraph()

    for slug in sorted(index.articles):
        parsed = parse_or_skip(index.articles[slug].file_path, storage)
        if parsed is None:
            continue
        _, body = parsed
        apply_links(graph, slug, parse_wiki_links(body), scope)

    save_link_graph(paths, graph, storage)
    return count_links(graph)


def check_cross_scope_warnings(
    parsed_links: list[ParsedWikiLink],
    from_scope: Scope,
) -> list[str]:
    """Warn when a global article links into the local scope.

    Global content should not depend on machine-local content. This is a
    policy check only; it never blocks a write.
    """
    if from_scope is not Scope.GLOBAL:
        return []
    return [
        f"Warning: global article links to local '{link.slug}'. "
        "Global articles should not depend on local scope."
        for link in parsed_links
        if link.scope == Scope.LOCAL.value
    ]
