"""Core business logic for kami.

This module contains the article service used by the CLI.

Design principles:
- All functions are async for consistency; file I/O underneath is synchronous
- A write touches the Markdown file first, then the metadata index, then the
  link graph. There is no rollback; ``reindex`` restores consistency.
- Every function takes an optional ScopeContext; when omitted it is loaded
  from the environment.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path, PurePosixPath
from typing import assert_never

from .config import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    DEFAULT_TEMPLATE,
)
from .errors import ErrorCode, KamiError
from .frontmatter import (
    generate_frontmatter,
    now_iso,
    parse_frontmatter,
    serialize_frontmatter,
)
from .indexer.search import merge_results, search_scope
from .link_graph import (
    check_cross_scope_warnings,
    load_link_graph,
    rebuild_link_graph,
    remove_links,
    update_links,
)
from .metadata_index import (
    SortField,
    SortOrder,
    build_meta,
    filter_articles,
    load_index,
    rebuild_index,
    remove_article,
    sort_key,
    upsert_article,
    validate_sort,
)
from .models import (
    ArticleChanges,
    ArticleListing,
    ArticleMeta,
    ArticleResult,
    BacklinkView,
    LinkEntry,
    LinkView,
    MetadataIndex,
    Operation,
    ReindexResult,
    Scope,
    ScopedArticleMeta,
    ScopeOption,
    SearchResponse,
)
from .parser.links import WIKI_LINK_PATTERN, parse_wiki_links
from .scope import (
    ResolvedScopes,
    ScopeContext,
    ScopePaths,
    ensure_global_scope,
    get_scope_paths,
    get_scope_root,
    resolve_scope,
)
from .storage import default_storage
from .templates import build_template_variables, expand_template, read_template, template_body

log = logging.getLogger(__name__)

storage = default_storage

INVALID_SLUG_CHARS = re.compile(r'[/\\:*?"<>|]')
_SCOPE_VALUES = {scope.value: scope for scope in Scope}


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def title_to_slug(title: str) -> str:
    """Sanitize a title into a file-name-safe slug."""
    return INVALID_SLUG_CHARS.sub("-", title.strip())


def _load_context(context: ScopeContext | None) -> ScopeContext:
    return context if context is not None else ScopeContext.load()


def _paths_for(scope: Scope, cwd: Path | None, context: ScopeContext) -> ScopePaths:
    return get_scope_paths(get_scope_root(scope, cwd, context), context)


def _split_scope_prefix(
    identifier: str,
    scope: Scope | ScopeOption | str | None,
) -> tuple[str, Scope | ScopeOption | str | None]:
    """Strip a ``local:`` / ``global:`` prefix. An explicit scope argument wins."""
    prefix, sep, rest = identifier.partition(":")
    if sep and prefix in _SCOPE_VALUES and rest:
        return rest, scope if scope is not None else _SCOPE_VALUES[prefix]
    return identifier, scope


def _normalize_folder(folder: str | None) -> str:
    if not folder:
        return ""
    normalized = PurePosixPath(folder.replace("\\", "/").strip("/"))
    if normalized.is_absolute() or ".." in normalized.parts:
        raise KamiError.validation_error(f"Invalid folder '{folder}'")
    return "" if str(normalized) == "." else normalized.as_posix()


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _match_in_index(identifier: str, index: MetadataIndex) -> list[ArticleMeta]:
    """Candidates for an identifier within one scope.

    Lookup order: exact slug, ``folder/slug`` path, exact title, alias.
    The first step with any match decides.
    """
    if identifier in index.articles:
        return [index.articles[identifier]]

    articles = list(index.articles.values())
    by_path = [m for m in articles if m.folder and f"{m.folder}/{m.slug}" == identifier]
    if by_path:
        return by_path

    by_title = [m for m in articles if m.title == identifier]
    if by_title:
        return by_title

    return [m for m in articles if m.aliases and identifier in m.aliases]


def _record_links(
    paths: ScopePaths,
    slug: str,
    body: str,
    scope: Scope,
) -> list[str]:
    """Update the link graph for an article body and collect policy warnings."""
    parsed_links = parse_wiki_links(body)
    update_links(paths, slug, parsed_links, scope, storage)
    warnings = check_cross_scope_warnings(parsed_links, scope)
    for warning in warnings:
        log.warning("%s (%s)", warning, slug)
    return warnings


# ─────────────────────────────────────────────────────────────────────────────
# Slug resolution
# ─────────────────────────────────────────────────────────────────────────────


async def resolve_slug(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ScopedArticleMeta:
    """Resolve a typed identifier to a single article.

    Scopes are searched in read order (local first); the first scope with a
    match wins. Several title or alias matches inside that scope are an
    error, never a silent pick.

    Raises:
        KamiError: ARTICLE_NOT_FOUND, AMBIGUOUS_SLUG or SCOPE_NOT_FOUND.
    """
    context = _load_context(context)
    identifier, scope = _split_scope_prefix(identifier.strip(), scope)
    resolved = resolve_scope(scope, Operation.READ, cwd, context)

    for current, root in resolved.roots():
        index = load_index(get_scope_paths(root, context), storage)
        candidates = _match_in_index(identifier, index)
        if len(candidates) > 1:
            raise KamiError.ambiguous_slug(
                identifier, [f"{current.value}:{meta.slug}" for meta in candidates]
            )
        if candidates:
            return ScopedArticleMeta(meta=candidates[0], scope=current)

    raise KamiError.article_not_found(identifier)


# ─────────────────────────────────────────────────────────────────────────────
# CRUD
# ─────────────────────────────────────────────────────────────────────────────


async def read_article(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ArticleResult:
    """Read an article. Metadata is refreshed from the file, not the index.

    Raises:
        KamiError: INVALID_FRONTMATTER if the file header is broken.
    """
    resolved = await resolve_slug(identifier, scope, cwd, context)
    try:
        content = storage.read_file(Path(resolved.meta.file_path))
    except FileNotFoundError:
        log.warning("Indexed file is missing: %s", resolved.meta.file_path)
        raise KamiError.article_not_found(identifier) from None

    fm, body = parse_frontmatter(content)
    meta = build_meta(resolved.meta.slug, resolved.meta.folder, fm, resolved.meta.file_path)
    return ArticleResult(meta=meta, body=body, scope=resolved.scope)


def _default_body(
    title: str,
    folder: str,
    template: str,
    resolved: ResolvedScopes,
    context: ScopeContext,
) -> str:
    """Body from the named template (local first), or a bare heading."""
    scope_roots: list[tuple[Scope, Path]] = []
    if resolved.local_root is not None:
        scope_roots.append((Scope.LOCAL, resolved.local_root))
    scope_roots.append((Scope.GLOBAL, context.global_root))

    try:
        content, _ = read_template(template, scope_roots, context, storage)
    except KamiError as e:
        if e.code is not ErrorCode.TEMPLATE_NOT_FOUND:
            raise
        if template != DEFAULT_TEMPLATE:
            log.warning("Template '%s' not found, using a plain heading", template)
        return f"# {title}"

    return expand_template(template_body(content), build_template_variables(title, folder))


async def create_article(
    title: str,
    folder: str | None = None,
    tags: list[str] | None = None,
    template: str | None = None,
    scope: Scope | ScopeOption | str | None = None,
    slug: str | None = None,
    body: str | None = None,
    draft: bool = False,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ArticleResult:
    """Create a new article in the nearest writable scope.

    Args:
        title: Article title (required, non-empty).
        folder: Folder under the vault ("" for the vault root).
        tags: Tags; duplicates are collapsed.
        template: Template name for the body and frontmatter (default "note").
        scope: Explicit target scope.
        slug: Explicit slug instead of one derived from the title.
        body: Explicit body. Takes precedence over the template.
        draft: Mark the article as a draft.

    Returns:
        The created article, with any cross-scope link warnings.
    """
    title = title.strip()
    if not title:
        raise KamiError.validation_error("Title must not be empty")

    base_slug = title_to_slug(slug) if slug else title_to_slug(title)
    if not base_slug:
        raise KamiError.validation_error("Slug must not be empty")
    folder = _normalize_folder(folder)

    context = _load_context(context)
    resolved = resolve_scope(scope, Operation.WRITE, cwd, context)
    target = resolved.scopes[0]
    if target is Scope.GLOBAL:
        ensure_global_scope(context, storage)
    paths = get_scope_paths(resolved.root_for(target), context)

    directory = paths.vault / folder if folder else paths.vault
    index = load_index(paths, storage)
    new_slug = base_slug
    counter = 1
    while new_slug in index.articles or storage.exists(directory / f"{new_slug}.md"):
        new_slug = f"{base_slug}-{counter}"
        counter += 1
    if new_slug != base_slug:
        log.info("Slug '%s' is taken, using '%s'", base_slug, new_slug)

    template_name = template or DEFAULT_TEMPLATE
    fm = generate_frontmatter(title, tags=_dedupe(tags or []), template=template_name, draft=draft)
    if body is None:
        body = _default_body(title, folder, template_name, resolved, context)

    file_path = directory / f"{new_slug}.md"
    storage.mkdir(directory)
    storage.write_file(file_path, serialize_frontmatter(fm, body))

    meta = build_meta(new_slug, folder, fm, file_path)
    upsert_article(paths, meta, storage)
    warnings = _record_links(paths, new_slug, body, target)

    log.info("Created %s:%s", target.value, new_slug)
    return ArticleResult(meta=meta, body=body, scope=target, warnings=warnings)


async def update_article(
    identifier: str,
    changes: ArticleChanges,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ArticleResult:
    """Apply metadata and body edits to an existing article.

    The slug and ``created`` never change; ``updated`` is refreshed.

    Raises:
        KamiError: VALIDATION_ERROR if both ``body`` and ``append`` are given.
    """
    if changes.body is not None and changes.append is not None:
        raise KamiError.validation_error("Cannot specify both body and append")
    if changes.title is not None and not changes.title.strip():
        raise KamiError.validation_error("Title must not be empty")

    context = _load_context(context)
    article = await read_article(identifier, changes.scope, cwd, context)
    fm = article.meta.frontmatter()

    if changes.title is not None:
        fm.title = changes.title.strip()
    if changes.add_tags:
        fm.tags = _dedupe([*fm.tags, *changes.add_tags])
    if changes.remove_tags:
        fm.tags = [tag for tag in fm.tags if tag not in changes.remove_tags]
    if changes.draft is not None:
        fm.draft = True if changes.draft else None
    if changes.add_alias:
        fm.aliases = _dedupe([*(fm.aliases or []), changes.add_alias])
    if changes.remove_alias:
        fm.aliases = [a for a in fm.aliases or [] if a != changes.remove_alias] or None
    fm.updated = now_iso()

    body = article.body
    if changes.body is not None:
        body = changes.body
    elif changes.append is not None:
        body = f"{body}\n\n{changes.append}" if body else changes.append

    paths = _paths_for(article.scope, cwd, context)
    storage.write_file(Path(article.meta.file_path), serialize_frontmatter(fm, body))

    meta = build_meta(article.meta.slug, article.meta.folder, fm, article.meta.file_path)
    upsert_article(paths, meta, storage)
    warnings = _record_links(paths, meta.slug, body, article.scope)

    return ArticleResult(meta=meta, body=body, scope=article.scope, warnings=warnings)


async def delete_article(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ScopedArticleMeta:
    """Delete an article's file, index entry and outgoing links.

    Links from other articles to it are left in place and become dangling.
    """
    context = _load_context(context)
    resolved = await resolve_slug(identifier, scope, cwd, context)
    paths = _paths_for(resolved.scope, cwd, context)

    try:
        storage.delete_file(Path(resolved.meta.file_path))
    except FileNotFoundError:
        log.warning("File already gone, removing index entry: %s", resolved.meta.file_path)

    remove_article(paths, resolved.meta.slug, storage)
    remove_links(paths, resolved.meta.slug, resolved.scope, storage)

    log.info("Deleted %s:%s", resolved.scope.value, resolved.meta.slug)
    return resolved


# ─────────────────────────────────────────────────────────────────────────────
# Listing and search
# ─────────────────────────────────────────────────────────────────────────────


async def list_articles(
    scope: Scope | ScopeOption | str | None = None,
    folder: str | None = None,
    tags: list[str] | None = None,
    sort: SortField = DEFAULT_SORT_FIELD,
    order: SortOrder = DEFAULT_SORT_ORDER,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    draft: bool | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ArticleListing:
    """List articles across the resolved read scopes.

    Filters, sorting and pagination follow ``query_index``; ``total`` counts
    the merged, filtered set before pagination.
    """
    validate_sort(sort, order)
    if limit < 0 or offset < 0:
        raise KamiError.validation_error("limit and offset must not be negative")

    context = _load_context(context)
    resolved = resolve_scope(scope, Operation.READ, cwd, context)

    items: list[ScopedArticleMeta] = []
    for current, root in resolved.roots():
        index = load_index(get_scope_paths(root, context), storage)
        matched = filter_articles(
            list(index.articles.values()), folder=folder, tags=tags, draft=draft
        )
        items.extend(ScopedArticleMeta(meta=meta, scope=current) for meta in matched)

    items.sort(key=lambda item: sort_key(item.meta, sort), reverse=order == "desc")
    return ArticleListing(articles=items[offset : offset + limit], total=len(items))


async def search_articles(
    query: str,
    scope: Scope | ScopeOption | str | None = None,
    tags: list[str] | None = None,
    folder: str | None = None,
    limit: int = DEFAULT_SEARCH_LIMIT,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> SearchResponse:
    """Full-text search over the resolved read scopes.

    Each scope is read and indexed in its own worker thread.
    """
    context = _load_context(context)
    resolved = resolve_scope(scope, Operation.READ, cwd, context)

    per_scope = await asyncio.gather(
        *(
            asyncio.to_thread(
                search_scope, query, paths, tags=tags, folder=folder, storage=storage
            )
            for paths in resolved.paths(context)
        )
    )
    return merge_results(query, [hit for hits in per_scope for hit in hits], limit)


# ─────────────────────────────────────────────────────────────────────────────
# Links
# ─────────────────────────────────────────────────────────────────────────────


def _visible_indexes(
    cwd: Path | None,
    context: ScopeContext,
) -> dict[Scope, MetadataIndex]:
    resolved = resolve_scope(None, Operation.READ, cwd, context)
    return {
        current: load_index(get_scope_paths(root, context), storage)
        for current, root in resolved.roots()
    }


def resolve_link_target(
    entry: LinkEntry,
    from_scope: Scope,
    indexes: dict[Scope, MetadataIndex],
) -> tuple[Scope | None, ArticleMeta | None]:
    """Find the article a forward link points at.

    An explicit scope prefix wins. Unprefixed links from a local article try
    local then global; unprefixed links from a global article stay in global.
    Returns the scope the target lives in (or would live in) and its
    metadata, which is None for dangling links.
    """
    if entry.scope is not None:
        target = _SCOPE_VALUES.get(entry.scope)
        if target is None:
            return None, None
        index = indexes.get(target)
        return target, index.articles.get(entry.slug) if index else None

    match from_scope:
        case Scope.LOCAL:
            order = (Scope.LOCAL, Scope.GLOBAL)
        case Scope.GLOBAL:
            order = (Scope.GLOBAL,)
        case _:
            assert_never(from_scope)

    for candidate in order:
        index = indexes.get(candidate)
        if index and entry.slug in index.articles:
            return candidate, index.articles[entry.slug]
    return from_scope, None


async def get_links(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> list[LinkView]:
    """Forward links of an article. Dangling links are kept with exists=False."""
    context = _load_context(context)
    resolved = await resolve_slug(identifier, scope, cwd, context)
    graph = load_link_graph(_paths_for(resolved.scope, cwd, context), storage)
    indexes = _visible_indexes(cwd, context)

    views: list[LinkView] = []
    for entry in graph.forward.get(resolved.meta.slug, []):
        target_scope, meta = resolve_link_target(entry, resolved.scope, indexes)
        views.append(
            LinkView(
                slug=entry.slug,
                scope=target_scope,
                title=meta.title if meta else None,
                display_text=entry.display_text,
                exists=meta is not None,
            )
        )
    return views


async def get_backlinks(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> list[BacklinkView]:
    """Articles in any visible scope whose links resolve to this article."""
    context = _load_context(context)
    target = await resolve_slug(identifier, scope, cwd, context)
    slug = target.meta.slug
    indexes = _visible_indexes(cwd, context)

    views: list[BacklinkView] = []
    for source_scope, index in indexes.items():
        graph = load_link_graph(_paths_for(source_scope, cwd, context), storage)
        for backlink in graph.backlinks.get(slug, []):
            entries = [e for e in graph.forward.get(backlink.slug, []) if e.slug == slug]
            if not any(
                resolve_link_target(e, source_scope, indexes)[0] is target.scope for e in entries
            ):
                continue
            source = index.articles.get(backlink.slug)
            views.append(
                BacklinkView(
                    slug=backlink.slug,
                    scope=source_scope,
                    title=source.title if source else None,
                )
            )
    return views


# ─────────────────────────────────────────────────────────────────────────────
# Export
# ─────────────────────────────────────────────────────────────────────────────


def resolve_wiki_links(
    body: str,
    indexes: dict[Scope, MetadataIndex],
    from_scope: Scope = Scope.LOCAL,
) -> str:
    """Rewrite wiki-links in a body as standard Markdown links.

    ``[[slug]]`` and ``[[scope:slug]]`` become ``[title](slug.md)``;
    ``[[slug|text]]`` becomes ``[text](slug.md)``. Targets are looked up the
    same way as ``get_links``. Dangling links keep only their text.
    """

    def replace(match: re.Match[str]) -> str:
        prefix, slug, display = match.groups()
        slug = slug.strip()
        display = display.strip() if display is not None else None
        entry = LinkEntry(slug=slug, scope=prefix, display_text=display)
        _, meta = resolve_link_target(entry, from_scope, indexes)
        if meta is None:
            return display or slug
        return f"[{display or meta.title}]({slug}.md)"

    return WIKI_LINK_PATTERN.sub(replace, body)


async def export_markdown(
    identifier: str,
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ArticleResult:
    """Read an article with its wiki-links resolved to plain Markdown links."""
    context = _load_context(context)
    article = await read_article(identifier, scope, cwd, context)
    body = resolve_wiki_links(article.body, _visible_indexes(cwd, context), article.scope)
    return article.model_copy(update={"body": body})


# ─────────────────────────────────────────────────────────────────────────────
# Maintenance
# ─────────────────────────────────────────────────────────────────────────────


async def reindex(
    scope: Scope | ScopeOption | str | None = None,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> list[ReindexResult]:
    """Rebuild the metadata index and then the link graph for each scope.

    With no scope, every initialized scope is rebuilt. Safe to run at any
    time; running it twice gives the same result.
    """
    context = _load_context(context)
    resolved = resolve_scope(scope or ScopeOption.ALL, Operation.READ, cwd, context)

    results: list[ReindexResult] = []
    for current, root in resolved.roots():
        if current is Scope.GLOBAL:
            ensure_global_scope(context, storage)
        paths = get_scope_paths(root, context)
        index = rebuild_index(paths, storage)
        link_count = rebuild_link_graph(paths, current, index, storage)
        log.info(
            "Reindexed %s scope: %d articles, %d links",
            current.value,
            len(index.articles),
            link_count,
        )
        results.append(
            ReindexResult(scope=current, articles=len(index.articles), links=link_count)
        )
    return results
