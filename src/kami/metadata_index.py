"""Metadata index: slug -> ArticleMeta for one scope, persisted as index.json.

The index is a cache over the vault's Markdown files. A missing or corrupt
index.json loads as an empty index; ``rebuild_index`` rescans the vault and
is the authoritative recovery path.

``filePath`` values are absolute in memory. On disk they are stored in a
portable form so a vault survives being moved or cloned:

- global scope: ``~/<path relative to home>``
- local scope: relative to the parent of the scope root (``.kami/vault/...``)

Absolute stored paths (older index files, vaults outside home) are accepted
as-is on load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal, assert_never

from pydantic import ValidationError

from .config import (
    ARTICLE_GLOB,
    DEFAULT_LIST_LIMIT,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
)
from .errors import KamiError
from .frontmatter import parse_frontmatter
from .models import ArticleMeta, Frontmatter, MetadataIndex, QueryResult, Scope
from .scope import ScopePaths
from .storage import StorageAdapter, default_storage

log = logging.getLogger(__name__)

SortField = Literal["created", "updated", "title"]
SortOrder = Literal["asc", "desc"]

_SORT_FIELDS = ("created", "updated", "title")
_SORT_ORDERS = ("asc", "desc")
_HOME_PREFIX = "~/"


# ─────────────────────────────────────────────────────────────────────────────
# Portable paths
# ─────────────────────────────────────────────────────────────────────────────


def to_portable_path(file_path: str, paths: ScopePaths) -> str:
    """Convert an absolute article path to its on-disk portable form."""
    path = Path(file_path)
    match paths.scope:
        case Scope.GLOBAL:
            try:
                return _HOME_PREFIX + path.relative_to(paths.home).as_posix()
            except ValueError:
                return str(path)
        case Scope.LOCAL:
            try:
                return path.relative_to(paths.root.parent).as_posix()
            except ValueError:
                return str(path)
        case _:
            assert_never(paths.scope)


def from_portable_path(stored: str, paths: ScopePaths) -> str:
    """Restore an absolute article path from its stored form."""
    if stored.startswith(_HOME_PREFIX):
        return str(paths.home / stored[len(_HOME_PREFIX) :])

    path = Path(stored)
    if path.is_absolute():
        return str(path)

    match paths.scope:
        case Scope.GLOBAL:
            return str(paths.home / path)
        case Scope.LOCAL:
            return str(paths.root.parent / path)
        case _:
            assert_never(paths.scope)


# ─────────────────────────────────────────────────────────────────────────────
# Load / save
# ─────────────────────────────────────────────────────────────────────────────


def load_index(paths: ScopePaths, storage: StorageAdapter = default_storage) -> MetadataIndex:
    """Load the metadata index for a scope.

    Any failure (missing file, malformed JSON, invalid entries) gives an
    empty index rather than an error.
    """
    try:
        payload: dict[str, Any] = json.loads(storage.read_file(paths.index_file))
        articles = payload.get("articles", {})
        for entry in articles.values():
            if isinstance(entry.get("filePath"), str):
                entry["filePath"] = from_portable_path(entry["filePath"], paths)
        return MetadataIndex.model_validate({"articles": articles})
    except (
        OSError,
        UnicodeDecodeError,
        json.JSONDecodeError,
        ValidationError,
        AttributeError,
        TypeError,
    ) as e:
        log.debug("Using empty index for %s: %s", paths.index_file, e)
        return MetadataIndex()


def save_index(
    paths: ScopePaths,
    index: MetadataIndex,
    storage: StorageAdapter = default_storage,
) -> None:
    """Persist the index with every filePath converted to its portable form."""
    payload = index.to_json_dict()
    for entry in payload["articles"].values():
        entry["filePath"] = to_portable_path(entry["filePath"], paths)
    storage.write_file(paths.index_file, json.dumps(payload, indent=2, ensure_ascii=False))


def upsert_article(
    paths: ScopePaths,
    meta: ArticleMeta,
    storage: StorageAdapter = default_storage,
) -> None:
    """Add or replace an article in the index (last write wins)."""
    index = load_index(paths, storage)
    index.articles[meta.slug] = meta
    save_index(paths, index, storage)


def remove_article(
    paths: ScopePaths,
    slug: str,
    storage: StorageAdapter = default_storage,
) -> None:
    """Remove an article from the index. Absent slugs are a no-op."""
    index = load_index(paths, storage)
    index.articles.pop(slug, None)
    save_index(paths, index, storage)


# ─────────────────────────────────────────────────────────────────────────────
# Rebuild
# ─────────────────────────────────────────────────────────────────────────────


def build_meta(
    slug: str,
    folder: str,
    fm: Frontmatter,
    file_path: Path | str,
) -> ArticleMeta:
    """Combine frontmatter with location into an index entry."""
    return ArticleMeta(
        slug=slug,
        title=fm.title,
        folder=folder,
        tags=list(dict.fromkeys(fm.tags)),
        created=fm.created,
        updated=fm.updated,
        template=fm.template,
        aliases=fm.aliases,
        draft=fm.draft,
        file_path=str(file_path),
    )


def parse_or_skip(
    file_path: Path,
    storage: StorageAdapter,
) -> tuple[Frontmatter, str] | None:
    """Parse an article during a bulk scan; unreadable or invalid files give None."""
    try:
        return parse_frontmatter(storage.read_file(file_path))
    except (OSError, UnicodeDecodeError) as e:
        log.debug("Skipping unreadable %s: %s", file_path, e)
    except KamiError as e:
        log.debug("Skipping %s: %s", file_path, e.message)
    return None


def folder_for(file_path: Path, vault: Path) -> str:
    """Folder of an article relative to the vault root ("" at the root)."""
    parent = Path(file_path).relative_to(vault).parent
    return "" if parent == Path(".") else parent.as_posix()


def rebuild_index(paths: ScopePaths, storage: StorageAdapter = default_storage) -> MetadataIndex:
    """Rebuild the entire index by scanning every Markdown file in the vault.

    Slugs come from file names and folders from the path relative to the
    vault. Files with invalid frontmatter are skipped. The persisted index is
    overwritten with the scan result.
    """
    index = MetadataIndex()

    for file_path in storage.list_files(paths.vault, ARTICLE_GLOB):
        parsed = parse_or_skip(file_path, storage)
        if parsed is None:
            continue
        fm, _ = parsed

        slug = file_path.stem
        if slug in index.articles:
            log.warning(
                "Duplicate slug '%s': %s replaces %s",
                slug,
                file_path,
                index.articles[slug].file_path,
            )
        index.articles[slug] = build_meta(slug, folder_for(file_path, paths.vault), fm, file_path)

    save_index(paths, index, storage)
    return index


# ─────────────────────────────────────────────────────────────────────────────
# Query
# ─────────────────────────────────────────────────────────────────────────────


def validate_sort(sort: str, order: str) -> None:
    if sort not in _SORT_FIELDS:
        raise KamiError.validation_error(
            f"Invalid sort field '{sort}'. Use one of: {', '.join(_SORT_FIELDS)}"
        )
    if order not in _SORT_ORDERS:
        raise KamiError.validation_error(f"Invalid sort order '{order}'. Use asc or desc")


def sort_key(meta: ArticleMeta, sort: str) -> tuple[str, str]:
    value: str = getattr(meta, sort)
    return value.casefold(), value


def sort_articles(
    articles: list[ArticleMeta],
    sort: SortField = DEFAULT_SORT_FIELD,
    order: SortOrder = DEFAULT_SORT_ORDER,
) -> list[ArticleMeta]:
    """Sort by a string field. ISO-8601 timestamps sort correctly as strings."""
    validate_sort(sort, order)
    return sorted(articles, key=lambda meta: sort_key(meta, sort), reverse=order == "desc")


def filter_articles(
    articles: list[ArticleMeta],
    *,
    folder: str | None = None,
    tags: list[str] | None = None,
    draft: bool | None = None,
) -> list[ArticleMeta]:
    """Apply folder (exact), tags (all required) and draft filters."""
    if folder:
        articles = [a for a in articles if a.folder == folder]
    if tags:
        required = set(tags)
        articles = [a for a in articles if required.issubset(a.tags)]
    if draft is not None:
        articles = [a for a in articles if (a.draft or False) == draft]
    return articles


def query_index(
    paths: ScopePaths,
    *,
    folder: str | None = None,
    tags: list[str] | None = None,
    sort: SortField = DEFAULT_SORT_FIELD,
    order: SortOrder = DEFAULT_SORT_ORDER,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    draft: bool | None = None,
    storage: StorageAdapter = default_storage,
) -> QueryResult:
    """Query the index with filters, sorting, and pagination.

    ``total`` counts the filtered set before pagination.
    """
    index = load_index(paths, storage)
    articles = filter_articles(
        list(index.articles.values()), folder=folder, tags=tags, draft=draft
    )
    total = len(articles)
    articles = sort_articles(articles, sort, order)
    return QueryResult(articles=articles[offset : offset + limit], total=total)
