"""Pydantic models for the knowledge base.

JSON side-files use camelCase keys (filePath, displayText, activeVault) so
they stay readable by other tools that share a vault. Python code uses the
snake_case attribute names; dump with ``by_alias=True`` when persisting.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Scope(str, Enum):
    """An independent vault context."""

    LOCAL = "local"
    GLOBAL = "global"


class ScopeOption(str, Enum):
    """Scope selection accepted from callers; ALL spans every available scope."""

    LOCAL = "local"
    GLOBAL = "global"
    ALL = "all"


class Operation(str, Enum):
    READ = "read"
    WRITE = "write"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Frontmatter(_CamelModel):
    """Structured header of an article file."""

    title: str
    tags: list[str] = Field(default_factory=list)
    created: str  # ISO 8601, kept verbatim
    updated: str  # ISO 8601, kept verbatim
    template: str | None = None
    aliases: list[str] | None = None
    draft: bool | None = None


class ArticleMeta(_CamelModel):
    """Metadata stored in index.json (frontmatter + location)."""

    slug: str
    title: str
    folder: str = ""
    tags: list[str] = Field(default_factory=list)
    created: str
    updated: str
    template: str | None = None
    aliases: list[str] | None = None
    draft: bool | None = None
    file_path: str = Field(alias="filePath")  # absolute in memory, portable on disk

    def frontmatter(self) -> Frontmatter:
        return Frontmatter(
            title=self.title,
            tags=list(self.tags),
            created=self.created,
            updated=self.updated,
            template=self.template,
            aliases=list(self.aliases) if self.aliases else None,
            draft=self.draft,
        )


class MetadataIndex(_CamelModel):
    """Slug -> ArticleMeta mapping for one scope."""

    articles: dict[str, ArticleMeta] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _keys_match_slugs(self) -> "MetadataIndex":
        for key, meta in self.articles.items():
            if key != meta.slug:
                raise ValueError(f"index key '{key}' does not match slug '{meta.slug}'")
        return self


class LinkEntry(_CamelModel):
    """One outgoing wiki-link recorded against its source article."""

    slug: str
    scope: str | None = None  # explicit scope prefix, None when unprefixed
    display_text: str | None = Field(default=None, alias="displayText")


class BacklinkEntry(_CamelModel):
    """A source article that links to a target."""

    slug: str
    scope: str


class LinkGraph(_CamelModel):
    """Forward links and their derived backlinks for one scope."""

    forward: dict[str, list[LinkEntry]] = Field(default_factory=dict)
    backlinks: dict[str, list[BacklinkEntry]] = Field(default_factory=dict)


class KamiConfig(_CamelModel):
    """Scope config.json. Unknown keys (server, build, ...) are preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    vaults: dict[str, str] = Field(default_factory=dict)  # name -> vault directory
    active_vault: str | None = Field(default=None, alias="activeVault")


class QueryResult(BaseModel):
    """A filtered, sorted page of index entries."""

    articles: list[ArticleMeta]
    total: int  # count before pagination


class ScopedArticleMeta(BaseModel):
    """Index entry tagged with the scope it was found in."""

    meta: ArticleMeta
    scope: Scope


class ArticleResult(BaseModel):
    """A full article (metadata + body) with its scope."""

    meta: ArticleMeta
    body: str
    scope: Scope
    warnings: list[str] = Field(default_factory=list)


class SearchHit(BaseModel):
    """A search result."""

    slug: str
    title: str
    scope: Scope
    folder: str
    score: float
    tags: list[str] = Field(default_factory=list)
    matches: dict[str, list[str]] = Field(default_factory=dict)  # field -> matched terms


class SearchResponse(BaseModel):
    results: list[SearchHit]
    total: int  # filtered, before pagination
    query: str


class LinkView(BaseModel):
    """A forward link resolved for display. Dangling links have exists=False."""

    slug: str
    scope: Scope | None  # scope the target resolved to (or would live in)
    title: str | None = None
    display_text: str | None = None
    exists: bool


class BacklinkView(BaseModel):
    slug: str
    scope: Scope
    title: str | None = None


class VaultEntry(BaseModel):
    name: str
    path: str
    active: bool


class TemplateInfo(BaseModel):
    name: str
    scope: Scope
    file_path: str


class ReindexResult(BaseModel):
    scope: Scope
    articles: int
    links: int


class ArticleListing(BaseModel):
    """A merged, paginated listing across scopes."""

    articles: list[ScopedArticleMeta]
    total: int


class ArticleChanges(BaseModel):
    """Edits applied by update_article. Unset fields are left alone."""

    title: str | None = None
    add_tags: list[str] = Field(default_factory=list)
    remove_tags: list[str] = Field(default_factory=list)
    body: str | None = None
    append: str | None = None
    draft: bool | None = None
    add_alias: str | None = None
    remove_alias: str | None = None
    scope: ScopeOption | None = None
