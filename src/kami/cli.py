#!/usr/bin/env python3
"""
kami: CLI for a Markdown knowledge base

Usage:
    kami init                      # Create a local scope in this directory
    kami create "Title" --tag=a    # Create an article
    kami read slug                 # Read an article
    kami search "query"            # Full-text search
    kami links slug                # Forward links (dangling ones marked)
"""

from __future__ import annotations

import asyncio
import difflib
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from click.exceptions import UsageError

from . import __version__ as KAMI_VERSION
from .errors import ErrorCode, ExitCode, KamiError, format_error_json
from .models import ArticleChanges, Scope, ScopeOption
from .scope import ScopeContext

SCOPE_CHOICE = click.Choice([s.value for s in ScopeOption])
WRITE_SCOPE_CHOICE = click.Choice([s.value for s in Scope])


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}
    widths = {col: len(col) for col in columns}

    def cell(row: dict, col: str) -> str:
        val = str(row.get(col, ""))
        limit = max_widths.get(col, 50)
        return val[: limit - 3] + "..." if len(val) > limit else val

    for row in rows:
        for col in columns:
            widths[col] = max(widths[col], len(cell(row, col)))

    lines = [
        "  ".join(col.upper().ljust(widths[col]) for col in columns),
        "  ".join("-" * widths[col] for col in columns),
    ]
    for row in rows:
        lines.append("  ".join(cell(row, col).ljust(widths[col]) for col in columns))
    return "\n".join(lines)


def output(data: Any) -> None:
    """Emit a success envelope as JSON."""
    click.echo(json.dumps({"ok": True, "data": data, "error": None}, indent=2, default=str))


def _handle_error(error: Exception, as_json: bool) -> NoReturn:
    """Report an error as text or a JSON envelope, then exit with its code.

    JSON errors go to stdout so the envelope is the whole output; text
    errors go to stderr.
    """
    if isinstance(error, KamiError):
        if as_json:
            click.echo(error.to_json())
        else:
            click.echo(f"Error: {error.message}", err=True)
            if error.candidates:
                click.echo("\nDid you mean:", err=True)
                for candidate in error.candidates:
                    click.echo(f"  - {candidate}", err=True)
        sys.exit(error.exit_code)

    if as_json:
        click.echo(format_error_json(ErrorCode.IO_ERROR, str(error)))
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(ExitCode.GENERAL_ERROR)


def _context(ctx: click.Context) -> ScopeContext:
    return ctx.obj["context"]


def _split_csv(values: tuple[str, ...]) -> list[str]:
    """Accept both repeated options and comma-separated values."""
    items: list[str] = []
    for value in values:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


class KamiGroup(click.Group):
    """Click group that suggests similar commands for typos."""

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except UsageError as e:
            cmd_name = args[0] if args else ""
            if cmd_name and "No such command" in str(e):
                matches = difflib.get_close_matches(
                    cmd_name, self.list_commands(ctx), n=1, cutoff=0.6
                )
                if matches:
                    raise UsageError(f"No such command '{cmd_name}'. Did you mean '{matches[0]}'?")
            raise


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(cls=KamiGroup)
@click.version_option(version=KAMI_VERSION, prog_name="kami")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="KAMI_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, quiet: bool):
    """kami: Markdown knowledge base with local and global scopes.

    \b
    Quick start:
      kami init                          # Local scope in this directory
      kami create "Docker tips" -t ops   # New article
      kami search docker                 # Full-text search
      kami read "Docker tips"            # By slug, title or alias

    \b
    Every command accepts --json for a {ok, data, error} envelope.
    """
    from ._logging import set_quiet_mode

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["context"] = ScopeContext.load()

    if quiet:
        set_quiet_mode(True)


# ─────────────────────────────────────────────────────────────────────────────
# Init
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--global", "global_", is_flag=True, help="Initialize the global scope (~/.kami)")
@click.option(
    "--force", "-f", is_flag=True, help="Reinitialize an existing local scope, keeping its files"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def init(ctx: click.Context, global_: bool, force: bool, as_json: bool):
    """Initialize a scope.

    \b
    Examples:
      kami init            # .kami/ in the current directory
      kami init --global   # ~/.kami with built-in templates
    """
    from .config import KAMI_DIR
    from .scope import ensure_global_scope, init_local_scope

    context = _context(ctx)
    try:
        if global_:
            root = ensure_global_scope(context)
            scope = Scope.GLOBAL
        else:
            cwd = Path.cwd()
            if (cwd / KAMI_DIR).is_dir() and not force:
                raise KamiError.validation_error(
                    f"{KAMI_DIR}/ already exists in {cwd}. Use --force to reinitialize."
                )
            root = init_local_scope(cwd, context)
            scope = Scope.LOCAL
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"path": str(root), "scope": scope.value})
    else:
        click.echo(f"Initialized kami {scope.value} scope in {root}")


# ─────────────────────────────────────────────────────────────────────────────
# Article commands
# ─────────────────────────────────────────────────────────────────────────────


def _read_body(body: str | None, body_file) -> str | None:
    if body is not None and body_file is not None:
        raise UsageError("Cannot specify both --body and --body-file")
    if body_file is not None:
        return body_file.read()
    return body


@cli.command()
@click.argument("title")
@click.option("--folder", "-f", default="", help="Folder under the vault")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable or comma-separated)")
@click.option("--template", help="Template name (default: note)")
@click.option("--slug", help="Explicit slug instead of one derived from the title")
@click.option("--body", "-b", help="Article body")
@click.option(
    "--body-file",
    type=click.File("r", encoding="utf-8"),
    help="Read body from file ('-' for stdin)",
)
@click.option("--draft", is_flag=True, help="Mark as draft")
@click.option("--scope", "-s", type=WRITE_SCOPE_CHOICE, help="Target scope")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    folder: str,
    tags: tuple[str, ...],
    template: str | None,
    slug: str | None,
    body: str | None,
    body_file,
    draft: bool,
    scope: str | None,
    as_json: bool,
):
    """Create a new article.

    \b
    Examples:
      kami create "Docker tips" --tag=ops,docker
      kami create "Standup" --template=daily --folder=journal
      echo "Body" | kami create "Note" --body-file=-
    """
    from .core import create_article

    try:
        result = run_async(
            create_article(
                title,
                folder=folder,
                tags=_split_csv(tags),
                template=template,
                scope=scope,
                slug=slug,
                body=_read_body(body, body_file),
                draft=draft,
                context=_context(ctx),
            )
        )
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output(
            {
                "slug": result.meta.slug,
                "title": result.meta.title,
                "scope": result.scope.value,
                "folder": result.meta.folder,
                "filePath": result.meta.file_path,
                "warnings": result.warnings,
            }
        )
        return

    display = f"{result.meta.folder}/{result.meta.slug}" if result.meta.folder else result.meta.slug
    click.echo(f"Created: {display} ({result.scope.value})")
    for warning in result.warnings:
        click.echo(warning, err=True)


@cli.command()
@click.argument("identifier")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--meta-only", is_flag=True, help="Show only frontmatter fields")
@click.option("--body-only", is_flag=True, help="Show only the body")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def read(
    ctx: click.Context,
    identifier: str,
    scope: str | None,
    meta_only: bool,
    body_only: bool,
    as_json: bool,
):
    """Read an article by slug, folder/slug, title or alias.

    \b
    Examples:
      kami read docker-tips
      kami read global:docker-tips
      kami read "Docker tips" --body-only
    """
    from .core import read_article
    from .frontmatter import serialize_frontmatter

    try:
        article = run_async(read_article(identifier, scope, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output(
            {
                "slug": article.meta.slug,
                "scope": article.scope.value,
                "meta": article.meta.to_json_dict(),
                "body": article.body,
            }
        )
    elif meta_only:
        meta = article.meta
        click.echo(f"title: {meta.title}")
        click.echo(f"tags: [{', '.join(meta.tags)}]")
        click.echo(f"created: {meta.created}")
        click.echo(f"updated: {meta.updated}")
        if meta.template:
            click.echo(f"template: {meta.template}")
        if meta.aliases:
            click.echo(f"aliases: [{', '.join(meta.aliases)}]")
        click.echo(f"draft: {'true' if meta.draft else 'false'}")
    elif body_only:
        click.echo(article.body)
    else:
        click.echo(serialize_frontmatter(article.meta.frontmatter(), article.body).strip())


@cli.command()
@click.argument("identifier")
@click.option("--title", help="New title")
@click.option("--add-tag", "add_tags", multiple=True, help="Add a tag (repeatable)")
@click.option("--remove-tag", "remove_tags", multiple=True, help="Remove a tag (repeatable)")
@click.option("--body", "-b", help="Replace the body")
@click.option(
    "--body-file",
    type=click.File("r", encoding="utf-8"),
    help="Replace body from file ('-' for stdin)",
)
@click.option("--append", "-a", help="Append to the body")
@click.option("--draft/--no-draft", default=None, help="Set draft status")
@click.option("--add-alias", help="Add an alias")
@click.option("--remove-alias", help="Remove an alias")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def edit(
    ctx: click.Context,
    identifier: str,
    title: str | None,
    add_tags: tuple[str, ...],
    remove_tags: tuple[str, ...],
    body: str | None,
    body_file,
    append: str | None,
    draft: bool | None,
    add_alias: str | None,
    remove_alias: str | None,
    scope: str | None,
    as_json: bool,
):
    """Update an article's metadata or body.

    \b
    Examples:
      kami edit docker-tips --add-tag=containers
      kami edit docker-tips --append "See also [[compose]]"
      kami edit docker-tips --no-draft --add-alias=docker
    """
    from .core import update_article

    try:
        changes = ArticleChanges(
            title=title,
            add_tags=_split_csv(add_tags),
            remove_tags=_split_csv(remove_tags),
            body=_read_body(body, body_file),
            append=append,
            draft=draft,
            add_alias=add_alias,
            remove_alias=remove_alias,
            scope=scope,
        )
        result = run_async(update_article(identifier, changes, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output(
            {
                "slug": result.meta.slug,
                "scope": result.scope.value,
                "updated": result.meta.updated,
                "warnings": result.warnings,
            }
        )
        return

    click.echo(f"Updated: {result.meta.slug} ({result.scope.value})")
    for warning in result.warnings:
        click.echo(warning, err=True)


@cli.command()
@click.argument("identifier")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def delete(ctx: click.Context, identifier: str, scope: str | None, as_json: bool):
    """Delete an article. Links pointing at it become dangling."""
    from .core import delete_article

    try:
        deleted = run_async(delete_article(identifier, scope, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"slug": deleted.meta.slug, "scope": deleted.scope.value})
    else:
        click.echo(f"Deleted: {deleted.meta.slug} ({deleted.scope.value})")


@cli.command("list")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to list")
@click.option("--folder", help="Exact folder filter")
@click.option(
    "--tag", "-t", "tags", multiple=True, help="Required tag (repeatable or comma-separated)"
)
@click.option("--sort", type=click.Choice(["created", "updated", "title"]), default="updated")
@click.option("--order", type=click.Choice(["asc", "desc"]), default="desc")
@click.option("--limit", "-n", default=20, type=click.IntRange(min=1), help="Max results")
@click.option("--offset", default=0, type=click.IntRange(min=0), help="Skip results")
@click.option("--draft/--no-draft", default=None, help="Only drafts / only non-drafts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_cmd(
    ctx: click.Context,
    scope: str | None,
    folder: str | None,
    tags: tuple[str, ...],
    sort: str,
    order: str,
    limit: int,
    offset: int,
    draft: bool | None,
    as_json: bool,
):
    """List articles with filters, sorting and pagination."""
    from .core import list_articles

    try:
        listing = run_async(
            list_articles(
                scope,
                folder=folder,
                tags=_split_csv(tags) or None,
                sort=sort,
                order=order,
                limit=limit,
                offset=offset,
                draft=draft,
                context=_context(ctx),
            )
        )
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output(
            {
                "articles": [
                    {**item.meta.to_json_dict(), "scope": item.scope.value}
                    for item in listing.articles
                ],
                "total": listing.total,
            }
        )
        return

    if not listing.articles:
        click.echo("No articles found.")
        return

    rows = [
        {
            "slug": item.meta.slug,
            "title": item.meta.title,
            "scope": item.scope.value,
            "folder": item.meta.folder,
            "tags": ", ".join(item.meta.tags),
        }
        for item in listing.articles
    ]
    click.echo(format_table(rows, ["slug", "title", "scope", "folder", "tags"], {"title": 40}))
    click.echo(f"\n({listing.total} articles)")


@cli.command()
@click.argument("query")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option(
    "--tag", "-t", "tags", multiple=True, help="Required tag (repeatable or comma-separated)"
)
@click.option("--folder", help="Exact folder filter")
@click.option("--limit", "-n", default=20, type=click.IntRange(min=1), help="Max results")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    scope: str | None,
    tags: tuple[str, ...],
    folder: str | None,
    limit: int,
    as_json: bool,
):
    """Full-text search over titles, bodies, tags and aliases.

    \b
    Examples:
      kami search docker
      kami search "東京 旅行" --scope=global
      kami search deploy --tag=ops -n 5
    """
    from .core import search_articles

    try:
        response = run_async(
            search_articles(
                query,
                scope,
                tags=_split_csv(tags) or None,
                folder=folder,
                limit=limit,
                context=_context(ctx),
            )
        )
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output(response.model_dump(mode="json"))
        return

    if not response.results:
        click.echo("No results found.")
        return

    rows = [
        {
            "slug": hit.slug,
            "title": hit.title,
            "scope": hit.scope.value,
            "score": f"{hit.score:.1f}",
        }
        for hit in response.results
    ]
    click.echo(format_table(rows, ["slug", "title", "scope", "score"], {"title": 40}))
    click.echo(f"\n({response.total} results)")


@cli.command()
@click.argument("identifier")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def links(ctx: click.Context, identifier: str, scope: str | None, as_json: bool):
    """Show forward links. Links to missing articles are marked."""
    from .core import get_links

    try:
        views = run_async(get_links(identifier, scope, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"slug": identifier, "links": [v.model_dump(mode="json") for v in views]})
        return

    click.echo(f"Links from {identifier}:")
    if not views:
        click.echo("  (no links)")
    for view in views:
        label = view.display_text or view.title or view.slug
        scope_label = view.scope.value if view.scope else "?"
        suffix = "" if view.exists else " (not found)"
        click.echo(f"  -> {label} [{scope_label}:{view.slug}]{suffix}")


@cli.command()
@click.argument("identifier")
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def backlinks(ctx: click.Context, identifier: str, scope: str | None, as_json: bool):
    """Show articles that link to this one."""
    from .core import get_backlinks

    try:
        views = run_async(get_backlinks(identifier, scope, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"slug": identifier, "backlinks": [v.model_dump(mode="json") for v in views]})
        return

    click.echo(f"Backlinks to {identifier}:")
    if not views:
        click.echo("  (no backlinks)")
    for view in views:
        click.echo(f"  <- {view.title or view.slug} [{view.scope.value}:{view.slug}]")


@cli.command()
@click.argument("identifier")
@click.option(
    "--output", "-o", "output_path", type=click.Path(dir_okay=False), help="Write to a file instead"
)
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to search")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def export(
    ctx: click.Context,
    identifier: str,
    output_path: str | None,
    scope: str | None,
    as_json: bool,
):
    """Export an article as Markdown with wiki-links resolved.

    \b
    Examples:
      kami export docker-tips
      kami export docker-tips -o docker-tips.md
    """
    from .core import export_markdown
    from .storage import default_storage

    try:
        article = run_async(export_markdown(identifier, scope, context=_context(ctx)))
        if output_path:
            default_storage.write_file(Path(output_path), article.body)
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        payload = {"slug": article.meta.slug, "scope": article.scope.value}
        if output_path:
            payload["path"] = output_path
        else:
            payload["content"] = article.body
        output(payload)
    elif output_path:
        click.echo(f"Exported to {output_path}")
    else:
        click.echo(article.body)


@cli.command()
@click.option("--scope", "-s", type=SCOPE_CHOICE, help="Scope to rebuild (default: all)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def reindex(ctx: click.Context, scope: str | None, as_json: bool):
    """Rebuild the metadata index and link graph from the vault files."""
    from .core import reindex as reindex_scopes

    try:
        results = run_async(reindex_scopes(scope, context=_context(ctx)))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"scopes": [r.model_dump(mode="json") for r in results]})
        return

    for r in results:
        click.echo(f"Reindexed {r.scope.value}: {r.articles} articles, {r.links} links")


# ─────────────────────────────────────────────────────────────────────────────
# Vault Command Group
# ─────────────────────────────────────────────────────────────────────────────


@cli.group()
def vault():
    """Manage named vaults for the global scope."""


@vault.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_list(ctx: click.Context, as_json: bool):
    """List registered vaults."""
    from .vault import list_vaults

    entries = list_vaults(_context(ctx))
    if as_json:
        output({"vaults": [e.model_dump() for e in entries]})
        return
    for entry in entries:
        marker = "*" if entry.active else " "
        click.echo(f"{marker} {entry.name}  {entry.path}")


@vault.command("add")
@click.argument("name")
@click.argument("path", type=click.Path(file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_add(ctx: click.Context, name: str, path: Path, as_json: bool):
    """Register a vault directory under NAME."""
    from .vault import add_vault

    try:
        vault_path = add_vault(name, path, _context(ctx))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"name": name, "path": str(vault_path)})
    else:
        click.echo(f"Added vault '{name}' at {vault_path}")


@vault.command("remove")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_remove(ctx: click.Context, name: str, as_json: bool):
    """Unregister a vault. Its files are left untouched."""
    from .vault import remove_vault

    try:
        removed = remove_vault(name, _context(ctx))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"name": name, "path": str(removed)})
    else:
        click.echo(f"Removed vault '{name}' ({removed} was not deleted)")


@vault.command("use")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_use(ctx: click.Context, name: str, as_json: bool):
    """Switch the active vault for the global scope."""
    from .vault import use_vault

    try:
        vault_path = use_vault(name, _context(ctx))
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"name": name, "path": str(vault_path)})
    else:
        click.echo(f"Active vault: {name} ({vault_path})")
        click.echo("Run 'kami reindex --scope=global' to index its articles.")


# ─────────────────────────────────────────────────────────────────────────────
# Template Command Group
# ─────────────────────────────────────────────────────────────────────────────


@cli.group()
def template():
    """Manage article templates."""


@template.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def template_list(ctx: click.Context, as_json: bool):
    """List templates. Local templates shadow global ones."""
    from .models import Operation
    from .scope import resolve_scope
    from .templates import list_templates

    context = _context(ctx)
    try:
        resolved = resolve_scope(None, Operation.READ, context=context)
        infos = list_templates(resolved.roots(), context)
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"templates": [t.model_dump(mode="json") for t in infos]})
        return
    if not infos:
        click.echo("No templates found.")
    for info in infos:
        click.echo(f"{info.name}  ({info.scope.value})")


@template.command("show")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def template_show(ctx: click.Context, name: str, as_json: bool):
    """Print a template's raw content."""
    from .models import Operation
    from .scope import resolve_scope
    from .templates import read_template

    context = _context(ctx)
    try:
        resolved = resolve_scope(None, Operation.READ, context=context)
        content, info = read_template(name, resolved.roots(), context)
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"name": name, "scope": info.scope.value, "content": content})
    else:
        click.echo(content, nl=False)


@template.command("create")
@click.argument("name")
@click.option("--content", "-c", help="Template content")
@click.option(
    "--file",
    "content_file",
    type=click.File("r", encoding="utf-8"),
    help="Read content from file ('-' for stdin)",
)
@click.option("--scope", "-s", type=WRITE_SCOPE_CHOICE, help="Target scope")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def template_create(
    ctx: click.Context,
    name: str,
    content: str | None,
    content_file,
    scope: str | None,
    as_json: bool,
):
    """Create a template in the nearest (or given) scope."""
    from .models import Operation
    from .scope import ensure_global_scope, get_scope_paths, resolve_scope
    from .templates import create_template

    context = _context(ctx)
    try:
        if content_file is not None:
            content = content_file.read()
        resolved = resolve_scope(scope, Operation.WRITE, context=context)
        target = resolved.scopes[0]
        if target is Scope.GLOBAL:
            ensure_global_scope(context)
        paths = get_scope_paths(resolved.root_for(target), context)
        file_path = create_template(name, content, paths)
    except (KamiError, OSError) as e:
        _handle_error(e, as_json)

    if as_json:
        output({"name": name, "scope": target.value, "filePath": str(file_path)})
    else:
        click.echo(f"Created template '{name}' ({target.value}): {file_path}")


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def main():
    """Entry point for kami CLI."""
    from ._logging import configure_logging

    configure_logging()
    cli()


if __name__ == "__main__":
    main()
