"""Article templates.

Templates are Markdown files in a scope's ``templates/`` directory, optionally
with their own frontmatter header (dropped on expansion). ``{{key}}``
placeholders are substituted with the variables from
``build_template_variables``. Local templates shadow global ones by name.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import yaml

from .config import TEMPLATE_GLOB
from .errors import KamiError
from .frontmatter import split_frontmatter
from .models import Scope, TemplateInfo
from .scope import ScopeContext, ScopePaths, get_scope_paths
from .storage import StorageAdapter, default_storage

log = logging.getLogger(__name__)

NOTE_TEMPLATE = """---
title: "{{title}}"
tags: []
---

# {{title}}
"""

DAILY_TEMPLATE = """---
title: "{{date}}"
tags: [daily]
---

# {{date}}

## Tasks

-

## Notes

"""

EMPTY_TEMPLATE = """---
title: ""
tags: []
---
"""

# Seeded into the global scope on first use.
BUILTIN_TEMPLATES: dict[str, str] = {
    "note": NOTE_TEMPLATE,
    "daily": DAILY_TEMPLATE,
}


def list_templates(
    scope_roots: list[tuple[Scope, Path]],
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> list[TemplateInfo]:
    """List templates across scopes, earlier scopes shadowing later ones by name."""
    seen: set[str] = set()
    templates: list[TemplateInfo] = []

    for scope, root in scope_roots:
        paths = get_scope_paths(root, context)
        for file_path in storage.list_files(paths.templates, TEMPLATE_GLOB):
            if file_path.stem in seen:
                continue
            seen.add(file_path.stem)
            templates.append(
                TemplateInfo(name=file_path.stem, scope=scope, file_path=str(file_path))
            )

    return sorted(templates, key=lambda t: t.name)


def read_template(
    name: str,
    scope_roots: list[tuple[Scope, Path]],
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> tuple[str, TemplateInfo]:
    """Read a template by name, first scope wins.

    Raises:
        KamiError: TEMPLATE_NOT_FOUND if no scope has it.
    """
    for scope, root in scope_roots:
        file_path = get_scope_paths(root, context).templates / f"{name}.md"
        if storage.exists(file_path):
            info = TemplateInfo(name=name, scope=scope, file_path=str(file_path))
            return storage.read_file(file_path), info
    raise KamiError.template_not_found(name)


def create_template(
    name: str,
    content: str | None,
    paths: ScopePaths,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Write a template into a scope. Empty content gives a bare header."""
    if not name or "/" in name or "\\" in name:
        raise KamiError.validation_error(f"Invalid template name '{name}'")

    storage.mkdir(paths.templates)
    file_path = paths.templates / f"{name}.md"
    storage.write_file(file_path, content if content else EMPTY_TEMPLATE)
    log.info("Created template %s", file_path)
    return file_path


def expand_template(content: str, variables: dict[str, str]) -> str:
    """Replace every ``{{key}}`` occurrence with its value."""
    for key, value in variables.items():
        content = content.replace("{{" + key + "}}", value)
    return content


def build_template_variables(title: str, folder: str | None = None) -> dict[str, str]:
    now = datetime.now(UTC)
    return {
        "title": title,
        "date": now.date().isoformat(),
        "datetime": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "folder": folder or "",
    }


def template_body(content: str) -> str:
    """Body of a template, without its own frontmatter header.

    A template whose header does not parse is used as-is.
    """
    try:
        _, body = split_frontmatter(content)
    except yaml.YAMLError as e:
        log.debug("Template header did not parse, using raw content: %s", e)
        return content
    return body
