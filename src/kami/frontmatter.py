"""Frontmatter parsing and serialization for articles.

Article files are Markdown with a YAML header block. Timestamps are kept as
the literal strings the user wrote: the YAML loader used here has no
timestamp resolver, so ``created: 2024-01-15`` parses to ``"2024-01-15"``
rather than a ``date`` that would be re-formatted on the next write.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

import frontmatter
import yaml
from frontmatter.default_handlers import YAMLHandler

from .errors import KamiError
from .models import Frontmatter

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _LiteralTimestampLoader(yaml.SafeLoader):
    """SafeLoader that leaves ISO-8601 timestamps as plain strings."""


_LiteralTimestampLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _LiteralYAMLHandler(YAMLHandler):
    def load(self, fm: str, **kwargs: object) -> Any:
        return yaml.load(fm, Loader=_LiteralTimestampLoader)


_HANDLER = _LiteralYAMLHandler()


def now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision (``...Z``)."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _trim_blank_lines(text: str) -> str:
    lines = text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split content into a raw metadata dict and body, without validation.

    Raises:
        yaml.YAMLError: If the header block is not valid YAML.
    """
    metadata, body = frontmatter.parse(content, handler=_HANDLER)
    return metadata, _trim_blank_lines(body)


def parse_frontmatter(content: str) -> tuple[Frontmatter, str]:
    """Parse a Markdown string into frontmatter and body.

    Raises:
        KamiError: INVALID_FRONTMATTER if the header is malformed or has no title.
    """
    try:
        metadata, body = split_frontmatter(content)
    except yaml.YAMLError as e:
        raise KamiError.invalid_frontmatter(str(e)) from e
    return validate_frontmatter(metadata), body


def validate_frontmatter(data: dict[str, Any]) -> Frontmatter:
    """Validate and normalize raw header data."""
    title = data.get("title")
    if not isinstance(title, str) or not title:
        raise KamiError.invalid_frontmatter('Frontmatter must have a "title" field')

    raw_tags = data.get("tags")
    if isinstance(raw_tags, list):
        tags = list(dict.fromkeys(str(tag) for tag in raw_tags))
    elif isinstance(raw_tags, str):
        tags = [raw_tags]
    else:
        tags = []

    now = now_iso()
    raw_aliases = data.get("aliases")
    template = data.get("template")
    draft = data.get("draft")

    return Frontmatter(
        title=title,
        tags=tags,
        created=_to_iso(data.get("created"), now),
        updated=_to_iso(data.get("updated"), now),
        template=template if isinstance(template, str) else None,
        aliases=[str(a) for a in raw_aliases] if isinstance(raw_aliases, list) else None,
        draft=draft if isinstance(draft, bool) else None,
    )


def _to_iso(value: object, default: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return default


def _yaml_quote_if_needed(value: str) -> str:
    """Quote a string value if it would not survive a YAML round-trip.

    Characters like ``: ``, ``#``, leading ``*``, ``&``, ``[`` or values that
    read as booleans/numbers require quoting.
    """
    test_yaml = f"key: {value}"
    try:
        parsed = yaml.load(test_yaml, Loader=_LiteralTimestampLoader)
        if isinstance(parsed, dict) and parsed.get("key") == value:
            return value
    except yaml.YAMLError:
        pass
    dumped = yaml.safe_dump(
        {"key": value}, default_flow_style=False, allow_unicode=True, width=float("inf")
    ).strip()
    # 'key: VALUE' -> 'VALUE'
    return dumped[5:]


def _format_yaml_list(key: str, items: list[str]) -> list[str]:
    if not items:
        return [f"{key}: []"]
    return [f"{key}:", *(f"  - {_yaml_quote_if_needed(item)}" for item in items)]


def build_header(fm: Frontmatter) -> str:
    """Build the YAML header block (with ``---`` fences) for a frontmatter object.

    Required fields are always written; optional fields only when set:
    template when non-empty, aliases when non-empty, draft only when true.
    """
    parts = ["---"]
    parts.append(f"title: {_yaml_quote_if_needed(fm.title)}")
    parts.extend(_format_yaml_list("tags", fm.tags))
    parts.append(f"created: {_yaml_quote_if_needed(fm.created)}")
    parts.append(f"updated: {_yaml_quote_if_needed(fm.updated)}")

    if fm.template:
        parts.append(f"template: {_yaml_quote_if_needed(fm.template)}")
    if fm.aliases:
        parts.extend(_format_yaml_list("aliases", fm.aliases))
    if fm.draft:
        parts.append("draft: true")

    parts.append("---")
    return "\n".join(parts)


def serialize_frontmatter(fm: Frontmatter, body: str) -> str:
    """Serialize frontmatter and body back to a Markdown string."""
    header = build_header(fm)
    if body:
        return f"{header}\n\n{body}\n"
    return f"{header}\n"


def generate_frontmatter(
    title: str,
    *,
    tags: list[str] | None = None,
    template: str | None = None,
    draft: bool = False,
) -> Frontmatter:
    """Create frontmatter for a new article (created == updated == now)."""
    now = now_iso()
    return Frontmatter(
        title=title,
        tags=list(tags or []),
        created=now,
        updated=now,
        template=template,
        draft=True if draft else None,
    )
