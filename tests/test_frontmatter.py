"""Tests for kami.frontmatter module."""

import pytest

from kami.errors import ErrorCode, KamiError
from kami.frontmatter import (
    build_header,
    generate_frontmatter,
    parse_frontmatter,
    serialize_frontmatter,
)
from kami.models import Frontmatter


def _fm(**overrides) -> Frontmatter:
    data = {
        "title": "Test Entry",
        "tags": ["python", "tips"],
        "created": "2024-01-15T10:00:00.000Z",
        "updated": "2024-01-16T08:30:00.000Z",
    }
    data.update(overrides)
    return Frontmatter(**data)


class TestRoundTrip:
    """parse(serialize(fm, body)) preserves body and fields."""

    @pytest.mark.parametrize(
        "fm",
        [
            _fm(),
            _fm(tags=[]),
            _fm(template="daily", aliases=["te", "entry"], draft=True),
            _fm(title="C++: tips & tricks #1"),
            _fm(title="true", tags=["123", "yes"]),
            _fm(title="東京ガイド", tags=["旅行"]),
        ],
    )
    def test_fields_and_body_survive(self, fm):
        body = "# Heading\n\nSome text with [[a-link]].\n\n- item"

        parsed, parsed_body = parse_frontmatter(serialize_frontmatter(fm, body))

        assert parsed_body == body
        assert parsed == fm

    def test_empty_body(self):
        content = serialize_frontmatter(_fm(), "")

        parsed, body = parse_frontmatter(content)

        assert content.endswith("---\n")
        assert body == ""
        assert parsed.title == "Test Entry"


class TestParse:
    """Tests for parse_frontmatter normalization and failures."""

    def test_timestamps_kept_literally(self):
        """A bare date is not reformatted into a date object."""
        content = "---\ntitle: T\ncreated: 2024-01-15\nupdated: 2024-01-15 10:00:00\n---\nBody"

        fm, _ = parse_frontmatter(content)

        assert fm.created == "2024-01-15"
        assert fm.updated == "2024-01-15 10:00:00"

    def test_bare_string_tag_becomes_list(self):
        fm, _ = parse_frontmatter("---\ntitle: T\ntags: solo\n---\n")
        assert fm.tags == ["solo"]

    def test_duplicate_tags_collapsed(self):
        fm, _ = parse_frontmatter("---\ntitle: T\ntags: [b, a, b, a]\n---\n")
        assert fm.tags == ["b", "a"]

    def test_absent_tags_become_empty(self):
        fm, _ = parse_frontmatter("---\ntitle: T\n---\n")
        assert fm.tags == []

    def test_missing_timestamps_default_to_now(self):
        fm, _ = parse_frontmatter("---\ntitle: T\n---\n")
        assert fm.created.endswith("Z")
        assert fm.updated.endswith("Z")

    def test_body_trimmed_of_blank_lines(self):
        _, body = parse_frontmatter("---\ntitle: T\n---\n\n\nline one\n\nline two\n\n\n")
        assert body == "line one\n\nline two"

    @pytest.mark.parametrize(
        "content",
        [
            "---\ntags: [a]\n---\nBody",
            "---\ntitle: ''\n---\nBody",
            "---\ntitle: 42\n---\nBody",
            "No header at all",
        ],
    )
    def test_missing_title_fails(self, content):
        with pytest.raises(KamiError) as exc:
            parse_frontmatter(content)
        assert exc.value.code == ErrorCode.INVALID_FRONTMATTER

    def test_malformed_yaml_fails(self):
        with pytest.raises(KamiError) as exc:
            parse_frontmatter("---\ntitle: [unclosed\n---\nBody")
        assert exc.value.code == ErrorCode.INVALID_FRONTMATTER

    def test_wrongly_typed_optional_fields_dropped(self):
        fm, _ = parse_frontmatter("---\ntitle: T\ntemplate: 3\naliases: x\ndraft: maybe\n---\n")
        assert fm.template is None
        assert fm.aliases is None
        assert fm.draft is None


class TestBuildHeader:
    """Optional fields are omitted unless set."""

    def test_minimal_header(self):
        header = build_header(_fm(tags=[]))

        assert header.startswith("---\ntitle: Test Entry\n")
        assert "tags: []" in header
        assert "template" not in header
        assert "aliases" not in header
        assert "draft" not in header

    def test_draft_false_never_written(self):
        assert "draft" not in build_header(_fm(draft=False))

    def test_draft_true_written(self):
        assert "draft: true" in build_header(_fm(draft=True))

    def test_empty_aliases_omitted(self):
        assert "aliases" not in build_header(_fm(aliases=[]))

    def test_tags_as_block_list(self):
        header = build_header(_fm())
        assert "tags:\n  - python\n  - tips" in header


class TestGenerateFrontmatter:
    def test_created_equals_updated(self):
        fm = generate_frontmatter("New", tags=["a"], template="note")

        assert fm.created == fm.updated
        assert fm.tags == ["a"]
        assert fm.template == "note"
        assert fm.draft is None

    def test_draft_flag(self):
        assert generate_frontmatter("New", draft=True).draft is True
