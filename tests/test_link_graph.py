"""Tests for wiki-link parsing and the link graph (links.json)."""

import pytest

from kami.link_graph import (
    check_cross_scope_warnings,
    get_backlinks,
    get_forward_links,
    load_link_graph,
    rebuild_link_graph,
    remove_links,
    transpose,
    update_links,
)
from kami.metadata_index import rebuild_index
from kami.models import BacklinkEntry, Scope
from kami.parser import extract_link_slugs, parse_wiki_links


def _backlink_pairs(graph):
    return {
        (target, b.slug, b.scope) for target, entries in graph.backlinks.items() for b in entries
    }


def _transposed_pairs(graph, scope):
    return {
        (target, b.slug, b.scope)
        for target, entries in transpose(graph.forward, scope).items()
        for b in entries
    }


class TestParseWikiLinks:
    def test_plain_link(self):
        [link] = parse_wiki_links("See [[python-tips]] for more.")
        assert link.slug == "python-tips"
        assert link.scope is None
        assert link.display_text is None
        assert link.raw == "[[python-tips]]"

    def test_display_text(self):
        [link] = parse_wiki_links("[[python-tips|Python Tips]]")
        assert link.slug == "python-tips"
        assert link.display_text == "Python Tips"

    def test_scope_prefix(self):
        [link] = parse_wiki_links("[[global:shared|Shared notes]]")
        assert link.scope == "global"
        assert link.slug == "shared"
        assert link.display_text == "Shared notes"

    def test_cjk_slug(self):
        [link] = parse_wiki_links("参照: [[東京ガイド]]")
        assert link.slug == "東京ガイド"

    def test_does_not_cross_link_boundaries(self):
        links = parse_wiki_links("[[a]] and [[b]]")
        assert [link.slug for link in links] == ["a", "b"]

    def test_duplicates_kept_in_order(self):
        links = parse_wiki_links("[[b]] [[a]] [[b]]")
        assert [link.slug for link in links] == ["b", "a", "b"]
        assert extract_link_slugs("[[b]] [[a]] [[b]]") == ["b", "a"]

    @pytest.mark.parametrize("body", ["", "[single]", "[[]]", "[[unclosed", "plain text"])
    def test_no_links(self, body):
        assert parse_wiki_links(body) == []


class TestUpdateLinks:
    def test_forward_and_backlinks_written(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]] [[c|C]]"), Scope.LOCAL)

        forward = get_forward_links(local_paths, "a")
        assert [(e.slug, e.display_text) for e in forward] == [("b", None), ("c", "C")]
        assert get_backlinks(local_paths, "b") == [BacklinkEntry(slug="a", scope="local")]
        assert get_backlinks(local_paths, "c") == [BacklinkEntry(slug="a", scope="local")]

    def test_update_is_idempotent(self, local_paths):
        links = parse_wiki_links("[[b]] [[b]] [[c]]")
        update_links(local_paths, "a", links, Scope.LOCAL)
        first = load_link_graph(local_paths)

        update_links(local_paths, "a", links, Scope.LOCAL)

        assert load_link_graph(local_paths) == first
        assert get_backlinks(local_paths, "b") == [BacklinkEntry(slug="a", scope="local")]

    def test_update_replaces_old_links(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]]"), Scope.LOCAL)
        update_links(local_paths, "a", parse_wiki_links("[[c]]"), Scope.LOCAL)

        graph = load_link_graph(local_paths)

        assert [e.slug for e in graph.forward["a"]] == ["c"]
        assert "b" not in graph.backlinks

    def test_empty_links_remove_forward_key(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]]"), Scope.LOCAL)
        update_links(local_paths, "a", [], Scope.LOCAL)

        graph = load_link_graph(local_paths)

        assert "a" not in graph.forward
        assert graph.backlinks == {}

    def test_backlinks_are_transpose_of_forward(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]] [[c]]"), Scope.LOCAL)
        update_links(local_paths, "b", parse_wiki_links("[[c]] [[a]]"), Scope.LOCAL)
        update_links(local_paths, "a", parse_wiki_links("[[c]]"), Scope.LOCAL)

        graph = load_link_graph(local_paths)

        assert _backlink_pairs(graph) == _transposed_pairs(graph, Scope.LOCAL)


class TestRemoveLinks:
    def test_incoming_links_become_dangling(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]]"), Scope.LOCAL)
        update_links(local_paths, "b", parse_wiki_links("[[c]]"), Scope.LOCAL)

        remove_links(local_paths, "b", Scope.LOCAL)
        graph = load_link_graph(local_paths)

        assert "b" not in graph.forward
        assert "b" not in graph.backlinks
        assert "c" not in graph.backlinks
        assert [e.slug for e in graph.forward["a"]] == ["b"]

    def test_rewritten_article_regains_incoming_backlinks(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]]"), Scope.LOCAL)
        update_links(local_paths, "b", [], Scope.LOCAL)
        remove_links(local_paths, "b", Scope.LOCAL)

        update_links(local_paths, "b", parse_wiki_links("[[c]]"), Scope.LOCAL)
        graph = load_link_graph(local_paths)

        assert get_backlinks(local_paths, "b") == [BacklinkEntry(slug="a", scope="local")]
        assert _backlink_pairs(graph) == _transposed_pairs(graph, Scope.LOCAL)

    def test_remove_unknown_is_noop(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b]]"), Scope.LOCAL)
        before = load_link_graph(local_paths)

        remove_links(local_paths, "ghost", Scope.LOCAL)

        assert load_link_graph(local_paths) == before


class TestPersistence:
    def test_corrupt_file_loads_empty(self, local_paths):
        local_paths.links_file.write_text("not json at all")
        graph = load_link_graph(local_paths)
        assert graph.forward == {}
        assert graph.backlinks == {}

    def test_undecodable_file_loads_empty(self, local_paths):
        local_paths.links_file.write_bytes(b'{"forward": {"\xff\xfe": []}}')

        graph = load_link_graph(local_paths)

        assert graph.forward == {}
        assert graph.backlinks == {}

    def test_display_text_stored_camel_case(self, local_paths):
        update_links(local_paths, "a", parse_wiki_links("[[b|Bee]]"), Scope.LOCAL)
        assert '"displayText": "Bee"' in local_paths.links_file.read_text()

    def test_rebuild_matches_incremental_updates(self, local_paths, write_article):
        write_article(local_paths.vault, "a.md", "A", body="[[b]] [[global:g]]")
        write_article(local_paths.vault, "notes/b.md", "B", body="[[a|Back]] [[missing]]")
        write_article(local_paths.vault, "c.md", "C", body="No links.")
        index = rebuild_index(local_paths)

        update_links(local_paths, "b", parse_wiki_links("[[a|Back]] [[missing]]"), Scope.LOCAL)
        update_links(local_paths, "a", parse_wiki_links("[[b]] [[global:g]]"), Scope.LOCAL)
        incremental = load_link_graph(local_paths)

        count = rebuild_link_graph(local_paths, Scope.LOCAL, index)
        rebuilt = load_link_graph(local_paths)

        assert count == 4
        assert rebuilt.forward == incremental.forward
        assert _backlink_pairs(rebuilt) == _backlink_pairs(incremental)


class TestCrossScopeWarnings:
    def test_global_linking_local_warns(self):
        warnings = check_cross_scope_warnings(parse_wiki_links("[[local:scratch]]"), Scope.GLOBAL)

        assert len(warnings) == 1
        assert "scratch" in warnings[0]

    def test_local_linking_global_is_fine(self):
        assert check_cross_scope_warnings(parse_wiki_links("[[global:x]]"), Scope.LOCAL) == []

    def test_unprefixed_links_never_warn(self):
        assert check_cross_scope_warnings(parse_wiki_links("[[x]]"), Scope.GLOBAL) == []
