"""Tests for scope resolution and scope paths."""

import json
from pathlib import Path

import pytest

from kami.errors import ErrorCode, KamiError
from kami.models import Operation, Scope, ScopeOption
from kami.scope import (
    ScopeContext,
    find_local_root,
    get_scope_paths,
    get_scope_root,
    init_local_scope,
    load_global_config,
    resolve_scope,
)


class TestResolveScope:
    """Resolution policy for requested scope and operation."""

    def test_read_chain_local_then_global(self, local_scope, global_scope, project_dir, context):
        resolved = resolve_scope(None, Operation.READ, project_dir, context)
        assert resolved.scopes == (Scope.LOCAL, Scope.GLOBAL)
        assert resolved.local_root == local_scope

    def test_read_without_local_is_global_only(self, global_scope, tmp_path, context):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()

        resolved = resolve_scope(None, Operation.READ, elsewhere, context)

        assert resolved.scopes == (Scope.GLOBAL,)
        assert resolved.local_root is None

    def test_write_picks_local(self, local_scope, global_scope, project_dir, context):
        resolved = resolve_scope(None, Operation.WRITE, project_dir, context)
        assert resolved.scopes == (Scope.LOCAL,)

    def test_write_without_local_picks_global(self, project_dir, context):
        resolved = resolve_scope(None, Operation.WRITE, project_dir, context)
        assert resolved.scopes == (Scope.GLOBAL,)

    def test_explicit_local_without_root_fails(self, project_dir, context):
        with pytest.raises(KamiError) as exc:
            resolve_scope(ScopeOption.LOCAL, Operation.READ, project_dir, context)
        assert exc.value.code == ErrorCode.SCOPE_NOT_FOUND

    def test_explicit_global_always_succeeds(self, project_dir, context):
        """Global resolves even before ~/.kami exists."""
        resolved = resolve_scope("global", Operation.WRITE, project_dir, context)
        assert resolved.scopes == (Scope.GLOBAL,)
        assert resolved.root_for(Scope.GLOBAL) == context.global_root

    def test_all_includes_only_existing_scopes(self, local_scope, project_dir, context):
        resolved = resolve_scope("all", Operation.READ, project_dir, context)
        assert resolved.scopes == (Scope.LOCAL,)

    def test_all_orders_local_first(self, local_scope, global_scope, project_dir, context):
        resolved = resolve_scope(ScopeOption.ALL, Operation.READ, project_dir, context)
        assert resolved.scopes == (Scope.LOCAL, Scope.GLOBAL)

    def test_invalid_scope_name(self, project_dir, context):
        with pytest.raises(KamiError) as exc:
            resolve_scope("everywhere", Operation.READ, project_dir, context)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_root_for_missing_local(self, project_dir, context):
        resolved = resolve_scope(None, Operation.READ, project_dir, context)
        with pytest.raises(KamiError) as exc:
            resolved.root_for(Scope.LOCAL)
        assert exc.value.code == ErrorCode.SCOPE_NOT_FOUND


class TestFindLocalRoot:
    def test_found_from_nested_directory(self, local_scope, project_dir, context):
        nested = project_dir / "src" / "deep"
        nested.mkdir(parents=True)

        assert find_local_root(nested, context) == local_scope

    def test_none_when_absent(self, project_dir, context):
        assert find_local_root(project_dir, context) is None

    def test_global_root_is_not_local(self, global_scope, kami_home, context):
        """Working inside the home directory must not pick ~/.kami up as local."""
        assert find_local_root(kami_home, context) is None

    def test_nearest_scope_wins(self, local_scope, project_dir, context):
        inner = project_dir / "sub"
        inner.mkdir()
        inner_root = init_local_scope(inner, context)

        assert find_local_root(inner, context) == inner_root

    def test_get_scope_root(self, local_scope, project_dir, context):
        assert get_scope_root(Scope.LOCAL, project_dir, context) == local_scope
        assert get_scope_root(Scope.GLOBAL, project_dir, context) == context.global_root


class TestScopePaths:
    def test_local_layout(self, local_scope, context):
        paths = get_scope_paths(local_scope, context)

        assert paths.scope is Scope.LOCAL
        assert paths.vault == local_scope / "vault"
        assert paths.templates == local_scope / "templates"
        assert paths.index_file == local_scope / "index.json"
        assert paths.links_file == local_scope / "links.json"
        assert paths.config_file == local_scope / "config.json"
        assert paths.hooks_file == local_scope / "hooks.json"

    def test_init_writes_empty_side_files(self, local_scope):
        assert json.loads((local_scope / "index.json").read_text()) == {"articles": {}}
        assert json.loads((local_scope / "links.json").read_text()) == {
            "forward": {},
            "backlinks": {},
        }
        assert (local_scope / "vault").is_dir()

    def test_global_scope_has_builtin_templates(self, global_scope):
        assert (global_scope / "templates" / "note.md").is_file()
        assert (global_scope / "templates" / "daily.md").is_file()

    def test_active_vault_redirects_global_content_only(
        self, global_scope, kami_home, tmp_path, local_scope
    ):
        vault_dir = tmp_path / "elsewhere-vault"
        vault_dir.mkdir()
        config_file = global_scope / "config.json"
        config = json.loads(config_file.read_text())
        config.update({"vaults": {"work": str(vault_dir)}, "activeVault": "work"})
        config_file.write_text(json.dumps(config))

        context = ScopeContext.load(kami_home)
        global_paths = get_scope_paths(global_scope, context)
        local_paths = get_scope_paths(local_scope, context)

        assert context.global_vault == vault_dir
        assert global_paths.vault == vault_dir
        assert global_paths.index_file == global_scope / "index.json"
        assert local_paths.vault == local_scope / "vault"

    def test_unknown_active_vault_falls_back(self, global_scope, kami_home):
        (global_scope / "config.json").write_text(json.dumps({"activeVault": "ghost"}))

        context = ScopeContext.load(kami_home)

        assert context.global_vault == global_scope / "vault"

    def test_undecodable_config_falls_back(self, global_scope, kami_home):
        (global_scope / "config.json").write_bytes(b'{"activeVault": "\xff\xfe"}')

        context = ScopeContext.load(kami_home)

        assert context.global_vault == global_scope / "vault"
        assert load_global_config(context).vaults == {}

    def test_reinit_keeps_existing_side_files(self, local_scope, project_dir, context):
        index_file = local_scope / "index.json"
        index_file.write_text('{"articles": {"kept": {}}}')
        (local_scope / "hooks.json").unlink()

        init_local_scope(project_dir, context)

        assert index_file.read_text() == '{"articles": {"kept": {}}}'
        assert json.loads((local_scope / "hooks.json").read_text()) == {"hooks": {}}

    def test_context_uses_kami_home(self, kami_home):
        context = ScopeContext.load()
        assert context.home == Path(kami_home)
        assert context.global_root == Path(kami_home) / ".kami"
