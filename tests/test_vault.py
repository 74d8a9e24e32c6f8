"""Tests for the named vault registry."""

import json

import pytest

from kami.errors import ErrorCode, KamiError
from kami.scope import ScopeContext
from kami.vault import add_vault, list_vaults, remove_vault, use_vault


class TestVaultRegistry:
    def test_default_listed_and_active(self, global_scope, context):
        [entry] = list_vaults(context)

        assert entry.name == "default"
        assert entry.active is True
        assert entry.path == str(global_scope / "vault")

    def test_add_creates_directory(self, global_scope, context, tmp_path):
        path = add_vault("work", tmp_path / "work", context)

        assert path.is_dir()
        names = {entry.name: entry for entry in list_vaults(context)}
        assert set(names) == {"default", "work"}
        assert names["work"].active is False

    def test_add_preserves_other_config_keys(self, global_scope, context, tmp_path):
        add_vault("work", tmp_path / "work", context)

        config = json.loads((global_scope / "config.json").read_text())

        assert config["server"] == {"port": 3000}
        assert "work" in config["vaults"]

    def test_add_duplicate(self, global_scope, context, tmp_path):
        add_vault("work", tmp_path / "work", context)

        with pytest.raises(KamiError) as exc:
            add_vault("work", tmp_path / "other", context)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_reserved_name(self, global_scope, context, tmp_path):
        with pytest.raises(KamiError) as exc:
            add_vault("default", tmp_path / "x", context)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_use_switches_global_vault(self, global_scope, kami_home, context, tmp_path):
        path = add_vault("work", tmp_path / "work", context)

        assert use_vault("work", context) == path
        reloaded = ScopeContext.load(kami_home)
        assert reloaded.global_vault == path
        assert [e.name for e in list_vaults(reloaded) if e.active] == ["work"]

    def test_use_default_restores_builtin(self, global_scope, kami_home, context, tmp_path):
        add_vault("work", tmp_path / "work", context)
        use_vault("work", context)

        use_vault("default", context)

        assert ScopeContext.load(kami_home).global_vault == global_scope / "vault"

    def test_use_unknown(self, global_scope, context):
        with pytest.raises(KamiError) as exc:
            use_vault("ghost", context)
        assert exc.value.code == ErrorCode.VAULT_NOT_FOUND
        assert "kami vault add" in exc.value.message

    def test_remove_active_falls_back(self, global_scope, kami_home, context, tmp_path):
        path = add_vault("work", tmp_path / "work", context)
        use_vault("work", context)

        removed = remove_vault("work", context)

        assert removed == path
        assert path.is_dir()
        assert ScopeContext.load(kami_home).global_vault == global_scope / "vault"

    def test_remove_unknown(self, global_scope, context):
        with pytest.raises(KamiError) as exc:
            remove_vault("ghost", context)
        assert exc.value.code == ErrorCode.VAULT_NOT_FOUND

    def test_remove_default(self, global_scope, context):
        with pytest.raises(KamiError) as exc:
            remove_vault("default", context)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR
