"""Named vault registry for the global scope.

A named vault redirects the global scope's content directory to an arbitrary
path. The registry lives in ~/.kami/config.json; switching vaults never moves
or deletes files. ScopeContext is immutable, so callers reload it after
``use_vault`` / ``remove_vault`` to pick up the new vault directory.
"""

from __future__ import annotations

from pathlib import Path

from .config import DEFAULT_VAULT_NAME, VAULT_DIRNAME
from .errors import KamiError
from .models import VaultEntry
from .scope import ScopeContext, load_global_config, save_global_config
from .storage import StorageAdapter, default_storage


def _default_vault_path(context: ScopeContext) -> Path:
    return context.global_root / VAULT_DIRNAME


def list_vaults(
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> list[VaultEntry]:
    """List all registered vaults, including the implicit default."""
    config = load_global_config(context, storage)
    active = config.active_vault or DEFAULT_VAULT_NAME

    entries = [
        VaultEntry(
            name=DEFAULT_VAULT_NAME,
            path=str(_default_vault_path(context)),
            active=active == DEFAULT_VAULT_NAME,
        )
    ]
    for name, path in config.vaults.items():
        entries.append(VaultEntry(name=name, path=path, active=name == active))
    return entries


def add_vault(
    name: str,
    path: Path,
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Register a new named vault, creating its directory."""
    if name == DEFAULT_VAULT_NAME:
        raise KamiError.validation_error(f"Cannot use reserved vault name '{DEFAULT_VAULT_NAME}'")

    config = load_global_config(context, storage)
    if name in config.vaults:
        raise KamiError.validation_error(f"Vault '{name}' already exists at {config.vaults[name]}")

    vault_path = Path(path).expanduser().resolve()
    storage.mkdir(vault_path)
    config.vaults[name] = str(vault_path)
    save_global_config(config, context, storage)
    return vault_path


def remove_vault(
    name: str,
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Unregister a vault. Falls back to the default vault if it was active."""
    if name == DEFAULT_VAULT_NAME:
        raise KamiError.validation_error("Cannot remove the default vault")

    config = load_global_config(context, storage)
    if name not in config.vaults:
        raise KamiError.vault_not_found(name)

    removed = config.vaults.pop(name)
    if config.active_vault == name:
        config.active_vault = DEFAULT_VAULT_NAME
    save_global_config(config, context, storage)
    return Path(removed)


def use_vault(
    name: str,
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Switch the active vault and return its content directory."""
    config = load_global_config(context, storage)

    if name == DEFAULT_VAULT_NAME:
        config.active_vault = DEFAULT_VAULT_NAME
        save_global_config(config, context, storage)
        return _default_vault_path(context)

    if name not in config.vaults:
        raise KamiError.vault_not_found(
            name, hint=f"Use 'kami vault add {name} <path>' to register it first."
        )

    config.active_vault = name
    save_global_config(config, context, storage)
    return Path(config.vaults[name])
