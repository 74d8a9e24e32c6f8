"""Scope resolution: which root directory governs an operation.

Two kinds of scope exist:

- local: a project vault, found by walking up from the working directory
  looking for a ``.kami/`` directory.
- global: the user's vault under ``~/.kami``. Its content directory may be
  redirected to a named vault registered in ``~/.kami/config.json``, while
  index/links/config/hooks files stay anchored at ``~/.kami``.

The active-vault redirect is read once into a ScopeContext, which callers
construct at startup and pass to every path computation.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import assert_never

from pydantic import ValidationError

from .config import (
    CONFIG_FILENAME,
    HOOKS_FILENAME,
    INDEX_FILENAME,
    KAMI_DIR,
    LINKS_FILENAME,
    LOCAL_BUILD_OUT_DIR,
    TEMPLATES_DIRNAME,
    VAULT_DIRNAME,
    get_home_dir,
)
from .errors import KamiError
from .models import KamiConfig, Operation, Scope, ScopeOption
from .storage import StorageAdapter, default_storage

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeContext:
    """Process-wide scope configuration, computed once and passed explicitly."""

    home: Path
    global_root: Path
    global_vault: Path

    @classmethod
    def load(
        cls,
        home: Path | None = None,
        storage: StorageAdapter = default_storage,
    ) -> ScopeContext:
        """Build the context, applying the active named vault if one is set."""
        home = Path(home) if home is not None else get_home_dir()
        global_root = home / KAMI_DIR
        config = _read_config(global_root / CONFIG_FILENAME, storage)

        vault = global_root / VAULT_DIRNAME
        if config.active_vault and config.active_vault in config.vaults:
            vault = Path(config.vaults[config.active_vault]).expanduser()

        return cls(home=home, global_root=global_root, global_vault=vault)


@dataclass(frozen=True)
class ScopePaths:
    """Canonical paths for one scope root."""

    scope: Scope
    root: Path
    vault: Path
    templates: Path
    index_file: Path
    links_file: Path
    config_file: Path
    hooks_file: Path
    home: Path


@dataclass(frozen=True)
class ResolvedScopes:
    """Ordered scopes for an operation plus the roots they map to."""

    scopes: tuple[Scope, ...]
    local_root: Path | None
    global_root: Path

    def root_for(self, scope: Scope) -> Path:
        match scope:
            case Scope.LOCAL:
                if self.local_root is None:
                    raise KamiError.scope_not_found()
                return self.local_root
            case Scope.GLOBAL:
                return self.global_root
            case _:
                assert_never(scope)

    def roots(self) -> list[tuple[Scope, Path]]:
        return [(scope, self.root_for(scope)) for scope in self.scopes]

    def paths(self, context: ScopeContext) -> list[ScopePaths]:
        return [get_scope_paths(root, context) for _, root in self.roots()]


def _same_path(a: Path, b: Path) -> bool:
    return Path(a).resolve() == Path(b).resolve()


def get_scope_paths(root: Path, context: ScopeContext) -> ScopePaths:
    """Get paths for a given scope root.

    The vault redirect only ever applies to the global root.
    """
    root = Path(root)
    is_global = _same_path(root, context.global_root)
    scope = Scope.GLOBAL if is_global else Scope.LOCAL

    return ScopePaths(
        scope=scope,
        root=root,
        vault=context.global_vault if is_global else root / VAULT_DIRNAME,
        templates=root / TEMPLATES_DIRNAME,
        index_file=root / INDEX_FILENAME,
        links_file=root / LINKS_FILENAME,
        config_file=root / CONFIG_FILENAME,
        hooks_file=root / HOOKS_FILENAME,
        home=context.home,
    )


def global_scope_exists(context: ScopeContext) -> bool:
    return context.global_root.is_dir()


def find_local_root(cwd: Path | None = None, context: ScopeContext | None = None) -> Path | None:
    """Find the local scope by looking for .kami/ in cwd or its ancestors.

    The walk stops at the filesystem root (the first directory that is its
    own parent). When a context is given, the global root is skipped so that
    working inside the home directory does not pick ~/.kami up as local.
    """
    current = Path(cwd or Path.cwd()).resolve()

    while True:
        candidate = current / KAMI_DIR
        if candidate.is_dir() and not (
            context is not None and _same_path(candidate, context.global_root)
        ):
            return candidate

        parent = current.parent
        if parent == current:
            return None
        current = parent


def _coerce_option(requested: ScopeOption | Scope | str | None) -> ScopeOption | None:
    if requested is None:
        return None
    if isinstance(requested, ScopeOption):
        return requested
    value = requested.value if isinstance(requested, Scope) else requested
    try:
        return ScopeOption(value)
    except ValueError:
        raise KamiError.validation_error(
            f"Invalid scope '{value}'. Use local, global, or all."
        ) from None


def resolve_scope(
    requested: ScopeOption | Scope | str | None = None,
    operation: Operation = Operation.READ,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> ResolvedScopes:
    """Resolve which scopes an operation applies to.

    - ALL: local if present, then global if initialized.
    - LOCAL: fails with SCOPE_NOT_FOUND when there is no local root.
    - GLOBAL: always succeeds.
    - unset + WRITE: the nearest scope only (local if present, else global).
    - unset + READ: local-first chain [local, global], or [global] alone.
    """
    context = context or ScopeContext.load()
    option = _coerce_option(requested)
    global_root = context.global_root
    local_root = find_local_root(cwd, context)

    def resolved(*scopes: Scope) -> ResolvedScopes:
        return ResolvedScopes(scopes=scopes, local_root=local_root, global_root=global_root)

    match option:
        case ScopeOption.ALL:
            scopes: list[Scope] = []
            if local_root:
                scopes.append(Scope.LOCAL)
            if global_scope_exists(context):
                scopes.append(Scope.GLOBAL)
            return resolved(*scopes)
        case ScopeOption.LOCAL:
            if local_root is None:
                raise KamiError.scope_not_found()
            return resolved(Scope.LOCAL)
        case ScopeOption.GLOBAL:
            return resolved(Scope.GLOBAL)
        case None:
            pass
        case _:
            assert_never(option)

    match operation:
        case Operation.WRITE:
            return resolved(Scope.LOCAL if local_root else Scope.GLOBAL)
        case Operation.READ:
            if local_root:
                return resolved(Scope.LOCAL, Scope.GLOBAL)
            return resolved(Scope.GLOBAL)
        case _:
            assert_never(operation)


def get_scope_root(
    scope: Scope,
    cwd: Path | None = None,
    context: ScopeContext | None = None,
) -> Path:
    """Get the root path for a specific scope."""
    context = context or ScopeContext.load()
    match scope:
        case Scope.GLOBAL:
            return context.global_root
        case Scope.LOCAL:
            local_root = find_local_root(cwd, context)
            if local_root is None:
                raise KamiError.scope_not_found()
            return local_root
        case _:
            assert_never(scope)


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────


def _read_config(path: Path, storage: StorageAdapter) -> KamiConfig:
    try:
        return KamiConfig.model_validate(json.loads(storage.read_file(path)))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError):
        return KamiConfig()


def _write_json(path: Path, payload: dict, storage: StorageAdapter) -> None:
    storage.write_file(path, json.dumps(payload, indent=2, ensure_ascii=False))


def load_global_config(
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> KamiConfig:
    """Load ~/.kami/config.json. Missing or corrupt files give the default config."""
    return _read_config(context.global_root / CONFIG_FILENAME, storage)


def save_global_config(
    config: KamiConfig,
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> None:
    storage.mkdir(context.global_root)
    _write_json(context.global_root / CONFIG_FILENAME, config.to_json_dict(), storage)


# ─────────────────────────────────────────────────────────────────────────────
# Initialization
# ─────────────────────────────────────────────────────────────────────────────


def _init_scope_files(paths: ScopePaths, config: dict, storage: StorageAdapter) -> None:
    """Create the scope layout. Side-files that already exist are kept."""
    storage.mkdir(paths.vault)
    storage.mkdir(paths.templates)
    defaults = {
        paths.index_file: {"articles": {}},
        paths.links_file: {"forward": {}, "backlinks": {}},
        paths.config_file: config,
        paths.hooks_file: {"hooks": {}},
    }
    for path, payload in defaults.items():
        if not storage.exists(path):
            _write_json(path, payload, storage)


def init_local_scope(
    cwd: Path | None = None,
    context: ScopeContext | None = None,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Initialize a local scope (.kami/) in the given directory."""
    context = context or ScopeContext.load()
    root = Path(cwd or Path.cwd()).resolve() / KAMI_DIR
    paths = get_scope_paths(root, context)
    _init_scope_files(paths, {"build": {"outDir": LOCAL_BUILD_OUT_DIR}}, storage)
    log.info("Initialized local scope at %s", root)
    return root


def ensure_global_scope(
    context: ScopeContext,
    storage: StorageAdapter = default_storage,
) -> Path:
    """Ensure the global scope exists, creating it (with built-in templates) if needed."""
    from .templates import BUILTIN_TEMPLATES

    root = context.global_root
    if storage.exists(root):
        return root

    paths = get_scope_paths(root, context)
    _init_scope_files(paths, {"server": {"port": 3000}, "build": {"outDir": "dist"}}, storage)
    for name, content in BUILTIN_TEMPLATES.items():
        storage.write_file(paths.templates / f"{name}.md", content)

    log.info("Initialized global scope at %s", root)
    return root
