"""Shared test fixtures for kami test suite.

Design:
- kami_home: isolated home directory (KAMI_HOME), so ~/.kami never leaks in
- project_dir: working directory for a project, chdir'd into
- local_scope / global_scope: initialized scopes
- runner: CliRunner for CLI tests
- Async tests use explicit @pytest.mark.asyncio
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from kami.models import Scope
from kami.scope import (
    ScopeContext,
    ScopePaths,
    ensure_global_scope,
    get_scope_paths,
    init_local_scope,
)


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def kami_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated home directory; ~/.kami resolves inside it."""
    home = tmp_path / "home"
    home.mkdir()
    home = home.resolve()
    monkeypatch.setenv("KAMI_HOME", str(home))
    monkeypatch.delenv("KAMI_LOG_LEVEL", raising=False)
    monkeypatch.delenv("KAMI_QUIET", raising=False)
    return home


@pytest.fixture
def project_dir(tmp_path: Path, kami_home: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A project directory (no local scope yet), used as the working directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project.resolve()


@pytest.fixture
def context(kami_home: Path) -> ScopeContext:
    return ScopeContext.load(kami_home)


@pytest.fixture
def global_scope(context: ScopeContext) -> Path:
    """Initialized global scope root (~/.kami), with built-in templates."""
    return ensure_global_scope(context)


@pytest.fixture
def local_scope(project_dir: Path, context: ScopeContext) -> Path:
    """Initialized local scope root (<project>/.kami)."""
    return init_local_scope(project_dir, context)


@pytest.fixture
def local_paths(local_scope: Path, context: ScopeContext) -> ScopePaths:
    paths = get_scope_paths(local_scope, context)
    assert paths.scope is Scope.LOCAL
    return paths


@pytest.fixture
def global_paths(global_scope: Path, context: ScopeContext) -> ScopePaths:
    paths = get_scope_paths(global_scope, context)
    assert paths.scope is Scope.GLOBAL
    return paths


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _write_article(
    vault: Path,
    relative: str,
    title: str,
    body: str = "",
    tags: list[str] | None = None,
    extra: str = "",
) -> Path:
    """Write a raw article file (bypassing the article service)."""
    path = vault / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    tags_line = f"tags: [{', '.join(tags or [])}]"
    path.write_text(
        f"---\ntitle: {title}\n{tags_line}\ncreated: 2024-01-15\nupdated: 2024-01-16\n"
        f"{extra}---\n\n{body}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def write_article():
    """Raw article writer: write_article(vault, "folder/slug.md", title, body, tags)."""
    return _write_article
