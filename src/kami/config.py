"""Configuration management for kami.

This module contains all configurable constants for the knowledge base.
Magic numbers are documented here rather than scattered throughout the codebase.
"""

import os
from pathlib import Path


def get_home_dir() -> Path:
    """Get the home directory that anchors the global scope.

    KAMI_HOME overrides the user's home directory. Tests and sandboxed
    environments use it to keep the global scope out of the real home.
    """
    override = os.environ.get("KAMI_HOME")
    if override:
        return Path(override).expanduser().resolve()
    return Path.home()


# =============================================================================
# Scope Layout
# =============================================================================

# Marker directory for both scopes: ./.kami (local) and ~/.kami (global)
KAMI_DIR = ".kami"

VAULT_DIRNAME = "vault"
TEMPLATES_DIRNAME = "templates"
INDEX_FILENAME = "index.json"
LINKS_FILENAME = "links.json"
CONFIG_FILENAME = "config.json"
HOOKS_FILENAME = "hooks.json"

# Article files inside a vault
ARTICLE_GLOB = "**/*.md"
TEMPLATE_GLOB = "*.md"


# =============================================================================
# Vaults and Templates
# =============================================================================

# Name of the implicit global vault (~/.kami/vault). Reserved.
DEFAULT_VAULT_NAME = "default"

# Template used by `create` when none is given
DEFAULT_TEMPLATE = "note"

# Output directory written into a freshly initialized local config.json
LOCAL_BUILD_OUT_DIR = "./.kami/dist"


# =============================================================================
# Listing
# =============================================================================

DEFAULT_LIST_LIMIT = 20
DEFAULT_SORT_FIELD = "updated"
DEFAULT_SORT_ORDER = "desc"


# =============================================================================
# Search
# =============================================================================

# Default number of results returned by search
DEFAULT_SEARCH_LIMIT = 20

# BM25F field boosts. Title and tag/alias hits outweigh body hits.
TITLE_BOOST = 3.0
TAGS_BOOST = 2.0
ALIASES_BOOST = 2.0
BODY_BOOST = 1.0

# Fuzzy matching tolerates an edit distance of ~20% of the term length.
# Terms shorter than 5 characters therefore only match exactly or by prefix.
FUZZY_RATIO = 0.2

# Relative weight of expanded (prefix / fuzzy) term matches against exact ones
PREFIX_WEIGHT = 0.4
FUZZY_WEIGHT = 0.3

# Scores are rounded to this many decimal places in search results
SCORE_PRECISION = 1
