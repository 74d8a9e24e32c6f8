"""Keyword search over vault articles."""

from .search import merge_results, search, search_scope
from .tokenizer import VaultTokenizer, tokenize
from .whoosh_index import IndexHit, WhooshIndex

__all__ = [
    "IndexHit",
    "VaultTokenizer",
    "WhooshIndex",
    "merge_results",
    "search",
    "search_scope",
    "tokenize",
]
