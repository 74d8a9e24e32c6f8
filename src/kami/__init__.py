"""kami: a plain-markdown knowledge base with scopes, wiki-links and search."""

__version__ = "0.4.0"
