"""Tokenization shared by indexing and querying.

Text is split on whitespace and punctuation. Runs that contain CJK
characters have no spaces between words, so they are segmented further with
BudouX's Japanese model. Every token is lowercased.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from functools import lru_cache

import budoux
from whoosh.analysis import LowercaseFilter, Token, Tokenizer

CJK_PATTERN = re.compile(
    r"[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf\u3400-\u4dbf\uff00-\uffef]"
)
WORD_PATTERN = re.compile(r"[^\s,.;:!?()\[\]{}\"'`~@#$%^&*+=<>/\\|]+")


@lru_cache(maxsize=1)
def _japanese_parser() -> budoux.Parser:
    return budoux.load_default_japanese_parser()


def _segment(word: str, offset: int) -> Iterator[tuple[str, int, int]]:
    """Split a CJK run into BudouX phrases with their character offsets."""
    for phrase in _japanese_parser().parse(word):
        stripped = phrase.strip()
        if stripped:
            start = offset + phrase.index(stripped)
            yield stripped, start, start + len(stripped)
        offset += len(phrase)


def iter_words(text: str) -> Iterator[tuple[str, int, int]]:
    """Yield (word, startchar, endchar) for every token in ``text``."""
    for match in WORD_PATTERN.finditer(text):
        word = match.group()
        if CJK_PATTERN.search(word):
            yield from _segment(word, match.start())
        else:
            yield word, match.start(), match.end()


class VaultTokenizer(Tokenizer):
    """Whoosh tokenizer over ``iter_words``, with positions and char offsets."""

    def __call__(
        self,
        value,
        positions=False,
        chars=False,
        keeporiginal=False,
        removestops=True,
        start_pos=0,
        start_char=0,
        tokenize=True,
        mode="",
        **kwargs,
    ):
        t = Token(positions, chars, removestops=removestops, mode=mode, **kwargs)
        if not tokenize:
            t.original = t.text = value
            t.boost = 1.0
            if positions:
                t.pos = start_pos
            if chars:
                t.startchar = start_char
                t.endchar = start_char + len(value)
            yield t
            return

        for pos, (word, start, end) in enumerate(iter_words(value)):
            t.text = word
            t.boost = 1.0
            if keeporiginal:
                t.original = word
            t.stopped = False
            if positions:
                t.pos = start_pos + pos
            if chars:
                t.startchar = start_char + start
                t.endchar = start_char + end
            yield t


def vault_analyzer():
    return VaultTokenizer() | LowercaseFilter()


_ANALYZER = vault_analyzer()


def tokenize(text: str) -> list[str]:
    """Split text into lowercase search tokens."""
    return [t.text for t in _ANALYZER(text)]
