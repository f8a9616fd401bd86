from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from watchplan.app.models.videos import EnrichedVideo

LOGGER = logging.getLogger("watchplan.content_analysis")

STOP_WORDS: frozenset[str] = frozenset({"|", "-"})
TOP_WORDS_LIMIT = 5
MIN_WORD_LENGTH = 3

_NON_WORD_PATTERN = re.compile(r"[^\w\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class WordCount:
    word: str
    count: int


def analyze_word_frequency(texts: Sequence[str]) -> list[WordCount]:
    """Rank the most frequent words across all `texts`.

    Counting is shared across every text. Ties keep the order in which words were
    first seen, and at most `TOP_WORDS_LIMIT` entries are returned.
    """
    LOGGER.debug("analyzing word frequency texts=%s", len(texts))

    counts: dict[str, int] = {}
    for text in texts:
        for word in _tokenize(text):
            counts[word] = counts.get(word, 0) + 1

    # sorted() is stable, so equal counts stay in first-seen order.
    ranked = sorted(counts.items(), key=lambda entry: -entry[1])
    top_words = [WordCount(word=word, count=count) for word, count in ranked[:TOP_WORDS_LIMIT]]

    LOGGER.debug(
        "top words %s",
        ", ".join(f"{entry.word}={entry.count}" for entry in top_words),
    )
    return top_words


def collect_video_texts(videos: Iterable[EnrichedVideo]) -> list[str]:
    texts: list[str] = []
    for video in videos:
        texts.append(video.title)
        texts.append(video.description)
    return texts


def _tokenize(text: str) -> list[str]:
    cleaned = _NON_WORD_PATTERN.sub("", text.lower())
    return [
        word
        for word in _WHITESPACE_PATTERN.split(cleaned)
        if len(word) >= MIN_WORD_LENGTH and word not in STOP_WORDS
    ]
