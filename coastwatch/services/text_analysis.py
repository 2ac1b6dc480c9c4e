"""
text_analysis.py — Local NLP for ingested news / forum items.

analyze(text) returns three signals, all computed in-process:

  sentiment_score  AFINN comparative score: the sum of AFINN-165 word
                   polarities (via the `afinn` package) divided by the number
                   of tokens. A matched word directly after a negator
                   ("not", "never", ...) is flipped.
  keywords         RAKE (Rapid Automatic Keyword Extraction): candidate phrases
                   are the runs of words between stopwords (scikit-learn's
                   English list); each word scores degree / frequency, a
                   phrase scores the sum of its words.
                   Top 5, ties in first-occurrence order.
  hashtags         every `#word`, lowercased, de-duplicated, in order.

English only. No network, no persistence; safe to call from anywhere.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field

from afinn import Afinn
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

MAX_KEYWORDS = 5

# Lexicon loaded once per process; Afinn ships the word list inside the package.
_afinn = Afinn(language="en")

_NEGATORS = frozenset({
    "not", "no", "never", "none", "nobody", "nothing", "neither", "nor",
    "cannot", "can't", "don't", "doesn't", "didn't", "isn't", "wasn't",
    "aren't", "weren't", "won't", "wouldn't", "shouldn't", "couldn't",
})

_STOPWORDS = frozenset(ENGLISH_STOP_WORDS)

# ── Patterns ──────────────────────────────────────────────────────────────────

_SENTIMENT_STRIP_RE = re.compile(r"[^\w\s'-]")
_SENTENCE_SPLIT_RE  = re.compile(r"[.!?,;:\t\n\"()\[\]–—’]|\s-\s")
_WORD_RE            = re.compile(r"[a-z0-9]+(?:['-][a-z0-9]+)*")
_HASHTAG_RE         = re.compile(r"#\w+")


@dataclass
class TextAnalysis:
    sentiment_score: float = 0.0
    keywords: list[str] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)


# ── Sentiment ─────────────────────────────────────────────────────────────────

def sentiment_score(text: str) -> float:
    """Comparative lexicon score; 0.0 for empty text or when nothing matches."""
    tokens = _SENTIMENT_STRIP_RE.sub(" ", text.lower()).split()
    if not tokens:
        return 0.0

    total = 0.0
    for i, token in enumerate(tokens):
        polarity = _afinn.score(token)
        if not polarity:
            continue
        if i > 0 and tokens[i - 1] in _NEGATORS:
            polarity = -polarity
        total += polarity

    return total / len(tokens)


# ── Keywords (RAKE) ───────────────────────────────────────────────────────────

def _candidate_phrases(text: str) -> list[tuple[str, ...]]:
    phrases: list[tuple[str, ...]] = []
    for sentence in _SENTENCE_SPLIT_RE.split(text.lower()):
        current: list[str] = []
        for word in _WORD_RE.findall(sentence):
            # stopwords and bare numbers both end the running phrase
            if word in _STOPWORDS or word.replace("-", "").isdigit():
                if current:
                    phrases.append(tuple(current))
                current = []
            else:
                current.append(word)
        if current:
            phrases.append(tuple(current))
    return phrases


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Top *limit* RAKE phrases, highest score first."""
    phrases = _candidate_phrases(text)
    if not phrases:
        return []

    frequency: dict[str, int] = defaultdict(int)
    degree: dict[str, int] = defaultdict(int)
    for phrase in phrases:
        for word in phrase:
            frequency[word] += 1
            degree[word] += len(phrase)

    word_score = {w: degree[w] / frequency[w] for w in frequency}

    # dict keeps first-occurrence order, which the stable sort uses for ties
    scored: dict[str, float] = {}
    for phrase in phrases:
        key = " ".join(phrase)
        if key not in scored:
            scored[key] = sum(word_score[w] for w in phrase)

    ranked = sorted(scored, key=lambda k: scored[k], reverse=True)
    return ranked[:limit]


# ── Hashtags ──────────────────────────────────────────────────────────────────

def extract_hashtags(text: str) -> list[str]:
    return list(dict.fromkeys(tag.lower() for tag in _HASHTAG_RE.findall(text)))


def analyze(text: str) -> TextAnalysis:
    """Run all three analyses over *text*."""
    if not text or not text.strip():
        return TextAnalysis()
    return TextAnalysis(
        sentiment_score=sentiment_score(text),
        keywords=extract_keywords(text),
        hashtags=extract_hashtags(text),
    )
