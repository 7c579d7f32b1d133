"""Text normalization shared by the chunker, the embedding client and the
lexical similarity signals."""

import re
from functools import lru_cache

from .profile import ENGLISH, LanguageProfile

MIN_CHUNK_LENGTH = 50
MAX_EMBEDDING_CHARS = 8000
MIN_TOKEN_LENGTH = 3

_QUOTE_TRANSLATION = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "‚": "'",
        "‛": "'",
        "′": "'",
        "`": "'",
        "“": '"',
        "”": '"',
        "„": '"',
        "‟": '"',
        "«": '"',
        "»": '"',
        "–": "-",
        "—": "-",
        "\u00a0": " ",
    }
)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INLINE_SPACE = re.compile(r"[ \t\f\v]+")
_BLANK_LINES = re.compile(r"\n{3,}")
_NON_WORD = re.compile(r"[^\w\s']|_", re.UNICODE)
_TOKEN = re.compile(r"[^\W_]+", re.UNICODE)


def normalize_text(text: str) -> str:
    """Normalize quotes and whitespace while keeping paragraph breaks.

    Lines are stripped, runs of inline whitespace collapse to one space and
    any run of blank lines collapses to a single blank line.
    """
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text.translate(_QUOTE_TRANSLATION))
    lines = [_INLINE_SPACE.sub(" ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    return _BLANK_LINES.sub("\n\n", text).strip()


def prepare_chunk_text(
    text: str,
    profile: LanguageProfile = ENGLISH,
    min_length: int = MIN_CHUNK_LENGTH,
) -> str:
    """Prepare a document chunk for embedding."""
    prepared = " ".join(normalize_text(text).split())[:MAX_EMBEDDING_CHARS]
    if prepared and len(prepared) < min_length and profile.short_chunk_prefix:
        prepared = f"{profile.short_chunk_prefix} {prepared}"
    return prepared


@lru_cache(maxsize=32)
def _contraction_patterns(
    items: tuple[tuple[str, str], ...],
) -> list[tuple[re.Pattern[str], str]]:
    patterns = []
    for key, expansion in items:
        head = r"(?<=\w)" if key.startswith("'") or key.startswith("n'") else r"\b"
        tail = r"\b" if key[-1].isalnum() else ""
        patterns.append((re.compile(head + re.escape(key) + tail), expansion))
    return patterns


def expand_contractions(text: str, profile: LanguageProfile = ENGLISH) -> str:
    patterns = _contraction_patterns(tuple(profile.contractions.items()))
    for pattern, expansion in patterns:
        text = pattern.sub(expansion, text)
    return text


def prepare_query_text(text: str, profile: LanguageProfile = ENGLISH) -> str:
    """Prepare a search query (usually a transcript) for embedding.

    Lowercases, expands contractions, strips punctuation (accented letters
    survive) and appends synonyms for every recognized keyword.
    """
    lowered = normalize_text(text).lower()
    expanded = expand_contractions(lowered, profile)
    cleaned = " ".join(_NON_WORD.sub(" ", expanded).replace("'", " ").split())
    if not cleaned:
        return ""

    present = set(cleaned.split())
    additions: list[str] = []
    for word in cleaned.split():
        for synonym in profile.synonyms_of(word):
            if synonym not in present:
                present.add(synonym)
                additions.append(synonym)

    if additions:
        return f"{cleaned} {' '.join(additions)}"
    return cleaned


def tokenize(text: str, min_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    """Lowercased word tokens at least ``min_length`` characters long."""
    return [t for t in _TOKEN.findall(text.lower()) if len(t) >= min_length]


def word_set(text: str) -> set[str]:
    """Word set used by the Jaccard signal (tokens longer than 2 chars)."""
    return set(tokenize(text))
