"""Language profiles used by query/chunk preprocessing and lexical scoring.

A profile bundles every vocabulary table the retrieval layer needs so that
nothing downstream hard-codes a single language.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LanguageProfile:
    """Vocabulary tables for one language.

    Attributes:
        code: Short language code (e.g. "en").
        contractions: Contraction -> expansion, applied to lowercased queries.
        synonym_groups: Groups of interchangeable words. A word may appear in
            only one group.
        stopwords: Words ignored by the semantic-overlap signal.
        short_chunk_prefix: Phrase prepended to very short chunks before
            embedding so the model gets some framing.
    """

    code: str
    contractions: dict[str, str] = field(default_factory=dict)
    synonym_groups: tuple[tuple[str, ...], ...] = ()
    stopwords: frozenset[str] = frozenset()
    short_chunk_prefix: str = ""

    def __post_init__(self) -> None:
        lookup: dict[str, tuple[str, ...]] = {}
        for group in self.synonym_groups:
            for word in group:
                lookup[word] = group
        object.__setattr__(self, "_synonym_lookup", lookup)

    def synonyms_of(self, word: str) -> tuple[str, ...]:
        """Return the other members of the word's synonym group."""
        group = self._synonym_lookup.get(word, ())  # type: ignore[attr-defined]
        return tuple(w for w in group if w != word)

    def are_synonyms(self, first: str, second: str) -> bool:
        group = self._synonym_lookup.get(first)  # type: ignore[attr-defined]
        return group is not None and second in group and first != second


ENGLISH = LanguageProfile(
    code="en",
    contractions={
        "can't": "cannot",
        "won't": "will not",
        "n't": " not",
        "'re": " are",
        "'ve": " have",
        "'ll": " will",
        "'m": " am",
        "'d": " would",
        "it's": "it is",
        "that's": "that is",
        "there's": "there is",
        "what's": "what is",
        "let's": "let us",
    },
    synonym_groups=(
        ("important", "significant", "relevant", "essential", "key"),
        ("increase", "grow", "rise", "raise", "expand"),
        ("decrease", "reduce", "decline", "drop", "shrink"),
        ("big", "large", "huge", "great"),
        ("small", "little", "tiny", "minor"),
        ("fast", "quick", "rapid", "swift"),
        ("start", "begin", "commence", "launch"),
        ("end", "finish", "conclude", "complete"),
        ("show", "demonstrate", "illustrate", "display"),
        ("use", "utilize", "employ", "apply"),
        ("help", "assist", "support", "aid"),
        ("problem", "issue", "challenge", "difficulty"),
        ("result", "outcome", "consequence", "effect"),
        ("method", "approach", "technique", "procedure"),
        ("goal", "objective", "aim", "purpose"),
        ("cause", "reason", "origin", "source"),
        ("study", "research", "analysis", "investigation"),
        ("colour", "color", "hue", "shade"),
        ("planet", "world", "globe"),
        ("build", "construct", "create", "make"),
    ),
    stopwords=frozenset(
        {
            "the", "and", "for", "are", "but", "not", "you", "all", "any",
            "can", "had", "her", "was", "one", "our", "out", "has", "have",
            "his", "how", "its", "may", "who", "did", "this", "that", "with",
            "from", "they", "will", "would", "there", "their", "what", "which",
            "when", "were", "been", "into", "than", "then", "them", "these",
            "those", "also", "about", "just", "very", "some", "such",
        }
    ),
    short_chunk_prefix="This document section discusses:",
)

ITALIAN = LanguageProfile(
    code="it",
    contractions={
        "l'": "lo ",
        "un'": "una ",
        "dell'": "dello ",
        "all'": "allo ",
        "nell'": "nello ",
        "dall'": "dallo ",
        "sull'": "sullo ",
        "c'è": "ci è",
        "quest'": "questo ",
    },
    synonym_groups=(
        ("importante", "significativo", "rilevante", "essenziale", "fondamentale"),
        ("aumentare", "crescere", "salire", "incrementare"),
        ("diminuire", "ridurre", "calare", "scendere"),
        ("grande", "ampio", "enorme", "vasto"),
        ("piccolo", "ridotto", "minuscolo"),
        ("veloce", "rapido", "svelto"),
        ("iniziare", "cominciare", "avviare"),
        ("finire", "terminare", "concludere", "completare"),
        ("mostrare", "dimostrare", "illustrare", "evidenziare"),
        ("usare", "utilizzare", "impiegare", "adoperare"),
        ("problema", "questione", "difficoltà"),
        ("risultato", "esito", "conseguenza", "effetto"),
        ("metodo", "approccio", "tecnica", "procedura"),
        ("obiettivo", "scopo", "fine", "traguardo"),
        ("causa", "motivo", "ragione", "origine"),
        ("studio", "ricerca", "analisi", "indagine"),
        ("colore", "tinta", "tonalità"),
        ("pianeta", "mondo"),
    ),
    stopwords=frozenset(
        {
            "il", "lo", "la", "gli", "le", "un", "una", "uno", "di", "da",
            "del", "della", "dei", "delle", "che", "con", "per", "tra", "fra",
            "non", "sono", "come", "anche", "questo", "questa", "nel", "nella",
            "alla", "allo", "dal", "dalla", "sul", "sulla", "più", "suo", "sua",
        }
    ),
    short_chunk_prefix="Questa sezione del documento tratta di:",
)

_PROFILES: dict[str, LanguageProfile] = {
    ENGLISH.code: ENGLISH,
    ITALIAN.code: ITALIAN,
}


def register_profile(profile: LanguageProfile) -> None:
    """Register a language profile under its code."""
    _PROFILES[profile.code] = profile


def get_profile(code: str) -> LanguageProfile:
    """Look up a registered profile.

    Raises:
        ValueError: If no profile is registered for the code.
    """
    if code not in _PROFILES:
        available = list(_PROFILES.keys())
        raise ValueError(f"Unknown language profile: {code}. Available: {available}")
    return _PROFILES[code]


def list_profiles() -> list[str]:
    return list(_PROFILES.keys())
