from .preprocessing import (
    expand_contractions,
    normalize_text,
    prepare_chunk_text,
    prepare_query_text,
    tokenize,
    word_set,
)
from .profile import (
    ENGLISH,
    ITALIAN,
    LanguageProfile,
    get_profile,
    list_profiles,
    register_profile,
)

__all__ = [
    "LanguageProfile",
    "ENGLISH",
    "ITALIAN",
    "get_profile",
    "list_profiles",
    "register_profile",
    "normalize_text",
    "prepare_chunk_text",
    "prepare_query_text",
    "expand_contractions",
    "tokenize",
    "word_set",
]
