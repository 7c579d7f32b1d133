import tiktoken

ENCODING_CACHE: dict[str, tiktoken.Encoding] = {}


def get_tokenizer(model: str) -> tiktoken.Encoding:
    if model not in ENCODING_CACHE:
        try:
            ENCODING_CACHE[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            ENCODING_CACHE[model] = tiktoken.get_encoding("cl100k_base")
    return ENCODING_CACHE[model]


def count_tokens(text: str, model: str = "gpt-4") -> int:
    encoder = get_tokenizer(model)
    return len(encoder.encode(text))
