"""Identifier conventions for generated code."""

import re

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9]|$)|[A-Z]?[a-z0-9]+|[A-Z]+")


def split_words(identifier: str) -> list:
    """Split snake_case, camelCase or PascalCase into lowercase-agnostic words."""
    words = []
    for chunk in identifier.split("_"):
        if chunk:
            words.extend(_WORD_RE.findall(chunk))
    return words


def to_pascal_case(identifier: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(identifier))


def to_camel_case(identifier: str) -> str:
    pascal = to_pascal_case(identifier)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(identifier: str) -> str:
    return "_".join(w.lower() for w in split_words(identifier))
