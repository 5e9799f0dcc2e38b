"""Helpers for turning class names into human readable labels."""

import re

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-.]+")


def basename(name: str) -> str:
    """Return the unqualified part of a dotted name.

    Example:
        >>> basename("shop.models.OrderItem")
        'OrderItem'
    """
    return name.rsplit(".", 1)[-1]


def underscore(words: str) -> str:
    """Convert CamelCase or spaced words to lower snake_case."""
    words = _ACRONYM_BOUNDARY.sub(r"\1_\2", words)
    words = _WORD_BOUNDARY.sub(r"\1_\2", words)
    words = _SEPARATORS.sub("_", words)
    return words.lower()


def humanize(words: str) -> str:
    """Turn a snake_case name into space separated words.

    A trailing ``_id`` is dropped, so ``author_id`` becomes ``author``.
    """
    words = re.sub(r"_id$", "", words)
    return " ".join(part for part in words.split("_") if part)


def titleize(words: str) -> str:
    """Convert a type or column name into a title.

    Example:
        >>> titleize("UserProfile")
        'User Profile'
        >>> titleize("order_item")
        'Order Item'
    """
    return " ".join(word[:1].upper() + word[1:] for word in humanize(underscore(words)).split(" ") if word)
