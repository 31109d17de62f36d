"""NATS subject matching.

Subjects are dot-separated tokens. In a pattern ``*`` matches exactly
one token and a trailing ``>`` matches one or more remaining tokens.
"""

from __future__ import annotations


def subject_matches(pattern: str, subject: str) -> bool:
    """Return True when *subject* falls inside *pattern*.

    *subject* may itself contain wildcards; it matches when every subject
    it could stand for is covered by *pattern*.

    Examples:
        >>> subject_matches("app.>", "app.data.raw")
        True
        >>> subject_matches("app.*", "app.data.raw")
        False
        >>> subject_matches("app.*", "app.*")
        True
    """
    pattern_tokens = pattern.split(".")
    subject_tokens = subject.split(".")

    for index, token in enumerate(pattern_tokens):
        if token == ">":
            return len(subject_tokens) > index
        if index >= len(subject_tokens):
            return False
        candidate = subject_tokens[index]
        if candidate == ">":
            return False
        if token == "*":
            continue
        if token != candidate:
            return False
    return len(subject_tokens) == len(pattern_tokens)
