"""Company-name normalization and alias generation."""

from __future__ import annotations

import re

LEGAL_SUFFIXES: frozenset[str] = frozenset(
    {
        "inc",
        "incorporated",
        "llc",
        "ltd",
        "limited",
        "corp",
        "corporation",
        "co",
        "company",
        "plc",
        "gmbh",
        "ag",
        "sa",
        "pty",
        "lp",
        "llp",
        "pte",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase, drop non-alphanumerics, collapse whitespace.

    >>> normalize_name("  Acme,  Inc. ")
    'acme inc'
    """
    lowered = _NON_ALNUM.sub("", (name or "").lower())
    return _SPACES.sub(" ", lowered).strip()


def strip_legal_suffix(normalized: str) -> str:
    """Drop trailing legal-form tokens (``acme co ltd`` → ``acme``).

    The first word is never dropped, so a name made only of suffix tokens is
    returned unchanged.
    """
    words = normalized.split()
    while len(words) > 1 and words[-1] in LEGAL_SUFFIXES:
        words.pop()
    return " ".join(words)


def generate_aliases(name: str) -> list[str]:
    """Alternate lookup keys for *name*, excluding its normalized form.

    In order: whitespace-stripped name, legal-suffix-stripped name, first
    word, first two words.  Empty and duplicate entries are dropped.

    >>> generate_aliases("Acme Inc.")
    ['acmeinc', 'acme']
    """
    normalized = normalize_name(name)
    if not normalized:
        return []
    words = normalized.split()
    candidates = [
        normalized.replace(" ", ""),
        strip_legal_suffix(normalized),
        words[0],
        " ".join(words[:2]),
    ]
    aliases: list[str] = []
    for alias in candidates:
        if alias and alias != normalized and alias not in aliases:
            aliases.append(alias)
    return aliases


def lookup_keys(name: str) -> list[str]:
    """Keys tried against the alias table when the exact name misses."""
    normalized = normalize_name(name)
    keys = [normalized]
    stripped = strip_legal_suffix(normalized)
    if stripped and stripped != normalized:
        keys.append(stripped)
    return [k for k in keys if k]
