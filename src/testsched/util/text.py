from __future__ import annotations

_SIBILANT_ENDINGS = ("s", "sh", "ch", "x", "z")


def plural(noun: str) -> str:
    """Return the plural of a (possibly multi-word) English noun."""
    head, _, last = noun.rpartition(" ")
    if last.endswith(_SIBILANT_ENDINGS):
        last += "es"
    else:
        last += "s"
    return f"{head} {last}" if head else last


def count_noun(count: int, noun: str) -> str:
    """Render ``count`` followed by ``noun`` in singular or plural form."""
    word = noun if abs(count) == 1 else plural(noun)
    return f"{count} {word}"
