"""Offline stand-in for the polish step."""

from __future__ import annotations

import re
from typing import Sequence, Tuple


FILLER_RULES: Sequence[Tuple[re.Pattern[str], str]] = (
    (re.compile(r"嗯+"), ""),
    (re.compile(r"那个+"), ""),
    (re.compile(r"就是说"), ""),
    (re.compile(r"然后"), "接下来"),
    (re.compile(r"这样子"), "这样"),
    (re.compile(r"的话"), ""),
)


class LocalPolisher:
    """Rule based filler removal used when no remote provider can be called.

    This is a placeholder, not a quality guarantee: it deletes a handful of
    spoken Chinese filler words and rewrites two colloquial phrases. Sentence
    structure, punctuation and wording are otherwise left untouched.

    Running it again over its own output is a no-op only when that output is
    free of fillers. Removing one filler can join the characters around it into
    a new one: "然的话后" becomes "然后" and then "接下来".
    """

    def __init__(self, rules: Sequence[Tuple[re.Pattern[str], str]] = FILLER_RULES) -> None:
        self.rules = rules

    def polish(self, text: str) -> str:
        for pattern, replacement in self.rules:
            text = pattern.sub(replacement, text)
        return text.strip()


def fallback_polish(text: str) -> str:
    return LocalPolisher().polish(text)
