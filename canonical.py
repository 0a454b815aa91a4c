#!/usr/bin/env python3
"""Interning tables for message ids and normalized subjects.

Two lookups of equal text return the very same string object, so the
threading code can compare ids and subjects with ``is``.
"""

from typing import Dict

# Shared by every table. Empty ids and subjects all map here.
EMPTY = ""


class CanonicalTable:
    """A persistent string interning table"""

    def __init__(self):
        self._strings: Dict[str, str] = {}

    def intern(self, text: str) -> str:
        if not text:
            return EMPTY
        return self._strings.setdefault(text, text)

    def __contains__(self, text) -> bool:
        return text in self._strings

    def __len__(self) -> int:
        return len(self._strings)
