#!/usr/bin/env python3
"""Flatten a threaded folder into indented display lines."""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional


@dataclass
class ScanLine:
    row: int
    level: int
    real_child: bool
    label: str
    subject: str

    def __str__(self):
        if self.level == 0:
            head = self.label
        elif self.real_child:
            head = "[%s]" % self.label
        else:
            head = "<%s>" % self.label
        text = " ".join(part for part in (head, self.subject) if part)
        return "%4d %s%s" % (self.row, "  " * self.level, text)


def _display_subject(message, parent_subject, level):
    # A reply repeating its parent's subject shows only its marker
    if level > 0 and message.subject_was_pruned and message.subject == parent_subject:
        return ""
    return message.subject


def _flatten(state, containers, labels, level=0, parent_subject=None) -> Iterator[ScanLine]:
    for container in containers:
        if not state.is_indexed(container):
            # Placeholder - children stay at this level
            yield from _flatten(state, container.children, labels, level, parent_subject)
            continue

        message = container.message
        subject = _display_subject(message, parent_subject, level)
        rows = sorted([state.row_of(container)] + state.duplicates_of(container))
        for row in rows:
            yield ScanLine(row, level, container.real_child, labels.get(row, ""), subject)

        yield from _flatten(state, container.children, labels, level + 1, message.subject)


def scan_lines(state, roots=None, labels: Optional[Dict[int, str]] = None) -> List[ScanLine]:
    """Display lines for the threaded roots of state.

    labels maps rows to short text (usually the sender) shown inside the
    [..] or <..> marker.
    """
    if roots is None:
        roots = state.roots
    return list(_flatten(state, roots, labels or {}))
