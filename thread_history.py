#!/usr/bin/env python3
"""
Undo log for the pruning and subject grouping passes.

Every structural change made after the tree is built is pushed here, so
the raw tree can be recovered and extended with new messages before
pruning and grouping run again.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from thread_links import add_link, remove_parent_link

if TYPE_CHECKING:
    from jwz_threading import Container

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Drop:
    """A childless placeholder was unlinked from ``parent``"""
    node: 'Container'
    parent: Optional['Container']


@dataclass(frozen=True)
class Promote:
    """A placeholder was replaced by its children.

    ``children`` holds every child the placeholder had, in order, and
    ``flags`` their ``real_child`` values before the promotion.
    """
    node: 'Container'
    parent: Optional['Container']
    children: Tuple['Container', ...]
    flags: Tuple[bool, ...]


@dataclass(frozen=True)
class SubjectMerge:
    """A root was adopted by an earlier root with the same subject"""
    node: 'Container'


Record = Union[Drop, Promote, SubjectMerge]


def rewind_one(record: Record):
    if isinstance(record, Drop):
        add_link(record.parent, record.node)
    elif isinstance(record, Promote):
        for child, flag in zip(record.children, record.flags):
            remove_parent_link(child)
            add_link(record.node, child, at_end=True)
            child.real_child = flag
        add_link(record.parent, record.node)
    elif isinstance(record, SubjectMerge):
        remove_parent_link(record.node)
        record.node.real_child = True


class HistoryStack:
    def __init__(self):
        self._records: List[Record] = []

    def push(self, record: Record):
        self._records.append(record)

    def rewind(self):
        """Undo every recorded change, newest first"""
        if not self._records:
            return
        logger.debug("Rewinding %d threading changes", len(self._records))
        while self._records:
            rewind_one(self._records.pop())

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)
