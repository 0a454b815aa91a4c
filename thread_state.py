#!/usr/bin/env python3
"""
Threading state for one mail folder.

A ThreadState owns every table the threading passes share: interned
ids and subjects, the id -> container registry, the maps between ids
and rows of the folder listing, duplicate rows and the undo history.
Callers keep one per folder and must not run two passes on it at once.
"""

import logging
import sys
from typing import Dict, Iterable, Iterator, List, Optional, Set

import settings
from canonical import CanonicalTable
from jwz_threading import (
    Container,
    RawTuple,
    build_containers_from_messages,
    group_by_subject,
    prune_empty_containers,
)
from thread_history import HistoryStack

logger = logging.getLogger(__name__)


class ThreadState:
    def __init__(self, merge_empty_subjects: Optional[bool] = None):
        if merge_empty_subjects is None:
            merge_empty_subjects = settings.MERGE_EMPTY_SUBJECTS
        self.merge_empty_subjects = merge_empty_subjects
        self.reset()

    def reset(self):
        """Drop every table, as when the folder is rescanned from scratch"""
        self.ids = CanonicalTable()
        self.subjects = CanonicalTable()
        self.id_table: Dict[str, Container] = {}
        self.id_index: Dict[str, int] = {}
        self.index_id: Dict[int, str] = {}
        self.duplicates: Dict[str, List[int]] = {}
        self.history = HistoryStack()
        self.roots: List[Container] = []

    # Registry

    def container(self, message_id: str) -> Container:
        """Find or create the container for an interned id"""
        container = self.id_table.get(message_id)
        if container is None:
            container = self.id_table[message_id] = Container()
        return container

    def containers(self) -> List[Container]:
        return list(self.id_table.values())

    def register(self, message_id: str, row: int):
        """Record that row shows message_id.

        The id's previous row, if any, is kept as a duplicate.
        """
        current = self.index_id.get(row)
        if current is not None and current is not message_id:
            self.forget(row)

        old_row = self.id_index.get(message_id)
        if old_row == row:
            return

        dups = self.duplicates.get(message_id)
        if dups and row in dups:
            dups.remove(row)
        if old_row is not None:
            self.duplicates.setdefault(message_id, []).insert(0, old_row)

        self.id_index[message_id] = row
        self.index_id[row] = message_id

    def forget(self, row: int):
        """Remove a row from the index maps, leaving the tree alone"""
        message_id = self.index_id.pop(row, None)
        if message_id is None:
            return

        dups = self.duplicates.get(message_id)
        if self.id_index.get(message_id) != row:
            if dups and row in dups:
                dups.remove(row)
        elif dups:
            # The latest duplicate takes over
            newest = dups.pop(0)
            self.id_index[message_id] = newest
            self.index_id[newest] = message_id
        else:
            del self.id_index[message_id]

        if message_id in self.duplicates and not self.duplicates[message_id]:
            del self.duplicates[message_id]

    def is_indexed(self, container: Container) -> bool:
        return container.message is not None and container.message.id in self.id_index

    def row_of(self, container: Container) -> Optional[int]:
        if container.message is None:
            return None
        return self.id_index.get(container.message.id)

    def sort_key(self, container: Container) -> int:
        row = self.row_of(container)
        return sys.maxsize if row is None else row

    def duplicates_of(self, container: Container) -> List[int]:
        if container.message is None:
            return []
        return sorted(self.duplicates.get(container.message.id, ()))

    def container_at(self, row: int) -> Optional[Container]:
        message_id = self.index_id.get(row)
        if message_id is None:
            return None
        return self.id_table.get(message_id)

    def rows(self) -> Set[int]:
        return set(self.index_id)

    # Passes

    def build(self, tuples: Iterable[RawTuple]) -> int:
        return build_containers_from_messages(self, tuples)

    def prune(self) -> List[Container]:
        self.roots = prune_empty_containers(self, self.history)
        return self.roots

    def group(self) -> List[Container]:
        self.roots = group_by_subject(self.roots, self.history, self.merge_empty_subjects)
        return self.roots

    def rewind(self):
        """Undo grouping and pruning, back to the tree as built"""
        self.history.rewind()
        self.roots = []

    def thread(self, tuples: Iterable[RawTuple]) -> List[Container]:
        """Thread a whole folder from scratch"""
        self.reset()
        count = self.build(tuples)
        self.prune()
        self.group()
        logger.debug("Threaded %d messages into %d threads", count, len(self.roots))
        return self.roots

    def update(self, tuples: Iterable[RawTuple]) -> List[Container]:
        """Add newly seen rows without rebuilding the rest of the tree.

        Pass only rows not threaded before. Building earlier rows a second
        time can refuse links in a different order and change the tree;
        use thread() to start over instead.
        """
        self.rewind()
        count = self.build(tuples)
        self.prune()
        self.group()
        logger.debug("Added %d messages, now %d threads", count, len(self.roots))
        return self.roots

    # Queries over the threaded forest

    def walk(self, container: Container) -> Iterator[Container]:
        yield container
        for child in container.children:
            yield from self.walk(child)

    def parent_row(self, row: int) -> Optional[int]:
        container = self.container_at(row)
        if container is None or container.parent is None:
            return None
        return self.row_of(container.parent)

    def root_row(self, row: int) -> Optional[int]:
        container = self.container_at(row)
        if container is None:
            return None
        while container.parent is not None:
            container = container.parent
        return self.row_of(container)

    def sibling_rows(self, row: int) -> List[int]:
        container = self.container_at(row)
        if container is None:
            return []
        siblings = container.parent.children if container.parent is not None else self.roots
        return [self.row_of(c) for c in siblings if c is not container and self.is_indexed(c)]

    def subthread_rows(self, row: int) -> List[int]:
        """Rows of the message at row and everything below it, in display order"""
        container = self.container_at(row)
        if container is None:
            return []
        rows = []
        for c in self.walk(container):
            if self.is_indexed(c):
                rows.extend(sorted([self.row_of(c)] + self.duplicates_of(c)))
        return rows
