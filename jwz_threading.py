#!/usr/bin/env python3
"""
Based on Jamie Zawinski's algorithm described at:
https://www.jwz.org/doc/threading.html

The tree is built from flat (row, id, references, in-reply-to, subject)
tuples. Pruning and subject grouping record what they change on a
history stack so the raw tree can be restored and extended later.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Dict, Optional, Tuple

from canonical import EMPTY
from thread_history import Drop, Promote, SubjectMerge
from thread_links import add_link, remove_parent_link

logger = logging.getLogger(__name__)

RawTuple = Tuple[int, str, str, str, str]

SUBJECT_LEADER_RE = re.compile(r'^\s*(re|fwd?)(\[\d*\])?:\s*|^\s*\[[^\]]+\]\s*', re.IGNORECASE)
SUBJECT_TRAILER_RE = re.compile(r'\(fwd\)\Z|\s+\Z', re.IGNORECASE)
REFERENCE_TOKEN_RE = re.compile(r'<[^>]*>|[^\s<>]+')


@dataclass(frozen=True)
class Message:
    id: str
    references: Tuple[str, ...] = ()
    subject: str = EMPTY
    subject_was_pruned: bool = False


class Container:
    """Container object for threading algorithm"""

    def __init__(self, message: Optional[Message] = None):
        self.message = message
        self.parent: Optional['Container'] = None
        self.children: List['Container'] = []
        # False when the edge to the parent was inferred from the subject
        self.real_child = True

    def is_dummy(self) -> bool:
        """Check if this is an empty container (no message)"""
        return self.message is None

    def get_subject(self) -> Optional[str]:
        """Subject of this container, or of its first real descendant"""
        if self.message is not None:
            return self.message.subject
        for child in self.children:
            subject = child.get_subject()
            if subject is not None:
                return subject
        return None

    def __repr__(self):
        if self.message is None:
            return '<Container (placeholder)>'
        return '<Container (of %r)>' % self.message.id


# Header parsing

def normalize_subject(subject: str) -> Tuple[str, bool]:
    """Strip Re:/Fwd: prefixes, list tags and (fwd) trailers.

    Returns the stripped subject and whether anything was removed.
    """
    pruned = False
    while True:
        match = SUBJECT_LEADER_RE.match(subject)
        if not match:
            break
        subject = subject[match.end():]
        pruned = True

    while True:
        match = SUBJECT_TRAILER_RE.search(subject)
        if not match:
            break
        subject = subject[:match.start()]
        pruned = True

    return subject, pruned


def parse_references(text: str) -> List[str]:
    return REFERENCE_TOKEN_RE.findall(text)


def in_reply_to_id(text: str) -> str:
    """Guess the message id in an In-Reply-To header.

    Takes the last <...> group, which may well be an email address
    instead of a message id.
    """
    text = text.strip()
    end = text.rfind('>')
    start = text.rfind('<', 0, end) if end != -1 else -1
    if start != -1:
        return text[start:end + 1]
    if text and not any(c.isspace() for c in text):
        return text
    return EMPTY


def _text(value) -> str:
    return '' if value is None else str(value)


def parse_raw_tuple(state, raw) -> Optional[Tuple[int, Message]]:
    """Turn one raw tuple into (row, Message), or None if it is malformed"""
    try:
        row, message_id, references, in_reply_to, subject = raw
        if isinstance(row, float) and not row.is_integer():
            raise ValueError("row %r is not a whole number" % row)
        row = int(row)
    except (TypeError, ValueError, OverflowError):
        logger.debug("Skipping malformed tuple %r", raw)
        return None

    message_id = _text(message_id).strip()
    if row < 1 or not message_id:
        logger.debug("Skipping tuple without row or id %r", raw)
        return None

    msg_id = state.ids.intern(message_id)
    subject, pruned = normalize_subject(_text(subject))

    refs = parse_references(_text(references))
    reply_to = in_reply_to_id(_text(in_reply_to))
    if reply_to:
        refs.append(reply_to)

    # Oldest first, no repeats, never the message itself
    chain = []
    seen = set()
    for ref in refs:
        ref = state.ids.intern(ref)
        if ref is msg_id or ref in seen:
            continue
        seen.add(ref)
        chain.append(ref)

    return row, Message(msg_id, tuple(chain), state.subjects.intern(subject), pruned)


# Threading passes

def build_containers_from_messages(state, tuples: Iterable[RawTuple]) -> int:
    """Link raw tuples into the container tree, returns how many were used"""
    count = 0
    for raw in tuples:
        parsed = parse_raw_tuple(state, raw)
        if parsed is None:
            continue
        row, message = parsed

        state.register(message.id, row)
        container = state.container(message.id)
        container.message = message

        ancestors = [state.container(ref) for ref in message.references]
        for parent, child in zip(ancestors, ancestors[1:]):
            add_link(parent, child)

        # A message seen again takes the position its latest references give
        # it, or becomes a root if that position would form a loop
        if ancestors:
            remove_parent_link(container)
            add_link(ancestors[-1], container)

        count += 1

    return count


def prune_empty_containers(state, history) -> List[Container]:
    """Resolve every container that is not a real, indexed message.

    Children are handled before their parents. Returns the roots, ordered
    by row.
    """
    dfs_ordered: List[Container] = []
    work_list = [c for c in state.containers() if c.parent is None]
    while work_list:
        node = work_list.pop()
        work_list.extend(node.children)
        dfs_ordered.append(node)

    for node in reversed(dfs_ordered):
        if state.is_indexed(node):
            # Keep it
            node.children.sort(key=state.sort_key)
        elif node.children and (len(node.children) == 1 or node.parent is not None):
            # Promote the children into the placeholder's place
            parent = node.parent
            children = tuple(node.children)
            history.push(Promote(node, parent, children, tuple(c.real_child for c in children)))
            for child in children:
                remove_parent_link(child)
                add_link(parent, child, at_end=True)
            remove_parent_link(node)
        elif node.children:
            # Root placeholder with several children: the oldest child
            # stands in for it and adopts its siblings
            node.children.sort(key=state.sort_key)
            children = tuple(node.children)
            history.push(Promote(node, None, children, tuple(c.real_child for c in children)))
            new_parent = children[0]
            remove_parent_link(new_parent)
            for child in children[1:]:
                remove_parent_link(child)
                child.real_child = False
                add_link(new_parent, child, at_end=True)
        else:
            # Drop it
            history.push(Drop(node, node.parent))
            remove_parent_link(node)

    roots = [c for c in state.containers() if c.parent is None and state.is_indexed(c)]
    roots.sort(key=state.sort_key)
    return roots


def group_by_subject(roots: List[Container], history, merge_empty: bool = False) -> List[Container]:
    """Group root containers with the same subject together"""
    subject_table: Dict[str, Container] = {}
    grouped: List[Container] = []

    for root in roots:
        subject = root.get_subject()
        if subject is None or (subject is EMPTY and not merge_empty):
            grouped.append(root)
            continue

        parent = subject_table.get(subject)
        if parent is None:
            subject_table[subject] = root
            grouped.append(root)
            continue

        remove_parent_link(root)
        add_link(parent, root, at_end=True)
        root.real_child = False
        history.push(SubjectMerge(root))

    return grouped
