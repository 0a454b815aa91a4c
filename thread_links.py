#!/usr/bin/env python3
"""
Parent/child edge primitives for containers.

Requests that would form a loop are ignored rather than reported, so a
malformed or hostile reference chain still leaves a forest behind.
"""


def ancestor(a, b) -> bool:
    """Check if a is b or one of b's ancestors"""
    while b is not None:
        if b is a:
            return True
        b = b.parent
    return False


def remove_parent_link(child):
    parent = child.parent
    if parent is None:
        return
    parent.children.remove(child)
    child.parent = None


def add_link(parent, child, at_end: bool = False):
    """Make parent the parent of child, unless that would form a loop.

    Also refused when parent is already above child, which would only
    flatten the tree. A None parent just detaches child.
    """
    if parent is None:
        remove_parent_link(child)
        return
    if ancestor(child, parent) or ancestor(parent, child):
        return

    remove_parent_link(child)
    if at_end:
        parent.children.append(child)
    else:
        parent.children.insert(0, child)
    child.parent = parent
