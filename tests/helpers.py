"""Shared builders for the threading tests."""

from thread_state import ThreadState


def key_of(state, container):
    for message_id, c in state.id_table.items():
        if c is container:
            return message_id
    raise KeyError(container)


def shape(state, containers=None):
    """Nested (id, real_child, children) tuples for the given containers"""
    if containers is None:
        containers = state.roots
    return [
        (key_of(state, c), c.real_child, shape(state, c.children))
        for c in containers
    ]


def edges(state):
    return {
        (key_of(state, c.parent), key_of(state, c), c.real_child)
        for c in state.containers()
        if c.parent is not None
    }


def check_consistency(state):
    for c in state.containers():
        if c.parent is not None:
            assert c in c.parent.children
        for child in c.children:
            assert child.parent is c
        assert len(c.children) == len(set(map(id, c.children)))

        # No container is its own proper ancestor
        seen = set()
        node = c.parent
        while node is not None:
            assert node is not c
            assert id(node) not in seen
            seen.add(id(node))
            node = node.parent


def threaded(tuples, **kwargs):
    state = ThreadState(**kwargs)
    state.thread(tuples)
    return state
