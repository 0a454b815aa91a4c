import pytest

from helpers import check_consistency, edges, shape, threaded
from thread_history import HistoryStack
from thread_state import ThreadState

MESSAGES = [
    (1, "A", "", "", "Hello"),
    (2, "C", "A B", "", "Re: Hello"),
    (3, "X", "", "", "foo"),
    (4, "B", "A", "", "Re: Hello"),
    (5, "Y", "", "", "Re: foo"),
    (6, "M", "ghost", "", "Subj"),
    (7, "P", "root", "", "Topic"),
    (8, "Q", "root", "", "Re: Topic"),
    (9, "R", "gone", "", "r"),
    (10, "S", "X g1 g2", "<g3>", "Re: foo"),
    (11, "R", "T", "", "r"),
    (12, "Z", "", "", "Topic"),
]


def test_rewind_of_empty_history_is_noop():
    history = HistoryStack()
    history.rewind()
    assert len(history) == 0


def test_rewind_restores_built_tree():
    state = ThreadState()
    state.build(MESSAGES)
    built = edges(state)

    state.prune()
    state.group()
    assert len(state.history) > 0
    assert edges(state) != built

    state.rewind()

    assert edges(state) == built
    assert len(state.history) == 0
    check_consistency(state)


def test_rewind_restores_real_child_flags():
    state = ThreadState()
    state.build(MESSAGES)
    state.prune()
    state.group()
    state.rewind()

    assert all(c.real_child for c in state.containers())


@pytest.mark.parametrize("split", [0, 1, 3, 6, 9, 11, 12])
def test_incremental_update_matches_full_rebuild(split):
    """update() is given only the rows that arrived since the last pass"""
    incremental = ThreadState()
    incremental.thread(MESSAGES[:split])
    incremental.update(MESSAGES[split:])

    full = threaded(MESSAGES)

    assert shape(incremental) == shape(full)
    assert edges(incremental) == edges(full)
    check_consistency(incremental)


def test_incremental_update_in_several_steps():
    state = ThreadState()
    state.thread([])
    for raw in MESSAGES:
        state.update([raw])

    assert shape(state) == shape(threaded(MESSAGES))


def test_update_example():
    state = ThreadState()
    state.thread(MESSAGES[:3])
    assert shape(state) == [
        ("A", True, [("C", True, [])]),
        ("X", True, []),
    ]

    state.update(MESSAGES[3:6])
    assert shape(state) == [
        ("A", True, [("B", True, [("C", True, [])])]),
        ("X", True, [("Y", False, [])]),
        ("M", True, []),
    ]


def test_update_without_new_rows_keeps_tree():
    state = threaded(MESSAGES)
    before = shape(state), edges(state), state.rows()

    state.update([])

    assert (shape(state), edges(state), state.rows()) == before
    check_consistency(state)
