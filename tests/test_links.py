from jwz_threading import Container
from thread_links import add_link, ancestor, remove_parent_link


def test_add_link_inserts_at_front_by_default():
    parent, first, second = Container(), Container(), Container()
    add_link(parent, first)
    add_link(parent, second)

    assert parent.children == [second, first]
    assert first.parent is parent
    assert second.parent is parent


def test_add_link_at_end():
    parent, first, second = Container(), Container(), Container()
    add_link(parent, first, at_end=True)
    add_link(parent, second, at_end=True)

    assert parent.children == [first, second]


def test_add_link_moves_child_from_old_parent():
    old, new, child = Container(), Container(), Container()
    add_link(old, child)
    add_link(new, child)

    assert old.children == []
    assert new.children == [child]
    assert child.parent is new


def test_add_link_refuses_cycle():
    a, b, c = Container(), Container(), Container()
    add_link(a, b)
    add_link(b, c)

    add_link(c, a)

    assert a.parent is None
    assert c.children == []


def test_add_link_refuses_self():
    a = Container()
    add_link(a, a)
    assert a.parent is None
    assert a.children == []


def test_add_link_keeps_deeper_position():
    a, b, c = Container(), Container(), Container()
    add_link(a, b)
    add_link(b, c)

    # a is already above c
    add_link(a, c)

    assert c.parent is b
    assert a.children == [b]


def test_add_link_without_parent_detaches():
    parent, child = Container(), Container()
    add_link(parent, child)
    add_link(None, child)

    assert child.parent is None
    assert parent.children == []


def test_remove_parent_link():
    parent, child = Container(), Container()
    add_link(parent, child)

    remove_parent_link(child)
    assert child.parent is None
    assert parent.children == []

    # Already a root
    remove_parent_link(child)
    assert child.parent is None


def test_ancestor():
    a, b, c, other = Container(), Container(), Container(), Container()
    add_link(a, b)
    add_link(b, c)

    assert ancestor(a, c)
    assert ancestor(b, c)
    assert ancestor(c, c)
    assert not ancestor(c, a)
    assert not ancestor(other, c)
