import random

import pytest

from pagetree.memory import MemoryTree
from pagetree.node import (
    BNODE_LEAF,
    BNODE_NODE,
    BTREE_MAX_KEY_SIZE,
    BTREE_MAX_VAL_SIZE,
    BTREE_PAGE_SIZE,
    BTreeError,
)


def _reachable(store):
    """Pointers of all pages reachable from the root."""
    if store.tree.root == 0:
        return set()
    seen = set()
    stack = [store.tree.root]
    while stack:
        ptr = stack.pop()
        seen.add(ptr)
        node = store.tree.get(ptr)
        if node.btype() == BNODE_NODE:
            stack.extend(node.get_ptr(i) for i in range(node.nkeys()))
    return seen


def _items(store):
    """Key-values held by the leaves, in tree order, without the sentinel."""
    result = []

    def visit(ptr):
        node = store.tree.get(ptr)
        for i in range(node.nkeys()):
            if node.btype() == BNODE_NODE:
                visit(node.get_ptr(i))
            elif node.get_key(i) != b"":
                result.append((node.get_key(i).decode(), node.get_val(i).decode()))

    if store.tree.root:
        visit(store.tree.root)
    return result


def _assert_consistent(store):
    items = _items(store)
    assert items == sorted(store.ref.items())
    assert _reachable(store) == set(store.pages)
    assert all(node.nbytes() <= BTREE_PAGE_SIZE for node in store.pages.values())


def test_new_store_is_empty():
    store = MemoryTree()
    assert store.pages == {}
    assert store.ref == {}
    assert store.tree.root == 0


def test_first_add_creates_one_leaf_page():
    store = MemoryTree()
    store.add("apple", "red fruit")
    assert len(store.pages) == 1
    root = store.pages[store.tree.root]
    assert root.btype() == BNODE_LEAF
    assert root.nkeys() == 2
    assert root.get_key(0) == b""
    assert root.get_key(1) == b"apple"
    assert root.get_val(1) == b"red fruit"
    assert store.ref == {"apple": "red fruit"}


def test_add_keeps_keys_sorted():
    store = MemoryTree()
    for key in ["date", "apple", "cherry", "banana"]:
        store.add(key, key.upper())
    _assert_consistent(store)
    assert [k for k, _ in _items(store)] == ["apple", "banana", "cherry", "date"]


def test_add_existing_key_updates_value():
    store = MemoryTree()
    store.add("apple", "red fruit")
    store.add("banana", "yellow fruit")
    store.add("apple", "green fruit")
    assert dict(_items(store))["apple"] == "green fruit"
    assert len(_items(store)) == 2
    _assert_consistent(store)


def test_remove_present_and_missing():
    store = MemoryTree()
    store.add("apple", "red fruit")
    store.add("cherry", "small red fruit")
    assert store.remove("cherry") is True
    assert store.remove("cherry") is False
    assert store.remove("zzz") is False
    assert "cherry" not in store.ref
    _assert_consistent(store)


def test_remove_on_empty_store():
    store = MemoryTree()
    assert store.remove("anything") is False
    assert store.pages == {}


def test_many_adds_split_root():
    store = MemoryTree()
    for i in range(300):
        store.add(f"key{i:04d}", "v" * 100)
    root = store.pages[store.tree.root]
    assert root.btype() == BNODE_NODE
    assert len(store.pages) > 1
    _assert_consistent(store)


def test_page_pointers_are_nonzero():
    store = MemoryTree()
    for i in range(200):
        store.add(f"k{i}", "x" * 50)
    assert all(ptr > 0 for ptr in store.pages)


def test_remove_everything_in_random_order():
    store = MemoryTree()
    keys = [f"key{i:04d}" for i in range(300)]
    for key in keys:
        store.add(key, f"value for {key}" * 5)
    rng = random.Random(7)
    rng.shuffle(keys)
    for n, key in enumerate(keys):
        assert store.remove(key) is True
        if n % 25 == 0:
            _assert_consistent(store)
    _assert_consistent(store)
    assert _items(store) == []


def test_interleaved_adds_and_removes():
    store = MemoryTree()
    rng = random.Random(3)
    for _ in range(600):
        key = f"k{rng.randrange(150):03d}"
        if rng.random() < 0.6:
            store.add(key, "v" * rng.randrange(1, 120))
        else:
            expected = key in store.ref
            assert store.remove(key) is expected
    _assert_consistent(store)


def test_empty_key_is_rejected():
    store = MemoryTree()
    with pytest.raises(BTreeError):
        store.add("", "value")
    assert "" not in store.ref
    assert store.pages == {}


def test_oversized_key_and_value_are_rejected():
    store = MemoryTree()
    with pytest.raises(BTreeError):
        store.add("k" * (BTREE_MAX_KEY_SIZE + 1), "v")
    with pytest.raises(BTreeError):
        store.add("k", "v" * (BTREE_MAX_VAL_SIZE + 1))
    assert store.ref == {}


def test_maximal_key_value_fits():
    store = MemoryTree()
    store.add("k" * BTREE_MAX_KEY_SIZE, "v" * BTREE_MAX_VAL_SIZE)
    store.add("a", "b")
    _assert_consistent(store)


def test_remove_empty_key_is_rejected():
    store = MemoryTree()
    store.add("apple", "red fruit")
    with pytest.raises(BTreeError):
        store.remove("")