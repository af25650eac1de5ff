"""Copy-on-write B+tree over page-sized nodes."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Optional

from pagetree.node import (
    BNODE_LEAF,
    BNODE_NODE,
    BTREE_MAX_KEY_SIZE,
    BTREE_MAX_VAL_SIZE,
    BTREE_PAGE_SIZE,
    HEADER,
    BNode,
    BTreeError,
    check,
)

_KV_HEADER = struct.Struct("<HH")


def _blank(size=BTREE_PAGE_SIZE):
    return BNode(bytearray(size))


def _write(node, pos, payload):
    end = pos + len(payload)
    check(end <= len(node.data), "node buffer overflow")
    node.data[pos:end] = payload


def _fit(node):
    check(node.nbytes() <= BTREE_PAGE_SIZE, "node does not fit in a page")
    return BNode(node.data[:BTREE_PAGE_SIZE])


@dataclass
class BTree:
    """A B+tree whose pages are managed through the given callbacks.

    ``get`` dereferences a page pointer, ``new`` stores a node and returns
    its non-zero pointer, and ``dealloc`` frees a page.
    """

    get: Callable[[int], BNode]
    new: Callable[[BNode], int]
    dealloc: Callable[[int], None]
    root: int = 0

    def insert(self, key, val):
        """Insert or update ``key`` with ``val``."""
        key, val = bytes(key), bytes(val)
        check(len(key) != 0, "insert: empty key")
        check(len(key) <= BTREE_MAX_KEY_SIZE, "insert: key too long")
        check(len(val) <= BTREE_MAX_VAL_SIZE, "insert: value too long")
        if self.root == 0:
            root = _blank()
            root.set_header(BNODE_LEAF, 2)
            # An empty sentinel key makes the tree cover the whole key space.
            node_append_kv(root, 0, 0, b"", b"")
            node_append_kv(root, 1, 0, key, val)
            self.root = self.new(root)
            return
        node = self.get(self.root)
        self.dealloc(self.root)
        node = tree_insert(self, node, key, val)
        parts = node_split3(node)
        if len(parts) > 1:
            root = _blank()
            root.set_header(BNODE_NODE, len(parts))
            for idx, kid in enumerate(parts):
                node_append_kv(root, idx, self.new(kid), kid.get_key(0), b"")
            self.root = self.new(root)
        else:
            self.root = self.new(parts[0])

    def delete(self, key):
        """Remove ``key``; return whether it was present."""
        key = bytes(key)
        check(len(key) != 0, "delete: empty key")
        check(len(key) <= BTREE_MAX_KEY_SIZE, "delete: key too long")
        if self.root == 0:
            return False
        updated = tree_delete(self, self.get(self.root), key)
        if updated is None:
            return False
        self.dealloc(self.root)
        if updated.btype() == BNODE_NODE and updated.nkeys() == 1:
            self.root = updated.get_ptr(0)
        else:
            self.root = self.new(updated)
        return True


def node_lookup_le(node, key):
    """Index of the last key that is less than or equal to ``key``."""
    found = 0
    # The first key is copied from the parent, so it is always <= key.
    for idx in range(1, node.nkeys()):
        if node.get_key(idx) <= key:
            found = idx
        else:
            break
    return found


def leaf_insert(new, old, idx, key, val):
    """Write ``old`` into ``new`` with a key-value inserted at ``idx``."""
    new.set_header(BNODE_LEAF, old.nkeys() + 1)
    node_append_range(new, old, 0, 0, idx)
    node_append_kv(new, idx, 0, key, val)
    node_append_range(new, old, idx + 1, idx, old.nkeys() - idx)


def leaf_update(new, old, idx, key, val):
    """Write ``old`` into ``new`` with the key-value at ``idx`` replaced."""
    new.set_header(BNODE_LEAF, old.nkeys())
    node_append_range(new, old, 0, 0, idx)
    node_append_kv(new, idx, 0, key, val)
    node_append_range(new, old, idx + 1, idx + 1, old.nkeys() - (idx + 1))


def node_append_range(new, old, dst_new, src_old, n):
    """Copy ``n`` key-values from ``old[src_old:]`` to ``new[dst_new:]``."""
    check(src_old + n <= old.nkeys(), "node_append_range: source out of range")
    check(dst_new + n <= new.nkeys(), "node_append_range: target out of range")
    if n == 0:
        return
    for i in range(n):
        new.set_ptr(dst_new + i, old.get_ptr(src_old + i))
    dst_begin = new.get_offset(dst_new)
    src_begin = old.get_offset(src_old)
    for i in range(1, n + 1):
        new.set_offset(dst_new + i, dst_begin + old.get_offset(src_old + i) - src_begin)
    begin = old.kv_pos(src_old)
    end = old.kv_pos(src_old + n)
    _write(new, new.kv_pos(dst_new), old.data[begin:end])


def node_append_kv(new, idx, ptr, key, val):
    """Write a pointer and key-value at position ``idx`` of ``new``."""
    key = bytes(key or b"")
    val = bytes(val or b"")
    new.set_ptr(idx, ptr)
    pos = new.kv_pos(idx)
    _write(new, pos, _KV_HEADER.pack(len(key), len(val)) + key + val)
    new.set_offset(idx + 1, new.get_offset(idx) + 4 + len(key) + len(val))


def tree_insert(tree, node, key, val):
    """Insert into the subtree at ``node``; the result may exceed a page."""
    new = _blank(2 * BTREE_PAGE_SIZE)
    idx = node_lookup_le(node, key)
    btype = node.btype()
    if btype == BNODE_LEAF:
        if key == node.get_key(idx):
            leaf_update(new, node, idx, key, val)
        else:
            leaf_insert(new, node, idx + 1, key, val)
    elif btype == BNODE_NODE:
        node_insert(tree, new, node, idx, key, val)
    else:
        raise BTreeError(f"bad node type {btype}")
    return new


def node_insert(tree, new, node, idx, key, val):
    """Insert into the kid at ``idx`` of internal ``node``, writing ``new``."""
    kptr = node.get_ptr(idx)
    knode = tree.get(kptr)
    tree.dealloc(kptr)
    knode = tree_insert(tree, knode, key, val)
    node_replace_kid_n(tree, new, node, idx, *node_split3(knode))


def node_split2(left, right, old):
    """Split ``old`` by key count into ``left`` and ``right``."""
    nkeys = old.nkeys()
    mid = nkeys // 2
    left.set_header(old.btype(), mid)
    right.set_header(old.btype(), nkeys - mid)
    node_append_range(left, old, 0, 0, mid)
    node_append_range(right, old, 0, mid, nkeys - mid)


def node_split3(old):
    """Split an oversized node into a list of one to three page-sized nodes."""
    if old.nbytes() <= BTREE_PAGE_SIZE:
        return [BNode(old.data[:BTREE_PAGE_SIZE])]
    left = _blank(2 * BTREE_PAGE_SIZE)
    right = _blank(2 * BTREE_PAGE_SIZE)
    node_split2(left, right, old)
    if left.nbytes() <= BTREE_PAGE_SIZE:
        return [_fit(left), _fit(right)]
    leftleft = _blank(2 * BTREE_PAGE_SIZE)
    middle = _blank(2 * BTREE_PAGE_SIZE)
    node_split2(leftleft, middle, left)
    return [_fit(leftleft), _fit(middle), _fit(right)]


def node_replace_kid_n(tree, new, old, idx, *args):
    """Write ``old`` into ``new`` with the kid at ``idx`` replaced by ``args``."""
    inc = len(args)
    new.set_header(BNODE_NODE, old.nkeys() + inc - 1)
    node_append_range(new, old, 0, 0, idx)
    for pos, kid in enumerate(args, start=idx):
        node_append_kv(new, pos, tree.new(kid), kid.get_key(0), b"")
    node_append_range(new, old, idx + inc, idx + 1, old.nkeys() - (idx + 1))


def leaf_delete(new, old, idx):
    """Write ``old`` into ``new`` without the key-value at ``idx``."""
    new.set_header(BNODE_LEAF, old.nkeys() - 1)
    node_append_range(new, old, 0, 0, idx)
    node_append_range(new, old, idx, idx + 1, old.nkeys() - (idx + 1))


def tree_delete(tree, node, key) -> Optional[BNode]:
    """Delete ``key`` from the subtree at ``node``; None if it is absent."""
    idx = node_lookup_le(node, key)
    btype = node.btype()
    if btype == BNODE_LEAF:
        if key != node.get_key(idx):
            return None
        new = _blank()
        leaf_delete(new, node, idx)
        return new
    if btype == BNODE_NODE:
        return node_delete(tree, node, idx, key)
    raise BTreeError(f"bad node type {btype}")


def node_delete(tree, node, idx, key):
    """Delete ``key`` from the kid at ``idx``, merging kids when small."""
    kptr = node.get_ptr(idx)
    updated = tree_delete(tree, tree.get(kptr), key)
    if updated is None:
        return None
    tree.dealloc(kptr)

    new = _blank()
    direction, sibling = should_merge(tree, node, idx, updated)
    if direction < 0:
        merged = _blank()
        node_merge(merged, sibling, updated)
        tree.dealloc(node.get_ptr(idx - 1))
        node_replace_2kid(new, node, idx - 1, tree.new(merged), merged.get_key(0))
    elif direction > 0:
        merged = _blank()
        node_merge(merged, updated, sibling)
        tree.dealloc(node.get_ptr(idx + 1))
        node_replace_2kid(new, node, idx, tree.new(merged), merged.get_key(0))
    else:
        check(updated.nkeys() > 0, "node_delete: empty kid without a sibling")
        node_replace_kid_n(tree, new, node, idx, updated)
    return new


def node_replace_2kid(new, old, idx, ptr, key):
    """Write ``old`` into ``new`` with kids ``idx`` and ``idx+1`` made one."""
    new.set_header(BNODE_NODE, old.nkeys() - 1)
    node_append_range(new, old, 0, 0, idx)
    node_append_kv(new, idx, ptr, key, b"")
    node_append_range(new, old, idx + 1, idx + 2, old.nkeys() - (idx + 2))


def node_merge(new, left, right):
    """Write the concatenation of ``left`` and ``right`` into ``new``."""
    new.set_header(left.btype(), left.nkeys() + right.nkeys())
    node_append_range(new, left, 0, 0, left.nkeys())
    node_append_range(new, right, left.nkeys(), 0, right.nkeys())


def should_merge(tree, node, idx, updated):
    """Return (-1, left), (+1, right) or (0, None) for merging ``updated``."""
    if updated.nbytes() > BTREE_PAGE_SIZE // 4:
        return 0, None
    if idx > 0:
        sibling = tree.get(node.get_ptr(idx - 1))
        if sibling.nbytes() + updated.nbytes() - HEADER <= BTREE_PAGE_SIZE:
            return -1, sibling
    if idx + 1 < node.nkeys():
        sibling = tree.get(node.get_ptr(idx + 1))
        if sibling.nbytes() + updated.nbytes() - HEADER <= BTREE_PAGE_SIZE:
            return 1, sibling
    return 0, None