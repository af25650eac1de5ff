"""A B+tree whose pages live in an in-memory dictionary."""

from __future__ import annotations

import itertools

from pagetree.node import BTREE_PAGE_SIZE, BNode, check
from pagetree.tree import BTree


class MemoryTree:
    """A B+tree kept in memory, plus a plain dict of what was stored in it.

    ``pages`` maps page pointers to nodes and ``ref`` holds the expected
    key-value contents, which makes it handy for checking the tree.
    """

    def __init__(self):
        self.pages: dict[int, BNode] = {}
        self.ref: dict[str, str] = {}
        self._ids = itertools.count(1)
        self.tree = BTree(get=self._get, new=self._new, dealloc=self._dealloc)

    def _get(self, ptr):
        check(ptr in self.pages, f"no page at pointer {ptr}")
        return self.pages[ptr]

    def _new(self, node):
        check(node.nbytes() <= BTREE_PAGE_SIZE, "page is larger than the page size")
        ptr = next(self._ids)
        check(ptr not in self.pages, f"page pointer {ptr} already in use")
        self.pages[ptr] = node
        return ptr

    def _dealloc(self, ptr):
        check(ptr in self.pages, f"no page at pointer {ptr}")
        del self.pages[ptr]

    def add(self, key, val):
        """Insert or update ``key`` with ``val``."""
        self.tree.insert(key.encode(), val.encode())
        self.ref[key] = val

    def remove(self, key):
        """Remove ``key``; return whether the tree held it."""
        self.ref.pop(key, None)
        return self.tree.delete(key.encode())