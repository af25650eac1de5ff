"""Page-sized B-tree nodes stored in a flat little-endian byte layout.

Layout of a node::

    | type | nkeys | pointers   | offsets    | key-values |
    |  2B  |  2B   | nkeys * 8B | nkeys * 2B | ...        |

Each key-value is ``| klen 2B | vlen 2B | key | val |``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

HEADER = 4
BTREE_PAGE_SIZE = 4096
BTREE_MAX_KEY_SIZE = 1000
BTREE_MAX_VAL_SIZE = 3000

BNODE_NODE = 1  # internal node, no values
BNODE_LEAF = 2  # leaf node, with values

_U16 = struct.Struct("<H")
_U64 = struct.Struct("<Q")
_KV_HEADER = struct.Struct("<HH")


class BTreeError(Exception):
    """Raised when a B-tree invariant or argument check fails."""


def check(condition, message):
    """Raise BTreeError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise BTreeError(message)


check(
    HEADER + 8 + 2 + 4 + BTREE_MAX_KEY_SIZE + BTREE_MAX_VAL_SIZE <= BTREE_PAGE_SIZE,
    "a single maximal key-value must fit in one page",
)


@dataclass
class BNode:
    """A node backed by a mutable byte buffer."""

    data: bytearray = field(default_factory=bytearray)

    # header
    def btype(self):
        return _U16.unpack_from(self.data, 0)[0]

    def nkeys(self):
        return _U16.unpack_from(self.data, 2)[0]

    def set_header(self, btype, nkeys):
        _U16.pack_into(self.data, 0, btype)
        _U16.pack_into(self.data, 2, nkeys)

    # pointers
    def get_ptr(self, idx):
        check(idx < self.nkeys(), "get_ptr: index out of range")
        return _U64.unpack_from(self.data, HEADER + 8 * idx)[0]

    def set_ptr(self, idx, val):
        check(idx < self.nkeys(), "set_ptr: index out of range")
        _U64.pack_into(self.data, HEADER + 8 * idx, val)

    # offset list
    def get_offset(self, idx):
        if idx == 0:
            return 0
        return _U16.unpack_from(self.data, offset_pos(self, idx))[0]

    def set_offset(self, idx, offset):
        _U16.pack_into(self.data, offset_pos(self, idx), offset)

    # key-values
    def kv_pos(self, idx):
        check(idx <= self.nkeys(), "kv_pos: index out of range")
        return HEADER + 10 * self.nkeys() + self.get_offset(idx)

    def get_key(self, idx):
        check(idx < self.nkeys(), "get_key: index out of range")
        pos = self.kv_pos(idx)
        klen, _ = _KV_HEADER.unpack_from(self.data, pos)
        start = pos + 4
        return bytes(self.data[start:start + klen])

    def get_val(self, idx):
        check(idx < self.nkeys(), "get_val: index out of range")
        pos = self.kv_pos(idx)
        klen, vlen = _KV_HEADER.unpack_from(self.data, pos)
        start = pos + 4 + klen
        return bytes(self.data[start:start + vlen])

    def nbytes(self):
        """Size in bytes of the used part of the node."""
        return self.kv_pos(self.nkeys())


def offset_pos(node, idx):
    """Position of the offset entry for key-value ``idx`` (1-based)."""
    nkeys = node.nkeys()
    check(1 <= idx <= nkeys, "offset_pos: index out of range")
    return HEADER + 8 * nkeys + 2 * (idx - 1)