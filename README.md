# pagetree

`pagetree` is a copy-on-write B+tree whose nodes are fixed-size pages of
4096 bytes. The tree never changes a stored page in place. Each insert or
delete builds new pages, stores them and frees the old ones. It does this
through three callables that you supply, so the page store is pluggable.

## Modules

- `pagetree.node` holds the page layout.
  - `BNode` wraps a `bytearray`. It has accessors for the node type, the key count, child pointers, the offset list and key-value pairs.
  - `check(condition, message)` raises `BTreeError` when `condition` is false.
  - The module also defines the size limits and the node type constants `BNODE_NODE` and `BNODE_LEAF`.
- `pagetree.tree` holds `BTree`.
  - `BTree` is a dataclass built from three callables: `get(ptr)` returns the node stored at a pointer, `new(node)` stores a node and returns a non-zero pointer, and `dealloc(ptr)` frees a page.
  - `BTree` also has a `root` pointer, which is `0` while the tree is empty.
  - `BTree.insert(key, val)` inserts a key or updates an existing one.
  - `BTree.delete(key)` removes a key and returns whether it was present.
  - Keys and values are bytes.
  - The module also contains the node-level helpers that copy, split and merge pages. Among them are `node_lookup_le`, `node_split3`, `node_merge` and `should_merge`.
- `pagetree.memory` holds `MemoryTree`, a `BTree` whose pages are kept in a dictionary.
  - Its `pages` attribute maps integer pointers, counted from 1, to nodes.
  - Its `ref` attribute is a plain dict of the strings that were added.
  - `add(key, val)` takes strings and encodes them as UTF-8.
  - `remove(key)` drops the key from `ref` and returns whether the tree held it.
- `pagetree.cli` holds `main(argv=None)`, the demo command.

## Limits and errors

- Keys must be non-empty and at most 1000 bytes.
- Values may be at most 3000 bytes.
- A page is 4096 bytes. When an insert makes a node larger than a page, the node is split into two or three pages.
- After a delete, a small node is merged with a neighbour when the two fit in one page.
- A broken limit or a failed internal check raises `pagetree.node.BTreeError`.

## Example

```python
from pagetree.memory import MemoryTree

tree = MemoryTree()
tree.add("apple", "red fruit")
tree.add("banana", "yellow fruit")
print(tree.remove("apple"))   # True
print(tree.remove("apple"))   # False, already gone
print(len(tree.pages))        # number of pages in use
```

Using `BTree` directly with your own page store:

```python
from pagetree.tree import BTree

store = {}
counter = iter(range(1, 1_000_000))

def new(node):
    ptr = next(counter)
    store[ptr] = node
    return ptr

tree = BTree(get=store.__getitem__, new=new, dealloc=store.__delitem__)
tree.insert(b"key", b"value")
print(tree.delete(b"key"))    # True
```

## Command line

```
pagetree
```

The command takes no options. It adds five fruit names and prints the page
count. Then it deletes `cherry` and prints whether the delete succeeded.
Last, it adds 100 keys `key000` to `key099` and prints the page count again.

## What it does not do

- There is no lookup or range scan. The tree supports insert and delete only. To read values back, decode them from the pages with `BNode.get_key` and `BNode.get_val`, or use `MemoryTree.ref`.
- There is no on-disk storage. `MemoryTree` keeps pages in memory only. Persistent storage means supplying your own `get`, `new` and `dealloc` callables to `BTree`.

## Tests

The test suite uses pytest, which the `test` extra installs.