"""Command that exercises an in-memory B+tree and reports its page count."""

from __future__ import annotations

import argparse

from pagetree.memory import MemoryTree

_FRUITS = (
    ("apple", "red fruit"),
    ("banana", "yellow fruit"),
    ("cherry", "small red fruit"),
    ("date", "sweet brown fruit"),
    ("elderberry", "small black fruit"),
)


def main(argv=None):
    """Build a small tree, delete from it, grow it and print page counts."""
    parser = argparse.ArgumentParser(
        prog="pagetree",
        description="Exercise an in-memory B+tree and report its page count.",
    )
    parser.parse_args(argv)

    store = MemoryTree()
    for key, val in _FRUITS:
        store.add(key, val)
    print(f"Tree has {len(store.pages)} pages")

    deleted = store.remove("cherry")
    print(f"Deleted 'cherry': {str(deleted).lower()}")

    for i in range(100):
        key = f"key{i:03d}"
        store.add(key, f"value for {key}")

    print(f"After adding 100 items, tree has {len(store.pages)} pages")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())