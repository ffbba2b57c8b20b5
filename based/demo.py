"""Build a small sample tree and print it."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from based.database import Tree, format_node


def build_sample_tree() -> Tree:
    """Return a tree with a few folders and one value of every type."""
    tree = Tree()
    root = tree.root
    docs = tree.add_node(root, "docs")
    users = tree.add_node(root, "users")
    temp = tree.add_node(docs, "temp")
    tree.add_node(users, "main")
    tree.add_node(root, "apps")
    cards = tree.add_node(root, "cards")
    tree.add_node(cards, "yugioh")

    tree.add_string(docs, "note", "Hello, world!")
    tree.add_int(docs, "size", 1024)
    tree.add_double(temp, "time", 1234567.123)
    tree.add_binary(users, "data", bytes([0x01, 0x02, 0x03]))
    return tree


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the sample tree's temp folder and the whole tree to stdout."""
    tree = build_sample_tree()
    sys.stdout.write(format_node(tree.find_node("/docs/temp")))
    tree.write(sys.stdout)
    tree.clear()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())