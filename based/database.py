"""Hierarchical key/value store: folders (nodes) that hold typed values (leaves)."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import IO, Iterator, Optional, Union

MAX_PATH_LEN = 256
MAX_KEY_LEN = 128

_MAX_LINE = 511
_MAX_INDENT = 128
_DEPTH_MASK = 0xFF


class ValueType(enum.Enum):
    """Kind of value a leaf carries."""

    STRING = "string"
    INT = "integer"
    DOUBLE = "double"
    BINARY = "binary"


def indent(n: int) -> str:
    """Return the tree-drawing prefix for depth ``n`` (empty outside 1..127)."""
    if n < 1 or n >= _MAX_INDENT:
        return ""
    return "|---" + "----" * (n - 1)


def _to_int32(value: int) -> int:
    value = int(value)
    return ((value + 2**31) % 2**32) - 2**31


LeafValue = Union[str, int, float, bytes]


@dataclass(eq=False)
class Leaf:
    """A named, typed value stored inside a node."""

    parent: "Node" = field(repr=False)
    key: str
    type: ValueType
    value: LeafValue

    def _tree_text(self) -> str:
        if self.type is ValueType.STRING:
            return f"'{self.value}'"
        if self.type is ValueType.INT:
            return f"{self.value}"
        if self.type is ValueType.DOUBLE:
            return f"{self.value:.2f}"
        return f"[binary data, size = {len(self.value)}]"

    def describe(self) -> str:
        """Return a multi-line description of the leaf."""
        if self.type is ValueType.STRING:
            shown = f"'{self.value}' (string)"
        elif self.type is ValueType.INT:
            shown = f"{self.value} (integer)"
        elif self.type is ValueType.DOUBLE:
            shown = f"{self.value:.2f} (double)"
        else:
            shown = f"[binary data, size={len(self.value)}]"
        return (
            "**Leaf**\n"
            f"Path: {self.parent.path}\n"
            f"Key: {self.key}\n"
            f"Value: {shown}\n"
            "\n"
        )


@dataclass(eq=False)
class Node:
    """A folder in the tree, identified by its full path."""

    path: str
    parent: Optional["Node"] = field(default=None, repr=False)
    children: list["Node"] = field(default_factory=list, repr=False)
    leaves: list[Leaf] = field(default_factory=list, repr=False)

    def describe(self) -> str:
        """Return a multi-line description of the node."""
        state = "Folder has files inside" if self.children else "Folder is empty"
        return f"**Node**\nPath: {self.path}\n{state}\n\n"

    def _walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child._walk()


def format_node(node: Optional[Node]) -> str:
    """Describe a node, or report that there is none."""
    return "Invalid node\n" if node is None else node.describe()


def format_leaf(leaf: Optional[Leaf]) -> str:
    """Describe a leaf, or report that there is none."""
    return "Invalid leaf\n" if leaf is None else leaf.describe()


def _line(text: str) -> str:
    return text[:_MAX_LINE]


class Tree:
    """A rooted tree of nodes with a key index over every leaf."""

    def __init__(self) -> None:
        self.root = Node("/")
        self._index: dict[str, list[Leaf]] = {}

    def add_node(self, parent: Node, name: str) -> Node:
        """Create a child folder called ``name`` as the last child of ``parent``."""
        if parent is None:
            raise ValueError("invalid parent node")
        if len(parent.path) + len(name) + 1 >= MAX_PATH_LEN:
            raise ValueError("path too long in new node")
        path = f"/{name}" if parent.path == "/" else f"{parent.path}/{name}"
        node = Node(path[: MAX_PATH_LEN - 1], parent=parent)
        parent.children.append(node)
        return node

    def _add_leaf(self, parent: Node, key: str, kind: ValueType, value: LeafValue) -> Leaf:
        if parent is None:
            raise ValueError("invalid parent node")
        leaf = Leaf(parent, key[: MAX_KEY_LEN - 1], kind, value)
        parent.leaves.append(leaf)
        self._index.setdefault(leaf.key, []).append(leaf)
        return leaf

    def add_string(self, parent: Node, key: str, value: str) -> Leaf:
        """Store a string under ``key`` in ``parent``."""
        return self._add_leaf(parent, key, ValueType.STRING, str(value))

    def add_int(self, parent: Node, key: str, value: int) -> Leaf:
        """Store a 32-bit signed integer under ``key`` in ``parent``."""
        return self._add_leaf(parent, key, ValueType.INT, _to_int32(value))

    def add_double(self, parent: Node, key: str, value: float) -> Leaf:
        """Store a floating-point number under ``key`` in ``parent``."""
        return self._add_leaf(parent, key, ValueType.DOUBLE, float(value))

    def add_binary(self, parent: Node, key: str, data: bytes) -> Leaf:
        """Store a copy of ``data`` under ``key`` in ``parent``."""
        return self._add_leaf(parent, key, ValueType.BINARY, bytes(data))

    def find_leaf(self, key: str) -> Optional[Leaf]:
        """Return the most recently added leaf with exactly this key, if any."""
        leaves = self._index.get(key)
        return leaves[-1] if leaves else None

    def _first_child_chain(self) -> Iterator[Node]:
        node: Optional[Node] = self.root
        while node is not None:
            yield node
            node = node.children[0] if node.children else None

    def find_leaf_linear(self, key: str) -> Optional[Leaf]:
        """Search leaves along the chain of first children from the root."""
        for node in self._first_child_chain():
            for leaf in node.leaves:
                if leaf.key == key:
                    return leaf
        return None

    def find_node(self, path: str) -> Optional[Node]:
        """Return the first node on the first-child chain whose path contains ``path``."""
        for node in self._first_child_chain():
            if path in node.path:
                return node
        return None

    def _drop_from_index(self, leaf: Leaf) -> None:
        bucket = self._index.get(leaf.key)
        if bucket and leaf in bucket:
            bucket.remove(leaf)
            if not bucket:
                del self._index[leaf.key]

    def remove_leaf(self, leaf: Leaf) -> None:
        """Remove a leaf from its node and from the key index."""
        if leaf is None:
            raise ValueError("invalid leaf")
        self._drop_from_index(leaf)
        if leaf in leaf.parent.leaves:
            leaf.parent.leaves.remove(leaf)

    def remove_node(self, node: Node) -> None:
        """Detach a node and everything beneath it."""
        if node is None or node.parent is None:
            raise ValueError("cannot remove the root node")
        for descendant in node._walk():
            for leaf in descendant.leaves:
                self._drop_from_index(leaf)
        node.parent.children.remove(node)
        node.parent = None

    def clear(self) -> None:
        """Drop every node and leaf, leaving an empty root."""
        self.root = Node("/")
        self._index.clear()

    @staticmethod
    def _node_lines(node: Node, depth: int) -> Iterator[str]:
        prefix = indent(depth)
        yield _line(f"{prefix}{node.path}\n")
        for leaf in node.leaves:
            yield _line(f"{prefix}{node.path}/..{leaf.key} -> {leaf._tree_text()}\n")

    def render(self) -> str:
        """Return the tree drawing: every node with its leaves, then a blank line."""
        lines: list[str] = []
        used = {self.root}
        stack: list[tuple[Node, int]] = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            lines.extend(self._node_lines(node, depth))
            if node.parent is not None:
                siblings = node.parent.children
                for sibling in siblings[siblings.index(node) + 1:]:
                    if sibling not in used:
                        used.add(sibling)
                        stack.append((sibling, depth))
            if node.children:
                first = node.children[0]
                if first not in used:
                    used.add(first)
                    stack.append((first, (depth + 1) & _DEPTH_MASK))
        lines.append("\n")
        return "".join(lines)

    def write(self, stream: IO[str]) -> None:
        """Write the tree drawing to a text stream."""
        stream.write(self.render())