import io

import pytest

from based.database import (
    MAX_KEY_LEN,
    Tree,
    ValueType,
    format_leaf,
    format_node,
    indent,
)


@pytest.fixture
def tree():
    return Tree()


def test_indent_first_level_prefix():
    assert indent(1) == "|---"


@pytest.mark.parametrize("n", [-1, 0, 128, 200])
def test_indent_out_of_range_is_empty(n):
    assert indent(n) == ""


@pytest.mark.parametrize("n", [1, 2, 5, 127])
def test_indent_shape(n):
    text = indent(n)
    assert len(text) == 4 * n
    assert text.startswith("|---")
    assert set(text[4:]) <= {"-"}


def test_node_paths(tree):
    docs = tree.add_node(tree.root, "docs")
    temp = tree.add_node(docs, "temp")
    assert docs.path == "/docs"
    assert temp.path == "/docs/temp"
    assert temp.parent is docs
    assert tree.root.children == [docs]


def test_path_too_long(tree):
    with pytest.raises(ValueError):
        tree.add_node(tree.root, "x" * 254)
    node = tree.add_node(tree.root, "x" * 253)
    assert node.path == "/" + "x" * 253


def test_invalid_parent(tree):
    with pytest.raises(ValueError):
        tree.add_node(None, "a")
    with pytest.raises(ValueError):
        tree.add_int(None, "k", 1)


def test_key_truncated(tree):
    leaf = tree.add_string(tree.root, "k" * 300, "v")
    assert len(leaf.key) == MAX_KEY_LEN - 1
    assert tree.find_leaf("k" * (MAX_KEY_LEN - 1)) is leaf


def test_int_wraps_to_32_bits(tree):
    leaf = tree.add_int(tree.root, "n", 2**31)
    assert leaf.value == -2147483648
    assert leaf.type is ValueType.INT


def test_binary_copies_data(tree):
    data = bytearray(b"\x01\x02")
    leaf = tree.add_binary(tree.root, "b", data)
    data[0] = 9
    assert leaf.value == b"\x01\x02"


def test_find_leaf_returns_newest(tree):
    a = tree.add_node(tree.root, "a")
    b = tree.add_node(tree.root, "b")
    tree.add_int(a, "same", 1)
    newer = tree.add_int(b, "same", 2)
    assert tree.find_leaf("same") is newer
    assert tree.find_leaf("missing") is None


def test_linear_search_follows_first_children(tree):
    a = tree.add_node(tree.root, "a")
    b = tree.add_node(tree.root, "b")
    tree.add_string(a, "first", "x")
    hidden = tree.add_string(b, "second", "y")
    assert tree.find_leaf_linear("first").value == "x"
    assert tree.find_leaf_linear("second") is None
    assert tree.find_leaf("second") is hidden


def test_find_node_substring(tree):
    a = tree.add_node(tree.root, "alpha")
    inner = tree.add_node(a, "inner")
    tree.add_node(tree.root, "beta")
    assert tree.find_node("inn") is inner
    assert tree.find_node("beta") is None
    assert tree.find_node("/") is tree.root


def test_render_small(tree):
    a = tree.add_node(tree.root, "a")
    tree.add_string(a, "k", "v")
    assert tree.render() == "/\n|---/a\n|---/a/..k -> 'v'\n\n"


def test_render_sibling_order(tree):
    for name in ("a", "b", "c"):
        tree.add_node(tree.root, name)
    lines = [line for line in tree.render().splitlines() if line]
    assert lines == ["/", "|---/a", "|---/c", "|---/b"]


def test_render_lists_each_node_once(tree):
    a = tree.add_node(tree.root, "a")
    b = tree.add_node(tree.root, "b")
    tree.add_node(a, "x")
    tree.add_node(b, "y")
    tree.add_node(b, "z")
    text = tree.render()
    for path in ("/a", "/b", "/a/x", "/b/y", "/b/z"):
        assert sum(1 for line in text.splitlines() if line.endswith(path)) == 1
    assert text.endswith("\n\n")


def test_render_child_follows_parent(tree):
    a = tree.add_node(tree.root, "a")
    tree.add_node(tree.root, "b")
    tree.add_node(a, "x")
    lines = [line for line in tree.render().splitlines() if line]
    assert lines.index(indent(2) + "/a/x") == lines.index(indent(1) + "/a") + 1


def test_write_matches_render(tree):
    a = tree.add_node(tree.root, "a")
    tree.add_double(a, "d", 2.5)
    buf = io.StringIO()
    tree.write(buf)
    assert buf.getvalue() == tree.render()


def test_node_describe(tree):
    a = tree.add_node(tree.root, "a")
    assert "Folder is empty" in a.describe()
    tree.add_node(a, "b")
    assert "Folder has files inside" in format_node(a)
    assert "Path: /a\n" in a.describe()


def test_format_none():
    assert format_node(None) == "Invalid node\n"
    assert format_leaf(None) == "Invalid leaf\n"


def test_leaf_describe(tree):
    a = tree.add_node(tree.root, "a")
    s = tree.add_string(a, "s", "v")
    n = tree.add_int(a, "n", 1024)
    b = tree.add_binary(a, "b", b"\x01\x02\x03")
    assert "Value: 'v' (string)\n" in format_leaf(s)
    assert "Key: s\n" in s.describe()
    assert "Value: 1024 (integer)\n" in n.describe()
    assert "[binary data, size=3]" in b.describe()


def test_remove_leaf(tree):
    a = tree.add_node(tree.root, "a")
    leaf = tree.add_int(a, "k", 5)
    tree.remove_leaf(leaf)
    assert tree.find_leaf("k") is None
    assert a.leaves == []


def test_remove_node(tree):
    a = tree.add_node(tree.root, "a")
    inner = tree.add_node(a, "inner")
    tree.add_int(inner, "deep", 1)
    tree.remove_node(a)
    assert tree.find_leaf("deep") is None
    assert tree.root.children == []
    with pytest.raises(ValueError):
        tree.remove_node(tree.root)


def test_clear(tree):
    a = tree.add_node(tree.root, "a")
    tree.add_int(a, "k", 1)
    tree.clear()
    assert tree.root.children == []
    assert tree.find_leaf("k") is None
    assert tree.render() == Tree().render()