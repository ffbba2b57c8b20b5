from based.database import ValueType
from based.demo import build_sample_tree, main

EXPECTED_TREE = (
    "/\n"
    "|---/docs\n"
    "|---/docs/..note -> 'Hello, world!'\n"
    "|---/docs/..size -> 1024\n"
    "|-------/docs/temp\n"
    "|-------/docs/temp/..time -> 1234567.12\n"
    "|---/cards\n"
    "|-------/cards/yugioh\n"
    "|---/apps\n"
    "|---/users\n"
    "|---/users/..data -> [binary data, size = 3]\n"
    "|-------/users/main\n"
    "\n"
)

EXPECTED_NODE = "**Node**\nPath: /docs/temp\nFolder is empty\n\n"


def test_sample_tree_render():
    assert build_sample_tree().render() == EXPECTED_TREE


def test_sample_tree_values():
    tree = build_sample_tree()
    assert tree.find_leaf("note").value == "Hello, world!"
    assert tree.find_leaf("size").value == 1024
    assert tree.find_leaf("data").value == b"\x01\x02\x03"
    assert tree.find_leaf("time").type is ValueType.DOUBLE


def test_main_output(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out == EXPECTED_NODE + EXPECTED_TREE


def test_main_without_arguments(capsys):
    assert main() == 0
    assert capsys.readouterr().out.startswith(EXPECTED_NODE)