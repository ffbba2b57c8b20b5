# based

`based` keeps data in memory as a tree of folders, much like a filesystem.
Each folder (`Node`) is named by its full path, for example `/docs/temp`, and
holds typed values (`Leaf`): strings, 32-bit signed integers, doubles and
binary blobs. A key index finds any leaf by its key. The package also has a
small HTTP/1.0 server that serves static files, echoes form data and edits a
user record.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

## The tree (`based.database`)

```python
from based.database import Tree

tree = Tree()
docs = tree.add_node(tree.root, "docs")
temp = tree.add_node(docs, "temp")

tree.add_string(docs, "note", "Hello, world!")
tree.add_int(docs, "size", 1024)
tree.add_double(temp, "time", 1234567.123)
tree.add_binary(tree.root, "data", b"\x01\x02\x03")

leaf = tree.find_leaf("size")
print(leaf.describe())

node = tree.find_node("/docs")
print(node.describe())

print(tree.render())
```

What the `Tree` methods do:

- `add_node(parent, name)` adds a folder as the last child of `parent`. It
  raises `ValueError` if the full path would reach 256 characters.
- `add_string`, `add_int`, `add_double` and `add_binary` add a leaf as the
  last leaf of a folder. Keys are cut to 127 characters. Integers wrap to
  32 bits.
- `find_leaf(key)` looks up the key index. If several leaves share a key, it
  returns the one added most recently. It returns `None` when nothing matches.
- `find_leaf_linear(key)` and `find_node(path)` search only along the chain
  of first children from the root. `find_node` returns the first folder
  whose path *contains* `path`.
- `remove_leaf(leaf)` removes a leaf. `remove_node(node)` detaches a folder
  and everything below it; it raises `ValueError` for the root. `clear()`
  leaves an empty root.
- `render()` returns an indented drawing of every folder and its leaves,
  with a blank line at the end. `write(stream)` writes that drawing to a
  text stream.

The functions `indent(n)`, `format_node(node)` and `format_leaf(leaf)` return
the same text pieces. `format_node` and `format_leaf` return
`"Invalid node"` or `"Invalid leaf"` when they are given `None`.
`ValueType` names the four kinds of value.

## Commands

`based` builds a sample tree with `based.demo.build_sample_tree()`. It prints
the `/docs/temp` folder and then the whole tree:

```
based
```

`based-server` listens on 127.0.0.1 at the port given as its first argument.
It serves files from the current working directory:

```
based-server 8080
```

It handles these requests:

- `GET /` sends `index.html`.
- `GET /static/<file>` sends `static/<file>`. The MIME type is chosen from
  the file extension. A path containing `..` gets `403 Forbidden`.
- `POST /api/submit` echoes the body back in an HTML page, with `<`, `>`,
  `&` and `"` escaped. Bodies must carry a `Content-Length` of 1 to 1024.
- `PATCH /api/user` with a form body such as `name=Alice&age=31` replies with
  the updated record as JSON.
- `DELETE /api/user` resets the record to `John Doe`, 30.
- Any other request gets `404 Page Not Found`.

Ctrl+C stops the server.

The server can also be used from code. Call `BasedServer(bind_addr, port,
root)` and then `serve_forever()`; call `shutdown()` from another thread to
stop it. `handle_connection(rfile, wfile, user, root)` serves one request
from a pair of binary streams.

## What it does not do

- The tree lives only in memory. Nothing is saved to disk, and the data is
  lost when the process ends.
- The server does not expose the tree. Its only data is the user record.
- Each connection works on its own copy of the user record. A `PATCH` or
  `DELETE` therefore changes only the reply to that request, and later
  requests start again from `John Doe`, 30.
- The server always binds to 127.0.0.1. Any argument after the port is
  ignored.

## Running the tests

```
pytest
```