# pagedb

`pagedb` holds the storage and query pieces of a small relational database:

- **A disk-backed B+ tree index.** Nodes are stored in fixed 4096-byte pages. Keys can be `INT`, `FLOAT` or fixed-length strings. The leaves are chained together, so the index can be scanned in key order.
- **Query conditions.** These cover column references, typed values and comparison operators. They are evaluated against encoded field bytes.
- **An interactive client.** It sends SQL statements to a database server over TCP or a Unix socket and prints the replies.

## Installing

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Using the index

```python
from pagedb.ix_defs import ColType, Rid, encode_key
from pagedb.ix_manager import IxManager
from pagedb.ix_scan import IxScan

manager = IxManager()              # index files live in the current directory
manager.create_index("orders", 0, ColType.INT, 4)
ih = manager.open_index("orders", 0)

for n in range(1, 11):
    ih.insert_entry(encode_key(n, ColType.INT, 4), Rid(0, n))

print(ih.get_value(encode_key(3, ColType.INT, 4)))  # [Rid(page_no=0, slot_no=3)]

for rid in IxScan(ih, ih.leaf_begin(), ih.leaf_end()):
    print(rid)

ih.delete_entry(encode_key(3, ColType.INT, 4))
manager.close_index(ih)
```

### `IxManager` (`pagedb.ix_manager`)

An `IxManager` manages the index files in one directory. It takes that directory as an argument, and uses `"."` if none is given.

- **`create_index(filename, index_no, col_type, col_len)`** writes a new file named `<filename>.<index_no>.idx`.
  - The file holds a header page, a leaf-list header page and an empty root leaf.
  - A column longer than 512 bytes raises `InvalidColLengthError`.
  - A file that already exists raises `FileExistsError`.
- **`exists(filename, index_no)`** reports whether the index file is present.
- **`destroy_index(filename, index_no)`** deletes the file.
- **`open_index(filename, index_no)`** returns an `IxIndexHandle`.
- **`close_index(ih)`** writes the handle back and closes it.

### `IxIndexHandle` (`pagedb.ix_index_handle`)

- **`insert_entry(key, rid)`** adds an entry. It returns `False` if the key is already present.
- **`delete_entry(key)`** removes an entry. It returns `False` if the key is absent.
- **`get_value(key)`** returns a one-element list, or an empty list when the key is absent.
- **`lower_bound(key)` and `upper_bound(key)`** return an `Iid` position. `upper_bound` returns `leaf_end()` when no greater key is in the leaf.
- **`leaf_begin()` and `leaf_end()`** mark the two ends of the leaf chain.
- **`get_rid(iid)`** returns the `Rid` at a position. An empty slot raises `IndexEntryNotFoundError`.
- **Node handling.** Nodes split when they fill up, and they are redistributed or merged when they fall below half full.

Keys are fixed-width byte strings of the column's length. Build them with `pagedb.ix_defs.encode_key(value, col_type, col_len)`.

Nodes are cached in memory once they have been read. `flush()` writes the header and every cached node back to the file, and `close()` flushes and then closes it. A handle also works as a context manager.

The tree operations are serialised by a tree-level lock, so several threads can share one handle.

### `IxScan` (`pagedb.ix_scan`)

`IxScan(ih, lower, upper)` walks the leaf slots from `lower` up to `upper`, with `upper` excluded. It can be used in two ways:

- Step through it with `is_end()`, `rid()`, `iid()` and `next()`.
- Iterate over it, which yields each `Rid` in turn.

### Definitions (`pagedb.ix_defs`)

`pagedb.ix_defs` provides the following:

- **Types and ids:** `ColType`, `Rid` and `Iid`.
- **Page headers:** `IxFileHdr` and `IxPageHdr`, both with `pack()` and `unpack()`.
- **`ix_compare`** does the three-way comparison of two encoded keys.
- **`btree_order_for(col_len)`** gives the node order for a column length.

`pagedb.ix_node.IxNode` is the in-memory form of one node page.

## Conditions

`pagedb.conditions` supplies the following:

- **`TabCol`** names a column. It is ordered by table, then by column.
- **`Value(type, value)`** holds a typed literal.
  - `init_raw(length)` encodes it into `raw`.
  - A string longer than the column raises `StringOverflowError`.
  - A numeric value needs a length of 4.
- **`CompOp`** is a comparison operator (`=`, `<>`, `<`, `>`, `<=`, `>=`).
  - `swapped()` gives the operator to use once the two operands change sides.
  - `holds(cmp)` tests the operator against a three-way comparison result.
- **`Condition`** is a comparison. Its right-hand side is either a column (`rhs_col`) or a value (`rhs_val`), never both.
- **`SetClause`** is an assignment in an update.
- **`evaluate(op, lhs, rhs, col_type, col_len)`** compares two encoded fields.
- **`pop_conds(conds, tab_names)`** removes from `conds` the conditions that refer only to the given tables, and returns them.

## The client

```
pagedb-client [-h HOST] [-p PORT] [-s UNIX_SOCKET_PATH]
```

- **Connecting.** The client connects to `127.0.0.1:8765` by default. `-s` connects to a Unix socket instead.
- **Sending statements.** Each non-empty line you type is sent to the server as a NUL-terminated string, and the server's reply is printed.
- **Leaving.** Type `exit`, `exit;`, `bye` or `bye;`, or end the input, to leave. The client also stops when the server closes the connection.
- **Exit status.** The exit status is 1 if the client cannot connect or cannot send, and 0 otherwise.

The same client can be run with `python -m pagedb.client`.

## Other utilities

- **`pagedb.rwlatch.ReaderWriterLatch`** is a reader/writer latch that favours writers.
  - It offers `r_lock`/`r_unlock` and `w_lock`/`w_unlock`.
  - The `read_locked()` and `write_locked()` context managers hold the latch for the length of a block.
- **`pagedb.logger`** handles log lines.
  - `emit_log(level, fmt, *args)` writes a line to stdout in the form `YYYY-mm-dd HH:MM:SS [file:line:func] LEVEL - message`.
  - Only levels at `DEBUG` or above are written.
  - `format_log_header` builds the header on its own.

## What this package does not do

- **No server.** There is no database server: the client needs one to talk to.
- **No SQL.** There is no SQL parser or statement executor.
- **No record storage.** There are no table or record files, only index files.
- **No buffer pool.** Index nodes are kept in memory until they are flushed.
- **No page reuse.** Pages freed by merges are not handed out again, so an index file does not shrink.
</br>