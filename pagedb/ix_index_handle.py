"""B+ tree index kept in a paged file, with a leaf chain for ordered scans."""

from __future__ import annotations

import os
import threading
from enum import Enum

from pagedb.ix_defs import (
    IX_FILE_HDR_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_NO_PAGE,
    PAGE_SIZE,
    Iid,
    IndexEntryNotFoundError,
    IxFileHdr,
    Rid,
)
from pagedb.ix_node import IxNode


class Operation(Enum):
    """Purpose of a descent to a leaf."""

    FIND = 0
    INSERT = 1
    DELETE = 2


class IxIndexHandle:
    """An open B+ tree index file.

    Keys are fixed-width byte strings of ``file_hdr.col_len`` bytes; longer
    inputs are cut to that width. Nodes are cached in memory once read and
    written back by :meth:`flush`. Public tree operations are serialised by a
    tree-level latch so several threads may share one handle.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._file = open(self.path, "r+b")
        try:
            self.file_hdr = IxFileHdr.unpack(self._read_page(IX_FILE_HDR_PAGE))
            self._file.seek(0, os.SEEK_END)
            file_pages = self._file.tell() // PAGE_SIZE
        except Exception:
            self._file.close()
            raise
        self._next_page_no = max(file_pages, self.file_hdr.num_pages)
        self._nodes: dict[int, IxNode] = {}
        self._latch = threading.RLock()

    def __enter__(self) -> IxIndexHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ----- page access -------------------------------------------------

    def _read_page(self, page_no: int) -> bytes:
        self._file.seek(page_no * PAGE_SIZE)
        data = self._file.read(PAGE_SIZE)
        if len(data) < PAGE_SIZE:
            raise ValueError(f"page {page_no} lies beyond the end of {self.path}")
        return data

    def _write_page(self, page_no: int, data: bytes) -> None:
        self._file.seek(page_no * PAGE_SIZE)
        self._file.write(data.ljust(PAGE_SIZE, b"\0"))

    def _key(self, key: bytes) -> bytes:
        raw = bytes(key)
        col_len = self.file_hdr.col_len
        if len(raw) < col_len:
            raise ValueError(f"key of {len(raw)} bytes is shorter than the column ({col_len})")
        return raw[:col_len]

    def fetch_node(self, page_no: int) -> IxNode:
        """Return the node stored on ``page_no``."""
        node = self._nodes.get(page_no)
        if node is None:
            node = IxNode.unpack(page_no, self._read_page(page_no), self.file_hdr)
            self._nodes[page_no] = node
        return node

    def create_node(self) -> IxNode:
        """Allocate a fresh, empty node on a new page."""
        self.file_hdr.num_pages += 1
        page_no = self._next_page_no
        self._next_page_no += 1
        node = IxNode(page_no=page_no, file_hdr=self.file_hdr)
        self._nodes[page_no] = node
        return node

    def _release_node(self, node: IxNode) -> None:
        self.file_hdr.num_pages -= 1
        self._nodes.pop(node.page_no, None)

    def is_empty(self) -> bool:
        """True when the tree holds no entries."""
        if self.file_hdr.root_page == IX_NO_PAGE:
            return True
        root = self.fetch_node(self.file_hdr.root_page)
        return root.is_leaf and root.size == 0

    def _start_new_tree(self) -> IxNode:
        root = self.create_node()
        root.is_leaf = True
        root.prev_leaf = IX_LEAF_HEADER_PAGE
        root.next_leaf = IX_LEAF_HEADER_PAGE
        header = self.fetch_node(IX_LEAF_HEADER_PAGE)
        header.prev_leaf = root.page_no
        header.next_leaf = root.page_no
        self.file_hdr.root_page = root.page_no
        self.file_hdr.first_leaf = root.page_no
        self.file_hdr.last_leaf = root.page_no
        return root

    # ----- search ------------------------------------------------------

    def find_leaf_page(self, key: bytes, operation: Operation = Operation.FIND) -> IxNode:
        """Descend from the root to the leaf whose range covers ``key``."""
        key = self._key(key)
        with self._latch:
            if self.file_hdr.root_page == IX_NO_PAGE:
                if operation is not Operation.INSERT:
                    raise IndexEntryNotFoundError()
                return self._start_new_tree()
            node = self.fetch_node(self.file_hdr.root_page)
            while not node.is_leaf:
                node = self.fetch_node(node.internal_lookup(key))
            return node

    def get_value(self, key: bytes) -> list[Rid]:
        """Rids stored under ``key``: a one-element list, or empty if absent."""
        key = self._key(key)
        with self._latch:
            if self.is_empty():
                return []
            rid = self.find_leaf_page(key, Operation.FIND).leaf_lookup(key)
            return [] if rid is None else [rid]

    # ----- insertion ---------------------------------------------------

    def insert_entry(self, key: bytes, rid: Rid) -> bool:
        """Insert ``(key, rid)``; return False if the key is already present."""
        key = self._key(key)
        with self._latch:
            leaf = self.find_leaf_page(key, Operation.INSERT)
            if leaf.leaf_lookup(key) is not None:
                return False
            pos = leaf.lower_bound(key)
            leaf.insert_pair(pos, key, rid)
            if pos == 0:
                self.maintain_parent(leaf)
            if leaf.size >= leaf.max_size():
                new_leaf = self.split(leaf)
                if leaf.page_no == self.file_hdr.last_leaf:
                    self.file_hdr.last_leaf = new_leaf.page_no
                self.insert_into_parent(leaf, new_leaf.keys[0], new_leaf)
            return True

    def split(self, node: IxNode) -> IxNode:
        """Move the upper half of ``node`` into a new right sibling and return it."""
        new_node = self.create_node()
        new_node.is_leaf = node.is_leaf
        new_node.parent = node.parent
        pos = node.min_size()
        new_node.insert_pairs(0, node.keys[pos:], node.rids[pos:])
        del node.keys[pos:]
        del node.rids[pos:]
        if new_node.is_leaf:
            new_node.prev_leaf = node.page_no
            new_node.next_leaf = node.next_leaf
            self.fetch_node(node.next_leaf).prev_leaf = new_node.page_no
            node.next_leaf = new_node.page_no
        else:
            for idx in range(new_node.size):
                self.maintain_child(new_node, idx)
        return new_node

    def insert_into_parent(self, old_node: IxNode, key: bytes, new_node: IxNode) -> None:
        """Hook ``new_node`` (split off ``old_node``) into the parent, splitting upward."""
        if old_node.is_root:
            root = self.create_node()
            root.is_leaf = False
            root.insert_pair(0, old_node.keys[0], Rid(old_node.page_no, -1))
            root.insert_pair(1, key, Rid(new_node.page_no, -1))
            old_node.parent = root.page_no
            new_node.parent = root.page_no
            self.file_hdr.root_page = root.page_no
            return
        parent = self.fetch_node(old_node.parent)
        idx = parent.find_child(old_node)
        parent.insert_pair(idx + 1, key, Rid(new_node.page_no, -1))
        new_node.parent = parent.page_no
        if parent.size >= parent.max_size():
            new_parent = self.split(parent)
            self.insert_into_parent(parent, new_parent.keys[0], new_parent)

    # ----- deletion ----------------------------------------------------

    def delete_entry(self, key: bytes) -> bool:
        """Remove the entry under ``key``; return False if it was not present."""
        key = self._key(key)
        with self._latch:
            if self.is_empty():
                return False
            leaf = self.find_leaf_page(key, Operation.DELETE)
            if leaf.leaf_lookup(key) is None:
                return False
            pos = leaf.lower_bound(key)
            leaf.erase_pair(pos)
            if pos == 0 and leaf.size > 0:
                self.maintain_parent(leaf)
            self.coalesce_or_redistribute(leaf)
            return True

    def coalesce_or_redistribute(self, node: IxNode) -> bool:
        """Restore the fill of ``node`` after a removal; True if ``node`` was deleted."""
        if node.is_root:
            return self.adjust_root(node)
        if node.size >= node.min_size():
            return False
        parent = self.fetch_node(node.parent)
        index = parent.find_child(node)
        neighbor = self.fetch_node(parent.value_at(index - 1 if index > 0 else index + 1))
        if node.size + neighbor.size >= 2 * node.min_size():
            self.redistribute(neighbor, node, parent, index)
            return False
        self.coalesce(neighbor, node, parent, index)
        return True

    def adjust_root(self, old_root_node: IxNode) -> bool:
        """Collapse a one-child inner root; True if the old root was removed.

        An emptied leaf root stays in place as the root of an empty tree.
        """
        if not old_root_node.is_leaf and old_root_node.size == 1:
            child = self.fetch_node(old_root_node.remove_and_return_only_child())
            child.parent = IX_NO_PAGE
            self.file_hdr.root_page = child.page_no
            self._release_node(old_root_node)
            return True
        return False

    def redistribute(self, neighbor_node: IxNode, node: IxNode, parent: IxNode, index: int) -> None:
        """Move one pair from ``neighbor_node`` into ``node``.

        ``index`` is the slot of ``node`` in ``parent``: 0 means the neighbor is
        the right sibling, otherwise it is the left one.
        """
        if index == 0:
            node.insert_pair(node.size, neighbor_node.keys[0], neighbor_node.rids[0])
            neighbor_node.erase_pair(0)
            self.maintain_child(node, node.size - 1)
            self.maintain_parent(neighbor_node)
            self.maintain_parent(node)
        else:
            last = neighbor_node.size - 1
            node.insert_pair(0, neighbor_node.keys[last], neighbor_node.rids[last])
            neighbor_node.erase_pair(last)
            self.maintain_child(node, 0)
            self.maintain_parent(node)

    def coalesce(self, neighbor_node: IxNode, node: IxNode, parent: IxNode, index: int) -> bool:
        """Merge the right one of the two siblings into the left one.

        Returns True when the parent was removed as a consequence.
        """
        if index == 0:
            neighbor_node, node = node, neighbor_node
        start = neighbor_node.size
        neighbor_node.insert_pairs(start, node.keys, node.rids)
        for idx in range(start, neighbor_node.size):
            self.maintain_child(neighbor_node, idx)
        self.maintain_parent(neighbor_node)
        if node.is_leaf:
            if node.page_no == self.file_hdr.last_leaf:
                self.file_hdr.last_leaf = neighbor_node.page_no
            self.erase_leaf(node)
        parent.erase_pair(parent.find_child(node))
        self._release_node(node)
        return self.coalesce_or_redistribute(parent)

    # ----- structure maintenance --------------------------------------

    def maintain_parent(self, node: IxNode) -> None:
        """Propagate the first key of ``node`` up through its ancestors."""
        curr = node
        while curr.parent != IX_NO_PAGE and curr.size > 0:
            parent = self.fetch_node(curr.parent)
            rank = parent.find_child(curr)
            if parent.keys[rank] == curr.keys[0]:
                break
            parent.keys[rank] = curr.keys[0]
            curr = parent

    def erase_leaf(self, leaf: IxNode) -> None:
        """Unlink ``leaf`` from the leaf chain."""
        if not leaf.is_leaf:
            raise ValueError(f"page {leaf.page_no} is not a leaf")
        self.fetch_node(leaf.prev_leaf).next_leaf = leaf.next_leaf
        self.fetch_node(leaf.next_leaf).prev_leaf = leaf.prev_leaf

    def maintain_child(self, node: IxNode, child_idx: int) -> None:
        """Point the parent of the ``child_idx``-th child of an inner node at ``node``."""
        if not node.is_leaf:
            self.fetch_node(node.value_at(child_idx)).parent = node.page_no

    # ----- positions ---------------------------------------------------

    def get_rid(self, iid: Iid) -> Rid:
        """Rid stored in the index slot ``iid``."""
        node = self.fetch_node(iid.page_no)
        if not 0 <= iid.slot_no < node.size:
            raise IndexEntryNotFoundError()
        return node.rids[iid.slot_no]

    def lower_bound(self, key: bytes) -> Iid:
        """Slot of the first key >= ``key`` within the leaf covering it."""
        key = self._key(key)
        with self._latch:
            leaf = self.find_leaf_page(key, Operation.FIND)
            return Iid(leaf.page_no, leaf.lower_bound(key))

    def upper_bound(self, key: bytes) -> Iid:
        """Slot of the first key > ``key`` in its leaf, or :meth:`leaf_end`."""
        key = self._key(key)
        with self._latch:
            leaf = self.find_leaf_page(key, Operation.FIND)
            idx = leaf.upper_bound(key)
            if idx == leaf.size:
                return self.leaf_end()
            return Iid(leaf.page_no, idx)

    def leaf_begin(self) -> Iid:
        """First slot of the first leaf."""
        return Iid(self.file_hdr.first_leaf, 0)

    def leaf_end(self) -> Iid:
        """One past the last slot of the last leaf."""
        last = self.fetch_node(self.file_hdr.last_leaf)
        return Iid(self.file_hdr.last_leaf, last.size)

    # ----- persistence -------------------------------------------------

    def flush(self) -> None:
        """Write the file header and every cached node to disk."""
        with self._latch:
            self._write_page(IX_FILE_HDR_PAGE, self.file_hdr.pack())
            for page_no, node in sorted(self._nodes.items()):
                self._write_page(page_no, node.pack())
            self._file.flush()

    def close(self) -> None:
        """Flush and close the file; further calls do nothing."""
        if self._file.closed:
            return
        try:
            self.flush()
        finally:
            self._file.close()