"""A single B+ tree node: sorted keys with their record or child ids."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from pagedb.ix_defs import (
    IX_NO_PAGE,
    PAGE_HDR_SIZE,
    PAGE_SIZE,
    RID_SIZE,
    RID_STRUCT,
    ColType,
    IxFileHdr,
    IxPageHdr,
    Rid,
    ix_compare,
)


@dataclass(eq=False)
class IxNode:
    """In-memory view of one index page.

    In a leaf, ``rids`` locate records; in an inner node, ``rids[i].page_no``
    is the page of the i-th child and ``keys[i]`` is that child's first key.
    """

    page_no: int
    file_hdr: IxFileHdr
    is_leaf: bool = True
    parent: int = IX_NO_PAGE
    prev_leaf: int = IX_NO_PAGE
    next_leaf: int = IX_NO_PAGE
    next_free_page_no: int = IX_NO_PAGE
    keys: list[bytes] = field(default_factory=list)
    rids: list[Rid] = field(default_factory=list)

    @property
    def size(self) -> int:
        """Number of key/rid pairs held."""
        return len(self.keys)

    @property
    def is_root(self) -> bool:
        """True when the node has no parent."""
        return self.parent == IX_NO_PAGE

    def _cmp(self, a: bytes, b: bytes) -> int:
        return ix_compare(a, b, self.file_hdr.col_type, self.file_hdr.col_len)

    def _capacity(self) -> int:
        hdr = self.file_hdr
        key_slots = hdr.keys_size // hdr.col_len
        rid_slots = (PAGE_SIZE - PAGE_HDR_SIZE - hdr.keys_size) // RID_SIZE
        return min(key_slots, rid_slots)

    def lower_bound(self, target: bytes) -> int:
        """Index of the first key >= target, or size if there is none."""
        lo, hi = 0, len(self.keys)
        while lo < hi:
            mid = (lo + hi) // 2
            if self._cmp(self.keys[mid], target) < 0:
                lo = mid + 1
            else:
                hi = mid
        return lo

    def upper_bound(self, target: bytes) -> int:
        """Index of the first key > target, searching from slot 1; size if none."""
        if not self.keys:
            return 0
        lo, hi = 1, len(self.keys)
        while lo < hi:
            mid = (lo + hi) // 2
            if self._cmp(target, self.keys[mid]) < 0:
                hi = mid
            else:
                lo = mid + 1
        return lo

    def leaf_lookup(self, key: bytes) -> Rid | None:
        """Return the rid stored under ``key`` in a leaf, or None."""
        pos = self.lower_bound(key)
        if pos < len(self.keys) and self._cmp(self.keys[pos], key) == 0:
            return self.rids[pos]
        return None

    def internal_lookup(self, key: bytes) -> int:
        """Page number of the child subtree that may hold ``key``."""
        return self.value_at(self.upper_bound(key) - 1)

    def insert_pairs(self, pos: int, keys: list[bytes], rids: list[Rid]) -> None:
        """Insert consecutive pairs so the first lands at ``pos``."""
        if not 0 <= pos <= len(self.keys):
            raise IndexError(f"insert position {pos} out of range 0..{len(self.keys)}")
        if len(keys) != len(rids):
            raise ValueError("keys and rids differ in length")
        col_len = self.file_hdr.col_len
        if any(len(key) != col_len for key in keys):
            raise ValueError(f"every key must be {col_len} bytes")
        if len(self.keys) + len(keys) > self._capacity():
            raise ValueError("node page is full")
        self.keys[pos:pos] = [bytes(key) for key in keys]
        self.rids[pos:pos] = list(rids)

    def insert_pair(self, pos: int, key: bytes, rid: Rid) -> None:
        """Insert one pair at ``pos``."""
        self.insert_pairs(pos, [key], [rid])

    def insert(self, key: bytes, rid: Rid) -> int:
        """Insert a pair in key order unless the key is present; return the size."""
        pos = self.lower_bound(key)
        if pos < len(self.keys) and self._cmp(self.keys[pos], key) == 0:
            return len(self.keys)
        self.insert_pair(pos, key, rid)
        return len(self.keys)

    def erase_pair(self, pos: int) -> None:
        """Remove the pair at ``pos``."""
        if not 0 <= pos < len(self.keys):
            raise IndexError(f"erase position {pos} out of range 0..{len(self.keys) - 1}")
        del self.keys[pos]
        del self.rids[pos]

    def remove(self, key: bytes) -> int:
        """Remove the pair holding ``key`` if present; return the size."""
        pos = self.lower_bound(key)
        if pos < len(self.keys) and self._cmp(self.keys[pos], key) == 0:
            self.erase_pair(pos)
        return len(self.keys)

    def find_child(self, child: IxNode | int) -> int:
        """Slot in this inner node that points at ``child`` (a node or page number)."""
        page_no = child if isinstance(child, int) else child.page_no
        for idx, rid in enumerate(self.rids):
            if rid.page_no == page_no:
                return idx
        raise ValueError(f"page {page_no} is not a child of page {self.page_no}")

    def remove_and_return_only_child(self) -> int:
        """Empty a one-child inner node and return that child's page number."""
        if len(self.keys) != 1:
            raise ValueError("node does not have exactly one child")
        child = self.value_at(0)
        self.erase_pair(0)
        return child

    def max_size(self) -> int:
        """Size at which a node must split."""
        return self.file_hdr.btree_order + 1

    def min_size(self) -> int:
        """Smallest size a non-root node may keep."""
        return self.max_size() // 2

    def key_at(self, i: int) -> int | float | bytes:
        """Decoded value of the i-th key."""
        key = self.keys[i]
        col_type = self.file_hdr.col_type
        if col_type == ColType.INT:
            return struct.unpack_from("<i", key)[0]
        if col_type == ColType.FLOAT:
            return struct.unpack_from("<f", key)[0]
        return key.split(b"\0", 1)[0]

    def value_at(self, i: int) -> int:
        """Page number stored in the i-th rid (the child page in inner nodes)."""
        return self.rids[i].page_no

    def pack(self) -> bytes:
        """Serialise the node to a full page."""
        hdr = IxPageHdr(
            next_free_page_no=self.next_free_page_no,
            parent=self.parent,
            num_key=len(self.keys),
            is_leaf=self.is_leaf,
            prev_leaf=self.prev_leaf,
            next_leaf=self.next_leaf,
        )
        key_area = b"".join(self.keys)
        if len(key_area) > self.file_hdr.keys_size:
            raise ValueError("keys exceed the key area of the page")
        rid_area = b"".join(RID_STRUCT.pack(rid.page_no, rid.slot_no) for rid in self.rids)
        page = hdr.pack() + key_area.ljust(self.file_hdr.keys_size, b"\0") + rid_area
        if len(page) > PAGE_SIZE:
            raise ValueError("node does not fit in a page")
        return page.ljust(PAGE_SIZE, b"\0")

    @classmethod
    def unpack(cls, page_no: int, data: bytes, file_hdr: IxFileHdr) -> IxNode:
        """Build a node from the bytes of its page."""
        hdr = IxPageHdr.unpack(data)
        count = hdr.num_key
        col_len = file_hdr.col_len
        key_blob = bytes(data[PAGE_HDR_SIZE : PAGE_HDR_SIZE + count * col_len])
        keys = [key_blob[start : start + col_len] for start in range(0, len(key_blob), col_len)]
        rid_base = PAGE_HDR_SIZE + file_hdr.keys_size
        rid_blob = bytes(data[rid_base : rid_base + count * RID_SIZE])
        rids = [Rid(*pair) for pair in RID_STRUCT.iter_unpack(rid_blob)]
        return cls(
            page_no=page_no,
            file_hdr=file_hdr,
            is_leaf=bool(hdr.is_leaf),
            parent=hdr.parent,
            prev_leaf=hdr.prev_leaf,
            next_leaf=hdr.next_leaf,
            next_free_page_no=hdr.next_free_page_no,
            keys=keys,
            rids=rids,
        )