"""Ordered walk over the leaf slots of a B+ tree index."""

from __future__ import annotations

from collections.abc import Iterator

from pagedb.ix_defs import Iid, Rid
from pagedb.ix_index_handle import IxIndexHandle


class IxScan:
    """Walks leaf slots from ``lower`` up to, not including, ``upper``."""

    def __init__(self, ih: IxIndexHandle, lower: Iid, upper: Iid) -> None:
        self._ih = ih
        self._iid = lower
        self._end = upper

    def next(self) -> None:
        """Advance to the following slot, moving to the next leaf when needed."""
        if self.is_end():
            raise IndexError("scan is already at its end")
        node = self._ih.fetch_node(self._iid.page_no)
        if not node.is_leaf:
            raise ValueError(f"page {node.page_no} is not a leaf")
        if self._iid.slot_no >= node.size:
            raise IndexError(f"slot {self._iid.slot_no} is past the end of page {node.page_no}")
        page_no, slot_no = self._iid.page_no, self._iid.slot_no + 1
        if page_no != self._ih.file_hdr.last_leaf and slot_no == node.size:
            page_no, slot_no = node.next_leaf, 0
        self._iid = Iid(page_no, slot_no)

    def is_end(self) -> bool:
        """True once the scan reached its upper bound."""
        return self._iid == self._end

    def rid(self) -> Rid:
        """Rid held in the current slot."""
        return self._ih.get_rid(self._iid)

    def iid(self) -> Iid:
        """Current slot."""
        return self._iid

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self.rid()
            self.next()