"""Creation, opening and removal of B+ tree index files."""

from __future__ import annotations

import os
from pathlib import Path

from pagedb.ix_defs import (
    IX_FILE_HDR_PAGE,
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_NO_PAGE,
    PAGE_SIZE,
    ColType,
    IxFileHdr,
    IxPageHdr,
    btree_order_for,
)
from pagedb.ix_index_handle import IxIndexHandle


class IxManager:
    """Manages the index files kept in one directory."""

    def __init__(self, directory: str | os.PathLike[str] = ".") -> None:
        self.directory = Path(directory)

    def get_index_name(self, filename: str, index_no: int) -> str:
        """File name of index ``index_no`` on table file ``filename``."""
        return f"{filename}.{index_no}.idx"

    def _path(self, filename: str, index_no: int) -> Path:
        return self.directory / self.get_index_name(filename, index_no)

    def exists(self, filename: str, index_no: int) -> bool:
        """True if the index file is present."""
        return self._path(filename, index_no).is_file()

    def create_index(self, filename: str, index_no: int, col_type: ColType, col_len: int) -> None:
        """Create an empty index file with its header, leaf-list header and root pages."""
        if index_no < 0:
            raise ValueError(f"index number must not be negative: {index_no}")
        btree_order = btree_order_for(col_len)
        if btree_order <= 2:
            raise ValueError(f"column of {col_len} bytes leaves too small a node order")
        file_hdr = IxFileHdr(
            first_free_page_no=IX_NO_PAGE,
            num_pages=IX_INIT_NUM_PAGES,
            root_page=IX_INIT_ROOT_PAGE,
            col_type=ColType(col_type),
            col_len=col_len,
            btree_order=btree_order,
            keys_size=(btree_order + 1) * col_len,
            first_leaf=IX_INIT_ROOT_PAGE,
            last_leaf=IX_INIT_ROOT_PAGE,
        )
        # The leaf-list header and the root leaf point at each other.
        leaf_header = IxPageHdr(
            next_free_page_no=IX_NO_PAGE,
            parent=IX_NO_PAGE,
            num_key=0,
            is_leaf=True,
            prev_leaf=IX_INIT_ROOT_PAGE,
            next_leaf=IX_INIT_ROOT_PAGE,
        )
        root = IxPageHdr(
            next_free_page_no=IX_NO_PAGE,
            parent=IX_NO_PAGE,
            num_key=0,
            is_leaf=True,
            prev_leaf=IX_LEAF_HEADER_PAGE,
            next_leaf=IX_LEAF_HEADER_PAGE,
        )
        pages = {
            IX_FILE_HDR_PAGE: file_hdr.pack(),
            IX_LEAF_HEADER_PAGE: leaf_header.pack(),
            IX_INIT_ROOT_PAGE: root.pack(),
        }
        with open(self._path(filename, index_no), "xb") as out:
            for page_no in sorted(pages):
                out.write(pages[page_no].ljust(PAGE_SIZE, b"\0"))

    def destroy_index(self, filename: str, index_no: int) -> None:
        """Delete the index file."""
        os.remove(self._path(filename, index_no))

    def open_index(self, filename: str, index_no: int) -> IxIndexHandle:
        """Open the index file and return a handle on it."""
        return IxIndexHandle(self._path(filename, index_no))

    def close_index(self, ih: IxIndexHandle) -> None:
        """Write the handle's header and nodes back and close its file."""
        ih.close()