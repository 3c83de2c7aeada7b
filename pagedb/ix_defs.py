"""On-disk definitions shared by the B+ tree index: headers, ids and key codecs."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

INVALID_FRAME_ID = -1
INVALID_PAGE_ID = -1
INVALID_TXN_ID = -1
INVALID_TIMESTAMP = -1
INVALID_LSN = -1
HEADER_PAGE_ID = 0
PAGE_SIZE = 4096
BUFFER_POOL_SIZE = 65536
LOG_BUFFER_SIZE = (BUFFER_POOL_SIZE + 1) * PAGE_SIZE
BUCKET_SIZE = 50
LOG_FILE_NAME = "db.log"
REPLACER_TYPE = "LRU"

IX_NO_PAGE = -1
IX_FILE_HDR_PAGE = 0
IX_LEAF_HEADER_PAGE = 1
IX_INIT_ROOT_PAGE = 2
IX_INIT_NUM_PAGES = 3
IX_MAX_COL_LEN = 512

RID_STRUCT = struct.Struct("<ii")
RID_SIZE = RID_STRUCT.size

_FILE_HDR_STRUCT = struct.Struct("<9i")
_PAGE_HDR_STRUCT = struct.Struct("<iii?3xii")
FILE_HDR_SIZE = _FILE_HDR_STRUCT.size
PAGE_HDR_SIZE = _PAGE_HDR_STRUCT.size

_INT = struct.Struct("<i")
_FLOAT = struct.Struct("<f")


class ColType(IntEnum):
    """Column types that an index key can have."""

    INT = 0
    FLOAT = 1
    STRING = 2


class IndexEntryNotFoundError(LookupError):
    """An index slot does not hold an entry."""

    def __init__(self) -> None:
        super().__init__("Index entry not found")


class InvalidColLengthError(ValueError):
    """A column is too long to be indexed."""

    def __init__(self, col_len: int) -> None:
        self.col_len = col_len
        super().__init__(f"Invalid column length: {col_len}")


@dataclass(frozen=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int
    slot_no: int


@dataclass(frozen=True)
class Iid:
    """Location of an index slot: leaf page number and slot number."""

    page_no: int
    slot_no: int


@dataclass
class IxFileHdr:
    """Header stored on the first page of an index file."""

    first_free_page_no: int
    num_pages: int
    root_page: int
    col_type: ColType
    col_len: int
    btree_order: int
    keys_size: int
    first_leaf: int
    last_leaf: int

    def pack(self) -> bytes:
        """Serialise the header to its fixed binary layout."""
        return _FILE_HDR_STRUCT.pack(
            self.first_free_page_no,
            self.num_pages,
            self.root_page,
            int(self.col_type),
            self.col_len,
            self.btree_order,
            self.keys_size,
            self.first_leaf,
            self.last_leaf,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IxFileHdr:
        """Read a header from the start of ``data``."""
        fields = list(_FILE_HDR_STRUCT.unpack_from(data, 0))
        fields[3] = ColType(fields[3])
        return cls(*fields)


@dataclass
class IxPageHdr:
    """Header stored at the start of every index node page."""

    next_free_page_no: int
    parent: int
    num_key: int
    is_leaf: bool
    prev_leaf: int
    next_leaf: int

    def pack(self) -> bytes:
        """Serialise the header to its fixed binary layout."""
        return _PAGE_HDR_STRUCT.pack(
            self.next_free_page_no,
            self.parent,
            self.num_key,
            bool(self.is_leaf),
            self.prev_leaf,
            self.next_leaf,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IxPageHdr:
        """Read a header from the start of ``data``."""
        return cls(*_PAGE_HDR_STRUCT.unpack_from(data, 0))


def ix_compare(a: bytes, b: bytes, col_type: ColType, col_len: int) -> int:
    """Compare two encoded keys; return -1, 0 or 1."""
    if col_type == ColType.INT:
        (x,) = _INT.unpack_from(a)
        (y,) = _INT.unpack_from(b)
    elif col_type == ColType.FLOAT:
        (x,) = _FLOAT.unpack_from(a)
        (y,) = _FLOAT.unpack_from(b)
    elif col_type == ColType.STRING:
        x = bytes(a[:col_len])
        y = bytes(b[:col_len])
    else:
        raise ValueError("Unexpected data type")
    return (x > y) - (x < y)


def encode_key(value: int | float | str | bytes, col_type: ColType, col_len: int) -> bytes:
    """Encode a Python value as the fixed-width key bytes of a column."""
    if col_type in (ColType.INT, ColType.FLOAT):
        if col_len != _INT.size:
            raise ValueError(f"numeric columns are {_INT.size} bytes, not {col_len}")
        codec = _INT if col_type == ColType.INT else _FLOAT
        try:
            return codec.pack(value)
        except struct.error as exc:
            raise ValueError(f"cannot encode {value!r} as {col_type.name}") from exc
    if col_type == ColType.STRING:
        raw = value.encode() if isinstance(value, str) else bytes(value)
        if len(raw) > col_len:
            raise ValueError(f"string of {len(raw)} bytes does not fit in {col_len}")
        return raw.ljust(col_len, b"\0")
    raise ValueError("Unexpected data type")


def btree_order_for(col_len: int) -> int:
    """Most key/rid pairs a node may hold, keeping one spare slot for splitting."""
    if col_len > IX_MAX_COL_LEN:
        raise InvalidColLengthError(col_len)
    return (PAGE_SIZE - PAGE_HDR_SIZE) // (col_len + RID_SIZE) - 1