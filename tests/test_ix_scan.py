import random

import pytest

from pagedb.ix_defs import (
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_NO_PAGE,
    PAGE_SIZE,
    ColType,
    Iid,
    IxFileHdr,
    Rid,
    btree_order_for,
    encode_key,
)
from pagedb.ix_index_handle import IxIndexHandle
from pagedb.ix_node import IxNode
from pagedb.ix_scan import IxScan


def _create_index_file(path, col_len=4):
    order = btree_order_for(col_len)
    hdr = IxFileHdr(
        first_free_page_no=IX_NO_PAGE,
        num_pages=IX_INIT_NUM_PAGES,
        root_page=IX_INIT_ROOT_PAGE,
        col_type=ColType.INT,
        col_len=col_len,
        btree_order=order,
        keys_size=(order + 1) * col_len,
        first_leaf=IX_INIT_ROOT_PAGE,
        last_leaf=IX_INIT_ROOT_PAGE,
    )
    leaf_header = IxNode(
        page_no=IX_LEAF_HEADER_PAGE,
        file_hdr=hdr,
        prev_leaf=IX_INIT_ROOT_PAGE,
        next_leaf=IX_INIT_ROOT_PAGE,
    )
    root = IxNode(
        page_no=IX_INIT_ROOT_PAGE,
        file_hdr=hdr,
        prev_leaf=IX_LEAF_HEADER_PAGE,
        next_leaf=IX_LEAF_HEADER_PAGE,
    )
    path.write_bytes(hdr.pack().ljust(PAGE_SIZE, b"\0") + leaf_header.pack() + root.pack())


@pytest.fixture
def ih(tmp_path):
    path = tmp_path / "table1.0.idx"
    _create_index_file(path)
    handle = IxIndexHandle(path)
    yield handle
    handle.close()


def k(value):
    return encode_key(value, ColType.INT, 4)


def test_large_scale_insert_scan_in_order(ih):
    ih.file_hdr.btree_order = 256
    keys = list(range(1, 10001))
    random.Random(0).shuffle(keys)
    for key in keys:
        assert ih.insert_entry(k(key), Rid(key >> 32, key & 0xFFFFFFFF)) is True
    for key in keys:
        rids = ih.get_value(k(key))
        assert len(rids) == 1 and rids[0].slot_no == key
    scan = IxScan(ih, ih.leaf_begin(), ih.leaf_end())
    current = 1
    while not scan.is_end():
        rid = scan.rid()
        assert rid.page_no == current >> 32
        assert rid.slot_no == current & 0xFFFFFFFF
        current += 1
        scan.next()
    assert current == len(keys) + 1


def test_empty_index_scan_is_at_end(ih):
    scan = IxScan(ih, ih.leaf_begin(), ih.leaf_end())
    assert scan.is_end() is True
    assert list(scan) == []
    with pytest.raises(IndexError):
        scan.next()


def test_iid_starts_at_lower_and_advances(ih):
    ih.file_hdr.btree_order = 4
    for key in range(1, 4):
        ih.insert_entry(k(key), Rid(0, key))
    scan = IxScan(ih, ih.leaf_begin(), ih.leaf_end())
    assert scan.iid() == Iid(ih.file_hdr.first_leaf, 0)
    scan.next()
    assert scan.iid() == Iid(ih.file_hdr.first_leaf, 1)
    assert scan.rid() == Rid(0, 2)


def test_scan_from_lower_bound_crosses_leaves(ih):
    ih.file_hdr.btree_order = 4
    for key in range(1, 101):
        ih.insert_entry(k(key), Rid(0, key))
    scan = IxScan(ih, ih.lower_bound(k(20)), ih.leaf_end())
    assert [rid.slot_no for rid in scan] == list(range(20, 101))
    assert scan.is_end() is True


def test_scan_after_deletions_skips_removed(ih):
    ih.file_hdr.btree_order = 3
    for key in range(1, 41):
        ih.insert_entry(k(key), Rid(0, key))
    for key in range(1, 41, 2):
        assert ih.delete_entry(k(key)) is True
    slots = [rid.slot_no for rid in IxScan(ih, ih.leaf_begin(), ih.leaf_end())]
    assert slots == list(range(2, 41, 2))