import pytest

from pagedb.ix_defs import (
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_MAX_COL_LEN,
    ColType,
    InvalidColLengthError,
    Rid,
    btree_order_for,
    encode_key,
)
from pagedb.ix_manager import IxManager
from pagedb.ix_scan import IxScan

TEST_FILE_NAME = "table1"
INDEX_NO = 0


def _key(value):
    return encode_key(value, ColType.INT, 4)


@pytest.fixture
def manager(tmp_path):
    mgr = IxManager(tmp_path)
    mgr.create_index(TEST_FILE_NAME, INDEX_NO, ColType.INT, 4)
    return mgr


def test_index_name():
    assert IxManager().get_index_name("table1", 0) == "table1.0.idx"


def test_create_makes_file(manager, tmp_path):
    assert manager.exists(TEST_FILE_NAME, INDEX_NO)
    assert (tmp_path / "table1.0.idx").is_file()
    assert not manager.exists(TEST_FILE_NAME, 1)


def test_fresh_header(manager):
    ih = manager.open_index(TEST_FILE_NAME, INDEX_NO)
    try:
        hdr = ih.file_hdr
        assert hdr.num_pages == IX_INIT_NUM_PAGES
        assert hdr.root_page == IX_INIT_ROOT_PAGE
        assert hdr.first_leaf == IX_INIT_ROOT_PAGE
        assert hdr.last_leaf == IX_INIT_ROOT_PAGE
        assert hdr.col_type == ColType.INT
        assert hdr.col_len == 4
        assert hdr.btree_order == btree_order_for(4)
        assert hdr.keys_size == (hdr.btree_order + 1) * hdr.col_len
        assert ih.is_empty()
    finally:
        manager.close_index(ih)


def test_fresh_leaf_links(manager):
    ih = manager.open_index(TEST_FILE_NAME, INDEX_NO)
    try:
        header = ih.fetch_node(IX_LEAF_HEADER_PAGE)
        root = ih.fetch_node(IX_INIT_ROOT_PAGE)
        assert header.prev_leaf == IX_INIT_ROOT_PAGE
        assert header.next_leaf == IX_INIT_ROOT_PAGE
        assert root.prev_leaf == IX_LEAF_HEADER_PAGE
        assert root.next_leaf == IX_LEAF_HEADER_PAGE
        assert root.is_leaf and root.size == 0
    finally:
        manager.close_index(ih)


def test_entries_survive_close_and_reopen(manager):
    ih = manager.open_index(TEST_FILE_NAME, INDEX_NO)
    ih.file_hdr.btree_order = 3
    for key in range(1, 11):
        assert ih.insert_entry(_key(key), Rid(0, key))
    manager.close_index(ih)

    ih = manager.open_index(TEST_FILE_NAME, INDEX_NO)
    try:
        assert ih.file_hdr.btree_order == 3
        for key in range(1, 11):
            assert ih.get_value(_key(key)) == [Rid(0, key)]
        assert ih.get_value(_key(11)) == []
        scan = IxScan(ih, ih.leaf_begin(), ih.leaf_end())
        assert [rid.slot_no for rid in scan] == list(range(1, 11))
    finally:
        manager.close_index(ih)


def test_destroy_removes_file(manager):
    manager.destroy_index(TEST_FILE_NAME, INDEX_NO)
    assert not manager.exists(TEST_FILE_NAME, INDEX_NO)
    with pytest.raises(FileNotFoundError):
        manager.open_index(TEST_FILE_NAME, INDEX_NO)


def test_destroy_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        IxManager(tmp_path).destroy_index("missing", 0)


def test_create_twice_raises(manager):
    with pytest.raises(FileExistsError):
        manager.create_index(TEST_FILE_NAME, INDEX_NO, ColType.INT, 4)


def test_column_too_long(tmp_path):
    mgr = IxManager(tmp_path)
    with pytest.raises(InvalidColLengthError):
        mgr.create_index("t", 0, ColType.STRING, IX_MAX_COL_LEN + 1)
    assert not mgr.exists("t", 0)


def test_negative_index_number(tmp_path):
    with pytest.raises(ValueError):
        IxManager(tmp_path).create_index("t", -1, ColType.INT, 4)


def test_string_index_round_trip(tmp_path):
    mgr = IxManager(tmp_path)
    mgr.create_index("names", 2, ColType.STRING, 8)
    ih = mgr.open_index("names", 2)
    words = ["pear", "apple", "fig", "kiwi"]
    for slot, word in enumerate(words):
        assert ih.insert_entry(encode_key(word, ColType.STRING, 8), Rid(1, slot))
    mgr.close_index(ih)
    ih = mgr.open_index("names", 2)
    try:
        scan = IxScan(ih, ih.leaf_begin(), ih.leaf_end())
        ordered = [words[rid.slot_no] for rid in scan]
        assert ordered == sorted(words)
    finally:
        mgr.close_index(ih)