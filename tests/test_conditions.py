import struct

import pytest

from pagedb.conditions import (
    CompOp,
    Condition,
    SetClause,
    StringOverflowError,
    TabCol,
    Value,
    evaluate,
    pop_conds,
)
from pagedb.ix_defs import ColType, encode_key


def test_tabcol_ordering():
    cols = [TabCol("b", "a"), TabCol("a", "z"), TabCol("a", "b")]
    assert sorted(cols) == [TabCol("a", "b"), TabCol("a", "z"), TabCol("b", "a")]
    assert TabCol("t", "c") == TabCol("t", "c")


def test_int_raw_round_trip():
    val = Value(ColType.INT, 7)
    val.init_raw(4)
    assert struct.unpack("<i", val.raw)[0] == 7


def test_float_raw_round_trip():
    val = Value(ColType.FLOAT, 1.5)
    val.init_raw(4)
    assert struct.unpack("<f", val.raw)[0] == 1.5


def test_string_raw_is_zero_padded():
    val = Value(ColType.STRING, "ab")
    val.init_raw(4)
    assert val.raw == b"ab\0\0"


def test_string_overflow():
    val = Value(ColType.STRING, "abcdef")
    with pytest.raises(StringOverflowError):
        val.init_raw(3)
    assert val.raw is None


def test_int_with_wrong_length():
    with pytest.raises(ValueError):
        Value(ColType.INT, 1).init_raw(8)


def test_init_raw_twice():
    val = Value(ColType.INT, 3)
    val.init_raw(4)
    with pytest.raises(ValueError):
        val.init_raw(4)


def test_swapped_pairs():
    assert CompOp.LT.swapped() is CompOp.GT
    assert CompOp.LE.swapped() is CompOp.GE
    assert CompOp.EQ.swapped() is CompOp.EQ
    assert CompOp.NE.swapped() is CompOp.NE


@pytest.mark.parametrize("a, b", [(1, 2), (5, 5), (9, -3)])
@pytest.mark.parametrize("op", list(CompOp))
def test_swapped_is_involution(op, a, b):
    ka, kb = encode_key(a, ColType.INT, 4), encode_key(b, ColType.INT, 4)
    twice = op.swapped().swapped()
    assert evaluate(twice, ka, kb, ColType.INT, 4) == evaluate(op, ka, kb, ColType.INT, 4)


@pytest.mark.parametrize(
    "op, cmp, expected",
    [
        (CompOp.EQ, 0, True),
        (CompOp.EQ, 1, False),
        (CompOp.NE, -1, True),
        (CompOp.NE, 0, False),
        (CompOp.LT, -1, True),
        (CompOp.LT, 0, False),
        (CompOp.GT, 1, True),
        (CompOp.GT, 0, False),
        (CompOp.LE, 0, True),
        (CompOp.LE, 1, False),
        (CompOp.GE, 0, True),
        (CompOp.GE, -1, False),
    ],
)
def test_holds(op, cmp, expected):
    assert op.holds(cmp) is expected


@pytest.mark.parametrize("a, b", [(1, 2), (5, 5), (9, -3)])
@pytest.mark.parametrize("op", list(CompOp))
def test_evaluate_agrees_with_swapped(op, a, b):
    ka, kb = encode_key(a, ColType.INT, 4), encode_key(b, ColType.INT, 4)
    assert evaluate(op, ka, kb, ColType.INT, 4) == evaluate(op.swapped(), kb, ka, ColType.INT, 4)


def test_evaluate_strings():
    a = encode_key("abc", ColType.STRING, 6)
    b = encode_key("abd", ColType.STRING, 6)
    assert evaluate(CompOp.LT, a, b, ColType.STRING, 6)
    assert not evaluate(CompOp.EQ, a, b, ColType.STRING, 6)


def test_condition_needs_one_rhs():
    with pytest.raises(ValueError):
        Condition(TabCol("a", "x"), CompOp.EQ)
    with pytest.raises(ValueError):
        Condition(TabCol("a", "x"), CompOp.EQ, TabCol("b", "y"), Value(ColType.INT, 1))


def test_is_rhs_val():
    by_val = Condition(TabCol("a", "x"), CompOp.EQ, rhs_val=Value(ColType.INT, 1))
    by_col = Condition(TabCol("a", "x"), CompOp.EQ, rhs_col=TabCol("b", "y"))
    assert by_val.is_rhs_val
    assert not by_col.is_rhs_val


def test_pop_conds():
    c1 = Condition(TabCol("a", "x"), CompOp.EQ, rhs_val=Value(ColType.INT, 1))
    c2 = Condition(TabCol("a", "x"), CompOp.LT, rhs_col=TabCol("b", "y"))
    c3 = Condition(TabCol("b", "y"), CompOp.GT, rhs_val=Value(ColType.INT, 2))
    c4 = Condition(TabCol("a", "x"), CompOp.NE, rhs_col=TabCol("a", "z"))
    conds = [c1, c2, c3, c4]

    first = pop_conds(conds, ["a"])
    assert first == [c1, c4]
    assert conds == [c2, c3]

    second = pop_conds(conds, ["a", "b"])
    assert second == [c2, c3]
    assert conds == []


def test_set_clause_holds_value():
    clause = SetClause(TabCol("", "name"), Value(ColType.STRING, "bob"))
    clause.rhs.init_raw(5)
    assert clause.rhs.raw == b"bob\0\0"
    assert clause.lhs.col_name == "name"