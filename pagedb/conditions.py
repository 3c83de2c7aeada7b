"""Column references, literal values and comparison conditions of queries."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from pagedb.ix_defs import ColType, encode_key, ix_compare


class StringOverflowError(ValueError):
    """A string value is longer than its column."""

    def __init__(self) -> None:
        super().__init__("String is too long")


@dataclass(frozen=True, order=True)
class TabCol:
    """A column named by table and column; ordered by table, then column."""

    tab_name: str
    col_name: str


@dataclass
class Value:
    """A typed literal, with its column-width encoding once ``init_raw`` ran."""

    type: ColType
    value: int | float | str
    raw: bytes | None = None

    def init_raw(self, length: int) -> None:
        """Encode the value into ``length`` bytes, stored in ``raw``."""
        if self.raw is not None:
            raise ValueError("raw encoding is already initialised")
        if self.type == ColType.STRING:
            text = self.value.encode() if isinstance(self.value, str) else bytes(self.value)
            if length < len(text):
                raise StringOverflowError()
            self.raw = text.ljust(length, b"\0")
        else:
            self.raw = encode_key(self.value, self.type, length)


class CompOp(Enum):
    """Comparison operators of a condition."""

    EQ = "="
    NE = "<>"
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    def swapped(self) -> CompOp:
        """Operator that holds once the two operands change sides."""
        return _SWAPPED[self]

    def holds(self, cmp: int) -> bool:
        """Whether the operator holds for a three-way comparison result."""
        if self is CompOp.EQ:
            return cmp == 0
        if self is CompOp.NE:
            return cmp != 0
        if self is CompOp.LT:
            return cmp < 0
        if self is CompOp.GT:
            return cmp > 0
        if self is CompOp.LE:
            return cmp <= 0
        return cmp >= 0


_SWAPPED = {
    CompOp.EQ: CompOp.EQ,
    CompOp.NE: CompOp.NE,
    CompOp.LT: CompOp.GT,
    CompOp.GT: CompOp.LT,
    CompOp.LE: CompOp.GE,
    CompOp.GE: CompOp.LE,
}


@dataclass
class Condition:
    """``lhs_col op rhs``, where the right side is a column or a value."""

    lhs_col: TabCol
    op: CompOp
    rhs_col: TabCol | None = None
    rhs_val: Value | None = None

    def __post_init__(self) -> None:
        if (self.rhs_col is None) == (self.rhs_val is None):
            raise ValueError("a condition needs exactly one of rhs_col and rhs_val")

    @property
    def is_rhs_val(self) -> bool:
        """True when the right-hand side is a value rather than a column."""
        return self.rhs_val is not None


@dataclass
class SetClause:
    """``lhs = rhs`` in an update."""

    lhs: TabCol
    rhs: Value


def evaluate(op: CompOp, lhs: bytes, rhs: bytes, col_type: ColType, col_len: int) -> bool:
    """Compare two encoded operands of one column type with ``op``."""
    return op.holds(ix_compare(lhs, rhs, col_type, col_len))


def pop_conds(conds: list[Condition], tab_names: Sequence[str]) -> list[Condition]:
    """Take out of ``conds`` every condition that only refers to ``tab_names``.

    The taken conditions are returned in their original order; the rest stay
    in ``conds``.
    """
    tables = set(tab_names)

    def solved(cond: Condition) -> bool:
        if cond.lhs_col.tab_name not in tables:
            return False
        return cond.is_rhs_val or cond.rhs_col.tab_name in tables

    taken = [cond for cond in conds if solved(cond)]
    conds[:] = [cond for cond in conds if not solved(cond)]
    return taken