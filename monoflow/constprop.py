"""
monoflow.constprop
==================

Intraprocedural constant propagation over a flat integer lattice.

::

                 NAC
         /   /   |   \\   \\
      ... #-1   #0   #1  ...
         \\   \\   |   /   /
                UNDEF

Direction:   FORWARD
Meet:        per-variable flat meet (``meet_value``)
Boundary:    every int-like parameter is NAC
Transfer:    one rule per statement kind, see ``ConstantPropagation``

Only variables that can hold an ``int`` (byte, short, int, char,
boolean) are tracked.  Constants are 32-bit two's complement integers and
folding follows ``int`` arithmetic: results wrap, shift distances are
masked to five bits, division truncates toward zero.  Division or
remainder by a constant zero folds to NAC.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Type

from monoflow.analysis import DataflowAnalysis, Direction
from monoflow.config import AnalysisConfig
from monoflow.errors import AnalysisError, InternalError
from monoflow.fact import MapFact
from monoflow.ir import (
    ArithmeticExp,
    ArithmeticOp,
    AssignLiteral,
    Binary,
    BinaryExp,
    BitwiseExp,
    BitwiseOp,
    ConditionExp,
    ConditionOp,
    Copy,
    Exp,
    IntLiteral,
    Invoke,
    ShiftExp,
    ShiftOp,
    Stmt,
    Unary,
    Var,
    can_hold_int,
)

logger = logging.getLogger(__name__)


# ===========================================================================
# 32-BIT INT ARITHMETIC
# ===========================================================================

_MASK32 = 0xFFFFFFFF


def to_int32(n: int) -> int:
    """Wrap an arbitrary Python int to a signed 32-bit value."""
    n &= _MASK32
    return n - (1 << 32) if n & 0x80000000 else n


def _div(l: int, r: int) -> int:
    q = abs(l) // abs(r)
    return -q if (l < 0) != (r < 0) else q


def _rem(l: int, r: int) -> int:
    return l - r * _div(l, r)


_ARITHMETIC: Dict[enum.Enum, Callable[[int, int], int]] = {
    ArithmeticOp.ADD: lambda l, r: l + r,
    ArithmeticOp.SUB: lambda l, r: l - r,
    ArithmeticOp.MUL: lambda l, r: l * r,
    ArithmeticOp.DIV: _div,
    ArithmeticOp.REM: _rem,
}

_BITWISE: Dict[enum.Enum, Callable[[int, int], int]] = {
    BitwiseOp.OR: lambda l, r: l | r,
    BitwiseOp.AND: lambda l, r: l & r,
    BitwiseOp.XOR: lambda l, r: l ^ r,
}

_SHIFT: Dict[enum.Enum, Callable[[int, int], int]] = {
    ShiftOp.SHL: lambda l, r: l << (r & 31),
    ShiftOp.SHR: lambda l, r: l >> (r & 31),
    ShiftOp.USHR: lambda l, r: (l & _MASK32) >> (r & 31),
}

_CONDITION: Dict[enum.Enum, Callable[[int, int], int]] = {
    ConditionOp.EQ: lambda l, r: int(l == r),
    ConditionOp.NE: lambda l, r: int(l != r),
    ConditionOp.LT: lambda l, r: int(l < r),
    ConditionOp.GT: lambda l, r: int(l > r),
    ConditionOp.LE: lambda l, r: int(l <= r),
    ConditionOp.GE: lambda l, r: int(l >= r),
}

_FOLDERS: List[Tuple[Type[BinaryExp], Dict[enum.Enum, Callable[[int, int], int]]]] = [
    (ShiftExp, _SHIFT),
    (ConditionExp, _CONDITION),
    (BitwiseExp, _BITWISE),
    (ArithmeticExp, _ARITHMETIC),
]


def fold(exp: BinaryExp, l: int, r: int) -> int:
    """Compute ``l OP r`` for the operator of *exp*.

    Raises
    ------
    InternalError
        If *exp* is not one of the four binary families or its operator
        does not belong to its family.
    ZeroDivisionError
        For ``DIV``/``REM`` with ``r == 0``; callers decide the policy.
    """
    for family, table in _FOLDERS:
        if isinstance(exp, family):
            try:
                op = table[exp.op]
            except KeyError:
                raise InternalError(
                    f"operator {exp.op!r} is not a {family.__name__} operator"
                ) from None
            if table is _ARITHMETIC and r == 0 and exp.op in (
                ArithmeticOp.DIV, ArithmeticOp.REM,
            ):
                raise ZeroDivisionError(f"{exp}: divisor is zero")
            return to_int32(op(l, r))
    raise InternalError(f"unexpected binary expression kind: {type(exp).__name__}")


# ===========================================================================
# LATTICE VALUES
# ===========================================================================

class _Kind(enum.Enum):
    UNDEF = "UNDEF"
    CONSTANT = "CONSTANT"
    NAC = "NAC"


@dataclass(frozen=True)
class Value:
    """Element of the constant lattice: UNDEF, a constant, or NAC.

    Examples
    --------
    >>> Value.make_constant(3)
    #3
    >>> meet_value(Value.make_constant(3), Value.make_constant(4))
    NAC
    """

    kind: _Kind
    value: int = 0

    @classmethod
    def undef(cls) -> Value:
        return _UNDEF

    @classmethod
    def nac(cls) -> Value:
        return _NAC

    @classmethod
    def make_constant(cls, n: int) -> Value:
        return cls(_Kind.CONSTANT, to_int32(n))

    def is_undef(self) -> bool:
        return self.kind is _Kind.UNDEF

    def is_constant(self) -> bool:
        return self.kind is _Kind.CONSTANT

    def is_nac(self) -> bool:
        return self.kind is _Kind.NAC

    def get_constant(self) -> int:
        if not self.is_constant():
            raise AnalysisError(f"{self} is not a constant")
        return self.value

    def __str__(self) -> str:
        if self.kind is _Kind.CONSTANT:
            return f"#{self.value}"
        return self.kind.value

    __repr__ = __str__


_UNDEF = Value(_Kind.UNDEF)
_NAC = Value(_Kind.NAC)


def meet_value(v1: Value, v2: Value) -> Value:
    """Meet two values.  The order of the tests matters."""
    if v1.is_undef() or v2.is_nac():
        return v2
    if v1.is_nac() or v2.is_undef():
        return v1
    if v1.value == v2.value:
        return v1
    return _NAC


def value_leq(v1: Value, v2: Value) -> bool:
    if v1.is_undef() or v2.is_nac():
        return True
    return v1 == v2


class CPFact(MapFact[Var, Value]):
    """Variable → Value map.  Absent variables are UNDEF.

    Binding a variable to UNDEF removes it, so two facts describing the
    same state always compare equal.
    """

    __slots__ = ()

    def get(self, key: Var) -> Value:
        return self._map.get(key, _UNDEF)

    def update(self, key: Var, value: Value) -> bool:
        if value.is_undef():
            return self.remove(key) is not None
        return super().update(key, value)


# ===========================================================================
# EVALUATION
# ===========================================================================

def evaluate(exp: Exp, fact: CPFact) -> Value:
    """Abstract value of a literal or variable; anything else is NAC."""
    if isinstance(exp, IntLiteral):
        return Value.make_constant(exp.value)
    if isinstance(exp, Var):
        return fact.get(exp)
    return _NAC


def evaluate_binary(exp: BinaryExp, fact: CPFact) -> Value:
    v1 = evaluate(exp.operand1, fact)
    v2 = evaluate(exp.operand2, fact)
    if not v1.is_constant() or not v2.is_constant():
        return _NAC
    try:
        return Value.make_constant(fold(exp, v1.value, v2.value))
    except ZeroDivisionError:
        logger.debug("constant division by zero in '%s', folding to NAC", exp)
        return _NAC


# ===========================================================================
# ANALYSIS
# ===========================================================================

class ConstantPropagation(DataflowAnalysis[Stmt, CPFact]):
    """Forward constant propagation.

    Transfer rules (OUT starts as a copy of IN, x must hold an int):

    ========================  ==============================================
    ``x = m(...)``            x ↦ NAC
    ``x = y``                 x ↦ IN[y]
    ``x = literal``           x ↦ #literal (NAC for non-int literals)
    ``x = a OP b``            x ↦ fold(a, b) if both constant, else NAC
    ``x = -a``                x ↦ #-a if a constant, else IN[a]
    anything else             OUT = IN
    ========================  ==============================================
    """

    ID = "constprop"

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config or AnalysisConfig(self.ID))

    @property
    def direction(self) -> Direction:
        return Direction.FORWARD

    def new_boundary_fact(self, cfg) -> CPFact:
        fact = CPFact()
        for param in cfg.ir.get_params():
            if can_hold_int(param):
                fact.update(param, _NAC)
        return fact

    def new_initial_fact(self) -> CPFact:
        return CPFact()

    def meet_into(self, fact: CPFact, target: CPFact) -> None:
        for var, value in list(fact.items()):
            target.update(var, meet_value(value, target.get(var)))

    def transfer_node(self, stmt: Stmt, fact: CPFact) -> CPFact:
        out = fact.copy()
        if isinstance(stmt, Invoke):
            lhs = stmt.result
            if lhs is not None and can_hold_int(lhs):
                out.update(lhs, _NAC)
        elif isinstance(stmt, (Copy, AssignLiteral)):
            if can_hold_int(stmt.lvalue):
                out.update(stmt.lvalue, evaluate(stmt.rvalue, fact))
        elif isinstance(stmt, Binary):
            if can_hold_int(stmt.lvalue):
                out.update(stmt.lvalue, evaluate_binary(stmt.rvalue, fact))
        elif isinstance(stmt, Unary):
            if can_hold_int(stmt.lvalue):
                value = evaluate(stmt.rvalue.operand, fact)
                if value.is_constant():
                    value = Value.make_constant(-value.value)
                out.update(stmt.lvalue, value)
        return out

    def leq(self, a: CPFact, b: CPFact) -> bool:
        return all(value_leq(value, b.get(var)) for var, value in a.items())
