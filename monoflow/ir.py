"""
monoflow.ir
===========

A minimal three-address intermediate representation.

The dataflow core only *consumes* this model; it never builds statements
itself.  The classes here are the smallest rendition of the contracts
the analyses rely on:

* every :class:`Var` has a declared :class:`Type`;
* every :class:`Stmt` exposes an optional definition (:meth:`Stmt.get_def`)
  and the list of right-value operands it reads (:meth:`Stmt.get_uses`,
  nested sub-expressions included);
* statements and expressions form closed kind sets.

Expression kinds
----------------
    Literals            IntLiteral, LongLiteral, StringLiteral, NullLiteral
    Variable            Var
    Binary              ArithmeticExp, BitwiseExp, ShiftExp, ConditionExp
    Unary               NegExp
    Other               InvokeExp, InstanceFieldAccess, StaticFieldAccess,
                        ArrayAccess

Statement kinds
---------------
    Invoke, Copy, AssignLiteral, Binary, Unary, and the "other" kinds
    Nop, Return, If, Goto, LoadField, StoreField, LoadArray, StoreArray.

Statements hash and compare by identity: they are graph nodes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union


# ===========================================================================
# TYPES
# ===========================================================================

class Type:
    """Base class of declared types."""


class PrimitiveType(Type, enum.Enum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    CHAR = "char"
    BOOLEAN = "boolean"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"

    def __str__(self) -> str:
        return self.value


_INT_LIKE = frozenset({
    PrimitiveType.BYTE,
    PrimitiveType.SHORT,
    PrimitiveType.INT,
    PrimitiveType.CHAR,
    PrimitiveType.BOOLEAN,
})


@dataclass(frozen=True)
class ClassType(Type):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType(Type):
    element: Type

    def __str__(self) -> str:
        return f"{self.element}[]"


# ===========================================================================
# EXPRESSIONS
# ===========================================================================

class Exp:
    """Base class of all expressions."""

    def get_uses(self) -> List[Exp]:
        """Right-value sub-expressions read when evaluating this expression."""
        return []


class Literal(Exp):
    """Base class of literals."""


@dataclass(frozen=True)
class IntLiteral(Literal):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class LongLiteral(Literal):
    value: int

    def __str__(self) -> str:
        return f"{self.value}L"


@dataclass(frozen=True)
class StringLiteral(Literal):
    value: str

    def __str__(self) -> str:
        return f'"{self.value}"'


@dataclass(frozen=True)
class NullLiteral(Literal):
    def __str__(self) -> str:
        return "null"


@dataclass(eq=False, repr=False)
class Var(Exp):
    """A local variable or parameter of the analysed unit.

    Two ``Var`` objects are the same variable only if they are the same
    object.
    """

    name: str
    type: Type

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Var({self.name}: {self.type})"


def can_hold_int(var: Var) -> bool:
    """Return ``True`` if *var* is tracked by constant propagation."""
    return isinstance(var.type, PrimitiveType) and var.type in _INT_LIKE


Operand = Union[Var, IntLiteral]


# ---------- binary families -------------------------------------------------

class ArithmeticOp(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"


class BitwiseOp(enum.Enum):
    OR = "|"
    AND = "&"
    XOR = "^"


class ShiftOp(enum.Enum):
    SHL = "<<"
    SHR = ">>"
    USHR = ">>>"


class ConditionOp(enum.Enum):
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="


@dataclass(frozen=True, eq=False)
class BinaryExp(Exp):
    """``operand1 OP operand2``; concrete families fix the operator enum."""

    op: enum.Enum
    operand1: Operand
    operand2: Operand

    def get_uses(self) -> List[Exp]:
        return [self.operand1, self.operand2]

    def __str__(self) -> str:
        return f"{self.operand1} {self.op.value} {self.operand2}"


class ArithmeticExp(BinaryExp):
    op: ArithmeticOp


class BitwiseExp(BinaryExp):
    op: BitwiseOp


class ShiftExp(BinaryExp):
    op: ShiftOp


class ConditionExp(BinaryExp):
    op: ConditionOp


# ---------- unary -----------------------------------------------------------

@dataclass(frozen=True, eq=False)
class NegExp(Exp):
    operand: Operand

    def get_uses(self) -> List[Exp]:
        return [self.operand]

    def __str__(self) -> str:
        return f"-{self.operand}"


# ---------- other -----------------------------------------------------------

@dataclass(frozen=True, eq=False)
class InvokeExp(Exp):
    method: str
    args: Sequence[Var] = ()

    def get_uses(self) -> List[Exp]:
        return list(self.args)

    def __str__(self) -> str:
        return f"{self.method}({', '.join(map(str, self.args))})"


@dataclass(frozen=True, eq=False)
class InstanceFieldAccess(Exp):
    base: Var
    field_name: str

    def get_uses(self) -> List[Exp]:
        return [self.base]

    def __str__(self) -> str:
        return f"{self.base}.{self.field_name}"


@dataclass(frozen=True, eq=False)
class StaticFieldAccess(Exp):
    owner: str
    field_name: str

    def __str__(self) -> str:
        return f"{self.owner}.{self.field_name}"


@dataclass(frozen=True, eq=False)
class ArrayAccess(Exp):
    base: Var
    index: Operand

    def get_uses(self) -> List[Exp]:
        return [self.base, self.index]

    def __str__(self) -> str:
        return f"{self.base}[{self.index}]"


FieldAccess = Union[InstanceFieldAccess, StaticFieldAccess]
LValue = Union[Var, InstanceFieldAccess, StaticFieldAccess, ArrayAccess]


def _flatten(exps: Sequence[Exp]) -> List[Exp]:
    """Nested operands first, then the expression itself (depth-first)."""
    out: List[Exp] = []
    for exp in exps:
        out.extend(_flatten(exp.get_uses()))
        out.append(exp)
    return out


# ===========================================================================
# STATEMENTS
# ===========================================================================

@dataclass(eq=False, repr=False)
class Stmt:
    """Base class of statements.  ``index`` is assigned by :class:`IR`."""

    index: int = field(default=-1, init=False, repr=False)

    def get_def(self) -> Optional[LValue]:
        return None

    def _operands(self) -> List[Exp]:
        return []

    def get_uses(self) -> List[Exp]:
        return _flatten(self._operands())

    def __repr__(self) -> str:
        return f"{self.index}@{self}"


@dataclass(eq=False, repr=False)
class Nop(Stmt):
    def __str__(self) -> str:
        return "nop"


@dataclass(eq=False, repr=False)
class _Assign(Stmt):
    lvalue: LValue
    rvalue: Exp

    def get_def(self) -> Optional[LValue]:
        return self.lvalue

    def _operands(self) -> List[Exp]:
        return [self.rvalue]

    def __str__(self) -> str:
        return f"{self.lvalue} = {self.rvalue}"


@dataclass(eq=False, repr=False)
class Copy(_Assign):
    """``x = y``"""

    lvalue: Var
    rvalue: Var


@dataclass(eq=False, repr=False)
class AssignLiteral(_Assign):
    """``x = literal``"""

    lvalue: Var
    rvalue: Literal


@dataclass(eq=False, repr=False)
class Binary(_Assign):
    """``x = a OP b``"""

    lvalue: Var
    rvalue: BinaryExp


@dataclass(eq=False, repr=False)
class Unary(_Assign):
    """``x = -a``"""

    lvalue: Var
    rvalue: NegExp


@dataclass(eq=False, repr=False)
class LoadField(_Assign):
    """``x = o.f`` / ``x = C.f``"""

    lvalue: Var
    rvalue: FieldAccess


@dataclass(eq=False, repr=False)
class StoreField(_Assign):
    """``o.f = x`` / ``C.f = x``"""

    lvalue: FieldAccess
    rvalue: Var

    def _operands(self) -> List[Exp]:
        # the access itself reads its base
        return [self.rvalue, self.lvalue]


@dataclass(eq=False, repr=False)
class LoadArray(_Assign):
    """``x = a[i]``"""

    lvalue: Var
    rvalue: ArrayAccess


@dataclass(eq=False, repr=False)
class StoreArray(_Assign):
    """``a[i] = x``"""

    lvalue: ArrayAccess
    rvalue: Var

    def _operands(self) -> List[Exp]:
        return [self.rvalue, self.lvalue]


@dataclass(eq=False, repr=False)
class Invoke(Stmt):
    """``[result =] method(args)``"""

    invoke_exp: InvokeExp
    result: Optional[Var] = None

    def get_def(self) -> Optional[LValue]:
        return self.result

    def _operands(self) -> List[Exp]:
        return [self.invoke_exp]

    def __str__(self) -> str:
        if self.result is None:
            return str(self.invoke_exp)
        return f"{self.result} = {self.invoke_exp}"


@dataclass(eq=False, repr=False)
class Return(Stmt):
    value: Optional[Var] = None

    def _operands(self) -> List[Exp]:
        return [] if self.value is None else [self.value]

    def __str__(self) -> str:
        return "return" if self.value is None else f"return {self.value}"


@dataclass(eq=False, repr=False)
class Goto(Stmt):
    """Unconditional jump.  ``target`` may be bound after construction."""

    target: Optional[Stmt] = None

    def __str__(self) -> str:
        return f"goto {self.target.index if self.target else '?'}"


@dataclass(eq=False, repr=False)
class If(Stmt):
    """``if (cond) goto target``; falls through otherwise."""

    condition: ConditionExp
    target: Optional[Stmt] = None

    def _operands(self) -> List[Exp]:
        return [self.condition]

    def __str__(self) -> str:
        where = self.target.index if self.target else "?"
        return f"if ({self.condition}) goto {where}"


# ===========================================================================
# ANALYSED UNIT
# ===========================================================================

class IR:
    """The body of one method: parameters and a statement sequence."""

    def __init__(
        self,
        name: str,
        params: Sequence[Var],
        stmts: Sequence[Stmt],
    ) -> None:
        self.name = name
        self.params: List[Var] = list(params)
        self.stmts: List[Stmt] = list(stmts)
        for i, stmt in enumerate(self.stmts):
            stmt.index = i

    def get_params(self) -> List[Var]:
        return list(self.params)

    def __iter__(self):
        return iter(self.stmts)

    def __len__(self) -> int:
        return len(self.stmts)

    def __repr__(self) -> str:
        return f"IR({self.name!r}, params={len(self.params)}, stmts={len(self.stmts)})"
