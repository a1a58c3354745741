# tests/conftest.py
"""
Shared helpers and fixtures for the monoflow test-suite.

Test modules import the builders directly (``from tests.conftest import
...``); pytest picks up the fixtures automatically.
"""

from typing import List, Optional, Sequence

import pytest

from monoflow.cfg import build_cfg
from monoflow.config import AnalysisConfig
from monoflow.constprop import ConstantPropagation
from monoflow.ir import (
    IR,
    ArithmeticExp,
    ArithmeticOp,
    AssignLiteral,
    Binary,
    ClassType,
    ConditionExp,
    ConditionOp,
    Copy,
    Goto,
    If,
    IntLiteral,
    PrimitiveType,
    Return,
    Stmt,
    Var,
)
from monoflow.livevar import LiveVariableAnalysis


# ── Variable builders ───────────────────────────────────────────

def int_var(name: str) -> Var:
    return Var(name, PrimitiveType.INT)


def int_vars(names: str) -> List[Var]:
    """``int_vars("a b c")`` → three fresh int variables."""
    return [int_var(n) for n in names.split()]


def obj_var(name: str, cls: str = "java.lang.Object") -> Var:
    return Var(name, ClassType(cls))


# ── Statement builders ──────────────────────────────────────────

def assign(var: Var, n: int) -> AssignLiteral:
    return AssignLiteral(var, IntLiteral(n))


def add(lhs: Var, a, b) -> Binary:
    return Binary(lhs, ArithmeticExp(ArithmeticOp.ADD, a, b))


def lt(a, b) -> ConditionExp:
    return ConditionExp(ConditionOp.LT, a, b)


def make_ir(stmts: Sequence[Stmt], params: Optional[Sequence[Var]] = None,
            name: str = "m") -> IR:
    return IR(name, params or [], stmts)


def make_cfg(stmts: Sequence[Stmt], params: Optional[Sequence[Var]] = None):
    return build_cfg(make_ir(stmts, params))


def counting_loop():
    """
    ::

        0: i = 0
        1: if (i < n) goto 3
        2: goto 6
        3: t = i + 1
        4: i = t
        5: goto 1
        6: return i

    Returns ``(cfg, stmts, (i, n, t))``.
    """
    i, n, t = int_vars("i n t")
    s0 = assign(i, 0)
    s1 = If(lt(i, n))
    s2 = Goto()
    s3 = add(t, i, IntLiteral(1))
    s4 = Copy(i, t)
    s5 = Goto(s1)
    s6 = Return(i)
    s1.target = s3
    s2.target = s6
    stmts = [s0, s1, s2, s3, s4, s5, s6]
    return make_cfg(stmts, params=[n]), stmts, (i, n, t)


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def constprop():
    return ConstantPropagation()


@pytest.fixture
def livevar():
    return LiveVariableAnalysis()


@pytest.fixture(params=["iterative", "worklist"])
def solver_name(request):
    return request.param


@pytest.fixture
def constprop_any_solver(solver_name):
    return ConstantPropagation(AnalysisConfig.of("constprop", solver=solver_name))


@pytest.fixture
def livevar_any_solver(solver_name):
    return LiveVariableAnalysis(AnalysisConfig.of("livevar", solver=solver_name))
