"""
monoflow.analysis
=================

The contract every dataflow analysis implements.

Theory
------
An analysis is defined by:

1.  A **direction**: *forward* (facts flow along control-flow edges) or
    *backward* (against them).
2.  A **boundary fact** for the entry (forward) or exit (backward) node.
3.  An **initial fact**, the bottom of the lattice, for every other
    position.
4.  A **meet** ``meet_into(fact, target)`` that folds ``fact`` into
    ``target``.  It must be commutative, associative and idempotent.
5.  A **transfer function** ``transfer_node(node, fact)`` returning a
    *new* fact for the other side of ``node``.  It must be monotone and
    must not mutate its argument.

Given a finite-height lattice and monotone meet/transfer, the solvers in
:mod:`monoflow.solver` reach the least fixpoint.
"""

from __future__ import annotations

import abc
import enum
from typing import Any, ClassVar, Generic, Sequence, TypeVar

from monoflow.config import AnalysisConfig

Node = TypeVar("Node")
Fact = TypeVar("Fact")


class Direction(enum.Enum):
    """Direction of dataflow propagation."""
    FORWARD = "forward"
    BACKWARD = "backward"


class DataflowAnalysis(abc.ABC, Generic[Node, Fact]):
    """Abstract base for all dataflow analyses.

    Subclasses implement:
      - ``direction``                FORWARD or BACKWARD
      - ``new_boundary_fact(cfg)``   fact at the entry/exit boundary
      - ``new_initial_fact()``       fact at every other position
      - ``meet_into(fact, target)``  fold ``fact`` into ``target``
      - ``transfer_node(node, fact)`` pure transfer function

    and optionally ``leq(a, b)`` for :func:`check_monotonicity`.
    """

    ID: ClassVar[str] = ""

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config

    # ── Subclass contract ────────────────────────────────────────────

    @property
    @abc.abstractmethod
    def direction(self) -> Direction:
        ...

    def is_forward(self) -> bool:
        return self.direction is Direction.FORWARD

    @abc.abstractmethod
    def new_boundary_fact(self, cfg: Any) -> Fact:
        """Fact at the entry (forward) or exit (backward) node."""
        ...

    @abc.abstractmethod
    def new_initial_fact(self) -> Fact:
        """Fresh bottom fact."""
        ...

    @abc.abstractmethod
    def meet_into(self, fact: Fact, target: Fact) -> None:
        """Mutate *target* into ``meet(target, fact)``."""
        ...

    @abc.abstractmethod
    def transfer_node(self, node: Node, fact: Fact) -> Fact:
        """Return the fact on the far side of *node*.

        For forward analyses *fact* is IN and the result is OUT; backward
        analyses receive OUT and return IN.  *fact* is left untouched.
        """
        ...

    def leq(self, a: Fact, b: Fact) -> bool:
        """Partial order ``a ⊑ b``."""
        raise NotImplementedError(f"leq() not implemented for {type(self).__name__}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config})"


def check_monotonicity(
    analysis: DataflowAnalysis[Node, Fact],
    node: Node,
    samples: Sequence[Fact],
) -> bool:
    """Check that ``analysis.transfer_node(node, ·)`` is monotone on *samples*.

    For every pair ``(a, b)`` in *samples* where ``a ⊑ b``, verifies
    that ``transfer(a) ⊑ transfer(b)``.

    This is a development/debugging utility; it cannot prove monotonicity
    in general, only detect violations.
    """
    for a in samples:
        for b in samples:
            if analysis.leq(a, b):
                fa = analysis.transfer_node(node, a)
                fb = analysis.transfer_node(node, b)
                if not analysis.leq(fa, fb):
                    return False
    return True
