"""
monoflow.cfg
============

Statement-level control flow graphs.

Every statement of an :class:`~monoflow.ir.IR` is one node.  Two synthetic
:class:`~monoflow.ir.Nop` nodes, ``entry`` and ``exit``, bracket the body.
The solvers only use the query half of this module (``nodes``, ``entry``,
``exit``, :meth:`CFG.preds_of`, :meth:`CFG.succs_of`, ``ir``); the builder
is a straight-line + jump builder and performs no exceptional-flow
modelling.

Public API
----------
    EdgeKind    - classification of an edge
    CFGEdge     - a directed edge between two statements
    CFG         - the graph for one IR
    build_cfg   - build a CFG from an IR

Typical usage::

    from monoflow.cfg import build_cfg

    cfg = build_cfg(ir)
    for node in cfg.nodes:
        print(node, "->", cfg.succs_of(node))
"""

from __future__ import annotations

import enum
from typing import Dict, Iterator, List, Optional

from monoflow.ir import IR, Goto, If, Nop, Return, Stmt

# ---------------------------------------------------------------------------
# Edge kinds
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    ENTRY = "entry"
    FALL_THROUGH = "fall-through"
    IF_TRUE = "if-true"
    IF_FALSE = "if-false"
    GOTO = "goto"
    RETURN = "return"


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------

class CFGEdge:
    """A directed edge in the CFG.

    Attributes
    ----------
    src : Stmt
    dst : Stmt
    kind : EdgeKind
    """

    __slots__ = ("src", "dst", "kind")

    def __init__(
        self,
        src: Stmt,
        dst: Stmt,
        kind: EdgeKind = EdgeKind.FALL_THROUGH,
    ) -> None:
        self.src = src
        self.dst = dst
        self.kind = kind

    def __repr__(self) -> str:
        return f"CFGEdge({self.src!r} -> {self.dst!r}, kind={self.kind.value!r})"

    def __hash__(self) -> int:
        return hash((id(self.src), id(self.dst), self.kind))

    def __eq__(self, other) -> bool:
        if isinstance(other, CFGEdge):
            return (
                self.src is other.src
                and self.dst is other.dst
                and self.kind == other.kind
            )
        return NotImplemented


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------

class CFG:
    """Control flow graph over the statements of one IR.

    Attributes
    ----------
    ir : IR
        The analysed unit; ``ir.params`` are its formal parameters.
    entry : Nop
        Synthetic entry node.
    exit : Nop
        Synthetic exit node.
    nodes : list[Stmt]
        All nodes in insertion order, ``entry`` first and ``exit`` last once
        the graph is built.
    edges : list[CFGEdge]
    """

    def __init__(self, ir: IR) -> None:
        self.ir = ir
        self.entry = Nop()
        self.entry.index = -1
        self.exit = Nop()
        self.exit.index = len(ir)
        self.nodes: List[Stmt] = []
        self.edges: List[CFGEdge] = []
        self._in: Dict[int, List[CFGEdge]] = {}
        self._out: Dict[int, List[CFGEdge]] = {}

    # ----- graph mutation ---------------------------------------------------

    def add_node(self, node: Stmt) -> Stmt:
        """Register *node* in this CFG and return it."""
        if id(node) not in self._in:
            self.nodes.append(node)
            self._in[id(node)] = []
            self._out[id(node)] = []
        return node

    def add_edge(
        self,
        src: Stmt,
        dst: Stmt,
        kind: EdgeKind = EdgeKind.FALL_THROUGH,
    ) -> CFGEdge:
        """Create an edge, register it, and wire up both adjacency lists."""
        self.add_node(src)
        self.add_node(dst)
        e = CFGEdge(src, dst, kind=kind)
        self.edges.append(e)
        self._out[id(src)].append(e)
        self._in[id(dst)].append(e)
        return e

    # ----- queries ----------------------------------------------------------

    def preds_of(self, node: Stmt) -> List[Stmt]:
        return [e.src for e in self._in[id(node)]]

    def succs_of(self, node: Stmt) -> List[Stmt]:
        return [e.dst for e in self._out[id(node)]]

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return (
            f"CFG(ir={self.ir.name!r}, nodes={len(self.nodes)}, "
            f"edges={len(self.edges)})"
        )


# ===========================================================================
# CFG BUILDER
# ===========================================================================

def build_cfg(ir: IR) -> CFG:
    """Build the statement-level CFG of *ir*.

    * ``entry`` flows into the first statement (or straight to ``exit``
      for an empty body);
    * ``Goto`` jumps to its target only;
    * ``If`` jumps to its target and falls through;
    * ``Return`` flows to ``exit``;
    * any other statement falls through, the last one into ``exit``.

    Raises
    ------
    ValueError
        If a jump has no target or targets a statement outside *ir*.
    """
    cfg = CFG(ir)
    cfg.add_node(cfg.entry)
    for stmt in ir.stmts:
        cfg.add_node(stmt)
    cfg.add_node(cfg.exit)

    stmts = ir.stmts
    members = {id(s) for s in stmts}

    def _next(i: int) -> Stmt:
        return stmts[i + 1] if i + 1 < len(stmts) else cfg.exit

    def _target(stmt: Stmt) -> Stmt:
        target: Optional[Stmt] = stmt.target  # type: ignore[attr-defined]
        if target is None or id(target) not in members:
            raise ValueError(f"jump {stmt!r} has no target inside {ir.name!r}")
        return target

    cfg.add_edge(cfg.entry, stmts[0] if stmts else cfg.exit, EdgeKind.ENTRY)
    for i, stmt in enumerate(stmts):
        if isinstance(stmt, Goto):
            cfg.add_edge(stmt, _target(stmt), EdgeKind.GOTO)
        elif isinstance(stmt, If):
            cfg.add_edge(stmt, _target(stmt), EdgeKind.IF_TRUE)
            cfg.add_edge(stmt, _next(i), EdgeKind.IF_FALSE)
        elif isinstance(stmt, Return):
            cfg.add_edge(stmt, cfg.exit, EdgeKind.RETURN)
        else:
            cfg.add_edge(stmt, _next(i), EdgeKind.FALL_THROUGH)
    return cfg
