"""
monoflow.solver
===============

Direction-agnostic fixpoint solvers.

For a forward analysis the solvers compute the least solution of::

    IN[n]  = ⊓ { OUT[p] | p ∈ preds(n) }
    OUT[n] = transfer(n, IN[n])

and for a backward analysis the mirror image::

    OUT[n] = ⊓ { IN[s] | s ∈ succs(n) }
    IN[n]  = transfer(n, OUT[n])

The boundary node (``entry`` forward, ``exit`` backward) holds the
analysis' boundary fact on its flow-producing side and is never
re-transferred.

Iteration strategies
--------------------
``IterativeSolver``
    Round-robin passes over every node until a pass changes nothing.
    Facts written earlier in a pass are read by later nodes of the same
    pass, so a pass can carry a fact across several edges.
``WorkListSolver``
    Classic worklist: a node is revisited only after one of its flow
    predecessors produced a new fact.

Both produce the same fixpoint for monotone analyses; only the number of
iterations differs.  :func:`make_solver` picks one from the analysis'
``solver`` option.
"""

from __future__ import annotations

import abc
import logging
import time
from collections import deque
from typing import Any, Callable, Deque, Generic, List, NamedTuple, Set, TypeVar

from monoflow.analysis import DataflowAnalysis
from monoflow.config import SOLVER_ITERATIVE, SOLVER_WORKLIST
from monoflow.errors import DivergenceError
from monoflow.fact import DataflowResult

logger = logging.getLogger(__name__)

Node = TypeVar("Node")
Fact = TypeVar("Fact")


class _Flow(NamedTuple):
    """Direction-specific view of a CFG and a result store.

    ``sources`` are the neighbours whose facts are met into a node,
    ``sinks`` the neighbours that consume what the node produces.
    """

    boundary: Any
    sources: Callable[[Any], List[Any]]
    sinks: Callable[[Any], List[Any]]
    get_source_fact: Callable[[Any], Any]
    set_met_fact: Callable[[Any, Any], None]
    get_produced_fact: Callable[[Any], Any]
    set_produced_fact: Callable[[Any, Any], None]


class Solver(abc.ABC, Generic[Node, Fact]):
    """Base class of fixpoint solvers.

    A solver is bound to one analysis and may be reused for several CFGs;
    every :meth:`solve` works on a fresh :class:`DataflowResult`.
    """

    def __init__(self, analysis: DataflowAnalysis[Node, Fact]) -> None:
        self.analysis = analysis

    def solve(self, cfg) -> DataflowResult[Node, Fact]:
        """Run the analysis over *cfg* to fixpoint."""
        t0 = time.monotonic()
        result: DataflowResult[Node, Fact] = DataflowResult(
            direction=self.analysis.direction,
        )
        if self.analysis.is_forward():
            self._initialize_forward(cfg, result)
            flow = _Flow(
                boundary=cfg.entry,
                sources=cfg.preds_of,
                sinks=cfg.succs_of,
                get_source_fact=result.get_out_fact,
                set_met_fact=result.set_in_fact,
                get_produced_fact=result.get_out_fact,
                set_produced_fact=result.set_out_fact,
            )
        else:
            self._initialize_backward(cfg, result)
            flow = _Flow(
                boundary=cfg.exit,
                sources=cfg.succs_of,
                sinks=cfg.preds_of,
                get_source_fact=result.get_in_fact,
                set_met_fact=result.set_out_fact,
                get_produced_fact=result.get_in_fact,
                set_produced_fact=result.set_in_fact,
            )
        self._do_solve(cfg, result, flow)
        result.converged = True
        result.elapsed_seconds = time.monotonic() - t0
        logger.info(
            "%s converged: %d iterations, %d updates, %.3fs",
            self.analysis.ID or type(self.analysis).__name__,
            result.iterations,
            result.updates,
            result.elapsed_seconds,
        )
        return result

    # ----- initialisation ---------------------------------------------------

    def _initialize_forward(self, cfg, result: DataflowResult[Node, Fact]) -> None:
        for node in cfg.nodes:
            result.set_in_fact(node, self.analysis.new_initial_fact())
            result.set_out_fact(node, self.analysis.new_initial_fact())
        result.set_out_fact(cfg.entry, self.analysis.new_boundary_fact(cfg))

    def _initialize_backward(self, cfg, result: DataflowResult[Node, Fact]) -> None:
        for node in cfg.nodes:
            result.set_in_fact(node, self.analysis.new_initial_fact())
            result.set_out_fact(node, self.analysis.new_initial_fact())
        result.set_in_fact(cfg.exit, self.analysis.new_boundary_fact(cfg))

    # ----- shared step ------------------------------------------------------

    def _visit(self, node, flow: _Flow) -> bool:
        """Meet, transfer and store for one node; return ``True`` on change."""
        analysis = self.analysis
        met = analysis.new_initial_fact()
        for source in flow.sources(node):
            analysis.meet_into(flow.get_source_fact(source), met)
        flow.set_met_fact(node, met)
        produced = analysis.transfer_node(node, met)
        if produced == flow.get_produced_fact(node):
            return False
        flow.set_produced_fact(node, produced)
        return True

    def _check_limit(self, count: int) -> None:
        limit = self.analysis.config.max_iterations
        if count > limit:
            raise DivergenceError(self.analysis.config.id, limit)

    @abc.abstractmethod
    def _do_solve(self, cfg, result: DataflowResult[Node, Fact], flow: _Flow) -> None:
        ...


class IterativeSolver(Solver[Node, Fact]):
    """Round-robin solver.

    Forward analyses sweep ``cfg.nodes`` in order, backward analyses in
    reverse order.  Stops after the first pass in which no node changed.
    """

    def _do_solve(self, cfg, result: DataflowResult[Node, Fact], flow: _Flow) -> None:
        order = [n for n in cfg.nodes if n is not flow.boundary]
        if not self.analysis.is_forward():
            order.reverse()

        changed = True
        while changed:
            result.iterations += 1
            self._check_limit(result.iterations)
            changed_nodes = 0
            for node in order:
                if self._visit(node, flow):
                    changed_nodes += 1
            result.updates += changed_nodes
            changed = changed_nodes > 0
            logger.debug(
                "pass %d: %d of %d nodes changed",
                result.iterations, changed_nodes, len(order),
            )


class WorkListSolver(Solver[Node, Fact]):
    """Worklist solver seeded with every non-boundary node."""

    def _do_solve(self, cfg, result: DataflowResult[Node, Fact], flow: _Flow) -> None:
        order = [n for n in cfg.nodes if n is not flow.boundary]
        if not self.analysis.is_forward():
            order.reverse()
        worklist: Deque = deque(order)
        queued: Set[int] = {id(n) for n in order}

        while worklist:
            result.iterations += 1
            self._check_limit(result.iterations)
            node = worklist.popleft()
            queued.discard(id(node))
            if not self._visit(node, flow):
                continue
            result.updates += 1
            for sink in flow.sinks(node):
                if sink is flow.boundary or id(sink) in queued:
                    continue
                worklist.append(sink)
                queued.add(id(sink))
        logger.debug("worklist drained after %d visits", result.iterations)


_SOLVERS = {
    SOLVER_ITERATIVE: IterativeSolver,
    SOLVER_WORKLIST: WorkListSolver,
}


def make_solver(analysis: DataflowAnalysis[Node, Fact]) -> Solver[Node, Fact]:
    """Return the solver named by ``analysis.config.solver``.

    The name was validated when the config was built.
    """
    return _SOLVERS[analysis.config.solver](analysis)


def solve(analysis: DataflowAnalysis[Node, Fact], cfg) -> DataflowResult[Node, Fact]:
    """Convenience: ``make_solver(analysis).solve(cfg)``."""
    return make_solver(analysis).solve(cfg)
