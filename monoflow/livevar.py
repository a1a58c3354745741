"""
monoflow.livevar
================

Classic live variable analysis.

Direction:   BACKWARD
Meet:        union (may analysis)
Lattice:     ℘(Var)
Transfer:    IN = (OUT - {def}) ∪ uses

"Is the value of variable x read along *some* path starting at p
before x is redefined?"
"""

from __future__ import annotations

from typing import Optional

from monoflow.analysis import DataflowAnalysis, Direction
from monoflow.config import AnalysisConfig
from monoflow.fact import SetFact
from monoflow.ir import Stmt, Var


class LiveVariableAnalysis(DataflowAnalysis[Stmt, SetFact[Var]]):
    """Backward may-analysis over sets of variables.

    Only plain variables are defined or used: an array element or field
    on the left-hand side kills nothing, and literals or access
    expressions among the uses contribute only the variables they
    contain.
    """

    ID = "livevar"

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config or AnalysisConfig(self.ID))

    @property
    def direction(self) -> Direction:
        return Direction.BACKWARD

    def new_boundary_fact(self, cfg) -> SetFact[Var]:
        return SetFact()

    def new_initial_fact(self) -> SetFact[Var]:
        return SetFact()

    def meet_into(self, fact: SetFact[Var], target: SetFact[Var]) -> None:
        target.union(fact)

    def transfer_node(self, stmt: Stmt, fact: SetFact[Var]) -> SetFact[Var]:
        live = fact.copy()
        defined = stmt.get_def()
        if isinstance(defined, Var):
            live.remove(defined)
        for use in stmt.get_uses():
            if isinstance(use, Var):
                live.add(use)
        return live

    def leq(self, a: SetFact[Var], b: SetFact[Var]) -> bool:
        return a.frozen() <= b.frozen()
