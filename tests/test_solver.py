# tests/test_solver.py
"""
Tests for monoflow.solver: solver selection, convergence, determinism,
termination bounds and the divergence guard.
"""

import logging

import pytest

from monoflow.config import SOLVER_ITERATIVE, SOLVER_WORKLIST, SOLVERS, AnalysisConfig
from monoflow.constprop import ConstantPropagation, CPFact, Value
from monoflow.errors import ConfigError, DivergenceError, MonoflowError
from monoflow.fact import SetFact
from monoflow.ir import Goto, IntLiteral, Invoke, InvokeExp, Return
from monoflow.livevar import LiveVariableAnalysis
from monoflow.solver import IterativeSolver, WorkListSolver, make_solver, solve
from tests.conftest import add, assign, counting_loop, int_vars, make_cfg


def _ring(k):
    """``k`` statements each using a distinct variable, closed into a loop."""
    vs = int_vars(" ".join(f"v{j}" for j in range(k)))
    stmts = [Invoke(InvokeExp("use", (v,))) for v in vs]
    stmts.append(Goto(stmts[0]))
    return make_cfg(stmts, params=vs), stmts, vs


class _FlipFlop(LiveVariableAnalysis):
    """Non-monotone: a variable is live exactly when it was not live after."""

    def __init__(self, var, config):
        super().__init__(config)
        self.var = var

    def transfer_node(self, stmt, fact):
        return SetFact() if self.var in fact else SetFact({self.var})


# ═══════════════════════════════════════════════════════════════════════════
#  Solver selection
# ═══════════════════════════════════════════════════════════════════════════

class TestMakeSolver:

    def test_default_is_iterative(self):
        solver = make_solver(ConstantPropagation())
        assert isinstance(solver, IterativeSolver)
        assert solver.analysis.config.id == "constprop"

    def test_worklist_option(self):
        analysis = LiveVariableAnalysis(AnalysisConfig.of("livevar", solver="worklist"))
        assert isinstance(make_solver(analysis), WorkListSolver)

    def test_unknown_solver_rejected_by_config(self):
        with pytest.raises(ConfigError):
            AnalysisConfig.of("livevar", solver="chaotic")

    @pytest.mark.parametrize("name,solver_cls", [
        (SOLVER_ITERATIVE, IterativeSolver),
        (SOLVER_WORKLIST, WorkListSolver),
    ])
    def test_every_configured_name_resolves(self, name, solver_cls):
        assert set(SOLVERS) == {SOLVER_ITERATIVE, SOLVER_WORKLIST}
        analysis = ConstantPropagation(AnalysisConfig.of("constprop", solver=name))
        solver = make_solver(analysis)
        assert type(solver) is solver_cls
        assert solver.analysis is analysis


# ═══════════════════════════════════════════════════════════════════════════
#  Results
# ═══════════════════════════════════════════════════════════════════════════

class TestSolveResult:

    def test_every_node_has_facts(self, constprop_any_solver):
        cfg, _, _ = counting_loop()
        result = solve(constprop_any_solver, cfg)
        for node in cfg.nodes:
            assert isinstance(result.get_in_fact(node), CPFact)
            assert isinstance(result.get_out_fact(node), CPFact)
        assert len(result.nodes()) == len(cfg.nodes)

    def test_statistics(self, livevar_any_solver):
        cfg, _, _ = counting_loop()
        result = solve(livevar_any_solver, cfg)
        assert result.converged
        assert result.iterations >= 1
        assert result.updates >= 1
        assert result.elapsed_seconds >= 0.0

    def test_iterative_straight_line_needs_two_passes(self):
        a, b, c = int_vars("a b c")
        cfg = make_cfg([assign(a, 1), assign(b, 2), add(c, a, b)])
        result = IterativeSolver(ConstantPropagation()).solve(cfg)
        assert result.iterations == 2
        # three statements plus exit
        assert result.updates == 4

    def test_backward_straight_line_needs_two_passes(self):
        a, b = int_vars("a b")
        cfg = make_cfg([add(b, a, IntLiteral(1)), Return(b)], params=[a])
        result = IterativeSolver(LiveVariableAnalysis()).solve(cfg)
        assert result.iterations == 2

    def test_boundary_fact_is_kept(self, constprop_any_solver):
        a, = int_vars("a")
        cfg = make_cfg([assign(a, 1)], params=[a])
        result = solve(constprop_any_solver, cfg)
        assert result.get_out_fact(cfg.entry) == CPFact({a: Value.nac()})
        assert result.get_in_fact(cfg.entry) == CPFact()

    def test_unknown_node_has_no_facts(self, livevar):
        a, = int_vars("a")
        result = solve(livevar, make_cfg([Return(a)]))
        stranger = Return(a)
        assert result.get_in_fact(stranger) is None
        assert result.get_out_fact(stranger) is None
        assert result.fact_at(stranger, before=False) is None

    def test_fact_at(self, livevar):
        a, = int_vars("a")
        s0 = Return(a)
        result = solve(livevar, make_cfg([s0]))
        assert result.fact_at(s0) == SetFact({a})
        assert result.fact_at(s0, before=False) == SetFact()

    def test_empty_body(self, constprop_any_solver):
        cfg = make_cfg([])
        result = solve(constprop_any_solver, cfg)
        assert result.get_in_fact(cfg.exit) == CPFact()
        assert result.converged

    def test_solver_is_reusable(self):
        solver = make_solver(LiveVariableAnalysis())
        cfg1, _, _ = counting_loop()
        cfg2, _, _ = counting_loop()
        first = solver.solve(cfg1)
        second = solver.solve(cfg2)
        assert first is not second
        assert first.facts_in.keys().isdisjoint(second.facts_in.keys())

    def test_logs_convergence(self, caplog, livevar):
        cfg, _, _ = counting_loop()
        with caplog.at_level(logging.INFO, logger="monoflow.solver"):
            solve(livevar, cfg)
        assert "livevar converged" in caplog.text


# ═══════════════════════════════════════════════════════════════════════════
#  Determinism and agreement
# ═══════════════════════════════════════════════════════════════════════════

class TestDeterminism:

    def test_same_input_same_result(self, constprop_any_solver, livevar_any_solver):
        cfg, _, _ = counting_loop()
        for analysis in (constprop_any_solver, livevar_any_solver):
            first = solve(analysis, cfg)
            second = solve(analysis, cfg)
            assert first.same_facts(second)

    @pytest.mark.parametrize("analysis_cls", [ConstantPropagation, LiveVariableAnalysis])
    def test_iterative_and_worklist_agree(self, analysis_cls):
        cfg, _, _ = counting_loop()
        iterative = solve(
            analysis_cls(AnalysisConfig.of(analysis_cls.ID, solver="iterative")), cfg)
        worklist = solve(
            analysis_cls(AnalysisConfig.of(analysis_cls.ID, solver="worklist")), cfg)
        assert iterative.same_facts(worklist)

    def test_agree_on_ring(self):
        cfg, _, _ = _ring(5)
        iterative = solve(LiveVariableAnalysis(), cfg)
        worklist = solve(
            LiveVariableAnalysis(AnalysisConfig.of("livevar", solver="worklist")), cfg)
        assert iterative.same_facts(worklist)


# ═══════════════════════════════════════════════════════════════════════════
#  Termination
# ═══════════════════════════════════════════════════════════════════════════

class TestTermination:

    @pytest.mark.parametrize("k", [1, 3, 8])
    def test_liveness_updates_bounded_by_height(self, livevar_any_solver, k):
        cfg, stmts, vs = _ring(k)
        result = solve(livevar_any_solver, cfg)
        height = k + 1
        assert result.updates <= len(cfg.nodes) * height
        for stmt in stmts:
            assert result.get_in_fact(stmt) == SetFact(vs)

    def test_constprop_updates_bounded_by_height(self, constprop_any_solver):
        cfg, _, variables = counting_loop()
        result = solve(constprop_any_solver, cfg)
        height = 2 * len(variables) + 1
        assert result.updates <= len(cfg.nodes) * height

    def test_iterative_passes_bounded(self, livevar):
        cfg, _, _ = _ring(6)
        result = IterativeSolver(livevar).solve(cfg)
        assert result.iterations <= len(cfg.nodes) * 7 + 1


class TestDivergence:

    @pytest.mark.parametrize("solver", ["iterative", "worklist"])
    def test_non_monotone_analysis_raises(self, solver):
        x, = int_vars("x")
        s0 = Goto()
        s0.target = s0
        cfg = make_cfg([s0])
        config = AnalysisConfig.of("flipflop", solver=solver, max_iterations=20)
        with pytest.raises(DivergenceError) as excinfo:
            solve(_FlipFlop(x, config), cfg)
        err = excinfo.value
        assert err.limit == 20
        assert err.analysis_id == "flipflop"
        assert "did not converge in 20 iterations" in str(err)
        assert isinstance(err, MonoflowError)
        assert isinstance(err, RuntimeError)

    def test_limit_large_enough_is_fine(self):
        cfg, _, _ = counting_loop()
        config = AnalysisConfig.of("constprop", max_iterations=50)
        result = solve(ConstantPropagation(config), cfg)
        assert result.converged
        assert result.iterations <= 50
