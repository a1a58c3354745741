"""
monoflow: Monotone Dataflow Analysis Engine
===========================================

A direction-agnostic fixpoint solver over statement-level control flow
graphs, driven by a pluggable lattice-and-transfer contract, with two
ready-made analyses.

Core modules
------------
errors
    Exception hierarchy.
config
    ``AnalysisConfig`` and logging setup.
ir
    Minimal three-address IR: types, variables, expressions, statements.
cfg
    Statement-level CFG with synthetic entry/exit and a simple builder.
analysis
    ``Direction`` and the ``DataflowAnalysis`` contract.
fact
    ``SetFact``, ``MapFact`` and the ``DataflowResult`` store.
solver
    ``IterativeSolver``, ``WorkListSolver`` and ``make_solver``.
constprop
    Constant propagation (flat lattice).
livevar
    Live variable analysis (set lattice).

Quick start
-----------
>>> from monoflow import ConstantPropagation, build_cfg, make_solver
>>> result = make_solver(ConstantPropagation()).solve(build_cfg(ir))  # doctest: +SKIP
>>> result.get_out_fact(stmt)  # doctest: +SKIP
{a=#1, b=#2}
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import TYPE_CHECKING, Dict, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "MIT"
__all__: List[str] = []          # populated below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_re-export)
# Import order follows the dependency order of the modules.
# ---------------------------------------------------------------------------

_MODULES: Dict[str, List[str]] = {
    "errors": [
        "MonoflowError",
        "AnalysisError",
        "ConfigError",
        "DivergenceError",
        "InternalError",
    ],
    "config": [
        "AnalysisConfig",
        "configure_logging",
    ],
    "ir": [
        "IR",
        "Var",
        "PrimitiveType",
        "ClassType",
        "ArrayType",
        "can_hold_int",
    ],
    "cfg": [
        "CFG",
        "CFGEdge",
        "EdgeKind",
        "build_cfg",
    ],
    "analysis": [
        "Direction",
        "DataflowAnalysis",
        "check_monotonicity",
    ],
    "fact": [
        "SetFact",
        "MapFact",
        "DataflowResult",
    ],
    "solver": [
        "Solver",
        "IterativeSolver",
        "WorkListSolver",
        "make_solver",
        "solve",
    ],
    "constprop": [
        "ConstantPropagation",
        "CPFact",
        "Value",
        "meet_value",
        "evaluate",
    ],
    "livevar": [
        "LiveVariableAnalysis",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace.

    An ``ImportError`` or a missing name is fatal: every module is core.
    """
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"monoflow: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(
                f"monoflow.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _MODULES.items():
    _import_names(_mod, _names)

del _mod, _names

__all__ += ["__version__"]

if TYPE_CHECKING:
    from .errors import (
        MonoflowError as MonoflowError,
        AnalysisError as AnalysisError,
        ConfigError as ConfigError,
        DivergenceError as DivergenceError,
        InternalError as InternalError,
    )
    from .config import (
        AnalysisConfig as AnalysisConfig,
        configure_logging as configure_logging,
    )
    from .ir import (
        IR as IR,
        Var as Var,
        PrimitiveType as PrimitiveType,
        ClassType as ClassType,
        ArrayType as ArrayType,
        can_hold_int as can_hold_int,
    )
    from .cfg import (
        CFG as CFG,
        CFGEdge as CFGEdge,
        EdgeKind as EdgeKind,
        build_cfg as build_cfg,
    )
    from .analysis import (
        Direction as Direction,
        DataflowAnalysis as DataflowAnalysis,
        check_monotonicity as check_monotonicity,
    )
    from .fact import (
        SetFact as SetFact,
        MapFact as MapFact,
        DataflowResult as DataflowResult,
    )
    from .solver import (
        Solver as Solver,
        IterativeSolver as IterativeSolver,
        WorkListSolver as WorkListSolver,
        make_solver as make_solver,
        solve as solve,
    )
    from .constprop import (
        ConstantPropagation as ConstantPropagation,
        CPFact as CPFact,
        Value as Value,
        meet_value as meet_value,
        evaluate as evaluate,
    )
    from .livevar import LiveVariableAnalysis as LiveVariableAnalysis
