# monoflow/errors.py
"""
Exception hierarchy for monoflow.

::

    MonoflowError (base)
    ├── AnalysisError     - misuse of a lattice value
    ├── ConfigError       - invalid analysis configuration
    ├── DivergenceError   - solver hit its safety bound
    └── InternalError     - invariant violation (should never happen)

``InternalError`` signals that the IR model and the transfer logic have
drifted out of sync.  Nothing inside the package catches it.
"""

from __future__ import annotations


class MonoflowError(Exception):
    """Base class of every exception raised by monoflow."""


class AnalysisError(MonoflowError):
    """A lattice value was used in a way its kind does not support."""


class ConfigError(MonoflowError, ValueError):
    """An :class:`~monoflow.config.AnalysisConfig` is malformed."""


class DivergenceError(MonoflowError, RuntimeError):
    """The fixpoint iteration exceeded ``max-iterations``.

    Only non-monotone meet or transfer functions can trigger this.
    """

    def __init__(self, analysis_id: str, limit: int) -> None:
        super().__init__(
            f"Dataflow analysis {analysis_id!r} did not converge in "
            f"{limit} iterations"
        )
        self.analysis_id = analysis_id
        self.limit = limit


class InternalError(MonoflowError):
    """An IR construct outside the closed kind set reached an evaluator."""
