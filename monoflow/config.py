"""
monoflow.config
===============

Analysis configuration and logging setup.

Every analysis is constructed from an :class:`AnalysisConfig`, a small
immutable record holding the analysis id and a mapping of options.  The
options understood by the package itself are:

``solver``
    ``"iterative"`` (default) or ``"worklist"``; see
    :func:`monoflow.solver.make_solver`.
``max-iterations``
    Safety bound on solver passes / node visits (default ``1_000_000``).

Other keys are kept verbatim so individual analyses can read their own.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from monoflow.errors import ConfigError

_log = logging.getLogger(__name__)

SOLVER_ITERATIVE: str = "iterative"
SOLVER_WORKLIST: str = "worklist"
SOLVERS = (SOLVER_ITERATIVE, SOLVER_WORKLIST)

DEFAULT_MAX_ITERATIONS: int = 1_000_000


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration of a single analysis.

    Attributes
    ----------
    id : str
        Analysis identifier, e.g. ``"constprop"``.
    options : Mapping[str, Any]
        Read-only option mapping.
    """

    id: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ConfigError(f"analysis id must be a non-empty string, got {self.id!r}")
        opts = dict(self.options)
        solver = opts.get("solver", SOLVER_ITERATIVE)
        if solver not in SOLVERS:
            raise ConfigError(
                f"unknown solver {solver!r} for analysis {self.id!r}; "
                f"expected one of {', '.join(SOLVERS)}"
            )
        limit = opts.get("max-iterations", DEFAULT_MAX_ITERATIONS)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ConfigError(
                f"max-iterations must be a positive int, got {limit!r}"
            )
        object.__setattr__(self, "options", MappingProxyType(opts))

    @classmethod
    def of(cls, analysis_id: str, **options: Any) -> AnalysisConfig:
        """Build a config from keyword options.

        Underscores in keyword names become dashes, so
        ``max_iterations=10`` is stored as ``"max-iterations"``.
        """
        return cls(
            analysis_id,
            {key.replace("_", "-"): value for key, value in options.items()},
        )

    def get_option(self, key: str, default: Optional[Any] = None) -> Any:
        return self.options.get(key, default)

    @property
    def solver(self) -> str:
        return self.options.get("solver", SOLVER_ITERATIVE)

    @property
    def max_iterations(self) -> int:
        return self.options.get("max-iterations", DEFAULT_MAX_ITERATIONS)

    def __str__(self) -> str:
        opts = ", ".join(f"{k}={v!r}" for k, v in self.options.items())
        return f"[{self.id}]{{{opts}}}"


def configure_logging(verbosity: int) -> None:
    """Set up the ``monoflow`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.

    Calling it again only changes the level; the stderr handler is
    installed once.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("monoflow")
    root.setLevel(level)
    if not any(getattr(h, "_monoflow", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        handler._monoflow = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    _log.debug("monoflow logging level set to %s", logging.getLevelName(level))
