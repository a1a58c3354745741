"""
monoflow.fact
=============

Generic dataflow facts and the solver's result store.

    SetFact         - mutable set fact (live variables)
    MapFact         - mutable map fact (base of CPFact)
    DataflowResult  - node → (IN, OUT) store plus solve statistics

Facts compare by content.  They are mutable so that ``meet_into`` can
fold neighbours into a fresh fact, but a fact stored in a
:class:`DataflowResult` is never mutated afterwards: solvers always store
newly created facts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from monoflow.analysis import Direction

E = TypeVar("E")
K = TypeVar("K")
V = TypeVar("V")
Node = TypeVar("Node")
Fact = TypeVar("Fact")

_MISSING = object()


# ===========================================================================
# SET FACT
# ===========================================================================

class SetFact(Generic[E]):
    """A mutable set of elements."""

    __slots__ = ("_set",)

    def __init__(self, elements: Optional[Iterable[E]] = None) -> None:
        self._set: Set[E] = set(elements) if elements is not None else set()

    def contains(self, e: E) -> bool:
        return e in self._set

    def add(self, e: E) -> bool:
        """Add *e*; return ``True`` if the fact changed."""
        if e in self._set:
            return False
        self._set.add(e)
        return True

    def remove(self, e: E) -> bool:
        """Remove *e*; return ``True`` if the fact changed."""
        if e not in self._set:
            return False
        self._set.discard(e)
        return True

    def union(self, other: SetFact[E]) -> bool:
        """Add every element of *other*; return ``True`` if the fact changed."""
        before = len(self._set)
        self._set |= other._set
        return len(self._set) != before

    def set(self, other: SetFact[E]) -> None:
        """Replace the contents of this fact with those of *other*."""
        self._set = set(other._set)

    def copy(self) -> SetFact[E]:
        return SetFact(self._set)

    def is_empty(self) -> bool:
        return not self._set

    def frozen(self) -> frozenset:
        return frozenset(self._set)

    def __contains__(self, e: object) -> bool:
        return e in self._set

    def __iter__(self) -> Iterator[E]:
        return iter(self._set)

    def __len__(self) -> int:
        return len(self._set)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SetFact):
            return self._set == other._set
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "{" + ", ".join(sorted(map(str, self._set))) + "}"


# ===========================================================================
# MAP FACT
# ===========================================================================

class MapFact(Generic[K, V]):
    """A mutable map fact.  Subclasses decide what an absent key means."""

    __slots__ = ("_map",)

    def __init__(self, mapping: Optional[Mapping[K, V]] = None) -> None:
        self._map: Dict[K, V] = dict(mapping) if mapping is not None else {}

    def get(self, key: K) -> Optional[V]:
        return self._map.get(key)

    def update(self, key: K, value: V) -> bool:
        """Bind *key* to *value*; return ``True`` if the fact changed."""
        old = self._map.get(key, _MISSING)
        self._map[key] = value
        return old != value

    def remove(self, key: K) -> Optional[V]:
        return self._map.pop(key, None)

    def copy_from(self, other: MapFact[K, V]) -> bool:
        """Replace the contents with *other*'s; return ``True`` if changed."""
        changed = self._map != other._map
        self._map = dict(other._map)
        return changed

    def copy(self) -> MapFact[K, V]:
        return type(self)(self._map)

    def keys(self) -> Iterable[K]:
        return self._map.keys()

    def items(self) -> Iterable[Tuple[K, V]]:
        return self._map.items()

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __iter__(self) -> Iterator[K]:
        return iter(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MapFact):
            return self._map == other._map
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(
            f"{k}={v}" for k, v in sorted(self._map.items(), key=lambda kv: str(kv[0]))
        )
        return "{" + body + "}"


# ===========================================================================
# DATAFLOW RESULT
# ===========================================================================

@dataclass
class DataflowResult(Generic[Node, Fact]):
    """Container for dataflow analysis results.

    Attributes
    ----------
    facts_in : dict
        Map from node → IN fact.
    facts_out : dict
        Map from node → OUT fact.
    iterations : int
        Passes (iterative solver) or node visits (worklist solver).
    updates : int
        Number of times a node's produced fact changed.
    converged : bool
        Whether the solve reached a fixpoint.
    elapsed_seconds : float
        Wall-clock time.
    direction : Direction
        Analysis direction.
    """

    facts_in: Dict[Node, Fact] = field(default_factory=dict)
    facts_out: Dict[Node, Fact] = field(default_factory=dict)
    iterations: int = 0
    updates: int = 0
    converged: bool = False
    elapsed_seconds: float = 0.0
    direction: Direction = Direction.FORWARD

    def get_in_fact(self, node: Node) -> Optional[Fact]:
        return self.facts_in.get(node)

    def get_out_fact(self, node: Node) -> Optional[Fact]:
        return self.facts_out.get(node)

    def set_in_fact(self, node: Node, fact: Fact) -> None:
        self.facts_in[node] = fact

    def set_out_fact(self, node: Node, fact: Fact) -> None:
        self.facts_out[node] = fact

    def fact_at(self, node: Node, *, before: bool = True) -> Optional[Fact]:
        """Return the fact at a node.

        Parameters
        ----------
        node
            The CFG node.
        before : bool
            If ``True``, return the fact before the statement executes (IN),
            otherwise the fact after it (OUT).  Independent of direction.
        """
        if before:
            return self.get_in_fact(node)
        return self.get_out_fact(node)

    def nodes(self) -> List[Node]:
        return list(self.facts_in)

    def items_in(self) -> Iterable[Tuple[Node, Fact]]:
        return self.facts_in.items()

    def items_out(self) -> Iterable[Tuple[Node, Fact]]:
        return self.facts_out.items()

    def same_facts(self, other: DataflowResult[Any, Any]) -> bool:
        """``True`` if both results hold equal IN and OUT facts everywhere."""
        return self.facts_in == other.facts_in and self.facts_out == other.facts_out
