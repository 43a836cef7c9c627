# stats.py
"""
Statistics registry for layout scoring.

A statistic is a named, weighted set of physical key sequences within one
n-gram class (mono, bi, tri, quad, or skip). Scoring a layout sums the
corpus frequency of the characters that sit on each of those key sequences.

Definitions are built in two phases:
1. A growable list per class, filled while loading definitions and weights.
   Weights start at -inf, meaning "unconfigured".
2. After trim() and clean(), the list is frozen by to_array() into a
   StatTable: fixed-size numpy arrays indexed by statistic number, which is
   what the scoring kernels read. The list form is dropped at that point.

Meta statistics are computed from other statistics rather than from key
sequences: each one combines score entries of named statistics (a hand
balance from the two hand-usage entries, for instance). They share the
same weight sentinel and build phases.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ngram_index import KeyboardGeometry, N_SKIPS

NGRAM_CLASSES = ('mono', 'bi', 'tri', 'quad', 'skip')
ARITY = {'mono': 1, 'bi': 2, 'tri': 3, 'quad': 4, 'skip': 2}
META_CLASS = 'meta'
WEIGHT_CLASSES = NGRAM_CLASSES + (META_CLASS,)

UNSET_WEIGHT = float('-inf')

Weight = Union[float, Sequence[float]]

def check_ngram_class(ngram_class: str) -> str:
    if ngram_class not in ARITY:
        raise ValueError(f"Unknown n-gram class: '{ngram_class}' (expected one of {NGRAM_CLASSES})")
    return ngram_class

#-----------------------------------------------------------------------------
# Definitions (list phase)
#-----------------------------------------------------------------------------
@dataclass
class StatDefinition:
    """
    One statistic while it is still being configured.

    `ngrams` holds flat key-sequence indices; -1 marks an empty slot. Only
    the first `length` entries are meaningful once trim() has run.
    """
    name: str
    ngram_class: str
    ngrams: np.ndarray
    length: int = 0
    weight: np.ndarray = field(default=None)

    def __post_init__(self):
        check_ngram_class(self.ngram_class)
        self.ngrams = np.array(self.ngrams, dtype=np.int64).ravel()
        if self.weight is None:
            size = N_SKIPS if self.is_skip else 1
            self.weight = np.full(size, UNSET_WEIGHT)

    @property
    def is_skip(self) -> bool:
        return self.ngram_class == 'skip'

    @property
    def is_configured(self) -> bool:
        return bool(np.all(np.isfinite(self.weight)))

    def set_weight(self, weight: Weight) -> None:
        values = np.atleast_1d(np.asarray(weight, dtype=np.float64))
        expected = N_SKIPS if self.is_skip else 1
        if values.size != expected:
            raise ValueError(
                f"Statistic '{self.name}' ({self.ngram_class}) needs {expected} weight value(s), "
                f"got {values.size}"
            )
        self.weight = values.copy()

    def trim(self) -> None:
        """Move populated entries to the front, keeping their order."""
        populated = self.ngrams[self.ngrams >= 0]
        self.length = int(populated.size)
        self.ngrams[:self.length] = populated
        self.ngrams[self.length:] = -1

#-----------------------------------------------------------------------------
# Frozen tables (array phase)
#-----------------------------------------------------------------------------
@dataclass(frozen=True)
class StatTable:
    """
    Index-stable, read-only statistics of one class.

    Attributes:
        names: statistic names, position i is statistic i
        ngrams: (n_stats, max_length) flat key-sequence indices, padded with -1
        lengths: number of valid entries per row of `ngrams`
        weights: (n_stats,) or, for skip-grams, (n_stats, 9) with column h
                 being the weight for skip distance h + 1
    """
    ngram_class: str
    names: Tuple[str, ...]
    ngrams: np.ndarray
    lengths: np.ndarray
    weights: np.ndarray

    @property
    def arity(self) -> int:
        return ARITY[self.ngram_class]

    def __len__(self) -> int:
        return len(self.names)

    def index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise ValueError(f"No {self.ngram_class} statistic named '{name}'")

    @classmethod
    def from_definitions(cls, ngram_class: str, definitions: List[StatDefinition]) -> "StatTable":
        max_length = max([d.length for d in definitions], default=0)
        ngrams = np.full((len(definitions), max(1, max_length)), -1, dtype=np.int64)
        lengths = np.zeros(len(definitions), dtype=np.int64)
        if ngram_class == 'skip':
            weights = np.zeros((len(definitions), N_SKIPS), dtype=np.float64)
        else:
            weights = np.zeros(len(definitions), dtype=np.float64)

        for i, definition in enumerate(definitions):
            ngrams[i, :definition.length] = definition.ngrams[:definition.length]
            lengths[i] = definition.length
            weights[i] = definition.weight if ngram_class == 'skip' else definition.weight[0]

        for array in (ngrams, lengths, weights):
            array.setflags(write=False)
        return cls(ngram_class, tuple(d.name for d in definitions), ngrams, lengths, weights)

#-----------------------------------------------------------------------------
# Per-class registry
#-----------------------------------------------------------------------------
class StatsRegistry:
    """Holds the statistics of one n-gram class through both build phases."""

    def __init__(self, ngram_class: str):
        self.ngram_class = check_ngram_class(ngram_class)
        self._definitions: Optional[List[StatDefinition]] = []
        self._table: Optional[StatTable] = None

    @property
    def is_frozen(self) -> bool:
        return self._table is not None

    @property
    def definitions(self) -> List[StatDefinition]:
        if self._definitions is None:
            raise ValueError(f"{self.ngram_class} statistics are no longer in list form")
        return self._definitions

    @property
    def table(self) -> StatTable:
        if self._table is None:
            raise ValueError(f"{self.ngram_class} statistics have not been frozen yet (call to_array)")
        return self._table

    @property
    def count(self) -> int:
        """Number of live statistics in this class."""
        if self._table is not None:
            return len(self._table)
        return len(self._definitions or [])

    def add(self, name: str, ngrams: Iterable[int]) -> StatDefinition:
        # weights are looked up by name
        if self.get(name) is not None:
            raise ValueError(f"Duplicate {self.ngram_class} statistic name: '{name}'")
        if not isinstance(ngrams, np.ndarray):
            ngrams = list(ngrams)
        definition = StatDefinition(name, self.ngram_class, ngrams)
        self.definitions.append(definition)
        return definition

    def initialize(self, source: Iterable[Tuple[str, Iterable[int]]]) -> None:
        """Append one unconfigured definition per (name, ngrams) pair."""
        for name, ngrams in source:
            self.add(name, ngrams)

    def get(self, name: str) -> Optional[StatDefinition]:
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None

    def set_weight(self, name: str, weight: Weight) -> bool:
        """Set a weight by statistic name. Returns False for unknown names."""
        definition = self.get(name)
        if definition is None:
            return False
        definition.set_weight(weight)
        return True

    def trim(self) -> None:
        for definition in self.definitions:
            definition.trim()

    def clean(self) -> int:
        """
        Drop definitions that are empty or still unconfigured.

        Returns:
            Number of definitions removed
        """
        before = len(self.definitions)
        self._definitions = [
            d for d in self.definitions
            if d.length > 0 and d.is_configured
        ]
        return before - len(self._definitions)

    def to_array(self) -> StatTable:
        self._table = StatTable.from_definitions(self.ngram_class, self.definitions)
        self.free()
        return self._table

    def free(self) -> None:
        """Release the list form."""
        self._definitions = None

#-----------------------------------------------------------------------------
# Meta statistics
#-----------------------------------------------------------------------------
StatReference = Tuple[str, str]

def _entry(vector: np.ndarray, index: int) -> float:
    """Score entry of one statistic; skip-gram entries are summed over distances."""
    return float(np.sum(vector[..., index]))

@dataclass
class MetaDefinition:
    """
    One meta statistic while it is still being configured.

    `inputs` names (class, statistic) pairs; `combine` receives their score
    entries in that order and returns the meta value.
    """
    name: str
    inputs: Tuple[StatReference, ...]
    combine: Callable[[np.ndarray], float]
    weight: float = UNSET_WEIGHT

    def __post_init__(self):
        self.inputs = tuple((check_ngram_class(cls), str(name)) for cls, name in self.inputs)
        if not self.inputs:
            raise ValueError(f"Meta statistic '{self.name}' needs at least one input")

    @property
    def is_configured(self) -> bool:
        return bool(np.isfinite(self.weight))

    def set_weight(self, weight: Weight) -> None:
        values = np.atleast_1d(np.asarray(weight, dtype=np.float64))
        if values.size != 1:
            raise ValueError(f"Meta statistic '{self.name}' needs 1 weight value, got {values.size}")
        self.weight = float(values[0])

@dataclass(frozen=True)
class MetaTable:
    """
    Read-only meta statistics with their inputs resolved to table positions.

    Attributes:
        names: meta statistic names, position i is meta statistic i
        inputs: per meta statistic, (class, statistic index) pairs
        combines: per meta statistic, the combining function
        weights: (n_meta,)
    """
    names: Tuple[str, ...]
    inputs: Tuple[Tuple[Tuple[str, int], ...], ...]
    combines: Tuple[Callable[[np.ndarray], float], ...]
    weights: np.ndarray

    def __len__(self) -> int:
        return len(self.names)

    def index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise ValueError(f"No meta statistic named '{name}'")

    def evaluate(self, vectors: Dict[str, np.ndarray], out: np.ndarray) -> None:
        """Fill `out` from already-scored class vectors."""
        for i, (inputs, combine) in enumerate(zip(self.inputs, self.combines)):
            values = np.array([_entry(vectors[cls], j) for cls, j in inputs])
            out[i] = combine(values)

    @classmethod
    def from_definitions(cls, definitions: List[MetaDefinition],
                         tables: Dict[str, StatTable]) -> "MetaTable":
        inputs = tuple(
            tuple((ngram_class, tables[ngram_class].index(name)) for ngram_class, name in d.inputs)
            for d in definitions
        )
        weights = np.array([d.weight for d in definitions], dtype=np.float64)
        weights.setflags(write=False)
        return cls(tuple(d.name for d in definitions), inputs,
                   tuple(d.combine for d in definitions), weights)

class MetaRegistry:
    """Holds the meta statistics through both build phases."""

    def __init__(self):
        self._definitions: Optional[List[MetaDefinition]] = []
        self._table: Optional[MetaTable] = None

    @property
    def definitions(self) -> List[MetaDefinition]:
        if self._definitions is None:
            raise ValueError("meta statistics are no longer in list form")
        return self._definitions

    @property
    def table(self) -> MetaTable:
        if self._table is None:
            raise ValueError("meta statistics have not been frozen yet (call to_array)")
        return self._table

    @property
    def count(self) -> int:
        if self._table is not None:
            return len(self._table)
        return len(self._definitions or [])

    def add(self, definition: MetaDefinition) -> MetaDefinition:
        if self.get(definition.name) is not None:
            raise ValueError(f"Duplicate meta statistic name: '{definition.name}'")
        self.definitions.append(definition)
        return definition

    def initialize(self, definitions: Iterable[MetaDefinition]) -> None:
        for definition in definitions:
            self.add(definition)

    def get(self, name: str) -> Optional[MetaDefinition]:
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None

    def set_weight(self, name: str, weight: Weight) -> bool:
        definition = self.get(name)
        if definition is None:
            return False
        definition.set_weight(weight)
        return True

    def required_inputs(self) -> List[StatReference]:
        """Inputs of every configured meta statistic."""
        return [ref for d in self.definitions if d.is_configured for ref in d.inputs]

    def clean(self, tables: Dict[str, StatTable]) -> int:
        """
        Drop meta statistics that are unconfigured or read a statistic
        that is not live.

        Returns:
            Number of definitions removed
        """
        before = len(self.definitions)
        self._definitions = [
            d for d in self.definitions
            if d.is_configured and all(name in tables[cls].names for cls, name in d.inputs)
        ]
        return before - len(self._definitions)

    def to_array(self, tables: Dict[str, StatTable]) -> MetaTable:
        self._table = MetaTable.from_definitions(self.definitions, tables)
        self._definitions = None
        return self._table

#-----------------------------------------------------------------------------
# All classes together
#-----------------------------------------------------------------------------
class StatisticsModel:
    """
    Statistics for every n-gram class, plus meta statistics, on one keyboard
    geometry.

    Read-only after finalize(); safe to share between worker threads.
    """

    def __init__(self, geometry: KeyboardGeometry):
        self.geometry = geometry
        self.registries = {cls: StatsRegistry(cls) for cls in NGRAM_CLASSES}
        self.meta_registry = MetaRegistry()

    def registry(self, ngram_class: str) -> StatsRegistry:
        return self.registries[check_ngram_class(ngram_class)]

    def initialize(self, definitions: Dict[str, Iterable[Tuple[str, Iterable[int]]]]) -> None:
        for ngram_class, source in definitions.items():
            self.registry(ngram_class).initialize(source)

    def initialize_meta(self, definitions: Iterable[MetaDefinition]) -> None:
        self.meta_registry.initialize(definitions)

    def apply_weights(self, weights: Dict[str, Dict[str, Weight]]) -> int:
        """
        Set weights by class and statistic name. The 'meta' class addresses
        meta statistics.

        Returns:
            Number of weights that named no known statistic (ignored)
        """
        unknown = 0
        for ngram_class, class_weights in weights.items():
            if ngram_class == META_CLASS:
                registry = self.meta_registry
            else:
                registry = self.registry(ngram_class)
            for name, weight in (class_weights or {}).items():
                if not registry.set_weight(name, weight):
                    unknown += 1
        return unknown

    def finalize(self) -> Dict[str, int]:
        """
        Trim, clean and freeze every class, then the meta statistics.

        A statistic read by a weighted meta statistic is kept even without a
        weight of its own; it gets weight zero.

        Returns:
            Number of dropped definitions per class (and for 'meta')
        """
        for ngram_class, name in self.meta_registry.required_inputs():
            definition = self.registry(ngram_class).get(name)
            if definition is not None and not definition.is_configured:
                definition.set_weight(np.zeros_like(definition.weight))

        dropped = {}
        for ngram_class, registry in self.registries.items():
            registry.trim()
            dropped[ngram_class] = registry.clean()
            registry.to_array()

        tables = {cls: registry.table for cls, registry in self.registries.items()}
        dropped[META_CLASS] = self.meta_registry.clean(tables)
        self.meta_registry.to_array(tables)
        return dropped

    def table(self, ngram_class: str) -> StatTable:
        return self.registry(ngram_class).table

    @property
    def mono(self) -> StatTable:
        return self.table('mono')

    @property
    def bi(self) -> StatTable:
        return self.table('bi')

    @property
    def tri(self) -> StatTable:
        return self.table('tri')

    @property
    def quad(self) -> StatTable:
        return self.table('quad')

    @property
    def skip(self) -> StatTable:
        return self.table('skip')

    @property
    def meta(self) -> MetaTable:
        return self.meta_registry.table

    @property
    def counts(self) -> Dict[str, int]:
        counts = {cls: registry.count for cls, registry in self.registries.items()}
        counts[META_CLASS] = self.meta_registry.count
        return counts
