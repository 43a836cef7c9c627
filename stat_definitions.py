# stat_definitions.py
"""
Sources of statistic definitions and weights.

Built-in definitions are generated from a finger map: every key sequence of
each class is classified at once with numpy masks (same finger, hand
alternation, rolls, ...). Each definition is returned with a capacity-sized
index array where non-matching slots are -1; StatsRegistry.trim() compacts
them.

Custom definitions and weights are read from YAML files.
"""

import os
import yaml
import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple

from ngram_index import KeyboardGeometry, N_SKIPS
from stats import (ARITY, NGRAM_CLASSES, UNSET_WEIGHT, WEIGHT_CLASSES, MetaDefinition,
                   Weight)

# Fingers 0-3: left pinky..left index, 4-7: right index..right pinky
FINGER_NAMES = (
    'Left Pinky', 'Left Ring', 'Left Middle', 'Left Index',
    'Right Index', 'Right Middle', 'Right Ring', 'Right Pinky',
)
HAND_NAMES = ('Left Hand', 'Right Hand')
ROW_NAMES_3 = ('Top Row', 'Home Row', 'Bottom Row')

FINGER_MAP_12 = (0, 0, 1, 2, 3, 3, 4, 4, 5, 6, 7, 7)

Definitions = Dict[str, List[Tuple[str, np.ndarray]]]

#-----------------------------------------------------------------------------
# Finger map
#-----------------------------------------------------------------------------
def default_fingers(cols: int) -> Tuple[int, ...]:
    """Finger number for each column, left half on the left hand."""
    if cols == 12:
        return FINGER_MAP_12
    left_cols = cols // 2
    right_cols = cols - left_cols
    left = [min(3, (c * 4) // max(1, left_cols)) for c in range(left_cols)]
    right = [7 - min(3, (j * 4) // right_cols) for j in range(right_cols)]
    return tuple(left + right[::-1])

def check_fingers(fingers: Sequence[int], cols: int) -> Tuple[int, ...]:
    if len(fingers) != cols:
        raise ValueError(f"Finger map has {len(fingers)} entries, keyboard has {cols} columns")
    if any(not 0 <= f <= 7 for f in fingers):
        raise ValueError(f"Finger numbers must be in 0..7: {list(fingers)}")
    return tuple(int(f) for f in fingers)

class KeyAttributes:
    """Per-key finger, hand, row and column arrays, indexed by key number."""

    def __init__(self, geometry: KeyboardGeometry, fingers: Optional[Sequence[int]] = None):
        fingers = check_fingers(fingers, geometry.cols) if fingers else default_fingers(geometry.cols)
        keys = np.arange(geometry.key_count)
        self.row = keys // geometry.cols
        self.col = keys % geometry.cols
        self.finger = np.asarray(fingers, dtype=np.int64)[self.col]
        self.hand = self.finger // 4
        # distance from the index finger: 0 for index, 3 for pinky
        self.center_distance = np.where(self.hand == 0, 3 - self.finger, self.finger - 4)

        # index-finger columns nearest the other hand
        fingers = np.asarray(fingers)
        self.stretch = np.zeros(geometry.key_count, dtype=bool)
        for index_finger, pick in ((3, np.max), (4, np.min)):
            cols = np.flatnonzero(fingers == index_finger)
            if cols.size > 1:
                self.stretch |= self.col == pick(cols)

#-----------------------------------------------------------------------------
# Built-in definitions
#-----------------------------------------------------------------------------
def _masked_ngrams(mask: np.ndarray) -> np.ndarray:
    """Capacity-sized index array: flat index where mask is set, -1 elsewhere."""
    return np.where(mask, np.arange(mask.size, dtype=np.int64), -1)

def _inward(attrs: KeyAttributes, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Same hand, different fingers, moving toward the index finger."""
    return ((attrs.hand[a] == attrs.hand[b])
            & (attrs.center_distance[b] < attrs.center_distance[a]))

def _outward(attrs: KeyAttributes, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return ((attrs.hand[a] == attrs.hand[b])
            & (attrs.center_distance[b] > attrs.center_distance[a]))

def mono_definitions(geometry: KeyboardGeometry, attrs: KeyAttributes) -> List[Tuple[str, np.ndarray]]:
    keys = geometry.key_sequences(1)[:, 0]
    definitions = []
    for f, finger_name in enumerate(FINGER_NAMES):
        definitions.append((f"{finger_name} Usage", _masked_ngrams(attrs.finger[keys] == f)))
    for h, hand_name in enumerate(HAND_NAMES):
        definitions.append((f"{hand_name} Usage", _masked_ngrams(attrs.hand[keys] == h)))
    for r in range(geometry.rows):
        row_name = ROW_NAMES_3[r] if geometry.rows == 3 else f"Row {r}"
        definitions.append((f"{row_name} Usage", _masked_ngrams(attrs.row[keys] == r)))
    return definitions

def bi_definitions(geometry: KeyboardGeometry, attrs: KeyAttributes) -> List[Tuple[str, np.ndarray]]:
    keys = geometry.key_sequences(2)
    k0, k1 = keys[:, 0], keys[:, 1]
    same_hand = attrs.hand[k0] == attrs.hand[k1]
    same_finger = attrs.finger[k0] == attrs.finger[k1]
    finger_gap = np.abs(attrs.finger[k0] - attrs.finger[k1])
    row_gap = np.abs(attrs.row[k0] - attrs.row[k1])
    index_finger = attrs.center_distance == 0
    stretch = ((attrs.stretch[k0] & ~index_finger[k1]) | (attrs.stretch[k1] & ~index_finger[k0]))

    return [
        ('Same Finger Bigram', _masked_ngrams(same_finger & (k0 != k1))),
        ('Same Key Bigram', _masked_ngrams(k0 == k1)),
        ('Hand Alternation', _masked_ngrams(~same_hand)),
        ('Full Scissor', _masked_ngrams(same_hand & (finger_gap == 1) & (row_gap >= 2))),
        ('Lateral Stretch', _masked_ngrams(same_hand & ~same_finger & stretch)),
    ]

def skip_definitions(geometry: KeyboardGeometry, attrs: KeyAttributes) -> List[Tuple[str, np.ndarray]]:
    keys = geometry.key_sequences(2)
    k0, k1 = keys[:, 0], keys[:, 1]
    same_finger = (attrs.finger[k0] == attrs.finger[k1]) & (k0 != k1)
    return [('Same Finger Skipgram', _masked_ngrams(same_finger))]

def tri_definitions(geometry: KeyboardGeometry, attrs: KeyAttributes) -> List[Tuple[str, np.ndarray]]:
    keys = geometry.key_sequences(3)
    k0, k1, k2 = keys[:, 0], keys[:, 1], keys[:, 2]
    h0, h1, h2 = attrs.hand[k0], attrs.hand[k1], attrs.hand[k2]

    alternation = (h0 != h1) & (h1 != h2)
    # two keys on one hand, then (or after) one key on the other
    roll_first = (h0 == h1) & (h1 != h2)
    roll_last = (h0 != h1) & (h1 == h2)
    inward_roll = (roll_first & _inward(attrs, k0, k1)) | (roll_last & _inward(attrs, k1, k2))
    outward_roll = (roll_first & _outward(attrs, k0, k1)) | (roll_last & _outward(attrs, k1, k2))

    in01, in12 = _inward(attrs, k0, k1), _inward(attrs, k1, k2)
    out01, out12 = _outward(attrs, k0, k1), _outward(attrs, k1, k2)
    one_hand = (in01 & in12) | (out01 & out12)
    redirect = (in01 & out12) | (out01 & in12)

    return [
        ('Alternation', _masked_ngrams(alternation)),
        ('Inward Roll', _masked_ngrams(inward_roll)),
        ('Outward Roll', _masked_ngrams(outward_roll)),
        ('One Hand', _masked_ngrams(one_hand)),
        ('Redirect', _masked_ngrams(redirect)),
    ]

def quad_definitions(geometry: KeyboardGeometry, attrs: KeyAttributes) -> List[Tuple[str, np.ndarray]]:
    keys = geometry.key_sequences(4)
    hands = attrs.hand[keys]
    fingers = attrs.finger[keys]
    chained_alternation = ((hands[:, 0] != hands[:, 1]) & (hands[:, 1] != hands[:, 2])
                           & (hands[:, 2] != hands[:, 3]))
    chained_roll = ((hands[:, 0] == hands[:, 1]) & (hands[:, 1] != hands[:, 2])
                    & (hands[:, 2] == hands[:, 3])
                    & (fingers[:, 0] != fingers[:, 1]) & (fingers[:, 2] != fingers[:, 3]))
    return [
        ('Chained Alternation', _masked_ngrams(chained_alternation)),
        ('Chained Roll', _masked_ngrams(chained_roll)),
    ]

def builtin_definitions(geometry: KeyboardGeometry,
                        fingers: Optional[Sequence[int]] = None) -> Definitions:
    """All built-in statistics for a keyboard, keyed by n-gram class."""
    attrs = KeyAttributes(geometry, fingers)
    return {
        'mono': mono_definitions(geometry, attrs),
        'bi': bi_definitions(geometry, attrs),
        'tri': tri_definitions(geometry, attrs),
        'quad': quad_definitions(geometry, attrs),
        'skip': skip_definitions(geometry, attrs),
    }

#-----------------------------------------------------------------------------
# Built-in meta statistics
#-----------------------------------------------------------------------------
def absolute_difference(values: np.ndarray) -> float:
    return float(abs(values[0] - values[1]))

def total(values: np.ndarray) -> float:
    return float(np.sum(values))

def ratio(values: np.ndarray) -> float:
    """First input over the second; 0 when the second is 0."""
    return float(values[0] / values[1]) if values[1] else 0.0

def builtin_meta_definitions() -> List[MetaDefinition]:
    """
    Meta statistics over the built-in statistics. The skip-gram input of
    'Same Finger Total' is summed over all skip distances.
    """
    return [
        MetaDefinition('Hand Balance',
                       (('mono', 'Left Hand Usage'), ('mono', 'Right Hand Usage')),
                       absolute_difference),
        MetaDefinition('Pinky Load',
                       (('mono', 'Left Pinky Usage'), ('mono', 'Right Pinky Usage')),
                       total),
        MetaDefinition('Roll In/Out Ratio',
                       (('tri', 'Inward Roll'), ('tri', 'Outward Roll')),
                       ratio),
        MetaDefinition('Same Finger Total',
                       (('bi', 'Same Finger Bigram'), ('skip', 'Same Finger Skipgram')),
                       total),
    ]

#-----------------------------------------------------------------------------
# YAML sources
#-----------------------------------------------------------------------------
def _read_yaml(path: str, what: str, classes: Sequence[str] = NGRAM_CLASSES) -> dict:
    if not os.path.exists(path):
        raise FileNotFoundError(f"{what} file not found: {path}")
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing {what} file {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{what} file {path} must map n-gram classes to entries")
    for ngram_class in data:
        if ngram_class not in classes:
            raise ValueError(f"Unknown class '{ngram_class}' in {what} file (expected one of {tuple(classes)})")
    return data

def custom_definitions(data: dict, geometry: KeyboardGeometry) -> Definitions:
    """
    Definitions from a mapping `class -> {name: [[ [row, col], ... ], ...]}`.

    Key sequences of the wrong length or leaving the grid become empty slots.
    """
    definitions: Definitions = {cls: [] for cls in NGRAM_CLASSES}
    for ngram_class, stats in data.items():
        arity = ARITY[ngram_class]
        for name, sequences in (stats or {}).items():
            ngrams = []
            for sequence in sequences or []:
                coords = [tuple(int(v) for v in coord) if isinstance(coord, (list, tuple)) else ()
                          for coord in sequence]
                valid = (len(coords) == arity
                         and all(len(c) == 2 and geometry.contains(c) for c in coords))
                ngrams.append(geometry.flatten(*coords) if valid else -1)
            definitions[ngram_class].append((str(name), np.asarray(ngrams, dtype=np.int64)))
    return definitions

def load_custom_definitions(path: str, geometry: KeyboardGeometry) -> Definitions:
    return custom_definitions(_read_yaml(path, "Statistics"), geometry)

def merge_definitions(*sources: Definitions) -> Definitions:
    """
    Concatenate definitions per class.

    Raises:
        ValueError: if two sources define a statistic with the same name
    """
    merged: Definitions = {cls: [] for cls in NGRAM_CLASSES}
    for source in sources:
        for ngram_class, definitions in source.items():
            names = {name for name, _ in merged[ngram_class]}
            for name, ngrams in definitions:
                if name in names:
                    raise ValueError(f"Duplicate {ngram_class} statistic name: '{name}'")
                names.add(name)
                merged[ngram_class].append((name, ngrams))
    return merged

def _weight_value(ngram_class: str, name: str, value) -> float:
    if value is None:
        return UNSET_WEIGHT
    if isinstance(value, (bool, list, dict)):
        raise ValueError(f"Weight for {ngram_class} statistic '{name}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Weight for {ngram_class} statistic '{name}' must be a number, got {value!r}")

def load_weights(path: str) -> Dict[str, Dict[str, Weight]]:
    """
    Weights from a mapping `class -> {name: weight}`.

    Skip-gram weights are lists of 9 numbers, one per skip distance. An
    empty entry leaves the statistic without a weight, so it is dropped;
    an empty slot in a skip list does the same for that statistic.
    Meta statistics take their weights from the 'meta' class.
    """
    data = _read_yaml(path, "Weights", WEIGHT_CLASSES)
    weights = {}
    for ngram_class, entries in data.items():
        if entries is not None and not isinstance(entries, dict):
            raise ValueError(f"Weights for class '{ngram_class}' must map statistic names to weights")
        weights[ngram_class] = {}
        for name, weight in (entries or {}).items():
            if weight is None:
                continue
            if ngram_class == 'skip':
                if not isinstance(weight, list) or len(weight) != N_SKIPS:
                    raise ValueError(f"Skip weight for '{name}' must be a list of {N_SKIPS} numbers")
                weights[ngram_class][str(name)] = [_weight_value(ngram_class, name, w) for w in weight]
            else:
                weights[ngram_class][str(name)] = _weight_value(ngram_class, name, weight)
    return weights
